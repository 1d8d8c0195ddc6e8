"""
Template Pricing Package

Pricing resolution engine for custom window-covering retailers.
Turns a merchant-configured pricing template plus an order's dimensions
into a single unit price and line total.
"""

__version__ = "1.0.0"
