"""Configuration subpackage - settings and paths."""
