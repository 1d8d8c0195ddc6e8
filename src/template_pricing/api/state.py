"""Shared engine, template store and grid parser for the API routes."""
from ..config.settings import get_settings
from ..engine.pricing_engine import PricingEngine
from ..services.grid_service import GridUploadService
from ..services.template_service import TemplateStore

settings = get_settings()
engine = PricingEngine(settings)
template_store = TemplateStore(settings=settings)
grid_parser = GridUploadService(settings)
