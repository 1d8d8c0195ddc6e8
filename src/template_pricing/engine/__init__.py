"""Engine subpackage - core pricing logic and resolution."""
from .pricing_engine import PricingEngine, compute_price
from .models import OrderDimensions, PriceResult, PricingMethod, PricingTemplate
from .errors import ConfigurationError, ParseError, PricingError, RangeLookupError, ValidationError

__all__ = [
    'PricingEngine', 'compute_price',
    'OrderDimensions', 'PriceResult', 'PricingMethod', 'PricingTemplate',
    'PricingError', 'ValidationError', 'ConfigurationError', 'ParseError', 'RangeLookupError',
]
