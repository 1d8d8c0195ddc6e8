"""
Pricing Engine - turns a PricingTemplate plus OrderDimensions into a PriceResult.

Pipeline:
1. Validate the dimensions
2. Compute fabric drops for the template's roll width
3. Resolve a rate (heading -> height tier -> base) or look up the grid cell
4. Multiply by the method's billed quantity
5. Add lining, then apply the waste uplift

Every step is recorded on the result trace. Errors propagate unchanged;
no partial price is ever returned.
"""
import logging
from typing import Callable, Mapping, Optional

from ..config.settings import Settings, get_settings
from .dimensions import validate_dimensions
from .errors import ConfigurationError, ValidationError
from .fabric import fabric_usage, roll_width_for
from .grid import lookup_cell
from .models import (
    OrderDimensions,
    PriceResult,
    PricingMethod,
    PricingTemplate,
    Quote,
    QuoteLine,
)
from .rate_resolver import resolve_rate_detail

logger = logging.getLogger(__name__)


class PricingEngine:
    """
    Stateless price aggregator.

    Billed quantity per method:
    - per_metre: finished height in metres x quantity (height is billed, not width)
    - per_drop:  fabric drops x quantity
    - per_panel: quantity, regardless of drops
    - per_sqm:   width(m) x height(m) x quantity
    - per_unit:  quantity
    - pricing_grid: quantity, unit price is the grid cell
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._handlers: dict[PricingMethod, Callable] = {
            PricingMethod.PER_METRE: self._billed_per_metre,
            PricingMethod.PER_DROP: self._billed_per_drop,
            PricingMethod.PER_PANEL: self._billed_per_item,
            PricingMethod.PER_SQM: self._billed_per_sqm,
            PricingMethod.PER_UNIT: self._billed_per_item,
            PricingMethod.PRICING_GRID: self._billed_per_item,
        }
        missing = set(PricingMethod) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No pricing handler for {sorted(m.value for m in missing)}")

    def _round(self, value: float) -> float:
        return round(value, self.settings.price_decimals)

    # Billed quantity per method

    def _billed_per_metre(self, dims: OrderDimensions, drops: int) -> float:
        return dims.height_m * dims.quantity

    def _billed_per_drop(self, dims: OrderDimensions, drops: int) -> float:
        return drops * dims.quantity

    def _billed_per_item(self, dims: OrderDimensions, drops: int) -> float:
        return float(dims.quantity)

    def _billed_per_sqm(self, dims: OrderDimensions, drops: int) -> float:
        return (dims.finished_width / 100.0) * (dims.finished_height / 100.0) * dims.quantity

    # Pipeline

    def compute_price(self, template: PricingTemplate, dims: OrderDimensions) -> PriceResult:
        """Price one line item. Raises ValidationError, ConfigurationError or RangeLookupError."""
        validate_dimensions(dims)
        if dims.hand_finished and template.offers_hand_finished is False:
            raise ValidationError(
                f"Template '{template.name}' does not offer hand-finished construction",
                field='hand_finished',
            )

        result = PriceResult(
            method=template.method,
            unit_price=0.0,
            quantity_used=0.0,
            lining_cost=0.0,
            subtotal=0.0,
            waste_adjusted_total=0.0,
        )
        result.add_trace(
            "Dimensions",
            f"{dims.finished_width:g} x {dims.finished_height:g}cm, fullness {dims.fullness_ratio:g}, "
            f"qty {dims.quantity}, {'hand' if dims.hand_finished else 'machine'}",
        )

        roll_width = roll_width_for(template, self.settings)
        usage = fabric_usage(template, dims, self.settings)
        drops = usage.drops
        result.drops = drops
        result.fabric_usage = usage
        result.add_trace("Fabric Drops", f"Roll width {roll_width:g}cm", str(drops))
        result.add_trace(
            "Fabric Usage",
            f"{usage.orientation.value}: {usage.pieces} piece(s), {usage.seams} seam(s)",
            f"{usage.linear_metres:.2f}m",
        )

        if template.method is PricingMethod.PRICING_GRID:
            self._apply_grid_price(template, dims, result)
        else:
            self._apply_rate(template, dims, result)

        billed = self._handlers[template.method](dims, drops)
        result.quantity_used = round(billed, 6)
        result.subtotal = self._round(result.unit_price * billed)
        result.add_trace(
            "Subtotal",
            f"{template.method.value}: {result.unit_price:g} x {result.quantity_used:g}",
            f"{result.subtotal:.2f}",
        )

        if template.lining is not None:
            lining = template.lining
            result.lining_cost = self._round(
                lining.price_per_metre * dims.height_m * dims.quantity
                + lining.labour_per_item * dims.quantity
            )
            result.add_trace(
                "Lining",
                f"{lining.name}: {lining.price_per_metre:g}/m x {dims.height_m:g}m + {lining.labour_per_item:g} labour, x {dims.quantity}",
                f"{result.lining_cost:.2f}",
            )

        result.waste_adjusted_total = self._round(
            (result.subtotal + result.lining_cost) * (1 + template.waste_percent / 100.0)
        )
        result.add_trace("Waste", f"+{template.waste_percent:g}%", f"{result.waste_adjusted_total:.2f}")

        logger.debug("Priced %s: %s", template.name, result.waste_adjusted_total)
        return result

    def _apply_rate(self, template: PricingTemplate, dims: OrderDimensions, result: PriceResult):
        if dims.heading_id and dims.heading_id not in template.heading_overrides:
            result.add_warning(f"Heading '{dims.heading_id}' has no override on template '{template.name}'")

        resolved = resolve_rate_detail(
            template,
            height=dims.finished_height,
            hand_finished=dims.hand_finished,
            heading_id=dims.heading_id,
        )
        result.unit_price = resolved.rate
        result.rate_source = resolved.source
        result.add_trace("Rate Resolution", f"Using {resolved.detail}", f"{resolved.rate:g}")

    def _apply_grid_price(self, template: PricingTemplate, dims: OrderDimensions, result: PriceResult):
        if dims.hand_finished and not template.hand_finished_available:
            raise ConfigurationError(
                f"Template '{template.name}': hand-finished requested but the grid has no hand-finished pricing"
            )

        clamp = self.settings.grid_out_of_range == 'clamp'
        cell = lookup_cell(template.grid, dims.finished_width, dims.finished_height, clamp=clamp)
        result.unit_price = cell.price
        result.rate_source = 'grid'
        width_label = template.grid.width_ranges[cell.width_index].label
        drop_label = template.grid.drop_ranges[cell.drop_index].label
        result.add_trace("Grid Lookup", f"width {width_label} x drop {drop_label}", f"{cell.price:g}")
        if cell.clamped:
            result.add_warning(
                f"{dims.finished_width:g} x {dims.finished_height:g}cm is outside the grid; "
                f"priced at the nearest bucket"
            )

    def quote(self, templates: Mapping[str, PricingTemplate], lines: list[QuoteLine]) -> Quote:
        """Price several lines. Any failing line aborts the whole quote."""
        quote = Quote()
        for line in lines:
            template = templates.get(line.template_id)
            if template is None:
                raise ConfigurationError(f"Unknown template '{line.template_id}'")
            result = self.compute_price(template, line.dimensions)
            quote.lines.append((line, result))
            quote.total += result.waste_adjusted_total
        quote.total = self._round(quote.total)
        return quote


def compute_price(template: PricingTemplate, dims: OrderDimensions, settings: Optional[Settings] = None) -> PriceResult:
    return PricingEngine(settings).compute_price(template, dims)
