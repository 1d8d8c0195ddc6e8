"""
Rate Resolver - effective per-unit rate for a template and order.

Precedence (highest first):
1. Heading override for the requested mode (machine/hand)
2. First height tier containing the finished height, for the requested mode
3. Base rate for the requested mode

A hand-finished request with no hand rate anywhere in that chain is a
template fault and raises ConfigurationError. It never falls back to the
machine rate.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError
from .models import HeightTier, PricingTemplate
from .range_resolver import OrderedRange, resolve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedRate:
    """A rate plus where in the precedence chain it came from."""
    rate: float
    source: str  # "heading", "height_tier" or "base"
    detail: str


def tier_ranges(tiers: tuple[HeightTier, ...]) -> list[OrderedRange[HeightTier]]:
    return [OrderedRange(t.min_height, t.max_height, t) for t in tiers]


def resolve_rate_detail(
    template: PricingTemplate,
    height: float,
    hand_finished: bool = False,
    heading_id: Optional[str] = None,
) -> ResolvedRate:
    """Resolve the effective rate and report which level supplied it."""
    mode = 'hand' if hand_finished else 'machine'

    if heading_id:
        override = template.heading_overrides.get(heading_id)
        if override is not None:
            rate = override.for_mode(hand_finished)
            if rate is not None:
                logger.debug("Template %s: %s rate %s from heading %s", template.name, mode, rate, heading_id)
                return ResolvedRate(rate, 'heading', f"heading '{heading_id}' {mode} rate")
            logger.debug("Heading %s has no %s rate, falling through", heading_id, mode)

    matched = resolve(tier_ranges(template.height_tiers), height)
    if matched is not None:
        tier = matched.value
        rate = tier.for_mode(hand_finished)
        if rate is not None:
            logger.debug("Template %s: %s rate %s from tier %g-%g", template.name, mode, rate,
                         tier.min_height, tier.max_height)
            return ResolvedRate(rate, 'height_tier', f"height tier {tier.min_height:g}-{tier.max_height:g}cm {mode} rate")
        logger.debug("Tier %g-%g has no %s rate, falling through", tier.min_height, tier.max_height, mode)

    if template.base_rate is None:
        raise ConfigurationError(f"Template '{template.name}' has no base rate")

    rate = template.base_rate.for_mode(hand_finished)
    if rate is None:
        raise ConfigurationError(
            f"Template '{template.name}': hand-finished requested but no hand rate is defined "
            f"for this heading, height tier or the base rate"
        )
    return ResolvedRate(rate, 'base', f"base {mode} rate")


def resolve_rate(
    template: PricingTemplate,
    height: float,
    hand_finished: bool = False,
    heading_id: Optional[str] = None,
) -> float:
    return resolve_rate_detail(template, height, hand_finished, heading_id).rate
