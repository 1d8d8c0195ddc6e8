import pytest

from template_pricing.engine.errors import ConfigurationError
from template_pricing.engine.models import (
    HeadingOverride,
    HeightTier,
    PricingMethod,
    PricingTemplate,
    Rate,
)
from template_pricing.engine.rate_resolver import resolve_rate, resolve_rate_detail


@pytest.mark.parametrize("height", [1, 50, 180, 250, 999])
def test_base_rate_without_tiers_is_exact(height):
    template = PricingTemplate(name="Plain", method=PricingMethod.PER_METRE, base_rate=Rate(machine=19.95))
    assert resolve_rate(template, height) == 19.95


def test_tier_beats_base(curtain_template):
    """height 180, machine: tier 1-200 rate 24 wins over base 20."""
    assert resolve_rate(curtain_template, 180) == 24


def test_tier_boundary_is_inclusive(curtain_template):
    assert resolve_rate(curtain_template, 200) == 24
    assert resolve_rate(curtain_template, 201) == 30


def test_height_outside_tiers_uses_base(curtain_template):
    assert resolve_rate(curtain_template, 300) == 20
    detail = resolve_rate_detail(curtain_template, 300)
    assert detail.source == 'base'


def test_gap_between_tiers_uses_base():
    template = PricingTemplate(
        name="Gappy",
        method=PricingMethod.PER_METRE,
        base_rate=Rate(machine=20),
        height_tiers=(HeightTier(1, 150, 22), HeightTier(200, 250, 30)),
    )
    assert resolve_rate(template, 175) == 20


@pytest.mark.parametrize("height", [100, 180, 200, 230])
def test_heading_override_beats_matching_tier(curtain_template, height):
    detail = resolve_rate_detail(curtain_template, height, heading_id="eyelet")
    assert detail.rate == 28
    assert detail.source == 'heading'


def test_unknown_heading_falls_through(curtain_template):
    assert resolve_rate(curtain_template, 180, heading_id="wave") == 24


def test_override_without_requested_mode_falls_through():
    template = PricingTemplate(
        name="Machine-only override",
        method=PricingMethod.PER_METRE,
        base_rate=Rate(machine=20, hand=35),
        height_tiers=(HeightTier(1, 200, 24, hand_rate=38),),
        heading_overrides={"pinch": HeadingOverride(machine_rate=26)},
    )
    assert resolve_rate(template, 150, hand_finished=True, heading_id="pinch") == 38
    assert resolve_rate(template, 150, hand_finished=False, heading_id="pinch") == 26


def test_hand_rate_from_base_when_tier_has_none(curtain_template):
    # Tiers in the fixture carry no hand rate
    detail = resolve_rate_detail(curtain_template, 180, hand_finished=True)
    assert detail.rate == 35
    assert detail.source == 'base'


def test_hand_rate_from_heading(curtain_template):
    assert resolve_rate(curtain_template, 180, hand_finished=True, heading_id="eyelet") == 40


def test_hand_without_any_hand_rate_is_configuration_error():
    """Never silently fall back to the machine rate."""
    template = PricingTemplate(
        name="Machine only",
        method=PricingMethod.PER_METRE,
        base_rate=Rate(machine=20),
        height_tiers=(HeightTier(1, 200, 24),),
    )
    with pytest.raises(ConfigurationError):
        resolve_rate(template, 180, hand_finished=True)
