import pytest

from template_pricing.engine.errors import ConfigurationError
from template_pricing.engine.fabric import (
    calculate_drops,
    drops_for,
    fabric_usage,
    required_fabric_width,
    roll_width_for,
)
from template_pricing.engine.models import (
    Allowances,
    FabricOrientation,
    FabricWidthType,
    OrderDimensions,
    PricingMethod,
    PricingTemplate,
    Rate,
)


def make_template(**kwargs):
    kwargs.setdefault('name', 'Drop test')
    kwargs.setdefault('method', PricingMethod.PER_DROP)
    kwargs.setdefault('base_rate', Rate(machine=30))
    return PricingTemplate(**kwargs)


def test_documented_drop_example():
    """ceil(300 / 137) == 3."""
    assert calculate_drops(300, 137, 1) == 3


def test_documented_example_via_template_width(settings):
    template = make_template(fabric_width_cm=137)
    assert drops_for(template, OrderDimensions(300, 200), settings) == 3


def test_minimum_one_drop():
    assert calculate_drops(10, 280) == 1
    assert calculate_drops(0.1, 280) == 1


@pytest.mark.parametrize("width", [1, 50, 139.9, 140, 141, 280, 999.5, 5000])
def test_drops_always_at_least_one(width):
    assert calculate_drops(width, 140) >= 1


def test_fullness_multiplies_width():
    # 200 * 2.5 = 500 -> ceil(500 / 140) = 4
    assert calculate_drops(200, 140, 2.5) == 4


def test_exact_multiple_does_not_add_a_drop():
    assert calculate_drops(280, 140) == 2
    assert calculate_drops(140 * 3, 140) == 3


def test_roll_width_from_type(settings):
    assert roll_width_for(make_template(fabric_width_type=FabricWidthType.NARROW), settings) == 140
    assert roll_width_for(make_template(fabric_width_type=FabricWidthType.WIDE), settings) == 280
    assert roll_width_for(make_template(fabric_width_cm=137), settings) == 137


def test_non_positive_roll_width_is_configuration_error(settings):
    with pytest.raises(ConfigurationError):
        roll_width_for(make_template(fabric_width_cm=0), settings)
    with pytest.raises(ConfigurationError):
        calculate_drops(100, 0)


def test_allowances_widen_required_fabric():
    a = Allowances(overlap_cm=10, return_left_cm=8, return_right_cm=8, side_hem_cm=5, panel_count=2)
    # (200 + 10) * 2 + 16 + 5 * 2 * 2 = 456
    assert required_fabric_width(200, 2, a) == 456
    assert calculate_drops(200, 140, 2, a) == 4


def test_fabric_usage_linear_metres(settings):
    template = make_template(
        fabric_width_type=FabricWidthType.NARROW,
        waste_percent=10,
        allowances=Allowances(header_hem_cm=15, bottom_hem_cm=10, seam_hem_cm=4),
    )
    usage = fabric_usage(template, OrderDimensions(200, 250, fullness_ratio=2), settings)

    assert usage.drops == 3            # ceil(400 / 140)
    assert usage.total_drop_cm == 275  # 250 + 15 + 10
    assert usage.seams == 2
    assert usage.seam_allowance_cm == 8
    assert usage.linear_metres == pytest.approx((3 * 275 + 8) / 100)
    assert usage.linear_metres_with_waste == pytest.approx(usage.linear_metres * 1.1)
    assert usage.orientation is FabricOrientation.VERTICAL
    assert usage.pieces == usage.drops


def test_fabric_usage_railroaded(settings):
    template = make_template(
        fabric_width_type=FabricWidthType.NARROW,
        fabric_orientation=FabricOrientation.HORIZONTAL,
        allowances=Allowances(header_hem_cm=15, bottom_hem_cm=10, seam_hem_cm=4),
    )
    usage = fabric_usage(template, OrderDimensions(200, 250, fullness_ratio=2), settings)

    # The 275cm drop needs ceil(275 / 140) = 2 strips, each 400cm long
    assert usage.orientation is FabricOrientation.HORIZONTAL
    assert usage.pieces == 2
    assert usage.drops == 3
    assert usage.seams == 1
    assert usage.seam_allowance_cm == 4
    assert usage.linear_metres == pytest.approx((2 * 400 + 4) / 100)


def test_railroaded_drop_within_roll_width_is_one_strip(settings):
    template = make_template(fabric_orientation=FabricOrientation.HORIZONTAL)
    usage = fabric_usage(template, OrderDimensions(500, 250), settings)

    assert usage.pieces == 1
    assert usage.seams == 0
    assert usage.linear_metres == pytest.approx(5.0)
