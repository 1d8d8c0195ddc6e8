import pytest

from template_pricing.config.settings import Settings
from template_pricing.engine import PricingEngine
from template_pricing.engine.errors import ConfigurationError, RangeLookupError, ValidationError
from template_pricing.engine.grid import parse_grid_csv
from template_pricing.engine.models import (
    FabricOrientation,
    FabricWidthType,
    LiningType,
    OrderDimensions,
    PricingMethod,
    PricingTemplate,
    QuoteLine,
    Rate,
)

GRID_CSV = (
    "Drop/Width,0-100cm,101-150cm,151-200cm\n"
    "0-150cm,120,140,160\n"
    "151-200cm,150,175,200"
)


def rate_template(method, **kwargs):
    kwargs.setdefault('base_rate', Rate(machine=30))
    return PricingTemplate(name=f"{method.value} template", method=method, **kwargs)


def grid_template(**kwargs):
    return PricingTemplate(
        name="Roller",
        method=PricingMethod.PRICING_GRID,
        grid=parse_grid_csv(GRID_CSV),
        **kwargs,
    )


def test_per_metre_bills_height(engine, curtain_template):
    result = engine.compute_price(curtain_template, OrderDimensions(300, 180, quantity=2))
    assert result.unit_price == 24
    assert result.quantity_used == pytest.approx(3.6)
    assert result.subtotal == pytest.approx(86.4)
    assert result.waste_adjusted_total == pytest.approx(86.4)
    assert result.rate_source == 'height_tier'


def test_per_metre_base_rate_exact(engine):
    template = rate_template(PricingMethod.PER_METRE, base_rate=Rate(machine=17.35))
    result = engine.compute_price(template, OrderDimensions(150, 220))
    assert result.unit_price == 17.35


def test_per_drop_uses_drop_count(engine):
    template = rate_template(PricingMethod.PER_DROP, fabric_width_type=FabricWidthType.NARROW)
    # 200 * 2 = 400 -> ceil(400 / 140) = 3 drops
    result = engine.compute_price(template, OrderDimensions(200, 250, fullness_ratio=2, quantity=2))
    assert result.drops == 3
    assert result.quantity_used == 6
    assert result.subtotal == 180


def test_per_panel_ignores_drops(engine):
    template = rate_template(PricingMethod.PER_PANEL, base_rate=Rate(machine=180), fabric_width_type=FabricWidthType.NARROW)
    result = engine.compute_price(template, OrderDimensions(500, 250, fullness_ratio=2.5, quantity=2))
    assert result.subtotal == 360


def test_per_sqm(engine):
    template = rate_template(PricingMethod.PER_SQM, base_rate=Rate(machine=50))
    result = engine.compute_price(template, OrderDimensions(150, 200, quantity=3))
    assert result.quantity_used == pytest.approx(9.0)
    assert result.subtotal == pytest.approx(450)


def test_per_unit(engine):
    template = rate_template(PricingMethod.PER_UNIT, base_rate=Rate(machine=12.5))
    assert engine.compute_price(template, OrderDimensions(100, 100, quantity=4)).subtotal == 50


def test_pricing_grid(engine):
    result = engine.compute_price(grid_template(), OrderDimensions(130, 180, quantity=2))
    assert result.unit_price == 175
    assert result.subtotal == 350
    assert result.rate_source == 'grid'


def test_grid_out_of_range_rejected_by_default(engine):
    with pytest.raises(RangeLookupError):
        engine.compute_price(grid_template(), OrderDimensions(250, 180))


def test_grid_out_of_range_clamped_when_configured(tmp_path):
    settings = Settings(project_root=tmp_path, templates_dir=tmp_path, grid_out_of_range='clamp')
    result = PricingEngine(settings).compute_price(grid_template(), OrderDimensions(250, 180))
    assert result.unit_price == 200
    assert result.warnings


def test_lining_and_waste(engine):
    template = rate_template(
        PricingMethod.PER_PANEL,
        base_rate=Rate(machine=100),
        lining=LiningType("Blackout", price_per_metre=22, labour_per_item=35),
        waste_percent=10,
    )
    result = engine.compute_price(template, OrderDimensions(200, 250, quantity=2))
    # 22 * 2.5 * 2 + 35 * 2 = 180
    assert result.lining_cost == pytest.approx(180)
    assert result.subtotal == 200
    assert result.waste_adjusted_total == pytest.approx(418)


def test_hand_finished_without_hand_rate_is_configuration_error(engine):
    template = rate_template(PricingMethod.PER_METRE, base_rate=Rate(machine=20))
    with pytest.raises(ConfigurationError):
        engine.compute_price(template, OrderDimensions(200, 180, hand_finished=True))


def test_hand_finished_on_template_that_does_not_offer_it(engine):
    template = rate_template(PricingMethod.PER_METRE, base_rate=Rate(machine=20, hand=30), offers_hand_finished=False)
    with pytest.raises(ValidationError):
        engine.compute_price(template, OrderDimensions(200, 180, hand_finished=True))


def test_hand_finished_on_grid_without_hand_pricing(engine):
    with pytest.raises(ConfigurationError):
        engine.compute_price(grid_template(), OrderDimensions(130, 180, hand_finished=True))


def test_invalid_dimensions_rejected(engine, curtain_template):
    with pytest.raises(ValidationError):
        engine.compute_price(curtain_template, OrderDimensions(0, 180))


def test_unknown_heading_warns(engine, curtain_template):
    result = engine.compute_price(curtain_template, OrderDimensions(200, 180, heading_id="wave"))
    assert result.unit_price == 24
    assert any("wave" in w for w in result.warnings)


def test_trace_records_each_step(engine, curtain_template):
    result = engine.compute_price(curtain_template, OrderDimensions(200, 180, heading_id="eyelet"))
    steps = [t.step for t in result.trace]
    assert steps[:4] == ["Dimensions", "Fabric Drops", "Fabric Usage", "Rate Resolution"]
    assert "heading 'eyelet'" in result.get_trace_text()


def test_same_inputs_same_result(engine, curtain_template):
    dims = OrderDimensions(220, 190, fullness_ratio=2, quantity=3)
    assert engine.compute_price(curtain_template, dims).to_dict() == engine.compute_price(curtain_template, dims).to_dict()


def test_quote_totals_lines(engine, curtain_template):
    templates = {"curtain": curtain_template, "roller": grid_template()}
    quote = engine.quote(templates, [
        QuoteLine("curtain", OrderDimensions(300, 180)),
        QuoteLine("roller", OrderDimensions(130, 180)),
    ])
    assert len(quote.lines) == 2
    assert quote.total == pytest.approx(43.2 + 175)


def test_quote_unknown_template(engine):
    with pytest.raises(ConfigurationError):
        engine.quote({}, [QuoteLine("missing", OrderDimensions(100, 100))])


def test_template_requires_rate_or_grid():
    with pytest.raises(ConfigurationError):
        PricingTemplate(name="No rate", method=PricingMethod.PER_DROP)
    with pytest.raises(ConfigurationError):
        PricingTemplate(name="No grid", method=PricingMethod.PRICING_GRID)


def test_result_carries_fabric_usage(engine, curtain_template):
    result = engine.compute_price(curtain_template, OrderDimensions(300, 180, fullness_ratio=2))
    assert result.fabric_usage.drops == result.drops == 3  # ceil(600 / 280)
    assert result.fabric_usage.linear_metres == pytest.approx(3 * 1.8)
    assert result.to_dict()["fabric_usage"]["orientation"] == "vertical"


def test_railroaded_fabric_usage_leaves_drop_billing_alone(engine):
    template = rate_template(PricingMethod.PER_DROP, fabric_orientation=FabricOrientation.HORIZONTAL)
    result = engine.compute_price(template, OrderDimensions(600, 200))
    assert result.drops == 3
    assert result.fabric_usage.pieces == 1
    assert result.fabric_usage.linear_metres == pytest.approx(6.0)
    assert result.subtotal == 90


@pytest.mark.parametrize("dims", [
    OrderDimensions(200, 180, fullness_ratio=None),
    OrderDimensions(200, 180, fullness_ratio=float('nan')),
    OrderDimensions(200, 180, fullness_ratio=float('inf')),
    OrderDimensions(200, 180, fullness_ratio="2"),
    OrderDimensions(200, 180, hand_finished="yes"),
    OrderDimensions(200, 180, hand_finished=None),
])
def test_malformed_direct_dimensions_are_validation_errors(engine, curtain_template, dims):
    with pytest.raises(ValidationError):
        engine.compute_price(curtain_template, dims)
