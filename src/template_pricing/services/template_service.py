"""
Template Service - loads merchant templates into validated PricingTemplate objects.

Templates arrive as loosely-typed blobs (JSON from the settings screens).
Defaults are applied here, once, at load time; the engine never guesses a
missing value.
"""
import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..config.settings import Settings, get_settings
from ..engine.dimensions import parse_flag
from ..engine.errors import ConfigurationError, ParseError, ValidationError
from ..engine.grid import grid_from_dict, parse_grid_csv
from ..engine.models import (
    Allowances,
    FabricOrientation,
    FabricWidthType,
    HeadingOverride,
    HeightTier,
    LiningType,
    PricingMethod,
    PricingTemplate,
    Rate,
)

logger = logging.getLogger(__name__)

# Spellings used by older settings screens
METHOD_ALIASES = {
    'per_metre': PricingMethod.PER_METRE,
    'per_meter': PricingMethod.PER_METRE,
    'per_linear_meter': PricingMethod.PER_METRE,
    'per_linear_metre': PricingMethod.PER_METRE,
    'per_running_metre': PricingMethod.PER_METRE,
    'per_drop': PricingMethod.PER_DROP,
    'per_panel': PricingMethod.PER_PANEL,
    'per_curtain': PricingMethod.PER_PANEL,
    'per_sqm': PricingMethod.PER_SQM,
    'per_square_meter': PricingMethod.PER_SQM,
    'per_square_metre': PricingMethod.PER_SQM,
    'per_unit': PricingMethod.PER_UNIT,
    'fixed': PricingMethod.PER_UNIT,
    'pricing_grid': PricingMethod.PRICING_GRID,
    'grid': PricingMethod.PRICING_GRID,
}

ALLOWANCE_FIELDS = (
    'overlap_cm', 'return_left_cm', 'return_right_cm', 'side_hem_cm',
    'header_hem_cm', 'bottom_hem_cm', 'seam_hem_cm', 'pooling_cm',
)

ORIENTATION_ALIASES = {
    'vertical': FabricOrientation.VERTICAL,
    'standard': FabricOrientation.VERTICAL,
    'horizontal': FabricOrientation.HORIZONTAL,
    'railroaded': FabricOrientation.HORIZONTAL,
    'railroad': FabricOrientation.HORIZONTAL,
}


@dataclass
class ValidationResult:
    """Result of template validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _number(value: Any, name: str, required: bool = True, minimum: Optional[float] = 0.0) -> Optional[float]:
    if value is None or (isinstance(value, str) and value.strip() == ''):
        if required:
            raise ConfigurationError(f"{name} is required")
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ConfigurationError(f"{name} must be finite")
    if minimum is not None and number < minimum:
        raise ConfigurationError(f"{name} must be at least {minimum:g}, got {number:g}")
    return number


def parse_method(value: Any) -> PricingMethod:
    key = str(value or '').strip().lower().replace('-', '_').replace(' ', '_')
    if key not in METHOD_ALIASES:
        raise ConfigurationError(f"Unknown pricing method {value!r}")
    return METHOD_ALIASES[key]


def _parse_rate(value: Any) -> Optional[Rate]:
    if value is None:
        return None
    if not isinstance(value, dict):
        return Rate(machine=_number(value, 'base_rate'))
    return Rate(
        machine=_number(value.get('machine'), 'base_rate.machine'),
        hand=_number(value.get('hand'), 'base_rate.hand', required=False),
    )


def _parse_tiers(items: Any) -> tuple[HeightTier, ...]:
    if not items:
        return ()
    if not isinstance(items, list):
        raise ConfigurationError("height_tiers must be a list")
    tiers = []
    for i, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ConfigurationError(f"height_tiers[{i}] must be an object")
        low = _number(item.get('min_height'), f"height_tiers[{i}].min_height")
        high = _number(item.get('max_height'), f"height_tiers[{i}].max_height")
        if low > high:
            raise ConfigurationError(f"height_tiers[{i}] has min_height above max_height")
        tiers.append(HeightTier(
            min_height=low,
            max_height=high,
            machine_rate=_number(item.get('machine_rate', item.get('price')), f"height_tiers[{i}].machine_rate"),
            hand_rate=_number(item.get('hand_rate'), f"height_tiers[{i}].hand_rate", required=False),
        ))
    return tuple(tiers)


def _parse_overrides(items: Any) -> dict[str, HeadingOverride]:
    if not items:
        return {}
    if not isinstance(items, dict):
        raise ConfigurationError("heading_overrides must map heading ids to rates")
    overrides = {}
    for heading_id, item in items.items():
        if not isinstance(item, dict):
            raise ConfigurationError(f"heading_overrides[{heading_id!r}] must be an object")
        overrides[str(heading_id)] = HeadingOverride(
            machine_rate=_number(item.get('machine_rate'), f"heading_overrides[{heading_id}].machine_rate", required=False),
            hand_rate=_number(item.get('hand_rate'), f"heading_overrides[{heading_id}].hand_rate", required=False),
        )
    return overrides


def _parse_lining(item: Any) -> Optional[LiningType]:
    if not item:
        return None
    if not isinstance(item, dict):
        raise ConfigurationError("lining must be an object")
    return LiningType(
        name=str(item.get('name') or item.get('type') or 'Lining'),
        price_per_metre=_number(item.get('price_per_metre'), 'lining.price_per_metre'),
        labour_per_item=_number(item.get('labour_per_item', item.get('labour_per_curtain')), 'lining.labour_per_item',
                                required=False) or 0.0,
    )


def _parse_allowances(item: Any) -> Allowances:
    if not item:
        return Allowances()
    if not isinstance(item, dict):
        raise ConfigurationError("allowances must be an object")
    values = {
        name: _number(item.get(name), f"allowances.{name}", required=False) or 0.0
        for name in ALLOWANCE_FIELDS
    }
    panel_count = item.get('panel_count', 1)
    if panel_count not in (1, 2):
        raise ConfigurationError(f"allowances.panel_count must be 1 or 2, got {panel_count!r}")
    return Allowances(panel_count=panel_count, **values)


def _parse_grid(blob: dict):
    if blob.get('grid_csv'):
        try:
            return parse_grid_csv(blob['grid_csv'])
        except ParseError as e:
            raise ConfigurationError(f"grid_csv: {e}") from None
    if blob.get('grid'):
        return grid_from_dict(blob['grid'])
    return None


def _parse_offers_hand(value: Any) -> Optional[bool]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return parse_flag(value, 'offers_hand_finished')
    except ValidationError as e:
        raise ConfigurationError(str(e)) from None


def _parse_orientation(value: Any) -> FabricOrientation:
    if value is None or value == '':
        return FabricOrientation.VERTICAL
    key = str(value).strip().lower()
    if key not in ORIENTATION_ALIASES:
        raise ConfigurationError(f"fabric_orientation must be 'vertical' or 'horizontal', got {value!r}")
    return ORIENTATION_ALIASES[key]


def load_template(blob: dict, settings: Optional[Settings] = None) -> PricingTemplate:
    """
    Build a PricingTemplate from a loosely-typed blob.

    Raises ConfigurationError naming the first bad field.
    """
    if not isinstance(blob, dict):
        raise ConfigurationError("Template must be an object")
    settings = settings or get_settings()

    name = str(blob.get('name') or blob.get('id') or 'Untitled template')
    method = parse_method(blob.get('method'))

    width_type = blob.get('fabric_width_type') or FabricWidthType.WIDE.value
    try:
        fabric_width_type = FabricWidthType(str(width_type).lower())
    except ValueError:
        raise ConfigurationError(f"fabric_width_type must be 'narrow' or 'wide', got {width_type!r}") from None

    waste = blob.get('waste_percent')

    template = PricingTemplate(
        template_id=str(blob['id']) if blob.get('id') is not None else None,
        name=name,
        method=method,
        base_rate=_parse_rate(blob.get('base_rate')),
        height_tiers=_parse_tiers(blob.get('height_tiers')),
        heading_overrides=_parse_overrides(blob.get('heading_overrides')),
        fabric_width_type=fabric_width_type,
        fabric_width_cm=_number(blob.get('fabric_width_cm'), 'fabric_width_cm', required=False, minimum=None),
        fabric_orientation=_parse_orientation(blob.get('fabric_orientation', blob.get('orientation'))),
        grid=_parse_grid(blob),
        lining=_parse_lining(blob.get('lining')),
        waste_percent=settings.default_waste_percent if waste is None else _number(waste, 'waste_percent'),
        allowances=_parse_allowances(blob.get('allowances')),
        offers_hand_finished=_parse_offers_hand(blob.get('offers_hand_finished')),
    )
    if template.fabric_width_cm is not None and template.fabric_width_cm <= 0:
        raise ConfigurationError("fabric_width_cm must be greater than 0")
    logger.debug("Loaded template %s (%s)", template.name, template.method.value)
    return template


def validate_template(template: PricingTemplate) -> ValidationResult:
    """
    Check a loaded template for problems the engine would only hit at quote time.

    Overlapping height tiers are a warning: the earlier tier wins, which a
    merchant may intend. Gaps are a warning too; heights in a gap use the
    base rate.
    """
    result = ValidationResult(valid=True)

    # Heights outside every tier fall back to the base rate, so it needs a hand rate too
    if template.offers_hand_finished and template.method.uses_rates and template.base_rate.hand is None:
        result.errors.append("Hand-finished is offered but the base rate has no hand rate")
        result.valid = False

    tiers = template.height_tiers
    for i, a in enumerate(tiers):
        for b in tiers[i + 1:]:
            if a.min_height <= b.max_height and b.min_height <= a.max_height:
                result.warnings.append(
                    f"Height tiers {a.min_height:g}-{a.max_height:g} and {b.min_height:g}-{b.max_height:g} overlap; "
                    f"the earlier tier wins"
                )

    ordered = sorted(tiers, key=lambda t: t.min_height)
    reach = ordered[0].max_height if ordered else None
    for tier in ordered[1:]:
        # Whole-centimetre neighbours such as 1-200 then 201-250 count as contiguous
        whole_cm_neighbour = float(reach).is_integer() and tier.min_height == reach + 1
        if tier.min_height > reach and not whole_cm_neighbour:
            result.warnings.append(
                f"Gap between height tiers at {reach:g}-{tier.min_height:g}cm uses the base rate"
            )
        reach = max(reach, tier.max_height)

    for heading_id, override in template.heading_overrides.items():
        if override.machine_rate is None and override.hand_rate is None:
            result.warnings.append(f"Heading override '{heading_id}' sets no rate")

    if template.method is PricingMethod.PRICING_GRID and (template.height_tiers or template.heading_overrides):
        result.warnings.append("Height tiers and heading overrides are ignored by pricing_grid templates")

    return result


class TemplateStore:
    """Read-only set of templates loaded from JSON files in a directory."""

    def __init__(self, templates_dir: Optional[Path] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.templates_dir = templates_dir or self.settings.templates_dir
        self.templates: dict[str, PricingTemplate] = {}
        self.errors: dict[str, str] = {}
        self.reload()

    def reload(self):
        """Load every *.json template. A bad file is reported, not fatal."""
        self.templates = {}
        self.errors = {}
        if not self.templates_dir or not Path(self.templates_dir).exists():
            return
        for path in sorted(Path(self.templates_dir).glob('*.json')):
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    blob = json.load(f)
                if isinstance(blob, dict) and not blob.get('id'):
                    blob['id'] = path.stem
                template = load_template(blob, self.settings)
            except (json.JSONDecodeError, ConfigurationError) as e:
                logger.warning("Skipping template %s: %s", path.name, e)
                self.errors[path.name] = str(e)
                continue
            self.templates[template.template_id] = template
        logger.info("Loaded %d templates from %s", len(self.templates), self.templates_dir)

    def get_template(self, template_id: str) -> Optional[PricingTemplate]:
        return self.templates.get(template_id)

    def list_templates(self) -> list[PricingTemplate]:
        return list(self.templates.values())
