"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation. Templates
and dimensions are immutable inputs for the duration of one pricing call.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional

from .errors import ConfigurationError


class PricingMethod(str, Enum):
    """Closed set of billing methods a template can use."""
    PER_METRE = "per_metre"
    PER_DROP = "per_drop"
    PER_PANEL = "per_panel"
    PER_SQM = "per_sqm"
    PER_UNIT = "per_unit"
    PRICING_GRID = "pricing_grid"

    @property
    def uses_rates(self) -> bool:
        return self is not PricingMethod.PRICING_GRID


class FabricWidthType(str, Enum):
    NARROW = "narrow"  # 140cm roll
    WIDE = "wide"      # 280cm roll


class FabricOrientation(str, Enum):
    VERTICAL = "vertical"      # drops hang from the roll, joined across the width
    HORIZONTAL = "horizontal"  # railroaded: roll width covers the drop


@dataclass
class TraceStep:
    """A single step in the pricing resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass(frozen=True)
class Rate:
    """Machine rate, plus a hand-finished rate when the template offers one."""
    machine: float
    hand: Optional[float] = None

    def for_mode(self, hand_finished: bool) -> Optional[float]:
        return self.hand if hand_finished else self.machine


@dataclass(frozen=True)
class HeightTier:
    """A height-range-scoped override of the base rate (bounds inclusive, cm)."""
    min_height: float
    max_height: float
    machine_rate: float
    hand_rate: Optional[float] = None

    def for_mode(self, hand_finished: bool) -> Optional[float]:
        return self.hand_rate if hand_finished else self.machine_rate


@dataclass(frozen=True)
class HeadingOverride:
    """Per-heading rate override. Either mode may be left unset."""
    machine_rate: Optional[float] = None
    hand_rate: Optional[float] = None

    def for_mode(self, hand_finished: bool) -> Optional[float]:
        return self.hand_rate if hand_finished else self.machine_rate


@dataclass(frozen=True)
class LiningType:
    name: str
    price_per_metre: float
    labour_per_item: float = 0.0


@dataclass(frozen=True)
class Allowances:
    """
    Construction allowances in centimetres.

    All default to zero so a template without allowances uses the bare
    `finished_width * fullness` formula.
    """
    overlap_cm: float = 0.0
    return_left_cm: float = 0.0
    return_right_cm: float = 0.0
    side_hem_cm: float = 0.0      # per side, per panel
    header_hem_cm: float = 0.0
    bottom_hem_cm: float = 0.0
    seam_hem_cm: float = 0.0      # total per join
    pooling_cm: float = 0.0
    panel_count: int = 1


@dataclass(frozen=True)
class GridAxisRange:
    """
    One bucket on a grid axis.

    `label` is display text only. Lookups use the numeric bounds, which are
    derived once when the grid is parsed.
    """
    label: str
    min: float
    max: float  # float('inf') for an open-ended final bucket

    @property
    def open_ended(self) -> bool:
        return self.max == float('inf')


@dataclass(frozen=True)
class PricingGrid:
    """
    Two-axis discrete price matrix: cells[drop_index][width_index].

    The "drop" axis is indexed by finished height, not by fabric-drop count.
    """
    width_ranges: tuple[GridAxisRange, ...]
    drop_ranges: tuple[GridAxisRange, ...]
    cells: tuple[tuple[float, ...], ...]
    corner_label: str = "Drop/Width"

    def __post_init__(self):
        if not self.width_ranges or not self.drop_ranges:
            raise ConfigurationError("Pricing grid needs at least one width and one drop range")
        if len(self.cells) != len(self.drop_ranges):
            raise ConfigurationError(
                f"Pricing grid has {len(self.cells)} rows for {len(self.drop_ranges)} drop ranges"
            )
        for i, row in enumerate(self.cells):
            if len(row) != len(self.width_ranges):
                raise ConfigurationError(
                    f"Pricing grid row {self.drop_ranges[i].label!r} has {len(row)} cells, "
                    f"expected {len(self.width_ranges)}"
                )

    @property
    def shape(self) -> tuple[int, int]:
        return len(self.drop_ranges), len(self.width_ranges)


@dataclass(frozen=True)
class PricingTemplate:
    """Merchant-authored pricing configuration."""
    name: str
    method: PricingMethod
    base_rate: Optional[Rate] = None
    height_tiers: tuple[HeightTier, ...] = ()
    heading_overrides: dict[str, HeadingOverride] = field(default_factory=dict)
    fabric_width_type: FabricWidthType = FabricWidthType.WIDE
    fabric_width_cm: Optional[float] = None  # overrides fabric_width_type when set
    fabric_orientation: FabricOrientation = FabricOrientation.VERTICAL
    grid: Optional[PricingGrid] = None
    lining: Optional[LiningType] = None
    waste_percent: float = 0.0
    allowances: Allowances = field(default_factory=Allowances)
    offers_hand_finished: Optional[bool] = None
    template_id: Optional[str] = None

    def __post_init__(self):
        if self.method.uses_rates and self.base_rate is None:
            raise ConfigurationError(f"Template '{self.name}' uses {self.method.value} but has no base rate")
        if self.method is PricingMethod.PRICING_GRID and self.grid is None:
            raise ConfigurationError(f"Template '{self.name}' uses pricing_grid but has no grid")
        if self.waste_percent < 0:
            raise ConfigurationError(f"Template '{self.name}' has a negative waste percent")

    @property
    def hand_finished_available(self) -> bool:
        """Explicit flag when set, otherwise whether any hand rate is configured."""
        if self.offers_hand_finished is not None:
            return self.offers_hand_finished
        if self.base_rate and self.base_rate.hand is not None:
            return True
        if any(t.hand_rate is not None for t in self.height_tiers):
            return True
        return any(o.hand_rate is not None for o in self.heading_overrides.values())


@dataclass(frozen=True)
class OrderDimensions:
    """A single quoted line item's physical inputs, lengths in centimetres."""
    finished_width: float
    finished_height: float
    fullness_ratio: float = 1.0
    hand_finished: bool = False
    heading_id: Optional[str] = None
    quantity: int = 1

    @property
    def height_m(self) -> float:
        return self.finished_height / 100.0


@dataclass(frozen=True)
class FabricUsage:
    """Fabric needed for one covering, cm unless noted."""
    orientation: FabricOrientation
    drops: int
    pieces: int  # cut lengths: drops when vertical, horizontal strips when railroaded
    required_width_cm: float
    total_drop_cm: float
    seams: int
    seam_allowance_cm: float
    linear_metres: float
    linear_metres_with_waste: float

    def to_dict(self) -> dict:
        data = asdict(self)
        data["orientation"] = self.orientation.value
        return data


@dataclass
class PriceResult:
    """Output of one pricing call. Not persisted by the engine."""
    method: PricingMethod
    unit_price: float
    quantity_used: float  # billed units: metres, drops, panels, sqm or items
    lining_cost: float
    subtotal: float
    waste_adjusted_total: float
    drops: int = 0
    rate_source: str = ""
    fabric_usage: Optional[FabricUsage] = None
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace for this result."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        if warning not in self.warnings:
            self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "method": self.method.value,
            "unit_price": self.unit_price,
            "quantity_used": self.quantity_used,
            "lining_cost": self.lining_cost,
            "subtotal": self.subtotal,
            "waste_adjusted_total": self.waste_adjusted_total,
            "drops": self.drops,
            "rate_source": self.rate_source,
            "fabric_usage": self.fabric_usage.to_dict() if self.fabric_usage else None,
            "warnings": list(self.warnings),
            "trace": [
                {"step": t.step, "description": t.description, "value": t.value}
                for t in self.trace
            ],
        }


@dataclass(frozen=True)
class QuoteLine:
    template_id: str
    dimensions: OrderDimensions
    description: str = ""


@dataclass
class Quote:
    """Several priced lines and their combined total."""
    lines: list[tuple[QuoteLine, PriceResult]] = field(default_factory=list)
    total: float = 0.0
