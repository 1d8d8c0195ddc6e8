"""
Fabric Drop Calculator - how many fabric widths ("drops") make one covering.

    required_width = (finished_width + overlap) * fullness
                     + returns + side_hem * 2 * panel_count
    drops = max(1, ceil(required_width / roll_width))

With default allowances this reduces to ceil(finished_width * fullness / roll_width).
"""
import math
from typing import Optional

from ..config.settings import Settings, get_settings
from .errors import ConfigurationError
from .models import (
    Allowances,
    FabricOrientation,
    FabricUsage,
    FabricWidthType,
    OrderDimensions,
    PricingTemplate,
)


def roll_width_for(template: PricingTemplate, settings: Optional[Settings] = None) -> float:
    """Roll width for a template: explicit fabric_width_cm wins over the width type."""
    if template.fabric_width_cm is not None:
        if template.fabric_width_cm <= 0:
            raise ConfigurationError(f"Template '{template.name}' has a non-positive fabric width")
        return float(template.fabric_width_cm)
    settings = settings or get_settings()
    if template.fabric_width_type is FabricWidthType.NARROW:
        return settings.narrow_fabric_width_cm
    return settings.wide_fabric_width_cm


def required_fabric_width(
    finished_width: float,
    fullness_ratio: float = 1.0,
    allowances: Optional[Allowances] = None,
) -> float:
    a = allowances or Allowances()
    return (
        (finished_width + a.overlap_cm) * fullness_ratio
        + a.return_left_cm + a.return_right_cm
        + a.side_hem_cm * 2 * a.panel_count
    )


def calculate_drops(
    finished_width: float,
    roll_width: float,
    fullness_ratio: float = 1.0,
    allowances: Optional[Allowances] = None,
) -> int:
    """Number of fabric widths required. Never less than 1."""
    if roll_width <= 0:
        raise ConfigurationError(f"Fabric roll width must be positive, got {roll_width:g}")
    required = required_fabric_width(finished_width, fullness_ratio, allowances)
    # Round before ceil so 2.0000000000000004 drops stays 2
    return max(1, math.ceil(round(required / roll_width, 9)))


def drops_for(template: PricingTemplate, dims: OrderDimensions, settings: Optional[Settings] = None) -> int:
    return calculate_drops(
        dims.finished_width,
        roll_width_for(template, settings),
        dims.fullness_ratio,
        template.allowances,
    )


def fabric_usage(
    template: PricingTemplate,
    dims: OrderDimensions,
    settings: Optional[Settings] = None,
) -> FabricUsage:
    """
    Linear metres of fabric for one covering, with and without the template's waste.

    Vertical: drops x total drop, plus a seam allowance per join.
    Horizontal (railroaded): the roll width covers the drop, so the drop is
    split into ceil(total_drop / roll_width) strips, each as long as the
    required width.
    """
    a = template.allowances
    roll_width = roll_width_for(template, settings)
    required = required_fabric_width(dims.finished_width, dims.fullness_ratio, a)
    drops = drops_for(template, dims, settings)
    total_drop = dims.finished_height + a.header_hem_cm + a.bottom_hem_cm + a.pooling_cm

    if template.fabric_orientation is FabricOrientation.HORIZONTAL:
        pieces = max(1, math.ceil(round(total_drop / roll_width, 9)))
        cut_length = required
    else:
        pieces = drops
        cut_length = total_drop

    seams = max(0, pieces - 1)
    seam_allowance = seams * a.seam_hem_cm
    linear_metres = (pieces * cut_length + seam_allowance) / 100.0

    return FabricUsage(
        orientation=template.fabric_orientation,
        drops=drops,
        pieces=pieces,
        required_width_cm=required,
        total_drop_cm=total_drop,
        seams=seams,
        seam_allowance_cm=seam_allowance,
        linear_metres=linear_metres,
        linear_metres_with_waste=linear_metres * (1 + template.waste_percent / 100.0),
    )
