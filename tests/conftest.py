import sys
import os
from pathlib import Path

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from template_pricing.config.settings import Settings
from template_pricing.engine import PricingEngine
from template_pricing.engine.models import (
    HeadingOverride,
    HeightTier,
    PricingMethod,
    PricingTemplate,
    Rate,
)


@pytest.fixture
def settings(tmp_path):
    return Settings(project_root=Path(tmp_path), templates_dir=Path(tmp_path) / 'templates')


@pytest.fixture
def engine(settings):
    return PricingEngine(settings)


@pytest.fixture
def curtain_template():
    """per_metre template from the documented tier scenario."""
    return PricingTemplate(
        name="Pencil Pleat",
        method=PricingMethod.PER_METRE,
        base_rate=Rate(machine=20, hand=35),
        height_tiers=(
            HeightTier(1, 200, 24),
            HeightTier(201, 250, 30),
        ),
        heading_overrides={"eyelet": HeadingOverride(machine_rate=28, hand_rate=40)},
    )
