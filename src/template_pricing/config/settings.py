"""
Centralized settings and path configuration for the pricing engine.

Every field can be overridden from the environment with the
TEMPLATE_PRICING_ prefix, e.g. TEMPLATE_PRICING_GRID_OUT_OF_RANGE=clamp.
"""
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


ENV_PREFIX = "TEMPLATE_PRICING_"


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


class Settings(BaseSettings):
    """Application settings with sensible defaults."""

    # ── Project paths ────────────────────────────────────
    project_root: Path = Field(default_factory=get_project_root)
    templates_dir: Optional[Path] = None  # defaults to <project_root>/templates

    # ── Fabric roll widths (cm) ──────────────────────────
    narrow_fabric_width_cm: float = Field(140.0, gt=0)
    wide_fabric_width_cm: float = Field(280.0, gt=0)

    # ── Pricing ──────────────────────────────────────────
    default_waste_percent: float = Field(0.0, ge=0)  # applied when a template omits waste_percent
    grid_out_of_range: Literal['reject', 'clamp'] = 'reject'
    price_decimals: int = Field(2, ge=0)

    # ── Grid uploads ─────────────────────────────────────
    grid_parse_workers: int = Field(2, ge=1)

    # ── Logging ──────────────────────────────────────────
    log_level: str = 'INFO'

    model_config = {
        "env_prefix": ENV_PREFIX,
        "case_sensitive": False,
    }

    @field_validator('grid_out_of_range', 'log_level', mode='before')
    @classmethod
    def _normalise_case(cls, value, info):
        if not isinstance(value, str):
            return value
        value = value.strip()
        return value.lower() if info.field_name == 'grid_out_of_range' else value.upper()

    @model_validator(mode='after')
    def _default_templates_dir(self) -> 'Settings':
        if self.templates_dir is None:
            self.templates_dir = self.project_root / 'templates'
        return self

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and TEMPLATE_PRICING_* variables."""
        if project_root is None:
            return cls()
        return cls(project_root=Path(project_root))


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings():
    """Drop the cached instance so the next get_settings() reloads."""
    global _settings
    _settings = None
