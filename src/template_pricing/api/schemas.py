"""
Request/response models for the pricing API.
"""
from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class DimensionsIn(BaseModel):
    """Raw order form values; normalised by the engine."""
    width: Union[float, str]
    height: Union[float, str]
    fullness: Optional[Union[float, str]] = None
    hand_finished: Union[bool, str] = False
    heading_id: Optional[str] = None
    quantity: Union[int, str] = 1
    unit: str = "cm"


class PriceRequest(BaseModel):
    template: dict[str, Any]
    dimensions: DimensionsIn


class QuoteLineIn(BaseModel):
    template_id: str
    dimensions: DimensionsIn
    description: str = ""


class QuoteRequest(BaseModel):
    """Templates sent inline override stored templates with the same id."""
    templates: dict[str, dict[str, Any]] = Field(default_factory=dict)
    lines: list[QuoteLineIn]


class QuoteLineOut(BaseModel):
    template_id: str
    description: str
    result: dict[str, Any]


class QuoteResponse(BaseModel):
    lines: list[QuoteLineOut]
    total: float


class GridParseRequest(BaseModel):
    csv: str


class GridLookupRequest(BaseModel):
    csv: str
    width: float
    height: float


class GridLookupResponse(BaseModel):
    price: float
    width_label: str
    drop_label: str
    clamped: bool = False


class TemplateSummary(BaseModel):
    template_id: Optional[str]
    name: str
    method: str
    warnings: list[str]
    errors: list[str]
