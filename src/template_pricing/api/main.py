from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from ..config.settings import get_settings
from ..engine.dimensions import normalize_dimensions
from ..engine.errors import ConfigurationError, ParseError, PricingError, RangeLookupError, ValidationError
from ..engine.grid import SAMPLE_GRID_CSV, grid_to_dict, lookup_cell
from ..engine.models import QuoteLine
from ..logging_config import setup_logging
from ..services.template_service import load_template, validate_template
from .schemas import (
    DimensionsIn,
    GridLookupRequest,
    GridLookupResponse,
    GridParseRequest,
    PriceRequest,
    QuoteLineOut,
    QuoteRequest,
    QuoteResponse,
    TemplateSummary,
)
from .state import engine, grid_parser, template_store

setup_logging(get_settings().log_level)

app = FastAPI(
    title="Template Pricing API",
    description="Pricing resolution for window-covering quotes",
    version="1.0.0"
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    ValidationError: 422,
    ParseError: 422,
    RangeLookupError: 422,
    ConfigurationError: 409,
}


@app.exception_handler(PricingError)
async def pricing_error_handler(request: Request, exc: PricingError):
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    return JSONResponse(status_code=status, content={"error": type(exc).__name__, "detail": str(exc)})


def _dimensions(d: DimensionsIn):
    return normalize_dimensions(
        width=d.width,
        height=d.height,
        fullness=d.fullness,
        hand_finished=d.hand_finished,
        heading_id=d.heading_id,
        quantity=d.quantity,
        unit=d.unit,
    )


@app.get("/")
async def root():
    return {"status": "online", "message": "Template Pricing API Active"}


@app.post("/price")
async def price(req: PriceRequest):
    template = load_template(req.template, engine.settings)
    result = engine.compute_price(template, _dimensions(req.dimensions))
    return result.to_dict()


@app.post("/quote", response_model=QuoteResponse)
async def quote(req: QuoteRequest):
    templates = dict(template_store.templates)
    for template_id, blob in req.templates.items():
        templates[template_id] = load_template({"id": template_id, **blob}, engine.settings)

    lines = [
        QuoteLine(template_id=line.template_id, dimensions=_dimensions(line.dimensions), description=line.description)
        for line in req.lines
    ]
    result = engine.quote(templates, lines)
    return QuoteResponse(
        lines=[
            QuoteLineOut(template_id=line.template_id, description=line.description, result=priced.to_dict())
            for line, priced in result.lines
        ],
        total=result.total,
    )


@app.get("/templates", response_model=list[TemplateSummary])
async def list_templates():
    summaries = []
    for template in template_store.list_templates():
        check = validate_template(template)
        summaries.append(TemplateSummary(
            template_id=template.template_id,
            name=template.name,
            method=template.method.value,
            warnings=check.warnings,
            errors=check.errors,
        ))
    return summaries


@app.post("/templates/validate", response_model=TemplateSummary)
async def validate(blob: dict):
    template = load_template(blob, engine.settings)
    check = validate_template(template)
    return TemplateSummary(
        template_id=template.template_id,
        name=template.name,
        method=template.method.value,
        warnings=check.warnings,
        errors=check.errors,
    )


@app.get("/grids/sample", response_class=PlainTextResponse)
async def sample_grid():
    return PlainTextResponse(
        SAMPLE_GRID_CSV,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="pricing_grid_sample.csv"'},
    )


@app.post("/grids/parse")
async def parse_grid(req: GridParseRequest):
    grid = await grid_parser.submit(req.csv, name="api-parse").wait()
    return grid_to_dict(grid)


@app.post("/grids/lookup", response_model=GridLookupResponse)
async def grid_lookup(req: GridLookupRequest):
    if req.width <= 0 or req.height <= 0:
        raise HTTPException(status_code=422, detail="width and height must be greater than 0")
    grid = await grid_parser.submit(req.csv, name="api-lookup").wait()
    cell = lookup_cell(grid, req.width, req.height, clamp=engine.settings.grid_out_of_range == "clamp")
    return GridLookupResponse(
        price=cell.price,
        width_label=grid.width_ranges[cell.width_index].label,
        drop_label=grid.drop_ranges[cell.drop_index].label,
        clamped=cell.clamped,
    )


@app.get("/system/status")
async def get_status():
    return {
        "engine_active": True,
        "templates_loaded": len(template_store.templates),
        "template_errors": template_store.errors,
        "grid_out_of_range": engine.settings.grid_out_of_range,
        "grid_parse_workers": engine.settings.grid_parse_workers,
    }
