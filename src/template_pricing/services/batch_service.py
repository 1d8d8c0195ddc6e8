"""
Worksheet Pricing - prices a measurement worksheet CSV against one template.

Expected columns (case-insensitive): width, height and optionally fullness,
hand_finished, heading_id, quantity, unit. Rows that fail validation or
pricing carry the error text and no price.
"""
import logging
from pathlib import Path
from typing import IO, Optional, Union

import pandas as pd

from ..engine.dimensions import normalize_dimensions
from ..engine.errors import PricingError
from ..engine.models import PricingTemplate
from ..engine.pricing_engine import PricingEngine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ('width', 'height')
OPTIONAL_COLUMNS = ('fullness', 'hand_finished', 'heading_id', 'quantity', 'unit')
RESULT_COLUMNS = (
    'unit_price', 'quantity_used', 'drops', 'linear_metres', 'lining_cost',
    'subtotal', 'waste_adjusted_total', 'rate_source', 'error',
)


def load_worksheet(source: Union[str, Path, IO]) -> pd.DataFrame:
    """Read a worksheet CSV with every column as text."""
    df = pd.read_csv(source, dtype=str, keep_default_na=False)
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Worksheet is missing required columns: {', '.join(missing)}")
    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()
    return df


def price_worksheet(
    engine: PricingEngine,
    template: PricingTemplate,
    source: Union[str, Path, IO, pd.DataFrame],
) -> pd.DataFrame:
    """Price every worksheet row. Returns the input columns plus the result columns."""
    df = source.copy() if isinstance(source, pd.DataFrame) else load_worksheet(source)

    records = []
    for _, row in df.iterrows():
        out = {c: None for c in RESULT_COLUMNS}
        out['error'] = ''
        try:
            dims = normalize_dimensions(
                width=row.get('width'),
                height=row.get('height'),
                fullness=row.get('fullness') or None,
                hand_finished=row.get('hand_finished') or False,
                heading_id=row.get('heading_id') or None,
                quantity=row.get('quantity') or 1,
                unit=row.get('unit') or 'cm',
            )
            result = engine.compute_price(template, dims)
        except PricingError as e:
            out['error'] = f"{type(e).__name__}: {e}"
        else:
            out.update({
                'unit_price': result.unit_price,
                'quantity_used': result.quantity_used,
                'drops': result.drops,
                'linear_metres': round(result.fabric_usage.linear_metres, 2),
                'lining_cost': result.lining_cost,
                'subtotal': result.subtotal,
                'waste_adjusted_total': result.waste_adjusted_total,
                'rate_source': result.rate_source,
            })
        records.append(out)

    priced = pd.concat([df.reset_index(drop=True), pd.DataFrame(records, columns=list(RESULT_COLUMNS))], axis=1)
    failed = int((priced['error'] != '').sum())
    if failed:
        logger.warning("Worksheet for %s: %d of %d rows failed", template.name, failed, len(priced))
    return priced


def worksheet_total(priced: pd.DataFrame) -> Optional[float]:
    """Sum of waste-adjusted totals, or None if any row failed."""
    if (priced['error'] != '').any():
        return None
    return round(float(priced['waste_adjusted_total'].sum()), 2)
