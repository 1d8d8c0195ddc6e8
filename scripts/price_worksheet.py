#!/usr/bin/env python
"""
Price a measurement worksheet CSV against one template.

Usage:
    python scripts/price_worksheet.py templates/curtain_per_metre.json worksheet.csv [out.csv]
"""
import json
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from template_pricing.config.settings import get_settings
from template_pricing.engine import PricingEngine
from template_pricing.logging_config import setup_logging
from template_pricing.services.batch_service import price_worksheet, worksheet_total
from template_pricing.services.template_service import load_template, validate_template


def main():
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)

    settings = get_settings()
    setup_logging(settings.log_level)

    template_path, worksheet_path = Path(sys.argv[1]), Path(sys.argv[2])
    with open(template_path, 'r', encoding='utf-8') as f:
        template = load_template(json.load(f), settings)

    check = validate_template(template)
    for warning in check.warnings:
        print(f"WARNING: {warning}")
    if not check.valid:
        for error in check.errors:
            print(f"ERROR: {error}")
        sys.exit(1)

    priced = price_worksheet(PricingEngine(settings), template, worksheet_path)
    print(priced.to_string(index=False))

    total = worksheet_total(priced)
    print()
    print(f"Total: {total:.2f}" if total is not None else "Total: not available (some rows failed)")

    if len(sys.argv) > 3:
        priced.to_csv(sys.argv[3], index=False)
        print(f"Output: {sys.argv[3]}")


if __name__ == "__main__":
    main()
