from __future__ import annotations

import csv
from dataclasses import asdict, fields
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable

from hourbook.logging import get_logger

from .compiler import ReportRow

logger = get_logger(__name__)

FIELDNAMES = [item.name for item in fields(ReportRow)]


def _stringify(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    return str(value)


def export_csv(rows: Iterable[ReportRow], output_path: Path) -> Path:
    """Write report rows as CSV with a header line, even when there are no rows."""

    rows = list(rows)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=FIELDNAMES)
        writer.writeheader()
        for row in rows:
            writer.writerow({key: _stringify(value) for key, value in asdict(row).items()})
    logger.info("report_exported", path=str(output_path), rows=len(rows))
    return output_path
