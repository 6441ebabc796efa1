"""
Session log export (CSV / JSON) and report identifiers.
"""

from __future__ import annotations

import csv
import io
import json
import random
from datetime import datetime
from typing import Optional, Sequence

from models.log_event import LogEvent

EXPORT_FIELDS = ["id", "time", "category", "confidence", "source"]
EXPORT_FORMATS = ("csv", "json")


def _row(event: LogEvent) -> dict:
    return {
        "id": event.id,
        "time": event.time_label,
        "category": event.category,
        "confidence": round(event.confidence, 4),
        "source": event.source,
    }


def export_csv(events: Sequence[LogEvent]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_FIELDS, lineterminator="\n")
    writer.writeheader()
    for event in events:
        writer.writerow(_row(event))
    return buffer.getvalue()


def export_json(events: Sequence[LogEvent], report_id: Optional[str] = None) -> str:
    payload = {
        "report_id": report_id or make_report_id(),
        "generated_at": datetime.now().isoformat(),
        "events": [_row(e) for e in events],
    }
    return json.dumps(payload, indent=2)


def export_events(events: Sequence[LogEvent], fmt: str) -> str:
    """Export in `fmt` ('csv' or 'json'). Raises ValueError for anything else."""
    if fmt == "csv":
        return export_csv(events)
    if fmt == "json":
        return export_json(events)
    raise ValueError(f"Unsupported export format '{fmt}'. Expected one of {EXPORT_FORMATS}")


def make_report_id(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"NE-{now.year}-{random.randint(0, 9999)}"
