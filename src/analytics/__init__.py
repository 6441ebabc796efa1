"""
Analytics over the session event log.
"""

from .export import export_csv, export_events, export_json, make_report_id
from .summary import SessionSummary, activity_timeline, category_distribution, summarize

__all__ = [
    "export_csv",
    "export_events",
    "export_json",
    "make_report_id",
    "SessionSummary",
    "activity_timeline",
    "category_distribution",
    "summarize",
]
