from .aggregation import (
    BillingSummary,
    SummaryCache,
    aggregate_by_customer,
    aggregate_by_project,
    percentage_of,
    summarize,
)
from .compiler import ReportDocument, compile_report, compile_report_async, period_label, report_filename
from .email_template import EmailTemplate, compile_email
from .filters import TimeframeSpec, TimeframeType, available_months, filter_entries
from .rates import resolve_amount
from .titles import TitleTemplate, UnknownTokenPolicy

__all__ = [
    "BillingSummary",
    "EmailTemplate",
    "ReportDocument",
    "SummaryCache",
    "TimeframeSpec",
    "TimeframeType",
    "TitleTemplate",
    "UnknownTokenPolicy",
    "aggregate_by_customer",
    "aggregate_by_project",
    "available_months",
    "compile_email",
    "compile_report",
    "compile_report_async",
    "filter_entries",
    "percentage_of",
    "period_label",
    "report_filename",
    "resolve_amount",
    "summarize",
]
