from __future__ import annotations

import asyncio
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from hourbook.config import Settings, get_settings
from hourbook.logging import get_logger
from hourbook.models import BusinessIdentity, Customer

from .aggregation import BillingSummary, ProjectAggregate
from .filters import TimeframeSpec, TimeframeType, quarter_of
from .rates import hours_for, round_money
from .titles import UnknownTokenPolicy, resolve_title

logger = get_logger(__name__)

NOT_AVAILABLE = "N/A"
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
CONFIRMATION_TEXT = "I hereby confirm the accuracy of the hours listed above:"


def format_money(value: Decimal, currency: str) -> str:
    return f"{round_money(value):,.2f} {currency}"


def format_hours(value: Decimal) -> str:
    return f"{round_money(value):.2f} h"


def month_label(year: int, month: int, month_names: Sequence[str] = MONTH_NAMES) -> str:
    return f"{month_names[month - 1]} {year}"


def period_label(spec: TimeframeSpec, date_format: str = "%d.%m.%Y", month_names: Sequence[str] = MONTH_NAMES) -> str:
    if spec.type == TimeframeType.CUSTOM:
        if spec.has_range:
            return f"{spec.start_date.strftime(date_format)} - {spec.end_date.strftime(date_format)}"
        return "All time"
    year, month = spec.year_and_month
    if spec.type == TimeframeType.YEAR:
        return str(year)
    if spec.type == TimeframeType.QUARTER:
        return f"Q{quarter_of(month)} {year}"
    return month_label(year, month, month_names)


@dataclass(frozen=True)
class HeaderBlock:
    name: str
    lines: Tuple[str, ...]
    logo_path: Optional[str] = None


@dataclass(frozen=True)
class CustomerBlock:
    name: str
    contact_person: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class SummaryBlock:
    total_hours: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class ReportRow:
    customer: str
    project: str
    hours: Decimal
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class SignatureLine:
    place_label: str
    signer_label: str


@dataclass(frozen=True)
class SignatureBlock:
    statement: str = CONFIRMATION_TEXT
    lines: Tuple[SignatureLine, ...] = (
        SignatureLine("Place, date", "Signature contractor"),
        SignatureLine("Place, date", "Signature client"),
    )


@dataclass(frozen=True)
class FooterBlock:
    tax_line: Optional[str] = None


@dataclass(frozen=True)
class PageLayout:
    """Vertical layout of the itemized table, in millimetres on an A4 page."""

    first_page_top: float = 113.0
    customer_block_height: float = 23.0
    page_top: float = 20.0
    printable_bottom: float = 260.0
    row_height: float = 6.0

    def paginate(self, rows: Sequence[ReportRow], with_customer: bool = False) -> Tuple[Tuple[ReportRow, ...], ...]:
        pages: List[Tuple[ReportRow, ...]] = []
        current: List[ReportRow] = []
        y = self.first_page_top + (self.customer_block_height if with_customer else 0)
        for row in rows:
            if y > self.printable_bottom:
                pages.append(tuple(current))
                current = []
                y = self.page_top
            current.append(row)
            y += self.row_height
        pages.append(tuple(current))
        return tuple(pages)


DEFAULT_LAYOUT = PageLayout()


@dataclass(frozen=True)
class ReportDocument:
    header: HeaderBlock
    title: str
    period_label: str
    summary: SummaryBlock
    rows: Tuple[ReportRow, ...]
    pages: Tuple[Tuple[ReportRow, ...], ...]
    currency: str
    customer: Optional[CustomerBlock] = None
    signature: SignatureBlock = field(default_factory=SignatureBlock)
    footer: FooterBlock = field(default_factory=FooterBlock)
    generated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Plain payload for renderers and transports (decimals as strings)."""

        return _plain(asdict(self))


def _plain(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def build_header(identity: Optional[BusinessIdentity]) -> HeaderBlock:
    if identity is None:
        return HeaderBlock(name=NOT_AVAILABLE, lines=())
    city_line = " ".join(part for part in (identity.zip_code, identity.city) if part)
    lines = [
        identity.address or NOT_AVAILABLE,
        city_line or NOT_AVAILABLE,
        identity.country or NOT_AVAILABLE,
        identity.email or NOT_AVAILABLE,
        f"Tel: {identity.phone or NOT_AVAILABLE}",
    ]
    if identity.website:
        lines.append(identity.website)
    return HeaderBlock(name=identity.name, lines=tuple(lines), logo_path=identity.logo_path)


def build_row(group: ProjectAggregate) -> ReportRow:
    return ReportRow(
        customer=group.customer_name,
        project=group.project_name,
        hours=round_money(group.total_hours),
        rate=round_money(group.hourly_rate),
        amount=round_money(group.total_amount),
    )


def _assemble(
    summary: BillingSummary,
    identity: Optional[BusinessIdentity],
    rows: Sequence[ReportRow],
    customer: Optional[Customer],
    generated_at: Optional[datetime],
    layout: PageLayout,
    settings: Settings,
    unknown_tokens: UnknownTokenPolicy,
) -> ReportDocument:
    label = period_label(summary.spec, settings.date_format)
    title = resolve_title(
        customer.report_title if customer else None,
        settings.default_report_title,
        customer=customer.name if customer else "",
        month=label,
        period=label,
        unknown_tokens=unknown_tokens,
    )
    customer_block = None
    if customer is not None:
        customer_block = CustomerBlock(name=customer.name, contact_person=customer.contact_person, email=customer.email)

    tax_id = identity.tax_id if identity else None
    document = ReportDocument(
        header=build_header(identity),
        title=title,
        period_label=label,
        summary=SummaryBlock(
            total_hours=round_money(hours_for(summary.total_seconds)),
            total_amount=round_money(summary.total_amount),
        ),
        rows=tuple(rows),
        pages=layout.paginate(rows, with_customer=customer_block is not None),
        currency=settings.currency,
        customer=customer_block,
        footer=FooterBlock(tax_line=f"Tax ID: {tax_id}" if tax_id else None),
        generated_at=generated_at,
    )
    logger.info("report_compiled", title=title, period=label, rows=len(rows), pages=len(document.pages))
    return document


def compile_report(
    summary: BillingSummary,
    identity: Optional[BusinessIdentity],
    *,
    customer: Optional[Customer] = None,
    generated_at: Optional[datetime] = None,
    layout: PageLayout = DEFAULT_LAYOUT,
    settings: Optional[Settings] = None,
    unknown_tokens: UnknownTokenPolicy = UnknownTokenPolicy.KEEP,
) -> ReportDocument:
    """Turn a billing summary into a renderer-agnostic report document.

    The output depends only on the arguments, so the same summary and identity
    always produce an equal document. ``generated_at`` is stored as given and
    never filled in from the clock.
    """

    rows = [build_row(group) for group in summary.projects.groups]
    return _assemble(
        summary, identity, rows, customer, generated_at, layout, settings or get_settings(), unknown_tokens
    )


async def compile_report_async(
    summary: BillingSummary,
    identity: Optional[BusinessIdentity],
    *,
    chunk_size: int = 200,
    customer: Optional[Customer] = None,
    generated_at: Optional[datetime] = None,
    layout: PageLayout = DEFAULT_LAYOUT,
    settings: Optional[Settings] = None,
    unknown_tokens: UnknownTokenPolicy = UnknownTokenPolicy.KEEP,
) -> ReportDocument:
    """Same as :func:`compile_report`, yielding to the event loop between chunks of rows."""

    groups = summary.projects.groups
    rows: List[ReportRow] = []
    for start in range(0, len(groups), chunk_size):
        rows.extend(build_row(group) for group in groups[start : start + chunk_size])
        await asyncio.sleep(0)
    return _assemble(
        summary, identity, rows, customer, generated_at, layout, settings or get_settings(), unknown_tokens
    )


def report_filename(document: ReportDocument) -> str:
    parts = ["Hours_Report"]
    if document.customer is not None:
        parts.append(document.customer.name)
    parts.append(document.period_label)
    return "_".join(re.sub(r"\s+", "_", part.strip()) for part in parts) + ".pdf"
