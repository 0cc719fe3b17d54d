from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from hourbook.errors import ValidationError
from hourbook.models import BusinessIdentity

from .aggregation import CustomerAggregate
from .compiler import NOT_AVAILABLE, format_hours, format_money


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    body: str

    @property
    def text(self) -> str:
        return f"Subject: {self.subject}\n\n{self.body}"


def _customer_block(group: CustomerAggregate, currency: str) -> str:
    return "\n".join(
        [
            f"**{group.name}**",
            f"- Total hours: {format_hours(Decimal(str(group.total_hours)))}",
            f"- Total amount: {format_money(group.total_amount, currency)}",
        ]
    )


def compile_email(
    customers: Sequence[CustomerAggregate],
    selected_ids: Iterable[str],
    identity: Optional[BusinessIdentity],
    period_label: str,
    currency: str = "EUR",
) -> EmailTemplate:
    """Plain-text cover message listing hours and amounts of the selected customers.

    Customers appear in the order of ``customers``, independent of the order of
    ``selected_ids``.
    """

    selected = set(selected_ids)
    chosen = [group for group in customers if group.customer_id in selected]
    if not chosen:
        raise ValidationError("Select at least one customer")

    blocks = "\n\n".join(_customer_block(group, currency) for group in chosen)
    signature = [
        identity.name if identity else NOT_AVAILABLE,
        (identity.email if identity else None) or NOT_AVAILABLE,
        (identity.phone if identity else None) or NOT_AVAILABLE,
    ]
    body = (
        "Hello,\n\n"
        f"please find attached the hours report for {period_label}.\n\n"
        f"{blocks}\n\n"
        "Please let me know if you have any questions.\n\n"
        "Kind regards\n" + "\n".join(signature)
    )
    return EmailTemplate(subject=f"Hours report {period_label}", body=body)
