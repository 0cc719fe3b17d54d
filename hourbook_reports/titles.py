from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from hourbook.errors import TemplateError

TITLE_TOKENS = frozenset({"customer", "month", "period"})
TOKEN_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


class UnknownTokenPolicy(str, Enum):
    KEEP = "keep"
    ERROR = "error"


@dataclass(frozen=True)
class TitleTemplate:
    """Report title with ``{{customer}}``, ``{{month}}`` and ``{{period}}`` placeholders.

    Token names are matched case-insensitively and values are inserted
    literally. Any other ``{{name}}`` is left untouched or rejected depending
    on ``unknown_tokens``.
    """

    text: str
    unknown_tokens: UnknownTokenPolicy = UnknownTokenPolicy.KEEP

    def tokens(self) -> list[str]:
        return [match.group(1).lower() for match in TOKEN_PATTERN.finditer(self.text)]

    def render(self, values: Mapping[str, str]) -> str:
        missing = TITLE_TOKENS - set(values)
        if missing:
            raise TemplateError(f"Missing values for title tokens: {', '.join(sorted(missing))}")

        def substitute(match: re.Match) -> str:
            name = match.group(1).lower()
            if name in TITLE_TOKENS:
                return values[name]
            if self.unknown_tokens == UnknownTokenPolicy.ERROR:
                raise TemplateError(f"Unknown title token: {match.group(0)}")
            return match.group(0)

        return TOKEN_PATTERN.sub(substitute, self.text)


def resolve_title(
    template: str | None,
    default: str,
    *,
    customer: str,
    month: str,
    period: str,
    unknown_tokens: UnknownTokenPolicy = UnknownTokenPolicy.KEEP,
) -> str:
    if not template:
        return default
    return TitleTemplate(template, unknown_tokens).render({"customer": customer, "month": month, "period": period})
