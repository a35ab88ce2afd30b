from __future__ import annotations

import re
from dataclasses import dataclass

from user_service.core.errors import InvalidEmailFormat

_EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")


@dataclass(frozen=True, slots=True)
class Email:
    """Validated, normalized email address.

    Normalization (strip + lowercase) happens on construction, so two
    spellings of the same address compare and hash equal.
    """

    value: str

    def __post_init__(self) -> None:
        raw = self.value
        normalized = raw.strip().lower() if isinstance(raw, str) else ""
        if not normalized or not _EMAIL_RE.match(normalized):
            raise InvalidEmailFormat(raw)
        object.__setattr__(self, "value", normalized)

    def __str__(self) -> str:
        return self.value
