from __future__ import annotations

from dataclasses import astuple, dataclass


@dataclass(frozen=True, slots=True)
class Address:
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None

    @property
    def full_address(self) -> str:
        # "street, city, state zip, country" with missing parts left out
        region = " ".join(
            p.strip() for p in (self.state, self.zip_code) if _present(p)
        )
        parts = (self.street, self.city, region, self.country)
        return ", ".join(p.strip() for p in parts if _present(p))

    @property
    def is_empty(self) -> bool:
        return not any(_present(part) for part in astuple(self))


def _present(part: str | None) -> bool:
    return part is not None and bool(part.strip())
