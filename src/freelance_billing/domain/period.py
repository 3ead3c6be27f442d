"""Billing period helpers based on the configured application timezone."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from freelance_billing.core.settings import get_settings

MIN_YEAR = 2000
MAX_YEAR = 2100


@dataclass(frozen=True, slots=True)
class BillingPeriod:
    """Calendar month a closure covers, as a half-open date range."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError("month must be between 1 and 12")
        if not MIN_YEAR <= self.year <= MAX_YEAR:
            raise ValueError(f"year must be between {MIN_YEAR} and {MAX_YEAR}")

    @property
    def start(self) -> date:
        return date(year=self.year, month=self.month, day=1)

    @property
    def end(self) -> date:
        """First day of the following month, exclusive."""

        if self.month == 12:
            return date(year=self.year + 1, month=1, day=1)
        return date(year=self.year, month=self.month + 1, day=1)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def contains(self, value: date) -> bool:
        return self.start <= value < self.end


def app_timezone() -> ZoneInfo:
    """Return the configured application timezone."""

    return ZoneInfo(get_settings().app_timezone)


def now_in_app_timezone() -> datetime:
    """Return current timestamp localized to the application timezone."""

    return datetime.now(tz=app_timezone())
