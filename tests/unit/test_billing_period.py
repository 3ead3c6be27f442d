from datetime import date

import pytest

from freelance_billing.domain.period import BillingPeriod, now_in_app_timezone


def test_billing_period_is_half_open_month_range() -> None:
    period = BillingPeriod(year=2024, month=5)

    assert period.start == date(2024, 5, 1)
    assert period.end == date(2024, 6, 1)
    assert period.label == "2024-05"
    assert period.contains(date(2024, 5, 31))
    assert not period.contains(date(2024, 6, 1))
    assert not period.contains(date(2024, 4, 30))


def test_december_period_ends_on_first_day_of_next_year() -> None:
    period = BillingPeriod(year=2024, month=12)

    assert period.end == date(2025, 1, 1)


@pytest.mark.parametrize(
    ("year", "month"),
    [(2024, 0), (2024, 13), (1999, 5), (2101, 5)],
)
def test_billing_period_rejects_out_of_range_values(year: int, month: int) -> None:
    with pytest.raises(ValueError):
        BillingPeriod(year=year, month=month)


def test_now_in_app_timezone_is_aware() -> None:
    assert now_in_app_timezone().tzinfo is not None
