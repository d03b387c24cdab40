"""Pure contract arithmetic shared by the wizard preview, creation and maintenance scheduling"""

from datetime import date
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

FREQUENCY_MONTHS = {
    "monthly": 1,
    "quarterly": 3,
    "semi_annual": 6,
    "annual": 12,
}
CUSTOM_FREQUENCY = "custom_months"
MAINTENANCE_FREQUENCIES = tuple(FREQUENCY_MONTHS) + (CUSTOM_FREQUENCY,)
MIXED_FREQUENCY = "mixed"


def frequency_months_for(frequency: str, custom_months: Optional[int] = None) -> int:
    """Months between services; custom frequencies keep the given value (at least 1)"""
    if frequency in FREQUENCY_MONTHS:
        return FREQUENCY_MONTHS[frequency]
    if frequency == CUSTOM_FREQUENCY:
        if not custom_months or custom_months < 1:
            raise ValueError("Custom frequency needs frequency_months of at least 1")
        return int(custom_months)
    raise ValueError(f"Unknown maintenance frequency: {frequency}")


def contract_frequency(frequencies: Iterable[str]) -> str:
    """Shared unit frequency, or 'mixed' when units differ"""
    distinct = set(frequencies)
    if len(distinct) == 1:
        return distinct.pop()
    return MIXED_FREQUENCY


def contract_frequency_months(months: Iterable[int]) -> Optional[int]:
    distinct = set(months)
    if len(distinct) == 1:
        return distinct.pop()
    return None


def compute_totals(units: Iterable[dict]) -> dict:
    """
    Totals over wizard units given as dicts with cost_price, selling_price
    and frequency_months.
    """
    units = list(units)
    total_cost = sum(float(u.get("cost_price") or 0) for u in units)
    total_selling = sum(float(u.get("selling_price") or 0) for u in units)
    return {
        "total_cost_value": total_cost,
        "total_selling_value": total_selling,
        "total_margin": total_selling - total_cost,
        "room_count": len(units),
        "services_per_year": services_per_year(u.get("frequency_months") or 1 for u in units),
    }


def services_per_year(months: Iterable[int]) -> int:
    """Visits per year across units: sum of floor(12 / frequency_months)"""
    return sum(12 // max(int(m), 1) for m in months)


def advance_service_date(current: date, frequency_months: int) -> date:
    """Next due date a whole number of calendar months later (month-end clamped)"""
    return current + relativedelta(months=max(int(frequency_months), 1))
