from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Dict, List, Optional, Tuple

from app.utils.dates import to_datetime

DEFAULT_TOP_N = 3
RECENT_WINDOW_DAYS = 30
RECENT_EXPENSES_LIMIT = 5
PERCENT_UNITS = 10000


@dataclass
class TopCategory:
    """A category ranked by summed spend, with its share of the total."""

    name: str
    amount: float
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def previous_month(year: int, month: int) -> Tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def month_bounds(year: int, month: int, tz: tzinfo = timezone.utc) -> Tuple[datetime, datetime]:
    """Half-open [start, next_start) bounds of a calendar month in ``tz``."""
    start = datetime(year, month, 1, tzinfo=tz)
    if month == 12:
        next_start = datetime(year + 1, 1, 1, tzinfo=tz)
    else:
        next_start = datetime(year, month + 1, 1, tzinfo=tz)
    return start, next_start


def share_percentages(amounts: List[float]) -> List[float]:
    """
    Percentage of the sum held by each amount, to 2 decimal places.

    Uses largest-remainder rounding so the shares of all amounts add up to
    exactly 100 (any prefix adds up to at most 100). Equal remainders are
    resolved in input order. All shares are 0 when the sum is 0.
    """
    grand_total = sum(amounts)
    if not grand_total:
        return [0.0 for _ in amounts]

    # work in hundredths of a percent
    raw = [round(amount / grand_total * PERCENT_UNITS, 9) for amount in amounts]
    units = [math.floor(value) for value in raw]
    leftover = max(PERCENT_UNITS - sum(units), 0)
    by_remainder = sorted(range(len(raw)), key=lambda i: round(raw[i] - units[i], 6), reverse=True)
    for i in by_remainder[:leftover]:
        units[i] += 1
    return [round(unit / 100, 2) for unit in units]


class FinanceAnalyzer:
    """
    Pure aggregation helpers over a list of expense records that are already
    scoped to a single owner. Records are dicts with at least ``amount``,
    ``category`` and ``date``.
    """

    def __init__(self, tz: tzinfo = timezone.utc) -> None:
        self._tz = tz

    def total(self, expenses: List[Dict[str, Any]]) -> float:
        return round(sum(float(exp.get("amount", 0)) for exp in expenses), 2)

    def category_totals(self, expenses: List[Dict[str, Any]]) -> Dict[str, float]:
        # dict keeps first-encounter order, which top_categories relies on for ties
        totals: Dict[str, float] = defaultdict(float)
        for exp in expenses:
            totals[exp["category"]] += float(exp.get("amount", 0))
        return {cat: round(total, 2) for cat, total in totals.items()}

    def top_categories(
        self,
        expenses: List[Dict[str, Any]],
        n: int = DEFAULT_TOP_N,
    ) -> List[TopCategory]:
        totals = self.category_totals(expenses)
        ranked = sorted(totals.items(), key=lambda pair: pair[1], reverse=True)
        shares = share_percentages([amount for _, amount in ranked])
        return [
            TopCategory(name=name, amount=amount, percentage=share)
            for (name, amount), share in list(zip(ranked, shares))[:n]
        ]

    @staticmethod
    def month_over_month_change(current: float, previous: float) -> float:
        if previous > 0:
            change = (current - previous) / previous * 100
        elif current > 0:
            change = 100.0
        else:
            change = 0.0
        return round(change, 2)

    def monthly_total(self, expenses: List[Dict[str, Any]], year: int, month: int) -> float:
        start, next_start = month_bounds(year, month, self._tz)
        return self.total(
            [exp for exp in expenses if start <= to_datetime(exp["date"], self._tz) < next_start]
        )

    def split_recent(
        self,
        expenses: List[Dict[str, Any]],
        reference: datetime,
        days: int = RECENT_WINDOW_DAYS,
    ) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        """Partition into (dated on/after reference - days, older)."""
        cutoff = reference - timedelta(days=days)
        recent: List[Dict[str, Any]] = []
        older: List[Dict[str, Any]] = []
        for exp in expenses:
            if to_datetime(exp["date"], self._tz) >= cutoff:
                recent.append(exp)
            else:
                older.append(exp)
        return recent, older

    def dashboard(
        self,
        expenses: List[Dict[str, Any]],
        now: datetime,
        category_breakdown: Optional[Dict[str, float]] = None,
    ) -> Dict[str, Any]:
        local_now = now.astimezone(self._tz)
        prev_year, prev_month = previous_month(local_now.year, local_now.month)

        current_total = self.monthly_total(expenses, local_now.year, local_now.month)
        previous_total = self.monthly_total(expenses, prev_year, prev_month)

        if category_breakdown is None:
            category_breakdown = self.category_totals(expenses)
        newest = sorted(expenses, key=lambda exp: to_datetime(exp["date"], self._tz), reverse=True)

        return {
            "totalExpenses": self.total(expenses),
            "monthlyExpenses": current_total,
            "monthlyChange": self.month_over_month_change(current_total, previous_total),
            "categoryBreakdown": {cat: round(amount, 2) for cat, amount in category_breakdown.items()},
            "recentExpenses": newest[:RECENT_EXPENSES_LIMIT],
            "expenseCount": len(expenses),
        }
