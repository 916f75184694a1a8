"""
Query filters for expense lookups.

Parsing is deliberately permissive: a non-numeric amount bound or an
unparseable date is treated as absent rather than rejected. A bound of ``"0"``
is present; only a missing or blank value is absent.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Dict, Optional

from app.utils.dates import is_date_only, to_datetime

logger = logging.getLogger(__name__)


def parse_amount_bound(raw: Optional[str]) -> Optional[float]:
    if raw is None or not str(raw).strip():
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.info(f"Ignoring non-numeric amount filter: {raw!r}")
        return None
    if not math.isfinite(value):
        logger.info(f"Ignoring non-finite amount filter: {raw!r}")
        return None
    return value


def parse_date_bound(raw: Optional[str], tz: tzinfo, end_of_day: bool = False) -> Optional[datetime]:
    if raw is None or not str(raw).strip():
        return None
    try:
        value = to_datetime(raw, tz)
    except ValueError:
        logger.info(f"Ignoring unparseable date filter: {raw!r}")
        return None
    if end_of_day and is_date_only(raw):
        value = value + timedelta(days=1) - timedelta(microseconds=1)
    return value


def parse_month(raw: Optional[str], tz: tzinfo) -> Optional[tuple]:
    """Parse ``YYYY-MM`` into the [start, end] bounds of that calendar month."""
    if raw is None or not str(raw).strip():
        return None
    try:
        year_str, month_str = str(raw).strip().split("-")
        year, month = int(year_str), int(month_str)
        start = datetime(year, month, 1, tzinfo=tz)
    except ValueError:
        logger.info(f"Ignoring invalid month filter: {raw!r}")
        return None
    if month == 12:
        next_start = datetime(year + 1, 1, 1, tzinfo=tz)
    else:
        next_start = datetime(year, month + 1, 1, tzinfo=tz)
    return start, next_start - timedelta(microseconds=1)


def _clean(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None


@dataclass(frozen=True)
class ExpenseFilter:
    """AND-combined optional predicates; unset range bounds are unbounded."""

    category: Optional[str] = None
    subcategory: Optional[str] = None
    payment_method: Optional[str] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @classmethod
    def from_query(
        cls,
        category: Optional[str] = None,
        subcategory: Optional[str] = None,
        payment_method: Optional[str] = None,
        min_amount: Optional[str] = None,
        max_amount: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        month: Optional[str] = None,
        tz: tzinfo = timezone.utc,
    ) -> "ExpenseFilter":
        start = parse_date_bound(start_date, tz)
        end = parse_date_bound(end_date, tz, end_of_day=True)
        month_bounds = parse_month(month, tz)
        if month_bounds:
            month_start, month_end = month_bounds
            start = max(start, month_start) if start else month_start
            end = min(end, month_end) if end else month_end

        return cls(
            category=_clean(category),
            subcategory=_clean(subcategory),
            payment_method=_clean(payment_method),
            min_amount=parse_amount_bound(min_amount),
            max_amount=parse_amount_bound(max_amount),
            start_date=start,
            end_date=end,
        )

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def matches(self, item: Dict[str, Any]) -> bool:
        if self.category is not None and item.get("category") != self.category:
            return False
        if self.subcategory is not None and item.get("subcategory") != self.subcategory:
            return False
        if self.payment_method is not None and item.get("payment_method") != self.payment_method:
            return False

        amount = float(item.get("amount", 0))
        if self.min_amount is not None and amount < self.min_amount:
            return False
        if self.max_amount is not None and amount > self.max_amount:
            return False

        if self.start_date is not None or self.end_date is not None:
            when = to_datetime(item["date"])
            if self.start_date is not None and when < self.start_date:
                return False
            if self.end_date is not None and when > self.end_date:
                return False
        return True
