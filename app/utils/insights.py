from __future__ import annotations

import logging
import random
from dataclasses import asdict, dataclass
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, List, Optional

from app.utils.analyzer import FinanceAnalyzer
from app.utils.classification import SpendCategory, classify_category
from app.utils.dates import to_datetime, utcnow
from app.utils.formatting import format_currency

logger = logging.getLogger(__name__)

COLD_START_MAX_EXPENSES = 3
COLD_START_MAX_INSIGHTS = 2
COLD_START_HIGH_VALUE = 3000
CATEGORY_SHARE_WARNING_PERCENT = 30
FREQUENT_TRANSACTIONS_THRESHOLD = 20
HIGH_AVERAGE_AMOUNT = 5000
MIN_DISTINCT_CATEGORIES = 3
MAX_INSIGHTS = 3

AI_INSIGHT_TITLE = "Spending Analysis"


@dataclass
class Insight:
    """A single advisory message. Lower priority numbers rank first."""

    type: str
    title: str
    description: str
    priority: int = 3
    sentiment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # Remove None values for cleaner JSON responses
        return {k: v for k, v in data.items() if v is not None}


NO_EXPENSES = Insight(
    type="info",
    title="No Expenses Found",
    description="Start adding expenses to get personalized financial insights.",
    priority=1,
)

GETTING_STARTED = Insight(
    type="info",
    title="Getting Started",
    description="Add more expenses to receive personalized spending insights and recommendations.",
    priority=1,
)

# Cold-start tips; descriptions may reference the expense description
CATEGORY_TIPS: Dict[SpendCategory, Insight] = {
    SpendCategory.SHOPPING: Insight(
        type="suggestion",
        title="Shopping Smart",
        description="For purchases like {description}, consider using the 24-hour rule: wait 24 hours "
        "before buying non-essential items to avoid impulse spending.",
        priority=1,
    ),
    SpendCategory.FOOD: Insight(
        type="saving",
        title="Food Budget Tips",
        description="Create a weekly meal plan before grocery shopping. This can reduce food waste and "
        "prevent impulse purchases.",
        priority=1,
    ),
    SpendCategory.TRANSPORT: Insight(
        type="saving",
        title="Transportation Savings",
        description="Consider using public transport or carpooling options when possible to reduce your "
        "transportation expenses.",
        priority=1,
    ),
    SpendCategory.UTILITIES: Insight(
        type="suggestion",
        title="Utility Savings",
        description="Review your utility providers annually and compare rates to ensure you are getting "
        "the best deal.",
        priority=1,
    ),
    SpendCategory.ENTERTAINMENT: Insight(
        type="suggestion",
        title="Entertainment Budget",
        description="Look for free or low-cost entertainment options in your area, like community events, "
        "parks, or libraries.",
        priority=1,
    ),
}

GENERAL_TIPS = (
    Insight(
        type="suggestion",
        title="Budgeting Strategy",
        description="Try the 50/30/20 rule: 50% for needs, 30% for wants, and 20% for savings and debt "
        "repayment.",
        priority=3,
    ),
    Insight(
        type="suggestion",
        title="Emergency Fund",
        description="Aim to save 3-6 months worth of living expenses in an emergency fund for financial "
        "security.",
        priority=3,
    ),
    Insight(
        type="suggestion",
        title="Review Subscriptions",
        description="Regularly review and cancel unused subscriptions to save money.",
        priority=3,
    ),
)


def category_tip(expense: Dict[str, Any]) -> Optional[Insight]:
    template = CATEGORY_TIPS.get(classify_category(expense.get("category")))
    if template is None:
        return None
    return Insight(
        type=template.type,
        title=template.title,
        description=template.description.format(description=expense.get("description", "this")),
        priority=template.priority,
    )


def high_value_warning(expense: Dict[str, Any]) -> Optional[Insight]:
    amount = float(expense.get("amount", 0))
    if amount <= COLD_START_HIGH_VALUE:
        return None
    return Insight(
        type="warning",
        title="High-Value Purchase",
        description=f"For expenses like your {format_currency(amount)} {expense.get('description', '')}, "
        "consider researching alternatives and comparing prices before making large purchases.",
        priority=2,
    )


class InsightEngine:
    """
    Rule-based financial insights over one owner's expenses.

    ``enrichment`` is an optional provider with ``analyze(description, amount,
    category)``; its result is prepended as an ``ai`` insight when available.
    ``rng`` picks the general tip and can be seeded for reproducible output.
    """

    def __init__(
        self,
        enrichment=None,
        rng: Optional[random.Random] = None,
        tz: tzinfo = timezone.utc,
    ) -> None:
        self.enrichment = enrichment
        self.rng = rng or random.Random()
        self.analyzer = FinanceAnalyzer(tz)
        self._tz = tz

    def generate(
        self,
        expenses: List[Dict[str, Any]],
        focus: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> List[Insight]:
        if not expenses:
            return [NO_EXPENSES]

        if focus is None:
            focus = max(expenses, key=lambda exp: to_datetime(exp["date"], self._tz))

        if len(expenses) <= COLD_START_MAX_EXPENSES:
            insights = self.cold_start(focus)
        else:
            insights = self.statistical(expenses, now or utcnow())

        analysis = self.analysis_insight(focus)
        if analysis is None:
            return insights
        return [analysis] + [insight for insight in insights if insight.title != analysis.title]

    def cold_start(self, focus: Dict[str, Any]) -> List[Insight]:
        insights = [
            insight
            for insight in (category_tip(focus), high_value_warning(focus))
            if insight is not None
        ]
        return insights[:COLD_START_MAX_INSIGHTS] or [GETTING_STARTED]

    def statistical(self, expenses: List[Dict[str, Any]], now: datetime) -> List[Insight]:
        insights: List[Insight] = []
        total = sum(float(exp.get("amount", 0)) for exp in expenses)
        category_totals = self.analyzer.category_totals(expenses)

        for category, amount in category_totals.items():
            percentage = amount / total * 100 if total else 0.0
            if percentage > CATEGORY_SHARE_WARNING_PERCENT:
                insights.append(
                    Insight(
                        type="warning",
                        title=f"High {category} Spending",
                        description=f"Your {category} expenses account for {percentage:.1f}% of your total "
                        "spending. Consider setting a budget for this category.",
                        priority=1,
                    )
                )

        recent, _ = self.analyzer.split_recent(expenses, now)
        if len(recent) > FREQUENT_TRANSACTIONS_THRESHOLD:
            insights.append(
                Insight(
                    type="info",
                    title="Frequent Transactions",
                    description=f"You've made {len(recent)} transactions in the last 30 days. Reviewing "
                    "recurring expenses might help identify savings opportunities.",
                    priority=2,
                )
            )
        elif recent:
            insights.append(
                Insight(
                    type="info",
                    title="Transaction Summary",
                    description=f"You've recorded {len(recent)} expense(s) in the last 30 days. Regular "
                    "tracking helps build better spending habits.",
                    priority=3,
                )
            )

        average = total / len(expenses)
        if average > HIGH_AVERAGE_AMOUNT:
            insights.append(
                Insight(
                    type="saving",
                    title="High-Value Transactions",
                    description=f"Your average transaction amount is {format_currency(round(average, 2))}. "
                    "Consider if all these expenses are necessary.",
                    priority=2,
                )
            )

        if len(category_totals) < MIN_DISTINCT_CATEGORIES:
            insights.append(
                Insight(
                    type="suggestion",
                    title="Diversify Your Spending",
                    description=f"Your expenses are concentrated in only {len(category_totals)} categories. "
                    "Consider tracking more categories for better insights.",
                    priority=3,
                )
            )

        if insights:
            insights.append(self.rng.choice(GENERAL_TIPS))
        else:
            insights.append(GENERAL_TIPS[0])

        # sorted() is stable, so equal priorities keep insertion order
        insights = sorted(insights, key=lambda insight: insight.priority)
        return insights[:MAX_INSIGHTS]

    def analysis_insight(self, focus: Dict[str, Any]) -> Optional[Insight]:
        result = safe_enrich(self.enrichment, focus)
        if result is None:
            return None
        return Insight(
            type="ai",
            title=AI_INSIGHT_TITLE,
            description=result["recommendation"],
            priority=1,
            sentiment=result.get("sentiment") or "neutral",
        )


def safe_enrich(provider, expense: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Best-effort enrichment of one expense; failures are logged and yield None."""
    if provider is None:
        return None
    try:
        result = provider.analyze(
            expense.get("description", ""),
            float(expense.get("amount", 0)),
            expense.get("category", ""),
        )
    except Exception as e:
        logger.warning(f"Spending analysis failed for expense {expense.get('expense_id')}: {e}")
        return None
    if result is None or not result.recommendation:
        return None
    return result.to_dict()
