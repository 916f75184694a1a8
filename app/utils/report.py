"""
Monthly report: health assessment text, top categories and recommendations.
Deterministic in the aggregates; no external calls.
"""
from typing import Any, Dict, List, Optional

from app.utils.analyzer import FinanceAnalyzer, TopCategory
from app.utils.formatting import format_currency

CONCENTRATION_RISK_PERCENT = 50
LOW_SPENDING_MAX = 30000
HIGH_SPENDING_MIN = 150000

NO_EXPENSES_ASSESSMENT = "No expenses recorded this month. Consider tracking your spending more closely."

GETTING_STARTED_RECOMMENDATIONS = (
    "Start tracking your expenses systematically",
    "Create a basic budget to understand your spending patterns",
    "Consider using budgeting apps or spreadsheets",
)

GENERAL_RECOMMENDATIONS = (
    "Create a budget that allocates funds across different categories",
    "Look for ways to reduce spending in your top expense category",
    "Build an emergency fund to provide financial security",
    "Track your expenses consistently to gain better financial insights",
)


def spending_level(total: float) -> str:
    if total < LOW_SPENDING_MAX:
        return "Low monthly spending"
    if total > HIGH_SPENDING_MIN:
        return "High monthly spending"
    return "Moderate monthly spending"


def health_assessment(top_categories: List[TopCategory], total: float) -> str:
    if not top_categories:
        return NO_EXPENSES_ASSESSMENT

    top = top_categories[0]
    if top.percentage > CONCENTRATION_RISK_PERCENT:
        concentration = "High concentration of expenses in a single category!"
    else:
        concentration = "Expenses are relatively balanced across categories."

    return (
        f"{concentration} {spending_level(total)} at {format_currency(total)}. "
        f"The top category ({top.name}) accounts for {top.percentage:.2f}% of your total expenses."
    )


def recommendations(top_categories: List[TopCategory]) -> List[str]:
    if not top_categories:
        return list(GETTING_STARTED_RECOMMENDATIONS)
    return [f"Review your {top_categories[0].name} expenses in detail", *GENERAL_RECOMMENDATIONS]


def compose_monthly_report(expenses: List[Dict[str, Any]], analyzer: Optional[FinanceAnalyzer] = None) -> Dict[str, Any]:
    analyzer = analyzer or FinanceAnalyzer()
    total = analyzer.total(expenses)
    top = analyzer.top_categories(expenses)
    return {
        "healthAssessment": health_assessment(top, total),
        "topCategories": [{"name": c.name, "percentage": c.percentage} for c in top],
        "recommendations": recommendations(top),
    }
