import logging
from functools import lru_cache
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.config import settings
from app.db.repository import ExpenseRepository, get_expense_repository
from app.models.expense import (
    ExpenseCreate,
    ExpenseUpdate,
    new_expense_item,
    to_public,
    validate_expense_update,
    validate_new_expense,
)
from app.models.filters import ExpenseFilter
from app.utils.analyzer import FinanceAnalyzer
from app.utils.dates import get_zone, utcnow
from app.utils.enrichment import build_enrichment_provider
from app.utils.insights import InsightEngine, safe_enrich
from app.utils.report import compose_monthly_report

router = APIRouter()
logger = logging.getLogger(__name__)


@lru_cache
def get_enrichment_provider():
    return build_enrichment_provider(settings)


def get_insight_engine(enrichment=Depends(get_enrichment_provider)) -> InsightEngine:
    return InsightEngine(enrichment=enrichment, tz=get_zone(settings.REPORT_TIMEZONE))


def report_filter(
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    payment_method: Optional[str] = Query(None, alias="paymentMethod"),
    min_amount: Optional[str] = Query(None, alias="minAmount"),
    max_amount: Optional[str] = Query(None, alias="maxAmount"),
    month: Optional[str] = Query(None, description="Restrict to a calendar month, YYYY-MM"),
) -> ExpenseFilter:
    return ExpenseFilter.from_query(
        category=category,
        subcategory=subcategory,
        payment_method=payment_method,
        min_amount=min_amount,
        max_amount=max_amount,
        month=month,
        tz=get_zone(settings.REPORT_TIMEZONE),
    )


@router.get("/")
def list_expenses(
    category: Optional[str] = None,
    min_amount: Optional[str] = Query(None, alias="minAmount"),
    max_amount: Optional[str] = Query(None, alias="maxAmount"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    repo: ExpenseRepository = Depends(get_expense_repository),
) -> Dict:
    criteria = ExpenseFilter.from_query(
        category=category,
        min_amount=min_amount,
        max_amount=max_amount,
        start_date=start_date,
        end_date=end_date,
        tz=get_zone(settings.REPORT_TIMEZONE),
    )
    expenses = repo.find_recent_first(criteria)
    offset = (page - 1) * limit
    page_items = expenses[offset:offset + limit]

    return {
        "success": True,
        "count": len(page_items),
        "total": len(expenses),
        "page": page,
        "data": [to_public(item) for item in page_items],
    }


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_expense(
    expense: ExpenseCreate,
    repo: ExpenseRepository = Depends(get_expense_repository),
    enrichment=Depends(get_enrichment_provider),
) -> Dict:
    fields = validate_new_expense(expense, get_zone(settings.REPORT_TIMEZONE))
    saved = repo.add(new_expense_item(repo.user_id, fields, utcnow()))
    logger.info(f"Created expense {saved['expense_id']} for user {repo.user_id}")

    # Enrichment is layered on top of the committed write and never fails it
    ai_insights = safe_enrich(enrichment, saved)

    return {
        "success": True,
        "message": "Expense added successfully",
        "expense": to_public(saved),
        "aiInsights": ai_insights,
    }


@router.get("/dashboard")
def get_dashboard(repo: ExpenseRepository = Depends(get_expense_repository)) -> Dict:
    analyzer = FinanceAnalyzer(get_zone(settings.REPORT_TIMEZONE))
    expenses = repo.find()
    data = analyzer.dashboard(expenses, utcnow(), category_breakdown=repo.sum_by("category"))
    data["recentExpenses"] = [to_public(item) for item in data["recentExpenses"]]
    return data


@router.get("/insights")
def get_insights(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    repo: ExpenseRepository = Depends(get_expense_repository),
    engine: InsightEngine = Depends(get_insight_engine),
) -> Dict:
    criteria = ExpenseFilter.from_query(
        start_date=start_date,
        end_date=end_date,
        tz=get_zone(settings.REPORT_TIMEZONE),
    )
    expenses = repo.find_recent_first(criteria)
    focus = expenses[0] if expenses else None
    insights = engine.generate(expenses, focus=focus, now=utcnow())
    return {"success": True, "data": [insight.to_dict() for insight in insights]}


@router.get("/monthly-report")
def get_monthly_report(
    criteria: ExpenseFilter = Depends(report_filter),
    repo: ExpenseRepository = Depends(get_expense_repository),
) -> Dict:
    expenses = repo.find(criteria)
    logger.info(f"Generating monthly report for user {repo.user_id} over {len(expenses)} expenses")
    return compose_monthly_report(expenses, FinanceAnalyzer(get_zone(settings.REPORT_TIMEZONE)))


@router.get("/{expense_id}")
def get_expense(expense_id: str, repo: ExpenseRepository = Depends(get_expense_repository)) -> Dict:
    return {"success": True, "data": to_public(repo.get(expense_id))}


@router.put("/{expense_id}")
def update_expense(
    expense_id: str,
    expense_update: ExpenseUpdate,
    repo: ExpenseRepository = Depends(get_expense_repository),
    enrichment=Depends(get_enrichment_provider),
) -> Dict:
    changes = validate_expense_update(expense_update, get_zone(settings.REPORT_TIMEZONE))
    updated = repo.update(expense_id, changes)
    logger.info(f"Updated expense {expense_id} for user {repo.user_id}: {sorted(changes)}")

    return {
        "success": True,
        "message": "Expense updated successfully",
        "data": to_public(updated),
        "aiInsights": safe_enrich(enrichment, updated),
    }


@router.delete("/{expense_id}")
def delete_expense(
    expense_id: str,
    criteria: ExpenseFilter = Depends(report_filter),
    repo: ExpenseRepository = Depends(get_expense_repository),
) -> Dict:
    deleted = repo.delete(expense_id)
    logger.info(f"Deleted expense {expense_id} for user {repo.user_id}")

    try:
        monthly_report = compose_monthly_report(
            repo.find(criteria),
            FinanceAnalyzer(get_zone(settings.REPORT_TIMEZONE)),
        )
    except Exception as e:
        logger.error(f"Error recomputing monthly report after delete: {str(e)}")
        monthly_report = None

    return {
        "success": True,
        "message": "Expense deleted successfully",
        "deletedExpense": to_public(deleted),
        "monthlyReport": monthly_report,
    }
