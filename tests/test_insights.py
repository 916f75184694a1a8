import random
from datetime import datetime, timedelta, timezone

from app.core.errors import UpstreamEnrichmentError
from app.utils.enrichment import Enrichment
from app.utils.insights import GENERAL_TIPS, InsightEngine

NOW = datetime(2025, 11, 20, 12, 0, tzinfo=timezone.utc)
OLD = "2024-01-15T12:00:00Z"


def expense(category, amount, date=OLD, description="Item"):
    return {"category": category, "amount": amount, "date": date, "description": description}


def recent(days_ago):
    return (NOW - timedelta(days=days_ago)).isoformat()


class StubEnrichment:
    def analyze(self, description, amount, category):
        return Enrichment("positive", f"Nice {description}")


class BrokenEnrichment:
    def analyze(self, description, amount, category):
        raise UpstreamEnrichmentError("timed out")


def test_empty_expenses_yield_single_info():
    insights = InsightEngine().generate([], now=NOW)
    assert len(insights) == 1
    assert insights[0].type == "info"


def test_cold_start_food_tip():
    insights = InsightEngine().generate([expense("Food", 500)], now=NOW)
    assert 1 <= len(insights) <= 2
    assert insights[0].title == "Food Budget Tips"
    assert insights[0].type == "saving"
    assert all(i.type != "warning" for i in insights)


def test_cold_start_shopping_high_value():
    focus = expense("Shopping", 4000, description="Sneakers")
    insights = InsightEngine().generate([focus], now=NOW)
    assert [i.title for i in insights] == ["Shopping Smart", "High-Value Purchase"]
    assert "Sneakers" in insights[0].description
    assert insights[1].type == "warning"


def test_cold_start_unmatched_category_high_value_only():
    insights = InsightEngine().generate([expense("Gifts", 3500)], now=NOW)
    assert [i.title for i in insights] == ["High-Value Purchase"]


def test_cold_start_falls_back_to_getting_started():
    insights = InsightEngine().generate([expense("Healthcare", 100), expense("Gifts", 50)], now=NOW)
    assert [i.title for i in insights] == ["Getting Started"]


def test_cold_start_uses_explicit_focus():
    expenses = [expense("Food", 100), expense("Entertainment", 200)]
    insights = InsightEngine().generate(expenses, focus=expenses[1], now=NOW)
    assert insights[0].title == "Entertainment Budget"


def test_category_share_warning():
    expenses = (
        [expense("Food", 100)] * 4
        + [expense("Travel", 100)] * 2
        + [expense("Bills", 100)] * 2
        + [expense("Misc", 100)] * 2
    )
    insights = InsightEngine(rng=random.Random(1)).generate(expenses, now=NOW)
    assert len(insights) <= 3
    warning = insights[0]
    assert warning.type == "warning"
    assert warning.title == "High Food Spending"
    assert "40.0%" in warning.description


def test_statistical_branch_truncates_by_priority():
    expenses = [expense("Food", 100, recent(1))] * 3 + [expense("Rent", 100, recent(2))] * 3
    insights = InsightEngine(rng=random.Random(7)).generate(expenses, now=NOW)
    assert len(insights) == 3
    assert [i.title for i in insights] == ["High Food Spending", "High Rent Spending", "Transaction Summary"]
    assert [i.priority for i in insights] == [1, 1, 3]


def test_frequent_transactions():
    categories = ["Food", "Travel", "Bills", "Misc"]
    expenses = [expense(categories[i % 4], 10, recent(i % 30)) for i in range(24)]
    titles = [i.title for i in InsightEngine(rng=random.Random(3)).generate(expenses, now=NOW)]
    assert "Frequent Transactions" in titles


def test_high_average_saving():
    expenses = [expense(c, 6000) for c in ("Food", "Travel", "Bills", "Misc")]
    insights = InsightEngine(rng=random.Random(0)).generate(expenses, now=NOW)
    saving = [i for i in insights if i.type == "saving"]
    assert len(saving) == 1
    assert "₹6,000.00" in saving[0].description


def test_diversify_suggestion():
    expenses = [expense("Food", 100), expense("Food", 100), expense("Rent", 100), expense("Rent", 100)]
    titles = [i.title for i in InsightEngine(rng=random.Random(0)).generate(expenses, now=NOW)]
    assert "Diversify Your Spending" in titles


def test_only_general_tip_is_first_tip():
    expenses = [expense(c, 100) for c in ("Food", "Travel", "Bills", "Misc")]
    insights = InsightEngine(rng=random.Random(99)).generate(expenses, now=NOW)
    assert [i.title for i in insights] == [GENERAL_TIPS[0].title]


def test_seeded_rng_is_reproducible():
    expenses = [expense("Food", 100)] * 2 + [expense("Rent", 100)] * 2
    first = InsightEngine(rng=random.Random(42)).generate(expenses, now=NOW)
    second = InsightEngine(rng=random.Random(42)).generate(expenses, now=NOW)
    assert [i.to_dict() for i in first] == [i.to_dict() for i in second]


def test_enrichment_prepended_as_ai_insight():
    engine = InsightEngine(enrichment=StubEnrichment())
    insights = engine.generate([expense("Food", 500, description="Lunch")], now=NOW)
    assert insights[0].type == "ai"
    assert insights[0].sentiment == "positive"
    assert insights[0].description == "Nice Lunch"
    assert insights[1].title == "Food Budget Tips"


def test_enrichment_failure_is_swallowed():
    expenses = [expense("Food", 500)]
    with_broken = InsightEngine(enrichment=BrokenEnrichment()).generate(expenses, now=NOW)
    without = InsightEngine().generate(expenses, now=NOW)
    assert [i.to_dict() for i in with_broken] == [i.to_dict() for i in without]


def test_to_dict_drops_missing_sentiment():
    insight = InsightEngine().generate([], now=NOW)[0]
    assert "sentiment" not in insight.to_dict()
