import pytest

from app.core.config import Settings
from app.core.errors import UpstreamEnrichmentError
from app.utils.classification import ShoppingItem, SpendCategory, classify_category, classify_item
from app.utils.enrichment import (
    BAG_PREMIUM_MAX,
    BAG_REASONABLE_MAX,
    FOOD_MODERATE_MAX,
    FOOD_REASONABLE_MAX,
    FOOTWEAR_ECONOMICAL_MAX,
    FOOTWEAR_REASONABLE_MAX,
    GeminiEnrichment,
    LocalEnrichment,
    build_enrichment_provider,
    local_analysis,
    parse_enrichment_response,
)
from app.utils.formatting import format_currency


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Shopping", SpendCategory.SHOPPING),
        ("Clothing & Footwear", SpendCategory.SHOPPING),
        ("Food", SpendCategory.FOOD),
        ("Groceries", SpendCategory.FOOD),
        ("Healthcare", SpendCategory.HEALTHCARE),
        ("Medical", SpendCategory.HEALTHCARE),
        ("Utilities", SpendCategory.UTILITIES),
        ("Phone Bill", SpendCategory.UTILITIES),
        ("Entertainment", SpendCategory.ENTERTAINMENT),
        ("Fuel", SpendCategory.TRANSPORT),
        ("Rent", SpendCategory.OTHER),
        ("", SpendCategory.OTHER),
        (None, SpendCategory.OTHER),
    ],
)
def test_classify_category(raw, expected):
    assert classify_category(raw) is expected


@pytest.mark.parametrize(
    "description, expected",
    [
        ("Running shoes", ShoppingItem.FOOTWEAR),
        ("Nike Sneakers", ShoppingItem.FOOTWEAR),
        ("Leather purse", ShoppingItem.BAG),
        ("School backpack", ShoppingItem.BAG),
        ("Cotton shirt", ShoppingItem.CLOTHING),
        ("Summer dress", ShoppingItem.CLOTHING),
        ("Headphones", ShoppingItem.OTHER),
    ],
)
def test_classify_item(description, expected):
    assert classify_item(description) is expected


def test_footwear_tiers():
    assert local_analysis("Shoes", FOOTWEAR_ECONOMICAL_MAX, "Shopping").sentiment == "positive"
    assert "reasonable" in local_analysis("Shoes", FOOTWEAR_REASONABLE_MAX, "Shopping").recommendation
    assert "premium" in local_analysis("Shoes", FOOTWEAR_REASONABLE_MAX + 1, "Shopping").recommendation


def test_bag_tiers():
    assert local_analysis("Bag", BAG_REASONABLE_MAX, "Shopping").sentiment == "positive"
    assert local_analysis("Bag", BAG_PREMIUM_MAX, "Shopping").sentiment == "neutral"
    assert local_analysis("Bag", BAG_PREMIUM_MAX + 1, "Shopping").sentiment == "negative"


def test_food_tiers():
    assert "reasonable" in local_analysis("Dinner", FOOD_REASONABLE_MAX, "Food").recommendation
    assert "moderate" in local_analysis("Dinner", FOOD_MODERATE_MAX, "Food").recommendation
    assert "high" in local_analysis("Dinner", FOOD_MODERATE_MAX + 1, "Food").recommendation


def test_category_specific_and_generic_analysis():
    assert "healthcare" in local_analysis("Checkup", 800, "Healthcare").recommendation
    assert "utility" in local_analysis("Electricity", 1500, "Utilities").recommendation
    assert "entertainment" in local_analysis("Movie", 400, "Entertainment").recommendation
    generic = local_analysis("Gadget", 1200, "Shopping")
    assert generic.recommendation.startswith("I've analyzed your Gadget expense of ₹1,200.00")


def test_format_currency_uses_indian_grouping():
    assert format_currency(0) == "₹0.00"
    assert format_currency(999.5) == "₹999.50"
    assert format_currency(123456.789) == "₹1,23,456.79"
    assert format_currency(12345678) == "₹1,23,45,678.00"


def test_parse_enrichment_response():
    parsed = parse_enrichment_response("Sentiment: Positive\nRecommendation: Keep it up.")
    assert parsed.sentiment == "positive"
    assert parsed.recommendation == "Keep it up."


def test_parse_enrichment_response_unknown_sentiment_is_neutral():
    parsed = parse_enrichment_response("**Sentiment:** mixed\n**Recommendation:** Cook at home.")
    assert parsed.sentiment == "neutral"
    assert parsed.recommendation == "Cook at home."


def test_parse_enrichment_response_requires_recommendation():
    with pytest.raises(UpstreamEnrichmentError):
        parse_enrichment_response("Sentiment: neutral")


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    def generate_content(self, prompt, **kwargs):
        self.calls.append((prompt, kwargs))
        if self.error:
            raise self.error
        return FakeResponse(self.text)


def test_gemini_enrichment_parses_model_reply():
    model = FakeModel(text="Sentiment: negative\nRecommendation: Skip the extra coffee.")
    provider = GeminiEnrichment(api_key="k", model_name="m", timeout=2.5, model=model)
    result = provider.analyze("Coffee", 150, "Food")
    assert result.sentiment == "negative"
    assert result.recommendation == "Skip the extra coffee."
    prompt, kwargs = model.calls[0]
    assert "Coffee" in prompt
    assert kwargs["request_options"] == {"timeout": 2.5}


def test_gemini_enrichment_falls_back_on_timeout():
    model = FakeModel(error=TimeoutError("deadline exceeded"))
    provider = GeminiEnrichment(api_key="k", model_name="m", timeout=1, fallback=LocalEnrichment(), model=model)
    result = provider.analyze("Groceries", 500, "Food")
    assert result == local_analysis("Groceries", 500, "Food")


def test_gemini_enrichment_without_fallback_raises():
    provider = GeminiEnrichment(api_key="k", model_name="m", timeout=1, model=FakeModel(error=RuntimeError("boom")))
    with pytest.raises(UpstreamEnrichmentError):
        provider.analyze("Groceries", 500, "Food")


def test_build_provider_without_key_is_local():
    assert isinstance(build_enrichment_provider(Settings(GEMINI_API_KEY=None)), LocalEnrichment)
    placeholder = Settings(GEMINI_API_KEY="your_actual_gemini_api_key_here")
    assert isinstance(build_enrichment_provider(placeholder), LocalEnrichment)
