"""
Per-expense "spending analysis": a sentiment label plus a recommendation.

The local table below always produces an answer. When a Gemini API key is
configured, GeminiEnrichment asks the model first and falls back to the local
table on any upstream failure.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import google.generativeai as genai

from app.core.errors import UpstreamEnrichmentError
from app.utils.classification import ShoppingItem, SpendCategory, classify_category, classify_item
from app.utils.formatting import format_currency

logger = logging.getLogger(__name__)

# Amount tiers (inclusive upper bounds, primary currency unit)
FOOTWEAR_ECONOMICAL_MAX = 2000
FOOTWEAR_REASONABLE_MAX = 5000
BAG_REASONABLE_MAX = 3000
BAG_PREMIUM_MAX = 10000
CLOTHING_REASONABLE_MAX = 3000
FOOD_REASONABLE_MAX = 1000
FOOD_MODERATE_MAX = 3000

SENTIMENTS = ("positive", "neutral", "negative")
PLACEHOLDER_API_KEYS = ("", "your_actual_gemini_api_key_here")


@dataclass
class Enrichment:
    sentiment: str
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _footwear(description: str, amount: float, shown: str) -> Enrichment:
    if amount <= FOOTWEAR_ECONOMICAL_MAX:
        return Enrichment(
            "positive",
            f"Your {description} purchase of {shown} is quite economical. Quality footwear at this "
            "price point can be a good value, but make sure they'll last long enough to justify the cost.",
        )
    if amount <= FOOTWEAR_REASONABLE_MAX:
        return Enrichment(
            "neutral",
            f"Your {description} purchase of {shown} is reasonable for quality footwear. Consider this an "
            "investment in your comfort and health, as good shoes can prevent foot problems.",
        )
    return Enrichment(
        "neutral",
        f"Your {description} purchase of {shown} is in the premium range. For high-end footwear, consider "
        "the cost-per-wear: how often you'll use them and how long they'll last.",
    )


def _bag(description: str, amount: float, shown: str) -> Enrichment:
    if amount <= BAG_REASONABLE_MAX:
        return Enrichment(
            "positive",
            f"Your {description} purchase of {shown} is reasonable. Practical bags can last for years, "
            "making this a good long-term investment.",
        )
    if amount <= BAG_PREMIUM_MAX:
        return Enrichment(
            "neutral",
            f"Your {description} purchase of {shown} is significant. For premium bags, consider if this fits "
            "within your discretionary spending budget and if the quality justifies the higher price.",
        )
    return Enrichment(
        "negative",
        f"Your {description} purchase of {shown} is in the luxury category. While quality accessories can "
        "last for years, consider whether this expense aligns with your overall financial goals.",
    )


def _clothing(description: str, amount: float, shown: str) -> Enrichment:
    if amount <= CLOTHING_REASONABLE_MAX:
        return Enrichment(
            "neutral",
            f"Your clothing purchase of {shown} for {description} can be part of a thoughtful wardrobe "
            "strategy. Consider building a versatile collection with fewer, quality items rather than many "
            "cheaper ones.",
        )
    return Enrichment(
        "negative",
        f"Your clothing purchase of {shown} for {description} is on the higher side. Check whether it "
        "pairs with what you already own before adding more premium pieces.",
    )


def _food(description: str, amount: float, shown: str) -> Enrichment:
    if amount <= FOOD_REASONABLE_MAX:
        return Enrichment(
            "positive",
            f"Your {description} expense of {shown} is reasonable. For regular food expenses, meal planning "
            "can help optimize your budget further while reducing waste.",
        )
    if amount <= FOOD_MODERATE_MAX:
        return Enrichment(
            "neutral",
            f"Your {description} expense of {shown} is moderate. Consider buying staples in bulk and "
            "preparing more meals at home to manage your food budget effectively.",
        )
    return Enrichment(
        "negative",
        f"Your {description} expense of {shown} is relatively high. Try buying in bulk, using discounts, or "
        "opting for seasonal items to save on food expenses without sacrificing nutrition.",
    )


def _generic(description: str, shown: str) -> Enrichment:
    return Enrichment(
        "neutral",
        f"I've analyzed your {description} expense of {shown}. For better financial insights, categorize "
        "your expenses consistently and review them monthly to identify patterns and savings opportunities.",
    )


SHOPPING_ANALYSES = {
    ShoppingItem.FOOTWEAR: _footwear,
    ShoppingItem.BAG: _bag,
    ShoppingItem.CLOTHING: _clothing,
}


def local_analysis(description: str, amount: float, category: str) -> Enrichment:
    """Rule-based spending analysis for a single expense."""
    shown = format_currency(amount)
    kind = classify_category(category)

    if kind is SpendCategory.SHOPPING:
        analyse = SHOPPING_ANALYSES.get(classify_item(description))
        if analyse is not None:
            return analyse(description, amount, shown)
        return _generic(description, shown)

    if kind is SpendCategory.FOOD:
        return _food(description, amount, shown)

    if kind is SpendCategory.HEALTHCARE:
        return Enrichment(
            "neutral",
            f"Your healthcare expense of {shown} for {description} is an important investment in your "
            "wellbeing. Consider if you're maximizing insurance benefits and preventative care to minimize "
            "long-term costs.",
        )

    if kind is SpendCategory.UTILITIES:
        return Enrichment(
            "neutral",
            f"Your {description} expense of {shown} is a necessity. To optimize utility costs, review your "
            "usage patterns and consider energy-efficient alternatives where possible.",
        )

    if kind is SpendCategory.ENTERTAINMENT:
        return Enrichment(
            "neutral",
            f"For entertainment expenses like {description}, consider setting a monthly budget of 5-10% of "
            "your income. Look for free or low-cost alternatives occasionally to balance enjoyment with savings.",
        )

    if kind is SpendCategory.TRANSPORT:
        return Enrichment(
            "neutral",
            f"For transport costs like {description}, consider public transportation or carpooling to reduce "
            "your monthly spend when possible.",
        )

    return _generic(description, shown)


class LocalEnrichment:
    name = "local"

    def analyze(self, description: str, amount: float, category: str) -> Enrichment:
        return local_analysis(description, amount, category)


def parse_enrichment_response(text: str) -> Enrichment:
    """Parse a ``Sentiment: ...`` / ``Recommendation: ...`` model reply."""
    sentiment: Optional[str] = None
    recommendation: Optional[str] = None
    for line in (text or "").splitlines():
        label, _, value = line.strip().partition(":")
        key = label.strip().strip("*").strip().lower()
        if key == "sentiment" and value.strip():
            sentiment = value.strip().strip("*").strip().lower()
        elif key == "recommendation" and value.strip():
            recommendation = value.strip().lstrip("*").strip()

    if not recommendation:
        raise UpstreamEnrichmentError("Enrichment reply did not contain a recommendation")
    if sentiment not in SENTIMENTS:
        sentiment = "neutral"
    return Enrichment(sentiment, recommendation)


class GeminiEnrichment:
    name = "gemini"

    PROMPT = """Analyze this expense:
Description: {description}
Amount: {amount}
Category: {category}

Provide:
1. A sentiment analysis (positive/neutral/negative)
2. A specific, actionable financial recommendation related to this expense
3. Make sure the recommendation is personalized to the expense type and amount

Format your response as:
Sentiment: [sentiment]
Recommendation: [recommendation]"""

    def __init__(
        self,
        api_key: str,
        model_name: str,
        timeout: float,
        fallback: Optional[LocalEnrichment] = None,
        model=None,
    ):
        self.timeout = timeout
        self.fallback = fallback
        if model is None:
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(model_name)
        self._model = model

    def _ask(self, description: str, amount: float, category: str) -> Enrichment:
        prompt = self.PROMPT.format(
            description=description,
            amount=format_currency(amount),
            category=category,
        )
        try:
            response = self._model.generate_content(
                prompt,
                generation_config=genai.GenerationConfig(temperature=0.3, max_output_tokens=300),
                request_options={"timeout": self.timeout},
            )
            text = response.text
        except Exception as e:
            raise UpstreamEnrichmentError(f"Gemini API error: {e}") from e
        return parse_enrichment_response(text)

    def analyze(self, description: str, amount: float, category: str) -> Enrichment:
        try:
            return self._ask(description, amount, category)
        except UpstreamEnrichmentError as e:
            logger.warning(f"Enrichment unavailable, using local analysis: {e}")
            if self.fallback is None:
                raise
            return self.fallback.analyze(description, amount, category)


def build_enrichment_provider(settings):
    api_key = (settings.GEMINI_API_KEY or "").strip()
    if api_key in PLACEHOLDER_API_KEYS:
        logger.info("No Gemini API key configured; using local spending analysis")
        return LocalEnrichment()
    logger.info(f"Using Gemini model {settings.GEMINI_MODEL} for spending analysis")
    return GeminiEnrichment(
        api_key=api_key,
        model_name=settings.GEMINI_MODEL,
        timeout=settings.ENRICHMENT_TIMEOUT_SECONDS,
        fallback=LocalEnrichment(),
    )
