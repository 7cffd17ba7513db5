"""
AI Insights Agent for BizTrack

CRITICAL BOUNDARIES:
- CAN: Read a snapshot summary (products, recent sales, recent expenses)
- CAN: Suggest focus products, pricing, marketing, expense and
  inventory actions
- CANNOT: Change anything in the ledger
- CANNOT: See anything that is not in the prompt built here

The LLM is an ADVISOR, not a BOOKKEEPER. Its output is shown to the
owner as suggestions and never written back.
"""

import json
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from biztrack.config import get_settings
from biztrack.config.settings import GeminiSettings
from biztrack.models.ledger import LedgerSnapshot


logger = structlog.get_logger(__name__)

MAX_SALES = 50
MAX_EXPENSES = 30


class InsightsError(Exception):
    """The analysis could not be produced."""
    pass


class _InsightModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FocusProduct(_InsightModel):
    product_name: str = ""
    reason: str = ""


class PricingAdjustment(_InsightModel):
    product_name: str = ""
    suggested_action: str = Field(default="", description="Increase, Decrease or Correct")
    reason: str = ""


class AnalysisResult(_InsightModel):
    """
    Structured analysis returned by the model.

    Field names match the JSON keys requested in the prompt.
    """

    top_focus_products: list[FocusProduct] = Field(default_factory=list)
    pricing_adjustments: list[PricingAdjustment] = Field(default_factory=list)
    marketing_strategy: list[str] = Field(default_factory=list)
    expense_optimization: list[str] = Field(default_factory=list)
    inventory_actions: list[str] = Field(default_factory=list)
    general_analysis: str = ""


def summarize_snapshot(snapshot: LedgerSnapshot) -> dict[str, Any]:
    """
    The business data the model is allowed to see.

    Lists in the snapshot are newest first, so the slices keep the most
    recent sales and expenses.
    """
    return {
        "currency": snapshot.settings.currency.value,
        "products": [
            {
                "name": p.name,
                "cost": float(p.buying_price),
                "price": float(p.selling_price),
                "stock": p.stock,
            }
            for p in snapshot.products
        ],
        "recentSales": [
            {
                "product": s.product_name,
                "platform": s.platform,
                "qty": s.quantity,
                "revenue": float(s.revenue),
                "profit": float(s.profit),
                "date": s.date.isoformat(),
            }
            for s in snapshot.completed_sales[:MAX_SALES]
        ],
        "recentExpenses": [
            {
                "category": e.category.value,
                "amount": float(e.amount),
            }
            for e in snapshot.expenses[:MAX_EXPENSES]
        ],
    }


def build_analysis_prompt(snapshot: LedgerSnapshot) -> str:
    """Prompt asking for a JSON analysis of the snapshot."""
    data = json.dumps(summarize_snapshot(snapshot), ensure_ascii=False)
    return f"""You are a business analyst AI. Here is the business data: {data}

Analyze it and provide:
1. Top 3 products to focus on.
2. Pricing suggestions (Increase/Decrease/Correct).
3. Marketing advice.
4. Expense optimizations.
5. Inventory guidance.
6. A general analysis summary.
Provide specific, actionable advice based on the numbers.

Respond with ONLY a JSON object in this exact format:
{{"topFocusProducts": [{{"productName": "...", "reason": "..."}}],
 "pricingAdjustments": [{{"productName": "...", "suggestedAction": "Increase", "reason": "..."}}],
 "marketingStrategy": ["..."],
 "expenseOptimization": ["..."],
 "inventoryActions": ["..."],
 "generalAnalysis": "..."}}"""


def parse_analysis(text: str) -> AnalysisResult:
    """
    Parse the model's reply.

    Raises:
        InsightsError: the reply has no valid JSON object
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise InsightsError("Model reply contained no JSON object")
    try:
        return AnalysisResult.model_validate(json.loads(text[start:end]))
    except (json.JSONDecodeError, ValidationError) as e:
        raise InsightsError(f"Could not parse model reply: {e}")


class InsightsAgent:
    """
    Asks Gemini for a business analysis of a ledger snapshot.

    BOUNDARIES:
    - Read-only: takes a snapshot, returns suggestions
    - One request per analyze() call, no automatic retry
    """

    def __init__(
        self,
        model: Optional[Any] = None,
        settings: Optional[GeminiSettings] = None,
    ):
        """
        Args:
            model: Anything with generate_content(prompt). Built from
                GEMINI_* settings when omitted.
        """
        if model is None:
            model = self._configure_genai(settings or get_settings().gemini)
        self._model = model

    def _configure_genai(self, settings: GeminiSettings):
        """Configure Google Generative AI."""
        genai.configure(api_key=settings.api_key)
        return genai.GenerativeModel(
            model_name=settings.model_name,
            generation_config={
                "temperature": settings.temperature,
                "max_output_tokens": settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    def analyze(self, snapshot: LedgerSnapshot) -> AnalysisResult:
        """
        Raises:
            InsightsError: the service failed or the reply was unusable
        """
        prompt = build_analysis_prompt(snapshot)
        try:
            response = self._model.generate_content(prompt)
            text = response.text
        except Exception as e:
            logger.error("insights_request_failed", error=str(e))
            raise InsightsError(f"Failed to generate insights: {e}")

        if not text:
            raise InsightsError("Model returned an empty reply")

        result = parse_analysis(text)
        logger.info(
            "insights_generated",
            products=len(snapshot.products),
            focus_products=len(result.top_focus_products),
        )
        return result
