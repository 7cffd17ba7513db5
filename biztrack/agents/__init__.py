"""AI agents package."""

from biztrack.agents.insights_agent import (
    AnalysisResult,
    FocusProduct,
    InsightsAgent,
    InsightsError,
    PricingAdjustment,
    build_analysis_prompt,
    parse_analysis,
    summarize_snapshot,
)

__all__ = [
    "AnalysisResult",
    "FocusProduct",
    "InsightsAgent",
    "InsightsError",
    "PricingAdjustment",
    "build_analysis_prompt",
    "parse_analysis",
    "summarize_snapshot",
]
