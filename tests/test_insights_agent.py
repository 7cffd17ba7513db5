"""
Tests for the Insights Agent

Gemini is never called: the agent takes any object with
generate_content(), and these tests hand it a mock.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from biztrack.agents import (
    AnalysisResult,
    InsightsAgent,
    InsightsError,
    build_analysis_prompt,
    parse_analysis,
    summarize_snapshot,
)
from biztrack.config.settings import GeminiSettings
from biztrack.models.audit import AuditEventType
from biztrack.orchestrator import create_app_components


SAMPLE_REPLY = {
    "topFocusProducts": [{"productName": "Widget", "reason": "Best margin"}],
    "pricingAdjustments": [
        {"productName": "Widget", "suggestedAction": "Increase", "reason": "Sells out fast"}
    ],
    "marketingStrategy": ["Run a Facebook promotion"],
    "expenseOptimization": ["Negotiate courier rates"],
    "inventoryActions": ["Restock Widget"],
    "generalAnalysis": "Healthy margins, thin stock.",
}


def mock_model(text=None, error=None):
    model = MagicMock()
    if error is not None:
        model.generate_content.side_effect = error
    else:
        model.generate_content.return_value = MagicMock(text=text)
    return model


class TestSnapshotSummary:
    """Tests for what the model is shown."""

    def test_summary_contents(self, app, product):
        """Test the products, sales and expenses passed to the model."""
        app.ledger.create_sale(product.id, 2, platform="Facebook")
        refunded = app.ledger.create_sale(product.id, 1)
        app.ledger.refund_sale(refunded.id, delivery_paid_on_refund=True)
        app.expenses.add_expense("Marketing", "Ads", "12.5")

        summary = summarize_snapshot(app.snapshot())

        assert summary["currency"] == "BDT"
        assert summary["products"] == [{"name": "Widget", "cost": 30.0, "price": 50.0, "stock": 8}]
        assert len(summary["recentSales"]) == 1
        assert summary["recentSales"][0]["platform"] == "Facebook"
        assert summary["recentExpenses"] == [{"category": "Marketing", "amount": 12.5}]

    def test_summary_limits(self, app):
        """Test that only the latest 50 sales and 30 expenses are sent."""
        product = app.catalog.create_product("Bulk", "B", 1, 2, stock=100)
        for _ in range(60):
            app.ledger.create_sale(product.id, 1)
        for i in range(35):
            app.expenses.add_expense("Other", f"Item {i}", i)

        summary = summarize_snapshot(app.snapshot())

        assert len(summary["recentSales"]) == 50
        assert len(summary["recentExpenses"]) == 30
        assert summary["recentExpenses"][0]["amount"] == 34.0

    def test_prompt_embeds_data(self, app, product):
        """Test that the prompt carries the summary and asks for JSON."""
        prompt = build_analysis_prompt(app.snapshot())
        assert '"name": "Widget"' in prompt
        assert '"topFocusProducts"' in prompt
        assert "generalAnalysis" in prompt


class TestParseAnalysis:
    """Tests for parse_analysis."""

    def test_plain_json(self):
        """Test a clean JSON reply."""
        result = parse_analysis(json.dumps(SAMPLE_REPLY))
        assert result.top_focus_products[0].product_name == "Widget"
        assert result.pricing_adjustments[0].suggested_action == "Increase"
        assert result.general_analysis == "Healthy margins, thin stock."

    def test_json_in_code_fence(self):
        """Test that surrounding text is ignored."""
        text = "```json\n" + json.dumps(SAMPLE_REPLY) + "\n```"
        assert parse_analysis(text).inventory_actions == ["Restock Widget"]

    def test_missing_keys_default_empty(self):
        """Test a partial reply."""
        result = parse_analysis('{"generalAnalysis": "Quiet month."}')
        assert result.marketing_strategy == []
        assert result.general_analysis == "Quiet month."

    def test_no_json(self):
        """Test a reply without any object."""
        with pytest.raises(InsightsError):
            parse_analysis("I cannot help with that.")

    def test_broken_json(self):
        """Test a truncated reply."""
        with pytest.raises(InsightsError):
            parse_analysis('{"generalAnalysis": "cut off"')

    def test_wrong_shape(self):
        """Test a reply whose fields have the wrong types."""
        with pytest.raises(InsightsError):
            parse_analysis('{"marketingStrategy": "not a list"}')


class TestInsightsAgent:
    """Tests for InsightsAgent.analyze."""

    def test_analyze(self, app, product):
        """Test one request producing a structured result."""
        model = mock_model(text=json.dumps(SAMPLE_REPLY))
        result = InsightsAgent(model=model).analyze(app.snapshot())

        assert isinstance(result, AnalysisResult)
        model.generate_content.assert_called_once()
        assert "Widget" in model.generate_content.call_args.args[0]

    def test_service_failure(self, app):
        """Test that API errors become InsightsError."""
        agent = InsightsAgent(model=mock_model(error=RuntimeError("quota exceeded")))
        with pytest.raises(InsightsError):
            agent.analyze(app.snapshot())

    def test_empty_reply(self, app):
        """Test that an empty reply is an error, not an empty analysis."""
        agent = InsightsAgent(model=mock_model(text=""))
        with pytest.raises(InsightsError):
            agent.analyze(app.snapshot())

    def test_ledger_untouched(self, app, product, storage):
        """Test that an analysis never writes business data."""
        saves = storage.save_count
        InsightsAgent(model=mock_model(text=json.dumps(SAMPLE_REPLY))).analyze(app.snapshot())
        assert storage.save_count == saves

    def test_model_built_from_settings(self):
        """Test Gemini configuration from settings."""
        settings = GeminiSettings(api_key="test-key", model_name="gemini-test", temperature=0.5)
        with patch("biztrack.agents.insights_agent.genai") as genai:
            InsightsAgent(settings=settings)

        genai.configure.assert_called_once_with(api_key="test-key")
        kwargs = genai.GenerativeModel.call_args.kwargs
        assert kwargs["model_name"] == "gemini-test"
        assert kwargs["generation_config"]["temperature"] == 0.5
        assert kwargs["generation_config"]["response_mime_type"] == "application/json"

    def test_biztrack_analyze_uses_injected_agent(self, storage, audit_storage, clock, app_settings):
        """Test the orchestrator entry point."""
        agent = MagicMock()
        agent.analyze.return_value = AnalysisResult(general_analysis="ok")
        app = create_app_components(
            storage=storage,
            audit_storage=audit_storage,
            clock=clock,
            app_settings=app_settings,
            insights_agent=agent,
        )

        assert app.analyze().general_analysis == "ok"
        agent.analyze.assert_called_once()

    def test_biztrack_analyze_failure_is_audited(self, storage, audit_storage, clock, app_settings):
        """Test that a failed analysis leaves a system error in the audit trail."""
        agent = MagicMock()
        agent.analyze.side_effect = InsightsError("Model returned an empty reply")
        app = create_app_components(
            storage=storage,
            audit_storage=audit_storage,
            clock=clock,
            app_settings=app_settings,
            insights_agent=agent,
        )

        with pytest.raises(InsightsError):
            app.analyze()

        event = audit_storage.get_recent_events(limit=1)[0]
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.error_message == "Model returned an empty reply"
        assert event.description == "System error: insights_failed"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
