"""Tests for the AI advisor boundary."""

from datetime import date
from decimal import Decimal

import pytest

from installment_calc import advisor
from installment_calc.data_models import GRACE_TOTAL, LoanParameters
from installment_calc.engine import compute_schedule

PARAMS = LoanParameters(
    amount=Decimal("10000"),
    rate_value=Decimal("15"),
    term=12,
    start_date=date(2024, 1, 15),
    grace_period=2,
    grace_type=GRACE_TOTAL,
    grace_days=5,
)


@pytest.fixture
def result():
    return compute_schedule(PARAMS)


@pytest.fixture
def with_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")


def test_prompt_contains_summary_fields(result):
    prompt = advisor.build_advice_prompt(PARAMS, result)
    assert "Loan Amount: 10000" in prompt
    assert "Term: 12 months" in prompt
    assert "(TEA): 15.00%" in prompt
    assert f"Total Interest Payable: {result.summary.total_interest:.2f}" in prompt
    assert "Grace Period: 2 months (Capitalized/Total)" in prompt
    assert "Grace Days: 5 days" in prompt


def test_missing_api_key(monkeypatch, result):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    assert advisor.get_financial_advice(PARAMS, result) == advisor.MISSING_KEY_MESSAGE


def test_returns_model_text(monkeypatch, with_key, result):
    captured = {}

    def fake_chat(messages):
        captured["messages"] = messages
        return "**Verdict:** Neutral"

    monkeypatch.setattr(advisor, "_chat", fake_chat)
    assert advisor.get_financial_advice(PARAMS, result) == "**Verdict:** Neutral"
    assert captured["messages"][0] == {"role": "system", "content": advisor.SYSTEM_INSTRUCTION}
    assert "Please analyze this loan scenario" in captured["messages"][1]["content"]


def test_empty_answer(monkeypatch, with_key, result):
    monkeypatch.setattr(advisor, "_chat", lambda messages: "")
    assert advisor.get_financial_advice(PARAMS, result) == advisor.NO_ANALYSIS_MESSAGE


def test_client_failure_falls_back(monkeypatch, with_key, result, caplog):
    def failing_chat(messages):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(advisor, "_chat", failing_chat)
    assert advisor.get_financial_advice(PARAMS, result) == advisor.FALLBACK_MESSAGE
    assert "connection refused" in caplog.text


def test_model_from_environment(monkeypatch):
    monkeypatch.delenv("ADVISOR_MODEL", raising=False)
    assert advisor._model() == advisor.DEFAULT_MODEL
    monkeypatch.setenv("ADVISOR_MODEL", "gpt-4.1")
    assert advisor._model() == "gpt-4.1"
