"""AI loan advisor.

Turns a computed schedule summary into a short prompt for a language model
and returns the model's prose. The advisor never raises: a missing API key,
an empty answer or a failing request all produce a readable message instead.
"""

from __future__ import annotations

import logging
import os

from .data_models import GRACE_TOTAL, CalculationResult, LoanParameters

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

SYSTEM_INSTRUCTION = """Act as an expert financial advisor. Your goal is to analyze loan details provided by the user.
Provide a concise, mobile-friendly analysis.
1. Evaluate if the Annual Rate (TEA) is competitive (assume standard consumer market context).
2. Highlight the impact of the grace period (especially if capitalized) and insurance costs.
3. Give a clear verdict: "Favorable", "Neutral", or "Expensive".
4. Provide 2 actionable tips to reduce interest.
Format using Markdown. Keep it short (under 200 words)."""

MISSING_KEY_MESSAGE = "Error: API key is missing. Please set OPENAI_API_KEY in your environment."
NO_ANALYSIS_MESSAGE = "No analysis available."
FALLBACK_MESSAGE = "Sorry, the AI financial advisor could not be reached right now."


def _api_key() -> str:
    return os.environ.get("OPENAI_API_KEY", "")


def _model() -> str:
    return os.environ.get("ADVISOR_MODEL", DEFAULT_MODEL)


def build_advice_prompt(params: LoanParameters, result: CalculationResult) -> str:
    summary = result.summary
    grace_label = "Capitalized/Total" if params.grace_type == GRACE_TOTAL else "Interest Only/Partial"
    return f"""Please analyze this loan scenario:
- Loan Amount: {params.amount}
- Term: {params.term} {params.term_unit}
- Annual Effective Rate (TEA): {summary.annual_rate * 100:.2f}%
- Monthly Rate (TEM): {summary.monthly_rate * 100:.2f}%
- Total Interest Payable: {summary.total_interest:.2f}
- Total Cost of Loan: {summary.total_payment:.2f}
- Grace Period: {params.grace_period} months ({grace_label})
- Grace Days: {params.grace_days} days (Capitalized)
- Insurance/Fees included.

Is this a good financial decision for a personal loan? Note any risks with the grace period type selected."""


def _chat(messages: list[dict]) -> str:
    from openai import OpenAI

    client = OpenAI(api_key=_api_key())
    resp = client.chat.completions.create(
        model=_model(),
        messages=messages,
        temperature=0.4,
        max_tokens=600,
    )
    return resp.choices[0].message.content or ""


def get_financial_advice(params: LoanParameters, result: CalculationResult) -> str:
    """Return a short written assessment of the loan."""
    if not _api_key():
        return MISSING_KEY_MESSAGE
    try:
        text = _chat([
            {"role": "system", "content": SYSTEM_INSTRUCTION},
            {"role": "user", "content": build_advice_prompt(params, result)},
        ])
    except Exception as e:
        logger.warning("AI advisor request failed: %s", e)
        return FALLBACK_MESSAGE
    return text or NO_ANALYSIS_MESSAGE
