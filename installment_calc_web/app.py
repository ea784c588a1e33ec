import logging
import os

import click
from flask import Flask, jsonify, request

from installment_calc.advisor import get_financial_advice
from installment_calc.engine import compute_schedule, outstanding_balance
from installment_calc.main import build_parameters_from_options, serialize_schedule, serialize_summary

logger = logging.getLogger(__name__)

app = Flask(__name__)

# Payload keys accepted by the API, mapped to build_parameters_from_options
PAYLOAD_FIELDS = (
    "amount",
    "rate",
    "term",
    "start_date",
    "rate_type",
    "term_unit",
    "grace_period",
    "grace_type",
    "grace_days",
    "insurance",
    "fixed_fee",
    "paid_installments",
    "extra_payment",
    "extra_month",
    "strategy",
)
REQUIRED_FIELDS = ("amount", "rate", "term", "start_date")


def _payload_to_parameters(payload: dict):
    missing = [name for name in REQUIRED_FIELDS if payload.get(name) in (None, "")]
    if missing:
        raise ValueError(f"Missing required field(s): {', '.join(missing)}")
    options = {}
    for name in PAYLOAD_FIELDS:
        value = payload.get(name)
        if value is None:
            continue
        # Numbers arrive as JSON floats/ints; the parsers work on strings
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        options[name] = value if isinstance(value, int) and not isinstance(value, bool) else str(value)
    return build_parameters_from_options(**options)


def _read_payload():
    if not request.is_json:
        return None
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else None


def _bad_request(message: str):
    return jsonify({"error": message}), 400


def _compute_from_request():
    """Return ``(params, result, None)`` or ``(None, None, error_response)``."""
    payload = _read_payload()
    if payload is None:
        return None, None, _bad_request("Invalid Content-Type or body. Must be a JSON object.")
    try:
        params = _payload_to_parameters(payload)
    except (ValueError, click.ClickException) as exc:
        return None, None, _bad_request(str(exc))
    try:
        result = compute_schedule(params)
    except Exception:
        logger.exception("Schedule calculation failed")
        return None, None, (jsonify({"error": "Calculation failed"}), 500)
    return params, result, None


@app.get("/health")
def health():
    return jsonify({"status": "ok"})


@app.post("/api/schedule")
def schedule():
    params, result, error = _compute_from_request()
    if error is not None:
        return error
    return jsonify(
        {
            "start_date": result.start_date.isoformat(),
            "summary": serialize_summary(result.summary),
            "schedule": serialize_schedule(result.schedule),
            "outstanding_balance": float(outstanding_balance(params, result)),
        }
    )


@app.post("/api/advice")
def advice():
    params, result, error = _compute_from_request()
    if error is not None:
        return error
    return jsonify({"advice": get_financial_advice(params, result)})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    port = int(os.environ.get("INSTALLMENT_CALC_PORT", "8710"))
    logger.info("Starting installment calculator API on port %d", port)
    app.run(host="0.0.0.0", port=port, debug=True)
