"""
routes/settlements.py — Settlement suggestion route handler.

Layer rules:
  - Parse, validate, call ONE service, return envelope.
  - Suggestions are not recorded. Recording a payment is the owning
    application's job.

Endpoints (url_prefix=/api/v1):
  POST /settlements/suggest  → 200  transfers that zero the posted balances
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from sharedledger.routes.serializers import serialize_suggestion
from sharedledger.schemas.settlement_schema import SettlementRequestSchema
from sharedledger.services import settlement_service

settlements_bp = Blueprint("settlements", __name__)


@settlements_bp.route("/settlements/suggest", methods=["POST"])
def suggest_settlements():
    """
    POST /settlements/suggest

    Body: {"currency": "USD", "balances": {"alice": "30.00", "bob": "-30.00"}}

    Balances must sum to zero (UNBALANCED_BALANCES, 422 otherwise).
    """
    data = SettlementRequestSchema().load(request.get_json(force=True) or {})
    suggestions = settlement_service.suggest_settlements(
        data["balances"],
        currency=data["currency"],
    )
    return jsonify({
        "data": {
            "currency": data["currency"],
            "suggestions": [serialize_suggestion(s) for s in suggestions],
        },
        "warnings": [],
    }), 200
