"""
routes/splits.py — Split preview route handler.

Layer rules:
  - Parse, validate, call ONE service, return envelope.
  - No business logic. Nothing is stored.

Endpoints (url_prefix=/api/v1):
  POST /splits  → 200  computed participant amounts for one expense
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from sharedledger.errors import WarningCode
from sharedledger.routes.serializers import serialize_amount, serialize_participant
from sharedledger.schemas.split_schema import SplitRequestSchema
from sharedledger.services import split_service

splits_bp = Blueprint("splits", __name__)


@splits_bp.route("/splits", methods=["POST"])
def compute_split():
    """
    POST /splits

    Returns each participant's owed, paid and net amounts. An empty or
    partial paid_by is allowed for previews; a warning is attached when the
    payments do not cover the total.
    """
    data = SplitRequestSchema().load(request.get_json(force=True) or {})
    participants = split_service.compute_split(**data)

    total = data["total"]
    paid = sum(p.amount for p in data["paid_by"])
    warnings = []
    if paid != total.amount:
        warnings.append({
            "code": WarningCode.UNPAID_REMAINDER,
            "message": (
                f"Payments ({serialize_amount(paid, total.currency)}) do not cover the "
                f"total ({serialize_amount(total.amount, total.currency)}). "
                f"Net amounts will not sum to zero."
            ),
        })

    return jsonify({
        "data": {
            "total": serialize_amount(total.amount, total.currency),
            "currency": total.currency,
            "split_type": data["split_type"].value,
            "participants": [serialize_participant(p, total.currency) for p in participants],
        },
        "warnings": warnings,
    }), 200
