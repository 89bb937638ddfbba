from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.fisio.auth import login_required
from app.fisio.modules.orthopedic.rules import catalogue
from app.fisio.modules.orthopedic.service import build_suggestion, validate_orthopedic_payload

bp = Blueprint("orthopedic_api", __name__)


@bp.get("/avaliacao-ortopedica/regioes")
@login_required
def regions():
    return jsonify(catalogue())


@bp.post("/avaliacao-ortopedica/sugestao")
@login_required
def suggestion():
    data = request.get_json(silent=True) or {}
    region = data.get("regiao")
    results = data.get("testes")
    errors = validate_orthopedic_payload(region, results)
    if errors:
        field, message = errors[0]
        return jsonify(message=message, field=field), 400
    return jsonify(build_suggestion(region, results))
