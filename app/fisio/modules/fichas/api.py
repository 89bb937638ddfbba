from __future__ import annotations

from flask import Blueprint, abort, current_app, jsonify, request

from app.fisio.auth import current_user, login_required
from app.fisio.db import db_session
from app.fisio.modules.fichas.service import (
    clean_ficha_payload,
    create_ficha,
    delete_ficha,
    ficha_to_dict,
    get_ficha_for_user,
    ignored_keys,
    list_fichas,
    update_ficha,
)

bp = Blueprint("fichas_api", __name__)


def _json_payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Corpo JSON inválido: esperado um objeto.")
    data.pop("csrf_token", None)
    skipped = ignored_keys(data)
    if skipped:
        current_app.logger.debug("ficha payload: ignoring keys %s", ", ".join(skipped))
    return data


def _validation_response(errors: list[tuple[str, str]]):
    field, message = errors[0]
    return jsonify(message=f"Dados inválidos: {message}", field=field), 400


@bp.get("/fichas")
@login_required
def fichas_list():
    s = db_session()
    fichas = list_fichas(s, current_user(), search=request.args.get("q"))
    return jsonify([ficha_to_dict(f) for f in fichas])


@bp.get("/fichas/<int:ficha_id>")
@login_required
def ficha_get(ficha_id: int):
    ficha = get_ficha_for_user(db_session(), ficha_id, current_user())
    if not ficha:
        return jsonify(message="Avaliação não encontrada"), 404
    return jsonify(ficha_to_dict(ficha))


@bp.post("/fichas")
@login_required
def ficha_create():
    s = db_session()
    payload = _json_payload()
    _, errors = clean_ficha_payload(payload)
    if errors:
        return _validation_response(errors)

    ficha = create_ficha(s, payload, current_user())
    s.commit()
    return jsonify(ficha_to_dict(ficha)), 201


@bp.route("/fichas/<int:ficha_id>", methods=["PUT", "PATCH"])
@login_required
def ficha_update(ficha_id: int):
    s = db_session()
    ficha = get_ficha_for_user(s, ficha_id, current_user())
    if not ficha:
        return jsonify(message="Avaliação não encontrada"), 404

    payload = _json_payload()
    _, errors = clean_ficha_payload(payload, partial=True)
    if errors:
        return _validation_response(errors)

    update_ficha(s, ficha, payload, current_user(), partial=True)
    s.commit()
    return jsonify(ficha_to_dict(ficha))


@bp.delete("/fichas/<int:ficha_id>")
@login_required
def ficha_delete(ficha_id: int):
    s = db_session()
    ficha = get_ficha_for_user(s, ficha_id, current_user())
    if not ficha:
        return jsonify(message="Avaliação não encontrada"), 404
    delete_ficha(s, ficha, current_user())
    s.commit()
    return "", 204
