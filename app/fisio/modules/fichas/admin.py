from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any

from flask import Blueprint, abort, flash, redirect, render_template, request, url_for
from werkzeug.datastructures import MultiDict

from app.fisio.audit import ACTION_LABELS, events_for
from app.fisio.auth import current_user, login_required
from app.fisio.db import db_session
from app.fisio.modules.fichas.fields import ALL_FIELDS, DATA_FIELDS, SECTIONS
from app.fisio.modules.fichas.models import Ficha
from app.fisio.modules.fichas.service import (
    clean_ficha_payload,
    create_ficha,
    dashboard_stats,
    delete_ficha,
    get_ficha_for_user,
    list_fichas,
    update_ficha,
)
from app.fisio.modules.orthopedic.rules import REGIONS, REGIONS_BY_KEY, display_result

bp = Blueprint("fichas", __name__)

_TEST_PREFIX = "teste__"
_FORM_SKIPPED = {f.key for f in DATA_FIELDS}


@bp.app_template_filter("resultado")
def _resultado_filter(value: Any) -> str:
    return display_result(value)


def payload_from_form(form: MultiDict) -> dict[str, Any]:
    """
    Flatten the HTML form into a ficha payload.

    Orthopedic tests arrive as ``teste__<id>`` selects for every region; only the
    selected region's tests are kept.
    """
    payload: dict[str, Any] = {}
    for spec in ALL_FIELDS:
        if spec.key in _FORM_SKIPPED or spec.key == "testes_ortopedicos_json":
            continue
        payload[spec.key] = form.get(spec.key)

    region = REGIONS_BY_KEY.get((form.get("regiao_avaliada") or "").strip().lower())
    if region is not None:
        payload["testes_ortopedicos_json"] = {
            t.id: form.get(f"{_TEST_PREFIX}{t.id}") for t in region.tests if form.get(f"{_TEST_PREFIX}{t.id}")
        }
    else:
        payload["testes_ortopedicos_json"] = None
    return payload


def _form_values_from_ficha(ficha: Ficha) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for spec in ALL_FIELDS:
        value = getattr(ficha, spec.key)
        if spec.kind == "json" and spec.key != "testes_ortopedicos_json":
            value = json.dumps(value, ensure_ascii=False, indent=2) if value is not None else ""
        values[spec.key] = value
    for test_id, value in (ficha.testes_ortopedicos_json or {}).items():
        values[f"{_TEST_PREFIX}{test_id}"] = value
    return values


def _render_form(ficha: Ficha | None, values: dict[str, Any], status: int = 200):
    return (
        render_template(
            "fichas/form.html",
            ficha=ficha,
            values=values,
            sections=SECTIONS,
            regions=REGIONS,
            test_prefix=_TEST_PREFIX,
        ),
        status,
    )


def _load_owned(ficha_id: int) -> Ficha:
    ficha = get_ficha_for_user(db_session(), ficha_id, current_user())
    if not ficha:
        abort(404)
    return ficha


# ---------- Dashboard ----------
@bp.get("/")
@login_required
def dashboard():
    s = db_session()
    # created_at is stored in UTC
    stats = dashboard_stats(s, current_user(), today=datetime.utcnow().date())
    return render_template("fichas/dashboard.html", stats=stats)


# ---------- List ----------
@bp.get("/fichas")
@login_required
def fichas_list():
    s = db_session()
    search = (request.args.get("q") or "").strip()
    fichas = list_fichas(s, current_user(), search=search)
    return render_template("fichas/list.html", fichas=fichas, search=search)


# ---------- New ----------
@bp.get("/fichas/new")
@login_required
def fichas_new_get():
    return _render_form(None, {"data_avaliacao": date.today().isoformat()})


@bp.post("/fichas/new")
@login_required
def fichas_new_post():
    s = db_session()
    payload = payload_from_form(request.form)

    _, errors = clean_ficha_payload(payload)
    if errors:
        for _field, message in errors:
            flash(message, "danger")
        return _render_form(None, request.form.to_dict(), status=400)

    ficha = create_ficha(s, payload, current_user())
    s.commit()

    flash("Avaliação criada com sucesso.", "success")
    return redirect(url_for("fichas.ficha_detail", ficha_id=ficha.id))


# ---------- Detail ----------
@bp.get("/fichas/<int:ficha_id>")
@login_required
def ficha_detail(ficha_id: int):
    ficha = _load_owned(ficha_id)
    region = REGIONS_BY_KEY.get(ficha.regiao_avaliada or "")
    history = events_for(db_session(), "Ficha", str(ficha.id))
    return render_template(
        "fichas/detail.html",
        ficha=ficha,
        sections=SECTIONS,
        region=region,
        data_fields=DATA_FIELDS,
        history=history,
        action_labels=ACTION_LABELS,
    )


# ---------- Edit ----------
@bp.get("/fichas/<int:ficha_id>/edit")
@login_required
def ficha_edit_get(ficha_id: int):
    ficha = _load_owned(ficha_id)
    return _render_form(ficha, _form_values_from_ficha(ficha))


@bp.post("/fichas/<int:ficha_id>/edit")
@login_required
def ficha_edit_post(ficha_id: int):
    s = db_session()
    ficha = _load_owned(ficha_id)
    payload = payload_from_form(request.form)
    # Images are captured through the API; a form save must not wipe them.
    for spec in DATA_FIELDS:
        payload[spec.key] = getattr(ficha, spec.key)

    _, errors = clean_ficha_payload(payload)
    if errors:
        for _field, message in errors:
            flash(message, "danger")
        return _render_form(ficha, request.form.to_dict(), status=400)

    update_ficha(s, ficha, payload, current_user(), partial=False)
    s.commit()

    flash("Avaliação atualizada com sucesso.", "success")
    return redirect(url_for("fichas.ficha_detail", ficha_id=ficha.id))


# ---------- Delete ----------
@bp.post("/fichas/<int:ficha_id>/delete")
@login_required
def ficha_delete(ficha_id: int):
    s = db_session()
    ficha = _load_owned(ficha_id)
    delete_ficha(s, ficha, current_user())
    s.commit()

    flash("Avaliação excluída com sucesso.", "success")
    return redirect(url_for("fichas.fichas_list"))
