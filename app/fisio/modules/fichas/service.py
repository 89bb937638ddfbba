from __future__ import annotations

import json
import re
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import String, func, or_

from app.fisio.audit import changed_fields, record_event
from app.fisio.modules.fichas.clinical import apply_derived_vitals
from app.fisio.modules.fichas.fields import ALL_FIELDS, FIELDS_BY_KEY, READ_ONLY_KEYS, FieldSpec
from app.fisio.modules.fichas.models import Ficha
from app.fisio.modules.orthopedic.service import apply_suggestion, validate_orthopedic_payload

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.fisio.models import User


PROBABILIDADES = ("Alta", "Moderada", "Baixa")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_TRUE_STRINGS = ("on", "true", "1", "sim", "yes")
_FALSE_STRINGS = ("", "off", "false", "0", "não", "nao", "no")

# Postgres enforces these; SQLite does not.
_INT_MIN, _INT_MAX = -(2**31), 2**31 - 1
_MAX_LENGTHS: dict[str, int] = {
    c.name: c.type.length for c in Ficha.__table__.columns if isinstance(c.type, String) and c.type.length
}


class FieldError(ValueError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


def _coerce(spec: FieldSpec, raw: Any) -> Any:
    """Convert one raw payload value to its column value or raise FieldError."""
    if spec.kind in ("text", "textarea", "data"):
        if raw is None:
            return None
        if isinstance(raw, (dict, list)):
            raise FieldError(spec.key, f"{spec.label}: valor deve ser texto.")
        text = str(raw).strip()
        limit = _MAX_LENGTHS.get(spec.key)
        if limit is not None and len(text) > limit:
            raise FieldError(spec.key, f"{spec.label}: máximo de {limit} caracteres.")
        return text or None

    if spec.kind == "int":
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return None
        if isinstance(raw, bool):
            raise FieldError(spec.key, f"{spec.label}: deve ser um número inteiro.")
        if isinstance(raw, float) and raw.is_integer():
            raw = int(raw)
        try:
            value = int(str(raw).strip())
        except ValueError:
            raise FieldError(spec.key, f"{spec.label}: deve ser um número inteiro.")
        if spec.min_value is not None and value < spec.min_value:
            raise FieldError(spec.key, f"{spec.label}: valor mínimo é {spec.min_value}.")
        if spec.max_value is not None and value > spec.max_value:
            raise FieldError(spec.key, f"{spec.label}: valor máximo é {spec.max_value}.")
        if not _INT_MIN <= value <= _INT_MAX:
            raise FieldError(spec.key, f"{spec.label}: valor fora do intervalo permitido.")
        return value

    if spec.kind == "bool":
        if raw is None:
            return False
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise FieldError(spec.key, f"{spec.label}: valor booleano inválido.")

    if spec.kind == "json":
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return None
        value = raw
        if isinstance(raw, str):
            try:
                value = json.loads(raw)
            except json.JSONDecodeError as e:
                raise FieldError(spec.key, f"{spec.label}: JSON inválido ({e.msg}).")
        if spec.json_shape and not isinstance(value, spec.json_shape):
            expected = " ou ".join("lista" if t is list else "objeto" for t in spec.json_shape)
            raise FieldError(spec.key, f"{spec.label}: esperado {expected} JSON.")
        return value

    raise FieldError(spec.key, f"Tipo de campo desconhecido: {spec.kind}")


def _check_semantics(values: dict[str, Any], partial: bool) -> list[tuple[str, str]]:
    errors: list[tuple[str, str]] = []

    if not partial or "nome_paciente" in values:
        if not values.get("nome_paciente"):
            errors.append(("nome_paciente", "Nome do paciente é obrigatório."))

    email = values.get("email")
    if email and not _EMAIL_RE.match(email):
        errors.append(("email", "E-mail inválido."))

    prob = values.get("probabilidade_clinica")
    if prob and prob not in PROBABILIDADES:
        errors.append(("probabilidade_clinica", f"Probabilidade inválida. Use uma de: {', '.join(PROBABILIDADES)}"))

    errors.extend(validate_orthopedic_payload(values.get("regiao_avaliada"), values.get("testes_ortopedicos_json")))
    return errors


def clean_ficha_payload(payload: dict, partial: bool = False) -> tuple[dict[str, Any], list[tuple[str, str]]]:
    """
    Coerce a raw payload (JSON body or parsed form) into column values.

    Full mode yields every known field (absent -> empty); partial mode yields only
    the keys present. Unknown and read-only keys are ignored.
    """
    values: dict[str, Any] = {}
    errors: list[tuple[str, str]] = []
    for spec in ALL_FIELDS:
        if partial and spec.key not in payload:
            continue
        try:
            values[spec.key] = _coerce(spec, payload.get(spec.key))
        except FieldError as e:
            errors.append((e.field, e.message))

    if values.get("regiao_avaliada"):
        values["regiao_avaliada"] = values["regiao_avaliada"].lower()

    if not errors:
        errors.extend(_check_semantics(values, partial))
    return values, errors


def validate_ficha_payload(payload: dict, partial: bool = False) -> list[tuple[str, str]]:
    """Validate ficha creation/update payload. Returns list of (field, message)."""
    _, errors = clean_ficha_payload(payload, partial=partial)
    return errors


def _ficha_values(ficha: Ficha) -> dict[str, Any]:
    return {spec.key: getattr(ficha, spec.key) for spec in ALL_FIELDS}


def _apply_derivations(ficha: Ficha) -> None:
    values = _ficha_values(ficha)
    apply_derived_vitals(values)
    apply_suggestion(values)
    for key, value in values.items():
        if getattr(ficha, key) != value:
            setattr(ficha, key, value)


def create_ficha(s: "Session", payload: dict, user: "User") -> Ficha:
    """Create a new ficha owned by ``user``. Payload must already be validated."""
    values, errors = clean_ficha_payload(payload)
    if errors:
        field, message = errors[0]
        raise FieldError(field, message)

    now = datetime.utcnow()
    ficha = Ficha(user_id=user.id, created_at=now, updated_at=now, **values)
    _apply_derivations(ficha)
    s.add(ficha)
    s.flush()

    record_event(
        s,
        actor=user,
        action="ficha.create",
        entity_type="Ficha",
        entity_id=str(ficha.id),
        metadata={"regiao_avaliada": ficha.regiao_avaliada},
    )
    return ficha


def update_ficha(s: "Session", ficha: Ficha, payload: dict, user: "User", partial: bool = True) -> Ficha:
    """Update an existing ficha; ``partial=False`` clears every field the payload omits."""
    values, errors = clean_ficha_payload(payload, partial=partial)
    if errors:
        field, message = errors[0]
        raise FieldError(field, message)

    before = _ficha_values(ficha)
    for key, value in values.items():
        if before[key] != value:
            setattr(ficha, key, value)
    _apply_derivations(ficha)
    changed = changed_fields(before, _ficha_values(ficha))

    ficha.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="ficha.edit",
        entity_type="Ficha",
        entity_id=str(ficha.id),
        metadata={"changes": changed, "partial": partial},
    )
    return ficha


def delete_ficha(s: "Session", ficha: Ficha, user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="ficha.delete",
        entity_type="Ficha",
        entity_id=str(ficha.id),
    )
    s.delete(ficha)


def get_ficha_for_user(s: "Session", ficha_id: int, user: "User") -> Ficha | None:
    ficha = s.get(Ficha, ficha_id)
    if not ficha or ficha.user_id != user.id:
        return None
    return ficha


def list_fichas(s: "Session", user: "User", search: str | None = None) -> list[Ficha]:
    q = s.query(Ficha).filter(Ficha.user_id == user.id)
    search = (search or "").strip()
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Ficha.nome_paciente.ilike(like), Ficha.cpf.like(like)))
    return q.order_by(Ficha.created_at.desc(), Ficha.id.desc()).all()


def dashboard_stats(s: "Session", user: "User", today: date | None = None) -> dict[str, Any]:
    today = today or date.today()
    month_start = datetime(today.year, today.month, 1)

    base = s.query(Ficha).filter(Ficha.user_id == user.id)
    total = base.count()
    patients = (
        s.query(func.count(func.distinct(Ficha.nome_paciente)))
        .filter(Ficha.user_id == user.id)
        .filter(Ficha.nome_paciente.isnot(None))
        .scalar()
    )
    this_month = base.filter(Ficha.created_at >= month_start).count()
    recent = base.order_by(Ficha.created_at.desc(), Ficha.id.desc()).limit(5).all()
    return {
        "total_patients": patients or 0,
        "total_fichas": total,
        "this_month": this_month,
        "recent": recent,
    }


def ficha_to_dict(ficha: Ficha) -> dict[str, Any]:
    out: dict[str, Any] = {"id": ficha.id, "user_id": ficha.user_id}
    out.update(_ficha_values(ficha))
    out["created_at"] = ficha.created_at.isoformat() if ficha.created_at else None
    out["updated_at"] = ficha.updated_at.isoformat() if ficha.updated_at else None
    return out


def ignored_keys(payload: dict) -> list[str]:
    """Keys a client sent that are read-only or unknown (logged, never applied)."""
    return sorted(k for k in payload if k in READ_ONLY_KEYS or k not in FIELDS_BY_KEY)
