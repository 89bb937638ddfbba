"""
Append-only audit trail.

Ficha events store the *names* of changed fields, never their clinical values.
"""
import json
from collections.abc import Iterable, Mapping
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.fisio.models import AuditEvent, User

ACTION_LABELS = {
    "ficha.create": "Avaliação criada",
    "ficha.edit": "Avaliação editada",
    "ficha.delete": "Avaliação excluída",
}


def _request_meta() -> tuple[str | None, str | None]:
    if not has_request_context():
        return None, None
    # First hop of X-Forwarded-For when running behind the platform proxy.
    forwarded = (request.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    return getattr(g, "request_id", None), forwarded or request.remote_addr


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    rid, client_ip = _request_meta()
    ev = AuditEvent(
        request_id=request_id or rid,
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, ensure_ascii=False) if metadata else None,
        client_ip=client_ip,
    )
    s.add(ev)
    return ev


def changed_fields(before: Mapping[str, Any], after: Mapping[str, Any], keys: Iterable[str] | None = None) -> list[str]:
    """Sorted names of the keys whose value differs between two snapshots."""
    names = keys if keys is not None else set(before) | set(after)
    return sorted(k for k in names if before.get(k) != after.get(k))


def events_for(s: Session, entity_type: str, entity_id: str, limit: int = 20) -> list[AuditEvent]:
    return (
        s.query(AuditEvent)
        .filter(AuditEvent.entity_type == entity_type, AuditEvent.entity_id == entity_id)
        .order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc())
        .limit(limit)
        .all()
    )
