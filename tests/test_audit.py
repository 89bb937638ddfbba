import json

from app.fisio.audit import changed_fields, events_for, record_event
from app.fisio.db import session_scope
from app.fisio.models import AuditEvent, User


def test_changed_fields():
    before = {"eva": 5, "profissao": "Professora", "imc": None}
    after = {"eva": 2, "profissao": "Professora", "imc": "22.86"}
    assert changed_fields(before, after) == ["eva", "imc"]
    assert changed_fields(before, after, keys=["profissao"]) == []


def test_record_event_outside_request(app):
    with session_scope(app) as s:
        user = s.query(User).filter(User.email == "fisio@example.com").one()
        record_event(s, actor=user, action="ficha.edit", entity_type="Ficha", entity_id="7", metadata={"changes": ["eva"]})

    with session_scope(app) as s:
        ev = s.query(AuditEvent).one()
        assert ev.actor_user_email == "fisio@example.com"
        assert ev.client_ip is None
        assert ev.request_id is None
        assert json.loads(ev.metadata_json) == {"changes": ["eva"]}
        assert [e.id for e in events_for(s, "Ficha", "7")] == [ev.id]
        assert events_for(s, "Ficha", "8") == []


def test_request_events_carry_forwarded_ip(app, client):
    client.post(
        "/api/login",
        json={"email": "fisio@example.com", "password": "errada"},
        headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
    )
    with session_scope(app) as s:
        ev = s.query(AuditEvent).one()
        assert ev.action == "auth.login_failed"
        assert ev.client_ip == "203.0.113.9"
        assert ev.request_id
