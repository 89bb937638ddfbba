from conftest import PASSWORD, csrf_token, login

from app.fisio.db import session_scope
from app.fisio.modules.fichas.models import Ficha


def _create(client, headers, **payload):
    payload.setdefault("nome_paciente", "João Silva")
    r = client.post("/api/fichas", json=payload, headers=headers)
    assert r.status_code == 201, r.json
    return r.json


def test_api_requires_login(client):
    assert client.get("/api/fichas").status_code == 401
    assert client.get("/api/fichas/1").status_code == 401


def test_anonymous_mutation_is_unauthorized_before_csrf(client):
    r = client.post("/api/fichas", json={"nome_paciente": "Anônimo"})
    assert r.status_code == 401
    assert r.json == {"message": "Unauthorized"}

    r = client.patch("/api/fichas/1", json={"eva": 3})
    assert r.status_code == 401


def test_mutation_requires_csrf(auth_client):
    r = auth_client.post("/api/fichas", json={"nome_paciente": "Sem token"})
    assert r.status_code == 400
    assert "CSRF" in r.json["message"]


def test_csrf_token_accepted_in_json_body(auth_client):
    r = auth_client.post("/api/fichas", json={"nome_paciente": "Via corpo", "csrf_token": csrf_token(auth_client)})
    assert r.status_code == 201
    assert r.json["nome_paciente"] == "Via corpo"


def test_create_and_get(auth_client, api_headers):
    created = _create(
        auth_client,
        api_headers,
        eva=7,
        peso="70",
        altura="1.75",
        regiao_avaliada="joelho",
        testes_ortopedicos_json={"lachman_grau": "2", "lachman_fim": "macio", "pivot_shift": False, "mcmurray": "negativo"},
    )
    assert created["eva"] == 7
    assert created["imc"] == "22.86"
    assert created["testes_ortopedicos_json"]["pivot_shift"] == "false"
    assert created["diagnostico_funcional_provavel"].startswith("Alta probabilidade de ruptura do LCA")
    assert created["probabilidade_clinica"] == "Alta"

    r = auth_client.get(f"/api/fichas/{created['id']}")
    assert r.status_code == 200
    assert r.json == created


def test_create_validation_error(auth_client, api_headers):
    r = auth_client.post("/api/fichas", json={"nome_paciente": "X", "eva": 15}, headers=api_headers)
    assert r.status_code == 400
    assert r.json["field"] == "eva"
    assert r.json["message"].startswith("Dados inválidos:")

    r = auth_client.post("/api/fichas", json={"eva": 3}, headers=api_headers)
    assert r.status_code == 400
    assert r.json["field"] == "nome_paciente"


def test_overlong_values_are_rejected(auth_client, api_headers):
    r = auth_client.post("/api/fichas", json={"nome_paciente": "X", "telefone": "9" * 100}, headers=api_headers)
    assert r.status_code == 400
    assert r.json["field"] == "telefone"

    created = _create(auth_client, api_headers)
    r = auth_client.patch(f"/api/fichas/{created['id']}", json={"escala_tc6": 10**12}, headers=api_headers)
    assert r.status_code == 400
    assert r.json["field"] == "escala_tc6"


def test_non_object_body_is_rejected(auth_client, api_headers):
    r = auth_client.post("/api/fichas", json=["nome_paciente"], headers=api_headers)
    assert r.status_code == 400
    assert "message" in r.json


def test_list_and_search(auth_client, api_headers):
    _create(auth_client, api_headers, nome_paciente="João Silva", cpf="123.456.789-00")
    _create(auth_client, api_headers, nome_paciente="Maria Oliveira")

    r = auth_client.get("/api/fichas")
    assert r.status_code == 200
    assert [f["nome_paciente"] for f in r.json] == ["Maria Oliveira", "João Silva"]

    r = auth_client.get("/api/fichas?q=456.789")
    assert [f["nome_paciente"] for f in r.json] == ["João Silva"]


def test_get_missing_returns_404(auth_client):
    r = auth_client.get("/api/fichas/9999")
    assert r.status_code == 404
    assert r.json == {"message": "Avaliação não encontrada"}


def test_put_and_patch_are_partial(auth_client, api_headers):
    created = _create(auth_client, api_headers, profissao="Engenheiro", eva=7)

    r = auth_client.put(f"/api/fichas/{created['id']}", json={"eva": 3}, headers=api_headers)
    assert r.status_code == 200
    assert r.json["eva"] == 3
    assert r.json["profissao"] == "Engenheiro"

    r = auth_client.patch(
        f"/api/fichas/{created['id']}",
        json={"profissao": "Professor", "user_id": 999, "created_at": "2000-01-01"},
        headers=api_headers,
    )
    assert r.status_code == 200
    assert r.json["profissao"] == "Professor"
    assert r.json["user_id"] == created["user_id"]
    assert r.json["created_at"] == created["created_at"]


def test_update_validation_and_missing(auth_client, api_headers):
    created = _create(auth_client, api_headers)
    r = auth_client.patch(f"/api/fichas/{created['id']}", json={"nome_paciente": ""}, headers=api_headers)
    assert r.status_code == 400
    assert r.json["field"] == "nome_paciente"

    r = auth_client.patch("/api/fichas/9999", json={"eva": 1}, headers=api_headers)
    assert r.status_code == 404


def test_delete(app, auth_client, api_headers):
    created = _create(auth_client, api_headers)
    r = auth_client.delete(f"/api/fichas/{created['id']}", headers=api_headers)
    assert r.status_code == 204
    assert r.data == b""

    with session_scope(app) as s:
        assert s.get(Ficha, created["id"]) is None

    r = auth_client.delete(f"/api/fichas/{created['id']}", headers=api_headers)
    assert r.status_code == 404


def test_other_users_fichas_are_invisible(app, client):
    login(client)
    headers = {"X-CSRF-Token": csrf_token(client)}
    created = _create(client, headers, nome_paciente="Paciente da Ana")
    client.get("/api/logout")

    client.post("/api/login", json={"email": "outro@example.com", "password": PASSWORD})
    headers = {"X-CSRF-Token": csrf_token(client)}
    assert client.get("/api/fichas").json == []
    assert client.get(f"/api/fichas/{created['id']}").status_code == 404
    assert client.patch(f"/api/fichas/{created['id']}", json={"eva": 1}, headers=headers).status_code == 404
    assert client.delete(f"/api/fichas/{created['id']}", headers=headers).status_code == 404

    with session_scope(app) as s:
        assert s.get(Ficha, created["id"]) is not None


# ---------- orthopedic ----------
def test_regions_catalogue(auth_client):
    r = auth_client.get("/api/avaliacao-ortopedica/regioes")
    assert r.status_code == 200
    assert r.json[0]["value"] == "ombro"
    assert r.json[0]["tests"][0]["id"] == "neer"


def test_suggestion_endpoint(auth_client, api_headers):
    r = auth_client.post(
        "/api/avaliacao-ortopedica/sugestao",
        json={"regiao": "cervical", "testes": {"spurling": True, "distracao": True, "ultt_mediano": True, "rotacao_menor_60": True}},
        headers=api_headers,
    )
    assert r.status_code == 200
    assert ">90%" in r.json["diagnostico"]
    assert r.json["probabilidade"] == "Alta"


def test_suggestion_endpoint_incomplete_and_invalid(auth_client, api_headers):
    r = auth_client.post(
        "/api/avaliacao-ortopedica/sugestao",
        json={"regiao": "cervical", "testes": {"spurling": True}},
        headers=api_headers,
    )
    assert r.json["diagnostico"] == "Preencha todos os testes para gerar o diagnóstico automático."

    r = auth_client.post(
        "/api/avaliacao-ortopedica/sugestao",
        json={"regiao": "pe", "testes": {}},
        headers=api_headers,
    )
    assert r.status_code == 400
    assert r.json["field"] == "regiao_avaliada"


def test_suggestion_requires_login(client):
    token = client.get("/api/csrf").json["csrf_token"]
    r = client.post(
        "/api/avaliacao-ortopedica/sugestao",
        json={"regiao": "ombro", "testes": {}},
        headers={"X-CSRF-Token": token},
    )
    assert r.status_code == 401
