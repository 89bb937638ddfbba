import json
from datetime import datetime

import pytest

from app.fisio.db import session_scope
from app.fisio.models import AuditEvent, User
from app.fisio.modules.fichas.models import Ficha
from app.fisio.modules.fichas.service import (
    FieldError,
    clean_ficha_payload,
    create_ficha,
    dashboard_stats,
    delete_ficha,
    ficha_to_dict,
    get_ficha_for_user,
    ignored_keys,
    list_fichas,
    update_ficha,
    validate_ficha_payload,
)


def _user(s, email="fisio@example.com") -> User:
    return s.query(User).filter(User.email == email).one()


# ---------- validation ----------
def test_name_is_required_on_create():
    errors = validate_ficha_payload({"sexo": "Feminino"})
    assert errors == [("nome_paciente", "Nome do paciente é obrigatório.")]


def test_partial_update_may_omit_name_but_not_blank_it():
    assert validate_ficha_payload({"eva": 3}, partial=True) == []
    assert validate_ficha_payload({"nome_paciente": "  "}, partial=True)[0][0] == "nome_paciente"


@pytest.mark.parametrize("field,value", [
    ("eva", 11),
    ("eva", "muito"),
    ("forca_mrc", 6),
    ("escala_berg", -1),
    ("extensao_joelho", 45),
    ("idade_atual", True),
])
def test_integer_ranges(field, value):
    errors = validate_ficha_payload({"nome_paciente": "X", field: value})
    assert errors and errors[0][0] == field


def test_integer_fields_accept_numeric_strings_and_blank():
    values, errors = clean_ficha_payload({"nome_paciente": "X", "eva": "7", "escala_tc6": "", "extensao_joelho": -5})
    assert errors == []
    assert values["eva"] == 7
    assert values["escala_tc6"] is None
    assert values["extensao_joelho"] == -5


def test_text_longer_than_column_is_rejected():
    errors = validate_ficha_payload({"nome_paciente": "X", "sexo": "a" * 200, "data_nascimento": "b" * 100})
    messages = dict(errors)
    assert set(messages) == {"sexo", "data_nascimento"}
    assert "64" in messages["sexo"]
    assert "32" in messages["data_nascimento"]

    values, errors = clean_ficha_payload({"nome_paciente": "X", "sexo": "a" * 64, "diagnostico_clinico": "c" * 5000})
    assert errors == []
    assert len(values["diagnostico_clinico"]) == 5000


def test_integers_must_fit_a_32_bit_column():
    errors = validate_ficha_payload({"nome_paciente": "X", "escala_tc6": 10**12})
    assert errors and errors[0][0] == "escala_tc6"
    assert validate_ficha_payload({"nome_paciente": "X", "escala_tc6": 2**31 - 1}) == []


def test_text_is_trimmed_and_blank_becomes_none():
    values, _ = clean_ficha_payload({"nome_paciente": "  Ana  ", "profissao": "   "})
    assert values["nome_paciente"] == "Ana"
    assert values["profissao"] is None


def test_booleans_from_form_and_json():
    values, errors = clean_ficha_payload(
        {"nome_paciente": "X", "aceito_termo": "on", "termo_consentimento_foto": False, "termo_consentimento_faltas": "não"}
    )
    assert errors == []
    assert values["aceito_termo"] is True
    assert values["termo_consentimento_foto"] is False
    assert values["termo_consentimento_faltas"] is False
    assert values["termo_consentimento_reposicao"] is False

    _, errors = clean_ficha_payload({"nome_paciente": "X", "aceito_termo": "talvez"})
    assert errors[0][0] == "aceito_termo"


def test_json_fields_accept_text_and_check_shape():
    values, errors = clean_ficha_payload(
        {"nome_paciente": "X", "musculos": '[{"nome": "Quadríceps", "grau": 4}]', "adm_forca": {"joelho": 120}}
    )
    assert errors == []
    assert values["musculos"] == [{"nome": "Quadríceps", "grau": 4}]
    assert values["adm_forca"] == {"joelho": 120}

    _, errors = clean_ficha_payload({"nome_paciente": "X", "prescricoes": "{nope"})
    assert errors[0][0] == "prescricoes"
    _, errors = clean_ficha_payload({"nome_paciente": "X", "evolucoes": {"a": 1}})
    assert errors[0][0] == "evolucoes"


def test_email_and_probability_are_checked():
    assert validate_ficha_payload({"nome_paciente": "X", "email": "sem-arroba"})[0][0] == "email"
    assert validate_ficha_payload({"nome_paciente": "X", "probabilidade_clinica": "Certa"})[0][0] == "probabilidade_clinica"


def test_region_is_lowercased_and_validated():
    values, errors = clean_ficha_payload({"nome_paciente": "X", "regiao_avaliada": "Joelho"})
    assert errors == []
    assert values["regiao_avaliada"] == "joelho"
    assert validate_ficha_payload({"nome_paciente": "X", "regiao_avaliada": "pe"})[0][0] == "regiao_avaliada"


def test_ignored_keys():
    assert ignored_keys({"id": 9, "user_id": 2, "nome_paciente": "X", "foo": 1}) == ["foo", "id", "user_id"]


# ---------- persistence ----------
def test_create_derives_values_and_audits(app):
    with session_scope(app) as s:
        user = _user(s)
        ficha = create_ficha(
            s,
            {
                "nome_paciente": "João Silva",
                "idade_atual": 44,
                "peso": "80",
                "altura": "1,80",
                "regiao_avaliada": "cotovelo",
                "testes_ortopedicos_json": {"cozen": True, "mill": "false"},
                "id": 999,
            },
            user,
        )
        ficha_id = ficha.id

    with session_scope(app) as s:
        ficha = s.get(Ficha, ficha_id)
        assert ficha_id != 999
        assert ficha.imc == "24.69"
        assert ficha.classificacao_imc == "Eutrofia"
        assert ficha.fc_max == 176
        assert ficha.testes_ortopedicos_json == {"cozen": "true", "mill": "false"}
        assert ficha.diagnostico_funcional_provavel == "Possível epicondilalgia lateral (teste isolado positivo)."
        assert ficha.probabilidade_clinica == "Moderada"
        assert ficha.aceito_termo is False

        ev = s.query(AuditEvent).filter(AuditEvent.action == "ficha.create").one()
        assert ev.entity_id == str(ficha_id)
        assert json.loads(ev.metadata_json) == {"regiao_avaliada": "cotovelo"}


def test_create_rejects_invalid_payload(app):
    with session_scope(app) as s:
        with pytest.raises(FieldError) as exc:
            create_ficha(s, {"eva": 3}, _user(s))
        assert exc.value.field == "nome_paciente"


def test_partial_update_touches_only_given_keys(app):
    with session_scope(app) as s:
        ficha = create_ficha(s, {"nome_paciente": "Maria", "profissao": "Professora", "eva": 5}, _user(s))
        ficha_id = ficha.id
        created = ficha.updated_at

    with session_scope(app) as s:
        ficha = s.get(Ficha, ficha_id)
        update_ficha(s, ficha, {"eva": 2}, _user(s), partial=True)

    with session_scope(app) as s:
        ficha = s.get(Ficha, ficha_id)
        assert ficha.eva == 2
        assert ficha.profissao == "Professora"
        assert ficha.updated_at >= created
        ev = s.query(AuditEvent).filter(AuditEvent.action == "ficha.edit").one()
        meta = json.loads(ev.metadata_json)
        assert meta["changes"] == ["eva"]
        assert meta["partial"] is True


def test_full_update_clears_omitted_fields(app):
    with session_scope(app) as s:
        ficha = create_ficha(s, {"nome_paciente": "Maria", "profissao": "Professora"}, _user(s))
        update_ficha(s, ficha, {"nome_paciente": "Maria"}, _user(s), partial=False)
        assert ficha.profissao is None


def test_clinician_diagnosis_survives_update(app):
    with session_scope(app) as s:
        ficha = create_ficha(
            s,
            {
                "nome_paciente": "Maria",
                "regiao_avaliada": "tornozelo",
                "testes_ortopedicos_json": {"gaveta_anterior": "true", "teste_thompson": "false"},
                "diagnostico_funcional_provavel": "Entorse grau II",
                "probabilidade_clinica": "Alta",
            },
            _user(s),
        )
        update_ficha(s, ficha, {"testes_ortopedicos_json": {"gaveta_anterior": "false", "teste_thompson": "false"}}, _user(s))
        assert ficha.diagnostico_funcional_provavel == "Entorse grau II"

        # sending a blank diagnosis asks for a fresh suggestion
        update_ficha(s, ficha, {"diagnostico_funcional_provavel": "", "probabilidade_clinica": ""}, _user(s))
        assert ficha.diagnostico_funcional_provavel.startswith("Testes negativos")
        assert ficha.probabilidade_clinica == "Baixa"


def test_delete_audits_and_removes(app):
    with session_scope(app) as s:
        ficha = create_ficha(s, {"nome_paciente": "Maria"}, _user(s))
        ficha_id = ficha.id

    with session_scope(app) as s:
        delete_ficha(s, s.get(Ficha, ficha_id), _user(s))

    with session_scope(app) as s:
        assert s.get(Ficha, ficha_id) is None
        assert s.query(AuditEvent).filter(AuditEvent.action == "ficha.delete").count() == 1


def test_fichas_are_scoped_to_owner(app):
    with session_scope(app) as s:
        mine = create_ficha(s, {"nome_paciente": "Minha"}, _user(s))
        theirs = create_ficha(s, {"nome_paciente": "Alheia"}, _user(s, "outro@example.com"))
        s.flush()
        user = _user(s)
        assert get_ficha_for_user(s, mine.id, user) is mine
        assert get_ficha_for_user(s, theirs.id, user) is None
        assert get_ficha_for_user(s, 12345, user) is None
        assert [f.nome_paciente for f in list_fichas(s, user)] == ["Minha"]


def test_list_search_and_order(app):
    with session_scope(app) as s:
        user = _user(s)
        create_ficha(s, {"nome_paciente": "João Silva", "cpf": "111.222.333-44"}, user)
        create_ficha(s, {"nome_paciente": "Maria Oliveira", "cpf": "555.666.777-88"}, user)
        s.flush()

        assert [f.nome_paciente for f in list_fichas(s, user)] == ["Maria Oliveira", "João Silva"]
        assert [f.nome_paciente for f in list_fichas(s, user, search="maria")] == ["Maria Oliveira"]
        assert [f.nome_paciente for f in list_fichas(s, user, search="222.333")] == ["João Silva"]
        assert list_fichas(s, user, search="ninguém") == []


def test_dashboard_stats(app):
    with session_scope(app) as s:
        user = _user(s)
        old = create_ficha(s, {"nome_paciente": "João"}, user)
        old.created_at = datetime(2020, 1, 10)
        create_ficha(s, {"nome_paciente": "João"}, user)
        create_ficha(s, {"nome_paciente": "Maria"}, user)
        s.flush()

        stats = dashboard_stats(s, user, today=datetime.utcnow().date())
        assert stats["total_fichas"] == 3
        assert stats["total_patients"] == 2
        assert stats["this_month"] == 2
        assert stats["recent"][-1].id == old.id


def test_ficha_to_dict(app):
    with session_scope(app) as s:
        ficha = create_ficha(s, {"nome_paciente": "Maria", "musculos": [{"nome": "Glúteo"}]}, _user(s))
        out = ficha_to_dict(ficha)
        assert out["id"] == ficha.id
        assert out["user_id"] == ficha.user_id
        assert out["nome_paciente"] == "Maria"
        assert out["musculos"] == [{"nome": "Glúteo"}]
        assert out["created_at"].startswith(str(ficha.created_at.year))
        assert "user" not in out
