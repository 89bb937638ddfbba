"""
Field catalogue for the Ficha record.

Forms, payload parsing and the detail page walk these sections instead of
listing every column by hand. Kinds:

- ``text`` / ``textarea``: free text, blank -> None
- ``int``: integer, optionally bounded
- ``bool``: checkbox / JSON boolean
- ``json``: structured sub-records (JSON array or object)
- ``data``: base64 data URL, accepted through the API only
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldSpec:
    key: str
    label: str
    kind: str = "text"
    min_value: int | None = None
    max_value: int | None = None
    json_shape: tuple[type, ...] = ()


@dataclass(frozen=True)
class Section:
    key: str
    title: str
    fields: tuple[FieldSpec, ...]


def _t(key: str, label: str) -> FieldSpec:
    return FieldSpec(key, label, "text")


def _ta(key: str, label: str) -> FieldSpec:
    return FieldSpec(key, label, "textarea")


def _i(key: str, label: str, lo: int | None = None, hi: int | None = None) -> FieldSpec:
    return FieldSpec(key, label, "int", lo, hi)


def _b(key: str, label: str) -> FieldSpec:
    return FieldSpec(key, label, "bool")


SECTIONS: tuple[Section, ...] = (
    Section(
        "identificacao",
        "Identificação",
        (
            _t("nome_paciente", "Nome do paciente"),
            _t("data_nascimento", "Data de nascimento"),
            _i("idade_atual", "Idade", 0, 130),
            _t("sexo", "Sexo"),
            _t("estado_civil", "Estado civil"),
            _t("perfil_etnico", "Perfil étnico"),
            _t("profissao", "Profissão"),
            _ta("diagnostico_clinico", "Diagnóstico clínico"),
            _t("nome_medico", "Médico responsável"),
            _t("plano_saude", "Plano de saúde"),
            _t("consultor", "Consultor"),
            _t("telefone", "Telefone"),
            _t("email", "E-mail"),
            _ta("endereco", "Endereço"),
            _t("cpf", "CPF"),
            _t("numero_prontuario", "Nº do prontuário"),
            _t("data_avaliacao", "Data da avaliação"),
            _t("data_consulta", "Data da consulta"),
        ),
    ),
    Section(
        "habitos-de-vida",
        "Hábitos de vida",
        (
            _t("alimentacao", "Alimentação"),
            _t("sono", "Sono"),
            _t("ingestao_hidrica", "Ingestão hídrica"),
            _ta("rotina_diaria", "Rotina diária"),
            _t("atividade_fisica", "Atividade física"),
            _ta("medicamentos", "Medicamentos"),
            _t("tabagismo", "Tabagismo"),
            _t("etilismo", "Etilismo"),
            _t("estresse", "Estresse"),
            _t("trabalho_repetitivo", "Trabalho repetitivo"),
            _t("historico_esportivo", "Histórico esportivo"),
        ),
    ),
    Section(
        "sinais-vitais",
        "Sinais vitais",
        (
            _t("pa", "PA (mmHg)"),
            _t("fc", "FC (bpm)"),
            _t("fr", "FR (irpm)"),
            _t("sat_o2", "SatO₂ (%)"),
            _t("temperatura", "Temperatura (°C)"),
            _t("peso", "Peso (kg)"),
            _t("altura", "Altura (m)"),
            _t("imc", "IMC"),
            _t("classificacao_imc", "Classificação do IMC"),
            _i("fc_max", "FC máxima", 0, 300),
            _t("zona_treino", "Zona de treino"),
            _i("fr_max", "FR máxima", 0, 100),
            _t("glicemia", "Glicemia"),
        ),
    ),
    Section(
        "anamnese",
        "Anamnese",
        (
            _ta("hda", "HDA"),
            _ta("hdp", "HDP"),
            _i("eva", "EVA (0-10)", 0, 10),
            _ta("inicio_dor", "Início da dor"),
            _t("tipo_dor", "Tipo de dor"),
            _t("tipo_dor_outro", "Tipo de dor (outro)"),
            _ta("irradiacao", "Irradiação"),
            _ta("fatores_melhora", "Fatores de melhora"),
            _ta("fatores_piora", "Fatores de piora"),
            _ta("cirurgias", "Cirurgias"),
        ),
    ),
    Section(
        "adm-escalas",
        "ADM e escalas funcionais",
        (
            _i("flexao_joelho", "Flexão de joelho (°)", 0, 180),
            _i("extensao_joelho", "Extensão de joelho (°)", -30, 30),
            _i("forca_mrc", "Força (MRC 0-5)", 0, 5),
            _i("escala_berg", "Escala de Berg (0-56)", 0, 56),
            _i("escala_ashworth", "Escala de Ashworth (0-4)", 0, 4),
            _i("escala_tc6", "TC6 (m)", 0, None),
        ),
    ),
    Section(
        "avaliacao-fisica",
        "Avaliação física",
        (
            _ta("inspecao", "Inspeção"),
            _ta("palpacao", "Palpação"),
            _ta("postura_estatica", "Postura estática"),
            _ta("postura_dinamica", "Postura dinâmica"),
            _ta("marcha", "Marcha"),
            _ta("perimetria", "Perimetria"),
            _ta("testes_especiais", "Testes especiais"),
        ),
    ),
    Section(
        "estrategias",
        "Estratégias",
        (
            _ta("estrategias_curto", "Curto prazo"),
            _ta("estrategias_medio", "Médio prazo"),
            _ta("estrategias_longo", "Longo prazo"),
            _ta("interpretacao_automatica", "Interpretação"),
        ),
    ),
    Section(
        "termo",
        "Termo de consentimento",
        (
            _b("aceito_termo", "Aceito o termo de tratamento"),
            _b("termo_consentimento_foto", "Autorizo registro fotográfico"),
            _b("termo_consentimento_faltas", "Ciente da política de faltas"),
            _b("termo_consentimento_reposicao", "Ciente da política de reposição"),
            _t("data_assinatura_termo", "Data da assinatura"),
        ),
    ),
    Section(
        "dados-dinamicos",
        "Registros dinâmicos",
        (
            FieldSpec("musculos", "Testes musculares", "json", json_shape=(list,)),
            FieldSpec("prescricoes", "Prescrições", "json", json_shape=(list,)),
            FieldSpec("evolucoes", "Evoluções", "json", json_shape=(list,)),
            FieldSpec("adm_forca", "ADM e força", "json", json_shape=(list, dict)),
        ),
    ),
)

# The orthopedic block has its own widgets on the form; these keys are parsed separately.
ORTHOPEDIC_FIELDS: tuple[FieldSpec, ...] = (
    _t("regiao_avaliada", "Região avaliada"),
    FieldSpec("testes_ortopedicos_json", "Testes ortopédicos", "json", json_shape=(dict,)),
    _ta("diagnostico_funcional_provavel", "Diagnóstico funcional provável"),
    _t("probabilidade_clinica", "Probabilidade clínica"),
)

DATA_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("mapa_dor", "Mapa de dor", "data"),
    FieldSpec("assinatura_paciente", "Assinatura do paciente", "data"),
    FieldSpec("assinatura_fisioterapeuta", "Assinatura do fisioterapeuta", "data"),
)

ALL_FIELDS: tuple[FieldSpec, ...] = (
    tuple(f for section in SECTIONS for f in section.fields) + ORTHOPEDIC_FIELDS + DATA_FIELDS
)
FIELDS_BY_KEY: dict[str, FieldSpec] = {f.key: f for f in ALL_FIELDS}

# Never writable from a payload.
READ_ONLY_KEYS = frozenset({"id", "user_id", "created_at", "updated_at"})
