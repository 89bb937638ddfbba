"""Create users, audit_events and fichas tables.

Revision ID: a0f1c2e3d4b5
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "a0f1c2e3d4b5"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_json = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _text(*names: str) -> list[sa.Column]:
    return [sa.Column(n, sa.Text(), nullable=True) for n in names]


def _str(length: int, *names: str) -> list[sa.Column]:
    return [sa.Column(n, sa.String(length), nullable=True) for n in names]


def _int(*names: str) -> list[sa.Column]:
    return [sa.Column(n, sa.Integer(), nullable=True) for n in names]


def _flag(*names: str) -> list[sa.Column]:
    return [sa.Column(n, sa.Boolean(), nullable=False, server_default=sa.false()) for n in names]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(128), nullable=True),
        sa.Column("last_name", sa.String(128), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("request_id", sa.String(64), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), nullable=True),
        sa.Column("actor_user_email", sa.String(320), nullable=True),
        sa.Column("action", sa.String(128), nullable=False),
        sa.Column("entity_type", sa.String(128), nullable=True),
        sa.Column("entity_id", sa.String(128), nullable=True),
        sa.Column("reason", sa.String(512), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("client_ip", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"], ondelete="SET NULL"),
    )

    op.create_table(
        "fichas",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        # Identificação
        *_text("nome_paciente"),
        *_str(32, "data_nascimento"),
        *_int("idade_atual"),
        *_str(64, "sexo", "estado_civil", "perfil_etnico"),
        *_text("profissao", "diagnostico_clinico", "nome_medico"),
        *_str(128, "plano_saude", "consultor"),
        *_str(64, "telefone"),
        *_str(320, "email"),
        *_text("endereco"),
        *_str(32, "cpf"),
        *_str(64, "numero_prontuario"),
        *_str(32, "data_avaliacao", "data_consulta"),
        # Hábitos de vida
        *_str(255, "alimentacao", "sono", "ingestao_hidrica"),
        *_text("rotina_diaria"),
        *_str(255, "atividade_fisica"),
        *_text("medicamentos"),
        *_str(255, "tabagismo", "etilismo", "estresse", "trabalho_repetitivo", "historico_esportivo"),
        # Sinais vitais
        *_str(32, "pa", "fc", "fr", "sat_o2", "temperatura", "peso", "altura", "imc"),
        *_str(64, "classificacao_imc"),
        *_int("fc_max"),
        *_str(128, "zona_treino"),
        *_int("fr_max"),
        *_str(32, "glicemia"),
        # Anamnese
        *_text("hda", "hdp"),
        *_int("eva"),
        *_text("inicio_dor"),
        *_str(128, "tipo_dor"),
        *_text("tipo_dor_outro", "irradiacao", "fatores_melhora", "fatores_piora", "cirurgias"),
        # ADM e escalas
        *_int("flexao_joelho", "extensao_joelho", "forca_mrc", "escala_berg", "escala_ashworth", "escala_tc6"),
        # Avaliação física
        *_text("inspecao", "palpacao", "postura_estatica", "postura_dinamica", "marcha", "perimetria", "testes_especiais"),
        # Estratégias
        *_text("estrategias_curto", "estrategias_medio", "estrategias_longo", "interpretacao_automatica"),
        # Termo
        *_flag("aceito_termo", "termo_consentimento_foto", "termo_consentimento_faltas", "termo_consentimento_reposicao"),
        *_str(32, "data_assinatura_termo"),
        # Assinaturas e mapa de dor
        *_text("assinatura_paciente", "assinatura_fisioterapeuta", "mapa_dor"),
        # Registros dinâmicos
        sa.Column("musculos", _json, nullable=True),
        sa.Column("prescricoes", _json, nullable=True),
        sa.Column("evolucoes", _json, nullable=True),
        sa.Column("adm_forca", _json, nullable=True),
        # Avaliação ortopédica
        *_str(32, "regiao_avaliada"),
        sa.Column("testes_ortopedicos_json", _json, nullable=True),
        *_text("diagnostico_funcional_provavel"),
        *_str(16, "probabilidade_clinica"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_fichas_user_id", "fichas", ["user_id"])
    op.create_index("idx_fichas_nome_paciente", "fichas", ["nome_paciente"])
    op.create_index("idx_fichas_cpf", "fichas", ["cpf"])


def downgrade() -> None:
    op.drop_index("idx_fichas_cpf", table_name="fichas")
    op.drop_index("idx_fichas_nome_paciente", table_name="fichas")
    op.drop_index("idx_fichas_user_id", table_name="fichas")
    op.drop_table("fichas")
    op.drop_table("audit_events")
    op.drop_table("users")
