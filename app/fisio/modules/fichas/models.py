from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.fisio.models import Base

if TYPE_CHECKING:
    from app.fisio.models import User

JsonColumn = JSON().with_variant(JSONB(), "postgresql")


class Ficha(Base):
    __tablename__ = "fichas"
    __table_args__ = (
        Index("idx_fichas_user_id", "user_id"),
        Index("idx_fichas_nome_paciente", "nome_paciente"),
        Index("idx_fichas_cpf", "cpf"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Identificação
    nome_paciente: Mapped[str | None] = mapped_column(Text, nullable=True)
    data_nascimento: Mapped[str | None] = mapped_column(String(32), nullable=True)
    idade_atual: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sexo: Mapped[str | None] = mapped_column(String(64), nullable=True)
    estado_civil: Mapped[str | None] = mapped_column(String(64), nullable=True)
    perfil_etnico: Mapped[str | None] = mapped_column(String(64), nullable=True)
    profissao: Mapped[str | None] = mapped_column(Text, nullable=True)
    diagnostico_clinico: Mapped[str | None] = mapped_column(Text, nullable=True)
    nome_medico: Mapped[str | None] = mapped_column(Text, nullable=True)
    plano_saude: Mapped[str | None] = mapped_column(String(128), nullable=True)
    consultor: Mapped[str | None] = mapped_column(String(128), nullable=True)
    telefone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    endereco: Mapped[str | None] = mapped_column(Text, nullable=True)
    cpf: Mapped[str | None] = mapped_column(String(32), nullable=True)
    numero_prontuario: Mapped[str | None] = mapped_column(String(64), nullable=True)
    data_avaliacao: Mapped[str | None] = mapped_column(String(32), nullable=True)
    data_consulta: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Hábitos de vida
    alimentacao: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sono: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ingestao_hidrica: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rotina_diaria: Mapped[str | None] = mapped_column(Text, nullable=True)
    atividade_fisica: Mapped[str | None] = mapped_column(String(255), nullable=True)
    medicamentos: Mapped[str | None] = mapped_column(Text, nullable=True)
    tabagismo: Mapped[str | None] = mapped_column(String(255), nullable=True)
    etilismo: Mapped[str | None] = mapped_column(String(255), nullable=True)
    estresse: Mapped[str | None] = mapped_column(String(255), nullable=True)
    trabalho_repetitivo: Mapped[str | None] = mapped_column(String(255), nullable=True)
    historico_esportivo: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Sinais vitais
    pa: Mapped[str | None] = mapped_column(String(32), nullable=True)
    fc: Mapped[str | None] = mapped_column(String(32), nullable=True)
    fr: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sat_o2: Mapped[str | None] = mapped_column(String(32), nullable=True)
    temperatura: Mapped[str | None] = mapped_column(String(32), nullable=True)
    peso: Mapped[str | None] = mapped_column(String(32), nullable=True)
    altura: Mapped[str | None] = mapped_column(String(32), nullable=True)
    imc: Mapped[str | None] = mapped_column(String(32), nullable=True)
    classificacao_imc: Mapped[str | None] = mapped_column(String(64), nullable=True)
    fc_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    zona_treino: Mapped[str | None] = mapped_column(String(128), nullable=True)
    fr_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    glicemia: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Anamnese
    hda: Mapped[str | None] = mapped_column(Text, nullable=True)
    hdp: Mapped[str | None] = mapped_column(Text, nullable=True)
    eva: Mapped[int | None] = mapped_column(Integer, nullable=True)
    inicio_dor: Mapped[str | None] = mapped_column(Text, nullable=True)
    tipo_dor: Mapped[str | None] = mapped_column(String(128), nullable=True)
    tipo_dor_outro: Mapped[str | None] = mapped_column(Text, nullable=True)
    irradiacao: Mapped[str | None] = mapped_column(Text, nullable=True)
    fatores_melhora: Mapped[str | None] = mapped_column(Text, nullable=True)
    fatores_piora: Mapped[str | None] = mapped_column(Text, nullable=True)
    cirurgias: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ADM e escalas funcionais
    flexao_joelho: Mapped[int | None] = mapped_column(Integer, nullable=True)
    extensao_joelho: Mapped[int | None] = mapped_column(Integer, nullable=True)
    forca_mrc: Mapped[int | None] = mapped_column(Integer, nullable=True)
    escala_berg: Mapped[int | None] = mapped_column(Integer, nullable=True)
    escala_ashworth: Mapped[int | None] = mapped_column(Integer, nullable=True)
    escala_tc6: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Avaliação física
    inspecao: Mapped[str | None] = mapped_column(Text, nullable=True)
    palpacao: Mapped[str | None] = mapped_column(Text, nullable=True)
    postura_estatica: Mapped[str | None] = mapped_column(Text, nullable=True)
    postura_dinamica: Mapped[str | None] = mapped_column(Text, nullable=True)
    marcha: Mapped[str | None] = mapped_column(Text, nullable=True)
    perimetria: Mapped[str | None] = mapped_column(Text, nullable=True)
    testes_especiais: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Estratégias
    estrategias_curto: Mapped[str | None] = mapped_column(Text, nullable=True)
    estrategias_medio: Mapped[str | None] = mapped_column(Text, nullable=True)
    estrategias_longo: Mapped[str | None] = mapped_column(Text, nullable=True)
    interpretacao_automatica: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Termo de consentimento
    aceito_termo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    termo_consentimento_foto: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    termo_consentimento_faltas: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    termo_consentimento_reposicao: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    data_assinatura_termo: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Assinaturas e mapa de dor (base64 data URLs)
    assinatura_paciente: Mapped[str | None] = mapped_column(Text, nullable=True)
    assinatura_fisioterapeuta: Mapped[str | None] = mapped_column(Text, nullable=True)
    mapa_dor: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Registros dinâmicos
    musculos: Mapped[list[Any] | None] = mapped_column(JsonColumn, nullable=True)
    prescricoes: Mapped[list[Any] | None] = mapped_column(JsonColumn, nullable=True)
    evolucoes: Mapped[list[Any] | None] = mapped_column(JsonColumn, nullable=True)
    adm_forca: Mapped[Any | None] = mapped_column(JsonColumn, nullable=True)

    # Avaliação ortopédica
    regiao_avaliada: Mapped[str | None] = mapped_column(String(32), nullable=True)
    testes_ortopedicos_json: Mapped[dict[str, str] | None] = mapped_column(JsonColumn, nullable=True)
    diagnostico_funcional_provavel: Mapped[str | None] = mapped_column(Text, nullable=True)
    probabilidade_clinica: Mapped[str | None] = mapped_column(String(16), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    user: Mapped["User"] = relationship("User", back_populates="fichas")

    def __repr__(self) -> str:
        return f"Ficha(id={self.id}, paciente={self.nome_paciente!r})"
