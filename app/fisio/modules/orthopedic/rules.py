"""
Orthopedic test catalogue and the rule table that turns a region's test
results into a suggested functional diagnosis.

Results are stored as strings keyed by test id (``"true"``, ``"false"``,
``"2"``, ``"dor anterior"``...). Matching works on normalized values where
booleans collapse to ``positivo``/``negativo``.

Rules are evaluated in table order and the first one whose conditions all
hold wins. Every region ends with a catch-all so that a complete input always
produces a text; incomplete input produces ``INCOMPLETE_MESSAGE``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

INCOMPLETE_MESSAGE = "Preencha todos os testes para gerar o diagnóstico automático."

POSITIVE = "positivo"
NEGATIVE = "negativo"

_TRUE_WORDS = frozenset({"true", "positivo", "sim", "yes"})
_FALSE_WORDS = frozenset({"false", "negativo", "não", "nao", "no"})


@dataclass(frozen=True)
class OrthoTest:
    id: str
    label: str
    kind: str  # "boolean" | "select"
    ref: str
    options: tuple[str, ...] = ()


@dataclass(frozen=True)
class Region:
    key: str
    label: str
    tests: tuple[OrthoTest, ...]

    @property
    def test_ids(self) -> tuple[str, ...]:
        return tuple(t.id for t in self.tests)


@dataclass(frozen=True)
class Rule:
    resultado: str
    equals: Mapping[str, str] = field(default_factory=dict)
    at_least: Mapping[str, float] = field(default_factory=dict)
    among: tuple[str, ...] = ()
    min_positive: int | None = None
    max_positive: int | None = None

    def matches(self, values: Mapping[str, str]) -> bool:
        for test_id, expected in self.equals.items():
            if values.get(test_id) != expected:
                return False
        for test_id, threshold in self.at_least.items():
            number = _as_number(values.get(test_id))
            if number is None or number < threshold:
                return False
        if self.among:
            positives = sum(1 for t in self.among if values.get(t) == POSITIVE)
            if self.min_positive is not None and positives < self.min_positive:
                return False
            if self.max_positive is not None and positives > self.max_positive:
                return False
        return True


def _bool(test_id: str, label: str, ref: str) -> OrthoTest:
    return OrthoTest(test_id, label, "boolean", ref)


def _select(test_id: str, label: str, ref: str, *options: str) -> OrthoTest:
    return OrthoTest(test_id, label, "select", ref, options)


REGIONS: tuple[Region, ...] = (
    Region(
        "ombro",
        "Ombro",
        (
            _bool("neer", "Teste de Neer", "Hegedus, 2012"),
            _bool("hawkins_kennedy", "Hawkins-Kennedy", "Park et al., 2005"),
            _bool("arco_doloroso", "Arco Doloroso", "Park et al., 2005"),
            _bool("infraespinhal", "Teste do Infraespinhal", "Park et al., 2005"),
            _bool("drop_arm", "Drop Arm Test", "Park et al., 2005"),
            _bool("apprehension", "Apprehension Test", "Farber et al., 2006"),
            _bool("relocation", "Relocation Test", "Farber et al., 2006"),
        ),
    ),
    Region(
        "cotovelo",
        "Cotovelo",
        (
            _bool("cozen", "Teste de Cozen", "Smidt et al., 2002"),
            _bool("mill", "Teste de Mill", "Smidt et al., 2002"),
        ),
    ),
    Region(
        "cervical",
        "Coluna Cervical",
        (
            _bool("spurling", "Teste de Spurling", "Wainner et al., 2003"),
            _bool("distracao", "Teste de Distração", "Wainner et al., 2003"),
            _bool("ultt_mediano", "ULTT A (Mediano)", "Wainner et al., 2003"),
            _bool("rotacao_menor_60", "Rotação Cervical < 60°", "Wainner et al., 2003"),
        ),
    ),
    Region(
        "lombar",
        "Coluna Lombar",
        (
            _bool("lasegue", "Lasègue (SLR)", "Deville, 2000"),
            _bool("slump", "Teste de Slump", "Majlesi, 2008"),
            _select("schober", "Teste de Schober", "Moll & Wright, 1971", "normal", "reduzido"),
        ),
    ),
    Region(
        "quadril",
        "Quadril",
        (
            _select("faber", "FABER (Patrick)", "Reiman, 2013", "negativo", "dor anterior", "dor posterior"),
            _bool("fadir", "FADIR", "Reiman, 2013"),
            _bool("trendelenburg", "Sinal de Trendelenburg", "Hardcastle, 1985"),
        ),
    ),
    Region(
        "joelho",
        "Joelho",
        (
            _select("lachman_grau", "Lachman (Grau)", "Benjaminse, 2006", "0", "1", "2", "3"),
            _select("lachman_fim", "Lachman (Fim de Curso)", "Benjaminse, 2006", "duro", "macio"),
            _bool("pivot_shift", "Pivot Shift", "Benjaminse, 2006"),
            _select("mcmurray", "McMurray", "Hegedus, 2007", "negativo", "estalido", "dor", "estalido + dor"),
        ),
    ),
    Region(
        "tornozelo",
        "Tornozelo",
        (
            _bool("gaveta_anterior", "Gaveta Anterior", "van Dijk, 1996"),
            _bool("teste_thompson", "Teste de Thompson", "Maffulli, 1998"),
        ),
    ),
)

REGIONS_BY_KEY: dict[str, Region] = {r.key: r for r in REGIONS}

_IMPACT = ("neer", "hawkins_kennedy", "arco_doloroso")
_CUFF = ("arco_doloroso", "infraespinhal", "drop_arm")
_SHOULDER_ALL = ("neer", "hawkins_kennedy", "arco_doloroso", "infraespinhal", "drop_arm", "apprehension", "relocation")
_WAINNER = ("spurling", "distracao", "ultt_mediano", "rotacao_menor_60")
_NEURAL_LUMBAR = ("lasegue", "slump")

RULES: dict[str, tuple[Rule, ...]] = {
    "ombro": (
        Rule(
            "Alta probabilidade de ruptura do manguito rotador: arco doloroso, infraespinhal e drop arm positivos.",
            among=_CUFF,
            min_positive=3,
        ),
        Rule(
            "Instabilidade glenoumeral anterior: apprehension e relocation positivos (alta especificidade).",
            equals={"apprehension": POSITIVE, "relocation": POSITIVE},
        ),
        Rule(
            "Alta probabilidade de síndrome do impacto subacromial: Neer, Hawkins-Kennedy e arco doloroso positivos.",
            among=_IMPACT,
            min_positive=3,
        ),
        Rule(
            "Probabilidade moderada de síndrome do impacto subacromial (2 de 3 testes de impacto positivos).",
            among=_IMPACT,
            min_positive=2,
        ),
        Rule(
            "Achado isolado no ombro; possível sobrecarga local. Correlacionar com a história clínica.",
            among=_SHOULDER_ALL,
            min_positive=1,
        ),
        Rule("Testes negativos: baixa probabilidade de lesão estrutural do ombro."),
    ),
    "cotovelo": (
        Rule(
            "Fortemente sugestivo de epicondilalgia lateral: Cozen e Mill positivos.",
            equals={"cozen": POSITIVE, "mill": POSITIVE},
        ),
        Rule(
            "Possível epicondilalgia lateral (teste isolado positivo).",
            among=("cozen", "mill"),
            min_positive=1,
        ),
        Rule("Testes negativos: baixa probabilidade de epicondilalgia lateral."),
    ),
    "cervical": (
        Rule(
            "Alta probabilidade de radiculopatia cervical: cluster de Wainner 4/4 positivo (>90%).",
            among=_WAINNER,
            min_positive=4,
        ),
        Rule(
            "Probabilidade moderada de radiculopatia cervical: cluster de Wainner 3/4 positivo.",
            among=_WAINNER,
            min_positive=3,
        ),
        Rule("Cluster de Wainner com 2 ou menos testes positivos: baixa probabilidade de radiculopatia cervical."),
    ),
    "lombar": (
        Rule(
            "Fortemente sugestivo de radiculopatia lombar: Lasègue e Slump positivos.",
            among=_NEURAL_LUMBAR,
            min_positive=2,
        ),
        Rule(
            "Possível envolvimento neural lombar (teste neural isolado positivo).",
            among=_NEURAL_LUMBAR,
            min_positive=1,
        ),
        Rule(
            "Schober reduzido com testes neurais negativos: sugere hipomobilidade lombar.",
            equals={"schober": "reduzido"},
        ),
        Rule("Testes negativos: baixa probabilidade de comprometimento neural lombar."),
    ),
    "quadril": (
        Rule(
            "FADIR positivo com FABER de dor anterior: sugere impacto femoroacetabular.",
            equals={"fadir": POSITIVE, "faber": "dor anterior"},
        ),
        Rule(
            "FABER com dor posterior: possível disfunção sacroilíaca.",
            equals={"faber": "dor posterior"},
        ),
        Rule(
            "Sinal de Trendelenburg positivo: sugere fraqueza do glúteo médio.",
            equals={"trendelenburg": POSITIVE},
        ),
        Rule(
            "Achado isolado no quadril; possível irritação intra-articular. Correlacionar com a história clínica.",
            among=("fadir",),
            min_positive=1,
        ),
        Rule("Testes negativos: baixa probabilidade de lesão intra-articular do quadril."),
    ),
    "joelho": (
        Rule(
            "Pivot shift positivo: confirma instabilidade anterolateral por lesão do LCA (alta especificidade).",
            equals={"pivot_shift": POSITIVE},
        ),
        Rule(
            "Alta probabilidade de ruptura do LCA: Lachman grau 2 ou mais com fim de curso macio.",
            equals={"lachman_fim": "macio"},
            at_least={"lachman_grau": 2},
        ),
        Rule(
            "Fortemente sugestivo de lesão meniscal: McMurray com estalido e dor.",
            equals={"mcmurray": "estalido + dor"},
        ),
        Rule(
            "Possível lesão parcial do LCA: Lachman com translação aumentada.",
            at_least={"lachman_grau": 1},
        ),
        Rule("Possível lesão meniscal: McMurray com dor.", equals={"mcmurray": "dor"}),
        Rule("Possível lesão meniscal: McMurray com estalido.", equals={"mcmurray": "estalido"}),
        Rule("Testes negativos: baixa probabilidade de lesão ligamentar ou meniscal do joelho."),
    ),
    "tornozelo": (
        Rule(
            "Teste de Thompson positivo: fortemente sugestivo de ruptura do tendão calcâneo.",
            equals={"teste_thompson": POSITIVE},
        ),
        Rule(
            "Gaveta anterior positiva: sugere instabilidade lateral do tornozelo (lesão do LTFA).",
            equals={"gaveta_anterior": POSITIVE},
        ),
        Rule("Testes negativos: baixa probabilidade de lesão ligamentar ou tendínea do tornozelo."),
    ),
}

_HIGH_KEYWORDS = (
    "alta probabilidade",
    "fortemente sugestivo",
    "confirma",
    ">90%",
    "alta especificidade",
    "padrão-ouro",
)
_MODERATE_KEYWORDS = (
    "probabilidade moderada",
    "possível",
    "sugere",
    "isolado",
)


def _as_number(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value.replace(",", "."))
    except ValueError:
        return None


def normalize_value(value: Any) -> str:
    """Collapse the many spellings of yes/no to positivo/negativo."""
    if value is True:
        return POSITIVE
    if value is False:
        return NEGATIVE
    text = str(value).strip().lower()
    if text in _TRUE_WORDS:
        return POSITIVE
    if text in _FALSE_WORDS:
        return NEGATIVE
    return text


def display_result(value: Any) -> str:
    if value is None or value == "":
        return "—"
    normalized = normalize_value(value)
    if normalized == POSITIVE:
        return "Positivo"
    if normalized == NEGATIVE:
        return "Negativo"
    return str(value)


def normalize_results(raw: Mapping[str, Any] | None) -> dict[str, str]:
    """
    Storage form of a results map: blanks dropped, booleans as "true"/"false",
    everything else as a trimmed string.
    """
    out: dict[str, str] = {}
    for key, value in (raw or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            out[str(key)] = "true" if value else "false"
            continue
        text = str(value).strip()
        if not text:
            continue
        out[str(key)] = text
    return out


def suggest_diagnosis(region: str | None, results: Mapping[str, Any] | None) -> str:
    region_def = REGIONS_BY_KEY.get((region or "").strip().lower())
    if region_def is None:
        return ""

    values = {k: normalize_value(v) for k, v in normalize_results(results).items()}
    if any(t not in values for t in region_def.test_ids):
        return INCOMPLETE_MESSAGE

    for rule in RULES[region_def.key]:
        if rule.matches(values):
            return rule.resultado
    return INCOMPLETE_MESSAGE


def detect_probability(text: str | None) -> str:
    lowered = (text or "").lower()
    if any(k in lowered for k in _HIGH_KEYWORDS):
        return "Alta"
    if any(k in lowered for k in _MODERATE_KEYWORDS):
        return "Moderada"
    return "Baixa"


def catalogue() -> list[dict[str, Any]]:
    """Region/test catalogue as plain dicts (API and form rendering)."""
    return [
        {
            "value": r.key,
            "label": r.label,
            "tests": [
                {"id": t.id, "label": t.label, "type": t.kind, "ref": t.ref, "options": list(t.options)}
                for t in r.tests
            ],
        }
        for r in REGIONS
    ]
