from __future__ import annotations

import logging
from typing import Any, MutableMapping

from app.fisio.modules.orthopedic.rules import (
    INCOMPLETE_MESSAGE,
    REGIONS_BY_KEY,
    detect_probability,
    normalize_results,
    suggest_diagnosis,
)

logger = logging.getLogger(__name__)


def validate_orthopedic_payload(region: Any, results: Any) -> list[tuple[str, str]]:
    errors: list[tuple[str, str]] = []
    if region not in (None, "") and str(region).strip().lower() not in REGIONS_BY_KEY:
        errors.append(("regiao_avaliada", f"Região inválida. Use uma de: {', '.join(REGIONS_BY_KEY)}"))
    if results is not None and not isinstance(results, dict):
        errors.append(("testes_ortopedicos_json", "Os testes ortopédicos devem ser um objeto JSON."))
    elif isinstance(results, dict):
        for key, value in results.items():
            if isinstance(value, (dict, list)):
                errors.append(("testes_ortopedicos_json", f"Valor inválido para o teste '{key}'."))
                break
    return errors


def build_suggestion(region: str | None, results: dict[str, Any] | None) -> dict[str, str]:
    diagnostico = suggest_diagnosis(region, results)
    return {
        "diagnostico": diagnostico,
        "probabilidade": detect_probability(diagnostico) if diagnostico else "",
    }


def apply_suggestion(values: MutableMapping[str, Any]) -> None:
    """
    Fill the orthopedic conclusion on a ficha's attribute values.

    A diagnostic text typed by the clinician is kept as is; only a blank one is
    replaced by the rule-table suggestion. The probability follows the final text
    unless it was set explicitly.
    """
    region = values.get("regiao_avaliada")
    if values.get("testes_ortopedicos_json") is not None:
        values["testes_ortopedicos_json"] = normalize_results(values["testes_ortopedicos_json"])

    # The placeholder shown for incomplete input is never a diagnosis.
    if values.get("diagnostico_funcional_provavel") == INCOMPLETE_MESSAGE:
        values["diagnostico_funcional_provavel"] = None

    if region and not values.get("diagnostico_funcional_provavel"):
        suggestion = suggest_diagnosis(region, values.get("testes_ortopedicos_json"))
        if suggestion and suggestion != INCOMPLETE_MESSAGE:
            logger.debug("orthopedic suggestion filled for region=%s", region)
            values["diagnostico_funcional_provavel"] = suggestion

    if values.get("diagnostico_funcional_provavel") and not values.get("probabilidade_clinica"):
        values["probabilidade_clinica"] = detect_probability(values["diagnostico_funcional_provavel"])
