"""Values derived from the vital signs block."""
from __future__ import annotations

from typing import Any, MutableMapping

IMC_BANDS: tuple[tuple[float, str], ...] = (
    (18.5, "Baixo peso"),
    (25.0, "Eutrofia"),
    (30.0, "Sobrepeso"),
    (35.0, "Obesidade grau I"),
    (40.0, "Obesidade grau II"),
)


def _parse_decimal(raw: Any) -> float | None:
    if raw is None:
        return None
    text = str(raw).strip().lower().replace(",", ".")
    for suffix in ("kg", "cm", "m"):
        if text.endswith(suffix):
            text = text[: -len(suffix)].strip()
            break
    try:
        value = float(text)
    except ValueError:
        return None
    return value if value > 0 else None


def compute_imc(peso: Any, altura: Any) -> float | None:
    weight = _parse_decimal(peso)
    height = _parse_decimal(altura)
    if weight is None or height is None:
        return None
    if height > 3:
        height = height / 100.0  # given in centimetres
    return round(weight / (height * height), 2)


def classify_imc(imc: float | None) -> str | None:
    if imc is None:
        return None
    for upper, label in IMC_BANDS:
        if imc < upper:
            return label
    return "Obesidade grau III"


def estimate_fc_max(idade: int | None) -> int | None:
    if idade is None or idade < 0:
        return None
    return 220 - idade


def apply_derived_vitals(values: MutableMapping[str, Any]) -> None:
    """Fill blank IMC, IMC band and max heart rate; never overwrite entered values."""
    if not values.get("imc"):
        imc = compute_imc(values.get("peso"), values.get("altura"))
        if imc is not None:
            values["imc"] = f"{imc:.2f}"

    if values.get("imc") and not values.get("classificacao_imc"):
        values["classificacao_imc"] = classify_imc(_parse_decimal(values["imc"]))

    if values.get("fc_max") is None:
        fc_max = estimate_fc_max(values.get("idade_atual"))
        if fc_max is not None:
            values["fc_max"] = fc_max
