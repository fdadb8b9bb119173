from typing import Any, Dict, Mapping
from sqlalchemy import JSON
from sqlalchemy.types import TypeDecorator


def validate_answer_map(value: Mapping[Any, Any] | None) -> Dict[int, int]:
    """
    Normaliza {índice_pregunta: índice_opción} a ints no negativos.
    Acepta claves/valores str (así llegan desde JSON) y lanza ValueError si algo no cuadra.
    """
    if not value:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"answer map must be a mapping, got {type(value).__name__}")
    out: Dict[int, int] = {}
    for k, v in value.items():
        if isinstance(k, bool) or isinstance(v, bool):
            raise ValueError("answer map does not accept booleans")
        try:
            qi, oi = int(k), int(v)
        except (TypeError, ValueError):
            raise ValueError(f"invalid answer entry {k!r}: {v!r}")
        if qi < 0 or oi < 0:
            raise ValueError(f"negative index in answer entry {k!r}: {v!r}")
        out[qi] = oi
    return out


class AnswerMapType(TypeDecorator):
    """Columna JSON tipada: dict[int, int] en Python, {"0": 1, ...} en la DB."""

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        clean = validate_answer_map(value)
        return {str(k): v for k, v in sorted(clean.items())}

    def process_result_value(self, value, dialect):
        return validate_answer_map(value)
