"""Observation records handed to the inference engine."""
from __future__ import annotations

import math
from typing import Dict, Iterable, List

DEFAULT_OBSERVED_NAME = "y"


def make_record(value: float, name: str = DEFAULT_OBSERVED_NAME) -> Dict[str, float]:
    """Wrap one scalar as ``{name: value}``."""

    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"Observation for '{name}' must be finite, got {value}")
    return {name: value}


def make_records(values: Iterable[float], name: str = DEFAULT_OBSERVED_NAME) -> List[Dict[str, float]]:
    return [make_record(value, name) for value in values]


def record_values(records: Iterable[Dict[str, float]], name: str = DEFAULT_OBSERVED_NAME) -> List[float]:
    """Inverse of :func:`make_records`."""

    values: List[float] = []
    for idx, record in enumerate(records):
        if name not in record:
            raise KeyError(f"Record {idx} has no '{name}' entry")
        values.append(float(record[name]))
    return values


__all__ = ["DEFAULT_OBSERVED_NAME", "make_record", "make_records", "record_values"]
