"""Observation records and static datasets."""
from .records import DEFAULT_OBSERVED_NAME, make_record, make_records, record_values
from .datasets import (
    StaticDataset,
    dataset_from_env,
    generate_static_dataset,
    load_trajectory,
    save_trajectory,
)
from .cache import maybe_cache

__all__ = [
    "DEFAULT_OBSERVED_NAME",
    "StaticDataset",
    "dataset_from_env",
    "generate_static_dataset",
    "load_trajectory",
    "make_record",
    "make_records",
    "maybe_cache",
    "record_values",
    "save_trajectory",
]
