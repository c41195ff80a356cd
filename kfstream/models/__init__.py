"""Declarative model descriptions."""
from .spec import ConstraintsSpec, InvalidModel, ModelSpec, VariableSpec
from .library import (
    KALMAN_HYPERPARAMETERS,
    build_model,
    kalman_constraints,
    kalman_random_walk_model,
    skill_assessment_model,
    skill_constraints,
)

__all__ = [
    "ConstraintsSpec",
    "InvalidModel",
    "KALMAN_HYPERPARAMETERS",
    "ModelSpec",
    "VariableSpec",
    "build_model",
    "kalman_constraints",
    "kalman_random_walk_model",
    "skill_assessment_model",
    "skill_constraints",
]
