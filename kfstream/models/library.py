"""Ready-made model descriptions used by the demonstrations."""
from __future__ import annotations

from kfstream.data.records import DEFAULT_OBSERVED_NAME

from .spec import ConstraintsSpec, ModelSpec, VariableSpec

KALMAN_HYPERPARAMETERS = {
    "x_prev_mean": 0.0,
    "x_prev_var": 1000.0,
    "tau_shape": 1.0,
    "tau_rate": 1.0,
}


def kalman_random_walk_model(
    observed: str = DEFAULT_OBSERVED_NAME,
    process_precision: float = 1.0,
    **hyperparameters: float,
) -> ModelSpec:
    """One step of a random-walk state observed with unknown noise precision.

    ``x_prev`` carries the previous posterior over the state, ``tau`` the
    observation precision. The four prior hyperparameters are the quantities
    an autoupdate rewrites after every observation.
    """

    if process_precision <= 0:
        raise ValueError("process_precision must be positive")
    priors = dict(KALMAN_HYPERPARAMETERS)
    unknown = sorted(set(hyperparameters) - set(priors))
    if unknown:
        raise ValueError(f"Unknown hyperparameters {unknown}")
    priors.update(hyperparameters)
    return ModelSpec(
        "kalman_random_walk",
        [
            VariableSpec("x_prev", "Normal", {"mean": "x_prev_mean", "variance": "x_prev_var"}),
            VariableSpec("tau", "Gamma", {"shape": "tau_shape", "rate": "tau_rate"}),
            VariableSpec("x", "Normal", {"mean": "x_prev", "precision": float(process_precision)}),
            VariableSpec(observed, "Normal", {"mean": "x", "precision": "tau"}, observed=True),
        ],
        hyperparameters=priors,
    )


def kalman_constraints() -> ConstraintsSpec:
    """Structured split: the two states jointly, the precision on its own."""

    return ConstraintsSpec((("x_prev", "x"), ("tau",)))


def skill_assessment_model(prior: float = 0.5) -> ModelSpec:
    """Three binary skills assessed by three test results.

    Test one needs skill one, test two needs skills one and two, test three
    needs all three. A test is passed with probability 0.9 when its skills are
    present and 0.1 otherwise; each rule is a deterministic AND node feeding a
    noisy Bernoulli link.
    """

    if not 0.0 <= prior <= 1.0:
        raise ValueError("prior must lie in [0, 1]")
    return ModelSpec(
        "skill_assessment",
        [
            VariableSpec("s1", "Bernoulli", {"p": float(prior)}),
            VariableSpec("s2", "Bernoulli", {"p": float(prior)}),
            VariableSpec("s3", "Bernoulli", {"p": float(prior)}),
            VariableSpec("r1", "NoisyLink", {"input": "s1", "p_true": 0.9, "p_false": 0.1}, observed=True),
            VariableSpec("s12", "And", {"a": "s1", "b": "s2"}),
            VariableSpec("r2", "NoisyLink", {"input": "s12", "p_true": 0.9, "p_false": 0.1}, observed=True),
            VariableSpec("s123", "And", {"a": "s12", "b": "s3"}),
            VariableSpec("r3", "NoisyLink", {"input": "s123", "p_true": 0.9, "p_false": 0.1}, observed=True),
        ],
    )


def skill_constraints() -> ConstraintsSpec:
    return ConstraintsSpec((("s1", "s2", "s3", "s12", "s123"),))


MODEL_REGISTRY = {
    "kalman_random_walk": (kalman_random_walk_model, kalman_constraints),
    "skill_assessment": (skill_assessment_model, skill_constraints),
}


def build_model(name: str, **kwargs):  # type: ignore[no-untyped-def]
    """Return ``(model, constraints)`` for a registered model name."""

    if name not in MODEL_REGISTRY:
        raise KeyError(f"Unknown model {name}")
    model_fn, constraints_fn = MODEL_REGISTRY[name]
    model = model_fn(**kwargs)
    constraints = constraints_fn()
    constraints.validate(model)
    return model, constraints


__all__ = [
    "KALMAN_HYPERPARAMETERS",
    "MODEL_REGISTRY",
    "build_model",
    "kalman_constraints",
    "kalman_random_walk_model",
    "skill_assessment_model",
    "skill_constraints",
]
