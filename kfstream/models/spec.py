"""Declarative model and constraint descriptions.

Nothing here performs inference. A :class:`ModelSpec` names the random
variables of a model, their distribution families and how their parameters
depend on each other; a :class:`ConstraintsSpec` says how the approximate
posterior factorizes. Both are handed unchanged to an external engine.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

ParamValue = Union[float, int, str]


class InvalidModel(ValueError):
    """Raised when a model or constraints description is inconsistent."""


@dataclass(frozen=True)
class VariableSpec:
    """One random variable.

    ``params`` maps a distribution parameter to either a constant or the name
    of a model hyperparameter or of another variable declared earlier.
    """

    name: str
    distribution: str
    params: Mapping[str, ParamValue] = field(default_factory=dict)
    observed: bool = False

    def __post_init__(self) -> None:
        if not self.name or not self.name.isidentifier():
            raise InvalidModel(f"Variable name '{self.name}' is not a valid identifier")
        if not self.distribution:
            raise InvalidModel(f"Variable '{self.name}' has no distribution")
        object.__setattr__(self, "params", dict(self.params))

    @property
    def references(self) -> Tuple[str, ...]:
        return tuple(value for value in self.params.values() if isinstance(value, str))


class ModelSpec:
    """Ordered, validated collection of :class:`VariableSpec` entries."""

    def __init__(
        self,
        name: str,
        variables: Iterable[VariableSpec],
        hyperparameters: Mapping[str, float] | None = None,
    ) -> None:
        self.name = name
        self.hyperparameters: Dict[str, float] = {
            key: float(value) for key, value in (hyperparameters or {}).items()
        }
        self._variables: Dict[str, VariableSpec] = {}
        for variable in variables:
            if variable.name in self._variables:
                raise InvalidModel(f"Variable '{variable.name}' declared twice in model '{name}'")
            if variable.name in self.hyperparameters:
                raise InvalidModel(f"Variable '{variable.name}' clashes with a hyperparameter")
            for ref in variable.references:
                if ref not in self._variables and ref not in self.hyperparameters:
                    raise InvalidModel(
                        f"Variable '{variable.name}' depends on '{ref}', which is not declared before it"
                    )
            self._variables[variable.name] = variable
        if not self._variables:
            raise InvalidModel(f"Model '{name}' has no variables")

    def __contains__(self, name: object) -> bool:
        return name in self._variables

    def __getitem__(self, name: str) -> VariableSpec:
        try:
            return self._variables[name]
        except KeyError as exc:
            raise InvalidModel(f"Model '{self.name}' has no variable '{name}'") from exc

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self._variables.values())

    def __len__(self) -> int:
        return len(self._variables)

    @property
    def variable_names(self) -> Tuple[str, ...]:
        return tuple(self._variables)

    @property
    def observed(self) -> Tuple[str, ...]:
        return tuple(name for name, var in self._variables.items() if var.observed)

    @property
    def latent(self) -> Tuple[str, ...]:
        return tuple(name for name, var in self._variables.items() if not var.observed)

    def parents(self, name: str) -> Tuple[str, ...]:
        return tuple(ref for ref in self[name].references if ref in self._variables)

    def with_hyperparameters(self, **values: float) -> "ModelSpec":
        """Copy of the model with some hyperparameters replaced."""

        unknown = sorted(set(values) - set(self.hyperparameters))
        if unknown:
            raise InvalidModel(f"Model '{self.name}' has no hyperparameters {unknown}")
        merged = {**self.hyperparameters, **values}
        return ModelSpec(self.name, self._variables.values(), hyperparameters=merged)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "hyperparameters": dict(self.hyperparameters),
            "variables": [
                {
                    "name": var.name,
                    "distribution": var.distribution,
                    "params": dict(var.params),
                    "observed": var.observed,
                }
                for var in self
            ],
        }

    def __repr__(self) -> str:
        return f"ModelSpec(name={self.name!r}, variables={list(self.variable_names)})"


@dataclass(frozen=True)
class ConstraintsSpec:
    """Posterior factorization, one tuple of latent names per factor."""

    factors: Tuple[Tuple[str, ...], ...]

    def __post_init__(self) -> None:
        factors = tuple(tuple(factor) for factor in self.factors)
        if any(not factor for factor in factors):
            raise InvalidModel("Constraint factors must not be empty")
        object.__setattr__(self, "factors", factors)

    @classmethod
    def mean_field(cls, names: Iterable[str]) -> "ConstraintsSpec":
        return cls(tuple((name,) for name in names))

    def validate(self, model: ModelSpec) -> None:
        seen: List[str] = []
        for factor in self.factors:
            for name in factor:
                if name not in model:
                    raise InvalidModel(f"Constraint refers to unknown variable '{name}'")
                if model[name].observed:
                    raise InvalidModel(f"Constraint refers to observed variable '{name}'")
                if name in seen:
                    raise InvalidModel(f"Variable '{name}' appears in more than one factor")
                seen.append(name)

    def to_dict(self) -> Dict[str, Any]:
        return {"factors": [list(factor) for factor in self.factors]}


__all__ = ["ConstraintsSpec", "InvalidModel", "ModelSpec", "ParamValue", "VariableSpec"]
