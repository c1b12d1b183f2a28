"""
Model specifications and registry.

A ``ModelSpec`` names a model type and its main arguments using the
tutorial vocabulary (``penalty``, ``mtry``, ``min_n``, ...). The registry
maps each model type to a scikit-learn estimator and translates main
arguments to estimator parameters. Arguments set to ``tune()`` are
placeholders filled in by a tuning grid.
"""

from dataclasses import dataclass, field, replace
from typing import Any

from sklearn.base import BaseEstimator
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LinearRegression
from sklearn.tree import DecisionTreeClassifier

from casebook.modeling.engines import PenalizedLogisticRegression
from casebook.utils.logging import get_logger

log = get_logger(__name__)


class Tune:
    """Placeholder for an argument whose value comes from a tuning grid."""

    def __repr__(self) -> str:
        return "tune()"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Tune)

    def __hash__(self) -> int:
        return hash("tune()")


def tune() -> Tune:
    """Mark a model argument for tuning."""
    return Tune()


@dataclass(frozen=True)
class ModelDefinition:
    """
    Registry entry for a model type.

    Attributes:
        estimator: scikit-learn estimator class.
        mode: ``classification`` or ``regression``.
        arguments: Main argument name -> estimator parameter name.
        defaults: Estimator keyword defaults.
    """

    estimator: type[BaseEstimator]
    mode: str
    arguments: dict[str, str]
    defaults: dict[str, Any] = field(default_factory=dict)


# Model types: name -> definition
MODEL_REGISTRY: dict[str, ModelDefinition] = {
    "logistic_reg": ModelDefinition(
        PenalizedLogisticRegression,
        "classification",
        {"penalty": "penalty", "mixture": "mixture"},
        {"penalty": 0.0, "mixture": 1.0},
    ),
    "rand_forest": ModelDefinition(
        RandomForestClassifier,
        "classification",
        {"mtry": "max_features", "trees": "n_estimators", "min_n": "min_samples_split"},
        {"n_estimators": 500, "n_jobs": 1},
    ),
    "decision_tree": ModelDefinition(
        DecisionTreeClassifier,
        "classification",
        {
            "cost_complexity": "ccp_alpha",
            "tree_depth": "max_depth",
            "min_n": "min_samples_split",
        },
    ),
    "linear_reg": ModelDefinition(LinearRegression, "regression", {}),
}


@dataclass(frozen=True)
class ModelSpec:
    """
    Model type with main arguments and engine-specific arguments.

    Attributes:
        model_type: Registry key.
        args: Main arguments (values may be ``tune()``).
        engine_args: Extra keyword arguments passed straight to the estimator.
    """

    model_type: str
    args: dict[str, Any] = field(default_factory=dict)
    engine_args: dict[str, Any] = field(default_factory=dict)

    @property
    def definition(self) -> ModelDefinition:
        return get_definition(self.model_type)

    @property
    def mode(self) -> str:
        return self.definition.mode

    def tunable(self) -> list[str]:
        """Main arguments marked with ``tune()``, in declaration order."""
        return [name for name, value in self.args.items() if isinstance(value, Tune)]

    def set_args(self, **args: Any) -> "ModelSpec":
        """Return a copy with main arguments replaced."""
        return replace(self, args={**self.args, **args})

    def set_engine(self, **engine_args: Any) -> "ModelSpec":
        """Return a copy with engine arguments replaced."""
        return replace(self, engine_args={**self.engine_args, **engine_args})

    def engine_param(self, name: str) -> str:
        """Estimator parameter name for a main argument."""
        arguments = self.definition.arguments
        if name not in arguments:
            available = ", ".join(arguments) or "none"
            msg = f"'{self.model_type}' has no argument '{name}'. Available: {available}"
            raise KeyError(msg)
        return arguments[name]

    def build(self, *, allow_tune: bool = False) -> BaseEstimator:
        """
        Instantiate the estimator.

        Args:
            allow_tune: Leave ``tune()`` arguments at the estimator default
                (a tuning grid sets them later). Otherwise they are an error.

        Raises:
            ValueError: If arguments are still marked for tuning.
        """
        pending = self.tunable()
        if pending and not allow_tune:
            msg = f"Arguments still marked for tuning: {pending}. Finalize the model first."
            raise ValueError(msg)

        definition = self.definition
        params = dict(definition.defaults)
        for name, value in self.args.items():
            if isinstance(value, Tune):
                continue
            params[self.engine_param(name)] = value
        params.update(self.engine_args)

        log.debug("Creating model", model_type=self.model_type, params=params)
        return definition.estimator(**params)

    def describe(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.args.items())
        return f"{self.model_type}({args})"


def get_definition(model_type: str) -> ModelDefinition:
    """
    Look up a model type.

    Raises:
        KeyError: If the model type is not registered.
    """
    if model_type not in MODEL_REGISTRY:
        available = ", ".join(MODEL_REGISTRY.keys())
        msg = f"Unknown model '{model_type}'. Available: {available}"
        raise KeyError(msg)
    return MODEL_REGISTRY[model_type]


def list_models() -> list[str]:
    """List all available model types."""
    return list(MODEL_REGISTRY.keys())


def logistic_reg(**args: Any) -> ModelSpec:
    """Logistic regression; ``penalty`` > 0 adds an elastic-net penalty."""
    return ModelSpec("logistic_reg", args)


def rand_forest(**args: Any) -> ModelSpec:
    """Random forest classifier (``mtry``, ``trees``, ``min_n``)."""
    return ModelSpec("rand_forest", args)


def decision_tree(**args: Any) -> ModelSpec:
    """Decision tree classifier (``cost_complexity``, ``tree_depth``, ``min_n``)."""
    return ModelSpec("decision_tree", args)


def linear_reg(**args: Any) -> ModelSpec:
    """Ordinary least squares."""
    return ModelSpec("linear_reg", args)
