"""
Tuning parameters and grids.

Each ``Parameter`` carries a default range (on the transformed scale when
it has a transform) so that grids can be generated without the caller
spelling out values. Grids are plain DataFrames with one column per
parameter and one row per candidate.
"""

import itertools
from dataclasses import dataclass, replace

import numpy as np
import pandas as pd
from scipy.stats import qmc

from casebook.modeling.models import ModelSpec
from casebook.utils.logging import get_logger

log = get_logger(__name__)

TRANSFORMS = {None, "log10"}


@dataclass(frozen=True)
class Parameter:
    """
    Tuning parameter with a range.

    Attributes:
        name: Main argument name.
        lower: Lower bound (transformed scale).
        upper: Upper bound (transformed scale); None until finalized.
        trans: ``log10`` or None.
        integer: Whether values are whole numbers.
        label: Display label.
    """

    name: str
    lower: float
    upper: float | None
    trans: str | None = None
    integer: bool = False
    label: str = ""

    def __post_init__(self) -> None:
        if self.trans not in TRANSFORMS:
            msg = f"Unknown transform '{self.trans}'"
            raise ValueError(msg)

    @property
    def finalized(self) -> bool:
        return self.upper is not None

    def with_range(self, lower: float, upper: float) -> "Parameter":
        """Copy with a new range (transformed scale)."""
        return replace(self, lower=lower, upper=upper)

    def finalize(self, n_predictors: int) -> "Parameter":
        """Set an unknown upper bound from the number of predictors."""
        if self.finalized:
            return self
        if n_predictors < 1:
            msg = f"Cannot finalize '{self.name}' with {n_predictors} predictors"
            raise ValueError(msg)
        return replace(self, upper=float(n_predictors))

    def _check(self) -> float:
        if self.upper is None:
            msg = f"Parameter '{self.name}' has an unknown upper bound; finalize it first"
            raise ValueError(msg)
        return self.upper

    def _natural(self, values: np.ndarray) -> np.ndarray:
        if self.trans == "log10":
            values = 10.0**values
        if self.integer:
            values = np.floor(values + 1e-9).astype(int)
        return values

    def value_seq(self, levels: int) -> list[float]:
        """Evenly spaced values across the range (transformed scale)."""
        upper = self._check()
        if levels < 1:
            msg = "levels must be >= 1"
            raise ValueError(msg)
        if levels == 1:
            raw = np.array([self.lower])
        else:
            raw = np.linspace(self.lower, upper, levels)
        return list(dict.fromkeys(self._natural(raw).tolist()))

    def from_unit(self, u: np.ndarray) -> np.ndarray:
        """Map points in [0, 1] onto the range."""
        upper = self._check()
        raw = self.lower + u * (upper - self.lower)
        if self.integer:
            return np.clip(np.round(raw), self.lower, upper).astype(int)
        return self._natural(raw)


# Default parameter objects: name -> Parameter
PARAMETERS: dict[str, Parameter] = {
    "penalty": Parameter("penalty", -10.0, 0.0, "log10", label="Amount of Regularization"),
    "mixture": Parameter("mixture", 0.0, 1.0, label="Proportion of Lasso Penalty"),
    "mtry": Parameter("mtry", 1, None, integer=True, label="# Randomly Selected Predictors"),
    "min_n": Parameter("min_n", 2, 40, integer=True, label="Minimal Node Size"),
    "trees": Parameter("trees", 1, 2000, integer=True, label="# Trees"),
    "cost_complexity": Parameter(
        "cost_complexity", -10.0, -1.0, "log10", label="Cost-Complexity Parameter"
    ),
    "tree_depth": Parameter("tree_depth", 1, 15, integer=True, label="Tree Depth"),
}


def get_parameter(name: str) -> Parameter:
    """
    Default parameter object by name.

    Raises:
        KeyError: If the parameter is unknown.
    """
    if name not in PARAMETERS:
        available = ", ".join(PARAMETERS.keys())
        msg = f"Unknown parameter '{name}'. Available: {available}"
        raise KeyError(msg)
    return PARAMETERS[name]


def parameters(spec: ModelSpec) -> list[Parameter]:
    """Parameter objects for the tunable arguments of a model spec."""
    return [get_parameter(name) for name in spec.tunable()]


def value_grid(**values: list[float]) -> pd.DataFrame:
    """Explicit grid: full crossing of the given values."""
    if not values:
        msg = "value_grid needs at least one parameter"
        raise ValueError(msg)
    names = list(values)
    rows = list(itertools.product(*(values[n] for n in names)))
    if not rows:
        msg = "value_grid produced no candidates"
        raise ValueError(msg)
    return pd.DataFrame(rows, columns=names)


def grid_regular(*params: Parameter, levels: int = 3) -> pd.DataFrame:
    """
    Regular grid: ``levels`` values per parameter, fully crossed.

    The first parameter varies fastest.
    """
    if not params:
        msg = "grid_regular needs at least one parameter"
        raise ValueError(msg)
    seqs = [p.value_seq(levels) for p in params]
    rows = [tuple(reversed(combo)) for combo in itertools.product(*reversed(seqs))]
    grid = pd.DataFrame(rows, columns=[p.name for p in params])
    log.debug("Built regular grid", params=[p.name for p in params], size=len(grid))
    return grid


def grid_space_filling(*params: Parameter, size: int = 25, seed: int | None = None) -> pd.DataFrame:
    """
    Latin hypercube grid of ``size`` candidates.

    Duplicate candidates (possible after rounding integer parameters) are
    dropped, so the grid may be smaller than ``size``.
    """
    if not params:
        msg = "grid_space_filling needs at least one parameter"
        raise ValueError(msg)
    if size < 1:
        msg = "size must be >= 1"
        raise ValueError(msg)

    sampler = qmc.LatinHypercube(d=len(params), seed=seed)
    unit = sampler.random(n=size)
    grid = pd.DataFrame(
        {p.name: p.from_unit(unit[:, i]) for i, p in enumerate(params)}
    ).drop_duplicates(ignore_index=True)

    log.debug("Built space-filling grid", params=[p.name for p in params], size=len(grid))
    return grid
