"""
Data splitting and resampling.

Splits are stored as positional row indices into the data they were made
from, so they can be handed to scikit-learn as ``cv`` iterables without
copying data.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, StratifiedKFold, train_test_split

from casebook.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class Split:
    """
    One analysis/assessment partition of a data frame.

    Attributes:
        data: Full data the split indexes into.
        in_id: Positional indices of analysis (training) rows.
        out_id: Positional indices of assessment (test) rows.
        id: Split label.
    """

    data: pd.DataFrame
    in_id: np.ndarray
    out_id: np.ndarray
    id: str = "split"

    def analysis(self) -> pd.DataFrame:
        return self.data.iloc[self.in_id]

    def assessment(self) -> pd.DataFrame:
        return self.data.iloc[self.out_id]

    # Names used for the initial train/test split.
    training = analysis
    testing = assessment

    def __repr__(self) -> str:
        return f"<{self.id}: {len(self.in_id)}/{len(self.out_id)}/{len(self.data)}>"


@dataclass
class Resamples:
    """Collection of splits over the same data."""

    data: pd.DataFrame
    splits: list[Split]
    kind: str

    def __len__(self) -> int:
        return len(self.splits)

    @property
    def ids(self) -> list[str]:
        return [s.id for s in self.splits]

    def indices(self) -> list[tuple[np.ndarray, np.ndarray]]:
        """(train, test) index pairs for scikit-learn's ``cv`` argument."""
        return [(s.in_id, s.out_id) for s in self.splits]


def _check_prop(prop: float) -> None:
    if not 0.0 < prop < 1.0:
        msg = f"prop must be in (0, 1), got {prop}"
        raise ValueError(msg)


def _strata_values(data: pd.DataFrame, strata: str | None) -> np.ndarray | None:
    if strata is None:
        return None
    if strata not in data.columns:
        msg = f"Strata column '{strata}' not found"
        raise KeyError(msg)
    return data[strata].astype(str).to_numpy()


def _partition(
    data: pd.DataFrame,
    prop: float,
    strata: str | None,
    seed: int | None,
    split_id: str,
) -> Split:
    _check_prop(prop)
    positions = np.arange(len(data))
    in_id, out_id = train_test_split(
        positions,
        train_size=prop,
        stratify=_strata_values(data, strata),
        random_state=seed,
    )
    return Split(data, np.sort(in_id), np.sort(out_id), split_id)


def initial_split(
    data: pd.DataFrame,
    prop: float = 0.75,
    strata: str | None = None,
    seed: int | None = None,
) -> Split:
    """
    Single train/test split.

    Args:
        data: Data to split.
        prop: Share of rows used for training.
        strata: Column whose class proportions are preserved in both parts.
        seed: Random seed.

    Raises:
        ValueError: If ``prop`` is outside (0, 1).
    """
    split = _partition(data, prop, strata, seed, "train/test split")
    log.info(
        "Initial split",
        n_train=len(split.in_id),
        n_test=len(split.out_id),
        strata=strata,
        seed=seed,
    )
    return split


def validation_split(
    data: pd.DataFrame,
    prop: float = 0.75,
    strata: str | None = None,
    seed: int | None = None,
) -> Resamples:
    """Single resample with analysis and validation rows."""
    split = _partition(data, prop, strata, seed, "validation")
    log.info(
        "Validation split",
        n_analysis=len(split.in_id),
        n_validation=len(split.out_id),
        strata=strata,
        seed=seed,
    )
    return Resamples(data, [split], "validation_split")


def vfold_cv(
    data: pd.DataFrame,
    v: int = 10,
    strata: str | None = None,
    seed: int | None = None,
) -> Resamples:
    """
    V-fold cross-validation.

    Raises:
        ValueError: If ``v`` < 2 or larger than the number of rows.
    """
    if v < 2:
        msg = f"v must be >= 2, got {v}"
        raise ValueError(msg)
    if v > len(data):
        msg = f"v ({v}) exceeds number of rows ({len(data)})"
        raise ValueError(msg)

    strata_values = _strata_values(data, strata)
    if strata_values is None:
        folds = KFold(n_splits=v, shuffle=True, random_state=seed)
    else:
        folds = StratifiedKFold(n_splits=v, shuffle=True, random_state=seed)

    width = len(str(v))
    splits = [
        Split(data, in_id, out_id, f"Fold{i + 1:0{max(width, 2)}d}")
        for i, (in_id, out_id) in enumerate(folds.split(np.zeros(len(data)), strata_values))
    ]
    log.info("V-fold cross-validation", v=v, n=len(data), strata=strata, seed=seed)
    return Resamples(data, splits, "vfold_cv")
