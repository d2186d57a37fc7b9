"""
Core data types for the risk pipeline.

AssetSeries is the validated input price history for one asset. Return
matrices, covariance matrices and contribution vectors are plain pandas
objects; RiskDecomposition groups the outputs of a decomposition.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .errors import DimensionMismatchError, InvalidSeriesError, NumericalError

WeightsLike = Union[Sequence[float], np.ndarray, pd.Series]
CovLike = Union[np.ndarray, pd.DataFrame]


class ReturnMethod(str, Enum):
    """How consecutive prices are turned into a periodic return."""

    LOG = "log"
    SIMPLE = "simple"

    @classmethod
    def parse(cls, method: Union["ReturnMethod", str]) -> "ReturnMethod":
        if isinstance(method, cls):
            return method
        try:
            return cls(str(method).lower())
        except ValueError:
            raise ValueError(
                f"Unknown return method: {method}. Use 'log' or 'simple'"
            ) from None


@dataclass(frozen=True, eq=False, init=False)
class AssetSeries:
    """Price history of a single asset.

    Holds a private read-only float copy of the supplied prices on a
    DatetimeIndex. ``prices`` hands out a fresh Series on every access, so
    edits to it never reach the instance.

    Representation Invariants:
        - timestamps are strictly increasing (sorted, no duplicates, no NaT)
        - prices are finite

    Positivity is not part of the invariant: the return builder reports
    non-positive prices for the method that cannot handle them.
    """

    _values: np.ndarray
    _index: pd.DatetimeIndex
    _name: Optional[str]

    def __init__(self, prices: pd.Series) -> None:
        series = prices
        if not isinstance(series, pd.Series):
            raise TypeError(f"prices must be a pd.Series, got {type(series).__name__}")

        if len(series.index) and (
            pd.api.types.is_numeric_dtype(series.index)
            or pd.api.types.is_bool_dtype(series.index)
        ):
            raise InvalidSeriesError(
                f"timestamps must be datetime-like, got a {series.index.dtype} index"
            )

        try:
            index = pd.DatetimeIndex(series.index)
        except (TypeError, ValueError) as e:
            raise InvalidSeriesError(f"timestamps are not datetime-like: {e}") from e

        try:
            values = series.to_numpy(dtype=float, copy=True)
        except (TypeError, ValueError) as e:
            raise InvalidSeriesError(f"prices are not numeric: {e}") from e

        if index.hasnans:
            raise InvalidSeriesError("timestamps must not contain NaT")
        if index.has_duplicates:
            dupes = index[index.duplicated()].unique()
            raise InvalidSeriesError(
                f"timestamps must not contain duplicates: {[str(d) for d in dupes[:5]]}"
            )
        if not index.is_monotonic_increasing:
            raise InvalidSeriesError("timestamps must be strictly increasing")
        if not np.isfinite(values).all():
            raise InvalidSeriesError("prices must be finite numbers")

        values.setflags(write=False)
        object.__setattr__(self, "_values", values)
        object.__setattr__(self, "_index", index.copy())
        object.__setattr__(self, "_name", series.name)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[object, float]]) -> "AssetSeries":
        """Build from ordered (timestamp, price) pairs."""
        pairs = list(pairs)
        dates = [ts for ts, _ in pairs]
        prices = [price for _, price in pairs]
        return cls(pd.Series(prices, index=pd.to_datetime(dates), dtype=float))

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        price_col: str = "adj_close",
        date_col: str = "date",
    ) -> "AssetSeries":
        """Build from a price DataFrame with a date column and a price column.

        Rows with a missing price are dropped (never forward-filled) and rows
        are sorted by date. Duplicate dates are rejected.
        """
        if price_col not in df.columns:
            raise InvalidSeriesError(f"missing price column '{price_col}'")
        if date_col not in df.columns:
            raise InvalidSeriesError(f"missing date column '{date_col}'")

        df = df.copy()
        if not pd.api.types.is_datetime64_any_dtype(df[date_col]):
            df[date_col] = pd.to_datetime(df[date_col])

        prices = df.set_index(date_col)[price_col].dropna().sort_index()
        return cls(prices)

    @property
    def prices(self) -> pd.Series:
        return pd.Series(self._values.copy(), index=self._index, name=self._name)

    @property
    def timestamps(self) -> pd.DatetimeIndex:
        return self._index

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        if len(self) == 0:
            return "AssetSeries(0 obs)"
        return (
            f"AssetSeries({len(self)} obs, "
            f"{self.timestamps[0].date()} to {self.timestamps[-1].date()})"
        )


@dataclass(frozen=True, eq=False)
class RiskDecomposition:
    """Per-asset split of portfolio volatility.

    Attributes:
        marginal: (w' Sigma)_i / sigma_p, risk per unit of weight
        component: w_i * marginal_i, sums to portfolio_vol
        percentage: component_i / sigma_p, sums to 1.0
        portfolio_vol: the volatility the contributions were scaled by
    """

    marginal: pd.Series
    component: pd.Series
    percentage: pd.Series
    portfolio_vol: float

    def to_frame(self) -> pd.DataFrame:
        """Return the three contribution vectors as columns of one DataFrame."""
        return pd.DataFrame({
            "marginal": self.marginal,
            "component": self.component,
            "percentage": self.percentage,
        })


def _is_positional(index: pd.Index) -> bool:
    if isinstance(index, pd.RangeIndex):
        return True
    return bool(
        pd.api.types.is_integer_dtype(index)
        and index.equals(pd.RangeIndex(len(index)))
    )


def align_weights(
    weights: WeightsLike,
    labels: Optional[List],
    size: int,
    against: str = "covariance",
) -> Tuple[np.ndarray, List]:
    """Convert weights to a flat float array of length ``size``.

    A weight Series indexed by asset labels is reordered to ``labels`` when
    labels are known. Lists, arrays and Series whose index is 0..n-1 are
    taken positionally.

    Returns:
        Tuple of (weights, labels); labels default to the Series index or
        to 0..size-1.

    Raises:
        DimensionMismatchError: If the size or the label set differs
        NumericalError: If a weight is NaN or infinite
    """
    if (
        isinstance(weights, pd.Series)
        and labels is not None
        and not _is_positional(weights.index)
    ):
        if len(weights) != len(labels) or set(weights.index) != set(labels):
            raise DimensionMismatchError(
                f"Weight labels {list(weights.index)} don't match {against} labels {list(labels)}"
            )
        weights = weights.reindex(labels)

    w = np.asarray(weights, dtype=float).flatten()

    if w.shape[0] != size:
        raise DimensionMismatchError(
            f"Weights dimension {w.shape[0]} doesn't match {against} {size}"
        )

    if not np.isfinite(w).all():
        raise NumericalError("Weights contain non-finite values")

    if labels is None:
        labels = list(weights.index) if isinstance(weights, pd.Series) else list(range(size))

    return w, list(labels)


def align_weights_and_cov(
    weights: WeightsLike,
    cov: CovLike,
) -> Tuple[np.ndarray, np.ndarray, List]:
    """Convert weights and covariance to float arrays with matching dimension.

    Returns:
        Tuple of (weights, cov, labels), labels being the asset identifiers
        for the output vectors.

    Raises:
        DimensionMismatchError: If cov is not square or sizes/labels differ
        NumericalError: If either input holds non-finite values
    """
    if isinstance(cov, pd.DataFrame):
        labels = list(cov.columns)
        cov_arr = cov.to_numpy(dtype=float)
    else:
        labels = None
        cov_arr = np.asarray(cov, dtype=float)

    if cov_arr.ndim != 2 or cov_arr.shape[0] != cov_arr.shape[1]:
        raise DimensionMismatchError(
            f"Covariance matrix must be square, got shape {cov_arr.shape}"
        )

    if not np.isfinite(cov_arr).all():
        raise NumericalError("Covariance matrix contains non-finite values")

    w, labels = align_weights(weights, labels, cov_arr.shape[0])

    return w, cov_arr, labels
