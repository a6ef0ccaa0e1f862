"""
Kernel density estimates over daily/hourly incident counts, rescaled into a
probability density and integrated into probability tables.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy import integrate
from sklearn.model_selection import GridSearchCV
from sklearn.neighbors import KernelDensity

log = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray, pd.Series]

DEFAULT_BANDWIDTH = 1.0
# half-width, in bandwidths, of the window used when every count is identical
DEGENERATE_WINDOW_BANDWIDTHS = 4.0
KERNEL_REACH_BANDWIDTHS = 3.0
QUAD_LIMIT = 500
BUCKET_COUNT_TOLERANCE = 1e-9


class InvalidParameter(ValueError):
    """Raised when an estimation or integration call cannot proceed with its inputs."""


class DegenerateInput(UserWarning):
    """All counts are identical; the estimate collapses to a single narrow bump."""


def validate_counts(counts: ArrayLike) -> np.ndarray:
    """Return counts as a sorted float array, rejecting anything that is not a count series."""
    if isinstance(counts, pd.Series):
        counts = counts.to_numpy()
    try:
        arr = np.asarray(counts, dtype=float).ravel()
    except (TypeError, ValueError) as exc:
        raise InvalidParameter(f"Count series must be numeric: {exc}") from exc
    if arr.size == 0:
        raise InvalidParameter("Count series is empty.")
    if not np.all(np.isfinite(arr)):
        raise InvalidParameter("Count series contains NaN or infinite values.")
    if np.any(arr < 0):
        raise InvalidParameter("Count series contains negative values.")
    if np.any(arr != np.floor(arr)):
        raise InvalidParameter("Count series contains non-integer values.")
    # sorted so that the kernel sum does not depend on input order
    return np.sort(arr)


def _validate_bandwidth(bandwidth: float) -> float:
    try:
        bw = float(bandwidth)
    except (TypeError, ValueError) as exc:
        raise InvalidParameter(f"Bandwidth must be a number, got {bandwidth!r}") from exc
    if not np.isfinite(bw) or bw <= 0:
        raise InvalidParameter(f"Bandwidth must be positive, got {bandwidth!r}")
    return bw


@dataclass(frozen=True)
class RawDensity:
    """Gaussian kernel sum over the observed counts, evaluated exactly at any real."""

    counts: np.ndarray
    bandwidth: float
    kde: KernelDensity = field(repr=False, compare=False)

    @property
    def observed_min(self) -> float:
        return float(self.counts[0])

    @property
    def observed_max(self) -> float:
        return float(self.counts[-1])

    def __call__(self, x):
        xs = np.atleast_1d(np.asarray(x, dtype=float))
        dens = np.exp(self.kde.score_samples(xs.reshape(-1, 1)))
        if np.ndim(x) == 0:
            return float(dens[0])
        return dens.reshape(np.shape(x))


@dataclass(frozen=True)
class RescaledDensity:
    """Raw density divided by its integral over ``[range_min, range_max]``.

    Only the normalization window integrates to one. Queries outside it reuse the
    same constant, so a table that reaches past the window can sum to more or
    less than one.
    """

    raw: RawDensity
    range_min: float
    range_max: float
    total: float

    def __call__(self, x):
        return self.raw(x) / self.total


@dataclass(frozen=True)
class KDEConfig:
    bandwidth: float = DEFAULT_BANDWIDTH
    normalize_min: Optional[float] = None
    normalize_max: Optional[float] = None


@dataclass(frozen=True)
class CountDensity:
    """One estimation: the fitted raw density, its rescaled form and its window."""

    raw: RawDensity
    density: RescaledDensity

    @property
    def range_min(self) -> float:
        return self.density.range_min

    @property
    def range_max(self) -> float:
        return self.density.range_max

    @property
    def bandwidth(self) -> float:
        return self.raw.bandwidth

    def pdf(self, x):
        return self.density(x)

    def probability(self, lower: float, upper: float) -> float:
        return integrate_density(self.density, lower, upper)

    def table(self, start: float, end: float, step: float) -> List[Tuple[str, float]]:
        return probability_table(self.density, start, end, step)


def fit_raw_density(
    counts: ArrayLike,
    bandwidth: float = DEFAULT_BANDWIDTH,
    *,
    stacklevel: int = 2,
) -> RawDensity:
    """Fit a Gaussian KDE to a gap-free count series.

    A series whose counts are all equal warns ``DegenerateInput`` once, here;
    ``stacklevel`` lets wrappers point that warning at their own caller.
    """
    bw = _validate_bandwidth(bandwidth)
    values = validate_counts(counts)
    if values[0] == values[-1]:
        warnings.warn(
            f"All {values.size} counts equal {values[0]:g}; density is a single bump.",
            DegenerateInput,
            stacklevel=stacklevel,
        )
    kde = KernelDensity(kernel="gaussian", bandwidth=bw, atol=0.0, rtol=0.0)
    kde.fit(values.reshape(-1, 1))
    log.debug("Fitted KDE on %d counts in [%g, %g], bandwidth=%g", values.size, values[0], values[-1], bw)
    return RawDensity(counts=values, bandwidth=bw, kde=kde)


def _break_points(density, lower: float, upper: float) -> Optional[List[float]]:
    raw = density.raw if isinstance(density, RescaledDensity) else density
    if not isinstance(raw, RawDensity):
        return None
    # each kernel's centre and its +-3 bandwidth shoulders
    centres = np.unique(raw.counts)
    reach = KERNEL_REACH_BANDWIDTHS * raw.bandwidth
    edges = np.concatenate([centres - reach, centres, centres + reach])
    inside = np.unique(edges[(edges > lower) & (edges < upper)])
    if inside.size == 0:
        return None
    if inside.size >= QUAD_LIMIT // 2:
        inside = inside[np.linspace(0, inside.size - 1, QUAD_LIMIT // 2 - 1).astype(int)]
    return inside.tolist()


def integrate_density(density, lower: float, upper: float) -> float:
    """Definite integral of ``density`` over ``[lower, upper]`` by adaptive quadrature."""
    lo, hi = float(lower), float(upper)
    if not (np.isfinite(lo) and np.isfinite(hi)):
        raise InvalidParameter(f"Integration bounds must be finite, got [{lower}, {upper}]")
    if lo > hi:
        raise InvalidParameter(f"Lower bound {lower} exceeds upper bound {upper}")
    if lo == hi:
        return 0.0
    value, _err = integrate.quad(
        density, lo, hi, points=_break_points(density, lo, hi), limit=QUAD_LIMIT
    )
    return float(value)


def rescale_density(
    raw: RawDensity,
    range_min: Optional[float] = None,
    range_max: Optional[float] = None,
    *,
    stacklevel: int = 2,
) -> RescaledDensity:
    """Normalize ``raw`` so it integrates to one over ``[range_min, range_max]``.

    The window defaults to the observed range of the counts. If that window has
    zero width it is widened to ``value ± 4 * bandwidth``. Only an explicit
    zero-width window warns; a defaulted one was already reported by the fit.
    """
    lo = raw.observed_min if range_min is None else float(range_min)
    hi = raw.observed_max if range_max is None else float(range_max)
    if not (np.isfinite(lo) and np.isfinite(hi)):
        raise InvalidParameter(f"Normalization window must be finite, got [{lo}, {hi}]")
    if lo > hi:
        raise InvalidParameter(f"Normalization window is inverted: [{lo}, {hi}]")
    if lo == hi:
        half = DEGENERATE_WINDOW_BANDWIDTHS * raw.bandwidth
        if range_min is not None or range_max is not None:
            warnings.warn(
                f"Normalization window [{lo:g}, {hi:g}] has zero width; using [{lo - half:g}, {hi + half:g}].",
                DegenerateInput,
                stacklevel=stacklevel,
            )
        lo, hi = lo - half, hi + half
    total = integrate_density(raw, lo, hi)
    if total <= 0:
        raise InvalidParameter(f"Density has no mass over [{lo:g}, {hi:g}]; cannot rescale.")
    return RescaledDensity(raw=raw, range_min=lo, range_max=hi, total=total)


def bucket_label(lower: float, upper: float) -> str:
    return f"{lower:g}-{upper:g}"


def probability_table(density, start: float, end: float, step: float) -> List[Tuple[str, float]]:
    """Probability mass of each ``[start + k*step, start + (k+1)*step)`` bucket.

    Buckets continue while the lower edge is below ``end``; the last upper edge is
    not clipped to ``end``.
    """
    start, end, step = float(start), float(end), float(step)
    if not (np.isfinite(start) and np.isfinite(end) and np.isfinite(step)):
        raise InvalidParameter("Table bounds and step must be finite.")
    if step <= 0:
        raise InvalidParameter(f"Step must be positive, got {step}")
    if start > end:
        raise InvalidParameter(f"Table start {start} exceeds end {end}")
    # bucket count fixed up front so rounding in k * step cannot add a bucket at end
    n_buckets = int(np.ceil((end - start) / step - BUCKET_COUNT_TOLERANCE))
    rows: List[Tuple[str, float]] = []
    for k in range(n_buckets):
        lower = start + k * step
        upper = start + (k + 1) * step
        rows.append((bucket_label(lower, upper), integrate_density(density, lower, upper)))
    return rows


def probability_frame(table: Iterable[Tuple[str, float]]) -> pd.DataFrame:
    df = pd.DataFrame(list(table), columns=["bucket", "probability"])
    df["cumulative"] = df["probability"].cumsum()
    return df


def estimate_count_density(counts: ArrayLike, config: KDEConfig = KDEConfig()) -> CountDensity:
    raw = fit_raw_density(counts, bandwidth=config.bandwidth, stacklevel=3)
    rescaled = rescale_density(raw, config.normalize_min, config.normalize_max, stacklevel=3)
    return CountDensity(raw=raw, density=rescaled)


def select_bandwidth(
    counts: ArrayLike,
    candidates: Optional[Sequence[float]] = None,
    cv: int = 5,
) -> float:
    """Pick the bandwidth with the best cross-validated log-likelihood."""
    values = validate_counts(counts)
    if candidates is None:
        candidates = np.linspace(0.25, 3.0, 12)
    grid = [_validate_bandwidth(bw) for bw in candidates]
    if values.size < cv:
        raise InvalidParameter(f"Need at least {cv} counts for {cv}-fold bandwidth search, got {values.size}")
    # shuffle with a fixed seed so folds are not blocks of sorted counts
    rng = np.random.default_rng(0)
    shuffled = rng.permutation(values).reshape(-1, 1)
    search = GridSearchCV(KernelDensity(kernel="gaussian"), {"bandwidth": grid}, cv=cv)
    search.fit(shuffled)
    best = float(search.best_params_["bandwidth"])
    log.info("Selected bandwidth %.3f from %d candidates", best, len(grid))
    return best


__all__ = [
    "InvalidParameter",
    "DegenerateInput",
    "KDEConfig",
    "RawDensity",
    "RescaledDensity",
    "CountDensity",
    "validate_counts",
    "fit_raw_density",
    "rescale_density",
    "integrate_density",
    "probability_table",
    "probability_frame",
    "estimate_count_density",
    "select_bandwidth",
]
