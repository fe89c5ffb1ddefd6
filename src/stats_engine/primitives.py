"""
Numeric primitives shared by every test: descriptive statistics, the normal
distribution approximation, tie-averaged ranking, and log-space binomial
probabilities.

These functions never consult an optional provider; they are the local
fallbacks the provider registry degrades to.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Sequence

import numpy as np

from .config import (
    GREATER,
    LESS,
    QUANTILE_BRACKET,
    QUANTILE_ITERATIONS,
    TIE_TOLERANCE,
)


# ---------------------------------------------------------------------------
# Descriptive statistics
# ---------------------------------------------------------------------------

def mean(xs: Sequence[float]) -> float:
    """Arithmetic mean; NaN for an empty sample."""
    arr = np.asarray(xs, dtype=float)
    if arr.size == 0:
        return float("nan")
    return float(arr.mean())


def variance(xs: Sequence[float]) -> float:
    """
    Bessel-corrected sample variance; NaN when fewer than 2 observations.

    A sample whose spread is within TIE_TOLERANCE (relative to its mean) has
    variance exactly 0, so rounding in the mean of e.g. ``[0.1] * 7`` cannot
    leave a spurious positive variance.
    """
    arr = np.asarray(xs, dtype=float)
    if arr.size < 2:
        return float("nan")
    if np.ptp(arr) < TIE_TOLERANCE * max(1.0, abs(float(arr.mean()))):
        return 0.0
    return float(arr.var(ddof=1))


def sd(xs: Sequence[float]) -> float:
    """Sample standard deviation; NaN when the variance is undefined."""
    v = variance(xs)
    return math.sqrt(v) if math.isfinite(v) else float("nan")


def median(xs: Sequence[float]) -> float:
    """Median with the usual even/odd handling; NaN for an empty sample."""
    arr = np.sort(np.asarray(xs, dtype=float))
    n = arr.size
    if n == 0:
        return float("nan")
    mid = n // 2
    if n % 2:
        return float(arr[mid])
    return float((arr[mid - 1] + arr[mid]) / 2)


# ---------------------------------------------------------------------------
# Normal distribution
# ---------------------------------------------------------------------------

# Abramowitz & Stegun 7.1.26 coefficients (|error| <= 1.5e-7 for erf).
_AS_P = 0.3275911
_AS_A = (0.254829592, -0.284496736, 1.421413741, -1.453152027, 1.061405429)


def normal_cdf(z: float) -> float:
    """
    Standard normal CDF via the Abramowitz–Stegun erf approximation.

    Symmetric by construction: ``normal_cdf(-z) == 1 - normal_cdf(z)`` up to
    floating-point rounding.
    """
    if math.isnan(z):
        return float("nan")
    sign = -1.0 if z < 0 else 1.0
    x = abs(z) / math.sqrt(2.0)
    t = 1.0 / (1.0 + _AS_P * x)
    a1, a2, a3, a4, a5 = _AS_A
    poly = ((((a5 * t + a4) * t + a3) * t + a2) * t + a1) * t
    erf = sign * (1.0 - poly * math.exp(-x * x))
    return 0.5 * (1.0 + erf)


def normal_quantile(prob: float) -> float:
    """Inverse of :func:`normal_cdf` by bisection."""
    if math.isnan(prob):
        return float("nan")
    if prob <= 0.0:
        return float("-inf")
    if prob >= 1.0:
        return float("inf")
    lo, hi = -QUANTILE_BRACKET, QUANTILE_BRACKET
    for _ in range(QUANTILE_ITERATIONS):
        mid = (lo + hi) / 2
        if normal_cdf(mid) < prob:
            lo = mid
        else:
            hi = mid
    return (lo + hi) / 2


# ---------------------------------------------------------------------------
# p-value helpers
# ---------------------------------------------------------------------------

def clip_probability(p: float) -> float:
    """Clamp into [0, 1]; NaN passes through."""
    if math.isnan(p):
        return p
    return min(1.0, max(0.0, p))


def tail_p_value(
    statistic: float,
    cdf: Callable[[float], float],
    alternative: str,
) -> float:
    """
    p-value of ``statistic`` under a continuous null distribution.

    ``greater`` is the upper tail, ``less`` the lower tail, and
    ``two-sided`` doubles the smaller of the two (capped at 1).
    """
    lower = cdf(statistic)
    upper = 1.0 - lower
    if alternative == GREATER:
        p = upper
    elif alternative == LESS:
        p = lower
    else:
        p = 2.0 * min(lower, upper)
    return clip_probability(p)


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RankResult:
    """Mid-ranks in input order plus the sizes of every tie group."""
    ranks: np.ndarray
    tie_groups: list[int] = field(default_factory=list)

    @property
    def tie_sum(self) -> float:
        """Σ t(t²−1) over tie groups, the common tie-variance correction term."""
        return float(sum(t * (t * t - 1) for t in self.tie_groups if t > 1))


def rank_with_ties(
    values: Sequence[float],
    tolerance: float = TIE_TOLERANCE,
) -> RankResult:
    """
    Assign 1-based mid-ranks, averaging the ranks of tied values.

    Values whose difference from the first member of a run is below
    ``tolerance`` are one tie group, so floating-point noise does not split
    true ties.  The tie group sizes always sum to ``len(values)``.
    """
    arr = np.asarray(values, dtype=float)
    n = arr.size
    order = np.argsort(arr, kind="mergesort")
    sorted_vals = arr[order]
    ranks = np.empty(n, dtype=float)
    tie_groups: list[int] = []

    i = 0
    while i < n:
        j = i + 1
        while j < n and abs(sorted_vals[j] - sorted_vals[i]) < tolerance:
            j += 1
        # positions i..j-1 hold ranks i+1..j
        ranks[order[i:j]] = (i + 1 + j) / 2
        tie_groups.append(j - i)
        i = j

    return RankResult(ranks=ranks, tie_groups=tie_groups)


# ---------------------------------------------------------------------------
# Log-space binomial
# ---------------------------------------------------------------------------

def log_factorials(n: int) -> np.ndarray:
    """Table of log(k!) for k = 0..n built from a cumulative sum of logs."""
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    return np.concatenate(([0.0], np.cumsum(np.log(np.arange(1, n + 1, dtype=float)))))


def log_choose(n: int, k: int) -> float:
    """log C(n, k); -inf outside 0 <= k <= n."""
    if k < 0 or k > n:
        return float("-inf")
    table = log_factorials(n)
    return float(table[n] - table[k] - table[n - k])


def binom_pmf(n: int, k: int, p: float) -> float:
    """Binomial P(X = k), evaluated in log space and clamped non-negative."""
    if k < 0 or k > n:
        return 0.0
    if p <= 0.0:
        return 1.0 if k == 0 else 0.0
    if p >= 1.0:
        return 1.0 if k == n else 0.0
    log_pmf = log_choose(n, k) + k * math.log(p) + (n - k) * math.log1p(-p)
    return max(0.0, math.exp(log_pmf))


def binom_cdf(n: int, k: int, p: float) -> float:
    """Binomial P(X <= k) as a sum of log-space terms, clamped to [0, 1]."""
    if k < 0:
        return 0.0
    if k >= n:
        return 1.0
    if p <= 0.0:
        return 1.0
    if p >= 1.0:
        return 0.0
    table = log_factorials(n)
    ks = np.arange(k + 1)
    log_terms = (
        table[n] - table[ks] - table[n - ks]
        + ks * math.log(p) + (n - ks) * math.log1p(-p)
    )
    return clip_probability(float(np.exp(log_terms).sum()))
