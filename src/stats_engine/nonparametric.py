"""
Rank and sign based tests: Wilcoxon signed-rank, sign test, Mann–Whitney U,
Mood's median test, and a Wilcoxon equivalence TOST.

Zero differences from ``mu0`` (within TIE_TOLERANCE) are discarded before
the one-sample tests rank or count anything (the ``wilcox`` zero method).
When nothing is left to rank, the tests return ``p_value = 1.0``: no
evidence of a difference is the correct degenerate answer.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

from .config import (
    ALPHA,
    BINOM_CDF,
    CHI2_CDF,
    EQUIVALENCE,
    GREATER,
    LESS,
    MANN_WHITNEY_EXACT_MAX_N,
    MANN_WHITNEY_METHODS,
    STRICT_DEFAULT,
    TIE_TOLERANCE,
    TWO_SIDED,
    VARIANCE_FLOOR,
    WILCOXON,
)
from .primitives import (
    binom_cdf,
    clip_probability,
    median,
    normal_cdf,
    rank_with_ties,
)
from .providers import ProviderRegistry, registry_or_default
from .validation import (
    InvalidInputError,
    check_alpha,
    check_alternative,
    check_bounds,
    insufficient_result,
    prepare_sample,
)


# ---------------------------------------------------------------------------
# Normal approximation with continuity correction
# ---------------------------------------------------------------------------

def _corrected_normal_p(
    statistic: float,
    smaller: float,
    mu: float,
    sigma: float,
    alternative: str,
) -> tuple[float, float]:
    """
    z-score and p-value for a discrete rank statistic.

    ``statistic`` is the directional statistic (W+ or U1); ``smaller`` is the
    smaller of the statistic and its complement, used for two-sided tests.
    """
    if alternative == GREATER:
        z = (statistic - mu - 0.5) / sigma
        p = 1.0 - normal_cdf(z)
    elif alternative == LESS:
        z = (statistic - mu + 0.5) / sigma
        p = normal_cdf(z)
    else:
        z = min(0.0, smaller - mu + 0.5) / sigma
        p = 2.0 * (1.0 - normal_cdf(abs(z)))
    return z, clip_probability(p)


# ---------------------------------------------------------------------------
# Wilcoxon signed-rank (one sample)
# ---------------------------------------------------------------------------

def _signed_rank_normal(
    w_plus: float,
    w_minus: float,
    n: int,
    tie_sum: float,
    alternative: str,
) -> tuple[float, float, float]:
    """Tie-corrected normal approximation; returns (statistic, z, p)."""
    mu = n * (n + 1) / 4
    var = (n * (n + 1) * (2 * n + 1) - tie_sum) / 24
    sigma = math.sqrt(max(var, VARIANCE_FLOOR))
    smaller = min(w_plus, w_minus)
    z, p = _corrected_normal_p(w_plus, smaller, mu, sigma, alternative)
    statistic = smaller if alternative == TWO_SIDED else w_plus
    return statistic, z, p


def wilcoxon_signed_rank(
    x: Sequence[float],
    mu0: float = 0.0,
    alpha: float = ALPHA,
    alternative: str = TWO_SIDED,
    *,
    strict: bool = STRICT_DEFAULT,
    providers: Optional[ProviderRegistry] = None,
) -> dict:
    """
    One-sample Wilcoxon signed-rank test of location ``mu0``.

    The rank-test provider computes the p-value when available.  If it is
    absent, or raises while computing, the tie-corrected normal
    approximation with a ±0.5 continuity correction is used instead:

        var(W) = n(n+1)(2n+1)/24 − Σ t(t²−1)/24

    ``statistic`` is min(W+, W−) for two-sided tests and W+ otherwise.

    Returns:
        Dict with n (non-zero differences), n_zero, statistic, w_plus,
        w_minus, z (NaN on the provider path), p_value, significant, method.
    """
    alpha = check_alpha(alpha)
    alternative = check_alternative(alternative)
    registry = registry_or_default(providers)

    arr, problem = prepare_sample(x, name="x", min_n=1, strict=strict)
    if problem:
        return insufficient_result(
            "wilcoxon_signed_rank", alpha, alternative, problem,
            nan_fields=("statistic", "w_plus", "w_minus", "z"),
            n=0, n_zero=0, mu0=mu0,
        )

    diffs = arr - mu0
    diffs = diffs[np.abs(diffs) >= TIE_TOLERANCE]
    n = int(diffs.size)
    result: dict = {
        "test_used": "wilcoxon_signed_rank",
        "n": n,
        "n_zero": int(arr.size) - n,
        "mu0": mu0,
        "median": median(arr),
    }

    if n == 0:
        result.update({
            "statistic": 0.0,
            "w_plus": 0.0,
            "w_minus": 0.0,
            "z": float("nan"),
            "p_value": 1.0,
            "alpha": alpha,
            "alternative": alternative,
            "significant": False,
            "method": "degenerate",
            "note": "All differences are zero: no evidence of a shift",
        })
        return result

    ranked = rank_with_ties(np.abs(diffs))
    w_plus = float(ranked.ranks[diffs > 0].sum())
    w_minus = float(ranked.ranks[diffs < 0].sum())

    outcome = None
    provider = registry.get(WILCOXON)
    if provider is not None:
        try:
            out = provider(diffs, alpha=alpha, alternative=alternative)
            p_value = float(out["p_value"])
            if math.isnan(p_value):
                raise ValueError("rank-test provider returned NaN")
            outcome = (float(out["statistic"]), float("nan"), clip_probability(p_value))
            result["method"] = "provider"
        except Exception as exc:  # provider failures degrade to the local path
            result["provider_error"] = f"{type(exc).__name__}: {exc}"

    if outcome is None:
        outcome = _signed_rank_normal(w_plus, w_minus, n, ranked.tie_sum, alternative)
        result["method"] = "normal_approx"

    statistic, z, p_value = outcome
    result.update({
        "statistic": statistic,
        "w_plus": w_plus,
        "w_minus": w_minus,
        "z": z,
        "p_value": p_value,
        "alpha": alpha,
        "alternative": alternative,
        "significant": p_value < alpha,
    })
    return result


# ---------------------------------------------------------------------------
# Sign test
# ---------------------------------------------------------------------------

def sign_test(
    x: Sequence[float],
    mu0: float = 0.0,
    alpha: float = ALPHA,
    alternative: str = TWO_SIDED,
    *,
    strict: bool = STRICT_DEFAULT,
    providers: Optional[ProviderRegistry] = None,
) -> dict:
    """
    Exact binomial sign test of the median against ``mu0``.

    Counts strictly positive and strictly negative differences, then takes
    the Binomial(n, 0.5) tail from the binomial CDF provider or the local
    log-space implementation.  Two-sided doubles the smaller tail.
    """
    alpha = check_alpha(alpha)
    alternative = check_alternative(alternative)
    registry = registry_or_default(providers)

    arr, problem = prepare_sample(x, name="x", min_n=1, strict=strict)
    if problem:
        return insufficient_result(
            "sign_test", alpha, alternative, problem,
            n=0, k_positive=0, k_negative=0, mu0=mu0,
        )

    diffs = arr - mu0
    pos = int((diffs >= TIE_TOLERANCE).sum())
    neg = int((diffs <= -TIE_TOLERANCE).sum())
    n = pos + neg
    result: dict = {
        "test_used": "sign_test",
        "n": n,
        "k_positive": pos,
        "k_negative": neg,
        "n_zero": int(arr.size) - n,
        "mu0": mu0,
    }

    if n == 0:
        result.update({
            "p_value": 1.0,
            "alpha": alpha,
            "alternative": alternative,
            "significant": False,
            "method": "degenerate",
            "note": "All differences are zero: no evidence of a shift",
        })
        return result

    provider = registry.get(BINOM_CDF)
    if provider is not None:
        cdf = lambda k: provider(k, n, 0.5)  # noqa: E731
    else:
        cdf = lambda k: binom_cdf(n, k, 0.5)  # noqa: E731

    # At p = 0.5, P(X >= k) == P(X <= n - k)
    if alternative == GREATER:
        p_value = cdf(n - pos)
    elif alternative == LESS:
        p_value = cdf(pos)
    else:
        p_value = min(1.0, 2.0 * cdf(min(pos, n - pos)))
    p_value = clip_probability(p_value)

    result.update({
        "p_value": p_value,
        "alpha": alpha,
        "alternative": alternative,
        "significant": p_value < alpha,
        "method": "exact",
    })
    return result


# ---------------------------------------------------------------------------
# Mann–Whitney U
# ---------------------------------------------------------------------------

def _exact_u_distribution(n1: int, n2: int) -> np.ndarray:
    """
    Null probabilities of U = 0..n1·n2 for tie-free samples.

    Counts arrangements with the recurrence
    f(m, n, u) = f(m−1, n, u−n) + f(m, n−1, u).
    """
    prev = [np.ones(1) for _ in range(n2 + 1)]   # m = 0
    for m in range(1, n1 + 1):
        cur = [np.ones(1)]
        for j in range(1, n2 + 1):
            counts = np.zeros(m * j + 1)
            shifted = prev[j]
            counts[j:j + shifted.size] += shifted
            counts[:cur[j - 1].size] += cur[j - 1]
            cur.append(counts)
        prev = cur
    counts = prev[n2]
    return counts / counts.sum()


def _exact_u_p_value(u1: float, n1: int, n2: int, alternative: str) -> float:
    probs = _exact_u_distribution(n1, n2)
    cdf = np.cumsum(probs)
    k = int(round(u1))
    if alternative == GREATER:
        p = float(probs[k:].sum())
    elif alternative == LESS:
        p = float(cdf[k])
    else:
        p = 2.0 * float(cdf[min(k, n1 * n2 - k)])
    return clip_probability(p)


def mann_whitney_u(
    x: Sequence[float],
    y: Sequence[float],
    alpha: float = ALPHA,
    alternative: str = TWO_SIDED,
    *,
    method: str = "auto",
    strict: bool = STRICT_DEFAULT,
) -> dict:
    """
    Mann–Whitney U rank-sum test of two independent samples.

    ``greater`` tests whether x tends to exceed y (large U1).  ``U`` is
    min(U1, U2).

    Methods:
        exact       permutation distribution of U; tie-free samples only
        asymptotic  normal approximation with tie-corrected variance
                    n1·n2(N+1)/12 − n1·n2·Σt(t²−1)/(12N(N−1))
                    and a 0.5 continuity correction
        auto        exact when both groups have at most
                    MANN_WHITNEY_EXACT_MAX_N observations and there are
                    no ties, asymptotic otherwise

    Raises:
        InvalidInputError: Unknown ``method``, or ``method='exact'`` with ties.
    """
    alpha = check_alpha(alpha)
    alternative = check_alternative(alternative)
    if method not in MANN_WHITNEY_METHODS:
        raise InvalidInputError(
            f"method must be one of {', '.join(MANN_WHITNEY_METHODS)}; got {method!r}"
        )

    arr1, problem1 = prepare_sample(x, name="x", min_n=1, strict=strict)
    arr2, problem2 = prepare_sample(y, name="y", min_n=1, strict=strict)
    problem = problem1 or problem2
    if problem:
        return insufficient_result(
            "mann_whitney", alpha, alternative, problem,
            nan_fields=("U", "U1", "U2", "z"),
            n1=int(arr1.size), n2=int(arr2.size),
        )

    n1, n2 = int(arr1.size), int(arr2.size)
    big_n = n1 + n2
    ranked = rank_with_ties(np.concatenate([arr1, arr2]))
    r1 = float(ranked.ranks[:n1].sum())
    u1 = r1 - n1 * (n1 + 1) / 2
    u2 = n1 * n2 - u1
    u = min(u1, u2)
    has_ties = any(t > 1 for t in ranked.tie_groups)

    if method == "exact" and has_ties:
        raise InvalidInputError("exact Mann–Whitney U requires samples without ties")

    mu = n1 * n2 / 2
    var = n1 * n2 * (big_n + 1) / 12
    if has_ties:
        var -= n1 * n2 * ranked.tie_sum / (12 * big_n * (big_n - 1))

    result: dict = {
        "test_used": "mann_whitney",
        "n1": n1,
        "n2": n2,
        "median1": median(arr1),
        "median2": median(arr2),
        "rank_sum1": r1,
        "U": u,
        "U1": u1,
        "U2": u2,
    }

    use_exact = method == "exact" or (
        method == "auto"
        and not has_ties
        and max(n1, n2) <= MANN_WHITNEY_EXACT_MAX_N
    )

    if var <= VARIANCE_FLOOR:
        z, p_value = float("nan"), 1.0
        result["method"] = "degenerate"
        result["note"] = "All observations tied: ranks carry no information"
    elif use_exact:
        z, _ = _corrected_normal_p(u1, u, mu, math.sqrt(var), alternative)
        p_value = _exact_u_p_value(u1, n1, n2, alternative)
        result["method"] = "exact"
    else:
        z, p_value = _corrected_normal_p(u1, u, mu, math.sqrt(var), alternative)
        result["method"] = "asymptotic"

    result.update({
        "z": z,
        "p_value": p_value,
        "alpha": alpha,
        "alternative": alternative,
        "significant": p_value < alpha,
    })
    return result


# ---------------------------------------------------------------------------
# Mood's median test
# ---------------------------------------------------------------------------

def mood_median_test(
    x: Sequence[float],
    y: Sequence[float],
    alpha: float = ALPHA,
    *,
    strict: bool = STRICT_DEFAULT,
    providers: Optional[ProviderRegistry] = None,
) -> dict:
    """
    Mood's median test on the 2×2 table of (≤ median, > median) × group.

    The chi-square statistic (1 df, no continuity correction) is referred to
    the chi-square CDF provider, or approximated as 2·(1 − Φ(√χ²)).

    Returns:
        Dict with median, table [[x≤, x>], [y≤, y>]], expected, chi2, df,
        p_value, significant, method.
    """
    alpha = check_alpha(alpha)
    registry = registry_or_default(providers)

    arr1, problem1 = prepare_sample(x, name="x", min_n=1, strict=strict)
    arr2, problem2 = prepare_sample(y, name="y", min_n=1, strict=strict)
    problem = problem1 or problem2
    if problem:
        return insufficient_result(
            "mood_median_test", alpha, TWO_SIDED, problem,
            nan_fields=("median", "chi2"),
            n1=int(arr1.size), n2=int(arr2.size), df=1,
        )

    grand_median = median(np.concatenate([arr1, arr2]))
    c11 = int((arr1 <= grand_median).sum())
    c12 = int(arr1.size) - c11
    c21 = int((arr2 <= grand_median).sum())
    c22 = int(arr2.size) - c21
    table = [[c11, c12], [c21, c22]]

    rows = (c11 + c12, c21 + c22)
    cols = (c11 + c21, c12 + c22)
    total = rows[0] + rows[1]
    expected = [[rows[i] * cols[j] / total for j in range(2)] for i in range(2)]

    result: dict = {
        "test_used": "mood_median_test",
        "n1": rows[0],
        "n2": rows[1],
        "median": grand_median,
        "table": table,
        "expected": expected,
        "df": 1,
    }

    if min(cols) == 0:
        chi2, p_value = 0.0, 1.0
        result["method"] = "degenerate"
        result["note"] = "No observations above the pooled median"
    else:
        chi2 = sum(
            (table[i][j] - expected[i][j]) ** 2 / expected[i][j]
            for i in range(2) for j in range(2)
        )
        provider = registry.get(CHI2_CDF)
        if provider is not None:
            p_value = 1.0 - provider(chi2, 1)
            result["method"] = "chi2"
        else:
            p_value = 2.0 * (1.0 - normal_cdf(math.sqrt(max(0.0, chi2))))
            result["method"] = "normal_approx"
        p_value = clip_probability(p_value)

    result.update({
        "chi2": chi2,
        "p_value": p_value,
        "alpha": alpha,
        "alternative": TWO_SIDED,
        "significant": p_value < alpha,
    })
    return result


# ---------------------------------------------------------------------------
# Wilcoxon equivalence TOST
# ---------------------------------------------------------------------------

def tost_wilcoxon(
    x: Sequence[float],
    lower: float,
    upper: float,
    alpha: float = ALPHA,
    *,
    strict: bool = STRICT_DEFAULT,
    providers: Optional[ProviderRegistry] = None,
) -> dict:
    """
    Rank-based equivalence test: location strictly inside [lower, upper].

    Runs a ``greater`` signed-rank test against ``lower`` and a ``less``
    signed-rank test against ``upper``; equivalent when both reject.
    ``method_lower`` and ``method_upper`` record how each side was computed;
    ``method`` is their common value or ``"mixed"``.  Notes from either side
    are joined into ``note``.
    """
    alpha = check_alpha(alpha)
    lower, upper = check_bounds(lower, upper)

    lower_test = wilcoxon_signed_rank(
        x, mu0=lower, alpha=alpha, alternative=GREATER,
        strict=strict, providers=providers,
    )
    upper_test = wilcoxon_signed_rank(
        x, mu0=upper, alpha=alpha, alternative=LESS,
        strict=strict, providers=providers,
    )
    p_lower = lower_test["p_value"]
    p_upper = upper_test["p_value"]
    p_value = max(p_lower, p_upper)
    if math.isnan(p_lower) or math.isnan(p_upper):
        p_value = float("nan")
    equivalent = (p_lower < alpha) and (p_upper < alpha)

    method_lower = lower_test.get("method")
    method_upper = upper_test.get("method")
    notes = []
    for sub in (lower_test, upper_test):
        if sub.get("note") and sub["note"] not in notes:
            notes.append(sub["note"])

    result = {
        "test_used": "tost_wilcoxon",
        "n": int(np.asarray(x, dtype=float).size),
        "median": lower_test.get("median", upper_test.get("median", float("nan"))),
        "lower": lower,
        "upper": upper,
        "statistic_lower": lower_test["statistic"],
        "statistic_upper": upper_test["statistic"],
        "p_lower": p_lower,
        "p_upper": p_upper,
        "p_value": p_value,
        "alpha": alpha,
        "alternative": EQUIVALENCE,
        "equivalent": equivalent,
        "significant": p_value < alpha,
        "method": method_lower if method_lower == method_upper else "mixed",
        "method_lower": method_lower,
        "method_upper": method_upper,
    }
    if notes:
        result["note"] = "; ".join(notes)
    return result
