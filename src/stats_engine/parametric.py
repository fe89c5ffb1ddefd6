"""
Parametric tests: one-sample t, Welch and Student two-sample t, and the
TOST equivalence test built from two one-sided t-tests.

When the Student-t CDF provider is available the p-value uses the t
distribution at the exact (possibly fractional) degrees of freedom.
Otherwise the statistic is referred to the standard normal, which is
adequate for moderate or large df and optimistic for small df; the result
``method`` field records which was used.

Degenerate cases:

- Fewer than 2 observations in a sample: NaN result (lenient) or
  InvalidInputError (strict).
- Zero standard error (every sample constant up to TIE_TOLERANCE): the t
  statistic is undefined and reported as NaN, with ``p_value = 1.0`` (no
  evidence) and an explanatory ``note``.
"""

from __future__ import annotations

import math
from typing import Callable, Optional, Sequence

from .config import (
    ALPHA,
    EQUIVALENCE,
    GREATER,
    STRICT_DEFAULT,
    T_CDF,
    T_PPF,
    TWO_SIDED,
)
from .primitives import mean, normal_cdf, normal_quantile, sd, tail_p_value, variance
from .providers import ProviderRegistry, registry_or_default
from .validation import (
    InvalidInputError,
    check_alpha,
    check_alternative,
    check_bounds,
    insufficient_result,
    prepare_sample,
)

ZERO_SE_NOTE = "Zero standard error: t statistic undefined"


# ---------------------------------------------------------------------------
# Distribution helpers
# ---------------------------------------------------------------------------

def _t_cdf(df: float, registry: ProviderRegistry) -> Callable[[float], float]:
    """CDF of the null distribution at ``df``: Student-t, else standard normal."""
    provider = registry.get(T_CDF)
    if provider is None:
        return normal_cdf
    return lambda x: provider(x, df)


def _t_quantile(q: float, df: float, registry: ProviderRegistry) -> float:
    provider = registry.get(T_PPF)
    if provider is None:
        return normal_quantile(q)
    return provider(q, df)


def _method(registry: ProviderRegistry) -> str:
    return "t" if registry.is_available(T_CDF) else "normal_approx"


def _interval(
    center: float,
    se: float,
    df: float,
    tail: float,
    registry: ProviderRegistry,
) -> tuple[float, float]:
    """Symmetric interval ``center ± q·se`` leaving ``tail`` in each tail."""
    if se == 0:
        return (center, center)
    q = _t_quantile(1.0 - tail, df, registry)
    return (center - q * se, center + q * se)


# ---------------------------------------------------------------------------
# One-sample t-test
# ---------------------------------------------------------------------------

def t_one_sample(
    x: Sequence[float],
    mu0: float = 0.0,
    alpha: float = ALPHA,
    alternative: str = TWO_SIDED,
    *,
    strict: bool = STRICT_DEFAULT,
    providers: Optional[ProviderRegistry] = None,
) -> dict:
    """
    One-sample t-test of the mean against ``mu0``.

    Args:
        x: Sample of finite real numbers (n >= 2).
        mu0: Hypothesized mean.
        alpha: Significance level in (0, 1).
        alternative: ``'two-sided'``, ``'greater'`` (mean > mu0) or
            ``'less'`` (mean < mu0).
        strict: Raise InvalidInputError on insufficient data.
        providers: Provider registry; the process default when omitted.

    Returns:
        Dict with n, mean, sd, mu0, t, df, p_value, significant, method,
        and the (1 - alpha) confidence interval of the mean.
    """
    alpha = check_alpha(alpha)
    alternative = check_alternative(alternative)
    registry = registry_or_default(providers)

    arr, problem = prepare_sample(x, name="x", min_n=2, strict=strict)
    if problem:
        return insufficient_result(
            "t_one_sample", alpha, alternative, problem,
            nan_fields=("sd", "t", "df", "ci_lower", "ci_upper"),
            n=int(arr.size), mean=mean(arr), mu0=mu0, ci_level=1 - alpha,
        )

    n = int(arr.size)
    m, s = mean(arr), sd(arr)
    se = s / math.sqrt(n)
    df = n - 1
    ci_lower, ci_upper = _interval(m, se, df, alpha / 2, registry)

    result = {
        "test_used": "t_one_sample",
        "n": n,
        "mean": m,
        "sd": s,
        "mu0": mu0,
        "df": df,
    }
    if se == 0:
        t, p_value = float("nan"), 1.0
        result["note"] = ZERO_SE_NOTE
    else:
        t = (m - mu0) / se
        p_value = tail_p_value(t, _t_cdf(df, registry), alternative)

    result.update({
        "t": t,
        "p_value": p_value,
        "alpha": alpha,
        "alternative": alternative,
        "significant": p_value < alpha,
        "method": _method(registry),
        "ci_level": 1 - alpha,
        "ci_lower": ci_lower,
        "ci_upper": ci_upper,
    })
    return result


# ---------------------------------------------------------------------------
# Two-sample t-tests
# ---------------------------------------------------------------------------

def _two_sample(
    test_used: str,
    x: Sequence[float],
    y: Sequence[float],
    alpha: float,
    alternative: str,
    pooled: bool,
    strict: bool,
    providers: Optional[ProviderRegistry],
) -> dict:
    alpha = check_alpha(alpha)
    alternative = check_alternative(alternative)
    registry = registry_or_default(providers)

    arr1, problem1 = prepare_sample(x, name="x", min_n=2, strict=strict)
    arr2, problem2 = prepare_sample(y, name="y", min_n=2, strict=strict)
    problem = problem1 or problem2
    if problem:
        return insufficient_result(
            test_used, alpha, alternative, problem,
            nan_fields=("sd1", "sd2", "t", "df", "diff_mean", "ci_lower", "ci_upper"),
            n1=int(arr1.size), n2=int(arr2.size),
            mean1=mean(arr1), mean2=mean(arr2), ci_level=1 - alpha,
        )

    n1, n2 = int(arr1.size), int(arr2.size)
    m1, m2 = mean(arr1), mean(arr2)
    v1, v2 = variance(arr1), variance(arr2)

    if pooled:
        df = n1 + n2 - 2
        sp2 = ((n1 - 1) * v1 + (n2 - 1) * v2) / df
        se = math.sqrt(sp2 * (1 / n1 + 1 / n2))
    else:
        se2 = v1 / n1 + v2 / n2
        se = math.sqrt(se2)
        # Welch–Satterthwaite; fractional df is passed through unrounded
        denom = (v1 * v1) / (n1 * n1 * (n1 - 1)) + (v2 * v2) / (n2 * n2 * (n2 - 1))
        df = se2 * se2 / denom if denom > 0 else float("nan")

    diff = m1 - m2
    ci_lower, ci_upper = _interval(diff, se, df, alpha / 2, registry)

    result = {
        "test_used": test_used,
        "n1": n1,
        "n2": n2,
        "mean1": m1,
        "mean2": m2,
        "sd1": math.sqrt(v1),
        "sd2": math.sqrt(v2),
        "diff_mean": diff,
        "df": df,
    }
    if se == 0:
        t, p_value = float("nan"), 1.0
        result["note"] = ZERO_SE_NOTE
    else:
        t = diff / se
        p_value = tail_p_value(t, _t_cdf(df, registry), alternative)

    result.update({
        "t": t,
        "p_value": p_value,
        "alpha": alpha,
        "alternative": alternative,
        "significant": p_value < alpha,
        "method": _method(registry),
        "ci_level": 1 - alpha,
        "ci_lower": ci_lower,
        "ci_upper": ci_upper,
    })
    return result


def t_two_sample_welch(
    x: Sequence[float],
    y: Sequence[float],
    alpha: float = ALPHA,
    alternative: str = TWO_SIDED,
    *,
    strict: bool = STRICT_DEFAULT,
    providers: Optional[ProviderRegistry] = None,
) -> dict:
    """
    Welch's unequal-variance two-sample t-test.

    ``greater`` tests mean(x) > mean(y).  Degrees of freedom follow the
    Welch–Satterthwaite formula and are generally fractional.
    """
    return _two_sample(
        "t_welch", x, y, alpha, alternative,
        pooled=False, strict=strict, providers=providers,
    )


def t_two_sample_student(
    x: Sequence[float],
    y: Sequence[float],
    alpha: float = ALPHA,
    alternative: str = TWO_SIDED,
    *,
    strict: bool = STRICT_DEFAULT,
    providers: Optional[ProviderRegistry] = None,
) -> dict:
    """Student's pooled-variance two-sample t-test (df = n1 + n2 - 2)."""
    return _two_sample(
        "t_student", x, y, alpha, alternative,
        pooled=True, strict=strict, providers=providers,
    )


# ---------------------------------------------------------------------------
# TOST equivalence
# ---------------------------------------------------------------------------

def tost_equivalence(
    x: Sequence[float],
    lower: float,
    upper: float,
    alpha: float = ALPHA,
    *,
    strict: bool = STRICT_DEFAULT,
    providers: Optional[ProviderRegistry] = None,
) -> dict:
    """
    Two one-sided t-tests for the mean lying strictly inside [lower, upper].

    ``t1 = (mean - lower)/se`` and ``t2 = (upper - mean)/se`` are each tested
    with the upper-tail alternative.  The sample is declared equivalent when
    both one-sided p-values fall below ``alpha``; the reported ``p_value`` is
    the larger of the two, so ``significant`` coincides with ``equivalent``.

    Returns:
        Dict with n, mean, sd, df, t1, t2, p1, p2, p_value, equivalent,
        significant, and the (1 - 2·alpha) confidence interval of the mean.

    Raises:
        InvalidInputError: ``alpha >= 0.5``, which leaves no valid
            (1 - 2·alpha) interval.
    """
    alpha = check_alpha(alpha)
    if alpha >= 0.5:
        raise InvalidInputError(
            f"TOST needs alpha below 0.5 for its (1 - 2*alpha) interval, got {alpha}"
        )
    lower, upper = check_bounds(lower, upper)
    registry = registry_or_default(providers)

    arr, problem = prepare_sample(x, name="x", min_n=2, strict=strict)
    if problem:
        result = insufficient_result(
            "tost", alpha, EQUIVALENCE, problem,
            nan_fields=("sd", "df", "t1", "t2", "p1", "p2", "ci_lower", "ci_upper"),
            n=int(arr.size), mean=mean(arr), lower=lower, upper=upper,
            ci_level=1 - 2 * alpha,
        )
        result["equivalent"] = False
        return result

    n = int(arr.size)
    m, s = mean(arr), sd(arr)
    se = s / math.sqrt(n)
    df = n - 1
    ci_lower, ci_upper = _interval(m, se, df, alpha, registry)

    result = {
        "test_used": "tost",
        "n": n,
        "mean": m,
        "sd": s,
        "df": df,
        "lower": lower,
        "upper": upper,
    }
    if se == 0:
        t1 = t2 = float("nan")
        p1 = p2 = 1.0
        result["note"] = ZERO_SE_NOTE
    else:
        cdf = _t_cdf(df, registry)
        t1 = (m - lower) / se
        t2 = (upper - m) / se
        p1 = tail_p_value(t1, cdf, GREATER)
        p2 = tail_p_value(t2, cdf, GREATER)

    equivalent = (p1 < alpha) and (p2 < alpha)
    p_value = max(p1, p2)
    result.update({
        "t1": t1,
        "t2": t2,
        "p1": p1,
        "p2": p2,
        "p_value": p_value,
        "alpha": alpha,
        "alternative": EQUIVALENCE,
        "equivalent": equivalent,
        "significant": p_value < alpha,
        "method": _method(registry),
        "ci_level": 1 - 2 * alpha,
        "ci_lower": ci_lower,
        "ci_upper": ci_upper,
    })
    return result
