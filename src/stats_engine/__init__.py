"""
src/stats_engine — Hypothesis-testing engine for lake water-quality samples.

Module layout
-------------
config.py         — Alpha default, alternatives, tolerances, provider names,
                    test labels, output paths
validation.py     — InvalidInputError, argument checks, strict/lenient policy
primitives.py     — mean/variance/sd/median, normal CDF and quantile,
                    tie-averaged ranking, log-space binomial PMF/CDF
providers.py      — Lazily resolved scipy providers with cached fallback
parametric.py     — One-sample, Welch, Student t-tests; TOST equivalence
nonparametric.py  — Wilcoxon signed-rank, sign test, Mann–Whitney U,
                    Mood's median test, Wilcoxon TOST
reporting.py      — Labels, p-value formatting, JSON export
runner.py         — Dispatch by test code, test battery, CSV loading, CLI

Public interface
----------------
Parametric:
    t_one_sample(x, mu0, alpha, alternative)
    t_two_sample_welch(x, y, alpha, alternative)
    t_two_sample_student(x, y, alpha, alternative)
    tost_equivalence(x, lower, upper, alpha)

Non-parametric:
    wilcoxon_signed_rank(x, mu0, alpha, alternative)
    sign_test(x, mu0, alpha, alternative)
    mann_whitney_u(x, y, alpha, alternative)
    mood_median_test(x, y, alpha)
    tost_wilcoxon(x, lower, upper, alpha)

Every test also accepts ``strict=`` and (except Mann–Whitney U, which needs
no provider) ``providers=``.
"""

from .nonparametric import (
    mann_whitney_u,
    mood_median_test,
    sign_test,
    tost_wilcoxon,
    wilcoxon_signed_rank,
)
from .parametric import (
    t_one_sample,
    t_two_sample_student,
    t_two_sample_welch,
    tost_equivalence,
)
from .providers import (
    ProviderHandle,
    ProviderRegistry,
    ProviderState,
    default_registry,
)
from .runner import run_test, run_test_battery
from .validation import InvalidInputError

__all__ = [
    # Parametric
    "t_one_sample",
    "t_two_sample_welch",
    "t_two_sample_student",
    "tost_equivalence",
    # Non-parametric
    "wilcoxon_signed_rank",
    "sign_test",
    "mann_whitney_u",
    "mood_median_test",
    "tost_wilcoxon",
    # Providers
    "ProviderRegistry",
    "ProviderHandle",
    "ProviderState",
    "default_registry",
    # Runner
    "run_test",
    "run_test_battery",
    # Errors
    "InvalidInputError",
]
