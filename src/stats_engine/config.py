"""
Engine-wide configuration: significance defaults, numeric tolerances,
provider names, test labels, and output paths.

All constants shared across the primitives, provider, and test modules
are centralized here so that configuration is separated from logic.
"""

from pathlib import Path

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------

# Resolve from this file: src/stats_engine/config.py → src/stats_engine → src → root
PROJECT_ROOT = Path(__file__).resolve().parents[2]

RESULTS_DIR = PROJECT_ROOT / "results"   # runner JSON exports

RESULTS_FILENAME = "stats_results.json"

# ---------------------------------------------------------------------------
# Hypothesis test defaults
# ---------------------------------------------------------------------------

ALPHA: float = 0.05

TWO_SIDED = "two-sided"
GREATER = "greater"
LESS = "less"
ALTERNATIVES: tuple[str, ...] = (TWO_SIDED, GREATER, LESS)

# Reported by equivalence tests, which combine two one-sided tests.
EQUIVALENCE = "equivalence"

# Lenient mode renders insufficient data as NaN fields instead of raising.
STRICT_DEFAULT: bool = False

# ---------------------------------------------------------------------------
# Numeric tolerances
# ---------------------------------------------------------------------------

# Two values closer than this are the same value for ranking and zero tests.
TIE_TOLERANCE: float = 1e-12

# Lower bound on rank-statistic variances before taking a square root.
VARIANCE_FLOOR: float = 1e-12

# Bisection settings for the normal quantile fallback.
QUANTILE_BRACKET: float = 10.0
QUANTILE_ITERATIONS: int = 100

# Mann-Whitney U uses the exact permutation distribution when both groups
# are at most this size and the pooled sample has no ties.
MANN_WHITNEY_EXACT_MAX_N: int = 8

MANN_WHITNEY_METHODS: tuple[str, ...] = ("auto", "exact", "asymptotic")

# ---------------------------------------------------------------------------
# Optional high-precision providers
# ---------------------------------------------------------------------------

T_CDF = "t_cdf"
T_PPF = "t_ppf"
CHI2_CDF = "chi2_cdf"
BINOM_CDF = "binom_cdf"
WILCOXON = "wilcoxon"

PROVIDER_NAMES: tuple[str, ...] = (T_CDF, T_PPF, CHI2_CDF, BINOM_CDF, WILCOXON)

# Module every default provider is resolved from.
PROVIDER_MODULE = "scipy.stats"

# ---------------------------------------------------------------------------
# Test codes and display labels
# ---------------------------------------------------------------------------

# Centralized map: do NOT repeat labels inline in reporting code.
TEST_LABELS: dict[str, str] = {
    "t_one_sample":         "One-sample t-test",
    "t_student":            "Student t-test (equal var)",
    "t_welch":              "Welch t-test (unequal var)",
    "tost":                 "Equivalence TOST (t-test)",
    "tost_wilcoxon":        "Equivalence TOST (Wilcoxon)",
    "wilcoxon_signed_rank": "Wilcoxon signed-rank",
    "sign_test":            "Sign test",
    "mann_whitney":         "Mann–Whitney U",
    "mood_median_test":     "Mood’s median test",
}

ONE_SAMPLE_TESTS: list[str] = [
    "t_one_sample", "wilcoxon_signed_rank", "sign_test",
]
EQUIVALENCE_TESTS: list[str] = ["tost", "tost_wilcoxon"]
TWO_SAMPLE_TESTS: list[str] = [
    "t_student", "t_welch", "mann_whitney", "mood_median_test",
]

# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------

P_VALUE_DECIMALS: int = 6
STATISTIC_DECIMALS: int = 4
INSUFFICIENT_DATA = "insufficient data"
