"""
Test runner — dispatches tests by code, runs the battery of tests that apply
to one or two samples, prints a summary, and exports results to JSON.

Usage (from project root):
    python -m src.stats_engine.runner samples.csv --value-column value \\
        --group-column lake --groups "Lake A" "Lake B"

Or programmatically:
    from src.stats_engine.runner import run_test, run_test_battery
    result = run_test("t_welch", x, y, alpha=0.05)
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from .config import (
    ALPHA,
    ALTERNATIVES,
    EQUIVALENCE_TESTS,
    ONE_SAMPLE_TESTS,
    RESULTS_DIR,
    RESULTS_FILENAME,
    STRICT_DEFAULT,
    TEST_LABELS,
    TWO_SAMPLE_TESTS,
    TWO_SIDED,
)
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
from .providers import ProviderRegistry, registry_or_default
from .reporting import export_results, summarize_result, test_label
from .validation import InvalidInputError


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def run_test(
    code: str,
    x: Sequence[float],
    y: Optional[Sequence[float]] = None,
    *,
    mu0: float = 0.0,
    lower: Optional[float] = None,
    upper: Optional[float] = None,
    alpha: float = ALPHA,
    alternative: str = TWO_SIDED,
    strict: bool = STRICT_DEFAULT,
    providers: Optional[ProviderRegistry] = None,
) -> dict:
    """
    Run one test by its code (see ``TEST_LABELS``).

    Args:
        code: Test code, e.g. ``'t_one_sample'`` or ``'mann_whitney'``.
        x: First (or only) sample.
        y: Second sample; required by two-sample tests, ignored otherwise.
        mu0: Hypothesized location for one-sample tests.
        lower: Lower equivalence bound (TOST tests).
        upper: Upper equivalence bound (TOST tests).
        alpha: Significance level.
        alternative: Alternative hypothesis; ignored by TOST and Mood's test.
        strict: Raise InvalidInputError on insufficient data.
        providers: Provider registry; the process default when omitted.

    Returns:
        The test's result dict.

    Raises:
        InvalidInputError: Unknown code, or a required argument is missing.
    """
    if code not in TEST_LABELS:
        raise InvalidInputError(
            f"Unknown test code {code!r}; expected one of {', '.join(TEST_LABELS)}"
        )

    if code in ONE_SAMPLE_TESTS:
        fn = {
            "t_one_sample": t_one_sample,
            "wilcoxon_signed_rank": wilcoxon_signed_rank,
            "sign_test": sign_test,
        }[code]
        return fn(x, mu0, alpha, alternative, strict=strict, providers=providers)

    if code in EQUIVALENCE_TESTS:
        if lower is None or upper is None:
            raise InvalidInputError(f"{code} requires both lower and upper bounds")
        fn = tost_equivalence if code == "tost" else tost_wilcoxon
        return fn(x, lower, upper, alpha, strict=strict, providers=providers)

    if y is None:
        raise InvalidInputError(f"{code} requires a second sample")
    if code == "mann_whitney":
        return mann_whitney_u(x, y, alpha, alternative, strict=strict)
    if code == "mood_median_test":
        return mood_median_test(x, y, alpha, strict=strict, providers=providers)
    fn = t_two_sample_welch if code == "t_welch" else t_two_sample_student
    return fn(x, y, alpha, alternative, strict=strict, providers=providers)


def applicable_tests(two_sample: bool, has_bounds: bool = False) -> list[str]:
    """Test codes that apply to the given data shape, in display order."""
    if two_sample:
        return list(TWO_SAMPLE_TESTS)
    codes = list(ONE_SAMPLE_TESTS)
    if has_bounds:
        codes += EQUIVALENCE_TESTS
    return codes


# ---------------------------------------------------------------------------
# Battery runner
# ---------------------------------------------------------------------------

def run_test_battery(
    x: Sequence[float],
    y: Optional[Sequence[float]] = None,
    *,
    mu0: float = 0.0,
    lower: Optional[float] = None,
    upper: Optional[float] = None,
    alpha: float = ALPHA,
    alternative: str = TWO_SIDED,
    strict: bool = STRICT_DEFAULT,
    providers: Optional[ProviderRegistry] = None,
    output_dir: Optional[Path] = RESULTS_DIR,
) -> dict:
    """
    Run every applicable test, print a summary, and export results.

    Providers are resolved once up front so no individual test loads one.

    Args:
        x: First (or only) sample.
        y: Second sample; selects the two-sample battery when given.
        mu0, lower, upper, alpha, alternative, strict: Passed to each test.
        providers: Provider registry; the process default when omitted.
        output_dir: Directory for the JSON export; ``None`` skips export.

    Returns:
        Dict mapping test code → result dict.
    """
    registry = registry_or_default(providers)
    sep = "=" * 70

    print(f"\n{sep}")
    print("HYPOTHESIS TEST BATTERY")
    print(sep)

    status = registry.resolve_all()
    print("  Providers: " + ", ".join(f"{k}={v.value}" for k, v in status.items()))

    two_sample = y is not None
    has_bounds = lower is not None and upper is not None
    results: dict = {}

    for code in applicable_tests(two_sample, has_bounds):
        print(f"\n--- {test_label(code)} ---")
        result = run_test(
            code, x, y,
            mu0=mu0, lower=lower, upper=upper,
            alpha=alpha, alternative=alternative,
            strict=strict, providers=registry,
        )
        results[code] = result
        print(f"  {summarize_result(result)}")
        if result.get("note"):
            print(f"  NOTE: {result['note']}")

    if output_dir is not None:
        out_path = export_results(results, output_dir / RESULTS_FILENAME)
        print(f"\nExported test results to {out_path}")

    return results


# ---------------------------------------------------------------------------
# Data loading
# ---------------------------------------------------------------------------

def load_samples_csv(
    path: Path,
    value_column: str,
    group_column: Optional[str] = None,
) -> dict[str, list[float]]:
    """
    Load samples from a long-format CSV (one observation per row).

    Non-numeric and missing values in ``value_column`` are dropped with a
    printed count.

    Args:
        path: CSV file path.
        value_column: Column holding the measurements.
        group_column: Column naming the sample each row belongs to; when
            omitted, all rows form a single sample keyed ``'all'``.

    Returns:
        Dict mapping group name → list of values, in first-seen order.

    Raises:
        FileNotFoundError: ``path`` does not exist.
        KeyError: A named column is absent.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Sample file not found: {path}")

    df = pd.read_csv(path)
    for col in (value_column, group_column):
        if col is not None and col not in df.columns:
            raise KeyError(f"Column {col!r} not found in {path.name}")

    df[value_column] = pd.to_numeric(df[value_column], errors="coerce")
    n_dropped = int(df[value_column].isna().sum())
    df = df.dropna(subset=[value_column])
    print(f"Loaded {len(df)} observations from {path.name}"
          + (f" ({n_dropped} non-numeric dropped)" if n_dropped else ""))

    if group_column is None:
        return {"all": df[value_column].astype(float).tolist()}
    return {
        str(name): group[value_column].astype(float).tolist()
        for name, group in df.groupby(group_column, sort=False)
    }


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run hypothesis tests on samples from a CSV file.",
    )
    parser.add_argument("csv", type=Path, help="long-format CSV of observations")
    parser.add_argument("--value-column", required=True)
    parser.add_argument("--group-column")
    parser.add_argument("--groups", nargs="+", metavar="NAME",
                        help="one or two group names to test (default: first two)")
    parser.add_argument("--mu0", type=float, default=0.0)
    parser.add_argument("--lower", type=float)
    parser.add_argument("--upper", type=float)
    parser.add_argument("--alpha", type=float, default=ALPHA)
    parser.add_argument("--alternative", choices=ALTERNATIVES, default=TWO_SIDED)
    parser.add_argument("--strict", action="store_true")
    parser.add_argument("--no-providers", action="store_true",
                        help="use only the built-in approximations")
    parser.add_argument("--output-dir", type=Path, default=RESULTS_DIR)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> dict:
    args = _build_parser().parse_args(argv)
    samples = load_samples_csv(args.csv, args.value_column, args.group_column)

    names = args.groups or list(samples)[:2]
    missing = [name for name in names if name not in samples]
    if missing:
        raise KeyError(f"Group(s) not found: {', '.join(missing)}")
    if len(names) > 2:
        raise InvalidInputError("At most two groups can be compared")

    x = samples[names[0]]
    y = samples[names[1]] if len(names) == 2 else None
    providers = ProviderRegistry.disabled() if args.no_providers else None

    return run_test_battery(
        x, y,
        mu0=args.mu0, lower=args.lower, upper=args.upper,
        alpha=args.alpha, alternative=args.alternative,
        strict=args.strict, providers=providers,
        output_dir=args.output_dir,
    )


if __name__ == "__main__":
    main()
