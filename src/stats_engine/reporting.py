"""
Presentation helpers for test results: labels, p-value formatting, one-line
summaries, and JSON-safe export.

NaN p-values (insufficient data) render as "insufficient data" rather than
as a formatted number.
"""

from __future__ import annotations

import json
import math
from pathlib import Path

import numpy as np

from .config import (
    INSUFFICIENT_DATA,
    P_VALUE_DECIMALS,
    STATISTIC_DECIMALS,
    TEST_LABELS,
)

# Statistic shown in summaries, first match wins.
_STATISTIC_KEYS = ("t", "U", "statistic", "chi2", "k_positive")


def test_label(code: str | None) -> str:
    """Human-readable label for a test code, e.g. ``'t_welch'``."""
    if not code:
        return ""
    return TEST_LABELS.get(code, code.replace("_", " "))


def format_p_value(p: float | None) -> str:
    """Format a p-value for display; NaN and None mean insufficient data."""
    if p is None or (isinstance(p, float) and math.isnan(p)):
        return INSUFFICIENT_DATA
    if p < 10 ** -(P_VALUE_DECIMALS - 2):
        return f"{p:.2e}"
    return f"{p:.{P_VALUE_DECIMALS - 2}f}"


def summarize_result(result: dict) -> str:
    """One-line summary: label, statistic, p-value, decision."""
    label = test_label(result.get("test_used"))
    parts = [label]

    for key in _STATISTIC_KEYS:
        value = result.get(key)
        if isinstance(value, (int, float)) and not math.isnan(value):
            parts.append(f"{key}={value:.{STATISTIC_DECIMALS}f}")
            break

    parts.append(f"p={format_p_value(result.get('p_value'))}")

    if "equivalent" in result:
        parts.append("equivalent" if result["equivalent"] else "not equivalent")
    elif not math.isnan(result.get("p_value", float("nan"))):
        parts.append("significant" if result.get("significant") else "not significant")

    return ", ".join(parts)


def rounded(result: dict) -> dict:
    """Copy of ``result`` with statistics and p-values rounded for export."""
    out: dict = {}
    for key, value in result.items():
        if isinstance(value, bool) or not isinstance(value, float):
            out[key] = value
        elif key.startswith("p") and not math.isnan(value):
            out[key] = round(value, P_VALUE_DECIMALS)
        elif math.isfinite(value):
            out[key] = round(value, STATISTIC_DECIMALS)
        else:
            out[key] = value
    return out


def _json_default(obj):
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def _nan_to_none(obj):
    """JSON has no NaN; non-finite floats export as null."""
    if isinstance(obj, dict):
        return {k: _nan_to_none(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_nan_to_none(v) for v in obj]
    if isinstance(obj, (float, np.floating)) and not math.isfinite(obj):
        return None
    return obj


def export_results(results: dict, out_path: Path) -> Path:
    """
    Write a results mapping to ``out_path`` as indented JSON.

    Args:
        results: Mapping of test code → result dict.
        out_path: Destination file; parent directories are created.

    Returns:
        The path written.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)
    payload = _nan_to_none({code: rounded(res) for code, res in results.items()})
    with out_path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, default=_json_default)
    return out_path
