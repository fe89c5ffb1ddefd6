"""
Input validation and the strict / lenient policy for insufficient data.

Two classes of problem are distinguished:

- Programmer errors (alpha outside (0, 1), unknown alternative, non-numeric
  input, inverted equivalence bounds) always raise :class:`InvalidInputError`.
- Data problems (too few observations, non-finite values) raise only in
  strict mode.  In lenient mode the test returns a well-formed result with
  NaN numeric fields so a batch of results can still be rendered.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from .config import ALTERNATIVES, STRICT_DEFAULT


class InvalidInputError(ValueError):
    """Raised for unusable test arguments, or insufficient data in strict mode."""


def check_alpha(alpha: float) -> float:
    """
    Validate a significance level.

    Raises:
        InvalidInputError: ``alpha`` is not a number strictly between 0 and 1.
    """
    try:
        alpha = float(alpha)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"alpha must be a number, got {alpha!r}") from exc
    if not 0.0 < alpha < 1.0:
        raise InvalidInputError(f"alpha must lie in (0, 1), got {alpha}")
    return alpha


def check_alternative(alternative: str) -> str:
    """
    Validate an alternative hypothesis name.

    Raises:
        InvalidInputError: ``alternative`` is not one of ALTERNATIVES.
    """
    if alternative not in ALTERNATIVES:
        raise InvalidInputError(
            f"alternative must be one of {', '.join(ALTERNATIVES)}; got {alternative!r}"
        )
    return alternative


def check_bounds(lower: float, upper: float) -> tuple[float, float]:
    """
    Validate equivalence bounds.

    Raises:
        InvalidInputError: Bounds are not finite or ``lower >= upper``.
    """
    try:
        lower, upper = float(lower), float(upper)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError("equivalence bounds must be numbers") from exc
    if not (math.isfinite(lower) and math.isfinite(upper)):
        raise InvalidInputError("equivalence bounds must be finite")
    if lower >= upper:
        raise InvalidInputError(
            f"lower bound must be below upper bound (got {lower} >= {upper})"
        )
    return lower, upper


def prepare_sample(
    values: Sequence[float],
    *,
    name: str = "x",
    min_n: int = 1,
    strict: bool = STRICT_DEFAULT,
) -> tuple[np.ndarray, str | None]:
    """
    Coerce a sample to a 1-D float array and check it is usable.

    Args:
        values: Sequence of real numbers.  The caller's object is not modified.
        name: Label used in messages (``"x"``, ``"y"``).
        min_n: Minimum number of observations the test needs.
        strict: Raise instead of returning a problem description.

    Returns:
        Tuple of (array, problem).  ``problem`` is ``None`` when the sample is
        usable, otherwise a short description for the result ``note``.

    Raises:
        InvalidInputError: Non-numeric input (always), or any data problem
            when ``strict`` is true.
    """
    try:
        arr = np.array(values, dtype=float).ravel()
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must be a sequence of numbers") from exc

    problem = None
    if not np.all(np.isfinite(arr)):
        problem = f"{name} contains non-finite values"
    elif arr.size < min_n:
        problem = f"{name} needs at least {min_n} observations (got {arr.size})"

    if problem is not None and strict:
        raise InvalidInputError(problem)
    return arr, problem


def insufficient_result(
    test_used: str,
    alpha: float,
    alternative: str,
    note: str,
    nan_fields: Sequence[str] = (),
    **fields,
) -> dict:
    """
    Build the lenient-mode result for a test that cannot be computed.

    Every name in ``nan_fields`` is set to NaN; ``fields`` are copied as-is
    (sample sizes, bounds).  ``p_value`` is NaN and ``significant`` False.
    """
    result: dict = {"test_used": test_used, **fields}
    for key in nan_fields:
        result[key] = float("nan")
    result.update({
        "p_value": float("nan"),
        "alpha": alpha,
        "alternative": alternative,
        "significant": False,
        "note": note,
    })
    return result
