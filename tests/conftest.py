"""
Shared pytest fixtures for the hypothesis-testing engine.

Sample fixtures are small lake-style measurement series (e.g. dissolved
oxygen in mg/L) chosen so that expected statistics can be checked by hand.
Registry fixtures let each test choose between scipy providers and the
built-in approximations.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from src.stats_engine.providers import ProviderRegistry


# ---------------------------------------------------------------------------
# Reference normal CDF (exact erf) for checking approximations
# ---------------------------------------------------------------------------

def exact_normal_cdf(z: float) -> float:
    return 0.5 * math.erfc(-z / math.sqrt(2.0))


# ---------------------------------------------------------------------------
# Provider registries
# ---------------------------------------------------------------------------

@pytest.fixture
def scipy_providers():
    """Fresh registry resolving every family from scipy.stats."""
    return ProviderRegistry()


@pytest.fixture
def no_providers():
    """Registry with every optional provider forced absent."""
    return ProviderRegistry.disabled()


@pytest.fixture(params=["scipy", "fallback"])
def any_providers(request):
    """Parametrizes a test over providers present and forced absent."""
    if request.param == "scipy":
        return ProviderRegistry()
    return ProviderRegistry.disabled()


# ---------------------------------------------------------------------------
# Samples
# ---------------------------------------------------------------------------

@pytest.fixture
def near_five():
    """Five readings scattered around 5.0: no evidence against mu0 = 5."""
    return [5.1, 4.9, 5.3, 5.0, 4.8]


@pytest.fixture
def separated_groups():
    """Two groups with complete separation (every A below every B)."""
    return [1, 2, 3, 4, 5], [6, 7, 8, 9, 10]


@pytest.fixture
def equal_variance_groups():
    """Equal size, equal variance (2.5) groups with means 3 and 5."""
    return [1.0, 2.0, 3.0, 4.0, 5.0], [3.0, 4.0, 5.0, 6.0, 7.0]


@pytest.fixture
def tie_free_differences():
    """
    Eight differences with distinct magnitudes.

    |d| ranks: 0.5→1, 0.7→2, 1.0→3, 1.5→4, 2.0→5, 2.5→6, 3.5→7, 4.0→8;
    negatives are -0.5 and -1.0, so W− = 4 and W+ = 32.
    """
    return [1.5, -0.5, 2.5, 3.5, -1.0, 4.0, 2.0, 0.7]


@pytest.fixture
def rng():
    return np.random.default_rng(42)


ADVERSARIAL_SAMPLES = {
    "all_equal": [2.0, 2.0, 2.0, 2.0, 2.0],
    "all_equal_inexact_mean": [0.1] * 7,
    "single_outlier": [1.0, 1.0, 1.0, 1.0, 100.0],
    "negative": [-3.2, -1.5, -4.8, -2.2, -0.9, -3.3],
    "tie_heavy": [1.0] * 6 + [2.0] * 6 + [3.0] * 3,
    "mixed_sign": [-2.0, 0.0, 2.0, -1.0, 1.0, 0.0],
}
