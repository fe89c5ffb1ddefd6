"""
Cross-cutting properties that every test function must satisfy.

Covers:
- Every p-value lies in [0, 1] or is NaN; significant == (p < alpha).
- Swapping samples mirrors one-sided alternatives.
- Welch and Student agree for equal sizes and equal variances.
- Adversarial samples (all equal, including constants whose float mean
  is inexact, outliers, heavy ties, mixed signs)
  never crash and never produce p-values outside [0, 1].
- With providers forced absent every test still returns finite,
  correctly signed results.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from src.stats_engine.runner import run_test

from .conftest import ADVERSARIAL_SAMPLES

ONE_SAMPLE_CODES = ["t_one_sample", "wilcoxon_signed_rank", "sign_test"]
TWO_SAMPLE_CODES = ["t_student", "t_welch", "mann_whitney", "mood_median_test"]
EQUIVALENCE_CODES = ["tost", "tost_wilcoxon"]


def _check_result(result: dict):
    p = result["p_value"]
    assert math.isnan(p) or 0.0 <= p <= 1.0
    if math.isnan(p):
        assert result["significant"] is False
    else:
        assert result["significant"] == (p < result["alpha"])


# ---------------------------------------------------------------------------
# p-value range and decision consistency
# ---------------------------------------------------------------------------

class TestResultInvariants:

    @pytest.mark.parametrize("code", ONE_SAMPLE_CODES)
    @pytest.mark.parametrize("name", list(ADVERSARIAL_SAMPLES))
    def test_one_sample_adversarial(self, code, name, any_providers):
        result = run_test(code, ADVERSARIAL_SAMPLES[name], mu0=1.0, providers=any_providers)
        _check_result(result)

    @pytest.mark.parametrize("code", TWO_SAMPLE_CODES)
    @pytest.mark.parametrize("name", list(ADVERSARIAL_SAMPLES))
    def test_two_sample_adversarial(self, code, name, any_providers):
        x = ADVERSARIAL_SAMPLES[name]
        y = ADVERSARIAL_SAMPLES["tie_heavy"]
        _check_result(run_test(code, x, y, providers=any_providers))

    @pytest.mark.parametrize("code", EQUIVALENCE_CODES)
    @pytest.mark.parametrize("name", list(ADVERSARIAL_SAMPLES))
    def test_equivalence_adversarial(self, code, name, any_providers):
        result = run_test(code, ADVERSARIAL_SAMPLES[name], lower=-1.0, upper=3.0,
                          providers=any_providers)
        _check_result(result)
        assert result["equivalent"] == result["significant"]

    @pytest.mark.parametrize("alternative", ["two-sided", "greater", "less"])
    @pytest.mark.parametrize("alpha", [0.01, 0.05, 0.10])
    def test_random_samples(self, alternative, alpha, rng, any_providers):
        for _ in range(5):
            x = rng.normal(0.2, 1.0, size=int(rng.integers(3, 30))).tolist()
            y = rng.normal(0.0, 1.5, size=int(rng.integers(3, 30))).tolist()
            for code in ONE_SAMPLE_CODES:
                _check_result(run_test(code, x, alpha=alpha, alternative=alternative,
                                       providers=any_providers))
            for code in TWO_SAMPLE_CODES:
                _check_result(run_test(code, x, y, alpha=alpha, alternative=alternative,
                                       providers=any_providers))


# ---------------------------------------------------------------------------
# Symmetry and agreement
# ---------------------------------------------------------------------------

class TestSymmetry:

    @pytest.mark.parametrize("code", ["t_student", "t_welch", "mann_whitney"])
    def test_swapping_samples_mirrors_alternative(self, code, any_providers):
        x = [4.1, 5.3, 3.8, 6.0, 4.7, 5.1, 4.4]
        y = [5.9, 6.4, 5.2, 7.1, 6.8, 6.1]
        forward = run_test(code, x, y, alternative="less", providers=any_providers)
        backward = run_test(code, y, x, alternative="greater", providers=any_providers)
        assert forward["p_value"] == pytest.approx(backward["p_value"])

    @pytest.mark.parametrize("code", TWO_SAMPLE_CODES)
    def test_two_sided_symmetric_in_samples(self, code, any_providers):
        x = [4.1, 5.3, 3.8, 6.0, 4.7, 5.1, 4.4]
        y = [5.9, 6.4, 5.2, 7.1, 6.8, 6.1]
        assert run_test(code, x, y, providers=any_providers)["p_value"] == pytest.approx(
            run_test(code, y, x, providers=any_providers)["p_value"]
        )

    @pytest.mark.parametrize("code", ["wilcoxon_signed_rank", "sign_test"])
    def test_negating_differences_keeps_two_sided_p(self, code, tie_free_differences,
                                                     any_providers):
        negated = [-d for d in tie_free_differences]
        assert run_test(code, tie_free_differences, providers=any_providers)["p_value"] == \
            pytest.approx(run_test(code, negated, providers=any_providers)["p_value"])

    def test_welch_equals_student_for_balanced_equal_variance(self, equal_variance_groups,
                                                               any_providers):
        x, y = equal_variance_groups
        welch = run_test("t_welch", x, y, providers=any_providers)
        student = run_test("t_student", x, y, providers=any_providers)
        assert welch["t"] == pytest.approx(student["t"])
        assert welch["df"] == pytest.approx(student["df"])
        assert welch["p_value"] == pytest.approx(student["p_value"])

    def test_shift_invariance(self, near_five, any_providers):
        """Shifting data and mu0 together leaves every one-sample p unchanged."""
        shifted = (np.asarray(near_five) + 100.0).tolist()
        for code in ONE_SAMPLE_CODES:
            base = run_test(code, near_five, mu0=4.9, providers=any_providers)
            moved = run_test(code, shifted, mu0=104.9, providers=any_providers)
            assert base["p_value"] == pytest.approx(moved["p_value"], abs=1e-9)


# ---------------------------------------------------------------------------
# Reference scenarios
# ---------------------------------------------------------------------------

class TestScenarios:

    def test_no_evidence_near_mu0(self, near_five, any_providers):
        result = run_test("t_one_sample", near_five, mu0=5.0, providers=any_providers)
        assert result["significant"] is False
        assert result["p_value"] > 0.8

    def test_separated_groups_rejected_by_rank_tests(self, separated_groups, any_providers):
        x, y = separated_groups
        mw = run_test("mann_whitney", x, y, providers=any_providers)
        mood = run_test("mood_median_test", x, y, providers=any_providers)
        assert mw["p_value"] == pytest.approx(2 / 252)
        assert mood["chi2"] == pytest.approx(10.0)
        assert mw["significant"] and mood["significant"]

    def test_ten_positive_signs(self, any_providers):
        result = run_test("sign_test", list(range(1, 11)), alternative="greater",
                          providers=any_providers)
        assert result["p_value"] == pytest.approx(0.5 ** 10)


# ---------------------------------------------------------------------------
# Providers forced absent
# ---------------------------------------------------------------------------

class TestFallbackSanity:

    @pytest.mark.parametrize("code", ONE_SAMPLE_CODES + TWO_SAMPLE_CODES)
    def test_finite_and_correctly_signed(self, code, no_providers):
        x = [8.2, 8.9, 9.4, 8.7, 9.1, 9.8, 8.5, 9.3]
        y = [7.1, 7.6, 6.9, 7.4, 7.8, 7.2, 7.0]
        if code in ONE_SAMPLE_CODES:
            greater = run_test(code, x, mu0=7.5, alternative="greater", providers=no_providers)
            less = run_test(code, x, mu0=7.5, alternative="less", providers=no_providers)
        elif code == "mood_median_test":
            result = run_test(code, x, y, providers=no_providers)
            assert math.isfinite(result["p_value"])
            assert result["significant"] is True
            return
        else:
            greater = run_test(code, x, y, alternative="greater", providers=no_providers)
            less = run_test(code, x, y, alternative="less", providers=no_providers)

        assert math.isfinite(greater["p_value"])
        assert math.isfinite(less["p_value"])
        assert greater["p_value"] < 0.05 < less["p_value"]
