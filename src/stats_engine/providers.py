"""
Optional high-precision distribution providers.

Each provider family (Student-t CDF and quantile, chi-square CDF, binomial
CDF, Wilcoxon signed-rank) is reached through a :class:`ProviderHandle`
with three states:

    UNRESOLVED  → first use runs the loader once
    AVAILABLE   → the loaded callable is cached and reused
    UNAVAILABLE → the failure is cached; callers use the local approximation

A failed load is never retried within the process and never surfaces an
error to the caller.  Concurrent first resolutions may both run the loader;
both produce equivalent callables so the last writer wins harmlessly.

The default loaders wrap ``scipy.stats``.  Tests and callers can build a
:class:`ProviderRegistry` with some or all families disabled, or with
replacement loaders, and pass it to any test function.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Callable, Mapping, Optional

from .config import (
    BINOM_CDF,
    CHI2_CDF,
    PROVIDER_MODULE,
    PROVIDER_NAMES,
    T_CDF,
    T_PPF,
    WILCOXON,
)

Loader = Callable[[], Callable]


class ProviderState(str, Enum):
    UNRESOLVED = "unresolved"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


# ---------------------------------------------------------------------------
# Default loaders (scipy.stats)
# ---------------------------------------------------------------------------

def _stats_module():
    return importlib.import_module(PROVIDER_MODULE)


def _load_t_cdf() -> Callable[[float, float], float]:
    dist = _stats_module().t

    def t_cdf(x: float, df: float) -> float:
        return float(dist.cdf(x, df))

    return t_cdf


def _load_t_ppf() -> Callable[[float, float], float]:
    dist = _stats_module().t

    def t_ppf(q: float, df: float) -> float:
        return float(dist.ppf(q, df))

    return t_ppf


def _load_chi2_cdf() -> Callable[[float, float], float]:
    dist = _stats_module().chi2

    def chi2_cdf(x: float, df: float) -> float:
        return float(dist.cdf(x, df))

    return chi2_cdf


def _load_binom_cdf() -> Callable[[int, int, float], float]:
    dist = _stats_module().binom

    def binom_cdf(k: int, n: int, p: float) -> float:
        return float(dist.cdf(k, n, p))

    return binom_cdf


def _load_wilcoxon() -> Callable[..., dict]:
    wilcoxon = _stats_module().wilcoxon

    def signed_rank(differences, *, alpha: float, alternative: str) -> dict:
        """
        Signed-rank test on differences already stripped of zeros.

        Returns:
            Dict with statistic, p_value, alpha, and rejected.
        """
        res = wilcoxon(differences, zero_method="wilcox", alternative=alternative)
        p_value = float(res.pvalue)
        return {
            "statistic": float(res.statistic),
            "p_value": p_value,
            "alpha": alpha,
            "rejected": p_value < alpha,
        }

    return signed_rank


DEFAULT_LOADERS: dict[str, Loader] = {
    T_CDF: _load_t_cdf,
    T_PPF: _load_t_ppf,
    CHI2_CDF: _load_chi2_cdf,
    BINOM_CDF: _load_binom_cdf,
    WILCOXON: _load_wilcoxon,
}


# ---------------------------------------------------------------------------
# Handles and registry
# ---------------------------------------------------------------------------

@dataclass
class ProviderHandle:
    """Attempt-once, cache-forever accessor for one provider family."""
    name: str
    loader: Optional[Loader]
    state: ProviderState = ProviderState.UNRESOLVED
    error: Optional[str] = None
    _fn: Optional[Callable] = field(default=None, repr=False)

    def resolve(self) -> Optional[Callable]:
        """Return the provider callable, or ``None`` when unavailable."""
        if self.state is ProviderState.UNRESOLVED:
            if self.loader is None:
                self.error = "disabled"
                self.state = ProviderState.UNAVAILABLE
            else:
                try:
                    fn = self.loader()
                except Exception as exc:  # any load failure means unavailable
                    self.error = f"{type(exc).__name__}: {exc}"
                    self.state = ProviderState.UNAVAILABLE
                else:
                    # callable first so a reader never sees AVAILABLE without it
                    self._fn = fn
                    self.state = ProviderState.AVAILABLE
        return self._fn

    @property
    def available(self) -> bool:
        return self.resolve() is not None


class ProviderRegistry:
    """
    One handle per provider family, shared by every test that is given it.

    Args:
        loaders: Overrides keyed by provider name.  A value of ``None``
            disables that family.  Families not named use the default
            scipy loaders.
    """

    def __init__(self, loaders: Optional[Mapping[str, Optional[Loader]]] = None):
        overrides = dict(loaders or {})
        unknown = set(overrides) - set(PROVIDER_NAMES)
        if unknown:
            raise ValueError(f"Unknown provider name(s): {', '.join(sorted(unknown))}")
        self._handles: dict[str, ProviderHandle] = {
            name: ProviderHandle(name, overrides.get(name, DEFAULT_LOADERS[name]))
            for name in PROVIDER_NAMES
        }

    @classmethod
    def disabled(cls, *names: str) -> "ProviderRegistry":
        """Registry with the named families (all of them if none given) absent."""
        return cls({name: None for name in (names or PROVIDER_NAMES)})

    def handle(self, name: str) -> ProviderHandle:
        return self._handles[name]

    def get(self, name: str) -> Optional[Callable]:
        """Resolved callable for ``name``, or ``None`` to use the fallback."""
        return self._handles[name].resolve()

    def is_available(self, name: str) -> bool:
        return self._handles[name].available

    def resolve_all(self) -> dict[str, ProviderState]:
        """Resolve every family eagerly so later test calls never load."""
        for handle in self._handles.values():
            handle.resolve()
        return self.status()

    def status(self) -> dict[str, ProviderState]:
        return {name: handle.state for name, handle in self._handles.items()}


@lru_cache(maxsize=None)
def default_registry() -> ProviderRegistry:
    """Process-wide registry used when a test is not given one."""
    return ProviderRegistry()


def registry_or_default(providers: Optional[ProviderRegistry]) -> ProviderRegistry:
    return providers if providers is not None else default_registry()
