"""
Tutorial suites.
"""

from autowait.core.suite import Suite
from autowait.core.timeouts import TimeoutConfig
from autowait.scenarios import auto_waiting, locators, timeouts

SUITES: dict[str, Suite] = {
    s.name: s for s in (auto_waiting.suite, locators.suite, timeouts.suite)
}


def get_suite(name: str) -> Suite:
    """Look up a registered suite by name."""
    try:
        return SUITES[name]
    except KeyError:
        raise KeyError(f"Unknown suite: {name!r}") from None


def list_suites() -> list[Suite]:
    return list(SUITES.values())


def validate_suites(
    config: TimeoutConfig,
    suites: dict[str, Suite] | None = None,
) -> dict[str, int]:
    """
    Check a suite registry before serving it.

    Every suite must be registered under its own name, declare at least one
    test, and its timeout overrides must form a valid configuration on top of
    `config`. Returns the number of tests per suite.
    """
    suites = SUITES if suites is None else suites
    if not suites:
        raise RuntimeError("No suites registered")

    counts: dict[str, int] = {}
    for name, suite in suites.items():
        if name != suite.name:
            raise RuntimeError(f"Suite {suite.name!r} registered as {name!r}")
        if not suite.tests:
            raise RuntimeError(f"Suite {name!r} declares no tests")
        try:
            config.merged(**suite.overrides)
        except ValueError as e:
            raise RuntimeError(f"Suite {name!r} has invalid timeout overrides: {e}") from e
        counts[name] = len(suite.tests)
    return counts


__all__ = ["SUITES", "get_suite", "list_suites", "validate_suites"]
