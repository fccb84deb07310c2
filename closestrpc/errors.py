"""Exception hierarchy for closestrpc.

Only :class:`ConfigurationError` and :class:`NotReadyError` ever reach
callers of the public API.  Probe-level failures are absorbed by the
prober and selector and are visible only through logging.
"""

from __future__ import annotations


class BalancerError(Exception):
    """Base class for all closestrpc errors."""


class ConfigurationError(BalancerError, ValueError):
    """Invalid arguments passed to ``init``."""


class NotReadyError(BalancerError):
    """No round has produced a successful selection yet."""


class ProbeFailure(BalancerError):
    """A single provider failed a single probe.

    ``kind`` is one of the ``ERROR_*`` constants in :mod:`closestrpc.config`.
    """

    def __init__(self, kind: str, message: str = "") -> None:
        self.kind = kind
        self.message = message
        super().__init__(f"{kind}: {message}" if message else kind)


class AllProvidersFailed(BalancerError):
    """Every provider failed in a round."""

    def __init__(self, round_number: int, provider_count: int) -> None:
        self.round_number = round_number
        self.provider_count = provider_count
        super().__init__(
            f"All {provider_count} providers failed in round {round_number}"
        )
