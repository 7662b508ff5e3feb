"""Reconnect cadence for long-lived connections."""

from __future__ import annotations

from dataclasses import dataclass

from chatbridge.core.domain.config_schema import ReconnectPolicySchema


@dataclass
class ReconnectPolicy:
    """Counts consecutive failures and picks the next delay.

    The first ``retry_times`` failures wait ``retry_interval`` seconds, later
    ones ``retry_lazy``. :meth:`reset` is called once a connection is online.
    """

    retry_times: int = 6
    retry_interval: float = 5.0
    retry_lazy: float = 60.0
    failures: int = 0

    @classmethod
    def from_config(cls, config: ReconnectPolicySchema) -> "ReconnectPolicy":
        return cls(
            retry_times=config.retry_times,
            retry_interval=config.retry_interval,
            retry_lazy=config.retry_lazy,
        )

    def next_delay(self) -> float:
        """Record a failure and return how long to wait before retrying."""
        self.failures += 1
        if self.failures <= self.retry_times:
            return self.retry_interval
        return self.retry_lazy

    def reset(self) -> None:
        self.failures = 0
