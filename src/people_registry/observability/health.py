"""Health checks behind ``GET /health``.

Reports health status of registered components.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

HealthCheck = Callable[[], Awaitable[tuple[bool, str]]]


@dataclass(frozen=True)
class ComponentHealth:
    component: str
    healthy: bool
    message: str
    latency_ms: float


class HealthChecker:
    """Checks health of system components."""

    def __init__(self) -> None:
        self._checks: dict[str, HealthCheck] = {}

    def register_check(self, component: str, check_fn: HealthCheck) -> None:
        """Register a health check function for a component.

        check_fn is async and returns ``(healthy, message)``.
        """
        self._checks[component] = check_fn

    async def check_all(self) -> list[ComponentHealth]:
        """Run all health checks and return results."""
        results = []

        for component, check_fn in self._checks.items():
            start = time.monotonic()
            try:
                healthy, message = await check_fn()
            except Exception as e:
                logger.warning("Health check %s raised: %s", component, e)
                healthy, message = False, f"Check failed: {e.__class__.__name__}"
            latency = (time.monotonic() - start) * 1000
            results.append(
                ComponentHealth(
                    component=component,
                    healthy=healthy,
                    message=message,
                    latency_ms=latency,
                )
            )

        return results

    async def is_healthy(self) -> bool:
        """Quick check: are all components healthy?"""
        results = await self.check_all()
        return all(r.healthy for r in results)
