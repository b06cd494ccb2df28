"""
Result type for best-effort external calls.

Team resolution, repository linking, readiness polling, image lookup and
redeploy triggers must never abort the operation that calls them. They
are wrapped with ``best_effort`` which logs the failure and returns an
``Outcome`` the call site inspects explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

from sitegen.errors import SiteGenError

logger = logging.getLogger("sitegen.outcome")

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    ok: bool
    value: T | None = None
    error: str | None = None


async def best_effort(what: str, call: Callable[[], Awaitable[T]]) -> Outcome[T]:
    """Await *call*; on any failure log a warning and return a failed Outcome."""
    try:
        return Outcome(ok=True, value=await call())
    except SiteGenError as exc:
        logger.warning("%s failed, continuing: %s", what, exc)
        return Outcome(ok=False, error=str(exc))
    except Exception as exc:
        logger.warning(
            "%s failed unexpectedly, continuing: %s", what, exc, exc_info=True
        )
        return Outcome(ok=False, error=f"{type(exc).__name__}: {exc}")
