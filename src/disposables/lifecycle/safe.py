"""Failure isolation for individual lifecycle callbacks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..util.log import Log, Logger

log = Log.create({"service": "lifecycle.safe"})


@dataclass(frozen=True)
class Outcome:
    """Result of a guarded call.

    ``value`` holds the callback's return value on success and is always
    None on failure; the exception itself is only reported through the log.
    """
    ok: bool
    value: Any = None


def safe_invoke(
    fn: Callable[[], Any],
    context: str,
    owner_id: str,
    logger: Optional[Logger] = None,
) -> Outcome:
    """Run ``fn`` and swallow any exception it raises.

    Each failure produces exactly one error record carrying the context,
    the owner identity and the error detail.
    """
    try:
        return Outcome(ok=True, value=fn())
    except Exception as error:
        (logger or log).error("disposable callback failed", {
            "context": context,
            "owner_id": owner_id,
            "error": error,
            "error_type": type(error).__name__,
        })
        return Outcome(ok=False)


def teardown_context(key: str, owner_id: str) -> str:
    return f"teardown failed for key {key} in owner {owner_id}"


def resume_context(key: str, owner_id: str) -> str:
    return f"resume failed for key {key} in owner {owner_id}"
