"""
Result type returned at the quest service boundary.

Business outcomes (quest not found, already claimed, target not reached, ...)
are values, not exceptions: every public mutating operation returns a
`QuestResult`. Inside the service the domain exception hierarchy is used so a
failure rolls the surrounding transaction back; `returns_result` converts at
the boundary. Infrastructure errors are not converted and propagate.
"""

from __future__ import annotations

import functools
import inspect
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    Mapping,
    Optional,
    TypeVar,
)

from questline.core.logging.logger import LogContext
from questline.modules.shared.exceptions import QuestDomainException, QuestErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class QuestResult(Generic[T]):
    """Outcome of a quest operation: a value, or an error kind with context."""

    ok: bool
    value: Optional[T] = None
    error: Optional[QuestErrorKind] = None
    message: Optional[str] = None
    details: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, value: T) -> "QuestResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(
        cls,
        error: QuestErrorKind,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> "QuestResult[T]":
        return cls(ok=False, error=error, message=message, details=dict(details or {}))

    @classmethod
    def from_exception(cls, exc: QuestDomainException) -> "QuestResult[T]":
        return cls.failure(exc.kind, exc.message, exc.details)

    def unwrap(self) -> T:
        """Return the value, or raise if this is a failure."""
        if not self.ok:
            raise RuntimeError(
                f"unwrap() on failed QuestResult: {self.error} ({self.message})"
            )
        return self.value  # type: ignore[return-value]

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"ok": True, "value": _serialize(self.value)}
        return {
            "ok": False,
            "error": self.error.value if self.error else None,
            "message": self.message,
            "details": dict(self.details),
        }


def _serialize(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    return value


def returns_result(
    operation: str,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[QuestResult[T]]]]:
    """
    Wrap an async service method so it returns a `QuestResult`.

    The wrapped method runs inside a `LogContext` carrying the operation name
    and the `owner_id` argument. A `QuestDomainException` is logged at its own
    severity through the service's `log_domain_error` and returned as a
    failure; a normal return becomes a success.
    """

    def decorator(
        func: Callable[..., Awaitable[T]],
    ) -> Callable[..., Awaitable[QuestResult[T]]]:
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> QuestResult[T]:
            bound = signature.bind_partial(self, *args, **kwargs)
            owner_id = bound.arguments.get("owner_id")

            async with LogContext(owner_id=owner_id, operation=operation):
                try:
                    value = await func(self, *args, **kwargs)
                except QuestDomainException as exc:
                    self.log_domain_error(operation, exc)
                    return QuestResult.from_exception(exc)
                return QuestResult.success(value)

        return wrapper

    return decorator
