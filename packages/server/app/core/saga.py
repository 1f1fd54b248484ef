"""
Compensating-transaction helper for multi-step provisioning.

Steps that cross the credential-issuer / store boundary cannot share a
database transaction, so each committed step registers its inverse. When a
later step raises, the inverses run newest-first. A failing inverse is
logged and the unwind carries on; the original error is re-raised
unchanged.

    async with Saga("invite.create") as saga:
        identity = await saga.step(
            issuer.sign_up(email, password, name),
            compensate=lambda identity: issuer.delete_identity(identity.profile_id),
        )
        ...
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

log = structlog.get_logger()

T = TypeVar("T")

Compensation = Callable[[], Awaitable[Any]]


class Saga:
    """Ordered list of committed steps, each paired with its inverse."""

    def __init__(self, name: str, **context: Any):
        self.name = name
        self.context = context
        self._compensations: list[tuple[str, Compensation]] = []

    async def __aenter__(self) -> "Saga":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc is not None:
            log.warning(
                "saga.unwinding",
                saga=self.name,
                error=type(exc).__name__,
                steps=len(self._compensations),
                **self.context,
            )
            await self.compensate()
        return False

    @property
    def completed_steps(self) -> list[str]:
        return [label for label, _ in self._compensations]

    async def step(
        self,
        action: Awaitable[T],
        compensate: Callable[[T], Awaitable[Any]] | None = None,
        *,
        label: str | None = None,
    ) -> T:
        """Await ``action``; once it succeeds, remember how to undo it."""
        result = await action
        if compensate is not None:
            self._compensations.append(
                (label or f"step{len(self._compensations) + 1}", lambda: compensate(result))
            )
        return result

    async def compensate(self) -> None:
        """Run every registered inverse, newest first, best effort."""
        while self._compensations:
            label, undo = self._compensations.pop()
            try:
                await undo()
            except Exception:
                log.exception(
                    "saga.compensation_failed",
                    saga=self.name,
                    step=label,
                    **self.context,
                )
            else:
                log.info("saga.compensated", saga=self.name, step=label, **self.context)
