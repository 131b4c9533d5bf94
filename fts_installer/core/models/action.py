"""
Action and Receipt models — the execution contract.

An Action asks an adapter to touch the outside world (run apt, clone a
repository, write a sudoers file). A Receipt records what happened.
Adapters answer with Receipts, never with exceptions.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """One side effect, addressed to a named adapter."""

    id: str                         # "<step>:<name>", e.g. "deps:install-git"
    adapter: str                    # apt | git | ansible | shell | filesystem
    step: str = ""                  # installer step that issued it
    params: dict[str, Any] = Field(default_factory=dict)


class ReceiptStatus(StrEnum):
    OK = "ok"
    SKIPPED = "skipped"             # nothing to do, already in place
    FAILED = "failed"


_MARKERS = {
    ReceiptStatus.OK: "✓",
    ReceiptStatus.SKIPPED: "⊘",
    ReceiptStatus.FAILED: "✗",
}


class Receipt(BaseModel):
    """Outcome of one adapter execution.

    ``return_code`` is the exit status of the underlying tool when there
    was one, so that the playbook step can hand it back to the shell.
    """

    adapter: str
    action_id: str
    status: ReceiptStatus = ReceiptStatus.OK

    finished_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    return_code: int | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is ReceiptStatus.OK

    @property
    def failed(self) -> bool:
        return self.status is ReceiptStatus.FAILED

    @property
    def skipped(self) -> bool:
        return self.status is ReceiptStatus.SKIPPED

    @property
    def marker(self) -> str:
        """Single-character status glyph for log lines."""
        return _MARKERS[self.status]

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(
            adapter=adapter,
            action_id=action_id,
            status=ReceiptStatus.FAILED,
            error=error,
            **kwargs,
        )

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **kwargs: Any) -> Receipt:
        """Nothing needed doing; ``reason`` becomes the output."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status=ReceiptStatus.SKIPPED,
            output=reason,
            **kwargs,
        )
