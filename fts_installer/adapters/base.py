"""
Adapter base — how the installer engine reaches apt, git and ansible.

Nothing in the engine calls ``subprocess`` directly; each tool sits
behind an adapter and answers with a ``Receipt``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from fts_installer.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to execute an action."""

    action: Action
    cwd: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    verbose: bool = False

    @property
    def params(self) -> dict:
        return self.action.params


class Adapter(ABC):
    """One external tool behind a uniform interface.

    A failing tool yields a receipt with status ``failed`` and, where
    there was a process, its exit code. Adapters do not raise.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key, e.g. 'apt' or 'ansible'."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the tool is on this host (a PATH lookup, nothing slower)."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check the action's params before anything runs.

        Returns:
            ``(True, "")`` or ``(False, reason)``.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Perform the side effect and describe the outcome."""

    def _receipt(self, context: ExecutionContext, result: dict, command: list[str]) -> Receipt:
        """Turn a ``run_command`` result into a receipt."""
        metadata = {"command": command, "elapsed_ms": result.get("elapsed_ms", 0)}
        if result["ok"]:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=result.get("stdout", "").strip(),
                return_code=0,
                metadata=metadata,
            )
        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=result.get("error", "unknown error"),
            return_code=result.get("return_code"),
            metadata=metadata,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
