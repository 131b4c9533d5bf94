"""
Mock adapter — stands in for apt, git, ansible and the rest in tests.

Records every execution context it receives so tests can assert on the
exact sequence of external calls an install would have made.
"""

from __future__ import annotations

from collections.abc import Callable

from fts_installer.adapters.base import Adapter, ExecutionContext
from fts_installer.core.models.action import Receipt


class MockAdapter(Adapter):
    """Records every action and answers with a canned receipt.

    Every action succeeds unless a failure, response or hook was
    registered for its action ID.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._hooks: dict[str, Callable[[ExecutionContext], None]] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """Contexts received, in call order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def action_ids(self) -> list[str]:
        """IDs of executed actions, in call order."""
        return [ctx.action.id for ctx in self._call_log]

    def calls_for(self, adapter: str) -> list[ExecutionContext]:
        """Executed contexts whose action targeted ``adapter``."""
        return [ctx for ctx in self._call_log if ctx.action.adapter == adapter]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Answer ``action_id`` with ``receipt``."""
        self._responses[action_id] = receipt

    def set_failure(
        self,
        action_id: str,
        error: str = "Mock failure",
        return_code: int | None = 1,
    ) -> None:
        """Make ``action_id`` fail as if the tool exited with ``return_code``."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            return_code=return_code,
        )

    def set_hook(self, action_id: str, hook: Callable[[ExecutionContext], None]) -> None:
        """Run ``hook`` when ``action_id`` executes (e.g. to raise or signal)."""
        self._hooks[action_id] = hook

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)

        hook = self._hooks.get(context.action.id)
        if hook is not None:
            hook(context)

        if context.action.id in self._responses:
            return self._responses[context.action.id]

        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            return_code=0,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log, custom responses and hooks."""
        self._call_log.clear()
        self._responses.clear()
        self._hooks.clear()
