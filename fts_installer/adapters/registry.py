"""
Adapter registry — the single dispatch point for side effects.

The installer engine hands every ``Action`` to ``execute_action`` and
gets a ``Receipt`` back.  In mock mode all actions are routed to one
test double instead of the real tools.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping

from fts_installer.adapters.base import Adapter, ExecutionContext
from fts_installer.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Adapters by name, plus the mock switch used by the test suite."""

    def __init__(self, mock_mode: bool = False):
        self._adapters: dict[str, Adapter] = {}
        self._mock_mode = mock_mode
        self._mock_adapter: Adapter | None = None

    def set_mock_mode(self, enabled: bool, mock_adapter: Adapter | None = None) -> None:
        """Route all actions to ``mock_adapter``.

        Without a mock adapter every action succeeds and nothing is recorded.
        """
        self._mock_mode = enabled
        self._mock_adapter = mock_adapter

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._adapters:
            logger.warning("Replacing adapter %s", adapter.name)
        self._adapters[adapter.name] = adapter

    def is_available(self, name: str) -> bool:
        """Whether the tool behind ``name`` is installed (always True in mock mode)."""
        if self._mock_mode:
            return True
        adapter = self._adapters.get(name)
        if adapter is None:
            return False
        try:
            return adapter.is_available()
        except Exception as e:
            logger.debug("Availability probe for %s raised: %s", name, e)
            return False

    def execute_action(
        self,
        action: Action,
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
        verbose: bool = False,
    ) -> Receipt:
        """Validate and run ``action``; never raises for adapter errors."""
        started = time.monotonic()
        context = ExecutionContext(action=action, cwd=cwd, env=dict(env or {}), verbose=verbose)

        if self._mock_mode and self._mock_adapter is None:
            return Receipt.success(
                adapter=action.adapter,
                action_id=action.id,
                output=f"[mock] {action.adapter}:{action.id} executed",
                metadata={"mock": True},
            )

        adapter = self._mock_adapter if self._mock_mode else self._adapters.get(action.adapter)
        if adapter is None:
            return self._fail(action, f"No adapter registered for '{action.adapter}'")

        rejection = self._validate(adapter, context)
        if rejection is not None:
            return rejection

        logger.debug("→ %s:%s", action.adapter, action.id)
        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised while running %s: %s", action.adapter, action.id, e)
            receipt = self._fail(action, f"Unexpected error: {e}")

        receipt.duration_ms = int((time.monotonic() - started) * 1000)
        return receipt

    def _validate(self, adapter: Adapter, context: ExecutionContext) -> Receipt | None:
        try:
            valid, message = adapter.validate(context)
        except Exception as e:
            return self._fail(context.action, f"Validation error: {e}")
        if not valid:
            return self._fail(context.action, f"Validation failed: {message}")
        return None

    @staticmethod
    def _fail(action: Action, error: str) -> Receipt:
        return Receipt.failure(adapter=action.adapter, action_id=action.id, error=error)


def default_registry() -> AdapterRegistry:
    """Registry wired to the real tools."""
    from fts_installer.adapters.orchestration.ansible import AnsiblePlaybookAdapter
    from fts_installer.adapters.packages.apt import AptAdapter
    from fts_installer.adapters.shell.command import ShellCommandAdapter
    from fts_installer.adapters.shell.filesystem import FilesystemAdapter
    from fts_installer.adapters.vcs.git import GitAdapter

    registry = AdapterRegistry()
    for adapter in (
        ShellCommandAdapter(),
        FilesystemAdapter(),
        AptAdapter(),
        GitAdapter(),
        AnsiblePlaybookAdapter(),
    ):
        registry.register(adapter)
    return registry
