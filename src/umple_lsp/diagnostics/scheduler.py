"""Debounced, supersedable validation of open documents.

Each edit restarts a per-document quiet period. When it elapses the document
is validated; a newer validation of the same document cancels the older one.
A result is only published if the document is still at the version that was
validated and the run was not cancelled, so diagnostics never arrive out of
order.

Edits also cascade: other open documents that import the edited file are
re-validated after a second, longer quiet period shared by all of them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable

from umple_lsp.core.cancellation import CancellationToken, OperationCancelled
from umple_lsp.core.errors import ErrorCode, ValidatorError
from umple_lsp.core.logging import get_logger
from umple_lsp.diagnostics.models import Diagnostic

log = get_logger(__name__)

RunValidation = Callable[[str, CancellationToken], Awaitable[list[Diagnostic]]]
Publish = Callable[[str, list[Diagnostic], int | None], None]
VersionOf = Callable[[str], int | None]
DependentsOf = Callable[[str], Iterable[str]]
Warn = Callable[[str], None]


class ValidationScheduler:
    """Owns every pending and running validation task.

    Args:
        run: Validates the current text of a document URI.
        publish: Delivers diagnostics for a URI (and the version they belong to).
        version_of: Current version of an open document, None once closed.
        dependents_of: Open document URIs that import the given URI's file.
        warn: Shows a message to the user. Called once per validator failure kind.
    """

    def __init__(
        self,
        run: RunValidation,
        publish: Publish,
        version_of: VersionOf,
        dependents_of: DependentsOf,
        warn: Warn,
        *,
        debounce_sec: float = 0.3,
        dependent_debounce_sec: float = 0.5,
    ) -> None:
        self._run = run
        self._publish = publish
        self._version_of = version_of
        self._dependents_of = dependents_of
        self._warn = warn
        self.debounce_sec = debounce_sec
        self.dependent_debounce_sec = dependent_debounce_sec

        self._pending: dict[str, asyncio.Task[None]] = {}
        self._running: dict[str, tuple[asyncio.Task[None], CancellationToken]] = {}
        self._changed: set[str] = set()
        self._dependents_timer: asyncio.Task[None] | None = None
        self._warned: set[ErrorCode] = set()

    # =========================================================================
    # Scheduling
    # =========================================================================

    def schedule(self, uri: str, delay: float | None = None) -> None:
        """Validate *uri* after a quiet period, replacing any pending request."""
        existing = self._pending.pop(uri, None)
        if existing is not None:
            existing.cancel()
        wait = self.debounce_sec if delay is None else delay
        task = asyncio.create_task(self._debounced(uri, wait))
        self._pending[uri] = task

    async def _debounced(self, uri: str, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._pending.get(uri) is asyncio.current_task():
            del self._pending[uri]
        self.start(uri)

    def schedule_dependents(self, changed_uri: str) -> None:
        """Re-validate importers of *changed_uri* after the shared quiet period."""
        self._changed.add(changed_uri)
        if self._dependents_timer is not None:
            self._dependents_timer.cancel()
        self._dependents_timer = asyncio.create_task(self._revalidate_dependents())

    async def _revalidate_dependents(self) -> None:
        await asyncio.sleep(self.dependent_debounce_sec)
        changed, self._changed = self._changed, set()
        self._dependents_timer = None
        targets: set[str] = set()
        for uri in changed:
            targets.update(self._dependents_of(uri))
        targets -= changed
        for uri in sorted(targets):
            log.debug("dependent_revalidation", uri=uri)
            self.start(uri)

    def start(self, uri: str) -> None:
        """Validate *uri* now, cancelling any validation already running for it."""
        version = self._version_of(uri)
        if version is None:
            return
        previous = self._running.pop(uri, None)
        if previous is not None:
            previous[1].cancel()
        token = CancellationToken()
        task = asyncio.create_task(self._validate(uri, version, token))
        self._running[uri] = (task, token)

    # =========================================================================
    # Execution
    # =========================================================================

    async def _validate(self, uri: str, version: int, token: CancellationToken) -> None:
        try:
            diagnostics = await self._run(uri, token)
        except OperationCancelled:
            log.debug("validation_cancelled", uri=uri, version=version)
            return
        except ValidatorError as e:
            self._warn_once(e)
            diagnostics = []
        except Exception:
            log.exception("validation_failed", uri=uri, version=version)
            diagnostics = []
        finally:
            current = self._running.get(uri)
            if current is not None and current[1] is token:
                del self._running[uri]

        if token.cancelled or self._version_of(uri) != version:
            log.debug("validation_stale", uri=uri, version=version)
            return
        self._publish(uri, diagnostics, version)

    def _warn_once(self, error: ValidatorError) -> None:
        if error.code in self._warned:
            log.debug("validator_unavailable", code=error.error_name)
            return
        self._warned.add(error.code)
        log.warning("validator_unavailable", **error.to_dict())
        self._warn(error.message)

    # =========================================================================
    # Teardown
    # =========================================================================

    def close(self, uri: str) -> None:
        """Drop pending and running work for *uri* and clear its diagnostics."""
        pending = self._pending.pop(uri, None)
        if pending is not None:
            pending.cancel()
        running = self._running.pop(uri, None)
        if running is not None:
            running[1].cancel("closed")
        self._publish(uri, [], None)

    async def shutdown(self) -> None:
        """Cancel everything and wait for the tasks to unwind."""
        tasks: list[asyncio.Task[None]] = list(self._pending.values())
        self._pending.clear()
        for task, token in self._running.values():
            token.cancel("shutdown")
            tasks.append(task)
        self._running.clear()
        if self._dependents_timer is not None:
            tasks.append(self._dependents_timer)
            self._dependents_timer = None
        self._changed.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
