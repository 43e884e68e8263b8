"""Tests for debounced, supersedable validation."""

import asyncio

import pytest

from umple_lsp.core.cancellation import CancellationToken
from umple_lsp.core.errors import ValidatorError
from umple_lsp.diagnostics.models import Diagnostic, DiagnosticSeverity
from umple_lsp.diagnostics.scheduler import ValidationScheduler

DEBOUNCE = 0.01
SETTLE = 0.08


def _diagnostic(message: str) -> Diagnostic:
    return Diagnostic(0, 0, 0, 1, DiagnosticSeverity.ERROR, message)


def _busy(scheduler: ValidationScheduler, uri: str) -> bool:
    return uri in scheduler._pending or uri in scheduler._running


class Harness:
    """Scripted callbacks recording what the scheduler does."""

    def __init__(self) -> None:
        self.versions: dict[str, int] = {}
        self.dependents: dict[str, list[str]] = {}
        self.runs: list[tuple[str, int]] = []
        self.tokens: list[CancellationToken] = []
        self.published: list[tuple[str, list[Diagnostic], int | None]] = []
        self.warnings: list[str] = []
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None
        self.scheduler = ValidationScheduler(
            run=self.run,
            publish=lambda uri, diags, version: self.published.append((uri, diags, version)),
            version_of=self.versions.get,
            dependents_of=lambda uri: self.dependents.get(uri, []),
            warn=self.warnings.append,
            debounce_sec=DEBOUNCE,
            dependent_debounce_sec=DEBOUNCE,
        )

    async def run(self, uri: str, token: CancellationToken) -> list[Diagnostic]:
        self.runs.append((uri, self.versions[uri]))
        self.tokens.append(token)
        version = self.versions[uri]
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return [_diagnostic(f"{uri}@{version}")]


@pytest.fixture
def harness() -> Harness:
    return Harness()


class TestDebounce:
    @pytest.mark.asyncio
    async def test_given_rapid_edits_when_debounced_then_validated_once(
        self, harness: Harness
    ) -> None:
        # Given
        harness.versions["a"] = 1

        # When
        for version in (1, 2, 3):
            harness.versions["a"] = version
            harness.scheduler.schedule("a")
        await asyncio.sleep(SETTLE)

        # Then
        assert harness.runs == [("a", 3)]
        assert [(uri, version) for uri, _, version in harness.published] == [("a", 3)]
        assert harness.published[0][1][0].message == "a@3"

    @pytest.mark.asyncio
    async def test_closed_document_is_not_validated(self, harness: Harness) -> None:
        harness.scheduler.start("gone")
        await asyncio.sleep(0)
        assert harness.runs == []
        assert not _busy(harness.scheduler, "gone")


class TestStaleness:
    @pytest.mark.asyncio
    async def test_given_version_changed_mid_run_when_finished_then_not_published(
        self, harness: Harness
    ) -> None:
        """Results computed for v1 are dropped once the document is at v2."""
        # Given
        harness.versions["a"] = 1
        harness.gate = asyncio.Event()
        harness.scheduler.start("a")
        await asyncio.sleep(0)

        # When
        harness.versions["a"] = 2
        harness.gate.set()
        await asyncio.sleep(SETTLE)

        # Then
        assert harness.runs == [("a", 1)]
        assert harness.published == []

    @pytest.mark.asyncio
    async def test_given_newer_run_when_started_then_older_cancelled(
        self, harness: Harness
    ) -> None:
        # Given
        harness.versions["a"] = 1
        harness.gate = asyncio.Event()
        harness.scheduler.start("a")
        await asyncio.sleep(0)

        # When
        harness.versions["a"] = 2
        harness.scheduler.start("a")
        await asyncio.sleep(0)
        harness.gate.set()
        await asyncio.sleep(SETTLE)

        # Then
        assert harness.tokens[0].cancelled
        assert not harness.tokens[1].cancelled
        assert [(uri, version) for uri, _, version in harness.published] == [("a", 2)]
        assert not _busy(harness.scheduler, "a")


class TestFailures:
    @pytest.mark.asyncio
    async def test_given_validator_error_when_repeated_then_warned_once(
        self, harness: Harness
    ) -> None:
        # Given
        harness.versions["a"] = 1
        harness.error = ValidatorError.not_configured()

        # When
        harness.scheduler.start("a")
        await asyncio.sleep(SETTLE)
        harness.scheduler.start("a")
        await asyncio.sleep(SETTLE)

        # Then
        assert harness.warnings == [ValidatorError.not_configured().message]
        assert [diags for _, diags, _ in harness.published] == [[], []]

    @pytest.mark.asyncio
    async def test_different_validator_errors_each_warn(self, harness: Harness) -> None:
        harness.versions["a"] = 1
        harness.error = ValidatorError.not_configured()
        harness.scheduler.start("a")
        await asyncio.sleep(SETTLE)

        harness.error = ValidatorError.unreachable("localhost", 5555, "refused")
        harness.scheduler.start("a")
        await asyncio.sleep(SETTLE)

        assert len(harness.warnings) == 2

    @pytest.mark.asyncio
    async def test_unexpected_error_publishes_empty(self, harness: Harness) -> None:
        harness.versions["a"] = 1
        harness.error = RuntimeError("boom")

        harness.scheduler.start("a")
        await asyncio.sleep(SETTLE)

        assert harness.published == [("a", [], 1)]
        assert harness.warnings == []


class TestDependents:
    @pytest.mark.asyncio
    async def test_given_edits_to_two_files_when_window_elapses_then_union_revalidated(
        self, harness: Harness
    ) -> None:
        # Given
        harness.versions.update({"a": 1, "b": 1, "main": 1, "other": 1})
        harness.dependents = {"a": ["main", "b"], "b": ["other"]}

        # When
        harness.scheduler.schedule_dependents("a")
        harness.scheduler.schedule_dependents("b")
        await asyncio.sleep(SETTLE)

        # Then
        assert sorted(uri for uri, _ in harness.runs) == ["main", "other"]

    @pytest.mark.asyncio
    async def test_no_dependents_means_no_runs(self, harness: Harness) -> None:
        harness.versions["a"] = 1
        harness.scheduler.schedule_dependents("a")
        await asyncio.sleep(SETTLE)
        assert harness.runs == []


class TestTeardown:
    @pytest.mark.asyncio
    async def test_given_running_validation_when_closed_then_cleared_and_cancelled(
        self, harness: Harness
    ) -> None:
        # Given
        harness.versions["a"] = 1
        harness.gate = asyncio.Event()
        harness.scheduler.start("a")
        await asyncio.sleep(0)

        # When
        del harness.versions["a"]
        harness.scheduler.close("a")
        harness.gate.set()
        await asyncio.sleep(SETTLE)

        # Then
        assert harness.published == [("a", [], None)]
        assert harness.tokens[0].reason == "closed"

    @pytest.mark.asyncio
    async def test_close_cancels_pending_debounce(self, harness: Harness) -> None:
        harness.versions["a"] = 1
        harness.scheduler.schedule("a")
        assert _busy(harness.scheduler, "a")

        harness.scheduler.close("a")
        await asyncio.sleep(SETTLE)

        assert harness.runs == []
        assert harness.published == [("a", [], None)]

    @pytest.mark.asyncio
    async def test_shutdown_cancels_everything(self, harness: Harness) -> None:
        # Given
        harness.versions.update({"a": 1, "b": 1})
        harness.gate = asyncio.Event()
        harness.scheduler.start("a")
        harness.scheduler.schedule("b")
        harness.scheduler.schedule_dependents("a")
        await asyncio.sleep(0)

        # When
        await harness.scheduler.shutdown()

        # Then
        assert harness.tokens[0].cancelled
        assert not _busy(harness.scheduler, "a")
        assert not _busy(harness.scheduler, "b")
        await asyncio.sleep(SETTLE)
        assert harness.runs == [("a", 1)]
        assert harness.published == []
