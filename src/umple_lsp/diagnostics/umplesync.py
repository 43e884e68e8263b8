"""Client for the UmpleSync socket server.

UmpleSync (``umplesync.jar -server <port>``) accepts one command line per
connection, compiles the named file and writes its output back before
closing the socket. Compiler diagnostics arrive as a JSON object wrapped in
``ERROR!!`` / ``!!ERROR`` markers.

When nothing is listening the client starts the jar itself, once, as a
detached process and retries the connection a few times while the JVM comes
up.
"""

from __future__ import annotations

import asyncio
import errno
import json
import os
import subprocess
from pathlib import Path
from typing import Any

from umple_lsp.config.constants import UMPLESYNC_ERROR_END, UMPLESYNC_ERROR_START
from umple_lsp.config.models import ValidatorConfig
from umple_lsp.core.cancellation import CancellationToken, run_cancellable
from umple_lsp.core.errors import ValidatorError
from umple_lsp.core.logging import get_logger
from umple_lsp.diagnostics.models import DiagnosticSeverity, RawResult, ValidatorOutput

log = get_logger(__name__)

_CONNECTION_ERRNOS = frozenset({errno.ECONNREFUSED, errno.ECONNRESET, errno.EPIPE, errno.ETIMEDOUT})
_DEFAULT_SEVERITY = 3
_DEFAULT_LINE = 1


# =============================================================================
# Output parsing
# =============================================================================


def split_output(raw: str) -> ValidatorOutput:
    """Separate marker-delimited error segments from ordinary output.

    An opening marker without a closing one runs to the end of *raw*.
    """
    stdout: list[str] = []
    stderr: list[str] = []
    index = 0
    while index < len(raw):
        start = raw.find(UMPLESYNC_ERROR_START, index)
        if start == -1:
            stdout.append(raw[index:])
            break
        stdout.append(raw[index:start])
        body = start + len(UMPLESYNC_ERROR_START)
        end = raw.find(UMPLESYNC_ERROR_END, body)
        if end == -1:
            stderr.append(raw[body:])
            break
        stderr.append(raw[body:end])
        index = end + len(UMPLESYNC_ERROR_END)
    return ValidatorOutput(stdout="".join(stdout), stderr="".join(stderr))


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _to_raw_result(entry: dict[str, Any]) -> RawResult:
    error_code = entry.get("errorCode")
    return RawResult(
        filename=str(entry.get("filename") or ""),
        line=_as_int(entry.get("line"), _DEFAULT_LINE),
        severity=DiagnosticSeverity.from_validator(
            _as_int(entry.get("severity"), _DEFAULT_SEVERITY)
        ),
        error_code=str(error_code) if error_code else None,
        message=str(entry.get("message") or ""),
    )


def parse_results(stderr: str) -> list[RawResult]:
    """Validator records from the error channel.

    The payload is the outermost ``{...}`` object. UmpleSync escapes single
    quotes as ``\\'``, which is not valid JSON, so those are unescaped first.
    Anything malformed yields an empty list.
    """
    text = stderr.strip()
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return []
    try:
        payload = json.loads(text[start : end + 1].replace("\\'", "'"))
    except json.JSONDecodeError as e:
        log.debug("umplesync_payload_malformed", error=str(e))
        return []
    if not isinstance(payload, dict):
        return []
    results = payload.get("results")
    if not isinstance(results, list):
        return []
    return [_to_raw_result(entry) for entry in results if isinstance(entry, dict)]


def format_command(file_path: str | os.PathLike[str]) -> str:
    """Command line asking UmpleSync to check *file_path* without generating code."""
    return f"-generate nothing {json.dumps(os.fspath(file_path))}"


def is_connection_error(error: BaseException) -> bool:
    """True for failures that mean nobody is (yet) listening on the port."""
    if isinstance(error, (ConnectionError, TimeoutError)):
        return True
    return isinstance(error, OSError) and error.errno in _CONNECTION_ERRNOS


# =============================================================================
# Client
# =============================================================================


class UmpleSyncClient:
    """Talks to one UmpleSync server, starting it on demand."""

    def __init__(self, config: ValidatorConfig) -> None:
        self.config = config
        self._server: asyncio.subprocess.Process | None = None
        self._starting: asyncio.Future[None] | None = None

    def ensure_configured(self) -> Path:
        """Path of the jar; raises when it is unset or missing."""
        if not self.config.jar_path:
            raise ValidatorError.not_configured()
        jar = Path(self.config.jar_path).expanduser()
        if not jar.is_file():
            raise ValidatorError.jar_not_found(str(jar))
        return jar

    async def run(
        self,
        file_path: str | os.PathLike[str],
        token: CancellationToken | None = None,
    ) -> ValidatorOutput:
        """Validate *file_path* and return the split server output.

        Raises:
            ValidatorError: The validator could not be run.
            OperationCancelled: *token* was cancelled first.
        """
        jar = self.ensure_configured()
        command = format_command(file_path)
        return await run_cancellable(self._send(jar, command), token)

    async def _send(self, jar: Path, command: str) -> ValidatorOutput:
        try:
            return await self._exchange(command)
        except OSError as e:
            if not is_connection_error(e):
                raise ValidatorError.unreachable(
                    self.config.host, self.config.port, str(e)
                ) from e
            first_error: OSError = e

        await self._ensure_server(jar)

        last_error: OSError = first_error
        for attempt in range(self.config.connect_retries):
            try:
                return await self._exchange(command)
            except OSError as e:
                if not is_connection_error(e):
                    raise ValidatorError.unreachable(
                        self.config.host, self.config.port, str(e)
                    ) from e
                last_error = e
                log.debug("umplesync_retry", attempt=attempt + 1, error=str(e))
                await asyncio.sleep(self.config.retry_delay_sec)

        if isinstance(last_error, TimeoutError):
            raise ValidatorError.timeout(
                self.config.host, self.config.port, self.config.timeout_sec
            ) from last_error
        raise ValidatorError.unreachable(
            self.config.host, self.config.port, str(last_error)
        ) from last_error

    async def _exchange(self, command: str) -> ValidatorOutput:
        return await asyncio.wait_for(self._round_trip(command), timeout=self.config.timeout_sec)

    async def _round_trip(self, command: str) -> ValidatorOutput:
        reader, writer = await asyncio.open_connection(self.config.host, self.config.port)
        try:
            writer.write(command.encode("utf-8"))
            await writer.drain()
            if writer.can_write_eof():
                writer.write_eof()
            raw = await reader.read()
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                log.debug("umplesync_close_failed", error=str(e))
        return split_output(raw.decode("utf-8", errors="replace"))

    async def _ensure_server(self, jar: Path) -> None:
        """Start the server at most once.

        The launch is shielded: a caller cancelled mid-launch leaves it running
        to completion, so the process is always recorded and never doubled.
        """
        if self._server is not None:
            return
        if self._starting is None:
            self._starting = asyncio.ensure_future(self._start_server(jar))
        try:
            await asyncio.shield(self._starting)
        except ValidatorError:
            self._starting = None
            raise

    async def _start_server(self, jar: Path) -> None:
        java = self.config.java
        try:
            self._server = await asyncio.create_subprocess_exec(
                java,
                "-jar",
                str(jar),
                "-server",
                str(self.config.port),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise ValidatorError.java_missing(java, str(e)) from e
        log.info("umplesync_started", pid=self._server.pid, port=self.config.port, jar=str(jar))
