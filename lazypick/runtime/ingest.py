"""External-process item ingest.

Each spawned command gets one daemon reader thread that accumulates stdout
and, at end of stream, posts a completed result to a queue. The session
drains that queue from its own loop, so item state is only ever touched on
the session side.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from queue import Empty, Queue

from ..config import PickerConfigError

log = logging.getLogger(__name__)

READ_CHUNK_BYTES = 64 * 1024


def cli_postprocess(lines: list[str]) -> list[str]:
    """Drop trailing empty entries left by the final newline."""
    while lines and lines[-1] == "":
        lines.pop()
    return lines


def require_executable(command: Sequence[str]) -> str:
    """Resolve the executable of ``command`` or raise :class:`PickerConfigError`."""
    if not command or not all(isinstance(part, str) for part in command):
        raise PickerConfigError("`command` should be a non-empty list of strings.")
    resolved = shutil.which(command[0])
    if resolved is None:
        raise PickerConfigError(f"executable not found: {command[0]!r}")
    return resolved


class IngestHandle:
    """One spawned process and its accumulated output."""

    def __init__(
        self,
        command: list[str],
        tick: int | None,
        postprocess: Callable[[list[str]], list[str]],
        ok_returncodes: tuple[int, ...] = (0,),
    ) -> None:
        self.command = command
        self.tick = tick
        self.postprocess = postprocess
        self.ok_returncodes = ok_returncodes
        self.process: subprocess.Popen[bytes] | None = None
        self.killed = False
        self.done = threading.Event()
        self._chunks: list[bytes] = []

    @property
    def pid(self) -> int | None:
        return None if self.process is None else self.process.pid

    @property
    def running(self) -> bool:
        return not self.done.is_set()

    def kill(self) -> None:
        """Stop the process if it is still running; its result will be dropped."""
        self.killed = True
        process = self.process
        if process is None or process.poll() is not None:
            return
        try:
            process.kill()
        except OSError:
            pass


@dataclass(frozen=True)
class IngestResult:
    handle: IngestHandle
    lines: list[str]
    returncode: int | None
    error: str | None


class ProcessIngest:
    """Spawn commands and collect their newline-delimited stdout."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handles: list[IngestHandle] = []
        self._results: Queue[IngestResult] = Queue()

    def spawn(
        self,
        command: Sequence[str],
        *,
        tick: int | None = None,
        cwd: Path | None = None,
        postprocess: Callable[[list[str]], list[str]] | None = None,
        ok_returncodes: tuple[int, ...] = (0,),
    ) -> IngestHandle:
        """Start ``command`` and stream its stdout in the background.

        Exit codes outside ``ok_returncodes`` are reported as errors.

        A missing executable raises :class:`PickerConfigError`. Any other spawn
        failure is reported as a completed result with an error and no lines.
        """
        executable = require_executable(command)
        handle = IngestHandle(list(command), tick, postprocess or cli_postprocess, ok_returncodes)
        with self._lock:
            self._handles.append(handle)

        try:
            handle.process = subprocess.Popen(
                [executable, *command[1:]],
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            log.warning("failed to run %s: %s", command[0], exc)
            self._finish(handle, [], None, f"failed to run {command[0]}: {exc}")
            return handle

        reader = threading.Thread(
            target=self._reader,
            args=(handle,),
            name="lazypick-ingest",
            daemon=True,
        )
        reader.start()
        return handle

    def _reader(self, handle: IngestHandle) -> None:
        process = handle.process
        assert process is not None and process.stdout is not None
        try:
            while True:
                chunk = process.stdout.read1(READ_CHUNK_BYTES)
                if not chunk:
                    break
                handle._chunks.append(chunk)
        except (OSError, ValueError) as exc:
            log.debug("reading output of %s stopped: %s", handle.command[0], exc)
        finally:
            process.stdout.close()
        returncode = process.wait()

        text = b"".join(handle._chunks).decode("utf-8", errors="replace")
        handle._chunks = []
        error = None
        if returncode not in handle.ok_returncodes and not handle.killed:
            error = f"{handle.command[0]} exited with code {returncode}"
        lines = [] if error else handle.postprocess(text.split("\n"))
        self._finish(handle, lines, returncode, error)

    def _finish(self, handle: IngestHandle, lines: list[str], returncode: int | None, error: str | None) -> None:
        result = IngestResult(handle=handle, lines=lines, returncode=returncode, error=error)
        with self._lock:
            if handle in self._handles:
                self._handles.remove(handle)
            self._results.put(result)
        handle.done.set()

    def drain_results(self) -> list[IngestResult]:
        """Drain all completed results."""
        out: list[IngestResult] = []
        while True:
            try:
                out.append(self._results.get_nowait())
            except Empty:
                break
        return out

    def has_pending(self) -> bool:
        with self._lock:
            return bool(self._handles) or not self._results.empty()

    def kill_all(self) -> None:
        with self._lock:
            handles = list(self._handles)
        for handle in handles:
            handle.kill()
