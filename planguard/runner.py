"""Subprocess runner for the terraform binary."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Mapping

logger = logging.getLogger(__name__)

COMMAND_NOT_FOUND = 127


@dataclass
class RunCommandResult:
    """Outcome of one external command invocation."""

    code: int | None
    signal: str | None
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.code == 0


def _byte_stream(stream: IO[str]) -> IO[bytes] | None:
    return getattr(stream, "buffer", None)


def _pump(src: IO[bytes], sink: list[bytes], echo: IO[bytes] | None) -> None:
    for chunk in iter(lambda: src.read1(8192), b""):  # type: ignore[attr-defined]
        sink.append(chunk)
        if echo is not None:
            echo.write(chunk)
            echo.flush()
    src.close()


def run_command(
    cmd: str,
    args: list[str],
    *,
    cwd: Path | str,
    env: Mapping[str, str] | None = None,
    inherit_stdout: bool = False,
    inherit_stderr: bool = False,
) -> RunCommandResult:
    """Run ``cmd`` with ``args`` in ``cwd`` and capture both output streams.

    When ``inherit_stdout``/``inherit_stderr`` is set the stream is also copied to
    this process's own stdout/stderr while the command runs. ``env`` overlays the
    current environment. A missing executable is reported as exit code 127 rather
    than raised.
    """
    full_env = {**os.environ, **(env or {})}
    logger.debug("exec %s %s (cwd=%s)", cmd, " ".join(args), cwd)
    try:
        proc = subprocess.Popen(
            [cmd, *args],
            cwd=str(cwd),
            env=full_env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except FileNotFoundError:
        return RunCommandResult(
            code=COMMAND_NOT_FOUND,
            signal=None,
            stdout="",
            stderr=f"{cmd}: command not found",
        )

    out_chunks: list[bytes] = []
    err_chunks: list[bytes] = []
    readers = [
        threading.Thread(
            target=_pump,
            args=(proc.stdout, out_chunks, _byte_stream(sys.stdout) if inherit_stdout else None),
            daemon=True,
        ),
        threading.Thread(
            target=_pump,
            args=(proc.stderr, err_chunks, _byte_stream(sys.stderr) if inherit_stderr else None),
            daemon=True,
        ),
    ]
    for t in readers:
        t.start()
    returncode = proc.wait()
    for t in readers:
        t.join()

    code: int | None = returncode
    sig: str | None = None
    if returncode < 0:
        code = None
        try:
            sig = signal.Signals(-returncode).name
        except ValueError:
            sig = str(-returncode)

    return RunCommandResult(
        code=code,
        signal=sig,
        stdout=b"".join(out_chunks).decode("utf-8", errors="replace"),
        stderr=b"".join(err_chunks).decode("utf-8", errors="replace"),
    )


def run_terraform(
    args: list[str],
    cwd: Path | str,
    *,
    inherit: bool = False,
    binary: str = "terraform",
) -> RunCommandResult:
    """Run a terraform subcommand, optionally streaming its output."""
    return run_command(
        binary,
        args,
        cwd=cwd,
        inherit_stdout=inherit,
        inherit_stderr=inherit,
    )
