"""Logging, exit codes and shared helpers"""

from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import IO, TypeGuard

from rich.console import Console
from rich.markup import escape

console = Console()
console_err = Console(stderr=True)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class ExitCode(IntEnum):
    """Process exit codes, one per pipeline stage"""

    OK = 0
    INPUT = 10
    SOURCE = 20
    NO_BUILD_DEFINITION = 21
    CONNECT = 30
    PREPARE = 40
    SYNC = 45
    BUILD = 50
    PROXY = 51
    VALIDATE = 60
    INTERRUPTED = 130


class DeployError(Exception):
    """Fatal pipeline failure carrying the exit code of the failing stage"""

    def __init__(self, message: str, exit_code: ExitCode):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class Logger:
    """Simple logger with colored output and an optional log file"""

    def __init__(self):
        self._file: IO[str] | None = None
        self.path: Path | None = None
        self.verbose = False

    def open_logfile(self, path: Path):
        """Start appending timestamped lines to path"""
        self.close()
        path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(path, "a", encoding="utf-8")
        self.path = path

    def close(self):
        if self._file is not None:
            self._file.close()
            self._file = None

    def _write(self, level: str, msg: str):
        if self._file is None:
            return
        stamp = datetime.now().strftime(TIMESTAMP_FORMAT)
        self._file.write(f"{stamp} [{level}] {msg}\n")
        self._file.flush()

    def info(self, msg: str):
        console.print(f"[blue][INFO][/blue] {escape(msg)}")
        self._write("INFO", msg)

    def success(self, msg: str):
        console.print(f"[green][SUCCESS][/green] {escape(msg)}")
        self._write("SUCCESS", msg)

    def warn(self, msg: str):
        console.print(f"[yellow][WARN][/yellow] {escape(msg)}")
        self._write("WARN", msg)

    def error(self, msg: str):
        console_err.print(f"[red][ERROR][/red] {escape(msg)}")
        self._write("ERROR", msg)

    def capture(self, text: str):
        """Record raw command output in the log file"""
        if not text:
            return
        if self.verbose:
            console.print(escape(text.rstrip("\n")), style="dim")
        if self._file is not None:
            self._file.write(text if text.endswith("\n") else text + "\n")
            self._file.flush()


# Global logger instance
logger = Logger()


def is_non_empty_str(value: str | None) -> TypeGuard[str]:
    """Type guard that checks if value is a non-empty string.

    Args:
        value: The value to check

    Returns:
        True if value is a non-None, non-empty string
    """
    return value is not None and value != ""
