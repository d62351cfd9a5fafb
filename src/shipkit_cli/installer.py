"""Dependency installation for a freshly extracted project."""

import subprocess
import sys
import threading
from pathlib import Path
from typing import Callable, Dict, IO, Optional

from .errors import InstallError


INSTALL_COMMANDS: Dict[str, str] = {
    "bun": "bun install",
    "npm": "npm install",
    "pnpm": "pnpm install",
    "yarn": "yarn",
}


def resolve_install_command(manager: str) -> str:
    try:
        return INSTALL_COMMANDS[manager]
    except KeyError:
        available = ", ".join(INSTALL_COMMANDS)
        raise InstallError(f"Unknown package manager '{manager}'. Choose from: {available}")


def _print_stderr(line: str) -> None:
    print(line, file=sys.stderr)


def _relay_lines(stream: IO[str], relay: Callable[[str], None]) -> None:
    for line in stream:
        relay(line.rstrip("\r\n"))


def install_dependencies(
    project_path: Path,
    manager: str,
    *,
    on_output: Optional[Callable[[str], None]] = None,
    on_error: Optional[Callable[[str], None]] = None,
) -> None:
    """Run the package manager's install command inside ``project_path``.

    Stdout lines go to ``on_output`` and stderr lines to ``on_error`` as the
    process writes them. Output is decoded as UTF-8; undecodable bytes are
    replaced, so only the exit status decides success.

    Raises:
        InstallError: Unknown manager, the shell could not be started, or
            the command exited non-zero
    """
    command = resolve_install_command(manager)
    if on_output is None:
        on_output = print
    if on_error is None:
        on_error = _print_stderr

    try:
        process = subprocess.Popen(
            command,
            shell=True,
            cwd=project_path,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
    except OSError as e:
        raise InstallError(f"Could not run '{command}': {e}") from e

    with process:
        # stderr is drained on its own thread while stdout is read here
        stderr_reader = threading.Thread(target=_relay_lines, args=(process.stderr, on_error), daemon=True)
        stderr_reader.start()
        _relay_lines(process.stdout, on_output)
        stderr_reader.join()
        returncode = process.wait()

    if returncode != 0:
        raise InstallError(
            f"'{command}' failed with exit code {returncode}",
            returncode=returncode,
        )
