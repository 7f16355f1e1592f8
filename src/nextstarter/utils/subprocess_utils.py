"""Subprocess utilities for running commands."""

from __future__ import annotations

import logging
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from ..errors import CommandError

logger = logging.getLogger(__name__)


def run(command: List[str], cwd: Optional[Path] = None) -> None:
    """Run a command and stream output to stdout."""
    logger.debug("Running: %s", " ".join(command))
    try:
        process = subprocess.Popen(
            command,
            cwd=str(cwd) if cwd else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except OSError as e:
        raise CommandError(command, 127, str(e)) from e
    assert process.stdout is not None
    for line in process.stdout:
        sys.stdout.write(line)
    code = process.wait()
    if code:
        raise CommandError(command, code)


def command_output(command: List[str], cwd: Optional[Path] = None) -> str:
    """Run a command and return its stripped stdout."""
    return run_command(command, cwd=cwd).stdout.strip()


def run_command(
    cmd: List[str], cwd: Optional[Path] = None
) -> subprocess.CompletedProcess[str]:
    """Run a command, capturing output, and return the result."""
    logger.debug("Running: %s", " ".join(cmd))
    try:
        return subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        raise CommandError(cmd, e.returncode, (e.stderr or e.stdout or "")) from e
    except OSError as e:
        raise CommandError(cmd, 127, str(e)) from e
