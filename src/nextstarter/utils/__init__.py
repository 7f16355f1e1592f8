"""Utility modules for nextstarter."""

from .console import console
from .platform import PlatformOps, get_platform_ops
from .subprocess_utils import command_output, run, run_command

__all__ = [
    "console",
    "PlatformOps",
    "get_platform_ops",
    "command_output",
    "run",
    "run_command",
]
