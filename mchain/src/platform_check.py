"""
Platform gate.

MChain mining is only allowed on Apple Silicon. The check runs once at
process start-up, before any chain operation; the chain code itself has
no platform dependency.
"""

import logging
import subprocess
from typing import Callable, Optional


logger = logging.getLogger("mchain.platform")

APPLE_SILICON_MARKER = "Apple M"
REFUSAL_MESSAGE = "MChain mining is only allowed on Apple Silicon."


def read_cpu_brand() -> Optional[str]:
    """
    Ask sysctl for the CPU brand string.

    Returns:
        The brand string, or None if sysctl is unavailable or fails
    """
    try:
        completed = subprocess.run(
            ["sysctl", "-n", "machdep.cpu.brand_string"],
            capture_output=True,
            text=True,
            check=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("sysctl unavailable: %s", e)
        return None
    return completed.stdout.strip()


def is_apple_silicon(read_brand: Callable[[], Optional[str]] = read_cpu_brand) -> bool:
    """True if the CPU brand string identifies an Apple M-series chip."""
    brand = read_brand()
    return brand is not None and APPLE_SILICON_MARKER in brand


class UnsupportedPlatform(Exception):
    """Raised when the start-up platform check fails."""
    pass


def require_supported_platform(
    read_brand: Callable[[], Optional[str]] = read_cpu_brand
) -> None:
    """
    Start-up assertion for the CLI.

    Raises:
        UnsupportedPlatform: If not running on Apple Silicon
    """
    if not is_apple_silicon(read_brand):
        raise UnsupportedPlatform(REFUSAL_MESSAGE)
