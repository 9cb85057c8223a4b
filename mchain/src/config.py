"""
Runtime configuration.

Defaults mirror the original miner's command-line defaults. Each value
can be overridden through the environment; command-line flags in turn
override the environment.

Environment:
    MCHAIN_DATA_DIR             directory for block records
    MCHAIN_DIFFICULTY           default leading-zero difficulty
    MCHAIN_SKIP_PLATFORM_CHECK  "1"/"true"/"yes" disables the Apple Silicon gate
    MCHAIN_LOG_LEVEL            logging level name (INFO, DEBUG, ...)
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .blockchain.exceptions import InvalidArgument
from .blockchain.ledger import DEFAULT_DIFFICULTY, MAX_DIFFICULTY


DEFAULT_DATA_DIR = "mchain_data"
DEFAULT_BLOCKS = 5
DEFAULT_DATA = "MChain data"
DEFAULT_LOG_LEVEL = "INFO"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise InvalidArgument(f"{name} must be a boolean, got {value!r}")


@dataclass(frozen=True)
class ChainConfig:
    """Settings shared by the CLI and the chain service."""
    data_dir: str = DEFAULT_DATA_DIR
    difficulty: int = DEFAULT_DIFFICULTY
    skip_platform_check: bool = False
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ChainConfig':
        """
        Build a config from environment variables.

        Raises:
            InvalidArgument: If a variable holds a malformed value
        """
        env = os.environ if environ is None else environ

        difficulty = DEFAULT_DIFFICULTY
        raw = env.get("MCHAIN_DIFFICULTY")
        if raw is not None:
            try:
                difficulty = int(raw)
            except ValueError:
                raise InvalidArgument(f"MCHAIN_DIFFICULTY must be an integer, got {raw!r}") from None
            if not 0 <= difficulty <= MAX_DIFFICULTY:
                raise InvalidArgument(
                    f"MCHAIN_DIFFICULTY must be between 0 and {MAX_DIFFICULTY}, got {difficulty}"
                )

        log_level = env.get("MCHAIN_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise InvalidArgument(f"MCHAIN_LOG_LEVEL is not a logging level: {log_level!r}")

        return cls(
            data_dir=env.get("MCHAIN_DATA_DIR", DEFAULT_DATA_DIR),
            difficulty=difficulty,
            skip_platform_check=_parse_bool(
                "MCHAIN_SKIP_PLATFORM_CHECK", env.get("MCHAIN_SKIP_PLATFORM_CHECK", "")
            ),
            log_level=log_level,
        )
