"""
Error types raised by the chain, its store and its miner.

Verification failures are normally reported as a VerificationResult;
IntegrityError exists for callers that prefer exception flow.
"""

from typing import Optional


class ChainError(Exception):
    """Base class for all MChain errors."""
    pass


class InvalidArgument(ChainError, ValueError):
    """Raised for out-of-range inputs such as a negative difficulty."""
    pass


class StorageError(ChainError):
    """Raised when a block record cannot be read or written."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class RecordExistsError(StorageError):
    """Raised when appending a block whose index is already stored."""
    pass


class IntegrityError(ChainError):
    """Raised when a verified chain is broken."""

    def __init__(self, message: str, index: Optional[int] = None, kind=None):
        super().__init__(message)
        self.index = index
        self.kind = kind


class MiningExhausted(ChainError, RuntimeError):
    """Raised when an explicit nonce limit is reached without a valid hash."""
    pass
