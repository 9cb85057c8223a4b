# Blockchain Module
"""
Proof-of-work chain core including:
- Immutable blocks with a fixed canonical encoding
- SHA-256 chaining
- Leading-zero difficulty target
- Chain verification that stops at the first broken block
"""

# Lazy imports to avoid RuntimeWarning when running module directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    from . import exceptions, ledger, verifier
    for module in (ledger, verifier, exceptions):
        if hasattr(module, name):
            return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    'Block',
    'ProofOfWork',
    'DifficultySchedule',
    'mine_block',
    'canonical_bytes',
    'compute_block_hash',
    'verify_chain',
    'VerificationResult',
    'FailureKind',
    'ChainError',
    'StorageError',
    'RecordExistsError',
    'IntegrityError',
    'InvalidArgument',
    'MiningExhausted',
    'GENESIS_PREV_HASH',
    'DEFAULT_DIFFICULTY',
    'MAX_DIFFICULTY',
]
