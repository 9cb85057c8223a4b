# Storage Module
"""
File-backed block storage:
- One JSON record per block, keyed by index
- Atomic appends (temp file + rename)
- Idempotent reset
"""

# Lazy imports to avoid RuntimeWarning when running module directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    from . import chain_store
    return getattr(chain_store, name)

__all__ = [
    'ChainStore',
    'RECORD_PATTERN',
]
