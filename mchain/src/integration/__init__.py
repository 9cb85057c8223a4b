# Integration Module
"""
Service layer that connects the miner, the block store and the verifier
behind the mine / verify / list / reset operations.
"""

# Lazy imports to avoid RuntimeWarning when running module directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    from . import chain_service
    return getattr(chain_service, name)

__all__ = [
    'ChainService',
    'create_chain_service',
]
