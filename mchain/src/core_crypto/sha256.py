"""
SHA-256 Hasher

Thin, stateless wrappers around the SHA-256 implementation in the
`cryptography` package. Every block hash in the chain goes through
these functions, so they must stay deterministic and total over any
byte sequence.
"""

from cryptography.hazmat.primitives import hashes


DIGEST_SIZE = 32  # bytes
HEX_DIGEST_LENGTH = DIGEST_SIZE * 2


def sha256(data: bytes) -> bytes:
    """
    Compute the SHA-256 digest of data.

    Args:
        data: Input bytes (any length, including empty)

    Returns:
        32-byte digest
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize()


def sha256_hex(data: bytes) -> str:
    """
    Compute SHA-256 and return it as a lowercase hex string.

    Args:
        data: Input bytes

    Returns:
        64-character hex string
    """
    return sha256(data).hex()
