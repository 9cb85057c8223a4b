# Core Cryptography Module
"""
Hashing primitives used by the chain:
- SHA-256 digests (bytes and hex)
"""
