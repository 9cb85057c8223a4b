"""
Blockchain Ledger Module

Implements the block model and the proof-of-work miner:
- Immutable blocks (frozen dataclass)
- Fixed canonical encoding of the hashed fields
- SHA-256 chaining via previous_hash
- Leading-zero hex difficulty target
- Optional difficulty ramp across the chain

Canonical encoding:
    The hash input is the UTF-8 encoding of the compact JSON array
    [index,timestamp,data,previous_hash,nonce]. Field order is fixed and
    JSON quoting keeps the field boundaries unambiguous, so any
    implementation can recompute a block hash from a stored record.
    difficulty and mining_duration_ms are stored but not hashed.

Author: MChain Project
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from ..core_crypto.sha256 import sha256_hex, HEX_DIGEST_LENGTH
from .exceptions import InvalidArgument, MiningExhausted


logger = logging.getLogger("mchain.miner")


# ============================================================================
# Constants
# ============================================================================

GENESIS_PREV_HASH = "0" * HEX_DIGEST_LENGTH  # Sentinel for the genesis block
DEFAULT_DIFFICULTY = 4  # Leading zero hex characters required
MAX_DIFFICULTY = HEX_DIGEST_LENGTH  # A 64-char digest has at most 64 zeros


# ============================================================================
# Canonical Encoding
# ============================================================================

def canonical_bytes(
    index: int,
    timestamp: int,
    data: str,
    previous_hash: str,
    nonce: int
) -> bytes:
    """Encode the hashed block fields in their fixed canonical form."""
    return json.dumps(
        [index, timestamp, data, previous_hash, nonce],
        separators=(',', ':'),
        ensure_ascii=False,
    ).encode('utf-8')


def compute_block_hash(
    index: int,
    timestamp: int,
    data: str,
    previous_hash: str,
    nonce: int
) -> str:
    """Compute the hex SHA-256 hash of a block's canonical encoding."""
    return sha256_hex(canonical_bytes(index, timestamp, data, previous_hash, nonce))


# ============================================================================
# Block Structure (Immutable)
# ============================================================================

@dataclass(frozen=True)
class Block:
    """
    Immutable block structure for the chain.

    A block is created once by the miner and never modified afterwards;
    tampering can only be simulated by building a new instance.
    """
    index: int
    timestamp: int
    data: str
    previous_hash: str
    nonce: int
    hash: str
    difficulty: int = 0
    mining_duration_ms: int = 0

    @property
    def is_genesis(self) -> bool:
        return self.index == 0

    def canonical_bytes(self) -> bytes:
        """Canonical encoding of this block's hashed fields."""
        return canonical_bytes(
            self.index, self.timestamp, self.data, self.previous_hash, self.nonce
        )

    def compute_hash(self) -> str:
        """Recompute the hash from the block's current field values."""
        return sha256_hex(self.canonical_bytes())

    def to_dict(self) -> Dict[str, Any]:
        """Convert block to dictionary for serialization."""
        return {
            'index': self.index,
            'timestamp': self.timestamp,
            'data': self.data,
            'previous_hash': self.previous_hash,
            'nonce': self.nonce,
            'hash': self.hash,
            'difficulty': self.difficulty,
            'mining_duration_ms': self.mining_duration_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Block':
        """
        Create block from dictionary.

        Raises:
            KeyError: If a required field is missing
            TypeError: If a field has the wrong type
            ValueError: If index or nonce is negative, or the recorded
                difficulty is out of range
        """
        ints = ('index', 'timestamp', 'nonce')
        strs = ('data', 'previous_hash', 'hash')
        for name in ints:
            value = data[name]
            # bool is an int subclass but never a valid field value
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"Field '{name}' must be an integer")
        for name in strs:
            if not isinstance(data[name], str):
                raise TypeError(f"Field '{name}' must be a string")
        for name in ('index', 'nonce'):
            if data[name] < 0:
                raise ValueError(f"Field '{name}' must be non-negative: {data[name]}")

        difficulty = data.get('difficulty', 0)
        duration = data.get('mining_duration_ms', 0)
        for name, value in (('difficulty', difficulty), ('mining_duration_ms', duration)):
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"Field '{name}' must be an integer")
        if not 0 <= difficulty <= MAX_DIFFICULTY:
            raise ValueError(f"Field 'difficulty' out of range: {difficulty}")

        return cls(
            index=data['index'],
            timestamp=data['timestamp'],
            data=data['data'],
            previous_hash=data['previous_hash'],
            nonce=data['nonce'],
            hash=data['hash'],
            difficulty=difficulty,
            mining_duration_ms=duration,
        )

    def __str__(self) -> str:
        return (
            f"Block {self.index} | Nonce: {self.nonce} | "
            f"Difficulty: {self.difficulty} | Time: {self.mining_duration_ms}ms | "
            f"Hash: {self.hash}"
        )


# ============================================================================
# Proof of Work
# ============================================================================

def _check_difficulty(difficulty: int) -> int:
    if not isinstance(difficulty, int) or isinstance(difficulty, bool):
        raise InvalidArgument(f"Difficulty must be an integer, got {difficulty!r}")
    if not 0 <= difficulty <= MAX_DIFFICULTY:
        raise InvalidArgument(
            f"Difficulty must be between 0 and {MAX_DIFFICULTY}, got {difficulty}"
        )
    return difficulty


class ProofOfWork:
    """
    Proof of Work with a leading-zero target.

    Difficulty N means the hex-encoded hash must begin with N '0'
    characters. Each extra zero multiplies the expected work by 16.
    Difficulty 0 accepts any hash.
    """

    def __init__(self, difficulty: int = DEFAULT_DIFFICULTY):
        """
        Initialize PoW with given difficulty.

        Args:
            difficulty: Number of leading zero hex characters (0-64)

        Raises:
            InvalidArgument: If difficulty is out of range
        """
        self.difficulty = _check_difficulty(difficulty)
        self._prefix = "0" * difficulty

    @property
    def prefix(self) -> str:
        """The required hash prefix."""
        return self._prefix

    def hash_meets_target(self, hash_hex: str) -> bool:
        """Check if a hex hash meets the difficulty target."""
        return hash_hex.startswith(self._prefix)

    @staticmethod
    def count_leading_zeros(hash_hex: str) -> int:
        """Count leading zero hex characters in a hash."""
        return len(hash_hex) - len(hash_hex.lstrip('0'))

    def search(
        self,
        index: int,
        timestamp: int,
        data: str,
        previous_hash: str,
        max_nonce: Optional[int] = None
    ) -> Tuple[int, str]:
        """
        Search for the first nonce whose hash meets the target.

        With max_nonce=None the search is unbounded. A difficulty far above
        what the hardware can reach will keep this loop running until the
        process is interrupted; callers choose the difficulty.

        Args:
            index: Block index
            timestamp: Block timestamp
            data: Block payload
            previous_hash: Hash of the previous block
            max_nonce: Optional number of nonces to try before giving up

        Returns:
            Tuple of (nonce, hash)

        Raises:
            MiningExhausted: If max_nonce is given and no nonce below it works
        """
        nonce = 0
        while max_nonce is None or nonce < max_nonce:
            block_hash = compute_block_hash(index, timestamp, data, previous_hash, nonce)
            if block_hash.startswith(self._prefix):
                return nonce, block_hash
            nonce += 1

        raise MiningExhausted(
            f"Failed to find valid nonce after {max_nonce} attempts"
        )


class DifficultySchedule:
    """
    Difficulty to use for each block index.

    With ramp_every=0 every block uses the base difficulty. Otherwise the
    target grows by one zero every ramp_every blocks: base + index // ramp_every.
    """

    def __init__(self, base: int = DEFAULT_DIFFICULTY, ramp_every: int = 0):
        self.base = _check_difficulty(base)
        if not isinstance(ramp_every, int) or ramp_every < 0:
            raise InvalidArgument(f"ramp_every must be a non-negative integer, got {ramp_every!r}")
        self.ramp_every = ramp_every

    def for_index(self, index: int) -> int:
        if self.ramp_every == 0:
            return self.base
        return min(self.base + index // self.ramp_every, MAX_DIFFICULTY)


# ============================================================================
# Miner
# ============================================================================

def mine_block(
    previous: Optional[Block],
    data: str,
    difficulty: int,
    clock: Callable[[], float] = time.time,
    max_nonce: Optional[int] = None
) -> Block:
    """
    Mine the block that follows previous (or the genesis block).

    Pure computation: the returned block is not persisted.

    Args:
        previous: The current tip, or None to mine the genesis block
        data: Block payload
        difficulty: Leading zero hex characters required
        clock: Source of the block timestamp
        max_nonce: Optional search limit (unbounded by default)

    Returns:
        The newly mined block
    """
    pow = ProofOfWork(difficulty)

    if previous is None:
        index = 0
        previous_hash = GENESIS_PREV_HASH
    else:
        index = previous.index + 1
        previous_hash = previous.hash
    timestamp = int(clock())

    logger.debug("Mining block %d at difficulty %d", index, difficulty)
    start = time.perf_counter()
    nonce, block_hash = pow.search(index, timestamp, data, previous_hash, max_nonce)
    elapsed_ms = int((time.perf_counter() - start) * 1000)

    logger.info(
        "Block %d mined in %d ms! Nonce: %d, Hash: %s",
        index, elapsed_ms, nonce, block_hash
    )

    return Block(
        index=index,
        timestamp=timestamp,
        data=data,
        previous_hash=previous_hash,
        nonce=nonce,
        hash=block_hash,
        difficulty=difficulty,
        mining_duration_ms=elapsed_ms,
    )
