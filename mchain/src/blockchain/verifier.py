"""
Chain Verifier

Walks a sequence of blocks from genesis and reports the first broken
invariant. A broken chain is an ordinary result, not an exception:
everything after the first break is anchored on an untrusted link, so
the walk stops there.

Checks per block, in order:
1. Index: genesis is 0, each later block is previous + 1
2. Linkage: previous_hash matches the prior block's hash
   (the sentinel for genesis)
3. Self-consistency: the stored hash matches the recomputed hash
4. Proof of work: the stored hash meets the difficulty
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .exceptions import IntegrityError, InvalidArgument
from .ledger import Block, ProofOfWork, GENESIS_PREV_HASH


logger = logging.getLogger("mchain.verifier")


class FailureKind(Enum):
    """Which invariant a block broke."""
    INDEX_GAP = "index_gap"
    LINKAGE = "linkage"
    SELF_CONSISTENCY = "self_consistency"
    PROOF_OF_WORK = "proof_of_work"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verifying a chain."""
    valid: bool
    blocks_checked: int
    failure_index: Optional[int] = None
    failure_kind: Optional[FailureKind] = None
    message: str = ""

    @classmethod
    def ok(cls, blocks_checked: int) -> 'VerificationResult':
        return cls(valid=True, blocks_checked=blocks_checked,
                   message=f"Chain valid ({blocks_checked} blocks)")

    @classmethod
    def failed(
        cls,
        blocks_checked: int,
        index: int,
        kind: FailureKind,
        message: str
    ) -> 'VerificationResult':
        return cls(
            valid=False,
            blocks_checked=blocks_checked,
            failure_index=index,
            failure_kind=kind,
            message=message,
        )

    def raise_for_failure(self) -> None:
        """Raise IntegrityError if the chain is broken."""
        if not self.valid:
            raise IntegrityError(self.message, index=self.failure_index,
                                 kind=self.failure_kind)

    def __bool__(self) -> bool:
        return self.valid

    def __str__(self) -> str:
        if self.valid:
            return self.message
        return f"Chain broken at block {self.failure_index}: {self.message}"


def _check_block(
    block: Block,
    position: int,
    prev: Optional[Block],
    pow: Optional[ProofOfWork]
) -> Optional[VerificationResult]:
    """Return a failure result for block, or None if it passes."""
    expected_index = 0 if prev is None else prev.index + 1
    if block.index != expected_index:
        return VerificationResult.failed(
            position, block.index, FailureKind.INDEX_GAP,
            f"Invalid index: expected {expected_index}, got {block.index}"
        )

    expected_prev = GENESIS_PREV_HASH if prev is None else prev.hash
    if block.previous_hash != expected_prev:
        return VerificationResult.failed(
            position, block.index, FailureKind.LINKAGE,
            "Previous hash mismatch"
        )

    if block.compute_hash() != block.hash:
        return VerificationResult.failed(
            position, block.index, FailureKind.SELF_CONSISTENCY,
            "Block hash mismatch"
        )

    # Per-block difficulty unless a uniform policy was given
    if pow is not None:
        checker = pow
    else:
        try:
            checker = ProofOfWork(block.difficulty)
        except InvalidArgument:
            return VerificationResult.failed(
                position, block.index, FailureKind.PROOF_OF_WORK,
                f"Recorded difficulty is invalid: {block.difficulty!r}"
            )
    if block.nonce < 0:
        return VerificationResult.failed(
            position, block.index, FailureKind.PROOF_OF_WORK,
            f"Nonce must be non-negative, got {block.nonce}"
        )
    if not checker.hash_meets_target(block.hash):
        return VerificationResult.failed(
            position, block.index, FailureKind.PROOF_OF_WORK,
            f"Block does not meet difficulty target ({checker.difficulty}): "
            f"hash has {checker.count_leading_zeros(block.hash)} leading zeros"
        )

    return None


def verify_chain(
    blocks: Sequence[Block],
    difficulty: Optional[int] = None
) -> VerificationResult:
    """
    Verify a chain of blocks.

    Args:
        blocks: Blocks ordered by index, starting at genesis
        difficulty: Apply this difficulty to every block instead of
            the difficulty each block recorded when it was mined

    Returns:
        VerificationResult; valid for an empty sequence

    Raises:
        InvalidArgument: If difficulty is out of range
    """
    pow = ProofOfWork(difficulty) if difficulty is not None else None

    prev = None
    for position, block in enumerate(blocks):
        failure = _check_block(block, position, prev, pow)
        if failure is not None:
            logger.warning("Chain broken at block %d: %s", block.index, failure.message)
            return failure
        prev = block

    logger.debug("Verified %d blocks", len(blocks))
    return VerificationResult.ok(len(blocks))
