"""
Chain Service Module

Ties the miner, the store and the verifier together behind the four
operations the command line exposes:

- mine:   resume from the stored tip and mine N more blocks
- verify: load every stored block and verify the chain
- list:   load every stored block
- reset:  delete every stored block

Each mined block is written as soon as its nonce search finishes, so
an interrupted run keeps every block it completed and nothing partial.

Author: MChain Project
"""

import logging
import time
from typing import Callable, List, Optional, Sequence, Union
from pathlib import Path

from ..blockchain.exceptions import InvalidArgument
from ..blockchain.ledger import Block, DifficultySchedule, mine_block, DEFAULT_DIFFICULTY
from ..blockchain.verifier import VerificationResult, verify_chain
from ..storage.chain_store import ChainStore


logger = logging.getLogger("mchain.service")


class ChainService:
    """
    Single-writer front end over a ChainStore.

    Only one service instance should operate on a data directory at a time.
    """

    def __init__(
        self,
        store: ChainStore,
        clock: Callable[[], float] = time.time
    ):
        """
        Args:
            store: Block storage
            clock: Timestamp source for new blocks
        """
        self._store = store
        self._clock = clock

    @property
    def store(self) -> ChainStore:
        return self._store

    # ========================================================================
    # Operations
    # ========================================================================

    def mine(
        self,
        count: int,
        difficulty: int = DEFAULT_DIFFICULTY,
        data: str = "",
        ramp_every: int = 0,
        max_nonce: Optional[int] = None
    ) -> List[Block]:
        """
        Mine count blocks on top of the stored chain.

        An empty store starts with the genesis block. Difficulty is
        taken per block from a DifficultySchedule(difficulty, ramp_every).

        Args:
            count: Number of blocks to mine (0 mines nothing)
            difficulty: Base difficulty
            data: Payload stored in every mined block
            ramp_every: Add one zero every ramp_every blocks (0 = flat)
            max_nonce: Optional per-block search limit

        Returns:
            The newly mined blocks, in order

        Raises:
            InvalidArgument: If count, difficulty or ramp_every is invalid
            StorageError: If loading or appending fails
        """
        if not isinstance(count, int) or count < 0:
            raise InvalidArgument(f"Block count must be a non-negative integer, got {count!r}")
        schedule = DifficultySchedule(difficulty, ramp_every)

        tip = self._store.tip()
        if tip is None:
            logger.info("No existing chain found, creating genesis block")
        else:
            logger.info("Resuming chain at block %d", tip.index)

        mined = []
        for _ in range(count):
            next_index = 0 if tip is None else tip.index + 1
            block = mine_block(
                tip, data, schedule.for_index(next_index),
                clock=self._clock, max_nonce=max_nonce
            )
            self._store.append(block)
            mined.append(block)
            tip = block

        return mined

    def verify(self, difficulty: Optional[int] = None) -> VerificationResult:
        """
        Verify the stored chain.

        Args:
            difficulty: Uniform difficulty policy; None uses each
                block's recorded difficulty

        Raises:
            StorageError: If a record cannot be loaded
        """
        result = verify_chain(self._store.load(), difficulty)
        logger.info("Verification: %s", result)
        return result

    def list(self) -> List[Block]:
        """All stored blocks, ordered by index."""
        return self._store.load()

    def reset(self) -> int:
        """Delete all stored blocks; returns how many were removed."""
        return self._store.reset()

    # ========================================================================
    # Reporting
    # ========================================================================

    @staticmethod
    def summary(blocks: Sequence[Block]) -> List[str]:
        """Summary lines for a sequence of blocks, one per block."""
        return [str(block) for block in blocks]


# ============================================================================
# Convenience Functions
# ============================================================================

def create_chain_service(data_dir: Union[str, Path]) -> ChainService:
    """Create a service over a directory-backed store."""
    return ChainService(ChainStore(data_dir))
