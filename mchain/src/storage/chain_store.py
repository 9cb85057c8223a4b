"""
Chain Store Module

Persists blocks as one pretty-printed JSON file per block:

    <data_dir>/block_<index>.json

Records are field-tagged so they can be inspected by hand, and integers
and hex strings round-trip exactly. Each append writes a temporary file in
the same directory and hard-links it into place, so a record is either
fully written or absent, and an existing record is never overwritten.

Encoding-level problems (unreadable file, bad JSON, missing fields) raise
StorageError. Hash and linkage problems are left to the verifier.

Author: MChain Project
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..blockchain.exceptions import StorageError, RecordExistsError
from ..blockchain.ledger import Block


logger = logging.getLogger("mchain.store")


# ============================================================================
# Constants
# ============================================================================

RECORD_PREFIX = "block_"
RECORD_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"
# Canonical names only, so block_01.json is not read as block 1
RECORD_PATTERN = re.compile(r"^block_(0|[1-9]\d*)\.json$")


class ChainStore:
    """
    Directory of block records, keyed by block index.

    The store assumes it is the only writer; concurrent processes
    appending to the same directory are not coordinated.
    """

    def __init__(self, data_dir: Union[str, Path]):
        """
        Args:
            data_dir: Directory holding the block records (created on first append)
        """
        self._dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._dir

    def path_for(self, index: int) -> Path:
        """Path of the record for a block index."""
        return self._dir / f"{RECORD_PREFIX}{index}{RECORD_SUFFIX}"

    # ========================================================================
    # Reading
    # ========================================================================

    def _record_files(self) -> List[Tuple[int, Path]]:
        """List (index, path) for every record file, ordered by index."""
        if not self._dir.exists():
            return []
        try:
            entries = list(self._dir.iterdir())
        except OSError as e:
            raise StorageError(f"Cannot list {self._dir}: {e}", str(self._dir)) from e

        records = []
        for entry in entries:
            match = RECORD_PATTERN.match(entry.name)
            if match and entry.is_file():
                records.append((int(match.group(1)), entry))
        # Numeric order; block_10 must follow block_9
        records.sort(key=lambda item: item[0])
        return records

    @staticmethod
    def _read_record(index: int, path: Path) -> Block:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                payload = json.load(f)
        except OSError as e:
            raise StorageError(f"Cannot read {path}: {e}", str(path)) from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StorageError(f"Corrupt block record {path}: {e}", str(path)) from e

        if not isinstance(payload, dict):
            raise StorageError(f"Corrupt block record {path}: expected an object", str(path))
        try:
            block = Block.from_dict(payload)
        except KeyError as e:
            raise StorageError(f"Corrupt block record {path}: missing field {e}", str(path)) from e
        except (TypeError, ValueError) as e:
            raise StorageError(f"Corrupt block record {path}: {e}", str(path)) from e

        if block.index != index:
            raise StorageError(
                f"Block record {path} holds index {block.index}", str(path)
            )
        return block

    def load(self) -> List[Block]:
        """
        Load every stored block.

        Returns:
            Blocks ordered by index ascending; empty if nothing is stored

        Raises:
            StorageError: If a record cannot be read or decoded
        """
        blocks = [self._read_record(index, path) for index, path in self._record_files()]
        logger.debug("Loaded %d blocks from %s", len(blocks), self._dir)
        return blocks

    def tip(self) -> Optional[Block]:
        """Highest-index block, or None for an empty store."""
        records = self._record_files()
        if not records:
            return None
        index, path = records[-1]
        return self._read_record(index, path)

    def count(self) -> int:
        """Number of stored block records."""
        return len(self._record_files())

    # ========================================================================
    # Writing
    # ========================================================================

    def append(self, block: Block) -> Path:
        """
        Persist a block as a new record.

        Args:
            block: A fully mined block

        Returns:
            Path of the written record

        Raises:
            RecordExistsError: If a record for block.index already exists
            StorageError: On any I/O failure
        """
        path = self.path_for(block.index)
        if path.exists():
            raise RecordExistsError(
                f"Block {block.index} already stored at {path}", str(path)
            )

        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f"{RECORD_PREFIX}{block.index}.",
                suffix=TEMP_SUFFIX,
                dir=self._dir,
            )
        except OSError as e:
            raise StorageError(f"Cannot write to {self._dir}: {e}", str(self._dir)) from e

        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(block.to_dict(), f, indent=2, ensure_ascii=False)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            # link() never replaces an existing record
            os.link(tmp_name, path)
        except FileExistsError as e:
            raise RecordExistsError(
                f"Block {block.index} already stored at {path}", str(path)
            ) from e
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}", str(path)) from e
        finally:
            try:
                os.remove(tmp_name)
            except OSError as e:
                logger.warning("Could not remove temp file %s: %s", tmp_name, e)

        logger.debug("Stored block %d at %s", block.index, path)
        return path

    def reset(self) -> int:
        """
        Delete every block record.

        Idempotent: resetting an empty or missing store succeeds.

        Returns:
            Number of block records removed

        Raises:
            StorageError: If a record cannot be removed
        """
        if not self._dir.exists():
            return 0

        removed = 0
        try:
            for entry in self._dir.iterdir():
                if RECORD_PATTERN.match(entry.name):
                    entry.unlink()
                    removed += 1
                elif entry.name.startswith(RECORD_PREFIX) and entry.name.endswith(TEMP_SUFFIX):
                    entry.unlink()
            if not any(self._dir.iterdir()):
                self._dir.rmdir()
        except OSError as e:
            raise StorageError(f"Cannot reset {self._dir}: {e}", str(self._dir)) from e

        logger.info("Removed %d block records from %s", removed, self._dir)
        return removed
