from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .error import DeltaError
from .rolling_hash import RollingHash

logger = logging.getLogger(__name__)

BLOCK_SIZE = 1024


@dataclass(frozen=True)
class BlockIndex:
  """
  Maps block hashes of the original file to the blocks that produced them.

  Block indices under one hash are kept in discovery order. The index is built once and
  only read afterwards, so it can be shared by every scanning worker.
  """

  block_size: int
  block_count: int
  original_size: int
  hashes: dict[int, tuple[int, ...]] = field(default_factory=dict)

  def candidates(self, digest: int) -> tuple[int, ...]:
    return self.hashes.get(digest, ())

  def __contains__(self, digest: object) -> bool:
    return digest in self.hashes

  def __len__(self) -> int:
    return len(self.hashes)


def build_index(original: Path | str, block_size: int = BLOCK_SIZE) -> BlockIndex:
  """Hash ``original`` in consecutive ``block_size`` chunks; the last chunk may be shorter."""
  if block_size <= 0:
    raise ValueError('block_size must be positive')

  path = Path(original)
  positions: dict[int, list[int]] = {}
  block_count = 0
  size = 0

  try:
    with path.open('rb') as fh:
      for block in iter(lambda: fh.read(block_size), b''):
        digest = RollingHash(len(block)).hash_window(block)
        positions.setdefault(digest, []).append(block_count)
        block_count += 1
        size += len(block)
  except OSError as exc:
    raise DeltaError(str(exc)) from exc

  logger.debug(
    'indexed %d blocks (%d distinct hashes) from %s', block_count, len(positions), path
  )

  return BlockIndex(
    block_size=block_size,
    block_count=block_count,
    original_size=size,
    hashes={digest: tuple(blocks) for digest, blocks in positions.items()},
  )
