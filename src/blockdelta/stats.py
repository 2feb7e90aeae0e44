from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .instruction import DeltaInstruction


@dataclass(frozen=True)
class DeltaStats:
  total_bytes: int
  bytes_transferred: int
  bytes_reused: int

  @property
  def bytes_saved(self) -> int:
    return max(self.total_bytes - self.bytes_transferred, 0)

  @classmethod
  def from_instructions(
    cls,
    instructions: Iterable[DeltaInstruction],
    block_size: int,
    original_size: int | None = None,
  ) -> DeltaStats:
    transferred = 0
    reused = 0

    for instruction in instructions:
      if instruction.kind == 'copy':
        reused += instruction.length(block_size, original_size)
      else:
        transferred += instruction.length(block_size)

    return cls(
      total_bytes=transferred + reused, bytes_transferred=transferred, bytes_reused=reused
    )
