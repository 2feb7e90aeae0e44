from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

InstructionKind = Literal['copy', 'insert']


@dataclass(frozen=True)
class DeltaInstruction:
  """
  One step of a reconstruction plan.

  ``copy`` writes block ``block_index`` of the original at ``position`` in the output;
  ``insert`` writes ``data`` at ``position``. Positions are absolute, so each instruction
  can be replayed on its own.
  """

  kind: InstructionKind
  position: int
  block_index: int | None = None
  data: bytes = b''

  @classmethod
  def copy(cls, block_index: int, position: int) -> DeltaInstruction:
    return cls('copy', position, block_index=block_index)

  @classmethod
  def insert(cls, position: int, data: bytes) -> DeltaInstruction:
    return cls('insert', position, data=bytes(data))

  def length(self, block_size: int, original_size: int | None = None) -> int:
    """
    Output bytes produced by this instruction.

    Without ``original_size`` a copy counts a full block, an upper bound for the short
    final block of the original.
    """
    if self.kind == 'copy':
      if original_size is None:
        return block_size
      offset = (self.block_index or 0) * block_size
      return max(min(block_size, original_size - offset), 0)
    return len(self.data)


Delta = Sequence[DeltaInstruction]
