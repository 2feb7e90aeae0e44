from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, cast

from .error import DeltaError, InvalidInstructionError
from .index import BLOCK_SIZE
from .instruction import Delta, DeltaInstruction

logger = logging.getLogger(__name__)


def validate_instructions(instructions: Delta, block_count: int | None = None) -> None:
  """
  Reject instructions that cannot be replayed faithfully.

  With ``block_count`` set, copies must also reference a block that exists in the original.
  """
  for number, instruction in enumerate(instructions):
    if instruction.kind not in ('copy', 'insert'):
      raise InvalidInstructionError(f'Unknown instruction #{number}: {instruction.kind!r}')

    if instruction.position < 0:
      raise InvalidInstructionError(
        f'Instruction #{number} has a negative position: {instruction.position}'
      )

    if instruction.kind != 'copy':
      continue

    block_index = instruction.block_index

    if block_index is None or block_index < 0:
      raise InvalidInstructionError(f'Copy #{number} has an invalid block index: {block_index}')

    if block_count is not None and block_index >= block_count:
      raise InvalidInstructionError(
        f'Copy #{number} references block {block_index} but the original has {block_count}'
      )


def apply_delta(
  original: Path | str,
  instructions: Delta,
  output: Path | str,
  *,
  block_size: int = BLOCK_SIZE,
  strict: bool = True,
) -> None:
  """
  Rebuild a file at ``output`` by replaying ``instructions`` against ``original``.

  Instructions run in the order given; nothing outside them is copied, so an empty delta
  produces an empty file. With ``strict`` the delta is checked against the original's block
  count before ``output`` is created. Without it, a copy past the end of the original
  writes nothing.

  ``output`` must not be ``original`` itself, since opening it truncates the source.
  """
  if block_size <= 0:
    raise ValueError('block_size must be positive')

  original_path = Path(original)
  output_path = Path(output)

  try:
    if output_path.exists() and output_path.samefile(original_path):
      raise DeltaError(f'Refusing to patch the original in place: {output_path}')

    block_count = None
    if strict:
      block_count = -(-original_path.stat().st_size // block_size)
    validate_instructions(instructions, block_count)

    with original_path.open('rb') as source, output_path.open('wb') as target:
      for instruction in instructions:
        _replay(source, target, instruction, block_size)
  except OSError as exc:
    raise DeltaError(str(exc)) from exc

  logger.debug('applied %d instructions to %s', len(instructions), output_path)


def _replay(
  source: IO[bytes], target: IO[bytes], instruction: DeltaInstruction, block_size: int
) -> None:
  if instruction.kind == 'copy':
    source.seek(cast(int, instruction.block_index) * block_size)
    target.seek(instruction.position)
    target.write(source.read(block_size))
  else:
    target.seek(instruction.position)
    target.write(instruction.data)
