"""
Line-oriented text encoding of a delta::

  copy block 3 to position 1024
  insert at position 4096: 48656c6c6f
"""

from __future__ import annotations

import re
from typing import Iterable, TextIO

from .error import InvalidInstructionError
from .instruction import DeltaInstruction

_COPY_LINE = re.compile(r'copy block (\d+) to position (\d+)')
_INSERT_LINE = re.compile(r'insert at position (\d+):\s*([0-9a-fA-F]*)')


def format_instruction(instruction: DeltaInstruction) -> str:
  if instruction.kind == 'copy':
    return f'copy block {instruction.block_index} to position {instruction.position}'
  if instruction.kind == 'insert':
    return f'insert at position {instruction.position}: {instruction.data.hex()}'
  raise InvalidInstructionError(f'Unknown instruction: {instruction.kind!r}')


def parse_instruction(line: str) -> DeltaInstruction:
  if match := _COPY_LINE.fullmatch(line):
    return DeltaInstruction.copy(int(match[1]), int(match[2]))

  if match := _INSERT_LINE.fullmatch(line):
    try:
      data = bytes.fromhex(match[2])
    except ValueError as exc:
      raise InvalidInstructionError(f'Malformed insert data: {exc}') from exc
    return DeltaInstruction.insert(int(match[1]), data)

  raise InvalidInstructionError(f'Unrecognised delta command: {line!r}')


def dump_delta(instructions: Iterable[DeltaInstruction], stream: TextIO) -> None:
  for instruction in instructions:
    stream.write(format_instruction(instruction) + '\n')


def load_delta(stream: Iterable[str]) -> list[DeltaInstruction]:
  instructions: list[DeltaInstruction] = []

  for lineno, raw in enumerate(stream, start=1):
    line = raw.strip()
    if not line:
      continue

    try:
      instructions.append(parse_instruction(line))
    except InvalidInstructionError as exc:
      raise InvalidInstructionError(f'line {lineno}: {exc}') from exc

  return instructions
