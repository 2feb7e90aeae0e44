from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

import pytest

from blockdelta.applier import apply_delta, validate_instructions
from blockdelta.error import DeltaError, InvalidInstructionError
from blockdelta.generator import generate_delta
from blockdelta.instruction import DeltaInstruction

WriteFile = Callable[[str, bytes], Path]


def test_empty_delta_produces_empty_output(tmp_path: Path, write_file: WriteFile) -> None:
  original = write_file('original.bin', b'Original content remains unchanged.')
  output = write_file('output.bin', b'stale output')

  apply_delta(original, [], output)

  assert output.read_bytes() == b''


def test_copy_and_insert_rebuild_the_updated_file(tmp_path: Path, write_file: WriteFile) -> None:
  original = write_file('original.bin', b'A' * 2048)
  output = tmp_path / 'output.bin'

  apply_delta(
    original,
    [DeltaInstruction.copy(0, 0), DeltaInstruction.insert(1024, b'B' * 1024)],
    output,
  )

  assert output.read_bytes() == b'A' * 1024 + b'B' * 1024


def test_instructions_carry_absolute_positions(tmp_path: Path, write_file: WriteFile) -> None:
  original = write_file('original.bin', b'abcdefgh')
  output = tmp_path / 'output.bin'

  apply_delta(
    original,
    [DeltaInstruction.insert(4, b'XY'), DeltaInstruction.copy(1, 6), DeltaInstruction.copy(0, 0)],
    output,
    block_size=4,
  )

  assert output.read_bytes() == b'abcdXYefgh'


def test_copy_of_short_final_block_is_truncated(tmp_path: Path, write_file: WriteFile) -> None:
  content = bytes(range(256)) * 6
  original = write_file('original.bin', content)
  output = tmp_path / 'output.bin'

  apply_delta(original, [DeltaInstruction.copy(1, 0)], output)

  assert output.read_bytes() == content[1024:]


def test_strict_mode_rejects_out_of_range_block(tmp_path: Path, write_file: WriteFile) -> None:
  original = write_file('original.bin', b'A' * 2048)
  output = tmp_path / 'output.bin'

  with pytest.raises(InvalidInstructionError, match='block 2'):
    apply_delta(original, [DeltaInstruction.copy(2, 0)], output)

  assert not output.exists()


def test_lenient_mode_silently_writes_short_output(tmp_path: Path, write_file: WriteFile) -> None:
  original = write_file('original.bin', b'A' * 1024)
  output = tmp_path / 'output.bin'

  apply_delta(
    original,
    [DeltaInstruction.copy(0, 0), DeltaInstruction.copy(5, 1024)],
    output,
    strict=False,
  )

  assert output.read_bytes() == b'A' * 1024


def test_negative_block_index_is_always_rejected(tmp_path: Path, write_file: WriteFile) -> None:
  original = write_file('original.bin', b'Some original content.')

  with pytest.raises(InvalidInstructionError):
    apply_delta(original, [DeltaInstruction.copy(-1, 0)], tmp_path / 'output.bin', strict=False)


def test_unknown_instruction_kind_is_rejected(tmp_path: Path, write_file: WriteFile) -> None:
  original = write_file('original.bin', b'content')
  instruction = DeltaInstruction('move', 0)  # type: ignore[arg-type]

  with pytest.raises(InvalidInstructionError, match='move'):
    apply_delta(original, [instruction], tmp_path / 'output.bin')


def test_validate_rejects_negative_position() -> None:
  with pytest.raises(InvalidInstructionError, match='negative position'):
    validate_instructions([DeltaInstruction.insert(-3, b'x')])


def test_validate_accepts_in_range_copies() -> None:
  instructions = [
    DeltaInstruction.copy(0, 0),
    DeltaInstruction.copy(1, 1024),
    DeltaInstruction.insert(2048, b''),
  ]

  validate_instructions(instructions, block_count=2)


def test_missing_original_raises_delta_error(tmp_path: Path) -> None:
  with pytest.raises(DeltaError) as excinfo:
    apply_delta(tmp_path / 'missing.bin', [], tmp_path / 'output.bin')

  assert isinstance(excinfo.value.__cause__, FileNotFoundError)


def test_rejects_non_positive_block_size(tmp_path: Path, write_file: WriteFile) -> None:
  original = write_file('original.bin', b'content')

  with pytest.raises(ValueError):
    apply_delta(original, [], tmp_path / 'output.bin', block_size=0)


def test_refuses_to_overwrite_the_original(write_file: WriteFile) -> None:
  content = bytes(range(256)) * 16
  original = write_file('original.bin', content)
  updated = write_file('updated.bin', content[:2048] + b'new' + content[2048:])
  instructions = generate_delta(original, updated)

  with pytest.raises(DeltaError, match='in place'):
    apply_delta(original, instructions, original)

  assert original.read_bytes() == content


def test_refuses_output_hard_linked_to_the_original(
  tmp_path: Path, write_file: WriteFile
) -> None:
  original = write_file('original.bin', b'A' * 2048)
  alias = tmp_path / 'alias.bin'
  os.link(original, alias)

  with pytest.raises(DeltaError, match='in place'):
    apply_delta(original, [DeltaInstruction.copy(1, 0)], alias)

  assert original.read_bytes() == b'A' * 2048
