from __future__ import annotations

import logging
import mmap
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator

from .error import DeltaError
from .index import BLOCK_SIZE, BlockIndex, build_index
from .instruction import DeltaInstruction
from .rolling_hash import RollingHash

logger = logging.getLogger(__name__)

SECTION_SIZE = 10 * 1024 * 1024

_Buffer = bytes | mmap.mmap


@dataclass(frozen=True)
class Section:
  """Half-open byte range ``[start, end)`` of the updated file scanned by one worker."""

  number: int
  start: int
  end: int


SectionCallback = Callable[[Section], None]


@contextmanager
def _open_readonly_buffer(path: Path) -> Iterator[_Buffer]:
  size = path.stat().st_size
  if size == 0:
    yield b''
    return

  with path.open('rb') as fh:
    with mmap.mmap(fh.fileno(), length=0, access=mmap.ACCESS_READ) as mm:
      yield mm


def _verified_match(
  index: BlockIndex, original_buf: _Buffer, candidates: tuple[int, ...], window: bytes
) -> int | None:
  block_size = index.block_size

  for block_index in candidates:
    offset = block_index * block_size
    if original_buf[offset : offset + block_size] == window:
      return block_index

  logger.debug('rejected hash collision for blocks %s', candidates)
  return None


def scan_range(
  index: BlockIndex,
  original_buf: _Buffer,
  updated_buf: _Buffer,
  start: int,
  end: int,
) -> list[DeltaInstruction]:
  """
  Slide a ``block_size`` window over ``updated_buf[start:end]`` and describe it as
  copies of original blocks plus literal inserts.

  A hash hit only becomes a copy once the original block's bytes equal the window. Bytes
  that leave the window unmatched are held as pending literal data, flushed as a single
  insert before the next copy and at ``end``.
  """
  block_size = index.block_size
  instructions: list[DeltaInstruction] = []

  literal_start = start
  window_start = start
  checksum: RollingHash | None = None

  for pos in range(start, end):
    window_end = pos + 1

    if checksum is None:
      if window_end - window_start < block_size:
        continue
      checksum = RollingHash(block_size)
      checksum.hash_window(updated_buf[window_start:window_end])
    else:
      checksum.roll(updated_buf[window_start], updated_buf[pos])
      window_start += 1

    candidates = index.candidates(checksum.digest())
    if not candidates:
      continue

    block_index = _verified_match(
      index, original_buf, candidates, updated_buf[window_start:window_end]
    )
    if block_index is None:
      continue

    if literal_start < window_start:
      instructions.append(
        DeltaInstruction.insert(literal_start, updated_buf[literal_start:window_start])
      )

    instructions.append(DeltaInstruction.copy(block_index, window_start))
    literal_start = window_start = window_end
    checksum = None

  if literal_start < end:
    instructions.append(DeltaInstruction.insert(literal_start, updated_buf[literal_start:end]))

  return instructions


def _scan_section(
  index: BlockIndex, original: Path, updated: Path, section: Section
) -> list[DeltaInstruction]:
  try:
    with _open_readonly_buffer(original) as original_buf:
      with _open_readonly_buffer(updated) as updated_buf:
        end = min(section.end, len(updated_buf))
        return scan_range(index, original_buf, updated_buf, section.start, end)
  except OSError as exc:
    raise DeltaError(str(exc)) from exc


def generate_delta(
  original: Path | str, updated: Path | str, block_size: int = BLOCK_SIZE
) -> list[DeltaInstruction]:
  """Describe ``updated`` in terms of ``original`` with a single scan."""
  original_path = Path(original)
  updated_path = Path(updated)

  index = build_index(original_path, block_size)
  whole_file = Section(0, 0, _size_of(updated_path))
  instructions = _scan_section(index, original_path, updated_path, whole_file)

  logger.debug('generated %d instructions for %s', len(instructions), updated_path)
  return instructions


def plan_sections(size: int, section_size: int = SECTION_SIZE) -> list[Section]:
  if section_size <= 0:
    raise ValueError('section_size must be positive')

  return [
    Section(number, start, min(start + section_size, size))
    for number, start in enumerate(range(0, size, section_size))
  ]


def merge_instructions(
  section_results: Iterable[Iterable[DeltaInstruction]],
) -> list[DeltaInstruction]:
  """Concatenate per-section results and order them by output position."""
  merged = [instruction for result in section_results for instruction in result]
  merged.sort(key=lambda instruction: instruction.position)
  return merged


def generate_delta_parallel(
  original: Path | str,
  updated: Path | str,
  *,
  block_size: int = BLOCK_SIZE,
  section_size: int = SECTION_SIZE,
  max_workers: int | None = None,
  processes: bool = False,
  on_section: SectionCallback | None = None,
) -> list[DeltaInstruction]:
  """
  Scan fixed-size sections of ``updated`` concurrently and merge the results.

  Sections are hard splits: literal bytes pending at a section end are flushed there, and a
  block straddling two sections is sent as literal data. Every worker is waited on before
  the merge; the first worker failure is raised and no partial delta is returned.
  """
  if section_size < block_size:
    raise ValueError('section_size must be at least block_size')

  original_path = Path(original)
  updated_path = Path(updated)

  index = build_index(original_path, block_size)
  sections = plan_sections(_size_of(updated_path), section_size)

  worker_kind = 'processes' if processes else 'threads'
  logger.debug('scanning %d sections of %s with %s', len(sections), updated_path, worker_kind)

  if not sections:
    return []

  executor: Executor
  if processes:
    executor = ProcessPoolExecutor(max_workers=max_workers)
  else:
    executor = ThreadPoolExecutor(max_workers=max_workers)

  results: list[list[DeltaInstruction]] = []

  with executor:
    futures = {
      executor.submit(_scan_section, index, original_path, updated_path, section): section
      for section in sections
    }

    for future in as_completed(futures):
      results.append(future.result())

      if on_section is not None:
        on_section(futures[future])

  return merge_instructions(results)


def _size_of(path: Path) -> int:
  try:
    return path.stat().st_size
  except OSError as exc:
    raise DeltaError(str(exc)) from exc
