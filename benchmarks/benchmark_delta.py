from __future__ import annotations

import argparse
import os
import random
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from blockdelta.applier import apply_delta
from blockdelta.generator import SECTION_SIZE, generate_delta, generate_delta_parallel
from blockdelta.index import BLOCK_SIZE
from blockdelta.instruction import DeltaInstruction
from blockdelta.stats import DeltaStats


def _write_random(path: Path, size_bytes: int, *, rng: random.Random) -> None:
  chunk_size = 4 * 1024 * 1024
  remaining = size_bytes

  with path.open('wb') as fh:
    while remaining > 0:
      to_write = min(chunk_size, remaining)
      fh.write(rng.randbytes(to_write))
      remaining -= to_write


def _mutate_offsets(
  size_bytes: int, mutation_count: int, *, chunk_len: int, rng: random.Random
) -> Iterable[int]:
  if mutation_count <= 0 or size_bytes == 0:
    return []
  max_offset = max(size_bytes - chunk_len, 0)
  return (rng.randint(0, max_offset) for _ in range(mutation_count))


def _mutate_file(path: Path, offsets: Iterable[int], *, chunk_size: int = 64) -> None:
  with path.open('r+b') as fh:
    for offset in offsets:
      fh.seek(offset)
      fh.write(os.urandom(chunk_size))


@dataclass(slots=True)
class Timing:
  seconds: float
  stats: DeltaStats


@dataclass(slots=True)
class BenchmarkResult:
  serial: Timing
  parallel: Timing


def _timed(
  generate: Callable[[], list[DeltaInstruction]], original: Path, updated: Path, block_size: int
) -> Timing:
  start = time.perf_counter()
  instructions = generate()
  elapsed = time.perf_counter() - start

  output = updated.with_suffix('.rebuilt')
  apply_delta(original, instructions, output, block_size=block_size)
  if output.read_bytes() != updated.read_bytes():
    raise RuntimeError('Replayed delta does not match the updated file')

  return Timing(elapsed, DeltaStats.from_instructions(instructions, block_size))


def run_benchmark(
  *,
  size_mb: int,
  mutation_count: int,
  block_size: int,
  section_size: int,
  workers: int | None,
  processes: bool,
  seed: int,
) -> BenchmarkResult:
  size_bytes = size_mb * 1024 * 1024
  rng = random.Random(seed)

  with tempfile.TemporaryDirectory() as workspace:
    workspace_path = Path(workspace)
    original = workspace_path / 'original.bin'
    updated = workspace_path / 'updated.bin'

    _write_random(original, size_bytes, rng=rng)
    updated.write_bytes(original.read_bytes())

    offsets = list(_mutate_offsets(size_bytes, mutation_count, chunk_len=64, rng=rng))
    if offsets:
      _mutate_file(updated, offsets)

    serial = _timed(
      lambda: generate_delta(original, updated, block_size), original, updated, block_size
    )
    parallel = _timed(
      lambda: generate_delta_parallel(
        original,
        updated,
        block_size=block_size,
        section_size=section_size,
        max_workers=workers,
        processes=processes,
      ),
      original,
      updated,
      block_size,
    )

  return BenchmarkResult(serial=serial, parallel=parallel)


def _format_bytes(value: int) -> str:
  return f'{value / (1024 * 1024):.2f} MiB'


def main() -> None:
  parser = argparse.ArgumentParser(description='Benchmark serial and sectioned delta generation.')
  parser.add_argument('--size-mb', type=int, default=32, help='Size of the original file in MiB')
  parser.add_argument(
    '--mutations', type=int, default=16, help='Number of 64-byte mutations in the updated file'
  )
  parser.add_argument('--block-size', type=int, default=BLOCK_SIZE, help='Block size (bytes)')
  parser.add_argument(
    '--section-size', type=int, default=SECTION_SIZE, help='Section size (bytes) for parallel mode'
  )
  parser.add_argument('--workers', type=int, help='Maximum number of parallel workers')
  parser.add_argument('--processes', action='store_true', help='Use worker processes')
  parser.add_argument('--seed', type=int, default=1337, help='Seed for content and mutations')

  args = parser.parse_args()

  result = run_benchmark(
    size_mb=args.size_mb,
    mutation_count=args.mutations,
    block_size=args.block_size,
    section_size=args.section_size,
    workers=args.workers,
    processes=args.processes,
    seed=args.seed,
  )

  print('=== Delta Generation Benchmark ===')
  print(f'Original size    : {args.size_mb} MiB')
  print(f'Block size       : {args.block_size} bytes')
  print(f'Section size     : {args.section_size} bytes')
  print(f'Mutations applied: {args.mutations}')
  print()
  for label, timing in (('Serial', result.serial), ('Parallel', result.parallel)):
    print(f'{label:<17}: {timing.seconds:.2f}s')
    print(f'  Transferred    : {_format_bytes(timing.stats.bytes_transferred)}')
    print(f'  Reused         : {_format_bytes(timing.stats.bytes_reused)}')


if __name__ == '__main__':
  main()
