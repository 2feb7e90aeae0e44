from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import (
  BarColumn,
  MofNCompleteColumn,
  Progress,
  TaskID,
  TaskProgressColumn,
  TextColumn,
  TimeRemainingColumn,
)
from rich.table import Table

from blockdelta.applier import apply_delta
from blockdelta.arguments import Arguments, Command, Mode
from blockdelta.delta_file import dump_delta, load_delta
from blockdelta.error import DeltaError
from blockdelta.generator import (
  SECTION_SIZE,
  Section,
  generate_delta,
  generate_delta_parallel,
  plan_sections,
)
from blockdelta.instruction import DeltaInstruction
from blockdelta.stats import DeltaStats


def _validate(args: Arguments) -> None:
  if args.block_size <= 0:
    raise DeltaError('--block-size must be a positive integer')

  if args.mode == Mode.SERIAL:
    if args.section_size is not None:
      raise DeltaError('--section-size can only be used with --mode parallel')
    if args.workers is not None:
      raise DeltaError('--workers can only be used with --mode parallel')
    if args.processes:
      raise DeltaError('--processes can only be used with --mode parallel')
    return

  if args.section_size is not None and args.section_size < args.block_size:
    raise DeltaError('--section-size must be at least --block-size')

  if args.workers is not None and args.workers <= 0:
    raise DeltaError('--workers must be a positive integer')


def _require(path: Path | None, name: str) -> Path:
  if path is None:
    raise DeltaError(f'{name} is required for this command')
  return path


def _stats_for(args: Arguments, instructions: list[DeltaInstruction]) -> DeltaStats:
  try:
    original_size = args.original.stat().st_size
  except OSError as exc:
    raise DeltaError(str(exc)) from exc

  return DeltaStats.from_instructions(instructions, args.block_size, original_size)


def _configure_logging(console: Console, verbose: bool) -> None:
  package_logger = logging.getLogger('blockdelta')

  for handler in list(package_logger.handlers):
    package_logger.removeHandler(handler)

  package_logger.addHandler(RichHandler(console=console, show_time=False, show_path=False))
  package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _count_sections(updated: Path, section_size: int) -> int:
  try:
    return len(plan_sections(updated.stat().st_size, section_size))
  except FileNotFoundError:
    return 0


def _generate(
  args: Arguments, console: Console, *, enable_progress: bool = True
) -> list[DeltaInstruction]:
  updated = _require(args.updated, 'UPDATED')

  if args.mode == Mode.SERIAL:
    return generate_delta(args.original, updated, args.block_size)

  section_size = args.section_size if args.section_size is not None else SECTION_SIZE
  total_sections = _count_sections(updated, section_size)

  progress = Progress(
    TextColumn('[progress.description]{task.description}'),
    BarColumn(),
    TaskProgressColumn(),
    MofNCompleteColumn(),
    TimeRemainingColumn(),
    console=console,
    transient=True,
    disable=(not enable_progress) or (not console.is_interactive) or total_sections == 0,
  )

  def run(on_section: Callable[[Section], None] | None) -> list[DeltaInstruction]:
    return generate_delta_parallel(
      args.original,
      updated,
      block_size=args.block_size,
      section_size=section_size,
      max_workers=args.workers,
      processes=args.processes,
      on_section=on_section,
    )

  if progress.disable:
    return run(None)

  task_id: TaskID = progress.add_task('Scanning', total=total_sections)

  with progress:
    return run(lambda _section: progress.advance(task_id))


def _print_stats(stats: DeltaStats, updated: Path, console: Console) -> None:
  table = Table(show_lines=True)
  table.add_column('File', overflow='fold')
  table.add_column('Transferred')
  table.add_column('Reused')
  table.add_column('Saved')

  table.add_row(
    str(updated),
    f'{stats.bytes_transferred:,} B',
    f'{stats.bytes_reused:,} B',
    f'{stats.bytes_saved:,} B',
  )

  console.print(table)

  console.print(
    '[bold green]Total:[/] '
    f'transferred {stats.bytes_transferred:,} bytes | '
    f'reused {stats.bytes_reused:,} bytes | '
    f'saved {stats.bytes_saved:,} bytes'
  )


def _make_console_reporter(
  console: Console, dry_run: bool
) -> Callable[[DeltaInstruction], None]:
  prefix = 'DRY RUN: ' if dry_run else ''

  def reporter(instruction: DeltaInstruction) -> None:
    if instruction.kind == 'copy':
      message = f'copy block {instruction.block_index} to {instruction.position}'
    else:
      message = f'insert {len(instruction.data):,} bytes at {instruction.position}'

    console.print(prefix + message, highlight=False)

  return reporter


def _run_diff(args: Arguments, console: Console) -> None:
  updated = _require(args.updated, 'UPDATED')

  instructions = _generate(args, console)

  if args.delta is None:
    dump_delta(instructions, sys.stdout)
    return

  try:
    with args.delta.open('w', encoding='utf-8') as fh:
      dump_delta(instructions, fh)
  except OSError as exc:
    raise DeltaError(str(exc)) from exc

  _print_stats(_stats_for(args, instructions), updated, console)


def _run_patch(args: Arguments, console: Console) -> None:
  delta = _require(args.delta, 'DELTA')
  output = _require(args.output, 'OUTPUT')

  try:
    with delta.open('r', encoding='utf-8') as fh:
      instructions = load_delta(fh)
  except OSError as exc:
    raise DeltaError(str(exc)) from exc

  apply_delta(args.original, instructions, output, block_size=args.block_size)

  target = escape(str(output))
  console.print(f'[bold green]Patched:[/] {len(instructions)} instructions into {target}')


def _run_sync(args: Arguments, console: Console) -> None:
  updated = _require(args.updated, 'UPDATED')
  output = _require(args.output, 'OUTPUT')

  instructions = _generate(args, console, enable_progress=not (args.dry_run or args.verbose))

  if args.dry_run or args.verbose:
    reporter = _make_console_reporter(console, args.dry_run)
    for instruction in instructions:
      reporter(instruction)

  if not args.dry_run:
    apply_delta(args.original, instructions, output, block_size=args.block_size)

  _print_stats(_stats_for(args, instructions), updated, console)

  if args.dry_run:
    console.print('[bold yellow]Dry run complete; no output was written.[/]')


def main() -> int:
  arguments = Arguments.from_args()

  console, err_console = Console(), Console(stderr=True)

  _configure_logging(err_console, arguments.verbose)

  runners = {
    Command.DIFF: _run_diff,
    Command.PATCH: _run_patch,
    Command.SYNC: _run_sync,
  }

  try:
    _validate(arguments)
    runners[arguments.command](arguments, console)
  except DeltaError as exc:
    err_console.print(f'[bold red]error:[/] {escape(str(exc))}')
    return 1
  except Exception as exc:  # pragma: no cover - CLI guardrail
    err_console.print(f'[bold red]error:[/] {escape(str(exc))}')
    return 1

  return 0


if __name__ == '__main__':
  raise SystemExit(main())
