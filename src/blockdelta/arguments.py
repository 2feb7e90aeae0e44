from __future__ import annotations

import argparse
import typing as t
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .index import BLOCK_SIZE


class Command(str, Enum):
  """Enum for the sub-command to run."""

  DIFF = 'diff'
  PATCH = 'patch'
  SYNC = 'sync'


class Mode(str, Enum):
  """Enum for delta generation modes."""

  SERIAL = 'serial'
  PARALLEL = 'parallel'


@dataclass
class Arguments:
  """
  A wrapper class providing concrete types for parsed command-line arguments.

  Fields that the chosen command does not accept keep their defaults.
  """

  command: Command
  original: Path
  updated: t.Optional[Path] = None
  delta: t.Optional[Path] = None
  output: t.Optional[Path] = None
  mode: Mode = Mode.SERIAL
  block_size: int = BLOCK_SIZE
  section_size: t.Optional[int] = None
  workers: t.Optional[int] = None
  processes: bool = False
  dry_run: bool = False
  verbose: bool = False

  @staticmethod
  def from_args() -> Arguments:
    common = argparse.ArgumentParser(add_help=False)

    common.add_argument(
      '--block-size',
      type=int,
      default=BLOCK_SIZE,
      help='Block size (bytes) used to match and copy data.',
    )

    common.add_argument(
      '-v',
      '--verbose',
      action='store_true',
      help='Log indexing, scanning and patching details.',
    )

    generation = argparse.ArgumentParser(add_help=False)

    generation.add_argument(
      '--mode',
      type=Mode,
      choices=list(Mode),
      default=Mode.SERIAL,
      help='Scan the updated file in one pass (default) or in parallel sections.',
    )

    generation.add_argument(
      '--section-size',
      type=int,
      help='Section size (bytes) for the parallel mode.',
    )

    generation.add_argument(
      '--workers',
      type=int,
      help='Maximum number of parallel workers.',
    )

    generation.add_argument(
      '--processes',
      action='store_true',
      help='Scan sections in worker processes instead of threads.',
    )

    parser = argparse.ArgumentParser(
      prog='blockdelta',
      description='Compute and apply block-level binary deltas.',
    )
    commands = parser.add_subparsers(dest='command', required=True, metavar='command')

    diff = commands.add_parser(
      Command.DIFF.value,
      parents=[common, generation],
      help='Describe UPDATED as a delta against ORIGINAL.',
    )
    diff.add_argument('original', type=Path, help='Path to the original file')
    diff.add_argument('updated', type=Path, help='Path to the updated file')
    diff.add_argument(
      '-o',
      '--output',
      dest='delta',
      type=Path,
      help='Write the delta to this file instead of standard output.',
    )

    patch = commands.add_parser(
      Command.PATCH.value,
      parents=[common],
      help='Rebuild a file from ORIGINAL and a delta file.',
    )
    patch.add_argument('original', type=Path, help='Path to the original file')
    patch.add_argument('delta', type=Path, help='Path to the delta file')
    patch.add_argument('output', type=Path, help='Path of the file to write')

    sync = commands.add_parser(
      Command.SYNC.value,
      parents=[common, generation],
      help='Generate a delta and apply it in one step.',
    )
    sync.add_argument('original', type=Path, help='Path to the original file')
    sync.add_argument('updated', type=Path, help='Path to the updated file')
    sync.add_argument('output', type=Path, help='Path of the file to write')
    sync.add_argument(
      '--dry-run',
      action='store_true',
      help='Report the delta without writing the output file.',
    )

    values = vars(parser.parse_args())
    values['command'] = Command(values['command'])

    return Arguments(**values)
