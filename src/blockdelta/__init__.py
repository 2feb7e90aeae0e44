from .applier import apply_delta, validate_instructions
from .delta_file import dump_delta, load_delta
from .error import DeltaError, InvalidInstructionError
from .generator import (
  SECTION_SIZE,
  Section,
  generate_delta,
  generate_delta_parallel,
  merge_instructions,
  plan_sections,
  scan_range,
)
from .index import BLOCK_SIZE, BlockIndex, build_index
from .instruction import DeltaInstruction, InstructionKind
from .rolling_hash import BASE, MOD_PRIME, RollingHash
from .stats import DeltaStats

__all__ = [
  'BASE',
  'BLOCK_SIZE',
  'BlockIndex',
  'DeltaError',
  'DeltaInstruction',
  'DeltaStats',
  'InstructionKind',
  'InvalidInstructionError',
  'MOD_PRIME',
  'RollingHash',
  'SECTION_SIZE',
  'Section',
  'apply_delta',
  'build_index',
  'dump_delta',
  'generate_delta',
  'generate_delta_parallel',
  'load_delta',
  'merge_instructions',
  'plan_sections',
  'scan_range',
  'validate_instructions',
]
