class DeltaError(Exception):
  """Raised when a delta cannot be generated, read or applied."""


class InvalidInstructionError(DeltaError):
  """Raised for instructions that cannot be replayed against the original."""
