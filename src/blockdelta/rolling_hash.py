BASE = 256
MOD_PRIME = 805306457


class RollingHash:
  """
  Polynomial rolling hash over a fixed-size byte window.

  The value of a window ``b0 .. bn-1`` is ``sum(bi * BASE**(n-1-i)) % MOD_PRIME``.
  Sliding the window by one byte is O(1) regardless of its size.
  """

  def __init__(self, window_size: int):
    if window_size < 1:
      raise ValueError('window_size must be positive')
    self.window_size = window_size
    self.value = 0
    self.leading = 0
    self.base_pow = pow(BASE, window_size - 1, MOD_PRIME)

  def hash_window(self, window: bytes) -> int:
    self.value = 0
    for byte in window:
      self.add_byte(byte)
    self.leading = window[0] if window else 0
    return self.value

  def add_byte(self, byte: int) -> None:
    self.value = (self.value * BASE + byte) % MOD_PRIME

  def remove_leading_byte(self, new_leading: int) -> None:
    self._drop(self.leading)
    self.leading = new_leading

  def roll(self, out_byte: int, in_byte: int) -> None:
    self._drop(out_byte)
    self.add_byte(in_byte)

  def digest(self) -> int:
    return self.value

  def _drop(self, byte: int) -> None:
    # Adding MOD_PRIME keeps the intermediate non-negative.
    self.value = (self.value + MOD_PRIME - byte * self.base_pow % MOD_PRIME) % MOD_PRIME
