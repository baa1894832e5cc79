"""Deterministic symbol -> partition routing.

Keeps every record for a symbol on one partition so consumers see them in
publish order. The hash has no per-process seed (unlike Python's built-in
``hash`` for str), so routing is stable across restarts and matches other
producers using the same 31-multiplier string hash.
"""

_UINT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def symbol_hash(symbol: str) -> int:
    """Polynomial rolling hash ``h = h * 31 + code`` with signed 32-bit wraparound.

    Iterates UTF-16 code units, so non-BMP characters contribute their
    surrogate pair exactly as Java/JavaScript string hashing does.
    """
    data = symbol.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = (h * 31 + code) & _UINT32_MASK
    if h & _INT32_SIGN:
        h -= 1 << 32
    return h


def partition_for_symbol(symbol: str, partition_count: int) -> int:
    """Map a symbol to a partition index in ``[0, partition_count)``."""
    if partition_count < 1:
        raise ValueError(f"partition_count must be >= 1, got {partition_count}")
    return abs(symbol_hash(symbol)) % partition_count
