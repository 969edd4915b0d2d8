"""Secret inspection for tests and the trial harness.

Nothing on the attacker side may import this module.
"""
from __future__ import annotations

from ..codec.cpack import compress
from .buffer import VictimBuffer


def reveal_secret(victim: VictimBuffer) -> bytes:
    return victim._secret


def secret_line_number(victim: VictimBuffer) -> int:
    return (victim.base_address + victim.secret_offset) >> victim.cache.offset_bits


def describe_secret_line(victim: VictimBuffer) -> str:
    """Contents and compressibility of the line holding the secret."""
    line = victim.cache.peek_line(secret_line_number(victim))
    compressed = compress(line)
    patterns = " ".join(str(p) for p in compressed.patterns())
    return (f"Secret line: {line.hex()}\n"
            f"Patterns: {patterns}\n"
            f"Compressibility: {compressed.size_bits} bits or {compressed.size_bytes} bytes")
