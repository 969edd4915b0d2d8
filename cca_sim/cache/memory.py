from __future__ import annotations
from typing import Dict

from ..codec.cpack import LINE_SIZE_BYTES


class MainMemory:
    """Line-addressable backing store. Lines never written read as all zeros."""

    def __init__(self, line_size_bytes: int = LINE_SIZE_BYTES):
        self.line_size_bytes = line_size_bytes
        self.lines: Dict[int, bytes] = {}

    def __contains__(self, line_number: int) -> bool:
        return line_number in self.lines

    def read_line(self, line_number: int) -> bytearray:
        """Returns a copy of the line, so callers may modify it freely."""
        data = self.lines.get(line_number)
        if data is None:
            return bytearray(self.line_size_bytes)
        return bytearray(data)

    def write_line(self, line_number: int, data: bytes):
        if len(data) != self.line_size_bytes:
            raise ValueError(f"Expected {self.line_size_bytes} bytes for line {line_number:#x}, got {len(data)}.")
        self.lines[line_number] = bytes(data)
