from __future__ import annotations
from enum import Enum
from typing import Dict, Any, Iterable, List, NamedTuple, Tuple

from ..codec.cpack import LINE_SIZE_BYTES, CompressedLine, Dictionary, compress, decompress
from ..errors import CapacityInvariantViolation
from ..utils.logging import get_logger
from .memory import MainMemory

ASSOCIATIVITY = 8
SUPERBLOCK_LINES = 4
SUPERBLOCK_BUDGET_BYTES = SUPERBLOCK_LINES * LINE_SIZE_BYTES

logger = get_logger(__name__)


class AccessSpeed(str, Enum):
    """The timing oracle: the only signal an access exposes besides its data."""
    HIT = "HIT"
    MISS = "MISS"

    def __str__(self) -> str:
        return self.value


class AccessResult(NamedTuple):
    speed: AccessSpeed
    data: int

    @property
    def hit(self) -> bool:
        return self.speed is AccessSpeed.HIT


class CacheWay:
    """A single way of the set. Holds at most one compressed line."""

    def __init__(self, index: int):
        self.index = index
        self.valid = False
        self.dirty = False
        self.line_number = -1
        self.compressed: CompressedLine | None = None
        self.dictionary = Dictionary()
        self.size_bytes = 0
        self.last_access = 0

    def install(self, line_number: int, compressed: CompressedLine, dictionary: Dictionary, dirty: bool, stamp: int):
        self.valid = True
        self.dirty = dirty
        self.line_number = line_number
        self.compressed = compressed
        self.dictionary = dictionary
        self.size_bytes = compressed.size_bytes
        self.last_access = stamp

    def rewrite(self, data: bytes):
        """Recompresses the line after a write hit."""
        self.compressed = compress(data, self.dictionary)
        self.size_bytes = self.compressed.size_bytes
        self.dirty = True

    def read_data(self) -> bytearray:
        return decompress(self.compressed)

    def invalidate(self):
        self.valid = False
        self.dirty = False
        self.line_number = -1
        self.compressed = None
        self.dictionary.clear()
        self.size_bytes = 0


class CompressedCacheSet:
    """An associative set whose ways are shared by 4-line superblocks.

    Each superblock may keep at most `budget_bytes` of compressed data resident.
    Inserting a line first evicts LRU members of its own superblock until the
    budget holds, then the set-wide LRU way if no way is free. Every address
    maps to this set.
    """

    def __init__(self, memory: MainMemory, associativity: int = ASSOCIATIVITY,
                 superblock_lines: int = SUPERBLOCK_LINES, budget_bytes: int = SUPERBLOCK_BUDGET_BYTES):
        if associativity <= 0 or superblock_lines <= 0:
            raise ValueError("Associativity and superblock size must be positive.")
        self.memory = memory
        self.ways = [CacheWay(i) for i in range(associativity)]
        self.superblock_lines = superblock_lines
        self.budget_bytes = budget_bytes
        self.offset_bits = LINE_SIZE_BYTES.bit_length() - 1
        self.offset_mask = LINE_SIZE_BYTES - 1

        self._clock = 0
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.write_backs = 0

    def _decompose_address(self, address: int) -> Tuple[int, int]:
        """Decomposes an address into line number and byte offset."""
        return address >> self.offset_bits, address & self.offset_mask

    def superblock_of(self, line_number: int) -> int:
        return line_number // self.superblock_lines

    def find_way(self, line_number: int) -> CacheWay | None:
        for way in self.ways:
            if way.valid and way.line_number == line_number:
                return way
        return None

    def is_resident(self, address: int) -> bool:
        line_number, _ = self._decompose_address(address)
        return self.find_way(line_number) is not None

    def resident_lines(self) -> List[int]:
        return [way.line_number for way in self.ways if way.valid]

    def superblock_bytes(self, superblock: int) -> int:
        """Compressed bytes the superblock currently keeps resident."""
        return sum(way.size_bytes for way in self.ways
                   if way.valid and self.superblock_of(way.line_number) == superblock)

    def access(self, address: int, is_write: bool = False, data: int | None = None) -> AccessResult:
        """Reads or writes one byte. Returns (HIT | MISS, byte)."""
        if is_write and (data is None or not 0 <= data <= 0xFF):
            raise ValueError(f"A write needs a byte value, got {data!r}.")

        line_number, offset = self._decompose_address(address)
        self._clock += 1
        way = self.find_way(line_number)

        if way is not None:
            self.hits += 1
            way.last_access = self._clock
            line = way.read_data()
            if is_write:
                line[offset] = data
                way.rewrite(line)
                # The line may have grown past what its superblock has left
                self._make_room(self.superblock_of(line_number), 0, need_way=False, keep=way)
            self.check_invariants()
            return AccessResult(AccessSpeed.HIT, line[offset])

        # Handle Miss (Write-Allocate)
        self.misses += 1
        line = self.memory.read_line(line_number)
        if is_write:
            line[offset] = data
        dictionary = Dictionary()
        compressed = compress(line, dictionary)

        self._make_room(self.superblock_of(line_number), compressed.size_bytes)
        way = self._free_way()
        way.install(line_number, compressed, dictionary, dirty=is_write, stamp=self._clock)

        self.check_invariants()
        return AccessResult(AccessSpeed.MISS, line[offset])

    def _free_way(self) -> CacheWay | None:
        for way in self.ways:
            if not way.valid:
                return way
        return None

    @staticmethod
    def _lru(ways: Iterable[CacheWay]) -> CacheWay | None:
        return min(ways, key=lambda way: way.last_access, default=None)

    def _make_room(self, superblock: int, incoming_bytes: int, need_way: bool = True, keep: CacheWay | None = None):
        while True:
            if self.superblock_bytes(superblock) + incoming_bytes > self.budget_bytes:
                victim = self._lru(way for way in self.ways
                                   if way.valid and way is not keep
                                   and self.superblock_of(way.line_number) == superblock)
            elif need_way and self._free_way() is None:
                victim = self._lru(way for way in self.ways if way.valid)
            else:
                return
            if victim is None:
                raise CapacityInvariantViolation(
                    f"Superblock {superblock:#x} cannot fit {incoming_bytes} more bytes in a {self.budget_bytes}-byte budget.")
            self._evict(victim)

    def _evict(self, way: CacheWay):
        if way.dirty:
            self.memory.write_line(way.line_number, way.read_data())
            self.write_backs += 1
        logger.debug(f"Evicting line {way.line_number:#x} ({way.size_bytes}B, dirty={way.dirty}) from way {way.index}")
        self.evictions += 1
        way.invalidate()

    def check_invariants(self):
        """Raises CapacityInvariantViolation if any superblock is over budget or a line is duplicated."""
        seen = set()
        usage: Dict[int, int] = {}
        for way in self.ways:
            if not way.valid:
                continue
            if way.line_number in seen:
                raise CapacityInvariantViolation(f"Line {way.line_number:#x} occupies more than one way.")
            seen.add(way.line_number)
            superblock = self.superblock_of(way.line_number)
            usage[superblock] = usage.get(superblock, 0) + way.size_bytes
        for superblock, used in usage.items():
            if used > self.budget_bytes:
                raise CapacityInvariantViolation(
                    f"Superblock {superblock:#x} holds {used}B, over its {self.budget_bytes}B budget.")

    def peek_line(self, line_number: int) -> bytearray:
        """Current contents of a line, resident or not. For debugging and tests only."""
        way = self.find_way(line_number)
        if way is not None:
            return way.read_data()
        return self.memory.read_line(line_number)

    def compressed_bits(self, line_number: int) -> int:
        """Compressed size of a line's current contents. For debugging and tests only."""
        return compress(self.peek_line(line_number)).size_bits

    def get_stats(self) -> Dict[str, Any]:
        """Returns a dictionary of cache statistics."""
        total_accesses = self.hits + self.misses
        if total_accesses == 0:
            return {"hit_rate": 0, "miss_rate": 0, "hits": 0, "misses": 0,
                    "evictions": self.evictions, "write_backs": self.write_backs}
        return {
            "hit_rate": self.hits / total_accesses,
            "miss_rate": self.misses / total_accesses,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "write_backs": self.write_backs,
        }
