from __future__ import annotations
from dataclasses import dataclass, asdict
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Sequence, Set

from ..cache.compressed_cache import ASSOCIATIVITY, SUPERBLOCK_LINES, AccessSpeed, CompressedCacheSet
from ..codec.cpack import LINE_SIZE_BYTES, WORD_SIZE_BYTES
from ..victim.buffer import BUFFER_SIZE_BYTES, VictimBuffer
from ..utils.logging import get_logger
from . import layouts

logger = get_logger(__name__)


class Phase(Enum):
    PRIMING = auto()
    PROBING = auto()
    RESOLVING = auto()
    DISAMBIGUATING = auto()
    VERIFYING = auto()
    DONE = auto()


@dataclass
class AttackResult:
    """Outcome and cost of one attack."""
    success: bool = False
    guesses_used: int = 0
    bytes_written: int = 0
    bytes_read: int = 0
    lines_reloaded: int = 0
    set_evictions: int = 0
    probes: int = 0
    secret: bytes = b""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["secret"] = self.secret.hex()
        return data


class AttackerController:
    """Recovers the victim's secret from HIT/MISS outcomes alone.

    The attacker owns `ASSOCIATIVITY` eviction lines, each in a superblock of its
    own, and otherwise only uses the victim's public read/write/verify calls.
    """

    def __init__(self, victim: VictimBuffer, cache: CompressedCacheSet, base_address: int = 0x0010_0000):
        self.victim = victim
        self.cache = cache
        self.secret_length = victim.secret_length
        self.secret_words = self.secret_length // WORD_SIZE_BYTES
        self.eviction_lines = [base_address + i * BUFFER_SIZE_BYTES for i in range(ASSOCIATIVITY)]
        # The line the victim's secret line displaces when it fits its budget
        self.probe_line = self.eviction_lines[SUPERBLOCK_LINES - 1]

        self.phase = Phase.PRIMING
        self.result = AttackResult()
        self.observations: List[AccessSpeed] = []
        # Last value written to each non-secret byte, None until the attacker first writes it
        self._written: List[int | None] = [None] * (BUFFER_SIZE_BYTES - self.secret_length)

    def _enter(self, phase: Phase):
        logger.debug(f"Attacker phase {self.phase.name} -> {phase.name}")
        self.phase = phase

    def _write(self, offset: int, data: bytes):
        """Writes `data` into the victim buffer, skipping bytes that already hold the right value."""
        for i, byte in enumerate(data):
            if self._written[offset + i] != byte:
                self.victim.write(offset + i, byte)
                self._written[offset + i] = byte
                self.result.bytes_written += 1

    def prime(self):
        """Fills victim lines 0-2 so the secret line is left with a known budget."""
        self._enter(Phase.PRIMING)
        for index in range(layouts.PRIMED_LINES):
            self._write(index * LINE_SIZE_BYTES, layouts.priming_line(index))

    def probe(self, attack_string: bytes) -> bool:
        """One eviction-probing round.

        Returns True if the secret line, carrying `attack_string`, compressed into
        the budget its superblock has left.
        """
        # Step 1: shape the secret line
        self._write(layouts.SECRET_LINE * LINE_SIZE_BYTES, attack_string)

        # Step 2: flush every victim line from the set
        for address in self.eviction_lines:
            self.cache.access(address)
            self.result.lines_reloaded += 1
        self.result.set_evictions += 1

        # Step 3: have the victim reload its superblock, secret line last
        for index in range(SUPERBLOCK_LINES):
            self.victim.read(index * LINE_SIZE_BYTES)
            self.result.bytes_read += 1

        # Step 4: lines 0-2 displaced the three oldest eviction lines. The secret
        # line displaces the fourth only if it fit; otherwise its superblock
        # dropped its own line 0 and the fourth eviction line is still here.
        speed = self.cache.access(self.probe_line).speed
        self.result.lines_reloaded += 1
        self.result.probes += 1
        self.observations.append(speed)
        return speed is AccessSpeed.MISS

    def find_shorts(self) -> List[int]:
        """Finds the upper two bytes of every secret word, in value order."""
        self._enter(Phase.PROBING)
        candidates = layouts.candidate_shorts()
        group_size = layouts.short_capacity(self.secret_words)
        found: List[int] = []
        for start in range(0, len(candidates), group_size):
            group = candidates[start:start + group_size]
            if self.probe(layouts.short_probe(group, self.secret_words)):
                found += self._isolate_shorts(group, self.secret_words - len(found))
                if len(found) >= self.secret_words:
                    break
        logger.debug(f"Leading shorts found: {[hex(s) for s in found]}")
        return found

    def _isolate_shorts(self, group: Sequence[int], wanted: int) -> List[int]:
        """Binary search inside a group known to hold at least one match."""
        if len(group) == 1:
            return list(group)
        half = len(group) // 2
        left, right = group[:half], group[half:]
        if not self.probe(layouts.short_probe(left, self.secret_words)):
            return self._isolate_shorts(right, wanted)
        matches = self._isolate_shorts(left, wanted)
        if len(matches) < wanted and self.probe(layouts.short_probe(right, self.secret_words)):
            matches += self._isolate_shorts(right, wanted - len(matches))
        return matches

    def resolve_byte(self, known: Set[int], make_probe: Callable[[int], bytes]) -> int | None:
        """Linear search over byte values, skipping zero and bytes already known to be taken."""
        for candidate in range(1, 0x100):
            if candidate in known:
                continue
            if self.probe(make_probe(candidate)):
                return candidate
        return None

    def resolve_word(self, short: int, known: Set[int]) -> bytes | None:
        """Recovers the low two bytes of the secret word starting with `short`."""
        n = self.secret_words
        second = self.resolve_byte(known, lambda c: layouts.second_byte_probe(short, c, n))
        if second is None:
            return None
        known.add(second)
        low = self.resolve_byte(known, lambda c: layouts.low_byte_probe(short, second, c, n))
        if low is None:
            return None
        known.add(low)
        return layouts.short_word(short, second, low)

    def run(self) -> AttackResult:
        """Runs all phases and submits at most `secret_words` guesses."""
        self.prime()

        shorts = self.find_shorts()
        if len(shorts) < self.secret_words:
            logger.warning(f"Attack failed to find the leading shorts (found {[hex(s) for s in shorts]})")
            return self._finish()

        self._enter(Phase.RESOLVING)
        known = {byte for short in shorts for byte in (short >> 8, short & 0xFF)}
        words = []
        for short in shorts:
            word = self.resolve_word(short, known)
            if word is None:
                logger.warning(f"Attack failed to resolve the word starting with {short:#06x}")
                return self._finish()
            logger.debug(f"Resolved secret word {word.hex()}")
            words.append(word)

        guesses = [b"".join(words)]
        if self.secret_words == 2:
            # Compression reveals the words but not their order
            self._enter(Phase.DISAMBIGUATING)
            guesses.append(words[1] + words[0])

        self._enter(Phase.VERIFYING)
        for guess in guesses:
            self.result.guesses_used += 1
            if self.victim.verify_guess(guess):
                self.result.success = True
                self.result.secret = guess
                break
        if not self.result.success:
            logger.warning("Every guess was rejected")
        return self._finish()

    def _finish(self) -> AttackResult:
        self._enter(Phase.DONE)
        logger.debug(f"Attack finished: {self.result}")
        return self.result
