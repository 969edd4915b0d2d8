from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Iterator, List

LINE_SIZE_BYTES = 64
WORD_SIZE_BYTES = 4
WORDS_PER_LINE = LINE_SIZE_BYTES // WORD_SIZE_BYTES
DICTIONARY_ENTRIES = 16


class Pattern(str, Enum):
    """C-PACK word patterns, most significant byte first.

    z: zero byte, m: byte matched against a dictionary entry, x: literal byte.
    """

    ZZZZ = "zzzz"
    MMMM = "mmmm"
    ZZZX = "zzzx"
    MMMX = "mmmx"
    MMXX = "mmxx"
    XXXX = "xxxx"

    def __str__(self) -> str:
        return self.value


# 2-bit code, plus a 4-bit dictionary index and/or literal bits
PATTERN_BITS = {
    Pattern.ZZZZ: 2,
    Pattern.MMMM: 2 + 4,
    Pattern.ZZZX: 2 + 8,
    Pattern.MMMX: 2 + 4 + 8,
    Pattern.MMXX: 2 + 4 + 16,
    Pattern.XXXX: 2 + 32,
}


class Dictionary:
    """Bounded FIFO history of previously seen words.

    Only words encoded as ``xxxx`` are pushed, so entries are always distinct.
    When full, pushing drops the oldest entry and shifts every index down by one;
    the decoder performs the same pushes so indices stay in agreement.
    """

    def __init__(self, capacity: int = DICTIONARY_ENTRIES):
        self.capacity = capacity
        self.entries: Deque[int] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[int]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> int:
        return self.entries[index]

    def clear(self):
        self.entries.clear()

    def push(self, word: int):
        self.entries.append(word)

    def lookup(self, word: int) -> int | None:
        """Index of an exact match, or None."""
        try:
            return self.entries.index(word)
        except ValueError:
            return None

    def match_upper(self, word: int, shift: int) -> int | None:
        """Index of the first entry whose bits above `shift` equal the word's."""
        target = word >> shift
        for index, entry in enumerate(self.entries):
            if entry >> shift == target:
                return index
        return None


@dataclass(frozen=True)
class EncodedWord:
    """One (pattern, payload) pair of a compressed line."""
    pattern: Pattern
    index: int | None = None
    literal: int = 0

    @property
    def bits(self) -> int:
        return PATTERN_BITS[self.pattern]


@dataclass
class CompressedLine:
    """Codec output for a 64-byte line."""
    words: List[EncodedWord] = field(default_factory=list)
    dictionary_entries: int = DICTIONARY_ENTRIES

    @property
    def size_bits(self) -> int:
        return sum(word.bits for word in self.words)

    @property
    def size_bytes(self) -> int:
        return (self.size_bits + 7) // 8

    def patterns(self) -> List[Pattern]:
        return [word.pattern for word in self.words]


def bytes_to_words(line: bytes) -> List[int]:
    """Splits a line into little-endian 32-bit words."""
    if len(line) != LINE_SIZE_BYTES:
        raise ValueError(f"A line must be {LINE_SIZE_BYTES} bytes, got {len(line)}.")
    return [int.from_bytes(line[i:i + WORD_SIZE_BYTES], "little")
            for i in range(0, LINE_SIZE_BYTES, WORD_SIZE_BYTES)]


def words_to_bytes(words: List[int]) -> bytearray:
    line = bytearray()
    for word in words:
        line += word.to_bytes(WORD_SIZE_BYTES, "little")
    return line


def encode_word(word: int, dictionary: Dictionary) -> EncodedWord:
    """Encodes a single word, pushing it into the dictionary only when it is new."""
    if word == 0:
        return EncodedWord(Pattern.ZZZZ)

    index = dictionary.lookup(word)
    if index is not None:
        return EncodedWord(Pattern.MMMM, index)

    if word <= 0xFF:
        return EncodedWord(Pattern.ZZZX, literal=word)

    index = dictionary.match_upper(word, 8)
    if index is not None:
        return EncodedWord(Pattern.MMMX, index, word & 0xFF)

    index = dictionary.match_upper(word, 16)
    if index is not None:
        return EncodedWord(Pattern.MMXX, index, word & 0xFFFF)

    dictionary.push(word)
    return EncodedWord(Pattern.XXXX, literal=word)


def decode_word(encoded: EncodedWord, dictionary: Dictionary) -> int:
    pattern = encoded.pattern
    if pattern == Pattern.ZZZZ:
        return 0
    if pattern == Pattern.MMMM:
        return dictionary[encoded.index]
    if pattern == Pattern.ZZZX:
        return encoded.literal
    if pattern == Pattern.MMMX:
        return (dictionary[encoded.index] >> 8 << 8) | encoded.literal
    if pattern == Pattern.MMXX:
        return (dictionary[encoded.index] >> 16 << 16) | encoded.literal
    dictionary.push(encoded.literal)
    return encoded.literal


def compress(line: bytes, dictionary: Dictionary | None = None) -> CompressedLine:
    """Compresses a 64-byte line.

    The dictionary, if given, is reset first and holds the history of this line
    once encoding is done.
    """
    if dictionary is None:
        dictionary = Dictionary()
    dictionary.clear()
    words = [encode_word(word, dictionary) for word in bytes_to_words(line)]
    return CompressedLine(words, dictionary.capacity)


def decompress(compressed: CompressedLine) -> bytearray:
    """Exact inverse of `compress`."""
    dictionary = Dictionary(compressed.dictionary_entries)
    return words_to_bytes([decode_word(word, dictionary) for word in compressed.words])


def compressed_size(line: bytes) -> int:
    """Compressed size of a line in bits, starting from an empty dictionary."""
    return compress(line).size_bits
