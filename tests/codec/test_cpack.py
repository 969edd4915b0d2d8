import numpy as np
import pytest

from cca_sim.codec.cpack import (
    Dictionary, Pattern, bytes_to_words, compress, compressed_size, decompress, words_to_bytes,
)


def make_line(words):
    """Builds a line from up to 16 words, zero-padding the rest."""
    words = list(words) + [0] * (16 - len(words))
    return bytes(words_to_bytes(words))


def incompressible_line():
    # Distinct upper two bytes in every word, so nothing can match
    return b"".join(bytes([0x11, 0x22, i + 1, 0x80]) for i in range(16))


def test_zero_line_compresses_to_32_bits():
    compressed = compress(bytes(64))
    assert compressed.size_bits == 16 * 2
    assert compressed.size_bytes == 4
    assert compressed.patterns() == [Pattern.ZZZZ] * 16


def test_new_words_compress_to_544_bits():
    assert compressed_size(incompressible_line()) == 16 * 34
    assert compress(incompressible_line()).size_bytes == 68


def test_words_are_little_endian():
    words = bytes_to_words(bytes(range(64)))
    assert words[0] == 0x03020100
    assert words[15] == 0x3F3E3D3C


def test_pattern_costs():
    line = make_line([
        0x12345678,  # new
        0x12345678,  # exact match
        0x000000AB,  # only the low byte set
        0x123456FF,  # upper three bytes match
        0x1234ABCD,  # upper two bytes match
    ])
    compressed = compress(line)

    assert compressed.patterns()[:6] == [
        Pattern.XXXX, Pattern.MMMM, Pattern.ZZZX, Pattern.MMMX, Pattern.MMXX, Pattern.ZZZZ,
    ]
    # 34 + 6 + 10 + 14 + 22 + 11 zero words
    assert compressed.size_bits == 108
    assert compressed.size_bytes == 14


def test_only_new_words_enter_the_dictionary():
    dictionary = Dictionary()
    compress(make_line([0x12345678, 0x12345678, 0x123456FF, 0x1234ABCD, 0xAB]), dictionary)

    assert list(dictionary) == [0x12345678]


def test_compress_resets_a_supplied_dictionary():
    dictionary = Dictionary()
    dictionary.push(0x12345678)

    compressed = compress(make_line([0x12345678]), dictionary)

    assert compressed.patterns()[0] == Pattern.XXXX


def test_dictionary_is_fifo():
    dictionary = Dictionary(capacity=16)
    for word in range(1, 18):
        dictionary.push(word << 16)

    assert len(dictionary) == 16
    assert dictionary.lookup(1 << 16) is None
    assert dictionary.lookup(2 << 16) == 0
    assert dictionary.lookup(17 << 16) == 15


def test_dictionary_match_upper():
    dictionary = Dictionary()
    dictionary.push(0xAABBCCDD)
    dictionary.push(0x11223344)

    assert dictionary.match_upper(0x112233FF, 8) == 1
    assert dictionary.match_upper(0xAABB0000, 16) == 0
    assert dictionary.match_upper(0xAABC0000, 16) is None


def test_round_trip_after_fifo_overflow():
    """Decoder indices must follow the encoder's evictions."""
    a, b, c = 0x0A000000, 0x0B000000, 0x0C000000
    dictionary = Dictionary(capacity=2)
    line = make_line([a, b, c, a, c, b])

    compressed = compress(line, dictionary)

    # `a` was evicted by `c`, so it is new again
    assert compressed.patterns()[:6] == [
        Pattern.XXXX, Pattern.XXXX, Pattern.XXXX, Pattern.XXXX, Pattern.MMMM, Pattern.XXXX,
    ]
    assert decompress(compressed) == line


@pytest.mark.parametrize("line", [
    bytes(64),
    incompressible_line(),
    make_line([0x12345678, 0x12345678, 0xAB, 0x123456FF, 0x1234ABCD]),
    bytes(range(64)),
    bytes([0xFF]) * 64,
])
def test_decompress_inverts_compress(line):
    assert decompress(compress(line)) == line


def test_decompress_inverts_compress_on_random_lines():
    rng = np.random.default_rng(1234)
    for _ in range(200):
        # Small alphabets make partial matches likely
        alphabet = rng.integers(1, 256, size=int(rng.integers(1, 6)))
        line = bytes(int(b) for b in rng.choice(np.append(alphabet, 0), size=64))
        assert decompress(compress(line)) == line


def test_bad_line_length():
    with pytest.raises(ValueError, match="64 bytes"):
        compress(bytes(63))
