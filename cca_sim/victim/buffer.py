from __future__ import annotations
from typing import Callable, Iterable, List, Sequence

import numpy as np

from ..cache.compressed_cache import CompressedCacheSet, SUPERBLOCK_BUDGET_BYTES
from ..config import SUPPORTED_SECRET_LENGTHS
from ..errors import AccessDenied, InvalidConfiguration, SecretGenerationFailure
from ..utils.logging import get_logger

BUFFER_SIZE_BYTES = SUPERBLOCK_BUDGET_BYTES

# A secret source yields one candidate byte per call
ByteSource = Callable[[], int]

logger = get_logger(__name__)


class RandomByteSource:
    """Draws bytes uniformly from [low, high) with a numpy Generator."""

    def __init__(self, seed: int | None = None, low: int = 1, high: int = 256):
        if not 0 <= low < high <= 256:
            raise ValueError(f"Byte range [{low}, {high}) is not within [0, 256).")
        self.rng = np.random.default_rng(seed)
        self.low = low
        self.high = high

    def __call__(self) -> int:
        return int(self.rng.integers(self.low, self.high))


class SequenceByteSource:
    """Replays a fixed sequence of bytes, for reproducible trials."""

    def __init__(self, values: Iterable[int]):
        self._values = iter(values)

    def __call__(self) -> int:
        try:
            return next(self._values)
        except StopIteration:
            raise SecretGenerationFailure("Secret byte sequence exhausted.") from None


def draw_secret(source: ByteSource, length: int, max_draws: int = 1024) -> List[int]:
    """Draws `length` unique, non-zero bytes, skipping zeros and repeats."""
    secret: List[int] = []
    draws = 0
    while len(secret) < length:
        if draws >= max_draws:
            raise SecretGenerationFailure(
                f"Only {len(secret)} of {length} unique non-zero bytes after {draws} draws.")
        byte = int(source())
        draws += 1
        if 0 < byte <= 0xFF and byte not in secret:
            secret.append(byte)
    return secret


class VictimBuffer:
    """A 256-byte buffer whose last bytes hold a secret.

    Every other byte can be read and written by anyone; the secret region
    cannot. All accesses go through the shared compressed cache set.
    """

    def __init__(self, cache: CompressedCacheSet, secret: Sequence[int], base_address: int = 0x0001_0000):
        if len(secret) not in SUPPORTED_SECRET_LENGTHS:
            raise InvalidConfiguration(
                f"Unsupported secret length {len(secret)}; expected one of {SUPPORTED_SECRET_LENGTHS}.")
        if any(not 0 < byte <= 0xFF for byte in secret) or len(set(secret)) != len(secret):
            raise InvalidConfiguration("Secret bytes must be unique and non-zero.")
        if base_address % BUFFER_SIZE_BYTES != 0:
            raise InvalidConfiguration(f"Victim base address {base_address:#x} is not superblock-aligned.")

        self.cache = cache
        self.base_address = base_address
        self._secret = bytes(secret)
        self.secret_offset = BUFFER_SIZE_BYTES - len(secret)

        for i, byte in enumerate(self._secret):
            self.cache.access(self.base_address + self.secret_offset + i, True, byte)

    @classmethod
    def generate(cls, cache: CompressedCacheSet, secret_length: int, source: ByteSource,
                 base_address: int = 0x0001_0000, max_draws: int = 1024) -> VictimBuffer:
        """Creates a victim whose secret is drawn from `source`."""
        if secret_length not in SUPPORTED_SECRET_LENGTHS:
            raise InvalidConfiguration(
                f"Unsupported secret length {secret_length}; expected one of {SUPPORTED_SECRET_LENGTHS}.")
        return cls(cache, draw_secret(source, secret_length, max_draws), base_address)

    @property
    def secret_length(self) -> int:
        return len(self._secret)

    @property
    def size(self) -> int:
        return BUFFER_SIZE_BYTES

    def _check_offset(self, offset: int):
        if not 0 <= offset < self.secret_offset:
            raise AccessDenied(offset)

    def read(self, offset: int) -> int:
        """Reads a byte of the buffer. Raises AccessDenied on the secret or out of bounds."""
        self._check_offset(offset)
        return self.cache.access(self.base_address + offset).data

    def write(self, offset: int, value: int):
        """Writes a byte of the buffer. Raises AccessDenied on the secret or out of bounds."""
        self._check_offset(offset)
        if not 0 <= value <= 0xFF:
            raise ValueError(f"Byte value {value} out of range.")
        self.cache.access(self.base_address + offset, True, value)

    def verify_guess(self, candidate: Sequence[int]) -> bool:
        """Whether `candidate` equals the secret. Meant for a final confirmation only."""
        if len(candidate) != len(self._secret):
            return False
        if any(not 0 <= byte <= 0xFF for byte in candidate):
            return False
        return bytes(candidate) == self._secret
