import sys
import os

import pytest

# Make the 'cca_sim' package importable without installing it.
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cca_sim.cache.memory import MainMemory
from cca_sim.cache.compressed_cache import CompressedCacheSet


@pytest.fixture
def memory():
    return MainMemory()


@pytest.fixture
def cache(memory):
    """A fresh 8-way compressed set backed by `memory`."""
    return CompressedCacheSet(memory)
