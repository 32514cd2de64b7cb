"""
Gemeinsame Fixtures fuer die cachedio-Tests
"""
import sys
from pathlib import Path

import pytest

# Pfad zum src-Verzeichnis hinzufuegen
sys.path.insert(0, str(Path(__file__).parent / "src"))

from cachedio.protocols import CachedFileProtocol
from cachedio.stream import BufferAllocator


class TrackingAllocator(BufferAllocator):
    """Zaehlt Allokationen und noch nicht freigegebene Pufferbloecke"""

    def __init__(self):
        self.allocations = 0
        self.releases = 0
        self.sizes = []
        self.outstanding = []

    def allocate(self, size):
        block = super().allocate(size)
        self.allocations += 1
        self.sizes.append(size)
        self.outstanding.append(block)
        return block

    def release(self, block):
        super().release(block)
        self.releases += 1
        self.outstanding = [b for b in self.outstanding if b is not block]


@pytest.fixture
def allocator():
    return TrackingAllocator()


@pytest.fixture
def protocol(allocator):
    return CachedFileProtocol(allocator=allocator)
