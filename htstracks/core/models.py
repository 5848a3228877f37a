"""
Data models for HTSTracks track queries.

Value types identifying a signal request (sample, region, window) and the
per-sample capability record produced by the classification probe.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

import numpy as np


# chr1:1,000-2,000 style locations
REGION_PATTERN = re.compile(r'^\s*([^:\s]+):([\d,]+)-([\d,]+)\s*$')


class Strand(Enum):
    """Read strand."""
    PLUS = '+'
    MINUS = '-'

    @classmethod
    def parse(cls, symbol) -> 'Strand':
        """Parse a strand symbol; '-' is minus, anything else is plus."""
        if isinstance(symbol, (bytes, bytearray)):
            symbol = symbol.decode('ascii', errors='replace')
        return cls.MINUS if symbol == '-' else cls.PLUS


class StorageKind(Enum):
    """Remote storage format of a sample."""
    BRT = 'brt'  # legacy binary read track
    BVT = 'bvt'  # binary vector track
    OTHER = 'other'

    @classmethod
    def from_probe(cls, value: Optional[str]) -> 'StorageKind':
        if value is None:
            return cls.OTHER
        value = str(value).strip().lower()
        for kind in (cls.BRT, cls.BVT):
            if value == kind.value:
                return kind
        return cls.OTHER


@dataclass(frozen=True, eq=False)
class SampleRef:
    """A loaded sample on the remote service.

    Attributes:
        sample_id: Opaque service identifier
        genome: Genome assembly the sample was mapped to (e.g. 'hg19')
        name: Display name, not part of identity
    """
    sample_id: Union[str, int]
    genome: str = ''
    name: Optional[str] = None

    def __eq__(self, other):
        if not isinstance(other, SampleRef):
            return NotImplemented
        return self.sample_id == other.sample_id

    def __hash__(self):
        return hash(self.sample_id)

    def __str__(self) -> str:
        return self.name or str(self.sample_id)


@dataclass(frozen=True)
class GenomicRegion:
    """Chromosome interval on a genome. Coordinates are as sent to the service."""
    chr: str
    start: int
    end: int
    genome: str = ''

    def __post_init__(self):
        if self.start < 0 or self.end < 0:
            raise ValueError(f"Region coordinates must be non-negative: {self.start}-{self.end}")
        if self.start > self.end:
            raise ValueError(f"Region start {self.start} is after end {self.end}")

    @property
    def length(self) -> int:
        return self.end - self.start

    @classmethod
    def parse(cls, location: str, genome: str = '') -> 'GenomicRegion':
        """
        Parse a location string.

        Args:
            location: Location such as 'chr1:10,000-20,000'
            genome: Genome identifier to attach

        Returns:
            GenomicRegion

        Examples:
            >>> GenomicRegion.parse('chr3:100-250', 'hg19')
            GenomicRegion(chr='chr3', start=100, end=250, genome='hg19')
        """
        match = REGION_PATTERN.match(location)
        if not match:
            raise ValueError(f"Invalid region '{location}', expected chr:start-end")

        chrom, start, end = match.groups()
        return cls(
            chr=chrom,
            start=int(start.replace(',', '')),
            end=int(end.replace(',', '')),
            genome=genome,
        )

    def __str__(self) -> str:
        return f"{self.chr}:{self.start}-{self.end}"


def validate_window(window: int) -> int:
    """Check a bin width is a positive integer and return it."""
    if isinstance(window, bool) or not isinstance(window, (int, np.integer)):
        raise ValueError(f"Window must be an integer, got {window!r}")
    if window < 1:
        raise ValueError(f"Window must be >= 1, got {window}")
    return int(window)


def expected_bin_count(region: GenomicRegion, window: int) -> int:
    """Number of bins of width ``window`` spanning ``region``."""
    window = validate_window(window)
    return math.ceil(region.length / window)


@dataclass(frozen=True)
class SampleCapability:
    """Classification of a sample's storage format."""
    storage_kind: StorageKind
    read_length: Optional[int] = None

    @property
    def has_read_support(self) -> bool:
        return self.storage_kind is StorageKind.BRT

    @property
    def is_vector_track(self) -> bool:
        return self.storage_kind is StorageKind.BVT


@dataclass(frozen=True)
class CapabilityProbe:
    """Raw payload of the 'type' endpoint."""
    kind: str
    read_length: Optional[int] = None

    def to_capability(self) -> SampleCapability:
        read_length = self.read_length if self.read_length and self.read_length > 0 else None
        return SampleCapability(StorageKind.from_probe(self.kind), read_length)


@dataclass
class ReadsResult:
    """Starts and strands fetched together for one query.

    Index i of ``starts`` and ``strands`` describe the same read.
    """
    starts: np.ndarray
    strands: List[Strand]

    def __post_init__(self):
        if len(self.starts) != len(self.strands):
            raise ValueError(
                f"Starts ({len(self.starts)}) and strands ({len(self.strands)}) differ in length"
            )

    def __len__(self) -> int:
        return len(self.starts)

    @property
    def is_sorted(self) -> bool:
        """True if starts are in ascending order."""
        return bool(np.all(np.diff(self.starts) >= 0))

    def __iter__(self):
        return iter(zip(self.starts.tolist(), self.strands))
