"""
Track kinds and the data each one binds for a region.

Every source implements the same small interface:
    kind                          TrackKind tag
    name                          display name
    fetch(region, window, normalize) -> BoundData
    to_serializable()             static description as a dict
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd

from ..core.models import GenomicRegion, ReadsResult, SampleRef, expected_bin_count, validate_window

logger = logging.getLogger(__name__)

BEDGRAPH_COLUMNS = ['chrom', 'start', 'end', 'value']


class TrackKind(Enum):
    """Supported track kinds."""
    COUNTS = 'counts'
    READS = 'reads'
    BEDGRAPH = 'bedgraph'


@dataclass
class BoundData:
    """Values bound to a track for one region.

    Attributes:
        region: Region the values cover
        window: Bin width
        values: One value per bin
        mapped_reads: Total mapped reads, when fetched for normalization
        reads: Underlying reads for read-based tracks
    """
    region: GenomicRegion
    window: int
    values: np.ndarray
    mapped_reads: Optional[int] = None
    reads: Optional[ReadsResult] = None

    def normalized(self) -> np.ndarray:
        """Values as reads per million mapped reads, or unchanged if unknown."""
        if not self.mapped_reads or self.mapped_reads <= 0:
            return self.values.astype(float)
        return self.values * (1e6 / self.mapped_reads)


class CountsSource:
    """Service-binned read counts for one sample."""

    kind = TrackKind.COUNTS

    def __init__(self, assembly, sample: SampleRef, name: Optional[str] = None):
        self.assembly = assembly
        self.sample = sample
        self.name = name or str(sample)
        self._mapped: Dict[Tuple[str, int], int] = {}
        self._lock = threading.Lock()

    def mapped_reads(self, genome: str, window: int) -> int:
        key = (genome, window)
        with self._lock:
            if key in self._mapped:
                return self._mapped[key]
        mapped = self.assembly.fetch_mapped_reads(self.sample, genome, window)
        logger.debug(f"Mapped reads for {self.sample} ({genome}, bw={window}): {mapped}")
        with self._lock:
            self._mapped[key] = mapped
        return mapped

    def fetch(self, region: GenomicRegion, window: int, normalize: bool = False) -> BoundData:
        counts = self.assembly.fetch_counts(self.sample, region, window)
        mapped = None
        if normalize:
            mapped = self.mapped_reads(region.genome or self.sample.genome, window)
        return BoundData(region, window, counts, mapped_reads=mapped)

    def to_serializable(self) -> Dict[str, Any]:
        return {
            'type': self.kind.value,
            'name': self.name,
            'id': self.sample.sample_id,
            'genome': self.sample.genome,
        }


class ReadsSource:
    """Read starts and strands, piled up into per-bin coverage on the client."""

    kind = TrackKind.READS

    def __init__(self, assembly, sample: SampleRef, name: Optional[str] = None):
        self.assembly = assembly
        self.sample = sample
        self.name = name or str(sample)

    def fetch(self, region: GenomicRegion, window: int, normalize: bool = False) -> BoundData:
        reads = self.assembly.fetch_reads(self.sample, region, window)
        read_length = self.assembly.get_read_length(self.sample)
        coverage = pileup(reads.starts, read_length, region, window)
        return BoundData(region, window, coverage, reads=reads)

    def to_serializable(self) -> Dict[str, Any]:
        return {
            'type': self.kind.value,
            'name': self.name,
            'id': self.sample.sample_id,
            'genome': self.sample.genome,
        }


class BedGraphSource:
    """Signal intervals already loaded into memory.

    Args:
        intervals: DataFrame with chrom, start, end, value columns
        name: Track name
    """

    kind = TrackKind.BEDGRAPH

    def __init__(self, intervals: pd.DataFrame, name: str = 'bedgraph'):
        missing = [c for c in BEDGRAPH_COLUMNS if c not in intervals.columns]
        if missing:
            raise ValueError(f"bedGraph intervals missing columns: {', '.join(missing)}")
        self.intervals = intervals[BEDGRAPH_COLUMNS].copy()
        self.name = name

    def fetch(self, region: GenomicRegion, window: int, normalize: bool = False) -> BoundData:
        return BoundData(region, window, bin_max(self.intervals, region, window))

    def to_serializable(self) -> Dict[str, Any]:
        return {
            'type': self.kind.value,
            'name': self.name,
            'intervals': len(self.intervals),
        }


def pileup(starts: np.ndarray, read_length: int, region: GenomicRegion, window: int) -> np.ndarray:
    """
    Count reads overlapping each bin of a region.

    Each read covers [start, start + read_length). Starts need not be sorted.

    Args:
        starts: Read start positions
        read_length: Read length in bp
        region: Region to bin
        window: Bin width

    Returns:
        int64 array of length ceil(region.length / window)
    """
    window = validate_window(window)
    n_bins = expected_bin_count(region, window)
    coverage = np.zeros(n_bins + 1, dtype=np.int64)
    if n_bins == 0 or len(starts) == 0:
        return coverage[:n_bins]

    starts = np.asarray(starts, dtype=np.int64)
    lo = np.maximum(starts, region.start)
    hi = np.minimum(starts + max(read_length, 1), region.end)
    keep = hi > lo

    first = (lo[keep] - region.start) // window
    last = (hi[keep] - 1 - region.start) // window

    np.add.at(coverage, first, 1)
    np.add.at(coverage, last + 1, -1)
    return np.cumsum(coverage[:n_bins])


def bin_max(intervals: pd.DataFrame, region: GenomicRegion, window: int) -> np.ndarray:
    """Maximum interval value overlapping each bin (0 where nothing overlaps)."""
    window = validate_window(window)
    n_bins = expected_bin_count(region, window)
    values = np.full(n_bins, -np.inf)
    if n_bins == 0:
        return values

    overlapping = intervals[
        (intervals['chrom'] == region.chr)
        & (intervals['start'] < region.end)
        & (intervals['end'] > region.start)
    ]

    for start, end, value in overlapping[['start', 'end', 'value']].itertuples(index=False):
        first = (max(int(start), region.start) - region.start) // window
        last = (min(int(end), region.end) - 1 - region.start) // window
        values[first:last + 1] = np.maximum(values[first:last + 1], float(value))

    values[np.isneginf(values)] = 0.0
    return values
