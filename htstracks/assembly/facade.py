"""
TrackDataAssembly: the public entry point for track data.

Combines a TrackDataClient with a SampleCapabilityCache. Data operations
tolerate malformed payloads (returned as empty data); metadata operations
surface them.
"""

import logging
from typing import List, Optional

import numpy as np

from ..core.codec import BinaryCodec, TextCodec
from ..core.errors import MalformedResponse
from ..core.models import (
    GenomicRegion,
    ReadsResult,
    SampleCapability,
    SampleRef,
    Strand,
    expected_bin_count,
)
from ..integrations.service import ServiceEndpoint, TrackDataClient
from .capability_cache import SampleCapabilityCache

logger = logging.getLogger(__name__)


class TrackDataAssembly:
    """Track data access with memoized sample classification.

    Args:
        client: Configured TrackDataClient. Its codec is the one used for all
            data requests unless the binary fast path applies.
        prefer_binary_fast_path: Use the packed binary codec for samples with
            read support. Results are identical to the configured codec.
    """

    def __init__(self, client: TrackDataClient, prefer_binary_fast_path: bool = False):
        self.client = client
        self.codec: TextCodec = client.codec
        self.prefer_binary_fast_path = prefer_binary_fast_path
        self.capabilities = SampleCapabilityCache(client.fetch_capability_probe)
        self._binary = BinaryCodec()

    @classmethod
    def from_config(cls, config, session=None) -> 'TrackDataAssembly':
        """Create from a ServiceConfig."""
        endpoint = ServiceEndpoint(config.url, user=config.user, key=config.key)
        client = TrackDataClient(endpoint, codec=config.codec, timeout=config.timeout, session=session)
        return cls(client, prefer_binary_fast_path=config.prefer_binary_fast_path)

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _data_codec(self, sample: SampleRef) -> TextCodec:
        if self.prefer_binary_fast_path and self.has_read_support(sample):
            return self._binary
        return self.codec

    # Capabilities

    def get_capability(self, sample: SampleRef) -> SampleCapability:
        return self.capabilities.get_capability(sample)

    def invalidate(self, sample: SampleRef) -> bool:
        return self.capabilities.invalidate(sample)

    def has_read_support(self, sample: SampleRef) -> bool:
        """True if the sample is stored as a legacy binary read track (BRT)."""
        return self.get_capability(sample).has_read_support

    def is_vector_track(self, sample: SampleRef) -> bool:
        """True if the sample is stored as a binary vector track (BVT)."""
        return self.get_capability(sample).is_vector_track

    def get_read_length(self, sample: SampleRef) -> int:
        """Read length from the capability, or from the length endpoint if the probe omitted it."""
        capability = self.get_capability(sample)
        if capability.read_length is not None:
            return capability.read_length

        read_length = self.client.fetch_read_length(sample)
        self.capabilities.update_read_length(sample, read_length)
        return read_length

    # Data

    def fetch_starts(self, sample: SampleRef, region: GenomicRegion, window: int = 1) -> np.ndarray:
        codec = self._data_codec(sample)
        try:
            return self.client.fetch_starts(sample, region, window, codec=codec)
        except MalformedResponse as e:
            logger.warning(f"No start data for {sample} at {region}: {e}")
            return np.zeros(0, dtype=np.int64)

    def fetch_strands(self, sample: SampleRef, region: GenomicRegion, window: int = 1) -> List[Strand]:
        codec = self._data_codec(sample)
        try:
            return self.client.fetch_strands(sample, region, window, codec=codec)
        except MalformedResponse as e:
            logger.warning(f"No strand data for {sample} at {region}: {e}")
            return []

    def fetch_reads(self, sample: SampleRef, region: GenomicRegion, window: int = 1) -> ReadsResult:
        """Starts and strands for the same query, index-aligned."""
        starts = self.fetch_starts(sample, region, window)
        strands = self.fetch_strands(sample, region, window)
        if len(starts) != len(strands):
            raise MalformedResponse(
                f"{sample} at {region}: {len(starts)} starts but {len(strands)} strands"
            )
        return ReadsResult(starts, strands)

    def fetch_counts(self, sample: SampleRef, region: GenomicRegion, window: int) -> np.ndarray:
        codec = self._data_codec(sample)
        try:
            return self.client.fetch_counts(sample, region, window, codec=codec)
        except MalformedResponse as e:
            logger.warning(f"No count data for {sample} at {region}: {e}")
            return np.zeros(expected_bin_count(region, window), dtype=np.int64)

    def fetch_mapped_reads(self, sample: SampleRef, genome: Optional[str], window: int) -> int:
        return self.client.fetch_mapped_reads(sample, genome or sample.genome, window)

    def fetch_genome(self, sample: SampleRef) -> str:
        return self.client.fetch_genome(sample)

