"""
Per-sample capability memoization.

Classification probes are costly, so each sample is probed at most once per
cache. Concurrent callers for a sample that is not yet classified share one
in-flight probe. A probe that fails caches nothing and can be retried.
"""

import logging
import threading
from concurrent.futures import Future
from dataclasses import replace
from typing import Callable, Dict, Optional

from ..core.models import CapabilityProbe, SampleCapability, SampleRef

logger = logging.getLogger(__name__)


class SampleCapabilityCache:
    """Thread-safe, single-flight cache of SampleCapability by sample id.

    Args:
        probe: Callable returning the CapabilityProbe for a sample (usually
            ``TrackDataClient.fetch_capability_probe``)
    """

    def __init__(self, probe: Callable[[SampleRef], CapabilityProbe]):
        self._probe = probe
        self._lock = threading.Lock()
        self._entries: Dict[object, SampleCapability] = {}
        self._in_flight: Dict[object, Future] = {}
        self.probe_count = 0

    def get_capability(self, sample: SampleRef) -> SampleCapability:
        key = sample.sample_id

        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                return cached

            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[key] = future
                self.probe_count += 1

        if not owner:
            return future.result()

        try:
            capability = self._probe(sample).to_capability()
        except BaseException as e:
            with self._lock:
                if self._in_flight.get(key) is future:
                    del self._in_flight[key]
            future.set_exception(e)
            raise

        with self._lock:
            # A sample invalidated mid-probe is not stored
            if self._in_flight.get(key) is future:
                self._entries[key] = capability
                del self._in_flight[key]
        future.set_result(capability)

        logger.info(f"Sample {sample} classified as {capability.storage_kind.value}")
        return capability

    def peek(self, sample: SampleRef) -> Optional[SampleCapability]:
        """Cached capability, or None if the sample has not been classified."""
        with self._lock:
            return self._entries.get(sample.sample_id)

    def update_read_length(self, sample: SampleRef, read_length: int) -> None:
        """Record a read length found outside the probe for a classified sample."""
        with self._lock:
            cached = self._entries.get(sample.sample_id)
            if cached is not None:
                self._entries[sample.sample_id] = replace(cached, read_length=read_length)

    def invalidate(self, sample: SampleRef) -> bool:
        """Forget a sample, including any probe still running for it.

        Returns True if it was cached.
        """
        with self._lock:
            self._in_flight.pop(sample.sample_id, None)
            return self._entries.pop(sample.sample_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._in_flight.clear()

    def __contains__(self, sample: SampleRef) -> bool:
        with self._lock:
            return sample.sample_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
