"""Tests for htstracks.assembly.capability_cache module."""

import threading
import time

import pytest

from htstracks.assembly.capability_cache import SampleCapabilityCache
from htstracks.core.errors import TransportError
from htstracks.core.models import CapabilityProbe, SampleRef, StorageKind


class CountingProbe:
    """Probe callable that records calls and can block or fail."""

    def __init__(self, kind="brt", read_length=None, failures=0, gate=None):
        self.kind = kind
        self.read_length = read_length
        self.failures = failures
        self.gate = gate
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, sample):
        with self._lock:
            self.calls.append(sample.sample_id)
            fail = self.failures > 0
            if fail:
                self.failures -= 1
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if fail:
            raise TransportError("service unavailable")
        return CapabilityProbe(self.kind, self.read_length)


class TestMemoization:
    """Test that probes run once per sample."""

    def test_probe_once(self):
        probe = CountingProbe("brt", 36)
        cache = SampleCapabilityCache(probe)
        sample = SampleRef("S1")

        first = cache.get_capability(sample)
        second = cache.get_capability(SampleRef("S1", name="same sample"))

        assert first == second
        assert first.storage_kind is StorageKind.BRT
        assert probe.calls == ["S1"]
        assert cache.probe_count == 1

    def test_negative_result_cached(self):
        probe = CountingProbe("bam")
        cache = SampleCapabilityCache(probe)
        sample = SampleRef("S2")

        for _ in range(3):
            assert cache.get_capability(sample).storage_kind is StorageKind.OTHER

        assert probe.calls == ["S2"]
        assert sample in cache

    def test_distinguishes_unclassified(self):
        cache = SampleCapabilityCache(CountingProbe("bam"))
        sample = SampleRef("S2")

        assert cache.peek(sample) is None
        cache.get_capability(sample)
        assert cache.peek(sample).storage_kind is StorageKind.OTHER

    def test_samples_probed_separately(self):
        probe = CountingProbe("bvt")
        cache = SampleCapabilityCache(probe)

        cache.get_capability(SampleRef("A"))
        cache.get_capability(SampleRef("B"))

        assert sorted(probe.calls) == ["A", "B"]
        assert len(cache) == 2

    def test_invalidate(self):
        probe = CountingProbe("brt")
        cache = SampleCapabilityCache(probe)
        sample = SampleRef("S1")

        cache.get_capability(sample)
        assert cache.invalidate(sample)
        assert not cache.invalidate(sample)
        cache.get_capability(sample)

        assert probe.calls == ["S1", "S1"]

    def test_clear(self):
        cache = SampleCapabilityCache(CountingProbe())
        cache.get_capability(SampleRef("S1"))
        cache.clear()
        assert len(cache) == 0

    def test_update_read_length(self):
        cache = SampleCapabilityCache(CountingProbe("brt"))
        sample = SampleRef("S1")

        cache.update_read_length(sample, 50)  # unclassified: ignored
        assert cache.peek(sample) is None

        cache.get_capability(sample)
        cache.update_read_length(sample, 50)
        assert cache.get_capability(sample).read_length == 50


class TestFailures:
    """Test that failed probes are not cached."""

    def test_failed_probe_leaves_sample_unclassified(self):
        probe = CountingProbe("bvt", failures=1)
        cache = SampleCapabilityCache(probe)
        sample = SampleRef("S1")

        with pytest.raises(TransportError):
            cache.get_capability(sample)

        assert sample not in cache
        assert cache.get_capability(sample).storage_kind is StorageKind.BVT
        assert len(probe.calls) == 2


class TestConcurrency:
    """Test single-flight behaviour under concurrent callers."""

    N_CALLERS = 8

    def _run_concurrently(self, cache, sample):
        barrier = threading.Barrier(self.N_CALLERS)
        results = [None] * self.N_CALLERS
        errors = [None] * self.N_CALLERS

        def worker(i):
            barrier.wait()
            try:
                results[i] = cache.get_capability(sample)
            except Exception as e:
                errors[i] = e

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(self.N_CALLERS)]
        for t in threads:
            t.start()
        return threads, results, errors

    def test_concurrent_callers_share_one_probe(self):
        gate = threading.Event()
        probe = CountingProbe("brt", 36, gate=gate)
        cache = SampleCapabilityCache(probe)
        sample = SampleRef("S1")

        threads, results, errors = self._run_concurrently(cache, sample)
        time.sleep(0.1)
        gate.set()
        for t in threads:
            t.join(timeout=5)

        assert errors == [None] * self.N_CALLERS
        assert len(probe.calls) == 1
        assert all(r is results[0] for r in results)
        assert results[0].storage_kind is StorageKind.BRT

    def test_concurrent_callers_share_failure(self):
        gate = threading.Event()
        probe = CountingProbe("brt", failures=1, gate=gate)
        cache = SampleCapabilityCache(probe)
        sample = SampleRef("S1")

        threads, results, errors = self._run_concurrently(cache, sample)
        time.sleep(0.1)
        gate.set()
        for t in threads:
            t.join(timeout=5)

        failed = [e for e in errors if e is not None]
        assert failed
        assert all(isinstance(e, TransportError) for e in failed)
        assert sample not in cache or cache.peek(sample).storage_kind is StorageKind.BRT

        # Nothing bad was cached; a later call classifies correctly
        assert cache.get_capability(sample).storage_kind is StorageKind.BRT

    def test_invalidate_during_probe_drops_result(self):
        gate = threading.Event()
        probe = CountingProbe("brt", gate=gate)
        cache = SampleCapabilityCache(probe)
        sample = SampleRef("S1")

        thread = threading.Thread(target=cache.get_capability, args=(sample,))
        thread.start()
        time.sleep(0.1)

        assert not cache.invalidate(sample)
        gate.set()
        thread.join(timeout=5)

        assert sample not in cache
        cache.get_capability(sample)
        assert len(probe.calls) == 2

    def test_callers_after_invalidate_start_new_probe(self):
        gate = threading.Event()
        probe = CountingProbe("bvt", gate=gate)
        cache = SampleCapabilityCache(probe)
        sample = SampleRef("S1")

        first = threading.Thread(target=cache.get_capability, args=(sample,))
        first.start()
        time.sleep(0.1)
        cache.clear()

        gate.set()
        assert cache.get_capability(sample).storage_kind is StorageKind.BVT
        first.join(timeout=5)

        assert len(probe.calls) == 2
        assert sample in cache
