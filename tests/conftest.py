"""Shared fixtures: an in-memory stand-in for the track assembly service."""

import json
import threading

import numpy as np
import pytest

from htstracks.core.models import GenomicRegion, SampleRef


BASE_URL = "http://tracks.example.org/api/v1"

# One logical dataset served in both framings
REGION = GenomicRegion("chr1", 1000, 1100, "hg19")
WINDOW = 25
STARTS = [1010, 1005, 1050, 1090, 1062]
STRANDS = ["+", "-", "-", "+", "-"]
COUNTS = [2, 0, 2, 1]


class FakeResponse:
    def __init__(self, content=b"", status_code=200, reason="OK"):
        self.content = content
        self.status_code = status_code
        self.reason = reason

    @property
    def text(self):
        return self.content.decode("utf-8", errors="replace")


def json_response(doc, status_code=200):
    return FakeResponse(json.dumps(doc).encode("utf-8"), status_code)


def packed_ints(values):
    return np.asarray(values, dtype=">i4").tobytes()


class FakeSession:
    """Routes GET requests by URL to canned responses or handler callables.

    A handler is called as handler(url, params) and returns a FakeResponse
    or raises.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.auth = None
        self.closed = False
        self._lock = threading.Lock()

    def route(self, path, response):
        self.routes[f"{BASE_URL}/{path}"] = response
        return self

    def get(self, url, params=None, timeout=None):
        with self._lock:
            self.calls.append((url, dict(params or {})))
        if url not in self.routes:
            return FakeResponse(b"not found", 404, "Not Found")
        response = self.routes[url]
        if callable(response):
            return response(url, params or {})
        return response

    def calls_to(self, path):
        return [c for c in self.calls if c[0] == f"{BASE_URL}/{path}"]

    def close(self):
        self.closed = True


@pytest.fixture
def sample():
    return SampleRef("S1", "hg19", name="H3K4me3")


@pytest.fixture
def session():
    """Service serving the shared dataset for sample S1 in both framings."""
    s = FakeSession()
    region_path = "S1/hg19/chr1/1000/1100"

    s.route(f"starts/{region_path}", json_response([{"s": STARTS}]))
    s.route(f"strands/{region_path}", json_response([{"s": STRANDS}]))
    s.route("counts", json_response([{"c": COUNTS}]))

    s.route(f"starts/{region_path}/b", FakeResponse(packed_ints(STARTS)))
    s.route(f"strands/{region_path}/b", FakeResponse("".join(STRANDS).encode("ascii")))
    s.route(f"counts/{region_path}/{WINDOW}/b", FakeResponse(packed_ints(COUNTS)))

    s.route("mapped", json_response([2000000]))
    s.route("genome/S1", json_response([{"genome": "hg19"}]))
    s.route("type", json_response([{"type": "brt", "length": 36}]))
    s.route("length/S1", json_response([{"length": 36}]))
    return s
