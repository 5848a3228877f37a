"""
HTTP client for the remote track assembly service.

Requests are framed by a codec, sent with requests, and failures are mapped
onto the TrackDataError taxonomy.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import requests

from ..core.codec import Operation, ServiceRequest, TextCodec, WireCodec
from ..core.errors import RemoteRejected, TransportError
from ..core.models import CapabilityProbe, GenomicRegion, SampleRef, Strand

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class ServiceEndpoint:
    """Base address of the service plus optional credentials."""
    base_url: str
    user: Optional[str] = None
    key: Optional[str] = None

    @property
    def auth(self) -> Optional[Tuple[str, str]]:
        if self.user is None:
            return None
        return (self.user, self.key or '')

    def __repr__(self) -> str:
        return f"ServiceEndpoint(base_url={self.base_url!r}, user={self.user!r})"


class TrackDataClient:
    """Stateless (per call) access to the service endpoints.

    Every fetch accepts an optional ``codec`` overriding the client default.
    """

    def __init__(
        self,
        endpoint: ServiceEndpoint,
        codec=WireCodec.TEXT,
        timeout: float = DEFAULT_TIMEOUT,
        session=None,
    ):
        self.endpoint = endpoint
        self.codec = WireCodec.create(codec)
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        if endpoint.auth is not None:
            self.session.auth = endpoint.auth

    def close(self):
        self.session.close()

    def _codec(self, codec) -> TextCodec:
        return self.codec if codec is None else WireCodec.create(codec)

    def _get(self, request: ServiceRequest) -> bytes:
        url = request.url(self.endpoint.base_url)
        logger.debug(f"GET {url} {request.params}")

        try:
            response = self.session.get(url, params=request.params or None, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise RemoteRejected(response.status_code, _message(response))

        return response.content

    def fetch_starts(self, sample: SampleRef, region: GenomicRegion, window: int = 1, codec=None) -> np.ndarray:
        """Read start positions overlapping ``region``, in service order."""
        c = self._codec(codec)
        body = self._get(c.build_request(Operation.STARTS, sample, region, window))
        return c.decode_starts(body)

    def fetch_strands(self, sample: SampleRef, region: GenomicRegion, window: int = 1, codec=None) -> List[Strand]:
        """Read strands, positionally aligned with :meth:`fetch_starts`."""
        c = self._codec(codec)
        body = self._get(c.build_request(Operation.STRANDS, sample, region, window))
        return c.decode_strands(body)

    def fetch_counts(self, sample: SampleRef, region: GenomicRegion, window: int, codec=None) -> np.ndarray:
        """Per-bin read counts, binned by the service at ``window`` bp."""
        c = self._codec(codec)
        request = c.build_request(Operation.COUNTS, sample, region, window)
        logger.info(f"Counts url: {request.url(self.endpoint.base_url)} {request.params}")
        return c.decode_counts(self._get(request), region, window)

    def fetch_mapped_reads(self, sample: SampleRef, genome: str, window: int, codec=None) -> int:
        """Total mapped reads for normalization."""
        c = self._codec(codec)
        body = self._get(c.build_request(Operation.MAPPED, sample, window=window, genome=genome))
        return c.decode_mapped(body)

    def fetch_genome(self, sample: SampleRef, codec=None) -> str:
        c = self._codec(codec)
        return c.decode_genome(self._get(c.build_request(Operation.GENOME, sample)))

    def fetch_capability_probe(self, sample: SampleRef, codec=None) -> CapabilityProbe:
        """Classification payload: storage kind string and optional read length."""
        c = self._codec(codec)
        request = c.build_request(Operation.TYPE, sample)
        logger.info(f"Type url: {request.url(self.endpoint.base_url)} {request.params}")
        return c.decode_capability(self._get(request))

    def fetch_read_length(self, sample: SampleRef, codec=None) -> int:
        c = self._codec(codec)
        return c.decode_read_length(self._get(c.build_request(Operation.LENGTH, sample)))


def _message(response) -> str:
    text = getattr(response, 'text', '') or ''
    return text.strip()[:200] or getattr(response, 'reason', '') or ''
