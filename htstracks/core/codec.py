"""
Wire codecs for the track assembly service.

Two framings of the same protocol:
- TextCodec: JSON array of objects, one well-known field per operation
- BinaryCodec: packed big-endian 4-byte integers (starts, counts) or one
  byte per read (strands), requested with a trailing 'b' path segment

Both decode to the same typed results, so either can be used for any query.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from .errors import MalformedResponse, TruncatedStream
from .models import (
    CapabilityProbe,
    GenomicRegion,
    SampleRef,
    Strand,
    expected_bin_count,
    validate_window,
)


# Packed element widths in bytes
INT_WIDTH = 4
STRAND_WIDTH = 1

# Java-style network byte order
INT_DTYPE = np.dtype('>i4')

BINARY_SUFFIX = 'b'


class Operation(Enum):
    """Service operations."""
    STARTS = 'starts'
    STRANDS = 'strands'
    COUNTS = 'counts'
    MAPPED = 'mapped'
    GENOME = 'genome'
    TYPE = 'type'
    LENGTH = 'length'


@dataclass(frozen=True)
class ServiceRequest:
    """A resource path relative to the service base URL plus query parameters."""
    path: Tuple[str, ...]
    params: Dict[str, Any] = field(default_factory=dict)

    def url(self, base_url: str) -> str:
        """Join the path onto ``base_url`` (query parameters are left to the HTTP layer)."""
        return '/'.join([base_url.rstrip('/')] + list(self.path))


def _region_path(operation: Operation, sample: SampleRef, region: GenomicRegion) -> List[str]:
    return [
        operation.value,
        str(sample.sample_id),
        region.genome or sample.genome,
        region.chr,
        str(region.start),
        str(region.end),
    ]


class TextCodec:
    """Structured-text (JSON) framing."""

    name = 'text'

    def build_request(
        self,
        operation: Operation,
        sample: SampleRef,
        region: Optional[GenomicRegion] = None,
        window: Optional[int] = None,
        genome: Optional[str] = None,
    ) -> ServiceRequest:
        """
        Build the request for an operation.

        Args:
            operation: Service operation
            sample: Sample being queried
            region: Region for starts/strands/counts
            window: Bin width for counts/mapped
            genome: Genome for mapped read counts (defaults to the sample's)

        Returns:
            ServiceRequest
        """
        sample_id = str(sample.sample_id)

        if operation in (Operation.STARTS, Operation.STRANDS):
            _require(region, operation, 'region')
            return ServiceRequest(tuple(_region_path(operation, sample, region)))

        if operation is Operation.COUNTS:
            _require(region, operation, 'region')
            window = validate_window(window)
            return ServiceRequest(('counts',), {
                'id': sample_id,
                'g': region.genome or sample.genome,
                'chr': region.chr,
                's': region.start,
                'e': region.end,
                'bw': window,
            })

        if operation is Operation.MAPPED:
            window = validate_window(window)
            return ServiceRequest(('mapped',), {
                'id': sample_id,
                'g': genome or sample.genome,
                'bw': window,
            })

        if operation is Operation.GENOME:
            return ServiceRequest(('genome', sample_id))

        if operation is Operation.TYPE:
            return ServiceRequest(('type',), {'id': sample_id})

        if operation is Operation.LENGTH:
            return ServiceRequest(('length', sample_id))

        raise ValueError(f"Unsupported operation: {operation}")

    # Array payloads

    def decode_starts(self, body: bytes) -> np.ndarray:
        values = _first_field(_parse_json(body), 's')
        return _int_array(values, 's')

    def decode_strands(self, body: bytes) -> List[Strand]:
        values = _first_field(_parse_json(body), 's')
        if not isinstance(values, list):
            raise MalformedResponse("Field 's' is not an array")
        return [Strand.parse(v) for v in values]

    def decode_counts(self, body: bytes, region: GenomicRegion, window: int) -> np.ndarray:
        values = _first_field(_parse_json(body), 'c')
        return _check_arity(_int_array(values, 'c'), region, window)

    # Metadata payloads

    def decode_mapped(self, body: bytes) -> int:
        doc = _parse_json(body)
        if not isinstance(doc, list) or not doc:
            raise MalformedResponse("Expected a non-empty array for mapped reads")
        return _as_int(doc[0], 'mapped')

    def decode_genome(self, body: bytes) -> str:
        value = _first_field(_parse_json(body), 'genome')
        if not isinstance(value, str) or not value:
            raise MalformedResponse("Field 'genome' is not a non-empty string")
        return value

    def decode_capability(self, body: bytes) -> CapabilityProbe:
        doc = _parse_json(body)
        kind = _first_field(doc, 'type')
        if not isinstance(kind, str):
            raise MalformedResponse("Field 'type' is not a string")
        length = doc[0].get('length')
        return CapabilityProbe(kind=kind, read_length=_as_int(length, 'length') if length is not None else None)

    def decode_read_length(self, body: bytes) -> int:
        return _as_int(_first_field(_parse_json(body), 'length'), 'length')


class BinaryCodec(TextCodec):
    """Packed-binary framing for starts, strands and counts.

    Metadata operations have no packed form and keep the text framing.
    """

    name = 'binary'

    def build_request(
        self,
        operation: Operation,
        sample: SampleRef,
        region: Optional[GenomicRegion] = None,
        window: Optional[int] = None,
        genome: Optional[str] = None,
    ) -> ServiceRequest:
        if operation in (Operation.STARTS, Operation.STRANDS):
            _require(region, operation, 'region')
            return ServiceRequest(tuple(_region_path(operation, sample, region) + [BINARY_SUFFIX]))

        if operation is Operation.COUNTS:
            _require(region, operation, 'region')
            window = validate_window(window)
            path = _region_path(operation, sample, region) + [str(window), BINARY_SUFFIX]
            return ServiceRequest(tuple(path))

        return super().build_request(operation, sample, region, window, genome)

    def decode_starts(self, body: bytes) -> np.ndarray:
        return _unpack_ints(body)

    def decode_strands(self, body: bytes) -> List[Strand]:
        if len(body) % STRAND_WIDTH:
            raise TruncatedStream(STRAND_WIDTH, len(body))
        return [Strand.MINUS if b == ord('-') else Strand.PLUS for b in bytes(body)]

    def decode_counts(self, body: bytes, region: GenomicRegion, window: int) -> np.ndarray:
        return _check_arity(_unpack_ints(body), region, window)


class WireCodec(Enum):
    """Selectable codec variants."""
    TEXT = 'text'
    BINARY = 'binary'

    def codec(self) -> TextCodec:
        return BinaryCodec() if self is WireCodec.BINARY else TextCodec()

    @classmethod
    def create(cls, name) -> TextCodec:
        """Return a codec instance from a name, variant or existing codec."""
        if isinstance(name, TextCodec):
            return name
        if isinstance(name, cls):
            return name.codec()
        try:
            return cls(str(name).lower()).codec()
        except ValueError:
            raise ValueError(f"Unknown codec '{name}'. Choose from: text, binary") from None


def _require(value, operation: Operation, what: str):
    if value is None:
        raise ValueError(f"Operation '{operation.value}' requires a {what}")


def _parse_json(body: bytes) -> Any:
    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedResponse(f"Response is not valid JSON: {e}") from e


def _first_field(doc: Any, name: str) -> Any:
    """Return ``doc[0][name]`` of a JSON array of objects."""
    if not isinstance(doc, list) or not doc:
        raise MalformedResponse("Expected a non-empty JSON array")
    first = doc[0]
    if not isinstance(first, dict) or name not in first:
        raise MalformedResponse(f"Missing field '{name}'")
    return first[name]


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedResponse(f"Field '{name}' is not an integer: {value!r}")
    return value


def _int_array(values: Any, name: str) -> np.ndarray:
    if not isinstance(values, list):
        raise MalformedResponse(f"Field '{name}' is not an array")
    for v in values:
        _as_int(v, name)
    try:
        return np.asarray(values, dtype=np.int64).reshape(-1)
    except OverflowError as e:
        raise MalformedResponse(f"Field '{name}' has a value outside the int64 range") from e


def _unpack_ints(body: bytes) -> np.ndarray:
    if len(body) % INT_WIDTH:
        raise TruncatedStream(INT_WIDTH, len(body))
    return np.frombuffer(body, dtype=INT_DTYPE).astype(np.int64)


def _check_arity(counts: np.ndarray, region: GenomicRegion, window: int) -> np.ndarray:
    expected = expected_bin_count(region, window)
    if len(counts) != expected:
        raise MalformedResponse(
            f"Expected {expected} bins for {region} at window {window}, got {len(counts)}"
        )
    return counts
