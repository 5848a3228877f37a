"""
Core query models, errors and wire codecs for HTSTracks.
"""

from .codec import (
    BinaryCodec,
    Operation,
    ServiceRequest,
    TextCodec,
    WireCodec,
)
from .errors import (
    MalformedResponse,
    RemoteRejected,
    TrackDataError,
    TransportError,
    TruncatedStream,
)
from .models import (
    CapabilityProbe,
    GenomicRegion,
    ReadsResult,
    SampleCapability,
    SampleRef,
    StorageKind,
    Strand,
    expected_bin_count,
    validate_window,
)

__all__ = [
    # Models
    'SampleRef',
    'GenomicRegion',
    'Strand',
    'StorageKind',
    'SampleCapability',
    'CapabilityProbe',
    'ReadsResult',
    'validate_window',
    'expected_bin_count',
    # Errors
    'TrackDataError',
    'TransportError',
    'RemoteRejected',
    'MalformedResponse',
    'TruncatedStream',
    # Codecs
    'Operation',
    'ServiceRequest',
    'TextCodec',
    'BinaryCodec',
    'WireCodec',
]
