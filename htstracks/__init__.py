"""
HTSTracks - track data assembly for genomic signal viewers.

Fetches per-sample, per-region signal from a remote assembly service,
memoizes sample classification, and binds the results to renderable tracks.
"""

__version__ = "0.1.0"

from .assembly import SampleCapabilityCache, TrackDataAssembly
from .config import PlotStyle, ServiceConfig, TrackStyle, ViewerConfig
from .core import (
    GenomicRegion,
    MalformedResponse,
    RemoteRejected,
    SampleCapability,
    SampleRef,
    StorageKind,
    Strand,
    TrackDataError,
    TransportError,
    TruncatedStream,
    WireCodec,
)
from .integrations import ServiceEndpoint, TrackDataClient
from .tracks import RenderableTrack, TrackKind, TrackState

__all__ = [
    "SampleRef",
    "GenomicRegion",
    "Strand",
    "StorageKind",
    "SampleCapability",
    "WireCodec",
    "TrackDataError",
    "TransportError",
    "RemoteRejected",
    "MalformedResponse",
    "TruncatedStream",
    "ServiceEndpoint",
    "TrackDataClient",
    "SampleCapabilityCache",
    "TrackDataAssembly",
    "ServiceConfig",
    "TrackStyle",
    "PlotStyle",
    "ViewerConfig",
    "TrackKind",
    "TrackState",
    "RenderableTrack",
    "__version__",
]
