"""
Renderable tracks for HTSTracks.
"""

from .renderable import (
    RenderableTrack,
    TrackState,
    compute_auto_scale,
)
from .sources import (
    BedGraphSource,
    BoundData,
    CountsSource,
    ReadsSource,
    TrackKind,
    bin_max,
    pileup,
)
from .surface import (
    MatplotlibSurface,
    RenderSurface,
)

__all__ = [
    # Sources
    'TrackKind',
    'BoundData',
    'CountsSource',
    'ReadsSource',
    'BedGraphSource',
    'pileup',
    'bin_max',
    # Adapter
    'TrackState',
    'RenderableTrack',
    'compute_auto_scale',
    # Surfaces
    'RenderSurface',
    'MatplotlibSurface',
]
