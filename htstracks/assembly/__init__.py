"""
Track data assembly: client plus capability cache.
"""

from .capability_cache import SampleCapabilityCache
from .facade import TrackDataAssembly

__all__ = [
    'SampleCapabilityCache',
    'TrackDataAssembly',
]
