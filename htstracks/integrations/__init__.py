"""
External service integrations for HTSTracks.
"""

from .service import (
    DEFAULT_TIMEOUT,
    ServiceEndpoint,
    TrackDataClient,
)

__all__ = [
    'DEFAULT_TIMEOUT',
    'ServiceEndpoint',
    'TrackDataClient',
]
