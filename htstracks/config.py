"""
Configuration classes for HTSTracks.

HTSTracks: track data assembly for genomic signal viewers
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .core.codec import WireCodec
from .integrations.service import DEFAULT_TIMEOUT


# Smallest auto-scaled Y maximum, so empty regions still show an axis
MIN_Y_SCALE = 1.0

DEFAULT_COLOR = '#2563eb'
DEFAULT_FILL_COLOR = '#93c5fd'


class PlotStyle(Enum):
    """How a signal track is drawn."""
    FILLED = 'filled'
    LINE = 'line'
    BAR = 'bar'


@dataclass
class ServiceConfig:
    """Remote service connection settings."""
    url: str = 'http://localhost:8080/api/v1'
    user: Optional[str] = None
    key: Optional[str] = None
    codec: str = 'text'  # 'text' or 'binary'
    timeout: float = DEFAULT_TIMEOUT
    prefer_binary_fast_path: bool = False

    def __post_init__(self):
        # Fail early on an unknown codec name
        WireCodec.create(self.codec)
        if self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'ServiceConfig':
        """Create from dictionary."""
        return cls(
            url=d.get('url', cls.url),
            user=d.get('user'),
            key=d.get('key'),
            codec=str(d.get('codec', 'text')).lower(),
            timeout=float(d.get('timeout', DEFAULT_TIMEOUT)),
            prefer_binary_fast_path=bool(d.get('prefer_binary_fast_path', False)),
        )


@dataclass
class TrackStyle:
    """Display settings of one track."""
    style: PlotStyle = PlotStyle.FILLED
    color: str = DEFAULT_COLOR
    fill_color: str = DEFAULT_FILL_COLOR
    auto_scale: bool = True
    fixed_scale: float = MIN_Y_SCALE  # used when auto_scale is off
    min_scale: float = MIN_Y_SCALE
    normalize: bool = False  # reads per million for count tracks

    def __post_init__(self):
        if isinstance(self.style, str):
            self.style = PlotStyle(self.style.lower())
        if self.fixed_scale <= 0:
            raise ValueError(f"Fixed scale must be positive, got {self.fixed_scale}")
        if self.min_scale < 0:
            raise ValueError(f"Minimum scale must be non-negative, got {self.min_scale}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'TrackStyle':
        """Create from dictionary."""
        return cls(
            style=d.get('style', PlotStyle.FILLED.value),
            color=d.get('color', DEFAULT_COLOR),
            fill_color=d.get('fill_color', DEFAULT_FILL_COLOR),
            auto_scale=bool(d.get('auto_scale', True)),
            fixed_scale=float(d.get('fixed_scale', MIN_Y_SCALE)),
            min_scale=float(d.get('min_scale', MIN_Y_SCALE)),
            normalize=bool(d.get('normalize', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['style'] = self.style.value
        return d


@dataclass
class ViewerConfig:
    """Full configuration: service connection plus default track display."""
    service: ServiceConfig = field(default_factory=ServiceConfig)
    track: TrackStyle = field(default_factory=TrackStyle)
    max_workers: int = 4

    @classmethod
    def from_yaml(cls, path: Path) -> 'ViewerConfig':
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

        max_workers = int(data.get('max_workers', 4))
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        return cls(
            service=ServiceConfig.from_dict(data.get('service') or {}),
            track=TrackStyle.from_dict(data.get('track') or {}),
            max_workers=max_workers,
        )


CONFIG_TEMPLATE = '''# HTSTracks Configuration Template

service:
  url: http://localhost:8080/api/v1   # Base URL of the track assembly service
  # user: me                          # Optional credentials (HTTP basic auth)
  # key: secret
  codec: text                         # text (JSON) or binary (packed ints)
  timeout: 30                         # Seconds per request
  prefer_binary_fast_path: false      # Use binary for samples with read support

track:
  style: filled                       # filled, line or bar
  color: "#2563eb"
  fill_color: "#93c5fd"
  auto_scale: true                    # Y max from the visible data
  fixed_scale: 1                      # Y max when auto_scale is false
  min_scale: 1                        # Lower bound of the auto-scaled Y max
  normalize: false                    # Counts as reads per million

# Worker threads for region loads
max_workers: 4
'''
