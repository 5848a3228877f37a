"""
RenderableTrack: binds track data for the displayed region and pushes it to a
rendering surface.

States:
    EMPTY -> LOADING -> READY -> LOADING -> READY ...
    LOADING -> FAILED (previous data stays bound)

Region loads run on worker threads. Only the most recent ``set_region`` call
may bind data; results of earlier calls are dropped on arrival.
"""

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Dict, Optional

import numpy as np

from ..config import MIN_Y_SCALE, PlotStyle, TrackStyle
from ..core.errors import TrackDataError
from ..core.models import GenomicRegion, validate_window
from .sources import BoundData

logger = logging.getLogger(__name__)


class TrackState(Enum):
    """Load state of a track."""
    EMPTY = 'empty'
    LOADING = 'loading'
    READY = 'ready'
    FAILED = 'failed'


def compute_auto_scale(
    values: np.ndarray,
    auto_scale: bool = True,
    fixed_scale: float = MIN_Y_SCALE,
    min_scale: float = MIN_Y_SCALE,
) -> float:
    """
    Y-axis maximum for a set of bound values.

    Args:
        values: Values of the displayed region only
        auto_scale: Derive the maximum from ``values``
        fixed_scale: Maximum to use when auto-scaling is off
        min_scale: Floor of the auto-scaled maximum

    Returns:
        ``max(min_scale, max(values))`` when auto-scaling, else ``fixed_scale``

    Examples:
        >>> compute_auto_scale(np.array([0, 3, 7, 2]))
        7.0
        >>> compute_auto_scale(np.zeros(4))
        1.0
    """
    if not auto_scale:
        return float(fixed_scale)

    observed = float(np.max(values)) if len(values) else 0.0
    return max(float(min_scale), observed)


class RenderableTrack:
    """
    A track source plus display state.

    Args:
        source: CountsSource, ReadsSource or BedGraphSource
        style: Display settings (defaults to TrackStyle())
        executor: Executor for region loads; a private thread pool is created
            (and shut down by ``close``) if None
        on_pending: Called with the track when a region load settles and an
            update may be pending
    """

    def __init__(
        self,
        source,
        style: Optional[TrackStyle] = None,
        executor: Optional[Executor] = None,
        on_pending: Optional[Callable[['RenderableTrack'], None]] = None,
        max_workers: int = 2,
    ):
        self.source = source
        self.style = style or TrackStyle()
        self.on_pending = on_pending

        self._own_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=f"track-{source.kind.value}"
        )

        self._lock = threading.Lock()
        self._generation = 0
        self._state = TrackState.EMPTY
        self._bound: Optional[BoundData] = None
        self._error: Optional[Exception] = None
        self._dirty = False

    # Identity

    @property
    def name(self) -> str:
        return self.source.name

    def get_type(self) -> str:
        return self.source.kind.value

    # State

    @property
    def state(self) -> TrackState:
        with self._lock:
            return self._state

    @property
    def error(self) -> Optional[Exception]:
        """Error of the last failed load, or None."""
        with self._lock:
            return self._error

    @property
    def bound(self) -> Optional[BoundData]:
        with self._lock:
            return self._bound

    @property
    def has_pending_update(self) -> bool:
        with self._lock:
            return self._dirty

    # Region loading

    def set_region(self, region: GenomicRegion, window: int) -> Future:
        """
        Load data for a new region.

        Returns:
            Future resolving to True if this load's data was bound, False if
            it was superseded by a later call or failed
        """
        window = validate_window(window)
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._state = TrackState.LOADING

        logger.debug(f"{self.name}: loading {region} (bw={window}, gen={generation})")
        return self._executor.submit(self._load, generation, region, window)

    def _load(self, generation: int, region: GenomicRegion, window: int) -> bool:
        try:
            data = self.source.fetch(region, window, normalize=self.style.normalize)
        except TrackDataError as e:
            return self._fail(generation, region, e)
        except Exception as e:
            logger.exception(f"{self.name}: unexpected error loading {region}")
            return self._fail(generation, region, e)

        with self._lock:
            if generation != self._generation:
                logger.debug(f"{self.name}: discarding stale data for {region} (gen={generation})")
                return False
            self._bound = data
            self._error = None
            self._state = TrackState.READY
            self._dirty = True

        self._notify()
        return True

    def _fail(self, generation: int, region: GenomicRegion, error: Exception) -> bool:
        with self._lock:
            if generation != self._generation:
                logger.debug(f"{self.name}: ignoring stale failure for {region}: {error}")
                return False
            self._error = error
            self._state = TrackState.FAILED

        kind = error.kind if isinstance(error, TrackDataError) else type(error).__name__
        logger.warning(f"{self.name}: failed to load {region} ({kind}): {error}")
        self._notify()
        return False

    def _notify(self):
        if self.on_pending is not None:
            self.on_pending(self)

    # Scale

    def compute_auto_scale(self, normalize: bool = False) -> float:
        """Y maximum for the currently bound region."""
        bound = self.bound
        if bound is None:
            values = np.zeros(0)
        else:
            values = bound.normalized() if normalize else bound.values

        return compute_auto_scale(
            values,
            auto_scale=self.style.auto_scale,
            fixed_scale=self.style.fixed_scale,
            min_scale=self.style.min_scale,
        )

    # Display properties; each marks an update as pending

    def _restyle(self, **changes):
        with self._lock:
            self.style = replace(self.style, **changes)
            self._dirty = True

    def set_plot_style(self, style: PlotStyle):
        self._restyle(style=PlotStyle(style))

    def set_color(self, color: str):
        self._restyle(color=color)

    def set_fill_color(self, color: str):
        self._restyle(fill_color=color)

    def set_auto_scale(self, auto_scale: bool):
        self._restyle(auto_scale=auto_scale)

    def set_fixed_scale(self, ymax: float):
        self._restyle(fixed_scale=ymax)

    # Rendering

    def create_graph(self, surface) -> Any:
        """Attach a surface; the first update draws everything."""
        surface.set_style(self.style)
        with self._lock:
            self._dirty = True
        return surface

    def apply_pending_update(self, surface) -> bool:
        """
        Push pending changes to ``surface`` in a single redraw.

        Returns:
            True if the surface was redrawn
        """
        with self._lock:
            if not self._dirty or self._bound is None:
                return False
            bound = self._bound
            style = self.style
            self._dirty = False

        values = bound.normalized() if style.normalize else bound.values
        scale = compute_auto_scale(values, style.auto_scale, style.fixed_scale, style.min_scale)

        surface.set_style(style)
        surface.bind_data(values, region=bound.region, window=bound.window)
        surface.set_scale(0.0, scale)
        surface.redraw()
        return True

    def update_graph(self, surface) -> bool:
        return self.apply_pending_update(surface)

    def to_serializable(self) -> Dict[str, Any]:
        d = self.source.to_serializable()
        d['style'] = self.style.to_dict()
        return d

    # Lifecycle

    def close(self):
        if self._own_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
