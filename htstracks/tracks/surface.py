"""
Rendering surfaces for track data.

A surface receives bound values, a Y scale and display settings, and paints
only when ``redraw`` is called. ``MatplotlibSurface`` draws onto a matplotlib
Axes.
"""

from typing import Any, Optional, Protocol, Tuple

import numpy as np

from ..config import PlotStyle, TrackStyle
from ..core.models import GenomicRegion


class RenderSurface(Protocol):
    """What a RenderableTrack needs from a renderer."""

    def bind_data(self, values: np.ndarray, region: Optional[GenomicRegion] = None, window: int = 1) -> None:
        ...

    def set_scale(self, ymin: float, ymax: float) -> None:
        ...

    def set_style(self, style: TrackStyle) -> None:
        ...

    def redraw(self) -> None:
        ...


def _check_plotting_deps():
    """Check that plotting dependencies are available."""
    try:
        import matplotlib.pyplot as plt

        return plt
    except ImportError:
        raise ImportError(
            "Plotting requires matplotlib. "
            "Install with: pip install htstracks[plot]"
        )


class MatplotlibSurface:
    """
    Draw a single track onto a matplotlib Axes.

    Args:
        ax: Axes to draw on; a new figure is created if None
        title: Track title shown above the plot
        figsize: Figure size when creating a new figure

    Example:
        >>> surface = MatplotlibSurface(title='H3K4me3')
        >>> track.create_graph(surface)
        >>> track.set_region(region, 100).result()
        >>> track.apply_pending_update(surface)
        >>> surface.savefig('h3k4me3.png')
    """

    def __init__(self, ax: Optional[Any] = None, title: Optional[str] = None,
                 figsize: Tuple[float, float] = (10, 2)):
        plt = _check_plotting_deps()

        if ax is None:
            self.figure, self.ax = plt.subplots(figsize=figsize)
        else:
            self.ax = ax
            self.figure = ax.figure

        self.title = title
        self.values = np.zeros(0)
        self.region: Optional[GenomicRegion] = None
        self.window = 1
        self.ylim = (0.0, 1.0)
        self.style = TrackStyle()
        self.redraw_count = 0

    def bind_data(self, values: np.ndarray, region: Optional[GenomicRegion] = None, window: int = 1) -> None:
        self.values = np.asarray(values, dtype=float)
        self.region = region
        self.window = window

    def set_scale(self, ymin: float, ymax: float) -> None:
        self.ylim = (float(ymin), float(ymax))

    def set_style(self, style: TrackStyle) -> None:
        self.style = style

    def redraw(self) -> None:
        ax = self.ax
        ax.clear()

        offset = self.region.start if self.region is not None else 0
        x = offset + np.arange(len(self.values)) * self.window
        style = self.style

        if len(self.values):
            if style.style is PlotStyle.BAR:
                ax.bar(x, self.values, width=self.window, align='edge',
                       color=style.fill_color, edgecolor=style.color, linewidth=0.5)
            elif style.style is PlotStyle.LINE:
                ax.step(x, self.values, where='post', color=style.color, linewidth=1)
            else:
                ax.fill_between(x, self.values, step='post', color=style.fill_color, alpha=0.8)
                ax.step(x, self.values, where='post', color=style.color, linewidth=0.8)

        ax.set_ylim(*self.ylim)
        if self.region is not None:
            ax.set_xlim(self.region.start, max(self.region.end, self.region.start + 1))
            ax.set_xlabel(f"{self.region.chr} ({self.region.genome})" if self.region.genome else self.region.chr)
        if self.title:
            ax.set_title(self.title, loc='left', fontsize=10)

        ax.spines['top'].set_visible(False)
        ax.spines['right'].set_visible(False)

        self.figure.canvas.draw_idle()
        self.redraw_count += 1

    def savefig(self, path, dpi: int = 150) -> None:
        self.figure.tight_layout()
        self.figure.savefig(path, dpi=dpi)

    def close(self) -> None:
        plt = _check_plotting_deps()
        plt.close(self.figure)
