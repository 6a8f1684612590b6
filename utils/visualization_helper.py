"""
Visualization helper for breathing replay sessions.

This module renders an offline summary of a processed recording: the
per-chunk envelope level, the breathing state timeline, the breathing rate
and event markers.
"""

import matplotlib
matplotlib.use('Agg')

import matplotlib.pyplot as plt
from matplotlib.backends.backend_agg import FigureCanvasAgg as FigureCanvas
from dataclasses import dataclass
from typing import List, Optional, Tuple

from processors.breathing.classifier import BreathingState
from processors.breathing.events import EventType
from processors.breathing.pipeline import PipelineOutput


@dataclass
class VisualizationConfig:
    """
    Configuration for replay plots.

    Attributes:
        figure_size: Figure size in inches
        dpi: Output resolution
        envelope_color: Line color of the envelope trace
        rate_color: Line color of the rate curve
    """
    figure_size: Tuple[float, float] = (10.0, 7.0)
    dpi: int = 100
    envelope_color: str = 'gray'
    rate_color: str = 'green'


STATE_LEVELS = {
    BreathingState.EXHALE: -1,
    BreathingState.NONE: 0,
    BreathingState.INHALE: 1,
}

EVENT_COLORS = {
    EventType.INHALE: 'tab:blue',
    EventType.EXHALE: 'tab:cyan',
    EventType.APNEA: 'tab:red',
    EventType.DEEP_BREATH: 'tab:purple',
}


class VisualizationHelper:
    """Draws replay summaries with matplotlib."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def plot_session(self, outputs: List[PipelineOutput], output_path: str) -> None:
        """
        Render a session summary to an image file.

        Args:
            outputs: Pipeline outputs in processing order
            output_path: Destination image path (format from extension)
        """
        fig, axes = plt.subplots(3, 1, figsize=self.config.figure_size, dpi=self.config.dpi, sharex=True)
        FigureCanvas(fig)
        fig.tight_layout(pad=3.0)

        if outputs:
            start = outputs[0].timestamp
            times = [o.timestamp - start for o in outputs]
        else:
            start = 0.0
            times = []

        self._draw_envelope(axes[0], times, outputs)
        self._draw_states(axes[1], times, outputs)
        self._draw_rate(axes[2], start, outputs)

        for ax in axes:
            self._draw_events(ax, start, outputs)
            ax.grid(True, alpha=0.3)

        axes[2].set_xlabel("Time (s)")

        fig.savefig(output_path)
        plt.close(fig)

    def _draw_envelope(self, ax, times: List[float], outputs: List[PipelineOutput]) -> None:
        ax.set_title("Envelope Level")
        ax.set_ylabel("Mean envelope")
        ax.plot(times, [o.envelope_mean for o in outputs], color=self.config.envelope_color)

    def _draw_states(self, ax, times: List[float], outputs: List[PipelineOutput]) -> None:
        ax.set_title("Breathing State")
        ax.step(times, [STATE_LEVELS[o.state] for o in outputs], where='post')
        ax.set_yticks([-1, 0, 1])
        ax.set_yticklabels(['exhale', 'none', 'inhale'])

    def _draw_rate(self, ax, start: float, outputs: List[PipelineOutput]) -> None:
        ax.set_title("Breathing Rate")
        ax.set_ylabel("BPM")

        measurements = [o.measurement for o in outputs if o.measurement is not None]
        ax.plot([m.timestamp - start for m in measurements],
                [m.smoothed_rate for m in measurements],
                color=self.config.rate_color, linewidth=2)

    def _draw_events(self, ax, start: float, outputs: List[PipelineOutput]) -> None:
        for output in outputs:
            for event in output.events:
                ax.axvline(event.timestamp - start, color=EVENT_COLORS[event.type], alpha=0.4, linestyle='--')
