"""
Static frame rendering with matplotlib + geopandas.

FrameRenderer is a render projection: it takes a computed Frame and draws a
minimalist map (regions filled with the frame's colors, no-data hatched, a
legend of the frame's buckets) and, when a region is pinned, its line chart
broken at gaps with the tracked point highlighted.
"""

import re
from pathlib import Path
from typing import Optional, Union

import geopandas as gpd
import matplotlib.pyplot as plt
from loguru import logger
from matplotlib.patches import Patch

from explorer.engine import Frame, format_value, split_segments
from explorer.time_axis import period_label
from explorer.variables import NO_DATA_COLOR, NO_DATA_LABEL

EDGE_COLOR = "#222222"
LINE_COLOR = "#333333"
TRACKED_COLOR = "#d62728"


def _slug(text: str) -> str:
    return re.sub(r"[^\w\-]+", "_", text).strip("_")


class FrameRenderer:
    """Draws frames to PNG files, one file per (variable, period)."""

    def __init__(
        self,
        boundaries: gpd.GeoDataFrame,
        region_field: str,
        output_dir: Union[str, Path],
        dpi: int = 150,
        figure_max_width: float = 14,
        no_data_color: str = NO_DATA_COLOR,
    ):
        self.boundaries = boundaries
        self.region_field = region_field
        self.output_dir = Path(output_dir)
        self.dpi = dpi
        self.figure_max_width = figure_max_width
        self.no_data_color = no_data_color
        self.last_path: Optional[Path] = None

    def frame_path(self, frame: Frame) -> Path:
        name = f"{_slug(frame.variable_id or 'frame')}_{_slug(frame.time_period or 'empty')}"
        if frame.pinned_region:
            name += f"_{_slug(frame.pinned_region)}"
        return self.output_dir / f"{name}.png"

    def draw(self, frame: Frame, path: Optional[Union[str, Path]] = None) -> Optional[Path]:
        """
        Draw one frame.

        Args:
            frame: Frame from the visual state engine
            path: Output PNG path (defaults to a name derived from the frame)

        Returns:
            Path written, or None for an empty frame
        """
        if frame.is_empty:
            logger.info("Nothing to render: empty frame")
            return None

        out_path = Path(path) if path is not None else self.frame_path(frame)
        out_path.parent.mkdir(parents=True, exist_ok=True)

        has_chart = frame.trajectory is not None
        width = min(self.figure_max_width, 14 if has_chart else 10)
        if has_chart:
            fig, (map_ax, chart_ax) = plt.subplots(
                1, 2, figsize=(width, width * 0.4), gridspec_kw={"width_ratios": [3, 2]}
            )
        else:
            fig, map_ax = plt.subplots(figsize=(width, width * 0.6))
            chart_ax = None

        self._draw_map(frame, map_ax)
        if chart_ax is not None:
            self._draw_chart(frame, chart_ax)

        fig.suptitle(
            f"{frame.variable_id}: {period_label(frame.time_period)}",
            fontsize=14,
            fontweight="bold",
            x=0.02,
            ha="left",
        )
        fig.savefig(out_path, bbox_inches="tight", dpi=self.dpi, facecolor="white")
        plt.close(fig)

        self.last_path = out_path
        logger.debug(f"Frame saved: {out_path}")
        return out_path

    def _draw_map(self, frame: Frame, ax) -> None:
        names = self.boundaries[self.region_field].astype(str)
        colors = names.map(frame.region_colors).fillna(self.no_data_color)
        self.boundaries.plot(ax=ax, color=colors.tolist(), edgecolor=EDGE_COLOR, linewidth=0.25)

        missing = names.map(lambda name: frame.region_values.get(name) is None)
        if missing.any():
            self.boundaries[missing.values].plot(
                ax=ax, facecolor="none", edgecolor="#cccccc", hatch="///", linewidth=0
            )

        if frame.pinned_region is not None:
            pinned = self.boundaries[(names == frame.pinned_region).values]
            if len(pinned):
                pinned.boundary.plot(ax=ax, color=TRACKED_COLOR, linewidth=1.5)

        handles = [
            Patch(facecolor=b.color, edgecolor="#666666", label=b.label)
            for b in frame.legend_buckets
        ]
        handles.append(
            Patch(facecolor=self.no_data_color, edgecolor="#666666", label=NO_DATA_LABEL)
        )
        ax.legend(handles=handles, loc="lower left", fontsize=8, frameon=False)
        ax.set_aspect("equal")
        ax.set_axis_off()

    def _draw_chart(self, frame: Frame, ax) -> None:
        trajectory = frame.trajectory or ()
        positions = {point.time_period: i for i, point in enumerate(trajectory)}

        for segment in split_segments(trajectory):
            xs = [positions[p.time_period] for p in segment]
            ys = [p.value for p in segment]
            ax.plot(xs, ys, color=LINE_COLOR, linewidth=1.5, marker="o", markersize=3)

        if frame.tracked_point is not None:
            ax.scatter(
                [positions[frame.tracked_point.time_period]],
                [frame.tracked_point.value],
                color=TRACKED_COLOR,
                zorder=3,
                s=40,
            )
            ax.annotate(
                format_value(frame.tracked_point.value),
                (positions[frame.tracked_point.time_period], frame.tracked_point.value),
                textcoords="offset points",
                xytext=(6, 6),
                fontsize=9,
                color=TRACKED_COLOR,
            )

        ax.set_xticks(range(len(trajectory)))
        ax.set_xticklabels(
            [period_label(p.time_period) for p in trajectory], rotation=45, ha="right", fontsize=8
        )
        ax.set_title(frame.pinned_region or "", fontsize=11, loc="left")
        ax.set_ylabel(frame.variable_id or "")
        for side in ("top", "right"):
            ax.spines[side].set_visible(False)
