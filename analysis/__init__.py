"""
Render projections for the MODIS State Explorer

- FrameRenderer: static PNG frames (matplotlib + geopandas)
- InteractiveMapExporter: interactive HTML map (folium)
"""

from .interactive_map import InteractiveMapExporter
from .map_frames import FrameRenderer

__all__ = ["FrameRenderer", "InteractiveMapExporter"]
