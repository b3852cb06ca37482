"""
Interactive HTML export of a frame with folium.

Each region is filled with the frame's color and carries a tooltip with the
region name and formatted value ("N/A" for no data), mirroring the hover
payload of the explorer session.
"""

from pathlib import Path
from typing import Optional, Union

import folium
import geopandas as gpd
from loguru import logger

from explorer.engine import Frame, format_value
from explorer.time_axis import period_label
from explorer.variables import NO_DATA_COLOR, NO_DATA_LABEL


def _legend_html(frame: Frame, no_data_color: str) -> str:
    rows = "".join(
        f'<div><span style="display:inline-block;width:14px;height:14px;'
        f'background:{bucket.color};margin-right:6px;"></span>{bucket.label}</div>'
        for bucket in frame.legend_buckets
    )
    rows += (
        f'<div><span style="display:inline-block;width:14px;height:14px;'
        f'background:{no_data_color};margin-right:6px;"></span>{NO_DATA_LABEL}</div>'
    )
    return f"""
    <div style="position: fixed; bottom: 30px; left: 30px; z-index: 9999;
                background-color: white; border: 1px solid #666666; border-radius: 5px;
                padding: 8px; font-family: Arial, sans-serif; font-size: 12px;">
        <b>{frame.variable_id}</b>{rows}
    </div>
    """


class InteractiveMapExporter:
    """Writes a folium choropleth of each drawn frame to one HTML file."""

    def __init__(
        self,
        boundaries: gpd.GeoDataFrame,
        region_field: str,
        output_path: Union[str, Path],
        no_data_color: str = NO_DATA_COLOR,
    ):
        self.boundaries = boundaries[[region_field, "geometry"]].copy()
        self.region_field = region_field
        self.output_path = Path(output_path)
        self.no_data_color = no_data_color

    def draw(self, frame: Frame) -> Optional[Path]:
        if frame.is_empty:
            logger.info("Nothing to export: empty frame")
            return None

        logger.info(f"🗺️ Exporting interactive map: {frame.variable_id} @ {frame.time_period}")

        gdf = self.boundaries.copy()
        names = gdf[self.region_field].astype(str)
        gdf["fill_color"] = names.map(frame.region_colors).fillna(self.no_data_color)
        gdf["value_display"] = names.map(lambda name: format_value(frame.region_values.get(name)))

        bounds = gdf.total_bounds
        center = [(bounds[1] + bounds[3]) / 2, (bounds[0] + bounds[2]) / 2]

        m = folium.Map(location=center, zoom_start=4, tiles="CartoDB Positron")

        folium.GeoJson(
            data=gdf.__geo_interface__,
            name=frame.variable_id,
            style_function=lambda feature: {
                "fillColor": feature["properties"]["fill_color"],
                "color": "#222222",
                "weight": 1,
                "fillOpacity": 0.8,
            },
            tooltip=folium.GeoJsonTooltip(
                fields=[self.region_field, "value_display"],
                aliases=["Region:", f"{frame.variable_id}:"],
                localize=True,
                sticky=False,
                labels=True,
            ),
        ).add_to(m)

        title_html = f"""
        <h3 align="center" style="font-size:20px; color: #333333; margin-top:10px;">
        <b>{frame.variable_id}</b><br>
        <span style="font-size:14px;">{period_label(frame.time_period)}</span>
        </h3>
        """
        m.get_root().html.add_child(folium.Element(title_html))
        m.get_root().html.add_child(folium.Element(_legend_html(frame, self.no_data_color)))

        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        m.save(str(self.output_path))
        logger.success(f"  ✅ Interactive map saved: {self.output_path}")
        return self.output_path
