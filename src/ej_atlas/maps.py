"""
Interactive folium maps.

Two maps are built:

    demographic map   median household income, plus one layer per
                      race/ethnicity category (sharing one color scale)
    site map          income as context, hazardous sites, remediated sites

Every layer is a folium.FeatureGroup toggled from the layer control. Polygon
colors come from a binned branca scale fit to the data range; point colors
come from the fixed category color mapping. Each map opens on the same
viewport and cannot be panned outside the configured bounds.
"""

import html

import folium
import geopandas as gpd
import numpy as np
import pandas as pd
from branca.colormap import LinearColormap, StepColormap

from ej_atlas.config import CensusConfig, MapConfig
from ej_atlas.records import SiteCategory, SiteRecord


def binned_colormap(
    values: pd.Series,
    palette: list[str],
    bins: int,
    caption: str = "",
) -> StepColormap | None:
    """
    Build a step colormap with `bins` equal-width bins over the finite range
    of values. Returns None when there is no finite value.
    """
    finite = pd.to_numeric(values, errors="coerce").replace([np.inf, -np.inf], np.nan).dropna()
    if finite.empty:
        return None

    vmin, vmax = float(finite.min()), float(finite.max())
    if vmin == vmax:
        vmax = vmin + 1.0

    cmap = LinearColormap(palette, vmin=vmin, vmax=vmax).to_step(n=bins)
    cmap.caption = caption
    return cmap


def tract_layer(tracts: gpd.GeoDataFrame, variable: str) -> gpd.GeoDataFrame:
    """Polygons and estimates for a single variable."""
    layer = tracts.loc[tracts["variable"] == variable, ["geoid", "name", "estimate", "geometry"]]
    return gpd.GeoDataFrame(layer, geometry="geometry", crs=tracts.crs).reset_index(drop=True)


def base_map(config: MapConfig) -> folium.Map:
    """Map with the fixed initial viewport and panning bounds."""
    (south, west), (north, east) = config.bounds
    return folium.Map(
        location=list(config.center),
        zoom_start=config.zoom_start,
        min_zoom=config.min_zoom,
        tiles=config.tiles,
        max_bounds=True,
        min_lat=south,
        max_lat=north,
        min_lon=west,
        max_lon=east,
    )


def add_choropleth_layer(
    m: folium.Map,
    layer: gpd.GeoDataFrame,
    name: str,
    colormap: StepColormap | None,
    nodata_color: str = "#bdbdbd",
    show: bool = True,
) -> folium.FeatureGroup:
    """
    Add a togglable polygon layer colored by its estimate column.

    Polygons with no estimate are drawn in nodata_color. An empty layer is
    still added, with no features.
    """
    group = folium.FeatureGroup(name=name, show=show)

    if not layer.empty:
        def style(feature):
            value = feature["properties"].get("estimate")
            if value is None or colormap is None:
                fill = nodata_color
            else:
                fill = colormap(value)
            return {"fillColor": fill, "color": "#666666", "weight": 0.5, "fillOpacity": 0.7}

        folium.GeoJson(
            layer.to_json(),
            style_function=style,
            tooltip=folium.GeoJsonTooltip(
                fields=["name", "estimate"],
                aliases=["Tract", name],
                localize=True,
            ),
        ).add_to(group)

    group.add_to(m)
    return group


def _site_popup(record: SiteRecord) -> str:
    lines = [
        f"<b>{html.escape(record.facility_name)}</b>",
        f"Program: {html.escape(record.program_number)} ({html.escape(record.program_type)})",
        f"Site class: {html.escape(record.site_class)} ({record.category.value})",
        html.escape(", ".join(p for p in (record.address, record.locality, record.zip_code) if p)),
    ]
    return "<br/>".join(lines)


def add_site_layer(
    m: folium.Map,
    points: gpd.GeoDataFrame,
    category: SiteCategory,
    color: str,
    show: bool = True,
) -> folium.FeatureGroup:
    """Add one circle marker per site of the given category."""
    group = folium.FeatureGroup(name=f"{category.value.title()} sites", show=show)

    subset = points[points["category"] == category.value]
    for row in pd.DataFrame(subset.drop(columns="geometry")).to_dict("records"):
        record = SiteRecord.from_row(row)
        folium.CircleMarker(
            location=[record.latitude, record.longitude],
            radius=5,
            color=color,
            weight=1,
            fill=True,
            fill_color=color,
            fill_opacity=0.8,
            tooltip=record.facility_name or None,
            popup=folium.Popup(_site_popup(record), max_width=300),
        ).add_to(group)

    group.add_to(m)
    return group


def _category_legend(category_colors: dict[str, str]) -> folium.Element:
    entries = "".join(
        f'<div><span style="display:inline-block;width:12px;height:12px;border-radius:6px;'
        f'background:{color};margin-right:6px;"></span>{html.escape(name.title())}</div>'
        for name, color in category_colors.items()
    )
    return folium.Element(
        '<div style="position: fixed; bottom: 24px; left: 10px; z-index: 9999; '
        'background: white; padding: 6px 8px; border: 1px solid #bbb; font-size: 12px;">'
        f'{entries}</div>'
    )


def feature_groups(m: folium.Map) -> dict[str, folium.FeatureGroup]:
    """Map layer name -> FeatureGroup, in insertion order."""
    return {
        child.layer_name: child
        for child in m._children.values()
        if isinstance(child, folium.FeatureGroup)
    }


def build_demographic_map(
    tracts: gpd.GeoDataFrame,
    census: CensusConfig,
    config: MapConfig,
) -> folium.Map:
    """Income choropleth plus one layer per race/ethnicity category."""
    m = base_map(config)

    income = tract_layer(tracts, census.income_label)
    income_cmap = binned_colormap(income["estimate"], config.income_palette,
                                  config.bins, census.income_label)
    add_choropleth_layer(m, income, census.income_label, income_cmap,
                         config.nodata_color, show=True)
    if income_cmap is not None:
        income_cmap.add_to(m)

    race = tracts[tracts["variable"].isin(census.race_categories)]
    race_cmap = binned_colormap(race["estimate"], config.race_palette,
                                config.bins, "Population by race/ethnicity")
    for category in census.race_categories:
        add_choropleth_layer(m, tract_layer(tracts, category), category, race_cmap,
                             config.nodata_color, show=False)
    if race_cmap is not None:
        race_cmap.add_to(m)

    folium.LayerControl(collapsed=False).add_to(m)
    return m


def build_site_map(
    tracts: gpd.GeoDataFrame,
    points: gpd.GeoDataFrame,
    census: CensusConfig,
    config: MapConfig,
) -> folium.Map:
    """Income context layer with hazardous and remediated site markers."""
    m = base_map(config)

    income = tract_layer(tracts, census.income_label)
    income_cmap = binned_colormap(income["estimate"], config.income_palette,
                                  config.bins, census.income_label)
    add_choropleth_layer(m, income, census.income_label, income_cmap,
                         config.nodata_color, show=True)
    if income_cmap is not None:
        income_cmap.add_to(m)

    for category in (SiteCategory.HAZARDOUS, SiteCategory.REMEDIATED):
        add_site_layer(m, points, category, config.category_colors[category.value])

    m.get_root().html.add_child(_category_legend(
        {c.value: config.category_colors[c.value]
         for c in (SiteCategory.HAZARDOUS, SiteCategory.REMEDIATED)}
    ))
    folium.LayerControl(collapsed=False).add_to(m)
    return m
