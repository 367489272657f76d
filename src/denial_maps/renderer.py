"""Choropleth rendering of percent denied per county."""

import logging
from pathlib import Path

import geopandas as gpd
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.patches import Patch

from src.configs.sources_hmda import EXCLUDED_REGIONS, MAP_BIN_LABELS, MAP_BINS, MAP_CMAP

logger = logging.getLogger(__name__)

NO_FILL = (0.0, 0.0, 0.0, 0.0)

MAP_VIEWS = {
    "denied_latino": ("pct_denied_latino", "Denied applications, Latino applicants (%)"),
    "denied_not_latino": ("pct_denied_not_latino", "Denied applications, non-Latino applicants (%)"),
}


def bin_percent(values: pd.Series, bins=MAP_BINS, labels=MAP_BIN_LABELS) -> pd.Series:
    """Bucket percentages into right-closed bins; NaN and values <= bins[0] get no bin."""
    return pd.cut(values, bins=bins, labels=labels)


def exclude_regions(gdf: gpd.GeoDataFrame, regions=EXCLUDED_REGIONS, column: str = "REGION") -> gpd.GeoDataFrame:
    return gdf[~gdf[column].isin(regions)]


def render_choropleth(gdf: gpd.GeoDataFrame, column: str, title: str, out_path: Path) -> Path:
    """Draw ``column`` binned with MAP_BINS and save a PNG to ``out_path``."""
    binned = bin_percent(gdf[column])
    colors = plt.get_cmap(MAP_CMAP)([(i + 1) / len(MAP_BIN_LABELS) for i in range(len(MAP_BIN_LABELS))])
    color_for = {label: tuple(c) for label, c in zip(MAP_BIN_LABELS, colors)}
    facecolors = [color_for[b] if isinstance(b, str) else NO_FILL for b in binned]

    fig, ax = plt.subplots(figsize=(14, 8))
    if len(gdf):
        gdf.plot(ax=ax, color=facecolors, edgecolor="white", linewidth=0.1)
    ax.set_axis_off()
    ax.set_title(title)
    handles = [Patch(facecolor=color_for[label], label=label) for label in MAP_BIN_LABELS]
    ax.legend(handles=handles, title="pct denied per county", loc="lower left")

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    logger.info(f"Saved map to {out_path}")
    return out_path


def render_denial_maps(enriched: gpd.GeoDataFrame, out_dir: Path, region_column: str = "REGION") -> list[Path]:
    """Render the Latino and non-Latino maps (AK and HI excluded)."""
    shown = exclude_regions(enriched, column=region_column)
    return [
        render_choropleth(shown, column, title, Path(out_dir) / f"{name}.png")
        for name, (column, title) in MAP_VIEWS.items()
    ]
