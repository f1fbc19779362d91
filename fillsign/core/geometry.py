"""
Conversion between editor coordinates and PDF page coordinates.

Editor coordinates are logical (CSS-like) pixels with the origin at the
top-left of the rendered page and y growing downward. PDF coordinates are
points with the origin at the bottom-left of the page and y growing
upward.
"""
import math
from dataclasses import dataclass
from typing import Tuple

ZOOM_MIN = 0.5
ZOOM_MAX = 3.0
MIN_VIEW_WIDTH_PX = 320


@dataclass(frozen=True)
class GeometryContext:
    """Snapshot of everything needed to map between the two spaces."""

    page_width_pt: float
    page_height_pt: float
    base_width_css: float = 0.0  # fit-to-width page width before zoom
    zoom: float = 1.0
    device_pixel_ratio: float = 1.0

    @property
    def pixels_per_point(self) -> float:
        # Before the first layout there is no base width yet
        base = self.base_width_css / self.page_width_pt if self.base_width_css else 1.0
        return base * self.zoom

    def with_zoom(self, zoom: float) -> "GeometryContext":
        return GeometryContext(self.page_width_pt, self.page_height_pt,
                               self.base_width_css, zoom, self.device_pixel_ratio)


def to_pdf_point(x_css: float, y_css: float, ctx: GeometryContext) -> Tuple[float, float]:
    """Map an editor point to PDF points. Assumes ``ctx.pixels_per_point > 0``."""
    ppp = ctx.pixels_per_point
    return x_css / ppp, ctx.page_height_pt - y_css / ppp


def to_css_point(x_pt: float, y_pt: float, ctx: GeometryContext) -> Tuple[float, float]:
    """Map a PDF point to editor pixels. Exact inverse of :func:`to_pdf_point`."""
    ppp = ctx.pixels_per_point
    return x_pt * ppp, (ctx.page_height_pt - y_pt) * ppp


def css_delta_to_pdf(dx_css: float, dy_css: float, pixels_per_point: float) -> Tuple[float, float]:
    """Convert a pointer delta to a point-space delta (y flips)."""
    return dx_css / pixels_per_point, -dy_css / pixels_per_point


def fit_to_width_scale(page_width_pt: float, available_width_css: float,
                       min_width_css: float = MIN_VIEW_WIDTH_PX) -> float:
    """Scale that makes the page exactly fill the available width."""
    return max(min_width_css, available_width_css) / page_width_pt


def clamp_zoom(zoom: float, lo: float = ZOOM_MIN, hi: float = ZOOM_MAX) -> float:
    return max(lo, min(hi, zoom))


def step_zoom(zoom: float, delta: float, lo: float = ZOOM_MIN, hi: float = ZOOM_MAX) -> float:
    """Apply a zoom step, rounding to two decimals so repeated steps don't drift."""
    return clamp_zoom(round(zoom + delta, 2), lo, hi)


@dataclass(frozen=True)
class RenderGeometry:
    """Sizes derived for one render pass of a page."""

    fit_scale: float
    render_scale: float
    base_width_css: int
    base_height_css: int
    canvas_width_px: int
    canvas_height_px: int
    css_width: int
    css_height: int


def compute_render_geometry(page_width_pt: float, page_height_pt: float,
                            available_width_css: float, zoom: float,
                            device_pixel_ratio: float = 1.0,
                            min_width_css: float = MIN_VIEW_WIDTH_PX) -> RenderGeometry:
    """
    Work out the raster size for a page render.

    The raster is produced at ``fit * zoom * dpr`` device pixels per point and
    shown at ``1 / dpr`` of that size in logical pixels.
    """
    dpr = max(1.0, device_pixel_ratio or 1.0)
    fit = fit_to_width_scale(page_width_pt, available_width_css, min_width_css)
    render_scale = fit * zoom * dpr
    vw = page_width_pt * render_scale
    vh = page_height_pt * render_scale
    return RenderGeometry(
        fit_scale=fit,
        render_scale=render_scale,
        base_width_css=round(page_width_pt * fit),
        base_height_css=round(page_height_pt * fit),
        canvas_width_px=math.ceil(vw),
        canvas_height_px=math.ceil(vh),
        css_width=round(vw / dpr),
        css_height=round(vh / dpr),
    )
