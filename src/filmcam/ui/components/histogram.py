"""Histogram display component for the editor."""

import streamlit as st

from filmcam.models.histogram import Histogram

CHANNEL_COLORS = {"r": "#ef4444", "g": "#22c55e", "b": "#3b82f6"}


def histogram_svg(histogram: Histogram, width: int = 256, height: int = 100) -> str:
    """
    Render the three channel curves as an SVG document.

    Curves share the vertical scale of the largest bin. An empty histogram
    draws flat baselines.
    """
    polylines = []
    for channel, color in CHANNEL_COLORS.items():
        points = " ".join(f"{x:.2f},{y:.2f}" for x, y in histogram.polyline(channel, width, height))
        polylines.append(
            f'<polyline points="{points}" fill="none" stroke="{color}" stroke-width="1" stroke-opacity="0.8"/>'
        )

    return (
        f'<svg width="100%" viewBox="0 0 {width} {height}" preserveAspectRatio="none" '
        f'xmlns="http://www.w3.org/2000/svg" style="background-color: #111; border-radius: 6px;">'
        f"{''.join(polylines)}</svg>"
    )


def render_histogram(histogram: Histogram, title: str = "Histogram") -> None:
    st.markdown(f"#### {title}")

    if histogram.is_empty():
        st.info("No pixel data to analyze.")
        return

    st.markdown(histogram_svg(histogram), unsafe_allow_html=True)
    st.caption(f"Peak bin count: {histogram.max_count:,}")
