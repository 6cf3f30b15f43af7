"""Jinja2 environment shared by the report document and email bodies."""

import base64
import math
from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATES_DIR = Path(__file__).parent / "templates"

GAUGE_RADIUS = 54

RATING_LABELS = {
    "good": "Good",
    "needs-improvement": "Needs improvement",
    "poor": "Poor",
}


def score_color(score: float | None) -> str:
    """Lighthouse colour band for a 0-100 score."""
    score = score or 0
    if score >= 90:
        return "#0cce6b"
    if score >= 50:
        return "#ffa400"
    return "#ff4e42"


def rating_color(rating: str) -> str:
    return {"good": "#0cce6b", "needs-improvement": "#ffa400"}.get(rating, "#ff4e42")


def rating_label(rating: str) -> str:
    return RATING_LABELS.get(rating, rating)


def impact_color(impact: str) -> str:
    return {"high": "#ff4e42", "medium": "#ffa400", "low": "#0cce6b"}.get(impact, "#ffa400")


def gauge_offset(score: float | None) -> float:
    """SVG stroke-dashoffset that fills a circular gauge to ``score`` percent."""
    circumference = 2 * math.pi * GAUGE_RADIUS
    return round(circumference - ((score or 0) / 100) * circumference, 2)


def data_uri(image: bytes, mime: str = "image/png") -> str:
    if not image:
        return ""
    return f"data:{mime};base64,{base64.b64encode(image).decode('ascii')}"


@lru_cache
def get_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(enabled_extensions=("html", "j2")),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["score_color"] = score_color
    env.filters["rating_color"] = rating_color
    env.filters["rating_label"] = rating_label
    env.filters["impact_color"] = impact_color
    env.filters["gauge_offset"] = gauge_offset
    env.filters["data_uri"] = data_uri
    env.globals["gauge_circumference"] = round(2 * math.pi * GAUGE_RADIUS, 2)
    env.globals["gauge_radius"] = GAUGE_RADIUS
    return env


def render_template(template_name: str, /, **context) -> str:
    return get_environment().get_template(template_name).render(**context)
