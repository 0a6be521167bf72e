"""Deterministic SVG cover image for SOP documents.

No generative call: a decorative pattern is picked from the document keywords
and dropped into a fixed landscape frame (US Letter at 300 DPI). The result is
base64 encoded so it can travel inside the document model and be embedded as a
data URL.
"""

import base64
import logging
from datetime import datetime, timezone
from enum import Enum
from string import Template

from sop_engine.core.logging import get_logger, log_with_context
from sop_engine.core.schemas_sop import CoverImage
from sop_engine.core.workflow_inputs import DEFAULT_KEYWORDS, ImageInput

logger = get_logger(__name__)

WIDTH = 3300
HEIGHT = 2550
PRIMARY = "#667eea"
SECONDARY = "#764ba2"
FALLBACK_PROMPT = "Fallback image generated due to error"


class CoverPattern(str, Enum):
    MANUFACTURING = "manufacturing"
    TECHNOLOGY = "technology"
    HEALTHCARE = "healthcare"
    FINANCE = "finance"
    GENERIC = "generic"


# First match wins, in this order
PATTERN_KEYWORDS: list[tuple[CoverPattern, tuple[str, ...]]] = [
    (CoverPattern.MANUFACTURING, ("manufacturing", "production")),
    (CoverPattern.TECHNOLOGY, ("software", "technology")),
    (CoverPattern.HEALTHCARE, ("healthcare", "medical")),
    (CoverPattern.FINANCE, ("finance", "banking")),
]


def select_pattern(keywords) -> CoverPattern:
    """Pick a pattern by substring match over the lower-cased, space-joined keywords."""
    haystack = " ".join(keywords).lower()
    for pattern, needles in PATTERN_KEYWORDS:
        if any(needle in haystack for needle in needles):
            return pattern
    return CoverPattern.GENERIC


def _accent(i: int) -> str:
    return f"url(#accent{i % 3 + 1})"


def _stroke(i: int) -> str:
    return PRIMARY if i % 2 == 0 else SECONDARY


def _manufacturing() -> list[str]:
    parts = ['<rect x="0" y="200" width="1000" height="12" fill="url(#accent1)" rx="6"/>']
    for i in range(4):
        x = 50 + i * 225
        parts.append(
            f'<rect x="{x}" y="100" width="150" height="150" rx="20" '
            f'fill="{_accent(i)}" filter="url(#shadow)"/>'
        )
        parts.append(
            f'<circle cx="{x + 75}" cy="350" r="70" stroke="{_stroke(i)}" '
            f'stroke-width="8" fill="{_accent(i + 1)}" opacity="0.6"/>'
        )
    return parts


def _technology() -> list[str]:
    top = [(200 + i * 350, 150) for i in range(4)]
    bottom = [(375 + i * 350, 400) for i in range(3)]
    parts = [
        f'<circle cx="{x}" cy="{y}" r="50" fill="{_accent(i)}" filter="url(#shadow)"/>'
        for i, (x, y) in enumerate(top + bottom)
    ]
    edges = list(zip(top, top[1:]))
    for j, (bx, by) in enumerate(bottom):
        edges.extend([(top[j], (bx, by)), (top[j + 1], (bx, by))])
    for i, ((x1, y1), (x2, y2)) in enumerate(edges):
        parts.append(
            f'<line x1="{x1}" y1="{y1}" x2="{x2}" y2="{y2}" stroke="{_stroke(i)}" '
            f'stroke-width="6" opacity="0.5"/>'
        )
    return parts


def _healthcare() -> list[str]:
    return [
        '<rect x="250" y="80" width="90" height="350" rx="18" fill="url(#accent1)" filter="url(#shadow)"/>',
        '<rect x="120" y="210" width="350" height="90" rx="18" fill="url(#accent2)" filter="url(#shadow)"/>',
        '<path d="M700 180 Q700 90 790 90 Q880 90 880 180 Q880 310 700 440 Q520 310 520 180 '
        'Q520 90 610 90 Q700 90 700 180 Z" fill="url(#accent3)" filter="url(#shadow)"/>',
        f'<path d="M100 520 L200 520 L250 430 L300 610 L350 520 L600 520" stroke="{PRIMARY}" '
        'stroke-width="10" fill="none" stroke-linecap="round" stroke-linejoin="round"/>',
    ]


def _finance() -> list[str]:
    heights = [180, 240, 300, 220, 270, 250, 230]
    parts = []
    points = []
    for i, h in enumerate(heights):
        x = 100 + i * 160
        parts.append(
            f'<rect x="{x}" y="{430 - h}" width="110" height="{h}" rx="14" '
            f'fill="{_accent(i)}" filter="url(#shadow)"/>'
        )
        points.append((x + 55, 430 - h + 90))
    path = " ".join(f"{'M' if i == 0 else 'L'}{x} {y}" for i, (x, y) in enumerate(points))
    parts.append(
        f'<path d="{path}" stroke="{PRIMARY}" stroke-width="9" fill="none" '
        'stroke-linecap="round" stroke-linejoin="round" opacity="0.7"/>'
    )
    for i, (x, y) in enumerate(points):
        parts.append(
            f'<circle cx="{x}" cy="{y}" r="18" fill="#ffffff" stroke="{_stroke(i)}" stroke-width="4"/>'
        )
    return parts


def _generic() -> list[str]:
    top = [(250, 200), (600, 200), (950, 200)]
    bottom = [(425, 450), (775, 450)]
    parts = [
        f'<circle cx="{x}" cy="{y}" r="140" fill="{_accent(i)}" filter="url(#shadow)"/>'
        for i, (x, y) in enumerate(top + bottom)
    ]
    edges = [(top[0], bottom[0]), (top[1], bottom[0]), (top[1], bottom[1]), (top[2], bottom[1])]
    for i, ((x1, y1), (x2, y2)) in enumerate(edges):
        parts.append(
            f'<line x1="{x1}" y1="{y1}" x2="{x2}" y2="{y2}" stroke="{_stroke(i)}" '
            f'stroke-width="8" opacity="0.5"/>'
        )
    for i, cx in enumerate((337, 512, 687)):
        parts.append(
            f'<circle cx="{cx}" cy="325" r="28" fill="#ffffff" stroke="{_stroke(i)}" stroke-width="5"/>'
        )
    return parts


_PATTERNS = {
    CoverPattern.MANUFACTURING: ((1200, 900), _manufacturing),
    CoverPattern.TECHNOLOGY: ((900, 900), _technology),
    CoverPattern.HEALTHCARE: ((1300, 900), _healthcare),
    CoverPattern.FINANCE: ((900, 900), _finance),
    CoverPattern.GENERIC: ((1100, 900), _generic),
}

_FRAME = Template(
    """<?xml version="1.0" encoding="UTF-8"?>
<svg width="$width" height="$height" viewBox="0 0 $width $height" fill="none" xmlns="http://www.w3.org/2000/svg">
  <defs>
    <linearGradient id="bgGradient" x1="0%" y1="0%" x2="100%" y2="100%">
      <stop offset="0%" style="stop-color:$primary;stop-opacity:0.35" />
      <stop offset="50%" style="stop-color:$secondary;stop-opacity:0.25" />
      <stop offset="100%" style="stop-color:$primary;stop-opacity:0.35" />
    </linearGradient>
    <linearGradient id="accent1" x1="0%" y1="0%" x2="100%" y2="100%">
      <stop offset="0%" style="stop-color:$primary;stop-opacity:0.85" />
      <stop offset="100%" style="stop-color:$secondary;stop-opacity:0.75" />
    </linearGradient>
    <linearGradient id="accent2" x1="100%" y1="0%" x2="0%" y2="100%">
      <stop offset="0%" style="stop-color:$secondary;stop-opacity:0.8" />
      <stop offset="100%" style="stop-color:$primary;stop-opacity:0.7" />
    </linearGradient>
    <linearGradient id="accent3" x1="0%" y1="100%" x2="100%" y2="0%">
      <stop offset="0%" style="stop-color:$primary;stop-opacity:0.75" />
      <stop offset="100%" style="stop-color:$secondary;stop-opacity:0.85" />
    </linearGradient>
    <radialGradient id="circleGrad1">
      <stop offset="0%" style="stop-color:$primary;stop-opacity:0.6" />
      <stop offset="100%" style="stop-color:$primary;stop-opacity:0.1" />
    </radialGradient>
    <radialGradient id="circleGrad2">
      <stop offset="0%" style="stop-color:$secondary;stop-opacity:0.6" />
      <stop offset="100%" style="stop-color:$secondary;stop-opacity:0.1" />
    </radialGradient>
    <filter id="blur"><feGaussianBlur in="SourceGraphic" stdDeviation="3" /></filter>
    <filter id="shadow"><feDropShadow dx="0" dy="8" stdDeviation="15" flood-opacity="0.15"/></filter>
  </defs>
  <rect width="$width" height="$height" fill="#ffffff"/>
  <rect width="$width" height="$height" fill="url(#bgGradient)"/>
  <circle cx="300" cy="200" r="400" fill="url(#circleGrad1)" filter="url(#blur)"/>
  <circle cx="2900" cy="400" r="500" fill="url(#circleGrad2)" filter="url(#blur)"/>
  <circle cx="600" cy="2150" r="450" fill="url(#circleGrad1)" filter="url(#blur)"/>
  <circle cx="2700" cy="2250" r="400" fill="url(#circleGrad2)" filter="url(#blur)"/>
  <g opacity="0.6" transform="translate($pattern_x, $pattern_y)">
    $pattern
  </g>
  <g opacity="0.5" stroke-linecap="round">
    $flows
  </g>
  <g opacity="0.7" filter="url(#shadow)">
    $nodes
  </g>
  <rect width="$width" height="30" fill="url(#accent1)" opacity="0.7"/>
  <rect y="${footer_y}" width="$width" height="30" fill="url(#accent3)" opacity="0.7"/>
</svg>
"""
)

_GRID_X = (800, 1754, 2708)
_GRID_Y = (800, 1240, 1680)


def _flows() -> list[str]:
    lines = []
    for i, y in enumerate(_GRID_Y):
        lines.append(
            f'<path d="M200 {y} Q1200 {y - 100} 2200 {y} T{WIDTH} {y}" '
            f'stroke="{_stroke(i)}" stroke-width="6" fill="none"/>'
        )
    for i, x in enumerate(_GRID_X):
        lines.append(
            f'<path d="M{x} 200 Q{x - 100} 900 {x} 1600 T{x} 2280" '
            f'stroke="{_stroke(i + 1)}" stroke-width="6" fill="none"/>'
        )
    return lines


def _nodes() -> list[str]:
    nodes = []
    for row, y in enumerate(_GRID_Y):
        for col, x in enumerate(_GRID_X):
            color = _stroke(row + col)
            nodes.append(
                f'<circle cx="{x}" cy="{y}" r="80" fill="#ffffff" stroke="{color}" stroke-width="6"/>'
            )
            nodes.append(f'<circle cx="{x}" cy="{y}" r="35" fill="{color}"/>')
    return nodes


def render_cover_svg(pattern: CoverPattern) -> str:
    """Render the full SVG document for a pattern. Contains no text."""
    (x, y), build = _PATTERNS[pattern]
    return _FRAME.substitute(
        width=WIDTH,
        height=HEIGHT,
        footer_y=HEIGHT - 30,
        primary=PRIMARY,
        secondary=SECONDARY,
        pattern_x=x,
        pattern_y=y,
        pattern="\n    ".join(build()),
        flows="\n    ".join(_flows()),
        nodes="\n    ".join(_nodes()),
    )


def describe_request(image_input: ImageInput, pattern: CoverPattern) -> str:
    """Human-readable description of what the cover depicts."""
    keywords = ", ".join(image_input.keywords) or "professional, business, workflow"
    return (
        f"Minimalist cover for '{image_input.title}' "
        f"(industry: {image_input.industry or 'General Business'}, "
        f"process type: {image_input.process_type}); "
        f"{pattern.value} motif over abstract workflow lines and connected nodes; "
        f"themes: {keywords}; no text"
    )


def _encode(svg: str) -> str:
    return base64.b64encode(svg.encode("utf-8")).decode("ascii")


def generate_cover_image(image_input: ImageInput, now: datetime | None = None) -> CoverImage:
    """Build the cover image. Never raises; malformed input yields the generic image."""
    generated_at = now or datetime.now(timezone.utc)
    try:
        keywords = image_input.keywords or DEFAULT_KEYWORDS
        pattern = select_pattern(keywords)
        cover = CoverImage(
            image_data=_encode(render_cover_svg(pattern)),
            prompt=describe_request(image_input, pattern),
            pattern=pattern.value,
            generated_at=generated_at,
        )
    except Exception as e:
        log_with_context(
            logger,
            logging.WARNING,
            "Cover image generation failed, using generic image",
            error=str(e),
        )
        return CoverImage(
            image_data=_encode(render_cover_svg(CoverPattern.GENERIC)),
            prompt=FALLBACK_PROMPT,
            pattern=CoverPattern.GENERIC.value,
            generated_at=generated_at,
        )

    logger.debug(f"Cover image rendered with {pattern.value} pattern")
    return cover


def to_data_url(cover_image: CoverImage) -> str:
    return f"data:{cover_image.mime_type};base64,{cover_image.image_data}"
