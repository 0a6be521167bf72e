"""Clean generated diagram text into a usable diagram-description string.

Generated responses arrive with code fences, explanatory prose before or after
the diagram, and occasionally no diagram at all. ``clean_diagram_code`` keeps
only diagram syntax and substitutes a fixed three-node flowchart when what
remains is unusable, so callers always receive a renderable diagram.
"""

import re

from sop_engine.core.llm import strip_llm_fences
from sop_engine.core.logging import get_logger

logger = get_logger(__name__)

FALLBACK_DIAGRAM = """flowchart TD
    start(["Start Process"])
    step1["Review workflow steps"]
    end1(["End Process"])

    start --> step1
    step1 --> end1"""

MIN_DIAGRAM_LENGTH = 20

_HEADER_RE = re.compile(r"^(flowchart|graph|sequenceDiagram|classDiagram|stateDiagram(?:-v2)?|erDiagram)\b")

_EDGE_RE = re.compile(r"(-->>|->>|-\.->|-\.-|==>|-->|---|--\)|-\)|--x|->)")

_ID = r"(?:\w[\w-]*|\[\*\])"
_LABEL = r"(?:\[+[^\]]*\]+|\(+[^)]*\)+|\{+[^}]*\}+|>[^\]]*\])(?::::\w+)?"
_ARROW = r"[<|o*}{]*(?:-->>|->>|-\.->|-\.-|==>|-->|---|--|-[)x]|->|\.\.|==)"

# An edge line starts with a node id (optionally labelled) immediately followed by an arrow
_EDGE_LINE_RE = re.compile(rf"^{_ID}(?:\s*&\s*{_ID})*\s*{_LABEL}?\s*{_ARROW}")

# A node line is a node id with one complete label and nothing after it
_NODE_RE = re.compile(rf"^{_ID}\s*{_LABEL}\s*;?$")

_COMMON_RE = re.compile(
    r"^(%%|classDef\s+\w|class\s+[\w,]+\s+\w+;?$|style\s+\w|linkStyle\s|click\s+\w)"
)

_FLOW_KEYWORD_RE = re.compile(r"^(subgraph\b|end;?$|direction\s+(TB|TD|BT|RL|LR)$)")

_SEQUENCE_KEYWORD_RE = re.compile(
    r"^(participant\s|actor\s|activate\s|deactivate\s|[Nn]ote\s+(?:left of|right of|over)\s|"
    r"loop\b|alt\b|else\b|opt\b|par\b|and\b|rect\s|critical\b|break\b|box\b|autonumber$|end$)"
)


def _is_header(line: str) -> bool:
    return bool(_HEADER_RE.match(line.strip()))


def _is_diagram_line(line: str, header: str) -> bool:
    """Heuristic: node definitions, edges, and the block keywords of the diagram type."""
    stripped = line.strip()
    if not stripped:
        return True
    if _EDGE_LINE_RE.match(stripped) or _NODE_RE.match(stripped) or _COMMON_RE.match(stripped):
        return True
    keywords = _SEQUENCE_KEYWORD_RE if header.startswith("sequenceDiagram") else _FLOW_KEYWORD_RE
    return bool(keywords.match(stripped))


def has_edge(code: str) -> bool:
    return bool(_EDGE_RE.search(code))


def is_fallback(code: str) -> bool:
    return code.strip() == FALLBACK_DIAGRAM


def clean_diagram_code(raw: str | None) -> str:
    """Return sanitized diagram text, or ``FALLBACK_DIAGRAM`` when unusable.

    Steps:
    1. Strip code fences and surrounding whitespace
    2. Drop everything before the first diagram-type keyword line; with no
       keyword line there is no diagram
    3. Drop lines that are not syntax of that diagram type
    4. Reject results shorter than 20 chars or without any edge operator

    Idempotent: cleaning an already-cleaned diagram (fallback included)
    returns it unchanged.
    """
    if not raw or not raw.strip():
        logger.warning("Empty diagram response, using fallback")
        return FALLBACK_DIAGRAM

    code = strip_llm_fences(raw)
    lines = [line.rstrip() for line in code.split("\n")]

    start = next((i for i, line in enumerate(lines) if _is_header(line)), -1)
    if start == -1:
        logger.warning("No diagram keyword in response, using fallback")
        return FALLBACK_DIAGRAM

    header = lines[start].strip()
    kept = [header] + [line for line in lines[start + 1:] if _is_diagram_line(line, header)]
    cleaned = "\n".join(kept).strip()
    # Collapse runs of blank lines left behind by removed prose
    cleaned = re.sub(r"\n\s*\n(\s*\n)+", "\n\n", cleaned)

    if len(cleaned) < MIN_DIAGRAM_LENGTH or not has_edge(cleaned):
        logger.warning("Generated diagram code appears invalid, using fallback")
        return FALLBACK_DIAGRAM

    return cleaned
