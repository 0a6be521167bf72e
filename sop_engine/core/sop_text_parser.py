"""Parse generated ISO-style SOP prose into sections and subsections.

The grammar is line oriented. Each line is classified once, then a small state
machine routes it into the open section or subsection:

    SECTION     "### Title"   (any "1." / "1 -" / "1:" prefix is discarded)
    SUBSECTION  "#### Title"  (any "1.1" / "1.1 -" / "1.1:" prefix is discarded)
    BLANK       preserved as a paragraph break in the open buffer
    CONTENT     appended verbatim to the open buffer

Sections come out unnumbered; the document assembler assigns every number.
"""

import re
from dataclasses import dataclass, field
from enum import Enum

from sop_engine.core.schemas_sop import SOPSection


class LineKind(Enum):
    SECTION = "section"
    SUBSECTION = "subsection"
    CONTENT = "content"
    BLANK = "blank"


_SECTION_MARKER_RE = re.compile(r"^###(?!#)\s*")
_SUBSECTION_MARKER_RE = re.compile(r"^####+\s*")
_SECTION_NUMBER_RE = re.compile(r"^\d+(?:\.\s*|\s*[-:]\s*|\s+)")
_SUBSECTION_NUMBER_RE = re.compile(r"^\d+(?:\.\d+)+\.?(?:\s*[-:]\s*|\s*)")
_EMPHASIS_RE = re.compile(r"^[*_]+|[*_]+$")

# List normalisation
_MAIN_ITEM_RE = re.compile(r"^(\d+)\.\s+(.+?)(?:\s+-\s+(.+))?$")
_MAIN_PREFIX_RE = re.compile(r"^\d+\.\s+")
_SUB_ITEM_RE = re.compile(r"^(\d+\.\d+)\s+(.+)$")
SUB_ITEM_INDENT = "   "
SUB_ITEM_LOOKAHEAD = 10


def classify_line(line: str) -> LineKind:
    stripped = line.strip()
    if not stripped:
        return LineKind.BLANK
    if _SECTION_MARKER_RE.match(stripped):
        return LineKind.SECTION
    if _SUBSECTION_MARKER_RE.match(stripped):
        return LineKind.SUBSECTION
    return LineKind.CONTENT


def _clean_title(raw: str, marker_re: re.Pattern, number_re: re.Pattern) -> str:
    title = marker_re.sub("", raw.strip())
    title = number_re.sub("", title, count=1)
    title = title.replace("\r", " ").replace("\n", " ").rstrip("#").strip()
    title = _EMPHASIS_RE.sub("", title).strip()
    return re.sub(r"\s+", " ", title)


def extract_section_title(line: str) -> str:
    return _clean_title(line, _SECTION_MARKER_RE, _SECTION_NUMBER_RE)


def extract_subsection_title(line: str) -> str:
    return _clean_title(line, _SUBSECTION_MARKER_RE, _SUBSECTION_NUMBER_RE)


@dataclass
class _Node:
    title: str
    content: list[str] = field(default_factory=list)
    children: list["_Node"] = field(default_factory=list)

    def to_section(self) -> SOPSection:
        return SOPSection(
            title=self.title,
            content=format_list_content("".join(self.content)),
            subsections=[child.to_section() for child in self.children],
        )


def parse_sop_sections(text: str) -> list[SOPSection]:
    """Parse generated text into unnumbered sections with one level of subsections.

    Content before the first section heading is discarded; a subsection heading
    with no open section is ignored.
    """
    sections: list[_Node] = []
    section: _Node | None = None
    subsection: _Node | None = None

    for line in (text or "").replace("\r\n", "\n").split("\n"):
        kind = classify_line(line)

        if kind is LineKind.SECTION:
            section = _Node(title=extract_section_title(line))
            sections.append(section)
            subsection = None
        elif kind is LineKind.SUBSECTION:
            if section is not None:
                subsection = _Node(title=extract_subsection_title(line))
                section.children.append(subsection)
        else:
            target = subsection or section
            if target is not None:
                target.content.append("\n" if kind is LineKind.BLANK else line + "\n")

    return [node.to_section() for node in sections]


def _has_sub_items(lines: list[str], start: int, item_number: str) -> bool:
    """Whether ``N.M`` sub-items for ``item_number`` follow before the next main item."""
    sub_re = re.compile(rf"^{re.escape(item_number)}\.\d+\s+")
    for line in lines[start : start + SUB_ITEM_LOOKAHEAD]:
        trimmed = line.strip()
        if not trimmed:
            continue
        if sub_re.match(trimmed):
            return True
        if _MAIN_PREFIX_RE.match(trimmed) and not trimmed.startswith(f"{item_number}."):
            break
    return False


def _is_list_line(trimmed: str) -> bool:
    return bool(_MAIN_PREFIX_RE.match(trimmed) or _SUB_ITEM_RE.match(trimmed))


def format_list_content(content: str | None) -> str:
    """Normalise numbered lists to a canonical shape.

    - ``N. Title - Description`` becomes ``N. Title`` with the description on
      the next line
    - ``N. Title`` with no sub-items takes an immediately following prose line
      as its description
    - ``N.M text`` is re-indented to exactly three spaces

    Idempotent: ``format_list_content(format_list_content(x)) == format_list_content(x)``.
    """
    if not content:
        return ""

    lines = content.split("\n")
    formatted: list[str] = []
    i = 0

    while i < len(lines):
        line = lines[i]
        if not line:
            formatted.append("")
            i += 1
            continue

        trimmed = line.strip()
        main_match = _MAIN_ITEM_RE.match(trimmed)
        sub_match = _SUB_ITEM_RE.match(trimmed)

        if main_match:
            number, title, description = main_match.groups()
            if description and _is_list_line(description):
                # "1. A - 2.1 B" is not a title/description pair
                title, description = trimmed[len(number) + 1 :].strip(), None

            formatted.append(f"{number}. {title}")
            if description:
                formatted.append(description)
            elif i + 1 < len(lines) and not _has_sub_items(lines, i + 1, number):
                next_line = lines[i + 1]
                next_trimmed = next_line.strip()
                if next_trimmed and not _is_list_line(next_trimmed):
                    formatted.append(next_line)
                    i += 1
        elif sub_match:
            formatted.append(f"{SUB_ITEM_INDENT}{sub_match.group(1)} {sub_match.group(2)}")
        else:
            formatted.append(line)

        i += 1

    return "\n".join(formatted)
