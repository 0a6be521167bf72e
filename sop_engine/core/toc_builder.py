"""Authoritative section numbering and table of contents.

Runs after every producer has finished. The diagram group always owns number
"1"; narrative sections follow from 2 in generation order and subsections are
numbered ``{section}.{index}``. Nothing else in the engine assigns numbers.
"""

from sop_engine.core.schemas_sop import GeneratedChart, SOPSection, TOCEntry

DIAGRAM_GROUP_NUMBER = "1"
DIAGRAM_GROUP_TITLE = "Process Diagrams"
FIRST_SECTION_NUMBER = 2


def number_sections(sections: list[SOPSection], start: int = FIRST_SECTION_NUMBER) -> list[SOPSection]:
    """Return copies of ``sections`` with contiguous numbers, overwriting any existing ones."""
    numbered = []
    for offset, section in enumerate(sections):
        number = str(start + offset)
        subsections = [
            sub.model_copy(update={"number": f"{number}.{index}", "subsections": []})
            for index, sub in enumerate(section.subsections, start=1)
        ]
        numbered.append(section.model_copy(update={"number": number, "subsections": subsections}))
    return numbered


def build_table_of_contents(
    charts: list[GeneratedChart], sections: list[SOPSection]
) -> list[TOCEntry]:
    """Build TOC entries from charts and already-numbered sections."""
    diagram_entry = TOCEntry(
        number=DIAGRAM_GROUP_NUMBER,
        title=DIAGRAM_GROUP_TITLE,
        subsections=[
            TOCEntry(number=f"{DIAGRAM_GROUP_NUMBER}.{i}", title=chart.title)
            for i, chart in enumerate(charts, start=1)
        ],
    )

    entries = [diagram_entry]
    for section in sections:
        entries.append(
            TOCEntry(
                number=section.number,
                title=section.title,
                subsections=[
                    TOCEntry(number=sub.number, title=sub.title) for sub in section.subsections
                ],
            )
        )
    return entries
