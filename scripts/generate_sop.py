"""Generate an SOP document from a workflow definition and export it.

Runs the full assembly (diagrams, narrative, cover image), prints the
advisory validation report, then exports each requested format.

Usage:
    python scripts/generate_sop.py --workflow <path.json> \
        [--format <fmt> ...] [--template <id>] [--watermark <text>] [--output-dir <dir>]

Examples:
    # Markdown only (default)
    python scripts/generate_sop.py --workflow examples/onboarding.json

    # PDF and DOCX with the training template
    python scripts/generate_sop.py --workflow examples/onboarding.json \
        --format pdf --format docx --template training-sop --output-dir /tmp/sops
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Ensure sop_engine is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


async def run(
    workflow_path: str,
    formats: list[str],
    template: str | None,
    watermark: str | None,
    output_dir: str | None,
) -> int:
    from sop_engine.core.exceptions import SOPEngineError
    from sop_engine.core.export import ExportOptions, export_document, validate_for_export
    from sop_engine.services.document_assembler import generate_complete_document

    workflow = json.loads(Path(workflow_path).read_text(encoding="utf-8"))

    print(f"\n{'='*60}")
    print(f"Generating SOP from {workflow_path}...")
    try:
        document = await generate_complete_document(workflow)
    except SOPEngineError as e:
        print(f"ERROR: document generation failed: {e.message}")
        return 1

    print(f"  Title: {document.metadata.title}")
    print(f"  Document No: {document.metadata.document_number}")
    print(f"  Sections: {len(document.sections)}")
    print(f"  Charts: {len(document.charts)}")

    print(f"\nValidation...")
    report = validate_for_export(document)
    print(f"  Score: {report.score} ({'valid' if report.is_valid else 'invalid'})")
    for issue in report.errors + report.warnings:
        print(f"  [{issue.severity.upper()}] {issue.code}: {issue.message}")
    for suggestion in report.suggestions:
        print(f"  -> {suggestion}")

    options = ExportOptions(template=template, watermark=watermark, output_dir=output_dir)
    failures = 0
    print(f"\nExporting...")
    for fmt in formats:
        result = export_document(document, fmt, options)
        if result.success:
            print(f"  {result.format}: {result.file_path} ({result.file_size} bytes) sha256={result.checksum}")
        else:
            failures += 1
            print(f"  {result.format}: FAILED - {result.error}")

    print(f"{'='*60}\n")
    return 1 if failures else 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Generate an SOP document from a workflow definition and export it",
    )
    parser.add_argument("--workflow", required=True, metavar="PATH", help="Workflow definition JSON file")
    parser.add_argument(
        "--format",
        dest="formats",
        action="append",
        metavar="FORMAT",
        help="Export format: pdf, docx, html, markdown, agent_markdown (repeatable, default markdown)",
    )
    parser.add_argument("--template", help="Template id (standard-sop, training-sop, process-improvement)")
    parser.add_argument("--watermark", help="Watermark text")
    parser.add_argument("--output-dir", help="Directory for exported files (default SOP_EXPORT_DIR)")

    args = parser.parse_args()

    sys.exit(asyncio.run(run(
        workflow_path=args.workflow,
        formats=args.formats or ["markdown"],
        template=args.template,
        watermark=args.watermark,
        output_dir=args.output_dir,
    )))


if __name__ == "__main__":
    main()
