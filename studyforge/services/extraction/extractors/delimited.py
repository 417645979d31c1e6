"""CSV and TSV files rendered as a readable data summary."""

import csv
import io
import logging

from studyforge.core.errors import ExtractionError
from studyforge.schemas.extracted_content import ExtractedContent, SpreadsheetMetadata
from studyforge.services.extraction.registry import Extractor, register_extractor, study_frame

logger = logging.getLogger(__name__)

SAMPLE_ROWS = 10
TSV_CONTENT_TYPES = ("text/tsv", "text/tab-separated-values")


@register_extractor(priority=6)
class DelimitedTextExtractor(Extractor):
    name = "delimited"
    kind = "spreadsheet"
    content_types = ("text/csv",) + TSV_CONTENT_TYPES
    extensions = ("csv", "tsv")

    async def extract(self, raw, session) -> ExtractedContent:
        file = self.require_file(raw)
        is_tsv = file.filename.lower().endswith(".tsv") or (file.content_type or "").lower() in TSV_CONTENT_TYPES
        delimiter = "\t" if is_tsv else ","
        label = "TSV" if is_tsv else "CSV"

        text = file.data.decode("utf-8-sig", errors="replace")
        rows = [
            [value.strip() for value in row]
            for row in csv.reader(io.StringIO(text), delimiter=delimiter)
            if any(value.strip() for value in row)
        ]
        if not rows:
            raise ExtractionError(f"No valid data found in {label} file", {"filename": file.filename})

        headers, data_rows = rows[0], rows[1:]
        lines = [
            "Column Headers:",
            *(f"{i}. {header}" for i, header in enumerate(headers, start=1)),
            "",
            f"Sample Data (first {SAMPLE_ROWS} rows):",
        ]
        for index, row in enumerate(data_rows[:SAMPLE_ROWS], start=1):
            lines.append(f"\nRow {index}:")
            for col, header in enumerate(headers):
                lines.append(f"  {header}: {row[col] if col < len(row) and row[col] else 'N/A'}")
        if len(data_rows) > SAMPLE_ROWS:
            lines.append(f"\n... and {len(data_rows) - SAMPLE_ROWS} more rows")
        lines += [
            "",
            "Data Summary:",
            f"- Total Records: {len(data_rows)}",
            f"- Columns: {len(headers)}",
            f"- File Size: {file.size_bytes / 1024:.2f} KB",
            f"- Format: {label} ({'Tab' if is_tsv else 'Comma'} separated)",
        ]

        metadata = SpreadsheetMetadata(
            document_type=f"{label} Data",
            row_count=len(data_rows),
            column_count=len(headers),
            headers=headers,
            delimiter=delimiter,
        )
        return self.build(
            file.filename,
            "\n".join(lines),
            metadata,
            frame=lambda b: study_frame(
                f"{label} Data File: {file.filename}",
                b,
                [
                    "Data patterns and trends",
                    "Key relationships between columns",
                    "Statistical insights and distributions",
                    "Important data points and outliers",
                    "Business or research insights",
                ],
                details=f"Data Structure: {len(headers)} columns, {len(data_rows)} rows",
                body_heading="",
                checklist_intro=f"This {label} data should be analyzed for:",
            ),
        )
