"""XLSX worksheets, read from the archive's shared strings and sheet XML."""

import asyncio
import io
import logging
import re
import xml.etree.ElementTree as ET
import zipfile
from typing import List

from studyforge.core.errors import ExtractionError
from studyforge.schemas.extracted_content import ExtractedContent, SpreadsheetMetadata
from studyforge.services.extraction.registry import Extractor, register_extractor, study_frame

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
_SHEET_PATH = re.compile(r"^xl/worksheets/sheet(\d+)\.xml$")


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _shared_strings(archive: zipfile.ZipFile) -> List[str]:
    try:
        root = ET.fromstring(archive.read("xl/sharedStrings.xml"))
    except KeyError:
        return []
    strings = []
    for si in root:
        if _local(si.tag) != "si":
            continue
        strings.append("".join(node.text or "" for node in si.iter() if _local(node.tag) == "t"))
    return strings


def _cell_value(cell: ET.Element, shared: List[str]) -> str:
    cell_type = cell.get("t")
    if cell_type == "inlineStr":
        return "".join(node.text or "" for node in cell.iter() if _local(node.tag) == "t")
    value = next((node.text for node in cell if _local(node.tag) == "v"), None)
    if value is None:
        return ""
    if cell_type == "s":
        index = int(value)
        return shared[index] if 0 <= index < len(shared) else ""
    return value


def _read_workbook(data: bytes) -> List[List[List[str]]]:
    """Rows of non-empty cell values for every worksheet, in sheet order."""
    sheets = []
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        shared = _shared_strings(archive)
        sheet_paths = sorted(
            (name for name in archive.namelist() if _SHEET_PATH.match(name)),
            key=lambda name: int(_SHEET_PATH.match(name).group(1)),
        )
        for sheet_path in sheet_paths:
            try:
                root = ET.fromstring(archive.read(sheet_path))
            except ET.ParseError:
                logger.warning(f"Failed to parse worksheet XML '{sheet_path}'")
                sheets.append([])
                continue
            rows = []
            for row in root.iter():
                if _local(row.tag) != "row":
                    continue
                values = [v for v in (_cell_value(c, shared) for c in row if _local(c.tag) == "c") if v.strip()]
                if values:
                    rows.append(values)
            sheets.append(rows)
    return sheets


@register_extractor(priority=5)
class SpreadsheetExtractor(Extractor):
    name = "spreadsheet"
    kind = "spreadsheet"
    content_types = (XLSX_CONTENT_TYPE,)
    extensions = ("xlsx",)

    async def extract(self, raw, session) -> ExtractedContent:
        file = self.require_file(raw)
        try:
            sheets = await asyncio.to_thread(_read_workbook, file.data)
        except zipfile.BadZipFile as e:
            raise ExtractionError(f"Failed to extract text from Excel file: {e}", {"filename": file.filename}) from e

        populated = [rows for rows in sheets if rows]
        headers = populated[0][0] if populated else []
        row_count = sum(max(len(rows) - 1, 0) for rows in populated)
        column_count = max((len(row) for rows in populated for row in rows), default=0)
        body = "\n\n".join(
            f"Worksheet {i}:\n" + "\n".join(" | ".join(row) for row in rows)
            for i, rows in enumerate(populated, start=1)
        )

        metadata = SpreadsheetMetadata(
            document_type="Excel Spreadsheet",
            row_count=row_count,
            column_count=column_count,
            headers=headers,
            sheet_count=len(sheets),
        )
        return self.build(
            file.filename,
            body,
            metadata,
            frame=lambda b: study_frame(
                f"Excel Spreadsheet: {file.filename}",
                b,
                [
                    "Data patterns and numerical information",
                    "Text labels and descriptions",
                    "Structured data relationships",
                    "Tabular information and calculations",
                    "Business or academic data insights",
                ],
                details=f"Workbook Structure: {len(sheets)} worksheets",
                checklist_intro="This Excel spreadsheet should be analyzed for:",
            ),
        )
