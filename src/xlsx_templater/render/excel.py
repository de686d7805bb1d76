"""
Excel (XLSX) Document: openpyxl 기반.

역할:
- Sheet / Document 인터페이스 구현 (render 코어가 사용)
- 행 삽입/삭제 시 openpyxl이 직접 처리하지 않는 부분 보정
  (행 높이, 병합 범위, 이미지 앵커)
- 템플릿 파일/바이트 → 렌더 → 파일/바이트 간편 함수
"""

import json
from copy import copy
from dataclasses import replace
from io import BytesIO
from pathlib import Path
from typing import Any

import yaml
from openpyxl import load_workbook
from openpyxl.cell.cell import MergedCell
from openpyxl.drawing.image import Image as OpenpyxlImage
from openpyxl.drawing.spreadsheet_drawing import AnchorMarker, TwoCellAnchor
from openpyxl.formatting.formatting import ConditionalFormattingList
from openpyxl.formatting.rule import Rule
from openpyxl.utils import get_column_letter
from openpyxl.utils.cell import coordinate_from_string
from openpyxl.utils.units import (
    DEFAULT_COLUMN_WIDTH,
    DEFAULT_ROW_HEIGHT,
    pixels_to_EMU,
    points_to_pixels,
)
from openpyxl.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from xlsx_templater.config import RenderSettings
from xlsx_templater.core.images import ImageFetcher
from xlsx_templater.domain.constants import DATA_FILE_EXTENSIONS
from xlsx_templater.domain.errors import ErrorCodes, ImageError, TemplateError
from xlsx_templater.domain.schemas import (
    ConditionalFormat,
    ConditionalFormatRule,
    ImageAnchor,
    MergeRange,
    RenderLog,
)
from xlsx_templater.render.document import Document, Sheet
from xlsx_templater.render.templater import SheetSelector, render

# 열 너비(문자 수) → 픽셀 근사치
_PIXELS_PER_WIDTH_UNIT = 7


class XlsxSheet(Sheet):
    """
    openpyxl Worksheet 래퍼.

    Usage:
        sheet = XlsxSheet(workbook.active)
        sheet.cell(1, 1).value
    """

    def __init__(self, worksheet: Worksheet):
        self.worksheet = worksheet
        self._images: dict[int, bytes] = {}

    @property
    def title(self) -> str:
        return self.worksheet.title

    @property
    def max_row(self) -> int:
        return self.worksheet.max_row

    @property
    def max_column(self) -> int:
        return self.worksheet.max_column

    # -------------------------------------------------------------------------
    # Cells
    # -------------------------------------------------------------------------

    def cell(self, row: int, column: int) -> Any:
        return self.worksheet.cell(row=row, column=column)

    def is_merged(self, cell: Any) -> bool:
        return isinstance(cell, MergedCell)

    def formula(self, cell: Any) -> str | None:
        if isinstance(cell, MergedCell):
            return None
        value = cell.value
        if cell.data_type == "f" and isinstance(value, str) and value.startswith("="):
            return value[1:]
        return None

    def set_formula(self, cell: Any, formula: str) -> None:
        cell.value = f"={formula}"

    def copy_style(self, source: Any, target: Any) -> None:
        if source.has_style:
            target._style = copy(source._style)

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    def row_height(self, row: int) -> float | None:
        dim = self.worksheet.row_dimensions.get(row)
        return dim.height if dim is not None else None

    def set_row_height(self, row: int, height: float | None) -> None:
        if height is None and row not in self.worksheet.row_dimensions:
            return
        self.worksheet.row_dimensions[row].height = height

    def insert_rows(self, idx: int, amount: int) -> None:
        if amount <= 0:
            return

        # openpyxl insert_rows는 병합 범위를 옮기지 않음 → 해제 후 재병합
        affected = [r for r in self.merged_ranges() if r.bottom >= idx]
        for merge_range in affected:
            self.worksheet.unmerge_cells(merge_range.coord)

        self.worksheet.insert_rows(idx, amount)
        self._move_row_dimensions(idx, amount)
        self._move_images(idx, amount)

        for merge_range in affected:
            if merge_range.top >= idx:
                moved = merge_range.shifted(amount)
            else:
                # 삽입 위치를 가로지르는 병합은 늘어남
                moved = replace(merge_range, bottom=merge_range.bottom + amount)
            self.worksheet.merge_cells(moved.coord)

    def delete_rows(self, idx: int, amount: int) -> None:
        if amount <= 0:
            return

        last = idx + amount - 1
        affected = [r for r in self.merged_ranges() if r.bottom >= idx]
        for merge_range in affected:
            self.worksheet.unmerge_cells(merge_range.coord)

        self.worksheet.delete_rows(idx, amount)
        self._move_row_dimensions(idx, -amount)
        self._move_images(idx, -amount)

        for merge_range in affected:
            moved = _merge_after_delete(merge_range, idx, last, amount)
            if moved is not None:
                self.worksheet.merge_cells(moved.coord)

    def _move_row_dimensions(self, idx: int, amount: int) -> None:
        dims = self.worksheet.row_dimensions
        if amount > 0:
            rows = sorted((r for r in list(dims.keys()) if r >= idx), reverse=True)
        else:
            deleted = range(idx, idx - amount)
            for r in [r for r in list(dims.keys()) if r in deleted]:
                del dims[r]
            rows = sorted(r for r in list(dims.keys()) if r >= idx)

        for r in rows:
            dim = dims.pop(r)
            dim.index = r + amount
            dims[r + amount] = dim

    def _move_images(self, idx: int, amount: int) -> None:
        # 앵커 마커는 0-based
        first = idx - 1
        for image in self.worksheet._images:
            anchor = image.anchor
            if isinstance(anchor, str):
                column, row = coordinate_from_string(anchor)
                if row >= idx:
                    image.anchor = f"{column}{max(idx, row + amount)}"
                continue

            markers = ((getattr(anchor, "_from", None), False), (getattr(anchor, "to", None), True))
            for marker, is_end in markers:
                if marker is None or marker.row < first:
                    continue
                # 삽입 지점 바로 위에서 끝나는 이미지는 늘리지 않음
                if is_end and amount > 0 and marker.row == first and not marker.rowOff:
                    continue
                marker.row = max(first, marker.row + amount)

    # -------------------------------------------------------------------------
    # Merges
    # -------------------------------------------------------------------------

    def merged_ranges(self) -> list[MergeRange]:
        ranges = [
            MergeRange(top=r.min_row, left=r.min_col, bottom=r.max_row, right=r.max_col)
            for r in self.worksheet.merged_cells.ranges
        ]
        return sorted(ranges, key=lambda r: (r.top, r.left))

    def merge(self, merge_range: MergeRange) -> None:
        self.worksheet.merge_cells(merge_range.coord)

    def unmerge(self, merge_range: MergeRange) -> None:
        self.worksheet.unmerge_cells(merge_range.coord)

    # -------------------------------------------------------------------------
    # Conditional Formatting
    # -------------------------------------------------------------------------

    def get_conditional_formats(self) -> list[ConditionalFormat]:
        formats = []
        for cf in self.worksheet.conditional_formatting:
            rules = [
                ConditionalFormatRule(formulae=list(rule.formula or []), source=rule)
                for rule in cf.rules
            ]
            formats.append(ConditionalFormat(ref=str(cf.sqref), rules=rules))
        return formats

    def set_conditional_formats(self, formats: list[ConditionalFormat]) -> None:
        fresh = ConditionalFormattingList()
        for cf in formats:
            if not cf.ref.strip():
                continue
            for rule in cf.rules:
                target = _copy_rule(rule.source) if rule.source is not None else Rule(type="expression")
                target.formula = list(rule.formulae)
                # 우선순위는 추가 순서대로 다시 부여
                target.priority = 0
                fresh.add(cf.ref, target)
        self.worksheet.conditional_formatting = fresh

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    def add_image(self, data: bytes, extension: str) -> int:
        try:
            OpenpyxlImage(BytesIO(data))
        except (OSError, ValueError) as e:
            raise ImageError(
                ErrorCodes.IMAGE_UNREADABLE,
                extension=extension,
                error=str(e),
            ) from e

        image_id = len(self._images) + 1
        self._images[image_id] = data
        return image_id

    def place_image(self, image_id: int, anchor: ImageAnchor) -> None:
        image = OpenpyxlImage(BytesIO(self._images[image_id]))
        image.anchor = TwoCellAnchor(
            editAs="oneCell",
            _from=self._marker(anchor.from_col, anchor.from_row),
            to=self._marker(anchor.to_col, anchor.to_row),
        )
        self.worksheet.add_image(image)

    def _marker(self, col: float, row: float) -> AnchorMarker:
        col_index = int(col)
        row_index = int(row)
        col_off = pixels_to_EMU(self._column_width_px(col_index + 1) * (col - col_index))
        row_off = pixels_to_EMU(self._row_height_px(row_index + 1) * (row - row_index))
        return AnchorMarker(col=col_index, colOff=col_off, row=row_index, rowOff=row_off)

    def _column_width_px(self, column: int) -> float:
        dim = self.worksheet.column_dimensions.get(get_column_letter(column))
        width = dim.width if dim is not None and dim.width else DEFAULT_COLUMN_WIDTH
        return width * _PIXELS_PER_WIDTH_UNIT

    def _row_height_px(self, row: int) -> float:
        dim = self.worksheet.row_dimensions.get(row)
        height = dim.height if dim is not None and dim.height else DEFAULT_ROW_HEIGHT
        return points_to_pixels(height)


def _copy_rule(rule: Rule) -> Rule:
    """Rule 복사 (XML 왕복 복사에서 빠지는 dxf 스타일 유지)."""
    clone = copy(rule)
    clone.dxf = rule.dxf
    return clone


def _merge_after_delete(
    merge_range: MergeRange,
    idx: int,
    last: int,
    amount: int,
) -> MergeRange | None:
    """행 삭제 후 병합 범위 (사라지거나 한 칸이 되면 None)."""
    if merge_range.top < idx:
        top = merge_range.top
    elif merge_range.top > last:
        top = merge_range.top - amount
    else:
        top = idx

    if merge_range.bottom < idx:
        bottom = merge_range.bottom
    elif merge_range.bottom > last:
        bottom = merge_range.bottom - amount
    else:
        bottom = idx - 1

    if bottom < top:
        return None
    if top == bottom and merge_range.left == merge_range.right:
        return None
    return replace(merge_range, top=top, bottom=bottom)


class XlsxDocument(Document):
    """
    openpyxl Workbook 래퍼.

    Usage:
        document = load_document(template_path)
        render(document, data, sheets=["Report"])
        document.save(output_path)
    """

    def __init__(self, workbook: Workbook):
        self.workbook = workbook
        self._sheets: dict[str, XlsxSheet] = {}

    @property
    def sheet_names(self) -> list[str]:
        return list(self.workbook.sheetnames)

    def sheet(self, selector: str | int) -> XlsxSheet:
        names = self.sheet_names
        if isinstance(selector, int) and not isinstance(selector, bool):
            if not 0 <= selector < len(names):
                raise TemplateError(ErrorCodes.SHEET_NOT_FOUND, sheet=selector)
            name = names[selector]
        elif selector in names:
            name = selector
        else:
            raise TemplateError(ErrorCodes.SHEET_NOT_FOUND, sheet=selector)

        if name not in self._sheets:
            self._sheets[name] = XlsxSheet(self.workbook[name])
        return self._sheets[name]

    def save(self, output_path: Path) -> Path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.workbook.save(output_path)
        return output_path

    def to_bytes(self) -> bytes:
        buffer = BytesIO()
        self.workbook.save(buffer)
        return buffer.getvalue()


# =============================================================================
# Convenience
# =============================================================================

def load_document(template_path: Path) -> XlsxDocument:
    """
    XLSX 템플릿 로드.

    Raises:
        TemplateError: TEMPLATE_NOT_FOUND
    """
    if not template_path.exists():
        raise TemplateError(
            ErrorCodes.TEMPLATE_NOT_FOUND,
            path=str(template_path),
        )
    return XlsxDocument(load_workbook(template_path))


def render_xlsx(
    template_path: Path,
    data: dict[str, Any],
    output_path: Path,
    sheets: SheetSelector = None,
    fetcher: ImageFetcher | None = None,
    settings: RenderSettings | None = None,
    render_log: RenderLog | None = None,
) -> Path:
    """
    Excel 문서 생성 (간편 함수).

    Args:
        template_path: XLSX 템플릿 파일 경로
        data: 템플릿에 채울 데이터
        output_path: 출력 파일 경로
        sheets: 렌더할 시트 (이름/인덱스/목록, None이면 첫 시트)
        fetcher: 이미지 다운로더 (None이면 HttpImageFetcher)
        settings: 렌더 설정
        render_log: 경고를 받을 RenderLog

    Returns:
        저장된 파일 경로
    """
    document = load_document(template_path)
    render(
        document,
        data,
        sheets=sheets,
        fetcher=fetcher,
        settings=settings,
        render_log=render_log,
    )
    return document.save(output_path)


def render_xlsx_bytes(
    content: bytes,
    data: dict[str, Any],
    sheets: SheetSelector = None,
    fetcher: ImageFetcher | None = None,
    settings: RenderSettings | None = None,
    render_log: RenderLog | None = None,
) -> bytes:
    """
    메모리 내 XLSX 바이트 렌더링.

    Returns:
        렌더 결과 XLSX 바이트
    """
    document = XlsxDocument(load_workbook(BytesIO(content)))
    render(
        document,
        data,
        sheets=sheets,
        fetcher=fetcher,
        settings=settings,
        render_log=render_log,
    )
    return document.to_bytes()


def load_data(data_path: Path) -> dict[str, Any]:
    """
    데이터 컨텍스트 로드 (.json / .yaml / .yml).

    Raises:
        TemplateError: DATA_FILE_INVALID
    """
    suffix = data_path.suffix.lower()
    if suffix not in DATA_FILE_EXTENSIONS:
        raise TemplateError(
            ErrorCodes.DATA_FILE_INVALID,
            path=str(data_path),
            error=f"unsupported extension: {suffix}",
        )

    try:
        text = data_path.read_text(encoding="utf-8")
        if suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise TemplateError(
            ErrorCodes.DATA_FILE_INVALID,
            path=str(data_path),
            error=str(e),
        ) from e

    if not isinstance(data, dict):
        raise TemplateError(
            ErrorCodes.DATA_FILE_INVALID,
            path=str(data_path),
            error="top level must be a mapping",
        )
    return data
