"""
Row/Range Copier: 행 복제/삭제와 그에 따른 구조 보정.

Sheet.insert_rows / delete_rows는 셀/행 높이/병합/이미지만 옮긴다.
여기서 추가로 처리하는 것:
- 복사된 셀의 값, 수식(행 참조 이동), 스타일
- 복사 구간 안의 병합 범위 재병합
- 삽입/삭제 지점 아래 수식의 행 참조 재색인
- 조건부 서식 ref/수식 재색인 (copy_rows)
"""

import logging
import re

from xlsx_templater.core.logging import emit_warning
from xlsx_templater.domain.errors import ErrorCodes
from xlsx_templater.domain.schemas import ConditionalFormat, RenderLog
from xlsx_templater.render.conditional import ref_rows, shift_ref
from xlsx_templater.render.document import Sheet

logger = logging.getLogger(__name__)

# 셀 참조의 행 번호 (A5, $A5, A$5). 함수 이름(LOG10 등)은 제외
ROW_REFERENCE_PATTERN = re.compile(r"(?<![A-Za-z0-9_.])(\$?[A-Z]{1,3})(\$?)(\d+)(?![\d(A-Za-z_])")


def offset_row_references(
    formula: str,
    delta: int,
    min_row: int | None = None,
    absolute: bool = False,
) -> str:
    """
    수식 안의 행 참조에 delta를 더한다.

    Args:
        formula: 수식 (`=` 제외)
        delta: 더할 행 수
        min_row: 지정하면 이 행 이상을 가리키는 참조만 이동
        absolute: True면 절대 행(A$5)도 이동 (행 삽입/삭제),
                  False면 상대 행만 이동 (복사)

    예: offset_row_references("SUM(B2:B4)", 3) → "SUM(B5:B7)"
    """
    def _shift(match: re.Match[str]) -> str:
        row = int(match.group(3))
        if match.group(2) and not absolute:
            return match.group(0)
        if min_row is not None and row < min_row:
            return match.group(0)
        return f"{match.group(1)}{match.group(2)}{row + delta}"

    return ROW_REFERENCE_PATTERN.sub(_shift, formula)


class RowCopier:
    """
    행 구간 복제기.

    Usage:
        copier = RowCopier(sheet)
        copier.copy_rows(3, 5, 6)   # 3~5행을 6행 위치에 복제
    """

    def __init__(self, sheet: Sheet, render_log: RenderLog | None = None):
        self.sheet = sheet
        self.render_log = render_log

    def copy_rows(
        self,
        source_start: int,
        source_end: int,
        target_start: int,
        conditional_formats: bool = True,
    ) -> None:
        """
        [source_start, source_end] 행을 target_start 위치에 복제.

        target_start 이하 행은 복제 행 수만큼 아래로 밀린다.

        Raises:
            ValueError: target_start가 원본 구간 아래가 아님
        """
        if target_start <= source_end:
            raise ValueError(
                f"target_start ({target_start}) must be below source rows "
                f"{source_start}-{source_end}"
            )

        row_count = source_end - source_start + 1
        offset = target_start - source_start
        logger.debug(
            f"Copy rows {source_start}-{source_end} → {target_start} on {self.sheet.title}"
        )

        # 1. 빈 행 삽입
        self.sheet.insert_rows(target_start, row_count)

        # 2. 행 높이, 값/수식, 스타일
        for i in range(row_count):
            self._copy_row(source_start + i, target_start + i, offset)

        # 3. 병합
        self._copy_merges(source_start, source_end, offset)

        # 4. 아래 수식 재색인
        self._reindex_formulas(target_start + row_count, row_count, target_start)

        # 5. 조건부 서식
        if conditional_formats:
            self._copy_conditional_formats(source_start, source_end, target_start, row_count)

    def duplicate_row(self, row: int, count: int) -> None:
        """row를 바로 아래에 count번 복제 (조건부 서식은 호출자가 보정)."""
        for _ in range(count):
            self.copy_rows(row, row, row + 1, conditional_formats=False)

    def remove_rows(self, start: int, count: int) -> None:
        """start부터 count개 행 삭제 후 아래 수식 재색인."""
        if count <= 0:
            return
        logger.debug(f"Remove rows {start}-{start + count - 1} on {self.sheet.title}")
        self.sheet.delete_rows(start, count)
        self._reindex_formulas(start, -count, start + count)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _copy_row(self, source_row: int, target_row: int, offset: int) -> None:
        sheet = self.sheet
        sheet.set_row_height(target_row, sheet.row_height(source_row))

        for column in range(1, sheet.max_column + 1):
            source = sheet.cell(source_row, column)
            target = sheet.cell(target_row, column)
            if not sheet.is_merged(target):
                formula = sheet.formula(source)
                if formula is not None:
                    sheet.set_formula(target, offset_row_references(formula, offset))
                elif not sheet.is_merged(source):
                    target.value = source.value
            sheet.copy_style(source, target)

    def _copy_merges(self, source_start: int, source_end: int, offset: int) -> None:
        sheet = self.sheet
        for merge_range in sheet.merged_ranges():
            if not merge_range.within_rows(source_start, source_end):
                continue
            moved = merge_range.shifted(offset)

            for existing in sheet.merged_ranges():
                if existing.overlaps(moved):
                    try:
                        sheet.unmerge(existing)
                    except ValueError:
                        logger.debug(f"Already unmerged: {existing.coord}")

            try:
                sheet.merge(moved)
            except ValueError as e:
                logger.warning(f"Failed to merge {moved.coord} on {sheet.title}: {e}")
                if self.render_log is not None:
                    emit_warning(
                        self.render_log,
                        code=ErrorCodes.MERGE_CONFLICT,
                        message=str(e),
                        sheet=sheet.title,
                        cell=moved.coord,
                    )

    def _reindex_formulas(self, first_row: int, delta: int, min_row: int) -> None:
        sheet = self.sheet
        for row in range(first_row, sheet.max_row + 1):
            for column in range(1, sheet.max_column + 1):
                cell = sheet.cell(row, column)
                formula = sheet.formula(cell)
                if formula is None:
                    continue
                shifted = offset_row_references(formula, delta, min_row=min_row, absolute=True)
                if shifted != formula:
                    sheet.set_formula(cell, shifted)

    def _copy_conditional_formats(
        self,
        source_start: int,
        source_end: int,
        target_start: int,
        row_count: int,
    ) -> None:
        offset = target_start - source_start
        rebuilt: list[ConditionalFormat] = []

        for cf in self.sheet.get_conditional_formats():
            kept_refs = []
            copied_refs = []
            for ref in cf.ref.split():
                rows = ref_rows(ref)
                if rows is None:
                    kept_refs.append(ref)
                elif source_start <= rows[0] and rows[1] <= source_end:
                    kept_refs.append(ref)
                    copied_refs.append(shift_ref(ref, offset))
                elif rows[0] >= target_start:
                    kept_refs.append(shift_ref(ref, row_count))
                else:
                    kept_refs.append(ref)

            clone = None
            if copied_refs:
                clone = cf.clone()
                clone.ref = " ".join(copied_refs)
                for rule in clone.rules:
                    rule.formulae = [offset_row_references(f, offset) for f in rule.formulae]

            cf.ref = " ".join(kept_refs)
            for rule in cf.rules:
                rule.formulae = [
                    offset_row_references(f, row_count, min_row=target_start, absolute=True)
                    for f in rule.formulae
                ]
            rebuilt.append(cf)
            if clone is not None:
                rebuilt.append(clone)

        self.sheet.set_conditional_formats(rebuilt)
