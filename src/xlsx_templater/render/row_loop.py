"""
Single-Row Loop Handler: 한 행 안에 `{#tag}`와 `{/tag}`가 있는 루프.

데이터 항목 수 N에 따라:
- 0: 행 삭제 + 조건부 서식 del
- 1: 제자리 치환
- N>1: 행을 바로 아래에 N-1번 복제 + 조건부 서식 add

handle()은 호출자가 다음에 볼 행까지의 거리를 반환한다
(루프 아님 1, 삭제 0, 그 외 N).
"""

import logging
from typing import Any

from xlsx_templater.domain.schemas import RowLoop
from xlsx_templater.render.conditional import adjust_conditional_formats
from xlsx_templater.render.copier import RowCopier
from xlsx_templater.render.document import Sheet
from xlsx_templater.render.grammar import close_text, find_close_tag, find_loop_open, loop_open_text
from xlsx_templater.render.resolvers import CellResolver, as_items, cell_text, lookup
from xlsx_templater.render.scope import ScopeHandler

logger = logging.getLogger(__name__)


def find_row_loop(sheet: Sheet, row: int) -> RowLoop | None:
    """
    행에서 루프 찾기 (왼쪽부터, 병합 셀 제외).

    첫 번째 `{#tag}` 셀이 시작, 그 셀부터 마지막 `{/tag}` 셀이 끝.
    한 행에는 루프 하나만 있다고 본다.
    """
    tag = None
    start_column = 0
    end_column = 0

    for column in range(1, sheet.max_column + 1):
        cell = sheet.cell(row, column)
        if sheet.is_merged(cell):
            continue
        text = cell_text(sheet, cell)
        if tag is None:
            tag = find_loop_open(text)
            if tag is not None:
                start_column = column
        if tag is not None and find_close_tag(text, tag.name) is not None:
            end_column = column

    if tag is None or not end_column:
        return None
    return RowLoop(row=row, start_column=start_column, end_column=end_column, tag_name=tag.name)


class RowLoopHandler:
    """
    단일 행 루프 처리.

    Usage:
        handler = RowLoopHandler(resolver, copier, data)
        row = 1
        while row <= sheet.max_row:
            row += handler.handle(row)
    """

    def __init__(self, resolver: CellResolver, copier: RowCopier, data: Any):
        self.resolver = resolver
        self.copier = copier
        self.data = data

    @property
    def sheet(self) -> Sheet:
        return self.resolver.sheet

    def handle(self, row: int) -> int:
        loop = find_row_loop(self.sheet, row)
        if loop is None:
            return 1

        items = as_items(lookup(self.data, loop.tag_name))
        logger.debug(
            f"Row loop {loop.tag_name} at {self.sheet.title} row {row}: {len(items)} items"
        )

        if not items:
            self.copier.remove_rows(row, 1)
            adjust_conditional_formats(
                self.sheet, row, -1, action="del", render_log=self.resolver.render_log
            )
            return 0

        if len(items) > 1:
            self.copier.duplicate_row(row, len(items) - 1)
            adjust_conditional_formats(
                self.sheet, row, len(items) - 1, action="add", render_log=self.resolver.render_log
            )

        for index, item in enumerate(items):
            self._resolve_row(loop, row + index, item)
        return len(items)

    def _resolve_row(self, loop: RowLoop, row: int, item: Any) -> None:
        sheet = self.sheet
        cells = []
        for column in range(loop.start_column, loop.end_column + 1):
            cell = sheet.cell(row, column)
            if sheet.is_merged(cell):
                continue
            text = cell_text(sheet, cell)
            if text is not None:
                if column == loop.start_column:
                    text = text.replace(loop_open_text(loop.tag_name), "", 1)
                if column == loop.end_column:
                    text = text.replace(close_text(loop.tag_name), "", 1)
                cell.value = text
            cells.append(cell)

        ScopeHandler(self.resolver, item).feed(cells)
        self.resolver.resolve_cells(cells, item)
