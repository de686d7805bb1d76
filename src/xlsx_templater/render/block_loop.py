"""
Multi-Row Loop Handler: `{#tag}`와 `{/tag}`가 서로 다른 행에 있는 루프.

단일 행 루프보다 먼저 실행해야 한다 (블록 경계 행을 단일 행 루프로
오인하지 않도록 태그를 먼저 소비).

블록 높이 H, 항목 수 N:
- N=0: 블록 H행 삭제
- N>1: 블록 바로 아래에 N-1번 복제 (H*(N-1)행 추가)
"""

import logging
from typing import Any

from xlsx_templater.domain.schemas import BlockLoop
from xlsx_templater.render.conditional import adjust_conditional_formats
from xlsx_templater.render.copier import RowCopier
from xlsx_templater.render.document import Sheet
from xlsx_templater.render.grammar import close_text, find_close_tag, find_loop_open, loop_open_text
from xlsx_templater.render.resolvers import CellResolver, as_items, cell_text, lookup
from xlsx_templater.render.scope import ScopeHandler

logger = logging.getLogger(__name__)


def find_block_loop(sheet: Sheet, start_row: int = 1) -> BlockLoop | None:
    """
    start_row부터 첫 번째 다중 행 루프 찾기.

    같은 행에서 닫히거나 닫히지 않는 루프는 건너뛴다.
    """
    for row in range(start_row, sheet.max_row + 1):
        tag = None
        for column in range(1, sheet.max_column + 1):
            tag = find_loop_open(cell_text(sheet, sheet.cell(row, column)))
            if tag is not None:
                break
        if tag is None:
            continue

        end_row = _find_block_end(sheet, row, tag.name)
        if end_row is None or end_row == row:
            continue
        return BlockLoop(start_row=row, end_row=end_row, tag_name=tag.name)

    return None


def _find_block_end(sheet: Sheet, start_row: int, name: str) -> int | None:
    for row in range(start_row, sheet.max_row + 1):
        for column in range(1, sheet.max_column + 1):
            if find_close_tag(cell_text(sheet, sheet.cell(row, column)), name) is not None:
                return row
    return None


class BlockLoopHandler:
    """
    시트의 모든 다중 행 루프 처리.

    Usage:
        BlockLoopHandler(resolver, copier, data).handle()
    """

    def __init__(self, resolver: CellResolver, copier: RowCopier, data: Any):
        self.resolver = resolver
        self.copier = copier
        self.data = data

    @property
    def sheet(self) -> Sheet:
        return self.resolver.sheet

    def handle(self) -> int:
        """
        Returns:
            처리한 블록 수
        """
        processed = 0
        row = 1
        while True:
            block = find_block_loop(self.sheet, row)
            if block is None:
                return processed
            row = self._expand(block)
            processed += 1

    def _expand(self, block: BlockLoop) -> int:
        """블록 하나 처리 후 다음 탐색 시작 행 반환."""
        items = as_items(lookup(self.data, block.tag_name))
        height = block.height
        logger.debug(
            f"Block loop {block.tag_name} at {self.sheet.title} rows "
            f"{block.start_row}-{block.end_row}: {len(items)} items"
        )

        if not items:
            self.copier.remove_rows(block.start_row, height)
            for _ in range(height):
                adjust_conditional_formats(
                    self.sheet,
                    block.start_row,
                    -1,
                    action="del",
                    render_log=self.resolver.render_log,
                )
            return block.start_row

        for _ in range(len(items) - 1):
            self.copier.copy_rows(block.start_row, block.end_row, block.end_row + 1)

        for index, item in enumerate(items):
            start = block.start_row + index * height
            self._resolve_block(block.tag_name, start, start + height - 1, item)
        return block.start_row + len(items) * height

    def _resolve_block(self, name: str, start_row: int, end_row: int, item: Any) -> None:
        sheet = self.sheet
        open_text = loop_open_text(name)
        end_text = close_text(name)

        cells = []
        for row in range(start_row, end_row + 1):
            for column in range(1, sheet.max_column + 1):
                cell = sheet.cell(row, column)
                if sheet.is_merged(cell):
                    continue
                text = cell_text(sheet, cell)
                if text is not None:
                    if row == start_row and open_text in text:
                        cell.value = text = text.replace(open_text, "", 1)
                    if row == end_row and end_text in text:
                        cell.value = text.replace(end_text, "", 1)
                cells.append(cell)

        ScopeHandler(self.resolver, item).feed(cells)
        self.resolver.resolve_cells(cells, item)
