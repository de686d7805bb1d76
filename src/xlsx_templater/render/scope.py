"""
Scope Handler: `{@name} ... {/name}` 구간의 컨텍스트 좁히기.

상태:
- Searching: 시작 태그를 찾는 중
- Collecting: 시작 태그 이후 셀을 모으는 중 (종료 태그를 만나면 치환 후 Searching)

종료 태그 없이 시트가 끝난 구간은 치환하지 않는다 (시작 태그만 제거된 상태).
"""

import logging
from collections.abc import Iterable
from typing import Any

from xlsx_templater.core.logging import emit_warning
from xlsx_templater.domain.errors import ErrorCodes
from xlsx_templater.domain.schemas import Tag
from xlsx_templater.render.grammar import find_close_tag, find_scope_open
from xlsx_templater.render.resolvers import MISSING, CellResolver, cell_text, lookup

logger = logging.getLogger(__name__)


class ScopeHandler:
    """
    셀을 순서대로 받아 스코프 구간을 찾아 치환.

    Usage:
        handler = ScopeHandler(resolver, data)
        handler.feed(cells)
    """

    def __init__(self, resolver: CellResolver, data: Any, depth: int = 0):
        self.resolver = resolver
        self.data = data
        self.depth = depth
        self._reset()

    def _reset(self) -> None:
        self._tag: Tag | None = None
        self._cells: list[Any] = []

    @property
    def collecting(self) -> bool:
        return self._tag is not None

    def feed(self, cells: Iterable[Any]) -> None:
        for cell in cells:
            self.next(cell)

    def next(self, cell: Any) -> None:
        sheet = self.resolver.sheet
        if sheet.is_merged(cell):
            return

        if self._tag is None:
            tag = find_scope_open(cell_text(sheet, cell))
            if tag is None:
                return
            self._tag = tag
            cell.value = cell.value.replace(tag.text, "", 1)

        close = find_close_tag(cell_text(sheet, cell), self._tag.name)
        if close is not None:
            cell.value = cell.value.replace(close.text, "", 1)
        self._cells.append(cell)

        if close is not None:
            self._resolve()
            self._reset()

    def _resolve(self) -> None:
        sheet = self.resolver.sheet
        tag = self._tag
        inner = lookup(self.data, tag.name)
        if inner is MISSING:
            inner = {}

        nested = any(find_scope_open(cell_text(sheet, c)) for c in self._cells)
        if nested:
            if self.depth >= self.resolver.settings.max_scope_depth:
                first = self._cells[0]
                logger.warning(
                    f"Scope {tag.name} at {sheet.title}!{first.coordinate} exceeds "
                    f"max depth {self.resolver.settings.max_scope_depth}, left unresolved"
                )
                if self.resolver.render_log is not None:
                    emit_warning(
                        self.resolver.render_log,
                        code=ErrorCodes.SCOPE_DEPTH_EXCEEDED,
                        message=f"nested scope depth > {self.resolver.settings.max_scope_depth}",
                        sheet=sheet.title,
                        cell=first.coordinate,
                        tag=tag.name,
                    )
                return
            ScopeHandler(self.resolver, inner, depth=self.depth + 1).feed(self._cells)

        self.resolver.resolve_cells(self._cells, inner)
