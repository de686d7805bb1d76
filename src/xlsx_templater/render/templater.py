"""
Render Orchestrator: 시트 하나를 정해진 순서의 패스로 렌더.

패스 순서 (바뀌면 결과가 달라짐):
1. 다중 행 루프   (블록 경계 태그를 먼저 소비)
2. 단일 행 루프
3. 스코프 {@}
4. 셀 내부 루프 (최상위 컨텍스트)
5. 스칼라
6. 이미지

render() 동안 Document는 렌더러가 독점한다.
"""

import logging
from collections.abc import Iterator, Sequence
from typing import Any

from xlsx_templater.config import RenderSettings, load_settings
from xlsx_templater.core.images import HttpImageFetcher, ImageFetcher
from xlsx_templater.core.logging import complete_render_log, create_render_log
from xlsx_templater.domain.errors import ErrorCodes, TemplateError
from xlsx_templater.domain.schemas import RenderLog
from xlsx_templater.render.block_loop import BlockLoopHandler
from xlsx_templater.render.copier import RowCopier
from xlsx_templater.render.document import Document, Sheet
from xlsx_templater.render.resolvers import CellResolver
from xlsx_templater.render.row_loop import RowLoopHandler
from xlsx_templater.render.scope import ScopeHandler

logger = logging.getLogger(__name__)

# 시트 이름 / 0-based 인덱스 / 그 목록 (None이면 첫 시트)
SheetSelector = str | int | Sequence[str | int] | None


class SheetTemplater:
    """
    시트 하나 렌더.

    Usage:
        SheetTemplater(sheet, data, fetcher).render()
    """

    def __init__(
        self,
        sheet: Sheet,
        data: dict[str, Any],
        fetcher: ImageFetcher | None = None,
        settings: RenderSettings | None = None,
        render_log: RenderLog | None = None,
    ):
        self.sheet = sheet
        self.data = data
        self.settings = settings or RenderSettings()
        self.render_log = render_log
        self.resolver = CellResolver(sheet, fetcher, self.settings, render_log)
        self.copier = RowCopier(sheet, render_log)

    def render(self) -> None:
        logger.debug(f"Rendering sheet: {self.sheet.title}")
        self._render_block_loops()
        self._render_row_loops()
        self._render_scopes()
        self._render_inline_loops()
        self._render_scalars()
        self._render_images()

    def _iter_cells(self) -> Iterator[Any]:
        for row in range(1, self.sheet.max_row + 1):
            for column in range(1, self.sheet.max_column + 1):
                yield self.sheet.cell(row, column)

    def _render_block_loops(self) -> None:
        BlockLoopHandler(self.resolver, self.copier, self.data).handle()

    def _render_row_loops(self) -> None:
        handler = RowLoopHandler(self.resolver, self.copier, self.data)
        row = 1
        while row <= self.sheet.max_row:
            row += handler.handle(row)

    def _render_scopes(self) -> None:
        ScopeHandler(self.resolver, self.data).feed(self._iter_cells())

    def _render_inline_loops(self) -> None:
        for cell in self._iter_cells():
            self.resolver.resolve_inline_loops(cell, self.data)

    def _render_scalars(self) -> None:
        for cell in self._iter_cells():
            self.resolver.resolve_scalars(cell, self.data)

    def _render_images(self) -> None:
        for cell in self._iter_cells():
            self.resolver.resolve_images(cell, self.data)


def _selectors(sheets: SheetSelector) -> list[str | int]:
    if sheets is None:
        return [0]
    if isinstance(sheets, (str, int)):
        return [sheets]
    return list(sheets)


def render(
    document: Document,
    data: dict[str, Any],
    sheets: SheetSelector = None,
    fetcher: ImageFetcher | None = None,
    settings: RenderSettings | None = None,
    render_log: RenderLog | None = None,
) -> Document:
    """
    Document 렌더 (제자리 수정).

    Args:
        document: 렌더할 Document
        data: 데이터 컨텍스트
        sheets: 시트 이름/인덱스 또는 그 목록 (None이면 첫 시트)
        fetcher: 이미지 다운로더 (None이면 HttpImageFetcher 생성 후 종료 시 close)
        settings: 렌더 설정 (None이면 default.yaml)
        render_log: 경고/결과를 기록할 RenderLog (None이면 새로 생성)

    Returns:
        같은 document

    Raises:
        TemplateError: SHEET_NOT_FOUND 등 (RenderLog는 failed로 완료)
    """
    settings = settings or load_settings()
    if render_log is None:
        render_log = create_render_log()

    own_fetcher = HttpImageFetcher(settings) if fetcher is None else None
    fetcher = fetcher or own_fetcher

    try:
        targets = [document.sheet(selector) for selector in _selectors(sheets)]
        render_log.sheets = [sheet.title for sheet in targets]
        for sheet in targets:
            SheetTemplater(sheet, data, fetcher, settings, render_log).render()
    except TemplateError as e:
        complete_render_log(render_log, success=False, error_code=e.code, error_context=e.context)
        raise
    except Exception as e:
        complete_render_log(
            render_log,
            success=False,
            error_code=ErrorCodes.RENDER_FAILED,
            error_context={"error": str(e)},
        )
        raise
    finally:
        if own_fetcher is not None:
            own_fetcher.close()

    complete_render_log(render_log, success=True)
    logger.info(
        f"Render {render_log.render_id} done: sheets={render_log.sheets}, "
        f"images={render_log.images_embedded}, warnings={len(render_log.warnings)}"
    )
    return document
