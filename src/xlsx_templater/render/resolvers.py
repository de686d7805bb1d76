"""
Cell Resolvers: 스칼라 / 이미지 / 셀 내부 루프 치환.

처리 순서 (셀 하나):
1. 셀 내부 루프 `{#name}...{/}` (내부의 스칼라 태그를 먼저 소비해야 함)
2. 스칼라 `{name}`
3. 이미지 `{%name}`

규칙:
- 컨텍스트에 없는 키는 태그 텍스트를 그대로 둔다 (이후 다른 컨텍스트에서 재시도)
- 병합 셀(master 제외)과 수식 셀은 건드리지 않는다
- 이미지 실패는 태그 하나만 건너뛰고 경고로 남긴다
"""

import json
import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from xlsx_templater.config import RenderSettings
from xlsx_templater.core.images import ImageFetcher
from xlsx_templater.core.logging import emit_warning
from xlsx_templater.domain.errors import ErrorCodes, ImageError
from xlsx_templater.domain.schemas import ImageAnchor, RenderLog
from xlsx_templater.render.document import Sheet
from xlsx_templater.render.grammar import (
    find_image_tags,
    find_inline_loops,
    find_scalar_tags,
)

logger = logging.getLogger(__name__)

# lookup 실패 표시 (None은 유효한 값)
MISSING = object()


# =============================================================================
# Value Helpers
# =============================================================================

def cell_text(sheet: Sheet, cell: Any) -> str | None:
    """태그를 찾을 수 있는 셀 텍스트 (병합/수식/비문자열 셀은 None)."""
    if sheet.is_merged(cell):
        return None
    value = cell.value
    if not isinstance(value, str):
        return None
    if sheet.formula(cell) is not None:
        return None
    return value


def lookup(data: Any, name: str) -> Any:
    """
    컨텍스트에서 키 조회.

    Returns:
        값 (없거나 컨텍스트가 mapping이 아니면 MISSING)
    """
    if isinstance(data, Mapping) and name in data:
        return data[name]
    return MISSING


def as_items(value: Any) -> list[Any]:
    """
    루프 데이터 정규화.

    - MISSING / None → []
    - list / tuple → list
    - 그 외 → [value]
    """
    if value is MISSING or value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def format_value(value: Any) -> str:
    """
    값 → 셀 텍스트.

    예: [1, 2, 3] → "1,2,3", True → "true", 3.0 → "3"
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(format_value(v) for v in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Mapping):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def convert_value(value: Any) -> Any:
    """
    셀 전체가 태그 하나일 때의 값 변환.

    숫자/불리언/날짜는 타입 유지, 나머지는 텍스트.
    """
    if isinstance(value, Decimal):
        # Excel은 Decimal을 직접 지원하지 않음
        return float(value)
    if isinstance(value, (bool, int, float, datetime, date, time)):
        return value
    return format_value(value)


# =============================================================================
# Resolver
# =============================================================================

class CellResolver:
    """
    셀 단위 태그 치환기.

    Usage:
        resolver = CellResolver(sheet, fetcher, settings, render_log)
        resolver.resolve_cells(cells, {"name": "Alice"})
    """

    def __init__(
        self,
        sheet: Sheet,
        fetcher: ImageFetcher | None = None,
        settings: RenderSettings | None = None,
        render_log: RenderLog | None = None,
    ):
        self.sheet = sheet
        self.fetcher = fetcher
        self.settings = settings or RenderSettings()
        self.render_log = render_log

    def resolve_cells(self, cells: Iterable[Any], data: Any) -> None:
        """셀 목록 전체 치환 (순서대로)."""
        for cell in cells:
            self.resolve_cell(cell, data)

    def resolve_cell(self, cell: Any, data: Any) -> None:
        """셀 내부 루프 → 스칼라 → 이미지."""
        if self.sheet.is_merged(cell):
            return
        self.resolve_inline_loops(cell, data)
        self.resolve_scalars(cell, data)
        self.resolve_images(cell, data)

    # -------------------------------------------------------------------------
    # Scalars
    # -------------------------------------------------------------------------

    def resolve_scalars(self, cell: Any, data: Any) -> None:
        text = cell_text(self.sheet, cell)
        if text is None:
            return
        tags = find_scalar_tags(text)
        if not tags:
            return

        # 셀 전체가 태그 하나면 타입 유지
        if len(tags) == 1 and tags[0].text == text:
            value = lookup(data, tags[0].name)
            if value is not MISSING:
                cell.value = convert_value(value)
            return

        cell.value = self._substitute(text, data)

    def _substitute(self, text: str, data: Any) -> str:
        # 원문 위치 기준으로 조립 (치환된 값 안의 `{tag}`는 다시 치환하지 않음)
        parts = []
        pos = 0
        for tag in find_scalar_tags(text):
            value = lookup(data, tag.name)
            if value is MISSING:
                continue
            parts.append(text[pos:tag.start])
            parts.append(format_value(value))
            pos = tag.end
        parts.append(text[pos:])
        return "".join(parts)

    # -------------------------------------------------------------------------
    # Inline Loops
    # -------------------------------------------------------------------------

    def resolve_inline_loops(self, cell: Any, data: Any) -> None:
        """
        `{#name}<body>{/}` 구간을 항목마다 body를 치환해 이어붙인 텍스트로 교체.

        예: {"items": [{"n": 1}, {"n": 2}]}, "{#items}{n};{/}" → "1;2;"
        """
        text = cell_text(self.sheet, cell)
        if text is None:
            return
        loops = find_inline_loops(text)
        if not loops:
            return

        parts = []
        pos = 0
        for loop in loops:
            value = lookup(data, loop.name)
            if value is MISSING:
                continue
            items = as_items(value)
            logger.debug(
                f"Inline loop {loop.name} at {self.sheet.title}!{cell.coordinate}: "
                f"{len(items)} items"
            )
            parts.append(text[pos:loop.start])
            for index, item in enumerate(items):
                body = self._substitute(loop.body, item)
                parts.append(self._embed_images(cell, body, item, len(items), index))
            pos = loop.end
        parts.append(text[pos:])

        cell.value = "".join(parts)

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    def resolve_images(
        self,
        cell: Any,
        data: Any,
        image_count: int = 1,
        image_index: int = 0,
    ) -> None:
        """
        이미지 태그를 내려받아 셀 위에 배치하고 태그 텍스트 제거.

        Args:
            cell: 대상 셀
            data: 컨텍스트 (태그 이름 → URL)
            image_count: 셀 안의 이미지 수 (셀 내부 루프 항목 수)
            image_index: 이 이미지의 순번 (0부터)
        """
        text = cell_text(self.sheet, cell)
        if text is None or not find_image_tags(text):
            return
        cell.value = self._embed_images(cell, text, data, image_count, image_index)

    def _embed_images(
        self,
        cell: Any,
        text: str,
        data: Any,
        image_count: int,
        image_index: int,
    ) -> str:
        for tag in find_image_tags(text):
            url = lookup(data, tag.name)
            if url is MISSING:
                continue
            try:
                self._place_image(cell, url, image_count, image_index)
            except ImageError as e:
                logger.warning(
                    f"Image skipped at {self.sheet.title}!{cell.coordinate} "
                    f"({tag.name}): {e}"
                )
                if self.render_log is not None:
                    emit_warning(
                        self.render_log,
                        code=e.code,
                        message=str(e),
                        sheet=self.sheet.title,
                        cell=cell.coordinate,
                        tag=tag.name,
                        original_value=str(url),
                    )
                continue
            text = text.replace(tag.text, "", 1)
        return text

    def _place_image(
        self,
        cell: Any,
        url: Any,
        image_count: int,
        image_index: int,
    ) -> None:
        if self.fetcher is None:
            raise ImageError(
                ErrorCodes.IMAGE_FETCH_FAILED,
                url=str(url),
                error="no image fetcher configured",
            )

        content = self.fetcher.fetch(url)
        image_id = self.sheet.add_image(content, self.fetcher.extension_of(url))

        # 우하단 고정, 순번마다 좌상단을 안쪽으로 (항목이 많으면 간격 축소)
        step = min(self.settings.image_shrink_step, 1.0 / max(image_count, 1))
        offset = step * image_index
        anchor = ImageAnchor(
            from_col=cell.column - 1 + offset,
            from_row=cell.row - 1 + offset,
            to_col=cell.column,
            to_row=cell.row,
        )
        self.sheet.place_image(image_id, anchor)

        if self.render_log is not None:
            self.render_log.images_embedded += 1
        logger.debug(f"Image embedded at {self.sheet.title}!{cell.coordinate}: {url}")
