"""
Conditional-Formatting Offsetter (단일 행 루프용).

가정: 규칙의 ref와 수식 안의 `$row` 참조는 모두 한 행에 속한다.
여러 행에 걸친 ref는 첫 셀의 행 기준으로 처리하고 경고만 남긴다.

- add: row_index 아래 규칙은 count만큼 내리고, row_index 행 규칙은
       count개 복제 (k번째 복제본은 +k)
- del: row_index 행 규칙은 삭제, 아래 규칙은 count(음수)만큼 이동
"""

import logging
import re

from xlsx_templater.core.logging import emit_warning
from xlsx_templater.domain.errors import ErrorCodes
from xlsx_templater.domain.schemas import ConditionalFormat, RenderLog
from xlsx_templater.render.document import Sheet

logger = logging.getLogger(__name__)

# ref 안의 셀 주소 (A5, $A$5)
CELL_TOKEN_PATTERN = re.compile(r"(\$?[A-Z]{1,3}\$?)(\d+)")
# 수식 안의 절대 행 참조 ($5)
ABSOLUTE_ROW_PATTERN = re.compile(r"\$(\d+)")

ACTIONS = ("add", "del")


def ref_rows(ref: str) -> tuple[int, int] | None:
    """ref의 (첫 행, 마지막 행). 셀 주소가 없으면 None."""
    rows = [int(m.group(2)) for m in CELL_TOKEN_PATTERN.finditer(ref)]
    if not rows:
        return None
    return min(rows), max(rows)


def shift_ref(ref: str, rows: int) -> str:
    """ref의 모든 셀 주소 행 번호에 rows를 더한다."""
    return CELL_TOKEN_PATTERN.sub(
        lambda m: f"{m.group(1)}{int(m.group(2)) + rows}",
        ref,
    )


def conditional_format_row(cf: ConditionalFormat) -> int | None:
    """규칙이 속한 행 (ref 첫 셀 기준)."""
    match = CELL_TOKEN_PATTERN.search(cf.ref)
    return int(match.group(2)) if match else None


def offset_conditional_format(cf: ConditionalFormat, rows: int) -> None:
    """ref와 수식의 `$row` 참조를 rows만큼 이동 (제자리 수정)."""
    cf.ref = shift_ref(cf.ref, rows)
    for rule in cf.rules:
        rule.formulae = [
            ABSOLUTE_ROW_PATTERN.sub(lambda m: f"${int(m.group(1)) + rows}", formula)
            for formula in rule.formulae
        ]


def adjust_conditional_formats(
    sheet: Sheet,
    row_index: int,
    count: int,
    action: str = "add",
    render_log: RenderLog | None = None,
) -> None:
    """
    행 복제/삭제 후 조건부 서식 보정.

    Args:
        sheet: 대상 시트
        row_index: add면 복제 원본 행, del이면 삭제된 행
        count: add면 추가된 행 수(양수), del이면 음수
        action: "add" 또는 "del"
        render_log: 경고를 받을 RenderLog
    """
    if action not in ACTIONS:
        raise ValueError(f"Unknown action: {action}")

    formats = sheet.get_conditional_formats()
    if not formats:
        return

    for cf in formats:
        rows = ref_rows(cf.ref)
        if rows is not None and rows[0] != rows[1]:
            _warn_multi_row(sheet, cf, render_log)

    logger.debug(f"Adjust conditional formats: row={row_index}, count={count}, action={action}")

    if action == "del":
        kept = []
        for cf in formats:
            row = conditional_format_row(cf)
            if row == row_index:
                continue
            if row is not None and row > row_index:
                offset_conditional_format(cf, count)
            kept.append(cf)
        sheet.set_conditional_formats(kept)
        return

    clones = []
    for cf in formats:
        row = conditional_format_row(cf)
        if row is None:
            continue
        if row > row_index:
            offset_conditional_format(cf, count)
        elif row == row_index:
            for k in range(1, count + 1):
                clone = cf.clone()
                offset_conditional_format(clone, k)
                clones.append(clone)
    sheet.set_conditional_formats(formats + clones)


def _warn_multi_row(sheet: Sheet, cf: ConditionalFormat, render_log: RenderLog | None) -> None:
    logger.warning(
        f"Conditional format {cf.ref} on {sheet.title} spans multiple rows; "
        f"offset by its first row only"
    )
    if render_log is not None:
        emit_warning(
            render_log,
            code=ErrorCodes.CONDITIONAL_FORMAT_MULTI_ROW,
            message="conditional format spans multiple rows",
            sheet=sheet.title,
            cell=cf.ref,
        )
