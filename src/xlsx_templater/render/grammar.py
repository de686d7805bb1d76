"""
Tag Grammar: 셀 텍스트에서 태그를 찾는 순수 함수 모음.

| 형태               | 의미                                 |
|--------------------|--------------------------------------|
| {name}             | 스칼라 치환 (name은 # / % @ 로 시작 X) |
| {%name}            | 이미지                               |
| {@name} ... {/name}| 스코프 (여러 셀/행 가능)              |
| {#name} ... {/name}| 행 루프 (단일 행 / 다중 행)           |
| {#name}<body>{/}   | 셀 내부 루프                         |

모든 함수는 호출마다 독립적이다 (공유 스캔 위치 없음).
문자열이 아닌 값(None, 숫자 등)에는 태그가 없는 것으로 본다.
"""

import re

from xlsx_templater.domain.constants import (
    CLOSE_SIGIL,
    IMAGE_SIGIL,
    INLINE_LOOP_CLOSE,
    LOOP_SIGIL,
    RESERVED_SIGILS,
    SCOPE_SIGIL,
)
from xlsx_templater.domain.schemas import InlineLoop, Tag

# 태그 payload: 중괄호가 아닌 문자의 연속
_PAYLOAD = r"([^{}]+)"


def _tag_pattern(sigil: str) -> str:
    return r"\{" + re.escape(sigil) + _PAYLOAD + r"\}"


SCALAR_PATTERN = re.compile(r"\{([^" + re.escape(RESERVED_SIGILS) + r"{}][^{}]*)\}")
IMAGE_PATTERN = re.compile(_tag_pattern(IMAGE_SIGIL))
SCOPE_OPEN_PATTERN = re.compile(_tag_pattern(SCOPE_SIGIL))
LOOP_OPEN_PATTERN = re.compile(_tag_pattern(LOOP_SIGIL))
INLINE_LOOP_PATTERN = re.compile(
    _tag_pattern(LOOP_SIGIL) + r"(.+?)" + re.escape(INLINE_LOOP_CLOSE),
    re.DOTALL,
)


def _find_all(pattern: re.Pattern[str], value: object) -> list[Tag]:
    if not isinstance(value, str):
        return []
    return [
        Tag(name=m.group(1), text=m.group(0), start=m.start(), end=m.end())
        for m in pattern.finditer(value)
    ]


def _find_first(pattern: re.Pattern[str], value: object) -> Tag | None:
    if not isinstance(value, str):
        return None
    match = pattern.search(value)
    if match is None:
        return None
    return Tag(name=match.group(1), text=match.group(0), start=match.start(), end=match.end())


def find_scalar_tags(value: object) -> list[Tag]:
    """
    스칼라 태그 전부.

    예: "{index}.{plan};" → [Tag("index", "{index}"), Tag("plan", "{plan}")]
    """
    return _find_all(SCALAR_PATTERN, value)


def find_image_tags(value: object) -> list[Tag]:
    """이미지 태그 전부 (한 셀에 여러 개 가능)."""
    return _find_all(IMAGE_PATTERN, value)


def find_scope_open(value: object) -> Tag | None:
    """첫 번째 스코프 시작 태그 `{@name}`."""
    return _find_first(SCOPE_OPEN_PATTERN, value)


def find_loop_open(value: object) -> Tag | None:
    """
    첫 번째 루프 시작 태그 `{#name}`.

    셀 내부 루프(`{#name}...{/}`)의 시작 태그는 건너뛴다.
    """
    if not isinstance(value, str):
        return None
    for match in LOOP_OPEN_PATTERN.finditer(value):
        if INLINE_LOOP_PATTERN.match(value, match.start()):
            continue
        return Tag(name=match.group(1), text=match.group(0), start=match.start(), end=match.end())
    return None


def loop_open_text(name: str) -> str:
    """`{#name}` 원문."""
    return "{" + LOOP_SIGIL + name + "}"


def close_text(name: str) -> str:
    """`{/name}` 원문."""
    return "{" + CLOSE_SIGIL + name + "}"


def find_close_tag(value: object, name: str) -> Tag | None:
    """이름이 일치하는 종료 태그 `{/name}`."""
    if not isinstance(value, str):
        return None
    text = close_text(name)
    start = value.find(text)
    if start < 0:
        return None
    return Tag(name=name, text=text, start=start, end=start + len(text))


def find_inline_loops(value: object) -> list[InlineLoop]:
    """셀 내부 루프 전부 (겹치지 않게 앞에서부터)."""
    if not isinstance(value, str):
        return []
    return [
        InlineLoop(
            name=m.group(1),
            body=m.group(2),
            text=m.group(0),
            start=m.start(),
            end=m.end(),
        )
        for m in INLINE_LOOP_PATTERN.finditer(value)
    ]


def find_inline_loop(value: object) -> InlineLoop | None:
    """
    첫 번째 셀 내부 루프.

    예: "{@outer}{#defects}{attach}--{note};{/}{/outer}"
        → InlineLoop(name="defects", body="{attach}--{note};")
    """
    loops = find_inline_loops(value)
    return loops[0] if loops else None
