"""
Data schemas for the templater.

규칙:
- 행/열 좌표는 모두 1-based (Excel 기준)
- 이미지 앵커만 0-based 실수 좌표 (셀 내부 비율 위치 표현)
- 구조 편집(행 삽입/삭제) 후에는 이전에 계산한 행 번호를 재사용하지 않음
"""

from dataclasses import dataclass, field, replace
from typing import Any

from openpyxl.utils import get_column_letter

# =============================================================================
# Tags
# =============================================================================

@dataclass(frozen=True)
class Tag:
    """
    셀 텍스트에서 찾은 태그 하나.

    name: 괄호/접두 문자 제외한 이름 (예: "items")
    text: 원문 그대로의 태그 (예: "{#items}")
    start/end: 원문 내 위치 (text[start:end] == text)
    """
    name: str
    text: str
    start: int = 0
    end: int = 0


@dataclass(frozen=True)
class InlineLoop:
    """
    셀 내부 루프 `{#name}<body>{/}`.

    text: open 태그부터 `{/}`까지 전체 span
    """
    name: str
    body: str
    text: str
    start: int = 0
    end: int = 0


# =============================================================================
# Loops
# =============================================================================

@dataclass(frozen=True)
class RowLoop:
    """단일 행 루프: 같은 행에 `{#tag}`와 `{/tag}`가 있음."""
    row: int
    start_column: int
    end_column: int
    tag_name: str


@dataclass(frozen=True)
class BlockLoop:
    """다중 행 루프: `{#tag}`와 `{/tag}`가 서로 다른 행에 있음."""
    start_row: int
    end_row: int
    tag_name: str

    @property
    def height(self) -> int:
        return self.end_row - self.start_row + 1


# =============================================================================
# Sheet Structure
# =============================================================================

@dataclass(frozen=True)
class MergeRange:
    """
    병합 범위 (1-based, 양끝 포함).

    불변식: 시트 안의 병합 범위끼리는 겹치지 않는다.
    """
    top: int
    left: int
    bottom: int
    right: int

    @property
    def coord(self) -> str:
        """A1 표기 (예: "B3:D4")."""
        return (
            f"{get_column_letter(self.left)}{self.top}:"
            f"{get_column_letter(self.right)}{self.bottom}"
        )

    def shifted(self, rows: int) -> "MergeRange":
        return replace(self, top=self.top + rows, bottom=self.bottom + rows)

    def within_rows(self, start: int, end: int) -> bool:
        """범위 전체가 [start, end] 행 안에 있는지."""
        return start <= self.top and self.bottom <= end

    def overlaps(self, other: "MergeRange") -> bool:
        return not (
            other.left > self.right
            or other.right < self.left
            or other.top > self.bottom
            or other.bottom < self.top
        )


@dataclass
class ConditionalFormatRule:
    """
    조건부 서식 규칙 하나.

    formulae: 트리거 수식 목록 (행 번호만 재색인 대상)
    source: Document 쪽 원본 규칙 객체 (스타일 등 나머지 속성 보존용).
            clone끼리 공유하며, Document가 set 시점에 복사한다
    """
    formulae: list[str] = field(default_factory=list)
    source: Any = None


@dataclass
class ConditionalFormat:
    """
    조건부 서식: 주소 범위(공백 구분 가능) + 규칙 목록.

    오프셋 계산은 ref와 `$row` 참조가 한 행에만 속한다고 가정한다.
    """
    ref: str
    rules: list[ConditionalFormatRule] = field(default_factory=list)

    def clone(self) -> "ConditionalFormat":
        return ConditionalFormat(
            ref=self.ref,
            rules=[
                ConditionalFormatRule(
                    formulae=list(rule.formulae),
                    source=rule.source,
                )
                for rule in self.rules
            ],
        )


@dataclass(frozen=True)
class ImageAnchor:
    """
    이미지 배치 (0-based 실수 좌표).

    예: (1.2, 3.2) → (2, 4) 는 B4 셀의 우하단 80% 영역.
    """
    from_col: float
    from_row: float
    to_col: float
    to_row: float


# =============================================================================
# Render Log
# =============================================================================

@dataclass
class WarningLog:
    """
    경고 로그.

    경고 필수 컨텍스트: level, code, sheet, cell, tag,
                       original_value, message
    """
    level: str = "warning"
    code: str = ""
    sheet: str = ""
    cell: str = ""
    tag: str = ""
    original_value: str | None = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "sheet": self.sheet,
            "cell": self.cell,
            "tag": self.tag,
            "original_value": self.original_value,
            "message": self.message,
        }


@dataclass
class RenderLog:
    """
    렌더 실행 로그.

    render() 한 번 = RenderLog 하나.
    """
    render_id: str
    started_at: str  # ISO 8601
    sheets: list[str] = field(default_factory=list)
    finished_at: str | None = None
    result: str = "pending"  # pending, success, failed

    # Events
    warnings: list[WarningLog] = field(default_factory=list)
    images_embedded: int = 0

    # Error (if failed)
    error_code: str | None = None
    error_context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "render_id": self.render_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "sheets": list(self.sheets),
            "result": self.result,
            "warnings": [w.to_dict() for w in self.warnings],
            "images_embedded": self.images_embedded,
            "error_code": self.error_code,
            "error_context": self.error_context,
        }
