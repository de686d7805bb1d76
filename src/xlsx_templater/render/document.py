"""
Document 추상 인터페이스.

렌더 코어는 이 인터페이스만 사용한다. 실제 파일 포맷(openpyxl)은
excel.py의 XlsxDocument / XlsxSheet가 구현한다.

소유권:
- render() 실행 동안 Document는 렌더러가 독점한다
- 각 handler는 호출 동안만 Sheet 참조를 사용하고 보관하지 않는다

셀 객체 계약: `.value` (읽기/쓰기), `.row`, `.column`, `.coordinate`
"""

from abc import ABC, abstractmethod
from typing import Any

from xlsx_templater.domain.schemas import ConditionalFormat, ImageAnchor, MergeRange


class Sheet(ABC):
    """워크시트 하나."""

    @property
    @abstractmethod
    def title(self) -> str:
        """시트 이름."""

    @property
    @abstractmethod
    def max_row(self) -> int:
        """사용 범위의 마지막 행."""

    @property
    @abstractmethod
    def max_column(self) -> int:
        """사용 범위의 마지막 열."""

    # -------------------------------------------------------------------------
    # Cells
    # -------------------------------------------------------------------------

    @abstractmethod
    def cell(self, row: int, column: int) -> Any:
        """(row, column) 셀 (1-based)."""

    @abstractmethod
    def is_merged(self, cell: Any) -> bool:
        """병합 범위의 master가 아닌 셀이면 True."""

    @abstractmethod
    def formula(self, cell: Any) -> str | None:
        """수식 셀이면 수식 텍스트 (`=` 제외), 아니면 None."""

    @abstractmethod
    def set_formula(self, cell: Any, formula: str) -> None:
        """셀에 수식 설정."""

    @abstractmethod
    def copy_style(self, source: Any, target: Any) -> None:
        """셀 스타일 값 복사."""

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    @abstractmethod
    def row_height(self, row: int) -> float | None:
        """행 높이 (미지정이면 None)."""

    @abstractmethod
    def set_row_height(self, row: int, height: float | None) -> None:
        """행 높이 설정."""

    @abstractmethod
    def insert_rows(self, idx: int, amount: int) -> None:
        """
        idx 위치에 빈 행 amount개 삽입 (idx 이하 행은 아래로 이동).

        셀 저장소, 행 높이, 병합 범위, 이미지 앵커를 함께 이동한다.
        수식/조건부 서식은 건드리지 않는다.
        """

    @abstractmethod
    def delete_rows(self, idx: int, amount: int) -> None:
        """idx부터 amount개 행 삭제 (아래 행은 위로 이동)."""

    # -------------------------------------------------------------------------
    # Merges
    # -------------------------------------------------------------------------

    @abstractmethod
    def merged_ranges(self) -> list[MergeRange]:
        """현재 병합 범위 목록 (스냅샷)."""

    @abstractmethod
    def merge(self, merge_range: MergeRange) -> None:
        """범위 병합."""

    @abstractmethod
    def unmerge(self, merge_range: MergeRange) -> None:
        """
        병합 해제.

        Raises:
            ValueError: 해당 범위가 병합되어 있지 않음
        """

    # -------------------------------------------------------------------------
    # Conditional Formatting
    # -------------------------------------------------------------------------

    @abstractmethod
    def get_conditional_formats(self) -> list[ConditionalFormat]:
        """조건부 서식 목록 (수정해도 시트에는 반영되지 않는 사본)."""

    @abstractmethod
    def set_conditional_formats(self, formats: list[ConditionalFormat]) -> None:
        """조건부 서식 전체 교체."""

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    @abstractmethod
    def add_image(self, data: bytes, extension: str) -> int:
        """
        이미지 등록.

        Returns:
            image_id (place_image에 사용)

        Raises:
            ImageError: IMAGE_UNREADABLE
        """

    @abstractmethod
    def place_image(self, image_id: int, anchor: ImageAnchor) -> None:
        """등록된 이미지를 시트에 배치."""


class Document(ABC):
    """워크북: 시트 선택만 담당."""

    @property
    @abstractmethod
    def sheet_names(self) -> list[str]:
        """시트 이름 (문서 순서)."""

    @abstractmethod
    def sheet(self, selector: str | int) -> Sheet:
        """
        이름 또는 0-based 인덱스로 시트 선택.

        Raises:
            TemplateError: SHEET_NOT_FOUND
        """
