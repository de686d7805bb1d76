"""
Error definitions for the templater.

규칙:
- 미해결 태그는 에러가 아님 → 태그 텍스트 그대로 유지
- 이미지 실패는 태그 단위로 격리 → ImageError를 잡고 경고만 기록
- Document(openpyxl) 자체 에러는 호출자에게 그대로 전달
"""

from typing import Any


class TemplateError(Exception):
    """
    템플릿 처리 중 명시적으로 중단해야 할 때 발생하는 에러.

    사용처:
    - 템플릿 파일/시트 없음
    - 데이터 파일 형식 오류

    Usage:
        raise TemplateError("SHEET_NOT_FOUND", sheet="Summary")
    """

    def __init__(self, code: str, **context: Any) -> None:
        self.code = code
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"[{self.code}] {ctx_str}" if ctx_str else f"[{self.code}]"

    def to_dict(self) -> dict[str, Any]:
        """로그/JSON 직렬화용."""
        return {
            "code": self.code,
            **self.context,
        }


class ImageError(TemplateError):
    """
    이미지 태그 하나의 처리 실패.

    렌더 전체를 중단하지 않는다: 이미지 resolver가 잡아서
    해당 태그만 건너뛰고 경고를 남긴다.
    """


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """에러/경고 코드 상수."""

    # === Template / Data ===
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    SHEET_NOT_FOUND = "SHEET_NOT_FOUND"
    DATA_FILE_INVALID = "DATA_FILE_INVALID"

    # === Render ===
    RENDER_FAILED = "RENDER_FAILED"

    # === Images (ImageError) ===
    IMAGE_URL_INVALID = "IMAGE_URL_INVALID"
    IMAGE_FETCH_FAILED = "IMAGE_FETCH_FAILED"
    IMAGE_UNREADABLE = "IMAGE_UNREADABLE"

    # === Structure (warning only) ===
    MERGE_CONFLICT = "MERGE_CONFLICT"
    SCOPE_DEPTH_EXCEEDED = "SCOPE_DEPTH_EXCEEDED"
    CONDITIONAL_FORMAT_MULTI_ROW = "CONDITIONAL_FORMAT_MULTI_ROW"
