"""
Render layer: 태그 해석 + 구조 편집 엔진.

역할:
- 템플릿 시트 + 데이터 → 렌더된 시트 (제자리 수정)
- Document 인터페이스 (document.py), openpyxl 구현 (excel.py)
"""

from .excel import (
    XlsxDocument,
    XlsxSheet,
    load_data,
    load_document,
    render_xlsx,
    render_xlsx_bytes,
)
from .templater import SheetTemplater, render

__all__ = [
    "render",
    "render_xlsx",
    "render_xlsx_bytes",
    "load_document",
    "load_data",
    "SheetTemplater",
    "XlsxDocument",
    "XlsxSheet",
]
