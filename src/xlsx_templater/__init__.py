"""
xlsx-templater: XLSX 템플릿 태그 렌더러.

Usage:
    from xlsx_templater import load_data, render_xlsx

    render_xlsx(template_path, load_data(data_path), output_path)

Document를 직접 다룰 때:
    from xlsx_templater import load_document, render_document

    document = render_document(load_document(template_path), data)
    document.save(output_path)
"""

from .config import RenderSettings, load_settings
from .domain.errors import ErrorCodes, ImageError, TemplateError
from .render import (
    XlsxDocument,
    load_data,
    load_document,
    render_xlsx,
    render_xlsx_bytes,
)
from .render.templater import render as render_document

__version__ = "0.1.0"

__all__ = [
    "render_document",
    "render_xlsx",
    "render_xlsx_bytes",
    "load_document",
    "load_data",
    "XlsxDocument",
    "RenderSettings",
    "load_settings",
    "TemplateError",
    "ImageError",
    "ErrorCodes",
]
