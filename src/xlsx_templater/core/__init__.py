"""
Core layer: 렌더 실행 기록과 외부 리소스(이미지).

역할:
- RenderLog (경고 수집, 저장)
- ImageFetcher (httpx)
"""

from .ids import generate_render_id
from .images import HttpImageFetcher, ImageFetcher
from .logging import (
    complete_render_log,
    create_render_log,
    emit_warning,
    load_render_log,
    save_render_log,
)

__all__ = [
    # ids
    "generate_render_id",
    # images
    "ImageFetcher",
    "HttpImageFetcher",
    # logging
    "create_render_log",
    "emit_warning",
    "complete_render_log",
    "save_render_log",
    "load_render_log",
]
