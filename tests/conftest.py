"""
Pytest fixtures for the templater tests.

구성:
- 메모리 내 openpyxl 워크북 = Document
- FakeFetcher: 네트워크 없이 Pillow로 만든 PNG 바이트 제공
"""

from io import BytesIO
from pathlib import Path

import pytest
import yaml
from openpyxl import Workbook
from openpyxl.worksheet.worksheet import Worksheet
from PIL import Image

from xlsx_templater.config import RenderSettings
from xlsx_templater.core.images import ImageFetcher, validate_image_url
from xlsx_templater.core.logging import create_render_log
from xlsx_templater.domain.errors import ErrorCodes, ImageError
from xlsx_templater.domain.schemas import RenderLog
from xlsx_templater.render.copier import RowCopier
from xlsx_templater.render.excel import XlsxDocument, XlsxSheet
from xlsx_templater.render.resolvers import CellResolver

PHOTO_URL = "https://img.example.com/photos/photo.png"
LOGO_URL = "https://img.example.com/logo.png"


def make_png(width: int = 8, height: int = 8, color: tuple[int, int, int] = (255, 0, 0)) -> bytes:
    """단색 PNG 바이트."""
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeFetcher(ImageFetcher):
    """URL → 바이트 사전으로 동작하는 ImageFetcher."""

    def __init__(self, images: dict[str, bytes] | None = None):
        self.images = images if images is not None else {}
        self.requested: list[str] = []

    def fetch(self, url: str) -> bytes:
        url = validate_image_url(url)
        self.requested.append(url)
        if url not in self.images:
            raise ImageError(ErrorCodes.IMAGE_FETCH_FAILED, url=url, error="404")
        return self.images[url]


# =============================================================================
# Path Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """프로젝트 루트 경로."""
    return Path(__file__).parent.parent


@pytest.fixture
def default_config_path(project_root: Path) -> Path:
    """default.yaml 경로."""
    return project_root / "default.yaml"


@pytest.fixture
def default_config(default_config_path: Path) -> dict:
    """기본 설정 로드."""
    with open(default_config_path, encoding="utf-8") as f:
        return yaml.safe_load(f)


# =============================================================================
# Workbook Fixtures
# =============================================================================

@pytest.fixture
def workbook() -> Workbook:
    """빈 워크북 (시트 하나: Sheet1)."""
    wb = Workbook()
    wb.active.title = "Sheet1"
    return wb


@pytest.fixture
def ws(workbook: Workbook) -> Worksheet:
    """첫 번째 워크시트."""
    return workbook.active


@pytest.fixture
def sheet(ws: Worksheet) -> XlsxSheet:
    """Sheet 인터페이스로 감싼 워크시트."""
    return XlsxSheet(ws)


@pytest.fixture
def document(workbook: Workbook) -> XlsxDocument:
    return XlsxDocument(workbook)


# =============================================================================
# Render Fixtures
# =============================================================================

@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def fetcher(png_bytes: bytes) -> FakeFetcher:
    """PHOTO_URL, LOGO_URL을 제공하는 FakeFetcher."""
    return FakeFetcher({PHOTO_URL: png_bytes, LOGO_URL: make_png(color=(0, 0, 255))})


@pytest.fixture
def settings() -> RenderSettings:
    return RenderSettings()


@pytest.fixture
def render_log() -> RenderLog:
    return create_render_log(["Sheet1"])


@pytest.fixture
def resolver(
    sheet: XlsxSheet,
    fetcher: FakeFetcher,
    settings: RenderSettings,
    render_log: RenderLog,
) -> CellResolver:
    return CellResolver(sheet, fetcher, settings, render_log)


@pytest.fixture
def copier(sheet: XlsxSheet, render_log: RenderLog) -> RowCopier:
    return RowCopier(sheet, render_log)
