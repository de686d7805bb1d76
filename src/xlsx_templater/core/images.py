"""
이미지 다운로드: ImageFetcher 인터페이스 + httpx 구현.

규칙:
- URL은 반드시 절대 경로 (http/https)
- 실패는 ImageError로 통일 → 이미지 resolver가 태그 단위로 격리
- 확장자는 URL 경로 끝 `.ext`에서 추론, 없으면 jpg
"""

import logging
import re
from abc import ABC, abstractmethod
from types import TracebackType
from urllib.parse import urlsplit

import httpx

from xlsx_templater.config import RenderSettings
from xlsx_templater.domain.constants import DEFAULT_IMAGE_EXTENSION, IMAGE_URL_SCHEMES
from xlsx_templater.domain.errors import ErrorCodes, ImageError
from xlsx_templater.utils.retry import retry_with_exponential_backoff

logger = logging.getLogger(__name__)

_URL_PATTERN = re.compile(r"^(?:" + "|".join(IMAGE_URL_SCHEMES) + r")://.+", re.IGNORECASE)
_EXTENSION_PATTERN = re.compile(r".+\.(\w+)$")


class ImageFetcher(ABC):
    """이미지 바이트를 가져오는 추상 인터페이스."""

    default_extension: str = DEFAULT_IMAGE_EXTENSION

    @abstractmethod
    def fetch(self, url: str) -> bytes:
        """
        이미지 바이트 다운로드.

        Raises:
            ImageError: IMAGE_URL_INVALID, IMAGE_FETCH_FAILED
        """

    def extension_of(self, url: str) -> str:
        """
        URL에서 이미지 확장자 추론.

        예: https://example.com/a/b.PNG → "png"
        """
        path = urlsplit(str(url)).path
        match = _EXTENSION_PATTERN.match(path)
        if match:
            return match.group(1).lower()
        return self.default_extension


def validate_image_url(url: object) -> str:
    """절대 http(s) URL만 허용."""
    if not isinstance(url, str) or not _URL_PATTERN.match(url):
        raise ImageError(ErrorCodes.IMAGE_URL_INVALID, url=str(url))
    return url


def _is_transient(error: Exception) -> bool:
    """연결 오류와 5xx만 재시도 (4xx는 즉시 실패)."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return True


class HttpImageFetcher(ImageFetcher):
    """
    httpx 기반 ImageFetcher.

    Usage:
        with HttpImageFetcher(settings) as fetcher:
            content = fetcher.fetch("https://example.com/logo.png")
    """

    def __init__(
        self,
        settings: RenderSettings | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings or RenderSettings()
        self.default_extension = self.settings.default_image_extension
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.Client:
        # 첫 다운로드 시점에 생성 (이미지 태그가 없으면 연결도 없음)
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.settings.image_timeout,
                follow_redirects=True,
                headers={"User-Agent": self.settings.user_agent},
            )
        return self._client

    def fetch(self, url: str) -> bytes:
        url = validate_image_url(url)
        logger.debug(f"Image loading: {url}")

        try:
            content = retry_with_exponential_backoff(
                self._get,
                url,
                max_retries=self.settings.image_max_retries,
                initial_delay=self.settings.image_retry_delay,
                exceptions=(httpx.TransportError, httpx.HTTPStatusError),
                should_retry=_is_transient,
            )
        except httpx.InvalidURL as e:
            # 형식 검사는 통과했지만 httpx가 해석하지 못한 URL (잘못된 포트 등)
            raise ImageError(
                ErrorCodes.IMAGE_URL_INVALID,
                url=url,
                error=str(e),
            ) from e
        except httpx.HTTPError as e:
            raise ImageError(
                ErrorCodes.IMAGE_FETCH_FAILED,
                url=url,
                error=str(e),
            ) from e

        logger.debug(f"Image loaded: {url} ({len(content)} bytes)")
        return content

    def _get(self, url: str) -> bytes:
        response = self.client.get(url)
        response.raise_for_status()
        return response.content

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "HttpImageFetcher":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
