"""
재시도 로직 유틸리티.

이미지 다운로드처럼 일시적으로 실패할 수 있는 호출을 지수 백오프로 재시도한다.
"""

import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_with_exponential_backoff(
    func: Callable[..., T],
    *args: Any,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    should_retry: Callable[[Exception], bool] | None = None,
    **kwargs: Any,
) -> T:
    """
    지수 백오프를 사용한 재시도.

    Args:
        func: 재시도할 함수
        *args: func에 전달할 위치 인자
        max_retries: 최대 재시도 횟수 (총 시도 = max_retries + 1)
        initial_delay: 초기 대기 시간(초)
        max_delay: 최대 대기 시간(초)
        exponential_base: 지수 백오프 기수
        exceptions: 재시도 대상 예외 타입들
        should_retry: 잡힌 예외를 재시도할지 판단 (False면 즉시 raise)
        **kwargs: func에 전달할 키워드 인자

    Returns:
        func의 반환값

    Raises:
        마지막 시도에서 발생한 예외
    """
    delay = initial_delay
    attempts = max_retries + 1

    for attempt in range(1, attempts + 1):
        try:
            result = func(*args, **kwargs)
        except exceptions as e:
            if should_retry is not None and not should_retry(e):
                logger.debug(f"Not retryable: {e}")
                raise
            if attempt == attempts:
                logger.error(f"All {attempts} attempts failed. Last error: {e}")
                raise

            logger.warning(
                f"Attempt {attempt}/{attempts} failed: {e}. Retrying in {delay:.1f}s..."
            )
            time.sleep(delay)
            delay = min(delay * exponential_base, max_delay)
            continue

        if attempt > 1:
            logger.info(f"Retry succeeded on attempt {attempt}/{attempts}")
        return result

    msg = "Unexpected retry logic error"
    raise RuntimeError(msg)
