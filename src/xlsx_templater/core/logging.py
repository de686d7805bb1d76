"""
Render logging: render log schema, warnings

규칙:
- 경고 필수 컨텍스트: level, code, sheet, cell, tag, original_value, message
- 렌더는 경고로 중단되지 않음 (이미지 실패 등은 기록만)
"""

import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from xlsx_templater.core.ids import generate_render_id
from xlsx_templater.domain.constants import RENDER_LOG_PREFIX
from xlsx_templater.domain.schemas import RenderLog, WarningLog

logger = logging.getLogger(__name__)

# =============================================================================
# Render Log Management
# =============================================================================


def create_render_log(sheets: list[str] | None = None) -> RenderLog:
    """
    새 RenderLog 생성.

    Args:
        sheets: 렌더 대상 시트 이름

    Returns:
        초기화된 RenderLog
    """
    now = datetime.now(UTC).isoformat()

    return RenderLog(
        render_id=generate_render_id(),
        started_at=now,
        sheets=list(sheets or []),
        result="pending",
    )


def emit_warning(
    render_log: RenderLog,
    code: str,
    message: str,
    sheet: str = "",
    cell: str = "",
    tag: str = "",
    original_value: str | None = None,
) -> None:
    """
    경고 이벤트 기록.

    Args:
        render_log: RenderLog 인스턴스
        code: 경고 코드 (ErrorCodes)
        message: 경고 메시지
        sheet: 시트 이름
        cell: 셀 주소 (예: B4)
        tag: 관련 태그 이름
        original_value: 원래 값 (이미지 URL 등)
    """
    warning = WarningLog(
        level="warning",
        code=code,
        sheet=sheet,
        cell=cell,
        tag=tag,
        original_value=original_value,
        message=message,
    )
    render_log.warnings.append(warning)


def complete_render_log(
    render_log: RenderLog,
    success: bool,
    error_code: str | None = None,
    error_context: dict[str, Any] | None = None,
) -> None:
    """
    RenderLog 완료 처리.

    Args:
        render_log: RenderLog 인스턴스
        success: 성공 여부
        error_code: 에러 코드 (실패 시)
        error_context: 에러 컨텍스트 (실패 시)
    """
    render_log.finished_at = datetime.now(UTC).isoformat()
    render_log.result = "success" if success else "failed"

    if not success:
        render_log.error_code = error_code
        render_log.error_context = error_context


def save_render_log(render_log: RenderLog, logs_dir: Path) -> Path:
    """
    RenderLog를 파일로 저장 (temp → rename, 원자적).

    Args:
        render_log: RenderLog 인스턴스
        logs_dir: 로그 디렉터리 경로

    Returns:
        저장된 파일 경로
    """
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"{RENDER_LOG_PREFIX}{render_log.render_id}.json"

    temp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=logs_dir,
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        ) as f:
            temp_path = Path(f.name)
            json.dump(render_log.to_dict(), f, indent=2, ensure_ascii=False)
            f.flush()
            try:
                os.fsync(f.fileno())
            except OSError as e:
                logger.warning(f"File fsync failed for {log_path}: {e}")

        os.replace(temp_path, log_path)
    except Exception:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink()
        raise

    return log_path


def load_render_log(log_path: Path) -> dict[str, Any]:
    """
    RenderLog 파일 로드.

    Args:
        log_path: 로그 파일 경로

    Returns:
        RenderLog 데이터 (dict)
    """
    data: dict[str, Any] = json.loads(log_path.read_text(encoding="utf-8"))
    return data
