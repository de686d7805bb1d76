"""
Configuration: default.yaml 로드 → RenderSettings.

설정 파일이 없으면 기본값으로 동작한다 (fail-fast 대신 유연하게).
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from xlsx_templater.domain.constants import (
    DEFAULT_IMAGE_EXTENSION,
    DEFAULT_MAX_SCOPE_DEPTH,
    IMAGE_SHRINK_STEP,
)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "default.yaml"


@dataclass
class RenderSettings:
    """렌더링 설정."""

    # 중첩 스코프({@a}...{@b}...) 최대 깊이
    max_scope_depth: int = DEFAULT_MAX_SCOPE_DEPTH

    # 이미지 다운로드
    image_timeout: float = 10.0
    image_max_retries: int = 2
    image_retry_delay: float = 0.5
    user_agent: str = "xlsx-templater"

    # 이미지 배치
    image_shrink_step: float = IMAGE_SHRINK_STEP
    default_image_extension: str = DEFAULT_IMAGE_EXTENSION


def load_config(config_path: Path | None = None) -> dict:
    """설정 파일 로드."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        data: dict[Any, Any] = yaml.safe_load(f) or {}
        return data


def load_settings(config_path: Path | None = None) -> RenderSettings:
    """
    설정 파일을 RenderSettings로 변환.

    Args:
        config_path: YAML 경로 (None이면 프로젝트 루트 default.yaml)

    Returns:
        RenderSettings (없는 키는 기본값 유지)
    """
    config = load_config(config_path)
    render_cfg = config.get("render") or {}
    images_cfg = config.get("images") or {}

    settings = RenderSettings()
    if "max_scope_depth" in render_cfg:
        settings.max_scope_depth = int(render_cfg["max_scope_depth"])
    if "timeout" in images_cfg:
        settings.image_timeout = float(images_cfg["timeout"])
    if "max_retries" in images_cfg:
        settings.image_max_retries = int(images_cfg["max_retries"])
    if "retry_delay" in images_cfg:
        settings.image_retry_delay = float(images_cfg["retry_delay"])
    if "shrink_step" in images_cfg:
        settings.image_shrink_step = float(images_cfg["shrink_step"])
    if "default_extension" in images_cfg:
        settings.default_image_extension = str(images_cfg["default_extension"])
    if "user_agent" in images_cfg:
        settings.user_agent = str(images_cfg["user_agent"])

    return settings
