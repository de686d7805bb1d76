"""
ID 생성: render_id
"""

import uuid
from datetime import UTC, datetime


def generate_render_id() -> str:
    """
    Render ID 생성.

    고유성 보장: UUID v4
    포맷: RENDER-{timestamp}-{uuid[:8]}

    Returns:
        render_id 문자열
    """
    now = datetime.now(UTC)
    timestamp = now.strftime("%Y%m%d%H%M%S")
    unique = uuid.uuid4().hex[:8]

    return f"RENDER-{timestamp}-{unique}"
