"""
Domain Constants: 템플릿 문법 및 렌더링 전역 상수.
"""

# =============================================================================
# Tag Sigils (태그 접두 문자)
# =============================================================================
# {name}            스칼라 치환
# {%name}           이미지
# {@name}...{/name} 스코프 (데이터 컨텍스트 좁히기)
# {#name}...{/name} 행 루프 (단일 행 / 다중 행)
# {#name}...{/}     셀 내부 루프

IMAGE_SIGIL = "%"
SCOPE_SIGIL = "@"
LOOP_SIGIL = "#"
CLOSE_SIGIL = "/"

RESERVED_SIGILS = IMAGE_SIGIL + SCOPE_SIGIL + LOOP_SIGIL + CLOSE_SIGIL

INLINE_LOOP_CLOSE = "{/}"

# =============================================================================
# Images
# =============================================================================
# 셀 하나에 이미지가 여러 개일 때(셀 내부 루프) 두 번째부터
# 좌상단을 셀 크기의 20%씩 안쪽으로 밀어서 겹쳐 보이게 한다.

IMAGE_SHRINK_STEP = 0.2
DEFAULT_IMAGE_EXTENSION = "jpg"
IMAGE_URL_SCHEMES = ("http", "https")

# =============================================================================
# Structure
# =============================================================================

DEFAULT_MAX_SCOPE_DEPTH = 32

# =============================================================================
# Files
# =============================================================================

DATA_FILE_EXTENSIONS = (".json", ".yaml", ".yml")
RENDER_LOG_PREFIX = "render_"
