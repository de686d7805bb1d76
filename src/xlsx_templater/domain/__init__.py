"""Domain layer: errors and schemas."""

from .errors import ErrorCodes, ImageError, TemplateError
from .schemas import (
    BlockLoop,
    ConditionalFormat,
    ConditionalFormatRule,
    ImageAnchor,
    MergeRange,
    RenderLog,
    RowLoop,
    WarningLog,
)

__all__ = [
    "TemplateError",
    "ImageError",
    "ErrorCodes",
    "MergeRange",
    "ConditionalFormat",
    "ConditionalFormatRule",
    "RowLoop",
    "BlockLoop",
    "ImageAnchor",
    "RenderLog",
    "WarningLog",
]
