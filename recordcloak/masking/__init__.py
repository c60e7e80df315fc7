"""Line masking built on the core rule and hashing primitives."""

from .transformer import (
    LineResult,
    LineStatus,
    LineTransformer,
    pad_to_width,
    transform,
    transform_line,
)

__all__ = [
    "LineResult",
    "LineStatus",
    "LineTransformer",
    "pad_to_width",
    "transform",
    "transform_line",
]
