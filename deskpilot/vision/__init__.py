"""Vision package for capturing observations.

This package provides:
- ScreenObserver: Captures the local desktop
- PageObserver: Captures a Playwright page
- encode_image: JPEG/base64 encoding with optional downscaling
"""

from deskpilot.vision.capture import (
    DEFAULT_QUALITY,
    PageObserver,
    ScreenObserver,
    encode_image,
)

__all__ = [
    "DEFAULT_QUALITY",
    "PageObserver",
    "ScreenObserver",
    "encode_image",
]
