"""Screen capture for the agent's observation step.

This module provides:
- encode_image: Downscale and JPEG-encode a PIL image to base64
- ScreenObserver: Captures the primary display with Pillow's ImageGrab
- PageObserver: Captures a Playwright page

Both observers keep the most recent frame so that presentation layers (the
live observer) can show what the agent last saw without a second capture.

Example:
    >>> from deskpilot.vision.capture import ScreenObserver
    >>>
    >>> observer = ScreenObserver(quality=80, max_width=1280)
    >>> observation = observer.observe()
    >>> print(f"Captured {observation.width}x{observation.height}")
"""

from __future__ import annotations

import base64
import io
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from PIL import Image

from deskpilot.errors import ObservationError
from deskpilot.models.observations import Observation

if TYPE_CHECKING:
    from playwright.sync_api import Page

logger = logging.getLogger(__name__)

DEFAULT_QUALITY = 80
JPEG_MEDIA_TYPE = "image/jpeg"


def encode_image(
    image: Image.Image,
    quality: int = DEFAULT_QUALITY,
    max_width: int | None = None,
) -> tuple[str, int, int]:
    """Encode an image as base64 JPEG.

    Args:
        image: Source image.
        quality: JPEG quality 1-100. Out-of-range values use the default.
        max_width: If set, images wider than this are downscaled with the
            aspect ratio preserved.

    Returns:
        Tuple of (base64 string, width, height) of the encoded image.
    """
    if quality <= 0 or quality > 100:
        quality = DEFAULT_QUALITY

    if max_width and image.width > max_width:
        ratio = max_width / image.width
        new_size = (max_width, max(1, int(image.height * ratio)))
        image = image.resize(new_size, Image.Resampling.LANCZOS)

    # JPEG has no alpha channel
    if image.mode != "RGB":
        image = image.convert("RGB")

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    encoded = base64.b64encode(buffer.getvalue()).decode("utf-8")
    return encoded, image.width, image.height


class _FrameObserver(ABC):
    """Shared encode-and-remember logic for observers."""

    def __init__(self, quality: int, max_width: int | None) -> None:
        self._quality = quality
        self._max_width = max_width
        self._latest: Image.Image | None = None
        self._lock = threading.Lock()

    @property
    def latest_frame(self) -> Image.Image | None:
        """Get the most recently captured frame, before encoding."""
        with self._lock:
            return self._latest

    @abstractmethod
    def _grab(self) -> Image.Image:
        """Return a fresh, unencoded frame."""
        ...

    def observe(self) -> Observation:
        """Capture and encode a fresh frame.

        Returns:
            Observation with a base64 JPEG of the current screen.

        Raises:
            ObservationError: If capture or encoding fails.
        """
        try:
            timestamp = datetime.now()
            frame = self._grab()
            encoded, width, height = encode_image(frame, self._quality, self._max_width)
        except ObservationError:
            raise
        except Exception as e:
            raise ObservationError(f"failed to capture screenshot: {e}") from e

        with self._lock:
            self._latest = frame

        logger.debug(f"Captured {frame.width}x{frame.height} -> {width}x{height} JPEG")
        return Observation(
            image_base64=encoded,
            media_type=JPEG_MEDIA_TYPE,
            width=width,
            height=height,
            timestamp=timestamp,
        )


class ScreenObserver(_FrameObserver):
    """Observer for the local desktop.

    Attributes:
        latest_frame: The last captured frame, or None.
    """

    def __init__(
        self,
        grab: Callable[[], Image.Image] | None = None,
        quality: int = DEFAULT_QUALITY,
        max_width: int | None = None,
    ) -> None:
        """Initialize the screen observer.

        Args:
            grab: Callable returning a screenshot. Defaults to
                ``PIL.ImageGrab.grab`` on the primary display.
            quality: JPEG quality.
            max_width: Downscale wider captures to this width.
        """
        super().__init__(quality, max_width)
        self._grab_fn = grab
        logger.debug(f"ScreenObserver initialized: quality={quality}, max_width={max_width}")

    def _grab(self) -> Image.Image:
        if self._grab_fn is not None:
            return self._grab_fn()

        from PIL import ImageGrab

        image = ImageGrab.grab()
        if image is None:
            raise ObservationError("no active displays found")
        return image


class PageObserver(_FrameObserver):
    """Observer for a Playwright browser page."""

    def __init__(
        self,
        page: Page,
        quality: int = DEFAULT_QUALITY,
        max_width: int | None = None,
    ) -> None:
        """Initialize with a Playwright page.

        Args:
            page: Page to screenshot.
            quality: JPEG quality.
            max_width: Downscale wider captures to this width.
        """
        super().__init__(quality, max_width)
        self._page = page

    def _grab(self) -> Image.Image:
        raw_bytes = self._page.screenshot(type="png")
        return Image.open(io.BytesIO(raw_bytes))
