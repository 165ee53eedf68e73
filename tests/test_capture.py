"""Tests for screen capture and image encoding."""

from __future__ import annotations

import base64
import io
from unittest.mock import MagicMock

import pytest
from PIL import Image

from deskpilot.errors import ObservationError
from deskpilot.vision.capture import (
    JPEG_MEDIA_TYPE,
    PageObserver,
    ScreenObserver,
    _FrameObserver,
    encode_image,
)


def _decode(encoded: str) -> Image.Image:
    return Image.open(io.BytesIO(base64.b64decode(encoded)))


def _png_bytes(width: int, height: int) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(10, 20, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


class TestEncodeImage:
    """Tests for encode_image."""

    def test_encodes_jpeg_at_native_size(self) -> None:
        encoded, width, height = encode_image(Image.new("RGB", (640, 480)))

        decoded = _decode(encoded)
        assert decoded.format == "JPEG"
        assert (width, height) == (640, 480)
        assert decoded.size == (640, 480)

    def test_downscales_preserving_aspect_ratio(self) -> None:
        encoded, width, height = encode_image(Image.new("RGB", (2000, 1000)), max_width=1000)

        assert (width, height) == (1000, 500)
        assert _decode(encoded).size == (1000, 500)

    def test_narrow_images_not_upscaled(self) -> None:
        _, width, height = encode_image(Image.new("RGB", (400, 300)), max_width=1000)

        assert (width, height) == (400, 300)

    def test_converts_alpha_images(self) -> None:
        encoded, _, _ = encode_image(Image.new("RGBA", (10, 10), color=(0, 0, 0, 0)))

        assert _decode(encoded).mode == "RGB"

    @pytest.mark.parametrize("quality", [0, -5, 101])
    def test_out_of_range_quality_falls_back(self, quality: int) -> None:
        image = Image.new("RGB", (64, 64), color=(200, 10, 10))

        assert encode_image(image, quality=quality) == encode_image(image, quality=80)


class TestScreenObserver:
    """Tests for ScreenObserver."""

    def test_observe_returns_observation(self) -> None:
        observer = ScreenObserver(grab=lambda: Image.new("RGB", (320, 200)))

        observation = observer.observe()

        assert observation.media_type == JPEG_MEDIA_TYPE
        assert observation.size == (320, 200)
        assert _decode(observation.image_base64).size == (320, 200)

    def test_latest_frame_is_unencoded_capture(self) -> None:
        frame = Image.new("RGB", (1600, 900))
        observer = ScreenObserver(grab=lambda: frame, max_width=800)

        assert observer.latest_frame is None
        observation = observer.observe()

        assert observation.size == (800, 450)
        assert observer.latest_frame is frame

    def test_capture_failure_wrapped(self) -> None:
        def broken() -> Image.Image:
            raise OSError("X connection refused")

        observer = ScreenObserver(grab=broken)

        with pytest.raises(ObservationError, match="failed to capture screenshot: X connection"):
            observer.observe()
        assert observer.latest_frame is None


class TestPageObserver:
    """Tests for PageObserver."""

    def test_observe_uses_page_screenshot(self) -> None:
        page = MagicMock()
        page.screenshot.return_value = _png_bytes(1280, 800)

        observation = PageObserver(page, quality=60).observe()

        page.screenshot.assert_called_once_with(type="png")
        assert observation.size == (1280, 800)

    def test_page_errors_wrapped(self) -> None:
        page = MagicMock()
        page.screenshot.side_effect = RuntimeError("Target closed")

        with pytest.raises(ObservationError, match="Target closed"):
            PageObserver(page).observe()


class TestFrameObserverBase:
    """The shared observer base requires a capture source."""

    def test_base_cannot_be_instantiated(self) -> None:
        with pytest.raises(TypeError):
            _FrameObserver(quality=80, max_width=None)  # type: ignore[abstract]

    def test_subclass_without_grab_rejected(self) -> None:
        class Incomplete(_FrameObserver):
            pass

        with pytest.raises(TypeError):
            Incomplete(quality=80, max_width=None)  # type: ignore[abstract]
