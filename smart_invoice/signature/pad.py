"""Free-hand signature capture.

A ``SignaturePad`` replays pointer or touch positions onto a transparent
RGBA canvas, scaled for the device pixel ratio, and exports the result
as a PNG data URL. Browsers post the collected stroke points and the
server renders them with ``render_strokes``.
"""

import base64
import binascii
import io
from collections.abc import Iterable, Sequence

import numpy as np
from PIL import Image, ImageDraw, UnidentifiedImageError

from smart_invoice.utils.config import SignatureConfig
from smart_invoice.utils.exceptions import SignatureError
from smart_invoice.utils.logger import get_logger

logger = get_logger(__name__)

PNG_DATA_URL_PREFIX = "data:image/png;base64,"

Point = tuple[float, float]


def to_canvas_point(client_x: float, client_y: float, rect_left: float, rect_top: float) -> Point:
    """Translate client coordinates into canvas coordinates."""
    return client_x - rect_left, client_y - rect_top


class SignaturePad:
    """Canvas that records one person's signature.

    Args:
        width: Canvas width in CSS pixels.
        height: Canvas height in CSS pixels.
        device_pixel_ratio: Screen density; values below 1 are treated as 1.
        line_width: Pen width in CSS pixels.
        stroke_color: Pen colour (any Pillow colour string).
    """

    def __init__(
        self,
        width: int = 600,
        height: int = 160,
        device_pixel_ratio: float = 1.0,
        line_width: float = 2.0,
        stroke_color: str = "#000000",
    ) -> None:
        self.ratio = max(device_pixel_ratio or 1.0, 1.0)
        self.width = width
        self.height = height
        self.line_width = line_width
        self.stroke_color = stroke_color
        self.is_drawing = False
        self.is_empty = True
        self._last: Point | None = None
        self.image = self._blank()

    @classmethod
    def from_config(cls, config: SignatureConfig) -> "SignaturePad":
        return cls(
            width=config.width,
            height=config.height,
            device_pixel_ratio=config.device_pixel_ratio,
            line_width=config.line_width,
            stroke_color=config.stroke_color,
        )

    def _blank(self) -> Image.Image:
        size = (round(self.width * self.ratio), round(self.height * self.ratio))
        return Image.new("RGBA", size, (0, 0, 0, 0))

    def begin(self, x: float, y: float) -> None:
        """Start a stroke at a canvas position."""
        self.is_drawing = True
        self.is_empty = False
        self._last = (x, y)

    def move(self, x: float, y: float) -> None:
        """Extend the current stroke; ignored when no stroke is active."""
        if not self.is_drawing or self._last is None:
            return
        self._segment(self._last, (x, y))
        self._last = (x, y)

    def end(self) -> str | None:
        """Finish the stroke and return the canvas as a data URL.

        Returns ``None`` while the canvas carries no ink, so an untouched
        pad or a bare tap never counts as a signature.
        """
        self.is_drawing = False
        self._last = None
        if self.is_empty or not self.has_ink:
            return None
        return self.to_data_url()

    def clear(self) -> None:
        """Wipe the canvas."""
        self.image = self._blank()
        self.is_drawing = False
        self.is_empty = True
        self._last = None

    def _segment(self, start: Point, stop: Point) -> None:
        draw = ImageDraw.Draw(self.image)
        width = max(1, round(self.line_width * self.ratio))
        p0 = (start[0] * self.ratio, start[1] * self.ratio)
        p1 = (stop[0] * self.ratio, stop[1] * self.ratio)
        draw.line([p0, p1], fill=self.stroke_color, width=width)
        # round caps
        r = width / 2
        for px, py in (p0, p1):
            draw.ellipse([px - r, py - r, px + r, py + r], fill=self.stroke_color)

    @property
    def has_ink(self) -> bool:
        """True when at least one pixel has been painted."""
        alpha = np.asarray(self.image)[..., 3]
        return bool(alpha.any())

    def to_png(self) -> bytes:
        buf = io.BytesIO()
        self.image.save(buf, format="PNG")
        return buf.getvalue()

    def to_data_url(self) -> str:
        return PNG_DATA_URL_PREFIX + base64.b64encode(self.to_png()).decode("ascii")


def render_strokes(
    strokes: Iterable[Sequence[Point]],
    config: SignatureConfig | None = None,
) -> str | None:
    """Render a list of strokes and return the PNG data URL.

    Each stroke is the ordered point list of one pen-down/pen-up gesture.
    Returns ``None`` when the strokes leave no ink on the canvas.
    """
    pad = SignaturePad.from_config(config or SignatureConfig())
    result = None
    for stroke in strokes:
        if not stroke:
            continue
        first, *rest = stroke
        pad.begin(*first)
        for point in rest:
            pad.move(*point)
        result = pad.end()
    logger.debug("Rendered signature, ink=%s", result is not None)
    return result


def decode_data_url(data_url: str) -> bytes:
    """Return the image bytes of a base64 image data URL.

    Raises:
        SignatureError: If the payload is not base64 or not an image.
    """
    payload = data_url.split(",", 1)[1] if data_url.startswith("data:") else data_url
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SignatureError("Signature is not valid base64 image data") from exc

    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError) as exc:
        raise SignatureError("Signature is not a readable image") from exc
    return raw
