"""Screen capture and detection of the match-found screen and its accept button."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple

from PIL import Image, ImageGrab

RGB = Tuple[int, int, int]

ACCEPT_TEMPLATE_NAME = "accept_button.png"
MATCHING_TEMPLATE_NAME = "matching.png"

_BUTTON_SCALES = (0.5, 0.6, 0.7, 0.8, 0.9, 1.0, 1.1, 1.2, 1.3, 1.5)
_BUTTON_THRESHOLDS = (0.4, 0.5, 0.6, 0.7)
_MATCHING_SCALES = (0.5, 0.7, 0.8, 1.2, 1.5, 2.0)

_LOOSE_TOLERANCE = 150
_STRICT_TOLERANCE = 60
_MATCH_STEP = 2
_CLUSTER_RADIUS = 20
_MIN_CLUSTER = 50
_EDGE_DIFFERENCE = 30
_EDGE_DENSITY = 0.15
_WHITE_TEXT_RATIO = 0.05


@dataclass(frozen=True)
class Point:
    """A pixel position on the screen."""

    x: int
    y: int


class TemplateError(Exception):
    """A template image could not be read or decoded."""


@dataclass(frozen=True)
class _Rect:
    left: int
    top: int
    right: int
    bottom: int

    def clamp(self, width: int, height: int) -> "_Rect":
        return _Rect(
            max(self.left, 0),
            max(self.top, 0),
            min(self.right, width),
            min(self.bottom, height),
        )


class _Canvas:
    """Fast RGB pixel access to a screenshot."""

    __slots__ = ("width", "height", "_px")

    def __init__(self, img: Image.Image) -> None:
        rgb = img if img.mode == "RGB" else img.convert("RGB")
        self.width, self.height = rgb.size
        self._px = rgb.load()

    def __getitem__(self, xy: Tuple[int, int]) -> RGB:
        return self._px[xy]


def _premultiply(channel: int, alpha: int) -> int:
    return (channel * 257 * alpha // 255) >> 8


@dataclass(frozen=True)
class _Template:
    image: Image.Image
    width: int
    height: int
    rows: Sequence[Sequence[RGB]]

    @classmethod
    def from_image(cls, image: Image.Image) -> "_Template":
        rgba = image.convert("RGBA")
        width, height = rgba.size
        pixels = [
            (_premultiply(r, a), _premultiply(g, a), _premultiply(b, a))
            for r, g, b, a in rgba.getdata()
        ]
        rows = [pixels[start:start + width] for start in range(0, len(pixels), width)]
        return cls(image, width, height, rows)


def _u8(value: int) -> int:
    # Channel sums wrap around as 8-bit unsigned values.
    return value & 0xFF


def is_accept_button_color(rgb: Sequence[int]) -> bool:
    """Tell whether a colour looks like the teal of the accept button."""
    r, g, b = rgb[0], rgb[1], rgb[2]
    return (
        (g > _u8(r + 20) and g > _u8(b + 10) and g > 100)
        or (b > _u8(r + 20) and g > _u8(r + 10) and b > 80)
        or (g > 120 and b > 80 and r < 100)
    )


def color_difference(c1: Sequence[int], c2: Sequence[int]) -> int:
    """Sum of absolute differences of the red, green and blue channels."""
    return abs(c1[0] - c2[0]) + abs(c1[1] - c2[1]) + abs(c1[2] - c2[2])


def _similarity(
    canvas: _Canvas,
    template: _Template,
    offset_x: int,
    offset_y: int,
    scale: float,
    step: int,
    tolerance: int,
) -> float:
    total = matching = 0
    for y in range(0, template.height, step):
        hy = offset_y + int(y * scale)
        if hy >= canvas.height:
            continue
        row = template.rows[y]
        for x in range(0, template.width, step):
            hx = offset_x + int(x * scale)
            if hx >= canvas.width:
                continue
            if color_difference(canvas[hx, hy], row[x]) < tolerance:
                matching += 1
            total += 1
    return matching / total if total else 0.0


class ImageDetector:
    """Finds the match-found screen and the accept button in screenshots."""

    def __init__(self, resource_dir: str | Path = "resources") -> None:
        self.resource_dir = Path(resource_dir)
        self._accept: Optional[_Template] = None
        self._matching: Optional[_Template] = None
        self.last_screenshot: Optional[Image.Image] = None
        self.screen_bounds: Optional[Tuple[int, int, int, int]] = None

    @property
    def accept_template(self) -> Optional[Image.Image]:
        return self._accept.image if self._accept else None

    @property
    def matching_template(self) -> Optional[Image.Image]:
        return self._matching.image if self._matching else None

    def load_templates(self) -> None:
        """Load both template images from the resource directory."""
        self._accept = _Template.from_image(
            self._read_png(ACCEPT_TEMPLATE_NAME, "承認ボタンテンプレート", "承認ボタン画像")
        )
        self._matching = _Template.from_image(
            self._read_png(MATCHING_TEMPLATE_NAME, "マッチングテンプレート", "マッチング画像")
        )

    def _read_png(self, name: str, file_label: str, image_label: str) -> Image.Image:
        path = self.resource_dir / name
        try:
            with open(path, "rb") as handle:
                data = handle.read()
        except OSError as exc:
            raise TemplateError(f"{file_label}の読み込み失敗: {exc}") from exc
        try:
            from io import BytesIO

            with Image.open(BytesIO(data), formats=["PNG"]) as image:
                image.load()
                return image.copy()
        except (OSError, SyntaxError, ValueError) as exc:
            raise TemplateError(f"{image_label}のデコード失敗: {exc}") from exc

    def capture_screen(self) -> Image.Image:
        """Grab the primary display as an RGB image."""
        img = ImageGrab.grab().convert("RGB")
        self.last_screenshot = img
        self.screen_bounds = (0, 0, img.width, img.height)
        return img

    def fast_detect_matching_screen(self, img: Image.Image) -> bool:
        """Tell whether the match-found screen is showing."""
        canvas = _Canvas(img)
        width, height = canvas.width, canvas.height

        if self._matching is not None:
            whole = _Rect(0, 0, width, height)
            if self._template_match(canvas, self._matching, 0.6, whole, 1.0) is not None:
                return True
            for scale in _MATCHING_SCALES:
                if self._template_match(canvas, self._matching, 0.5, whole, scale) is not None:
                    return True

        cx, cy = width // 2, height // 2
        area = _Rect(cx - 200, cy - 100, cx + 200, cy + 100).clamp(width, height)
        samples = [
            canvas[x, y]
            for y in range(area.top, area.bottom, 3)
            for x in range(area.left, area.right, 3)
        ]
        if not samples:
            return False
        white = sum(1 for r, g, b in samples if r > 200 and g > 200 and b > 200)
        return white / len(samples) > _WHITE_TEXT_RATIO

    def fast_detect_accept_button(self, img: Image.Image) -> Optional[Point]:
        """Locate the accept button, or return None."""
        canvas = _Canvas(img)
        cx, cy = canvas.width // 2, canvas.height // 2
        area = _Rect(cx - 400, cy - 50, cx + 400, cy + 250).clamp(canvas.width, canvas.height)

        best: Optional[Point] = None
        best_score = 0.0
        if self._accept is not None:
            for threshold in _BUTTON_THRESHOLDS:
                for scale in _BUTTON_SCALES:
                    pos = self._template_match(canvas, self._accept, threshold, area, scale)
                    if pos is None:
                        continue
                    score = self._verify(canvas, pos, scale)
                    if score > best_score:
                        best_score = score
                        best = pos

        if best is None:
            best = self._detect_by_color(canvas, area)
        if best is None:
            best = self._detect_by_edge(canvas, area)
        return best

    def verify_accept_button(self, img: Image.Image, pos: Point, scale: float = 1.0) -> float:
        """Score how well the region around pos matches the accept button."""
        return self._verify(_Canvas(img), pos, scale)

    def _verify(self, canvas: _Canvas, pos: Point, scale: float) -> float:
        if self._accept is None:
            return 0.5
        needle_w = int(self._accept.width * scale)
        needle_h = int(self._accept.height * scale)
        start_x = pos.x - needle_w // 2
        start_y = pos.y - needle_h // 2
        if (
            start_x < 0
            or start_y < 0
            or start_x + needle_w >= canvas.width
            or start_y + needle_h >= canvas.height
        ):
            return 0.3
        score = _similarity(canvas, self._accept, start_x, start_y, scale, 1, _STRICT_TOLERANCE)
        return score + self._surrounding_bonus(canvas, pos)

    @staticmethod
    def _surrounding_bonus(canvas: _Canvas, center: Point) -> float:
        checked = [
            canvas[x, y]
            for y in range(center.y - 20, center.y + 21, 4)
            for x in range(center.x - 20, center.x + 21, 4)
            if 0 <= x < canvas.width and 0 <= y < canvas.height
        ]
        if not checked:
            return 0.0
        ratio = sum(1 for c in checked if is_accept_button_color(c)) / len(checked)
        if ratio > 0.3:
            return 0.2
        if ratio > 0.1:
            return 0.1
        return 0.0

    @staticmethod
    def _template_match(
        canvas: _Canvas,
        template: _Template,
        threshold: float,
        area: _Rect,
        scale: float,
    ) -> Optional[Point]:
        needle_w = int(template.width * scale)
        needle_h = int(template.height * scale)
        area = area.clamp(canvas.width, canvas.height)
        best: Optional[Point] = None
        best_score = threshold
        for y in range(area.top, area.bottom - needle_h + 1, _MATCH_STEP):
            for x in range(area.left, area.right - needle_w + 1, _MATCH_STEP):
                score = _similarity(canvas, template, x, y, scale, 2, _LOOSE_TOLERANCE)
                if score > best_score:
                    best_score = score
                    best = Point(x + needle_w // 2, y + needle_h // 2)
        return best

    @staticmethod
    def _cluster_size(canvas: _Canvas, cx: int, cy: int, area: _Rect) -> int:
        radius = _CLUSTER_RADIUS
        return sum(
            1
            for y in range(max(cy - radius, area.top), min(cy + radius + 1, area.bottom))
            for x in range(max(cx - radius, area.left), min(cx + radius + 1, area.right))
            if is_accept_button_color(canvas[x, y])
        )

    def _detect_by_color(self, canvas: _Canvas, area: _Rect) -> Optional[Point]:
        best: Optional[Point] = None
        max_cluster = 0
        for y in range(area.top, area.bottom, 2):
            for x in range(area.left, area.right, 2):
                if not is_accept_button_color(canvas[x, y]):
                    continue
                size = self._cluster_size(canvas, x, y, area)
                if size > max_cluster and size > _MIN_CLUSTER:
                    max_cluster = size
                    best = Point(x, y)
        return best

    def _detect_by_edge(self, canvas: _Canvas, area: _Rect) -> Optional[Point]:
        for y in range(area.top, area.bottom - 50, 5):
            for x in range(area.left, area.right - 100, 5):
                if self._is_button_shape(canvas, x, y, 100, 50):
                    return Point(x + 50, y + 25)
        return None

    @staticmethod
    def _is_button_shape(canvas: _Canvas, x: int, y: int, width: int, height: int) -> bool:
        if x + width >= canvas.width or y + height >= canvas.height:
            return False
        edges = total = 0
        for py in range(y, y + height, 2):
            if py >= canvas.height - 1:
                continue
            for px in range(x, x + width, 2):
                if px >= canvas.width - 1:
                    continue
                c1 = canvas[px, py]
                if (
                    color_difference(c1, canvas[px + 1, py]) > _EDGE_DIFFERENCE
                    or color_difference(c1, canvas[px, py + 1]) > _EDGE_DIFFERENCE
                ):
                    edges += 1
                total += 1
        return total > 0 and edges / total > _EDGE_DENSITY