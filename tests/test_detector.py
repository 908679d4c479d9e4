from unittest.mock import patch

import pytest
from PIL import Image

from autoaccept.detector import (
    ImageDetector,
    Point,
    TemplateError,
    color_difference,
    is_accept_button_color,
)

RED = (255, 0, 0)
BLUE = (0, 0, 255)
YELLOW = (255, 255, 0)
MAGENTA = (255, 0, 255)


def _split(left, right, size=8):
    img = Image.new("RGB", (size, size), left)
    img.paste(right, (size // 2, 0, size, size))
    return img


def _write_templates(directory, accept=None, matching=None):
    (accept or _split(RED, BLUE)).save(directory / "accept_button.png")
    (matching or _split(YELLOW, MAGENTA)).save(directory / "matching.png")


@pytest.fixture
def loaded(tmp_path):
    _write_templates(tmp_path)
    detector = ImageDetector(tmp_path)
    detector.load_templates()
    return detector


@pytest.mark.parametrize(
    "rgb, expected",
    [
        ((0, 200, 0), True),
        ((200, 0, 0), False),
        ((0, 0, 0), False),
        ((50, 150, 200), True),
        ((240, 150, 0), True),
        ((255, 255, 255), True),
    ],
)
def test_is_accept_button_color(rgb, expected):
    assert is_accept_button_color(rgb) is expected


def test_color_difference_zero_and_symmetric():
    assert color_difference((10, 20, 30), (10, 20, 30)) == 0
    a, b = (10, 200, 30), (90, 20, 35)
    assert color_difference(a, b) == color_difference(b, a)
    assert color_difference((1, 2, 3, 0), (1, 2, 3, 255)) == 0


def test_load_templates_missing_accept(tmp_path):
    detector = ImageDetector(tmp_path)
    with pytest.raises(TemplateError, match="承認ボタンテンプレート"):
        detector.load_templates()
    assert detector.accept_template is None


def test_load_templates_missing_matching_keeps_accept(tmp_path):
    _split(RED, BLUE).save(tmp_path / "accept_button.png")
    detector = ImageDetector(tmp_path)
    with pytest.raises(TemplateError, match="マッチングテンプレート"):
        detector.load_templates()
    assert detector.accept_template.size == (8, 8)
    assert detector.matching_template is None


def test_load_templates_rejects_non_png(tmp_path):
    (tmp_path / "accept_button.png").write_bytes(b"not an image")
    with pytest.raises(TemplateError, match="デコード"):
        ImageDetector(tmp_path).load_templates()


def test_load_templates_rejects_jpeg(tmp_path):
    _split(RED, BLUE).save(tmp_path / "accept_button.png", format="JPEG")
    with pytest.raises(TemplateError, match="承認ボタン画像"):
        ImageDetector(tmp_path).load_templates()


def test_load_templates_success(loaded):
    assert loaded.accept_template.size == (8, 8)
    assert loaded.matching_template.size == (8, 8)


def test_capture_screen_stores_result():
    shot = Image.new("RGBA", (30, 20), (1, 2, 3, 255))
    detector = ImageDetector()
    with patch("PIL.ImageGrab.grab", return_value=shot):
        img = detector.capture_screen()
    assert img.mode == "RGB"
    assert img.size == (30, 20)
    assert detector.last_screenshot is img
    assert detector.screen_bounds == (0, 0, 30, 20)


def test_capture_screen_propagates_error():
    with patch("PIL.ImageGrab.grab", side_effect=OSError("no display")):
        with pytest.raises(OSError):
            ImageDetector().capture_screen()


def test_matching_screen_white_text():
    detector = ImageDetector()
    assert detector.fast_detect_matching_screen(Image.new("RGB", (100, 100), (255, 255, 255)))
    assert not detector.fast_detect_matching_screen(Image.new("RGB", (100, 100)))


def test_matching_screen_few_white_pixels_not_enough():
    img = Image.new("RGB", (100, 100))
    img.paste((255, 255, 255), (10, 10, 13, 13))
    assert ImageDetector().fast_detect_matching_screen(img) is False


def test_matching_screen_by_template(loaded):
    img = Image.new("RGB", (60, 60))
    img.paste(_split(YELLOW, MAGENTA), (20, 20))
    assert ImageDetector().fast_detect_matching_screen(img) is False
    assert loaded.fast_detect_matching_screen(img) is True


def test_matching_screen_template_absent(loaded):
    assert loaded.fast_detect_matching_screen(Image.new("RGB", (60, 60))) is False


def test_accept_button_by_template(loaded):
    img = Image.new("RGB", (60, 60))
    img.paste(_split(RED, BLUE), (24, 30))
    pos = loaded.fast_detect_accept_button(img)
    assert pos is not None
    assert 18 <= pos.x <= 38
    assert 24 <= pos.y <= 44


def test_accept_button_absent_with_templates(loaded):
    assert loaded.fast_detect_accept_button(Image.new("RGB", (60, 60))) is None


def test_accept_button_absent_without_templates():
    assert ImageDetector().fast_detect_accept_button(Image.new("RGB", (120, 120))) is None


def test_accept_button_by_color():
    img = Image.new("RGB", (200, 200), (0, 200, 0))
    pos = ImageDetector().fast_detect_accept_button(img)
    assert pos is not None
    assert 0 <= pos.x < 200
    assert 50 <= pos.y < 200
    assert is_accept_button_color(img.getpixel((pos.x, pos.y)))


def test_accept_button_by_edges():
    img = Image.new("RGB", (300, 200))
    for x in range(0, 300, 2):
        img.paste(RED, (x, 0, x + 1, 200))
    assert ImageDetector().fast_detect_accept_button(img) == Point(50, 75)


def test_verify_without_template():
    img = Image.new("RGB", (50, 50))
    assert ImageDetector().verify_accept_button(img, Point(25, 25), 1.0) == 0.5


def test_verify_out_of_bounds(loaded):
    img = Image.new("RGB", (50, 50))
    assert loaded.verify_accept_button(img, Point(2, 2), 1.0) == 0.3


def test_verify_full_match_with_colour_bonus(tmp_path):
    green = (0, 200, 0)
    _write_templates(tmp_path, accept=Image.new("RGB", (10, 10), green))
    detector = ImageDetector(tmp_path)
    detector.load_templates()
    img = Image.new("RGB", (100, 100), green)
    assert detector.verify_accept_button(img, Point(50, 50), 1.0) == pytest.approx(1.2)


def test_verify_no_match_scores_below_full(loaded):
    img = Image.new("RGB", (60, 60))
    img.paste(_split(RED, BLUE), (24, 30))
    on_target = loaded.verify_accept_button(img, Point(28, 34), 1.0)
    off_target = loaded.verify_accept_button(img, Point(10, 10), 1.0)
    assert on_target == pytest.approx(1.0)
    assert off_target == pytest.approx(0.0)