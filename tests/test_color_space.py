"""Tests for OKLCH conversions, CIEDE2000 distance and contrast."""

import re

import numpy as np
import pytest

from color_space import (
    PerceptualColor, adjust, circular_hue_distance, contrast_ratio, delta_e_ciede2000,
    describe_color, distance, from_cartesian, from_hex, normalize_hex, to_cartesian,
    to_hex, wcag_level,
)
from palette_errors import InvalidColorFormat


def channels(hex_color):
    return [int(hex_color[i:i + 2], 16) for i in (1, 3, 5)]


def test_short_and_long_hex_parse_to_same_color():
    assert from_hex("#fff") == from_hex("FFFFFF")
    assert from_hex("  #4f46e5 ") == from_hex("#4F46E5")


@pytest.mark.parametrize("value", ["", "#12", "zzzzzz", "#1234567", "#ggg", None, 0x4F46E5])
def test_invalid_hex_raises(value):
    with pytest.raises(InvalidColorFormat):
        from_hex(value)


def test_invalid_hex_is_a_value_error():
    with pytest.raises(ValueError):
        from_hex("not-a-color")


def test_hex_round_trip_within_one_channel_unit():
    rng = np.random.default_rng(3)
    samples = ["#000000", "#FFFFFF", "#4F46E5", "#FF0000", "#00FF00", "#0000FF", "#808080", "#F5A623"]
    samples += ["#%02X%02X%02X" % tuple(rgb) for rgb in rng.integers(0, 256, size=(200, 3))]

    for hex_color in samples:
        result = to_hex(from_hex(hex_color))
        diffs = np.abs(np.array(channels(result)) - np.array(channels(hex_color)))
        assert diffs.max() <= 1, (hex_color, result)


def test_white_and_gray_are_achromatic_with_zero_hue():
    white = from_hex("#FFFFFF")
    assert white.l == pytest.approx(1.0, abs=1e-3)
    assert white.c < 1e-4
    assert white.h == 0.0
    assert from_hex("#808080").h == 0.0


def test_to_hex_clips_out_of_gamut_colors():
    for color in [PerceptualColor(1, 0.5, 120), PerceptualColor(0.2, 0.4, 300), PerceptualColor(0.7, 2.0, 30)]:
        assert re.fullmatch(r"#[0-9A-F]{6}", to_hex(color))
    assert to_hex(PerceptualColor(0, 0, 0)) == "#000000"
    assert to_hex(PerceptualColor(1, 0, 0)) == "#FFFFFF"


def test_perceptual_color_normalizes_components():
    color = PerceptualColor(1.5, -0.2, -30)
    assert color.l == 1.0
    assert color.c == 0.0
    assert color.h == pytest.approx(330)
    assert PerceptualColor(0.5, 0.1, 720).h == 0.0
    assert PerceptualColor(0.5, 0.1, float('nan')).h == 0.0


def test_distance_is_symmetric_and_zero_for_identical_colors():
    colors = [from_hex(h) for h in ["#4F46E5", "#F5A623", "#3BB273", "#111827", "#FFFFFF"]]
    for a in colors:
        assert distance(a, a) == pytest.approx(0.0, abs=1e-9)
        for b in colors:
            assert distance(a, b) == pytest.approx(distance(b, a), abs=1e-9)
            if a != b:
                assert distance(a, b) > 0


def test_distance_black_white():
    assert distance(from_hex("#000000"), from_hex("#FFFFFF")) == pytest.approx(100.0, abs=0.1)


@pytest.mark.parametrize("lab1, lab2, expected", [
    ((50.0, 2.6772, -79.7751), (50.0, 0.0, -82.7485), 2.0425),
    ((50.0, 0.0, 0.0), (50.0, -1.0, 2.0), 2.3669),
    ((50.0, 2.5, 0.0), (73.0, 25.0, -18.0), 27.1492),
])
def test_ciede2000_reference_pairs(lab1, lab2, expected):
    assert float(delta_e_ciede2000(np.array(lab1), np.array(lab2))) == pytest.approx(expected, abs=1e-4)


def test_ciede2000_broadcasts_one_against_many():
    reference = np.array([50.0, 0.0, 0.0])
    others = np.array([[50.0, 0.0, 0.0], [50.0, -1.0, 2.0], [100.0, 0.0, 0.0]])
    result = delta_e_ciede2000(others, reference)
    assert result.shape == (3,)
    assert result[0] == pytest.approx(0.0, abs=1e-9)
    assert result[1] == pytest.approx(2.3669, abs=1e-4)
    assert result[2] > result[1]


def test_distance_grows_with_small_separations():
    base = PerceptualColor(0.5, 0.1, 200)
    lightness = [distance(base, adjust(base, dl=step * 0.01)) for step in range(1, 5)]
    chroma = [distance(base, adjust(base, dc=step * 0.01)) for step in range(1, 5)]
    hue = [distance(base, adjust(base, dh=step * 2.0)) for step in range(1, 5)]
    for series in (lightness, chroma, hue):
        assert all(a < b for a, b in zip(series, series[1:]))


def test_cartesian_round_trip():
    rng = np.random.default_rng(11)
    for l, c, h in zip(rng.uniform(0, 1, 300), rng.uniform(0.01, 0.4, 300), rng.uniform(0, 360, 300)):
        color = PerceptualColor(l, c, h)
        back = from_cartesian(*to_cartesian(color))
        assert back.l == pytest.approx(color.l, abs=1e-6)
        assert back.c == pytest.approx(color.c, abs=1e-6)
        assert circular_hue_distance(back.h, color.h) < 1e-6


def test_cartesian_projection_and_gray_hue():
    l, u, v = to_cartesian(PerceptualColor(0.5, 0.2, 90))
    assert (l, u, v) == pytest.approx((0.5, 0.0, 0.2), abs=1e-12)
    gray = from_cartesian(0.5, 0.0, 0.0)
    assert gray.c == 0.0
    assert gray.h == 0.0


def test_adjust_wraps_hue_and_clamps():
    color = adjust(PerceptualColor(0.95, 0.05, 350), dl=0.1, dc=-0.1, dh=20)
    assert color.l == 1.0
    assert color.c == 0.0
    assert color.h == pytest.approx(10)


def test_circular_hue_distance():
    assert circular_hue_distance(350, 10) == pytest.approx(20)
    assert circular_hue_distance(10, 350) == pytest.approx(20)
    assert circular_hue_distance(0, 180) == pytest.approx(180)


def test_normalize_hex():
    assert normalize_hex("abc") == "#AABBCC"
    assert normalize_hex("#4f46e5") == "#4F46E5"


def test_contrast_ratio_and_levels():
    assert contrast_ratio("#000000", "#FFFFFF") == pytest.approx(21.0)
    assert contrast_ratio("#FFFFFF", "#000000") == pytest.approx(21.0)
    assert contrast_ratio("#4F46E5", "#4F46E5") == pytest.approx(1.0)
    assert wcag_level(21.0) == "AAA"
    assert wcag_level(5.0) == "AA"
    assert wcag_level(3.5) == "AA-large"
    assert wcag_level(1.2) == "fail"


def test_describe_color():
    assert describe_color(from_hex("#808080")) == "Gray"
    assert describe_color(from_hex("#000000")) == "Near-Black"
    assert describe_color(PerceptualColor(0.6, 0.25, 260)).endswith("Blue")
    assert describe_color(PerceptualColor(0.6, 0.25, 260)).startswith("Vivid")
