"""Tests for the end-to-end extraction pipeline and request validation."""

import io
import json
import sys

import numpy as np
import pytest
from PIL import Image

import batch_extract
import extract_palette as extract_module
from build_palette import text_surface_pairs
from color_space import AA_CONTRAST, contrast_ratio, parse_hex
from extract_palette import ExtractorOptions, extract_palette, extract_palette_from_bytes, regenerate_palette
from palette_errors import EmptyInput, InvalidColorFormat, InvalidImage, InvalidOptions, NoSwatches


def solid_image(hex_color, size=64, alpha=255):
    pixels = np.empty((size, size, 4), dtype=np.uint8)
    pixels[:, :] = (*parse_hex(hex_color), alpha)
    return pixels


def striped_image(hex_colors, width=120, height=90):
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    stripe = width // len(hex_colors)
    for i, hex_color in enumerate(hex_colors):
        pixels[:, i * stripe:(i + 1) * stripe] = (*parse_hex(hex_color), 255)
    return pixels


def png_bytes(hex_color, size=(80, 60)):
    buffer = io.BytesIO()
    Image.new('RGB', size, parse_hex(hex_color)).save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def request_swatches():
    return [
        {'hex': '#4F46E5', 'share': 0.6},
        {'hex': '#F5A623', 'share': 0.4},
    ]


def test_single_color_image():
    result = extract_palette(solid_image("#4F46E5"), random_state=0)
    assert len(result.swatches) == 1
    assert result.swatches[0].hex == "#4F46E5"
    assert result.swatches[0].share == pytest.approx(1.0)
    assert result.suggested.tokens.primary == "#4F46E5"


def test_result_json_shape():
    data = extract_palette(solid_image("#4F46E5"), random_state=0).to_dict()
    assert set(data) == {'swatches', 'suggested'}
    assert set(data['suggested']) == {'tokens', 'narrative'}
    swatch = data['swatches'][0]
    assert swatch['hex'] == "#4F46E5"
    assert len(swatch['oklch']) == 3
    json.dumps(data)


def test_transparent_image_is_unprocessable():
    with pytest.raises(EmptyInput) as excinfo:
        extract_palette(solid_image("#4F46E5", alpha=0))
    assert excinfo.value.http_status == 422


def test_extremes_only_image_keeps_pixels_when_asked():
    pixels = solid_image("#FFFFFF")
    with pytest.raises(EmptyInput):
        extract_palette(pixels)
    result = extract_palette(pixels, ExtractorOptions(ignore_extremes=False), random_state=0)
    assert result.swatches[0].hex == "#FFFFFF"


def test_multi_color_image_meets_aa():
    pixels = striped_image(["#4F46E5", "#F5A623", "#3BB273", "#D0021B"])
    result = extract_palette(pixels, ExtractorOptions(color_count=4), random_state=0)
    assert len(result.swatches) == 4
    assert sum(s.share for s in result.swatches) == pytest.approx(1.0)
    for _, text, surface in text_surface_pairs(result.suggested.tokens):
        assert contrast_ratio(text, surface) >= AA_CONTRAST


def test_extract_from_bytes():
    result = extract_palette_from_bytes(png_bytes("#3BB273"), random_state=0)
    assert result.swatches[0].hex == "#3BB273"


def test_extract_from_invalid_bytes():
    with pytest.raises(InvalidImage):
        extract_palette_from_bytes(b"\x00\x01 not an image")


def test_options_defaults():
    options = ExtractorOptions.from_mapping(None)
    assert options == ExtractorOptions(color_count=5, ignore_extremes=True, skin_tone_guard=True, require_aa=True)
    assert ExtractorOptions.from_mapping({}) == options


def test_options_accept_camel_and_snake_case():
    options = ExtractorOptions.from_mapping({'colorCount': 6, 'ignoreExtremes': False, 'skin_tone_guard': False,
                                             'requireAA': False})
    assert options == ExtractorOptions(color_count=6, ignore_extremes=False, skin_tone_guard=False,
                                       require_aa=False)


@pytest.mark.parametrize("count, expected", [(1, 3), (3, 3), (8, 8), (20, 8), (4.0, 4)])
def test_color_count_is_clamped(count, expected):
    assert ExtractorOptions.from_mapping({'colorCount': count}).color_count == expected


@pytest.mark.parametrize("mapping", [
    {'colorCount': 4.5},
    {'colorCount': '5'},
    {'colorCount': True},
    {'ignoreExtremes': 'yes'},
    {'requireAA': 1},
    {'palette': 'bright'},
    ['colorCount'],
])
def test_invalid_options(mapping):
    with pytest.raises(InvalidOptions) as excinfo:
        ExtractorOptions.from_mapping(mapping)
    assert excinfo.value.http_status == 400


def test_regenerate_palette(request_swatches):
    palette = regenerate_palette({'swatches': request_swatches, 'adjust': {'warmth': 1}})
    assert len(palette.swatches) == 2
    assert [s.share for s in palette.swatches] == [0.6, 0.4]
    assert set(palette.to_dict()) == {'tokens', 'narrative'}


def test_regenerate_palette_lock_and_options(request_swatches):
    palette = regenerate_palette({
        'swatches': request_swatches,
        'lockPrimary': '#f5a623',
        'options': {'requireAA': False},
    })
    assert palette.swatches[0].hex == "#F5A623"


@pytest.mark.parametrize("payload", [{}, {'swatches': []}, {'swatches': 'nope'}])
def test_regenerate_requires_swatches(payload):
    with pytest.raises(NoSwatches):
        regenerate_palette(payload)


def test_regenerate_rejects_malformed_fields(request_swatches):
    with pytest.raises(InvalidOptions):
        regenerate_palette([])
    with pytest.raises(InvalidOptions):
        regenerate_palette({'swatches': request_swatches, 'lockPrimary': 5})
    with pytest.raises(InvalidOptions):
        regenerate_palette({'swatches': request_swatches, 'adjust': {'warmth': 'high'}})
    with pytest.raises(InvalidColorFormat):
        regenerate_palette({'swatches': [{'hex': 'indigo'}]})


def test_cli_writes_json(tmp_path, monkeypatch):
    image = tmp_path / "indigo.png"
    image.write_bytes(png_bytes("#4F46E5"))
    output = tmp_path / "palette.json"
    monkeypatch.setattr(sys, 'argv', ['extract-palette', '-i', str(image), '-o', str(output), '--seed', '0'])

    extract_module.main()

    data = json.loads(output.read_text())
    assert data['swatches'][0]['hex'] == "#4F46E5"


def test_cli_reports_missing_image(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(sys, 'argv', ['extract-palette', '-i', str(tmp_path / "missing.png")])
    with pytest.raises(SystemExit) as excinfo:
        extract_module.main()
    assert excinfo.value.code == 1
    assert "Image not found" in capsys.readouterr().err


def test_batch_writes_one_file_per_image(tmp_path, monkeypatch):
    images = tmp_path / "images"
    images.mkdir()
    (images / "indigo.png").write_bytes(png_bytes("#4F46E5"))
    (images / "green.png").write_bytes(png_bytes("#3BB273"))
    out = tmp_path / "out"
    monkeypatch.setattr(sys, 'argv', ['batch-extract-palette', '-i', str(images), '-o', str(out), '--seed', '0'])

    batch_extract.main()

    assert sorted(p.name for p in out.iterdir()) == ["green-palette.json", "indigo-palette.json"]
    data = json.loads((out / "green-palette.json").read_text())
    assert data['swatches'][0]['hex'] == "#3BB273"


def test_batch_reports_failures(tmp_path, monkeypatch):
    images = tmp_path / "images"
    images.mkdir()
    (images / "broken.png").write_bytes(b"not a png")
    monkeypatch.setattr(sys, 'argv', ['batch-extract-palette', '-i', str(images), '-o', str(tmp_path / "out")])
    with pytest.raises(SystemExit) as excinfo:
        batch_extract.main()
    assert excinfo.value.code == 1


def test_huge_integers_are_rejected_as_bad_input(request_swatches):
    huge = int("9" * 400)
    with pytest.raises(InvalidOptions) as excinfo:
        ExtractorOptions.from_mapping({'colorCount': huge})
    assert excinfo.value.http_status == 400
    with pytest.raises(InvalidOptions):
        regenerate_palette({'swatches': request_swatches, 'adjust': {'warmth': huge}})
    with pytest.raises(InvalidOptions):
        regenerate_palette({'swatches': [{'hex': '#4F46E5', 'share': huge}]})


def test_batch_passes_extraction_flags(tmp_path, monkeypatch):
    images = tmp_path / "images"
    images.mkdir()
    (images / "white.png").write_bytes(png_bytes("#FFFFFF"))
    out = tmp_path / "out"

    monkeypatch.setattr(sys, 'argv', ['batch-extract-palette', '-i', str(images), '-o', str(out)])
    with pytest.raises(SystemExit):
        batch_extract.main()
    assert not (out / "white-palette.json").exists()

    monkeypatch.setattr(sys, 'argv', ['batch-extract-palette', '-i', str(images), '-o', str(out),
                                      '--keep-extremes', '--seed', '0'])
    batch_extract.main()
    data = json.loads((out / "white-palette.json").read_text())
    assert data['swatches'][0]['hex'] == "#FFFFFF"


def test_batch_skips_existing_outputs(tmp_path, monkeypatch, capsys):
    images = tmp_path / "images"
    images.mkdir()
    (images / "indigo.png").write_bytes(png_bytes("#4F46E5"))
    out = tmp_path / "out"
    out.mkdir()
    (out / "indigo-palette.json").write_text("{}")
    monkeypatch.setattr(sys, 'argv', ['batch-extract-palette', '-i', str(images), '-o', str(out),
                                      '--skip-existing'])

    batch_extract.main()

    assert (out / "indigo-palette.json").read_text() == "{}"
    assert "skipped 1" in capsys.readouterr().out
