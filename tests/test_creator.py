"""
End-to-end tests for the resize pipeline against a temporary web root.
"""

from io import BytesIO

import pytest
from PIL import Image, features

from image_resize.core import creator as creator_module, placeholders
from image_resize.core.config import Settings
from image_resize.core.creator import ImageCreator
from image_resize.core.errors import ConfigurationError
from image_resize.core.placeholders import BLANK_IMAGE
from image_resize.core.resize_metrics import ResizeMetrics

from conftest import save_image, save_multi_picture


def open_result(result):
    return Image.open(BytesIO(result.content))


@pytest.fixture
def metrics():
    return ResizeMetrics()


@pytest.fixture
def creator(settings, metrics):
    return ImageCreator(settings, metrics=metrics)


@pytest.fixture
def photo(webroot):
    return save_image(webroot / "img" / "photo.jpg", (400, 300), "blue")


@pytest.fixture
def logo(webroot):
    return save_image(webroot / "img" / "logo.png", (100, 200), "red")


class TestBlank:
    @pytest.mark.parametrize(
        "path",
        ["b.gif", "nonsense", "7-7-crop/img/photo.jpg", "200-200-zoom/img/photo.jpg", "200-200-crop/../x.jpg"],
    )
    def test_blank_image(self, creator, photo, path):
        result = creator.create(path)
        assert result.content == BLANK_IMAGE
        assert result.media_type == "image/gif"
        assert result.outcome == "blank"

    def test_unreadable_source(self, creator, webroot):
        (webroot / "img").mkdir()
        (webroot / "img" / "broken.jpg").write_bytes(b"not an image")
        assert creator.create("100-100-crop/img/broken.jpg").content == BLANK_IMAGE

    def test_disallowed_source_type(self, creator, webroot):
        save_image(webroot / "img" / "pic.jpg", (50, 50), fmt="BMP")
        assert creator.create("100-100-crop/img/pic.jpg").content == BLANK_IMAGE

    def test_unwritable_cache(self, creator, webroot, photo):
        (webroot / "resized").write_text("in the way")
        assert creator.create("200-200-crop/img/photo.jpg").content == BLANK_IMAGE

    def test_unexpected_failure_returns_blank(self, creator, metrics, photo, monkeypatch):
        def explode(*args, **kwargs):
            raise MemoryError("canvas too large")

        monkeypatch.setattr(creator.codec, "resample", explode)
        result = creator.create("300-8-fitw/img/photo.jpg")
        assert result.content == BLANK_IMAGE
        assert metrics.snapshot()["blank"] == 1

    def test_cache_entry_that_never_appears(self, creator, photo, monkeypatch):
        monkeypatch.setattr(creator_module.os, "replace", lambda src, dst: None)
        assert creator.create("200-200-crop/img/photo.jpg").content == BLANK_IMAGE

    def test_missing_placeholder_asset(self, creator, tmp_path, monkeypatch):
        empty = tmp_path / "no-assets"
        empty.mkdir()
        monkeypatch.setattr(placeholders, "ASSETS_DIR", empty)
        assert creator.create("100-100-crop/img/missing.jpg").content == BLANK_IMAGE


class TestResize:
    def test_crop_writes_cache_entry(self, creator, settings, photo):
        result = creator.create("200-200-crop/img/photo.jpg")
        assert result.media_type == "image/jpeg"
        assert result.outcome == "resized"
        cached = settings.WEBROOT / "resized" / "200-200-crop" / "img" / "photo.jpg"
        assert result.path == cached
        assert cached.read_bytes() == result.content
        assert open_result(result).size == (200, 200)

    def test_second_request_is_served_from_cache(self, creator, photo):
        first = creator.create("200-200-crop/img/photo.jpg")
        photo.unlink()
        second = creator.create("200-200-crop/img/photo.jpg")
        assert second.outcome == "cached"
        assert second.content == first.content

    def test_output_is_deterministic(self, creator, photo):
        first = creator.create("150-90-crop-q70-u/img/photo.jpg")
        first.path.unlink()
        second = creator.create("150-90-crop-q70-u/img/photo.jpg")
        assert second.outcome == "resized"
        assert second.content == first.content

    def test_fit_width(self, creator, photo):
        assert open_result(creator.create("200-200-fitw/img/photo.jpg")).size == (200, 150)

    def test_place_center_png_is_transparent_around(self, creator, logo):
        im = open_result(creator.create("200-200-place/img/logo.png"))
        assert im.size == (200, 200)
        im = im.convert("RGBA")
        assert im.getpixel((0, 0))[3] == 0
        assert im.getpixel((100, 100)) == (255, 0, 0, 255)

    def test_place_center_jpeg_uses_background(self, creator, webroot):
        save_image(webroot / "img" / "tall.jpg", (100, 200), "white")
        im = open_result(creator.create("200-200-place-000/img/tall.jpg")).convert("RGB")
        r, g, b = im.getpixel((5, 100))
        assert max(r, g, b) < 16

    def test_grayscale(self, creator, logo):
        im = open_result(creator.create("50-50-crop-g/img/logo.png")).convert("RGB")
        r, g, b = im.getpixel((25, 25))
        assert r == g == b

    def test_exif_rotation_swaps_axes(self, creator, webroot):
        save_image(webroot / "img" / "turned.jpg", (300, 100), orientation=6)
        assert open_result(creator.create("50-50-fitw/img/turned.jpg")).size == (50, 150)
        assert open_result(creator.create("50-50-fitw-r/img/turned.jpg")).size == (50, 17)

    def test_multi_picture_jpeg(self, creator, webroot):
        save_multi_picture(webroot / "img" / "camera.jpg")
        result = creator.create("200-200-crop/img/camera.jpg")
        assert result.outcome == "resized"
        assert result.media_type == "image/jpeg"
        assert open_result(result).size == (200, 200)


class TestCopy:
    def test_identical_size_is_copied(self, creator, webroot, logo):
        result = creator.create("100-200-crop/img/logo.png")
        assert result.outcome == "copied"
        assert result.content == logo.read_bytes()

    def test_skip_small(self, creator, logo):
        result = creator.create("800-800-fit-t/img/logo.png")
        assert result.outcome == "copied"
        assert result.content == logo.read_bytes()

    def test_disable_copy(self, creator, logo):
        result = creator.create("100-200-crop-c/img/logo.png")
        assert result.outcome == "resized"
        assert result.content != logo.read_bytes()


class TestForcedFormat:
    def test_jpeg_forcing_recovers_original(self, creator, settings, logo):
        result = creator.create("50-50-crop-j/img/logo.png.jpg")
        assert result.media_type == "image/jpeg"
        assert result.path == settings.WEBROOT / "resized" / "50-50-crop-j" / "img" / "logo.png.jpg"
        assert open_result(result).format == "JPEG"

    @pytest.mark.skipif(not features.check("webp"), reason="Pillow built without WebP")
    def test_webp_output(self, creator, logo):
        result = creator.create("50-50-crop-w/img/logo.png.webp")
        assert result.media_type == "image/webp"
        assert open_result(result).format == "WEBP"


class TestPlaceholder:
    def test_generic_placeholder(self, creator, settings):
        result = creator.create("100-100-crop/img/missing.jpg")
        assert result.outcome == "placeholder"
        assert result.media_type == "image/png"
        assert result.path == settings.WEBROOT / "resized" / "100-100-crop" / "no-image.png"
        assert open_result(result).size == (100, 100)

    def test_silhouette_placeholder(self, creator, settings):
        result = creator.create("100-100-crop-s/img/missing.jpg")
        assert result.path == settings.WEBROOT / "resized" / "100-100-crop-s" / "no-image-person.png"

    def test_placeholder_cache_hit(self, creator):
        creator.create("100-100-crop/img/missing.jpg")
        assert creator.create("100-100-crop/img/other-missing.jpg").outcome == "cached"

    def test_custom_placeholder(self, make_settings, tmp_path):
        custom = save_image(tmp_path / "brand.png", (60, 60), "green")
        settings = make_settings(DEFAULT_IMAGE_PATH=custom)
        result = ImageCreator(settings).create("30-30-crop/img/missing.jpg")
        assert result.path == settings.WEBROOT / "resized" / "30-30-crop" / "custom-brand.png"

    def test_missing_custom_placeholder_uses_builtin(self, make_settings, tmp_path):
        settings = make_settings(DEFAULT_IMAGE_PATH=tmp_path / "gone.png")
        result = ImageCreator(settings).create("30-30-crop/img/missing.jpg")
        assert result.path.name == "no-image.png"


def test_metrics_count_outcomes(creator, metrics, photo):
    creator.create("b.gif")
    creator.create("200-200-crop/img/photo.jpg")
    creator.create("200-200-crop/img/photo.jpg")
    counts = metrics.snapshot()
    assert counts["blank"] == 1
    assert counts["resized"] == 1
    assert counts["cached"] == 1
    assert counts["total"] == 3


class TestConfiguration:
    @pytest.mark.parametrize("base_url", ["site", "http://example.com", "/site?x=1"])
    def test_bad_base_url_fails_at_startup(self, make_settings, base_url):
        with pytest.raises(ConfigurationError):
            ImageCreator(make_settings(BASE_URL=base_url))

    def test_invalid_ranges_are_rejected(self, webroot):
        with pytest.raises(ValueError):
            Settings(WEBROOT=webroot, MIN_SIZE=100, MAX_SIZE=10)
        with pytest.raises(ValueError):
            Settings(WEBROOT=webroot, RESAMPLE_MODE="SMOOTH")
