import base64
import pytest
import requests
from unittest.mock import MagicMock

from mood_diary.adapters.clients.image_loader import MAX_IMAGE_BYTES, ImageLoadError, load_image


class TestLocalFiles:

    def test_png_file(self, tmp_path):
        path = tmp_path / "sunset.png"
        path.write_bytes(b"\x89PNG\r\n\x1a\n1234")

        uri = load_image(str(path))

        assert uri.startswith("data:image/png;base64,")
        assert base64.b64decode(uri.split(",", 1)[1]) == b"\x89PNG\r\n\x1a\n1234"

    def test_rejects_non_images(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")

        with pytest.raises(ImageLoadError, match="Invalid file type"):
            load_image(str(path))

    def test_rejects_large_files(self, tmp_path):
        path = tmp_path / "huge.jpg"
        path.write_bytes(b"\0" * (MAX_IMAGE_BYTES + 1))

        with pytest.raises(ImageLoadError, match="File too large"):
            load_image(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImageLoadError):
            load_image(str(tmp_path / "nope.png"))


class TestUrls:

    def test_download(self, mock_requests):
        response = MagicMock()
        response.content = b"jpegdata"
        response.headers = {"Content-Type": "image/jpeg; charset=binary"}
        mock_requests.return_value = response

        uri = load_image("https://example.com/photo")

        assert uri == "data:image/jpeg;base64," + base64.b64encode(b"jpegdata").decode("ascii")
        mock_requests.assert_called_once()
        response.raise_for_status.assert_called_once()

    def test_content_type_falls_back_to_extension(self, mock_requests):
        response = MagicMock()
        response.content = b"gifdata"
        response.headers = {}
        mock_requests.return_value = response

        assert load_image("http://example.com/cat.gif").startswith("data:image/gif;base64,")

    def test_html_page_is_rejected(self, mock_requests):
        response = MagicMock()
        response.content = b"<html></html>"
        response.headers = {"Content-Type": "text/html"}
        mock_requests.return_value = response

        with pytest.raises(ImageLoadError):
            load_image("https://example.com/")

    def test_network_error(self, mock_requests):
        mock_requests.side_effect = requests.ConnectionError("unreachable")

        with pytest.raises(ImageLoadError, match="Could not download image"):
            load_image("https://example.com/photo.png")
