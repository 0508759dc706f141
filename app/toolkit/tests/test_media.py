"""Tests for MediaStore."""

import base64
import io
from unittest import mock

import pytest
from django.core.files.storage import default_storage
from PIL import Image

from core.exceptions import UpstreamServiceError
from toolkit.services.media import MediaStore


def encoded_image(image_format="PNG"):
    buffer = io.BytesIO()
    Image.new("RGB", (3, 3), color="green").save(buffer, format=image_format)
    return base64.b64encode(buffer.getvalue()).decode()


class TestUpload:
    def test_data_url_is_stored(self):
        url = MediaStore.upload(f"data:image/png;base64,{encoded_image()}")

        assert url.endswith(".png")
        name = url.split("/media/", 1)[-1]
        assert default_storage.exists(name)

    def test_bare_base64_is_accepted(self):
        url = MediaStore.upload(encoded_image("JPEG"))

        assert url.endswith(".jpg")

    def test_each_upload_gets_its_own_name(self):
        payload = encoded_image()

        assert MediaStore.upload(payload) != MediaStore.upload(payload)

    @pytest.mark.parametrize(
        "payload",
        [
            "",
            "   ",
            "data:image/png;base64,",
            base64.b64encode(b"plain text, not an image").decode(),
        ],
    )
    def test_rejected_payloads(self, payload):
        with pytest.raises(UpstreamServiceError) as exc_info:
            MediaStore.upload(payload)

        assert exc_info.value.error_code == "UPLOAD_FAILED"

    def test_storage_failure_is_upstream_error(self):
        with mock.patch("toolkit.services.media.default_storage") as storage:
            storage.save.side_effect = OSError("disk full")
            with pytest.raises(UpstreamServiceError) as exc_info:
                MediaStore.upload(encoded_image())

        assert exc_info.value.details == {"reason": "storage"}
