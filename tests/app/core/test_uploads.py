from unittest.mock import patch

import pytest

from hunting_buddy.app.core.uploads import (
    UploadedImage,
    configure_cloudinary,
    destroy_image,
    to_data_uri,
    upload_image,
)
from tests.conftest import make_settings


def test_configure_cloudinary_passes_credentials():
    settings = make_settings(CLOUD_NAME="demo", CLOUD_API_KEY="key", CLOUD_API_SECRET="secret")

    with patch("hunting_buddy.app.core.uploads.cloudinary.config") as mock_config:
        configure_cloudinary(settings)

    mock_config.assert_called_once_with(
        cloud_name="demo",
        api_key="key",
        api_secret="secret",
        secure=True,
    )


def test_configure_cloudinary_warns_on_missing_credentials(caplog):
    with patch("hunting_buddy.app.core.uploads.cloudinary.config"):
        with caplog.at_level("WARNING", logger="hunting_buddy.app.core.uploads"):
            configure_cloudinary(make_settings())

    assert "credentials are incomplete" in caplog.text


def test_to_data_uri():
    assert to_data_uri(b"abc", "image/png") == "data:image/png;base64,YWJj"


@pytest.mark.asyncio
async def test_upload_image():
    with patch(
        "hunting_buddy.app.core.uploads.cloudinary.uploader.upload",
        return_value={
            "secure_url": "https://res.cloudinary.com/demo/avatar.png",
            "public_id": "avatar123",
            "url": "http://res.cloudinary.com/demo/avatar.png",
        },
    ) as mock_upload:
        result = await upload_image(b"abc", "image/png")

    assert result == UploadedImage(
        url="https://res.cloudinary.com/demo/avatar.png",
        public_id="avatar123",
    )
    mock_upload.assert_called_once_with("data:image/png;base64,YWJj")


@pytest.mark.asyncio
async def test_upload_image_propagates_provider_errors():
    with patch(
        "hunting_buddy.app.core.uploads.cloudinary.uploader.upload",
        side_effect=RuntimeError("provider down"),
    ):
        with pytest.raises(RuntimeError, match="provider down"):
            await upload_image(b"abc", "image/png")


@pytest.mark.asyncio
async def test_destroy_image():
    with patch("hunting_buddy.app.core.uploads.cloudinary.uploader.destroy") as mock_destroy:
        await destroy_image("avatar123")

    mock_destroy.assert_called_once_with("avatar123")
