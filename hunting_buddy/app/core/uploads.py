import base64
import logging
from dataclasses import dataclass

import cloudinary
import cloudinary.uploader
from starlette.concurrency import run_in_threadpool

from hunting_buddy.app.core.config import Settings

log = logging.getLogger(__name__)

MAX_AVATAR_BYTES = 500_000


@dataclass(frozen=True)
class UploadedImage:
    url: str
    public_id: str


def configure_cloudinary(settings: Settings) -> None:
    """Configure the image-upload provider client.

    Args:
        settings (Settings): The application settings holding the Cloudinary credentials.

    Notes:
        1. Called once at startup, before the application is assembled.
        2. Missing credentials are logged; uploads will fail until they are provided.
        3. No network access in this function.

    """
    if not (settings.cloud_name and settings.cloud_api_key and settings.cloud_api_secret):
        _msg = "Cloudinary credentials are incomplete; avatar uploads are disabled"
        log.warning(_msg)

    cloudinary.config(
        cloud_name=settings.cloud_name,
        api_key=settings.cloud_api_key,
        api_secret=settings.cloud_api_secret,
        secure=True,
    )
    _msg = "Cloudinary configured"
    log.debug(_msg)


def to_data_uri(content: bytes, content_type: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


async def upload_image(content: bytes, content_type: str) -> UploadedImage:
    """Upload an image and return its public URL and identifier.

    Args:
        content (bytes): The raw image bytes.
        content_type (str): The image MIME type, e.g. "image/png".

    Returns:
        UploadedImage: The secure URL and public id assigned by the provider.

    Notes:
        1. The image is sent as a base64 data URI.
        2. The blocking SDK call runs in the threadpool so other requests keep progressing.
        3. Network access: uploads to Cloudinary.

    """
    _msg = f"Uploading image ({len(content)} bytes, {content_type})"
    log.debug(_msg)
    result = await run_in_threadpool(
        cloudinary.uploader.upload,
        to_data_uri(content, content_type),
    )
    return UploadedImage(url=result["secure_url"], public_id=result["public_id"])


async def destroy_image(public_id: str) -> None:
    """Delete a previously uploaded image."""
    _msg = f"Destroying image {public_id}"
    log.debug(_msg)
    await run_in_threadpool(cloudinary.uploader.destroy, public_id)
