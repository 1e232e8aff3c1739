"""Utility functions for groups: id codes and group images."""

from __future__ import annotations

import io
import secrets
import time
from typing import TYPE_CHECKING

from PIL import Image

from cicero.core.constants import (
    GROUP_ID_ALPHABET,
    GROUP_ID_LENGTH,
    GROUP_IMAGE_CONTENT_TYPE,
    GROUP_IMAGE_MAX_SIZE,
    GROUP_IMAGE_PATH,
    GROUP_IMAGE_QUALITY,
)
from cicero.errors import ValidationError

if TYPE_CHECKING:
    from google.cloud.storage import Bucket


def generate_group_id() -> str:
    """Return a short, shareable group code such as ``BC1Z3K``."""
    return "".join(secrets.choice(GROUP_ID_ALPHABET) for _ in range(GROUP_ID_LENGTH))


def group_image_path(group_id: str) -> str:
    """Return the storage path of a group's image."""
    return GROUP_IMAGE_PATH.format(group_id=group_id)


def prepare_group_image(image_data: bytes) -> bytes:
    """Shrink an image to fit the group image bounds and re-encode it as JPEG."""
    try:
        with Image.open(io.BytesIO(image_data)) as img:
            img = img.convert("RGB")
            img.thumbnail(GROUP_IMAGE_MAX_SIZE)
            out = io.BytesIO()
            img.save(out, format="JPEG", quality=GROUP_IMAGE_QUALITY)
    except OSError as e:
        raise ValidationError("That file doesn't look like an image.") from e
    return out.getvalue()


def upload_group_image(bucket: Bucket, group_id: str, jpeg_data: bytes) -> str:
    """Upload a prepared group image and return a cache-busted public URL."""
    blob = bucket.blob(group_image_path(group_id))
    blob.upload_from_string(jpeg_data, content_type=GROUP_IMAGE_CONTENT_TYPE)
    blob.make_public()
    # The path never changes, so clients need a new URL to refetch the image.
    return f"{blob.public_url}?v={int(time.time())}"


def delete_group_image(bucket: Bucket, group_id: str) -> None:
    """Delete a group's image blob."""
    bucket.blob(group_image_path(group_id)).delete()
