"""Image conversion and probing utilities for asset export"""

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Optional, Union

import requests
from PIL import Image

from errors import UnsupportedFormatError

logger = logging.getLogger("Asset_Export")

# Formats the transcoder can encode; "original" never reaches this module
TRANSCODE_FORMATS = ("png", "webp", "jpeg")

FORMAT_MIME_TYPES = {
    "png": "image/png",
    "webp": "image/webp",
    "jpeg": "image/jpeg",
}

EXTENSION_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}

# Modes Pillow can write as PNG without conversion
PNG_MODES = ("1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16")


@dataclass(frozen=True)
class ConvertedImage:
    """Encoded image bytes with the MIME type matching their format"""
    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def mime_type_for_file_name(file_name: str) -> str:
    """Infer MIME type from a file extension"""
    return EXTENSION_MIME_TYPES.get(Path(file_name).suffix.lower(), "application/octet-stream")


def fetch_asset_bytes(asset_url: str, timeout: int = 30) -> bytes:
    """Download asset bytes from a URL"""
    try:
        response = requests.get(asset_url, timeout=timeout)
        response.raise_for_status()
        return response.content
    except requests.RequestException as e:
        logger.error(f"Failed to fetch asset from {asset_url}: {e}")
        raise


def get_image_metadata(image_bytes: bytes) -> Dict[str, Any]:
    """Extract width, height, format from image bytes"""
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            return {
                "width": img.width,
                "height": img.height,
                "format": img.format
            }
    except Exception as e:
        logger.warning(f"Failed to extract image metadata: {e}")
        return {"width": None, "height": None, "format": None}


def image_format_name(data: bytes, mime_type: str) -> Optional[str]:
    """Short image format name ("png", "jpeg", ...) for inline image content.

    Non-image MIME types fall back to the format Pillow decodes from the bytes.
    """
    if mime_type.startswith("image/"):
        return mime_type.split("/", 1)[1]
    decoded = get_image_metadata(data)["format"]
    return decoded.lower() if decoded else None


def _flatten_alpha(img: Image.Image) -> Image.Image:
    """Composite transparent images onto white, for formats without alpha"""
    if img.mode in ("RGBA", "LA", "P"):
        if img.mode == "P":
            img = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)


def convert_image_format(
    source: Union[bytes, str, Path],
    target_format: str,
    quality: int = 90
) -> ConvertedImage:
    """Re-encode an image into png, webp or jpeg.

    Quality applies to webp and jpeg only; png is always written losslessly
    at maximum compression.

    Args:
        source: Encoded image bytes or a path to an image file
        target_format: One of TRANSCODE_FORMATS
        quality: Encoder quality 1-100

    Returns:
        ConvertedImage with encoded bytes and MIME type

    Raises:
        UnsupportedFormatError: If target_format cannot be encoded
        OSError: If the source cannot be read or decoded
    """
    if target_format not in TRANSCODE_FORMATS:
        raise UnsupportedFormatError(f"Unsupported format: {target_format}")

    img_source = BytesIO(source) if isinstance(source, bytes) else source
    buf = BytesIO()

    with Image.open(img_source) as im:
        im.load()
        if target_format == "png":
            if im.mode not in PNG_MODES:
                im = im.convert("RGBA" if _has_alpha(im) else "RGB")
            im.save(buf, format="PNG", optimize=True, compress_level=9)
        elif target_format == "webp":
            if im.mode not in ("RGB", "RGBA"):
                im = im.convert("RGBA" if _has_alpha(im) else "RGB")
            im.save(buf, format="WEBP", quality=quality, method=5)
        else:
            _flatten_alpha(im).save(buf, format="JPEG", quality=quality, optimize=True)

    encoded = buf.getvalue()
    logger.debug(f"Converted image to {target_format} (quality={quality}): {len(encoded)} bytes")
    return ConvertedImage(data=encoded, mime_type=FORMAT_MIME_TYPES[target_format])
