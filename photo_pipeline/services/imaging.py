import io

from loguru import logger
from PIL import Image, UnidentifiedImageError

from photo_pipeline.models.image import ImageMetadata
from photo_pipeline.services.errors import DecodeError, ThumbnailError

THUMBNAIL_FORMAT = "JPEG"
THUMBNAIL_CONTENT_TYPE = "image/jpeg"

_DECODE_ERRORS = (UnidentifiedImageError, OSError, EOFError, ValueError, Image.DecompressionBombError)


def read_image_metadata(image_bytes: bytes) -> ImageMetadata:
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.verify()
            width, height = img.size
            image_format = img.format
        # verify() leaves the file unusable and skips JPEG pixel data; a full
        # decode catches truncated uploads here rather than at thumbnailing.
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.load()
    except _DECODE_ERRORS as exc:
        logger.error("Image decode failed size_bytes={} error={}", len(image_bytes), str(exc))
        raise DecodeError(f"Could not decode image: {exc}") from exc

    return ImageMetadata(
        width=width,
        height=height,
        format=(image_format or "unknown").lower(),
        byte_size=len(image_bytes),
        mime_type=Image.MIME.get(image_format) if image_format else None,
    )


def thumbnail_size(width: int, height: int, target_width: int) -> tuple[int, int]:
    """Fit to ``target_width`` keeping the aspect ratio; never enlarge."""
    if width <= target_width:
        return width, height
    return target_width, max(1, round(height * target_width / width))


def generate_thumbnail(image_bytes: bytes, target_width: int, quality: int = 85) -> bytes:
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            size = thumbnail_size(img.width, img.height, target_width)
            thumb = img.resize(size, Image.Resampling.LANCZOS) if size != img.size else img.copy()
        if thumb.mode not in ("RGB", "L"):
            thumb = thumb.convert("RGB")
        out = io.BytesIO()
        thumb.save(out, format=THUMBNAIL_FORMAT, quality=quality, progressive=True, optimize=True)
    except _DECODE_ERRORS as exc:
        logger.error("Thumbnail generation failed target_width={} error={}", target_width, str(exc))
        raise ThumbnailError(f"Could not generate thumbnail: {exc}") from exc

    logger.debug("Thumbnail generated size={}x{} size_bytes={}", size[0], size[1], out.tell())
    return out.getvalue()
