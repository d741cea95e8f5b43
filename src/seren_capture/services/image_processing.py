"""Image normalization before encryption."""

import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from seren_capture.domain.errors import StorageError, ValidationError

MAX_DIMENSIONS = (1920, 1080)

_logger = logging.getLogger(__name__)


@dataclass
class ImageProcessor:
    """Downscale and re-encode raster photos as JPEG."""

    quality: int = 80
    max_dimensions: tuple[int, int] = MAX_DIMENSIONS

    def process(self, image_bytes: bytes) -> bytes:
        """Return JPEG bytes fitting within ``max_dimensions``."""
        try:
            with Image.open(io.BytesIO(image_bytes)) as source:
                source.load()
                image = ImageOps.exif_transpose(source)
            width, height = image.size
            max_width, max_height = self.max_dimensions
            if width > max_width or height > max_height:
                image.thumbnail(self.max_dimensions, Image.Resampling.LANCZOS)
            if image.mode != "RGB":
                image = image.convert("RGB")
        except Image.DecompressionBombError as exc:
            raise ValidationError("Image dimensions are too large") from exc
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
            raise ValidationError("Image could not be decoded") from exc

        output = io.BytesIO()
        try:
            image.save(
                output,
                format="JPEG",
                quality=self.quality,
                optimize=True,
                progressive=True,
            )
        except (OSError, ValueError) as exc:
            _logger.exception("JPEG encoding failed")
            raise StorageError("Failed to process image") from exc
        return output.getvalue()
