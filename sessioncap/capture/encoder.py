"""JPEG frame encoder built on Pillow."""

import io
import logging

from PIL import Image

from ..errors import EncodeFailureError
from ..models.snapshot import RawFrame
from .base import AbstractFrameEncoder

logger = logging.getLogger(__name__)


class JpegFrameEncoder(AbstractFrameEncoder):
    """Downscale a frame to fit ``max_dimension`` and compress it as JPEG."""

    def encode(self, frame: RawFrame, max_dimension: int, quality: int) -> bytes:
        try:
            image = Image.frombytes(frame.mode, (frame.width, frame.height), frame.data)
            if image.mode != "RGB":
                image = image.convert("RGB")
            # thumbnail keeps the aspect ratio and never upscales
            image.thumbnail((max_dimension, max_dimension), Image.LANCZOS)

            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=quality)
        except (ValueError, OSError) as e:
            raise EncodeFailureError(f"Failed to encode {frame.width}x{frame.height} frame: {e}") from e

        encoded = buffer.getvalue()
        logger.debug(f"Encoded {frame.width}x{frame.height} frame to {image.width}x{image.height} "
                     f"JPEG ({len(encoded)} bytes)")
        return encoded
