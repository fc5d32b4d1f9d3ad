"""
Image Preprocessing Utilities for ShelfScan

Handles all image preprocessing operations including:
- Decoding uploads and EXIF orientation correction
- Contrast normalization (auto-levels)
- Unsharp-mask sharpening for spine text
- JPEG encoding and data URIs for the vision service
"""

import base64
import io
from dataclasses import dataclass, field
from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import Image, ImageOps
from loguru import logger

from shelfscan.exceptions import ImageDecodeError


@dataclass
class PreprocessConfig:
    """Configuration for image preprocessing."""

    # Unsharp mask
    sharpen_sigma: float = 1.2
    sharpen_amount: float = 1.0

    # Output encoding
    jpeg_quality: int = 90

    # Upload limits
    max_upload_bytes: int = 20 * 1024 * 1024
    # Content types accepted before decoding; "type/*" matches a whole family
    supported_formats: Tuple[str, ...] = field(default_factory=lambda: ("image/*",))


class ImagePreprocessor:
    """
    Deterministic enhancement pipeline applied to every Region before it
    is sent to the vision service.
    """

    def __init__(self, config: Optional[PreprocessConfig] = None):
        self.config = config or PreprocessConfig()

    def load_image(self, image_source) -> np.ndarray:
        """
        Load image from various sources.

        Args:
            image_source: File path, bytes, PIL Image, or numpy array

        Returns:
            BGR numpy array (OpenCV format)
        """
        if isinstance(image_source, str):
            image = cv2.imread(image_source)
            if image is None:
                raise ImageDecodeError(f"Could not load image from {image_source}")
            return image

        elif isinstance(image_source, (bytes, bytearray)):
            # Go through PIL so EXIF orientation from phone cameras is honoured
            try:
                pil_image = Image.open(io.BytesIO(image_source))
                pil_image = ImageOps.exif_transpose(pil_image)
                pil_image = pil_image.convert("RGB")
            except Exception as e:
                raise ImageDecodeError(str(e)) from e
            return cv2.cvtColor(np.array(pil_image), cv2.COLOR_RGB2BGR)

        elif isinstance(image_source, Image.Image):
            return cv2.cvtColor(np.array(image_source.convert("RGB")), cv2.COLOR_RGB2BGR)

        elif isinstance(image_source, np.ndarray):
            if len(image_source.shape) == 2:
                return cv2.cvtColor(image_source, cv2.COLOR_GRAY2BGR)
            return image_source

        else:
            raise TypeError(f"Unsupported image source type: {type(image_source)}")

    def normalize_contrast(self, image: np.ndarray) -> np.ndarray:
        """Stretch each channel to the full 0..255 range (auto-levels)."""
        channels = cv2.split(image)
        stretched = []
        for channel in channels:
            low, high = int(channel.min()), int(channel.max())
            if high <= low:
                stretched.append(channel)
                continue
            stretched.append(
                cv2.normalize(channel, None, alpha=0, beta=255, norm_type=cv2.NORM_MINMAX)
            )
        return cv2.merge(stretched)

    def sharpen(self, image: np.ndarray) -> np.ndarray:
        """Unsharp mask: original + amount * (original - blurred)."""
        blurred = cv2.GaussianBlur(image, (0, 0), self.config.sharpen_sigma)
        amount = self.config.sharpen_amount
        return cv2.addWeighted(image, 1.0 + amount, blurred, -amount, 0)

    def enhance(self, image: np.ndarray) -> np.ndarray:
        """Contrast-normalize then sharpen."""
        return self.sharpen(self.normalize_contrast(image))

    def encode_jpeg(self, image: np.ndarray) -> bytes:
        ok, buffer = cv2.imencode(
            ".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), self.config.jpeg_quality]
        )
        if not ok:
            raise ValueError("JPEG encoding failed")
        return buffer.tobytes()

    def is_supported_format(self, content_type: str) -> bool:
        content_type = content_type.split(";", 1)[0].strip().lower()
        for pattern in self.config.supported_formats:
            pattern = pattern.strip().lower()
            if pattern.endswith("/*"):
                if content_type.startswith(pattern[:-1]):
                    return True
            elif content_type == pattern:
                return True
        return False

    def validate_upload(self, content_type: Optional[str], size: int) -> Tuple[bool, str]:
        """
        Check an upload before decoding it.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if content_type and not self.is_supported_format(content_type):
            return False, (
                f"Unsupported image format: {content_type}. "
                f"Supported: {', '.join(self.config.supported_formats)}"
            )
        if size > self.config.max_upload_bytes:
            return False, f"Image exceeds {self.config.max_upload_bytes // (1024 * 1024)} MB"
        return True, ""


def to_data_uri(data: bytes, mime: str = "image/jpeg") -> str:
    """Encode raw bytes as a base64 data URI."""
    encoded = base64.b64encode(data).decode("ascii")
    logger.debug(f"Encoded {len(data) // 1024}KB {mime} payload")
    return f"data:{mime};base64,{encoded}"
