from __future__ import annotations
import logging
from pathlib import Path
from typing import Tuple, Union
from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from docfields.core.config import OCRConfig
from docfields.core.errors import ImageTransformError

logger = logging.getLogger(__name__)

PageImage = Union[str, Path, Image.Image]


def load_image(page: PageImage) -> Image.Image:
    """Open a page image (path or PIL image) as RGB. The caller keeps ownership of passed-in images."""
    if isinstance(page, Image.Image):
        return page.convert("RGB")
    try:
        with Image.open(page) as im:
            return im.convert("RGB")
    except (OSError, UnidentifiedImageError) as e:
        raise ImageTransformError(f"cannot read page image {page}: {e}") from e


def preprocess(image: Image.Image, config: OCRConfig) -> Image.Image:
    """
    grayscale -> contrast normalisation -> sharpen -> binarise -> upscale.
    Both axes share one factor, chosen so the page covers upscale * reference_size;
    an A4-shaped page lands exactly on it.
    """
    thr = config.threshold
    ref_w, ref_h = config.reference_size
    try:
        k = max(config.upscale * ref_w / image.width, config.upscale * ref_h / image.height)
        size = (max(1, int(round(image.width * k))), max(1, int(round(image.height * k))))
        gray = ImageOps.grayscale(image)
        gray = ImageOps.autocontrast(gray)
        gray = gray.filter(ImageFilter.SHARPEN)
        bw = gray.point(lambda p: 255 if p >= thr else 0)
        return bw.resize(size, Image.Resampling.NEAREST)  # keeps the page two-tone
    except (OSError, ValueError, ZeroDivisionError) as e:
        raise ImageTransformError(f"preprocessing failed: {e}") from e


def scale_factors(original: Image.Image, processed: Image.Image) -> Tuple[float, float]:
    """(sx, sy) such that original_x = processed_x * sx."""
    return original.width / processed.width, original.height / processed.height


def crop(image: Image.Image, x: int, y: int, width: int, height: int) -> Image.Image:
    # clamp to the page; PIL would otherwise pad with black
    x0, y0 = max(0, int(x)), max(0, int(y))
    x1 = min(image.width, int(x) + int(width))
    y1 = min(image.height, int(y) + int(height))
    if x1 <= x0 or y1 <= y0:
        raise ImageTransformError(
            f"crop ({x},{y},{width},{height}) lies outside the {image.width}x{image.height} page")
    logger.debug("crop %s", (x0, y0, x1, y1))
    return image.crop((x0, y0, x1, y1))
