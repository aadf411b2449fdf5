from __future__ import annotations
import logging
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Union
from PIL import Image

from docfields.core.config import OCRConfig
from docfields.core.errors import RasterizeError, UnsupportedFileError

try:
    import fitz  # PyMuPDF
except Exception as e:
    raise RuntimeError("PyMuPDF (fitz) is required. pip install pymupdf") from e

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tif", ".tiff"}


def render_pdf(path: Union[str, Path], out_dir: Union[str, Path], config: OCRConfig) -> List[Path]:
    """Render every page at config.dpi to PNG in out_dir, resized to config.page_size when set."""
    out_dir = Path(out_dir)
    paths: List[Path] = []
    try:
        doc = fitz.open(str(path))
    except Exception as e:
        raise RasterizeError(f"cannot open PDF {path}: {e}") from e
    try:
        zoom = config.dpi / 72.0
        for pno in range(len(doc)):
            page = doc.load_page(pno)
            pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
            img = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
            if config.page_size and img.size != tuple(config.page_size):
                img = img.resize(tuple(config.page_size), Image.Resampling.LANCZOS)
            p = out_dir / f"page-{pno + 1:04d}.png"
            img.save(p, format="PNG")
            paths.append(p)
    except RuntimeError as e:
        raise RasterizeError(f"rendering {path} failed: {e}") from e
    finally:
        doc.close()
    logger.info("rendered %d page(s) from %s at %d dpi", len(paths), path, config.dpi)
    return paths


@contextmanager
def rendered_pages(path: Union[str, Path], config: OCRConfig) -> Iterator[List[Path]]:
    """
    Yield the page images of a document. PDFs are rendered into a temporary
    directory that is removed when the block exits, whether it raised or not.
    Image files are yielded as-is (single page).
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in IMAGE_SUFFIXES:
        yield [path]
        return
    if suffix != ".pdf":
        raise UnsupportedFileError(f"unsupported file type: {suffix or path.name}")
    with tempfile.TemporaryDirectory(prefix="docfields-") as tmp:
        yield render_pdf(path, tmp, config)
