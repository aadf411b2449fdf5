import pytest
from PIL import Image

from docfields.core.config import OCRConfig
from docfields.core.models import BoundingBox, OCRResult, OCRWord
from docfields.core.ocr_backends import OCRBackend

# small reference size keeps preprocessing cheap: pages are 400x560, processed 200x280
PAGE_SIZE = (400, 560)
PROCESSED_SIZE = (200, 280)


def word(text, x0, y0, x1, y1, conf=0.9):
    return OCRWord(text=text, confidence=conf, bbox=BoundingBox(x0=x0, y0=y0, x1=x1, y1=y1))


class FakeOCR(OCRBackend):
    """
    Scripted engine. Full (preprocessed) pages get `pages` results in call order,
    cycling; anything else is treated as a crop and looked up by its size.
    Exceptions in either script are raised.
    """
    name = "fake"

    def __init__(self, pages=None, crops=None):
        self.pages = list(pages or [])
        self.crops = dict(crops or {})
        self.calls = []
        self.engine_args = []
        self._i = 0

    def recognize(self, image, lang="eng", options=None):
        self.calls.append(image.size)
        self.engine_args.append((lang, options))
        if image.size == PROCESSED_SIZE:
            if not self.pages:
                return OCRResult()
            r = self.pages[self._i % len(self.pages)]
            self._i += 1
        else:
            r = self.crops.get(image.size, "")
            if isinstance(r, str):
                r = OCRResult(text=r)
        if isinstance(r, Exception):
            raise r
        return r

    @property
    def page_calls(self):
        return sum(1 for s in self.calls if s == PROCESSED_SIZE)


@pytest.fixture
def config():
    return OCRConfig(reference_size=(100, 140), upscale=2.0, page_size=PAGE_SIZE, backend="tesseract")


@pytest.fixture
def make_page():
    def _make(color="white"):
        return Image.new("RGB", PAGE_SIZE, color)
    return _make
