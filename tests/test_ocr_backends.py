import numpy as np
import pytest
import pytesseract
from PIL import Image

from docfields.core.config import OCRConfig
from docfields.core.errors import OCRError
from docfields.core.extractors import FieldExtractor
from docfields.core.models import OCRResult, RegionSpec
from docfields.core.ocr_backends import (
    EasyOCRBackend, TesseractBackend, _tesseract_config, make_backend,
)

from conftest import FakeOCR


@pytest.fixture
def image():
    return Image.new("RGB", (120, 40), "white")


# -- tesseract -----------------------------------------------------------------

def test_tesseract_config_flags():
    assert _tesseract_config({}) == "--psm 3 -c preserve_interword_spaces=1"
    assert _tesseract_config({"psm": 6, "whitelist": "0123 456"}) == (
        "--psm 6 -c preserve_interword_spaces=1 -c tessedit_char_whitelist=0123456")


def test_tesseract_words_and_confidence(monkeypatch, image):
    seen = {}

    def fake_string(img, lang=None, config=None):
        seen["string"] = (lang, config)
        return "Invoice: 42\n"

    def fake_data(img, lang=None, config=None, output_type=None):
        seen["data"] = (lang, config)
        return {
            "text": ["", "Invoice:", "  ", "42"],
            "conf": ["-1", "96.5", "-1", -1],
            "left": [0, 10, 0, 70],
            "top": [0, 5, 0, 5],
            "width": [120, 50, 0, 20],
            "height": [40, 12, 0, 12],
        }

    monkeypatch.setattr(pytesseract, "image_to_string", fake_string)
    monkeypatch.setattr(pytesseract, "image_to_data", fake_data)
    res = TesseractBackend().recognize(image, "deu", {"psm": 6, "whitelist": "0-9"})

    expected = ("deu", "--psm 6 -c preserve_interword_spaces=1 -c tessedit_char_whitelist=0-9")
    assert seen == {"string": expected, "data": expected}
    assert res.text == "Invoice: 42"
    assert [w.text for w in res.words] == ["Invoice:", "42"]
    assert res.words[0].confidence == pytest.approx(0.965)
    assert res.words[1].confidence == 0.0
    b = res.words[0].bbox
    assert (b.x0, b.y0, b.x1, b.y1) == (10, 5, 60, 17)


def test_tesseract_failure_is_wrapped(monkeypatch, image):
    def boom(*a, **kw):
        raise pytesseract.TesseractError(1, "no language data")

    monkeypatch.setattr(pytesseract, "image_to_string", boom)
    with pytest.raises(OCRError):
        TesseractBackend().recognize(image)


# -- easyocr -------------------------------------------------------------------

class FakeReader:
    def __init__(self, result=None, error=None):
        self.result = result or []
        self.error = error
        self.kwargs = None

    def readtext(self, arr, **kwargs):
        assert isinstance(arr, np.ndarray)
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return self.result


def test_easyocr_splits_phrases_into_words(image):
    box = [[10, 5], [110, 5], [110, 25], [10, 25]]
    reader = FakeReader([(box, "Invoice No", 0.9), ([[0, 30], [20, 30], [20, 38], [0, 38]], "7", 0.5)])
    be = EasyOCRBackend()
    be._readers["de"] = reader
    res = be.recognize(image, "deu", {"psm": 3, "whitelist": "0123456789"})

    assert reader.kwargs["allowlist"] == "0123456789"
    assert res.text == "Invoice No\n7"
    assert [w.text for w in res.words] == ["Invoice", "No", "7"]
    first, second = res.words[0].bbox, res.words[1].bbox
    assert (first.x0, first.x1, second.x0, second.x1) == (10, 60, 60, 110)
    assert first.y0 == 5 and first.y1 == 25
    assert res.words[2].confidence == 0.5


def test_easyocr_failure_is_wrapped(image):
    be = EasyOCRBackend()
    be._readers["en"] = FakeReader(error=RuntimeError("model missing"))
    with pytest.raises(OCRError):
        be.recognize(image)


def test_make_backend():
    assert isinstance(make_backend(OCRConfig(backend="Tesseract")), TesseractBackend)
    assert isinstance(make_backend(OCRConfig(backend="easyocr")), EasyOCRBackend)
    with pytest.raises(ValueError):
        make_backend(OCRConfig(backend="paddle"))


# -- engine arguments ------------------------------------------------------------

def test_language_and_options_reach_the_engine(make_page):
    cfg = OCRConfig(reference_size=(100, 140), upscale=2.0, lang="deu", psm=6, whitelist="0123456789")
    ocr = FakeOCR(pages=[OCRResult(text="Nr 5")], crops={(50, 20): "5"})
    fx = FieldExtractor(ocr, cfg)
    fx.extract_regex([make_page()], r"Nr (\d)")
    fx.extract_region([make_page()], RegionSpec(x=0, y=0, width=50, height=20))
    expected = ("deu", {"psm": 6, "whitelist": "0123456789"})
    assert ocr.engine_args == [expected, expected]
    assert cfg.ocr_options() == expected[1]
