from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional
import numpy as np
from PIL import Image

from docfields.core.config import OCRConfig
from docfields.core.errors import OCRError
from docfields.core.models import BoundingBox, OCRResult, OCRWord

logger = logging.getLogger(__name__)

# Tesseract is the default engine; EasyOCR is picked up if installed.

def available_backends() -> Dict[str, bool]:
    out = {"tesseract": False, "easyocr": False}
    try:
        import pytesseract
        pytesseract.get_tesseract_version()
        out["tesseract"] = True
    except Exception:
        pass
    try:
        import easyocr  # noqa
        out["easyocr"] = True
    except ImportError:
        pass
    return out


class OCRBackend:
    """recognize(image, lang, options) -> OCRResult. options: {'psm': int, 'whitelist': str|None}"""
    name = "base"

    def recognize(self, image: Image.Image, lang: str = "eng", options: Optional[Dict[str, Any]] = None) -> OCRResult:
        raise NotImplementedError


def _tesseract_config(options: Dict[str, Any]) -> str:
    parts = [f"--psm {int(options.get('psm', 3))}", "-c preserve_interword_spaces=1"]
    wl = options.get("whitelist")
    if wl:
        # tesseract config values cannot carry raw spaces
        parts.append("-c tessedit_char_whitelist=" + wl.replace(" ", ""))
    return " ".join(parts)


class TesseractBackend(OCRBackend):
    name = "tesseract"

    def recognize(self, image, lang="eng", options=None):
        import pytesseract
        from pytesseract import Output
        cfg = _tesseract_config(options or {})
        try:
            text = pytesseract.image_to_string(image, lang=lang, config=cfg)
            data = pytesseract.image_to_data(image, lang=lang, config=cfg, output_type=Output.DICT)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as e:
            raise OCRError(f"tesseract failed: {e}") from e
        words: List[OCRWord] = []
        for i, raw in enumerate(data.get("text", [])):
            txt = (raw or "").strip()
            if not txt: continue
            conf = float(data["conf"][i])
            conf = 0.0 if conf < 0 else min(conf / 100.0, 1.0)
            x, y = float(data["left"][i]), float(data["top"][i])
            words.append(OCRWord(text=txt, confidence=conf, bbox=BoundingBox(
                x0=x, y0=y, x1=x + float(data["width"][i]), y1=y + float(data["height"][i]))))
        return OCRResult(text=text.strip(), words=words)


# tesseract codes -> easyocr codes for the common cases
_EASYOCR_LANGS = {"eng": "en", "deu": "de", "fra": "fr", "spa": "es", "ita": "it", "por": "pt", "nld": "nl"}


class EasyOCRBackend(OCRBackend):
    name = "easyocr"

    def __init__(self):
        self._readers: Dict[str, Any] = {}

    def _reader(self, lang: str):
        code = _EASYOCR_LANGS.get(lang, lang)
        if code not in self._readers:
            import easyocr
            self._readers[code] = easyocr.Reader([code], gpu=False)  # CPU only
        return self._readers[code]

    def recognize(self, image, lang="eng", options=None):
        options = options or {}
        arr = np.array(image.convert("RGB"))
        try:
            res = self._reader(lang).readtext(arr, detail=1, paragraph=False,
                                              allowlist=options.get("whitelist"))
        except Exception as e:
            raise OCRError(f"easyocr failed: {e}") from e
        words: List[OCRWord] = []
        for box, txt, conf in res:
            xs = [p[0] for p in box]; ys = [p[1] for p in box]
            bb = BoundingBox(x0=float(min(xs)), y0=float(min(ys)), x1=float(max(xs)), y1=float(max(ys)))
            # easyocr returns phrases; split them so the word index sees single tokens
            toks = str(txt).split()
            step = bb.width / max(1, len(toks))
            for k, tok in enumerate(toks):
                words.append(OCRWord(text=tok, confidence=float(conf), bbox=BoundingBox(
                    x0=bb.x0 + k * step, y0=bb.y0, x1=bb.x0 + (k + 1) * step, y1=bb.y1)))
        text = "\n".join(str(t) for _, t, _ in res)
        return OCRResult(text=text.strip(), words=words)


def make_backend(config: OCRConfig) -> OCRBackend:
    name = (config.backend or "").lower()
    if name == "tesseract":
        return TesseractBackend()
    if name == "easyocr":
        return EasyOCRBackend()
    raise ValueError(f"unknown OCR backend: {config.backend!r}")
