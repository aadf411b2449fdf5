from __future__ import annotations
import logging
import re
from typing import List, Optional, Sequence, Tuple
from PIL import Image

from docfields.core.config import OCRConfig
from docfields.core.errors import SchemaError
from docfields.core.models import FieldMode, OCRResult, RegionSpec, SchemaField, TemplateSpec
from docfields.core.ocr_backends import OCRBackend
from docfields.core.preprocess import PageImage, crop, load_image, preprocess, scale_factors
from docfields.core.similarity import fuzzy_find
from docfields.core.word_index import find_position

logger = logging.getLogger(__name__)

# whitespace escapes join words; other classes, groups and quantifiers end a literal run
_TOKEN = re.compile(
    r"(?P<space>\\[sntr][*+?]?)"
    r"|\\[dDwWbBSAZ]"
    r"|\\(?P<esc>.)"
    r"|\[(?:\\.|[^\]])*\]"
    r"|(?P<opt>[?*]|\{0(?:,\d*)?\})"
    r"|\{\d*,?\d*\}"
    r"|\(\?(?:[:=!]|<[=!]|P<\w+>|P=\w+\)|[aiLmsux-]+[:)])"
    r"|[()^$|*+?.]"
    r"|(?P<lit>.)",
    re.S,
)


def literal_target(pattern: str) -> Optional[str]:
    """Longest literal stretch of a regex, e.g. 'Total\\s*Due:\\s*(\\d+)' -> 'Total Due:'."""
    runs, cur = [], []
    for m in _TOKEN.finditer(pattern or ""):
        if m.group("lit") is not None:
            cur.append(m.group("lit"))
        elif m.group("esc") is not None:
            cur.append(m.group("esc"))
        elif m.group("space") is not None:
            cur.append(" ")
        elif m.group("opt") is not None:
            # the quantified literal may be absent on the page
            runs.append("".join(cur[:-1])); cur = []
        else:
            runs.append("".join(cur)); cur = []
    runs.append("".join(cur))
    best = max((" ".join(r.split()) for r in runs), key=len)
    return best or None


def compile_pattern(pattern: str) -> "re.Pattern[str]":
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise SchemaError(f"invalid regex {pattern!r}: {e}") from e


def _match_value(m: "re.Match[str]") -> str:
    if m.re.groups and m.group(1) is not None:
        return m.group(1).strip()
    return m.group(0).strip()


class FieldExtractor:
    """The four extraction strategies. Pages are always visited in document order."""

    def __init__(self, ocr: OCRBackend, config: OCRConfig):
        self.ocr = ocr
        self.config = config

    def recognize(self, image: Image.Image) -> OCRResult:
        return self.ocr.recognize(image, self.config.lang, self.config.ocr_options())

    def _page_ocr(self, page: PageImage) -> Tuple[Image.Image, Image.Image, OCRResult]:
        original = load_image(page)
        processed = preprocess(original, self.config)
        return original, processed, self.recognize(processed)

    # -- regex ---------------------------------------------------------------
    def extract_regex(self, pages: Sequence[PageImage], pattern: str) -> Optional[str]:
        rx = compile_pattern(pattern)
        texts: List[str] = []
        for pno, page in enumerate(pages, start=1):
            _, _, res = self._page_ocr(page)
            m = rx.search(res.text)
            if m:
                logger.debug("regex %r matched on page %d", pattern, pno)
                return _match_value(m)
            texts.append(res.text)
        target = literal_target(pattern)
        if not target:
            return None
        for text in texts:
            hit = fuzzy_find(text, target, threshold=self.config.fuzzy_threshold)
            if hit is not None:
                logger.info("fuzzy fallback for %r -> %r", pattern, hit)
                return hit.strip()
        return None

    # -- region --------------------------------------------------------------
    def extract_region(self, pages: Sequence[PageImage], region: RegionSpec) -> Optional[str]:
        if region.page < 1 or region.page > len(pages):
            logger.debug("region page %d out of range (%d pages)", region.page, len(pages))
            return None
        image = load_image(pages[region.page - 1])
        part = crop(image, region.x, region.y, region.width, region.height)
        return self.recognize(part).text.strip()

    # -- template ------------------------------------------------------------
    def _template_on_page(self, page: PageImage, template: TemplateSpec) -> Optional[str]:
        original, processed, res = self._page_ocr(page)
        anchor = find_position(res.words, template.reference_text)
        if anchor is None:
            return None
        # words were found on the upscaled image; offsets are in page pixels
        sx, sy = scale_factors(original, processed)
        x = max(0, int(round(anchor.x0 * sx + template.offset_x)))
        y = max(0, int(round(anchor.y0 * sy + template.offset_y)))
        w = template.width or self.config.template_width
        h = template.height or self.config.template_height
        logger.debug("template %r anchor at (%d,%d), extracting %s",
                     template.reference_text, round(anchor.x0 * sx), round(anchor.y0 * sy), (x, y, w, h))
        return self.recognize(crop(original, x, y, w, h)).text.strip()

    def extract_template(self, pages: Sequence[PageImage], template: TemplateSpec) -> Optional[str]:
        searched = False
        for pno, page in enumerate(pages, start=1):
            try:
                value = self._template_on_page(page, template)
            except Exception as e:
                logger.warning("template extraction failed on page %d: %s", pno, e)
                continue
            searched = True
            if value is not None:
                return value
        if searched:
            logger.warning("reference text %r not found in document", template.reference_text)
            return ""
        return None

    # -- full page -----------------------------------------------------------
    def extract_full_page(self, pages: Sequence[PageImage]) -> Optional[str]:
        if not pages:
            return None
        return "\n".join(self._page_ocr(p)[2].text for p in pages).strip()

    def extract_field(self, pages: Sequence[PageImage], field: SchemaField) -> Optional[str]:
        mode = field.mode
        logger.debug("field %r: extracting (%s)", field.name, mode.value)
        if mode is FieldMode.REGION:
            value = self.extract_region(pages, field.region)
        elif mode is FieldMode.TEMPLATE:
            value = self.extract_template(pages, field.template)
        elif mode is FieldMode.REGEX:
            value = self.extract_regex(pages, field.regex)
        elif mode is FieldMode.FULL_PAGE:
            value = self.extract_full_page(pages)
        else:
            raise SchemaError(f"unhandled extraction mode {mode!r}")
        logger.debug("field %r: resolved %s", field.name, "null" if value is None else repr(value))
        return value
