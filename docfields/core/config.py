from __future__ import annotations
from typing import Optional, Tuple
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# A4 rendered at 300 DPI
A4_300DPI: Tuple[int, int] = (1654, 2339)


class OCRConfig(BaseSettings):
    """
    Process-wide OCR defaults, handed to the extractor at construction.
    Every value can be overridden from the environment (OCR_LANG, OCR_DPI, ...).
    """
    model_config = SettingsConfigDict(env_prefix="OCR_", extra="ignore")

    lang: str = "eng"
    dpi: int = Field(300, gt=0)
    whitelist: Optional[str] = None
    psm: int = Field(3, ge=0, le=13)   # tesseract: fully automatic page segmentation
    backend: str = "tesseract"         # 'tesseract' | 'easyocr'

    # preprocessing
    threshold: int = Field(150, ge=0, le=255)
    upscale: float = Field(2.0, gt=0)
    reference_size: Tuple[int, int] = A4_300DPI

    # rasterizer target; None keeps the native render size
    page_size: Optional[Tuple[int, int]] = A4_300DPI

    # template defaults when the schema leaves width/height unset
    template_width: int = Field(200, gt=0)
    template_height: int = Field(50, gt=0)

    fuzzy_threshold: float = Field(0.6, ge=0.0, le=1.0)

    def ocr_options(self) -> dict:
        return {"psm": self.psm, "whitelist": self.whitelist}
