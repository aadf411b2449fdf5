from __future__ import annotations
from enum import Enum
from typing import List, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class BoundingBox(BaseModel):
    x0: float; y0: float; x1: float; y1: float

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0


class OCRWord(BaseModel):
    text: str
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    bbox: BoundingBox


class OCRResult(BaseModel):
    text: str = ""
    words: List[OCRWord] = []

    def mean_confidence(self) -> float:
        if not self.words: return 0.0
        return sum(w.confidence for w in self.words) / len(self.words)


class RegionSpec(BaseModel):
    page: int = 1  # 1-based
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)


class TemplateSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reference_text: str = Field(..., alias="referenceText")
    offset_x: int = Field(0, alias="offsetX")
    offset_y: int = Field(0, alias="offsetY")
    width: Optional[int] = Field(None, gt=0)
    height: Optional[int] = Field(None, gt=0)


class FieldMode(str, Enum):
    REGION = "region"
    TEMPLATE = "template"
    REGEX = "regex"
    FULL_PAGE = "full_page"


class SchemaField(BaseModel):
    name: str = Field(..., min_length=1)
    regex: Optional[str] = None
    region: Optional[RegionSpec] = None
    template: Optional[TemplateSpec] = None

    @property
    def mode(self) -> FieldMode:
        # fixed precedence when several modes are populated
        if self.region is not None: return FieldMode.REGION
        if self.template is not None: return FieldMode.TEMPLATE
        if self.regex: return FieldMode.REGEX
        return FieldMode.FULL_PAGE


class ExtractionSchema(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    fields: List[SchemaField] = []

    @model_validator(mode="after")
    def _unique_names(self) -> "ExtractionSchema":
        seen = set()
        for f in self.fields:
            if f.name in seen:
                raise ValueError(f"duplicate field name: {f.name!r}")
            seen.add(f.name)
        return self


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class DocumentRecord(BaseModel):
    """Status record owned by the caller; the extractor only moves it through its lifecycle."""
    id: str
    status: ProcessingStatus = ProcessingStatus.PENDING
    page_count: Optional[int] = None
    extracted_fields: Dict[str, str] = {}
    error: Optional[str] = None


class TextExtraction(BaseModel):
    text: str
    confidence: float
    page_count: int


class BatchItem(BaseModel):
    document: str
    success: bool
    data: Optional[Dict[str, str]] = None
    error: Optional[str] = None
