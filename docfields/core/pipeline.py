from __future__ import annotations
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from docfields.core.config import OCRConfig
from docfields.core.extractors import FieldExtractor
from docfields.core.models import (
    BatchItem, DocumentRecord, ExtractionSchema, ProcessingStatus, TextExtraction,
)
from docfields.core.ocr_backends import OCRBackend, make_backend
from docfields.core.pdf_io import rendered_pages
from docfields.core.preprocess import PageImage, load_image, preprocess

logger = logging.getLogger(__name__)


def _set_status(document: Optional[DocumentRecord], status: ProcessingStatus) -> None:
    if document is None: return
    logger.info("document %s: %s -> %s", document.id, document.status.value, status.value)
    document.status = status


class SchemaExtractor:
    """
    Runs an extraction schema over the page images of one document.

    A run is all-or-nothing: every field is evaluated in schema order and the
    mapping is returned, or the first unhandled error marks the document failed
    and is re-raised with no partial result.
    """

    def __init__(self, config: Optional[OCRConfig] = None, ocr: Optional[OCRBackend] = None):
        self.config = config or OCRConfig()
        self.ocr = ocr or make_backend(self.config)
        self.fields = FieldExtractor(self.ocr, self.config)

    def extract(self, pages: Sequence[PageImage], schema: ExtractionSchema,
                document: Optional[DocumentRecord] = None) -> Dict[str, str]:
        _set_status(document, ProcessingStatus.PROCESSING)
        try:
            out: Dict[str, str] = {}
            for field in schema.fields:
                value = self.fields.extract_field(pages, field)
                if value is not None:
                    out[field.name] = value
        except Exception as e:
            logger.exception("extraction failed%s", f" for document {document.id}" if document else "")
            if document is not None:
                document.error = str(e)
            _set_status(document, ProcessingStatus.FAILED)
            raise
        if document is not None:
            document.extracted_fields = dict(out)
            document.page_count = len(pages)
            document.error = None
        _set_status(document, ProcessingStatus.COMPLETED)
        logger.info("extracted %d/%d field(s) from %d page(s)", len(out), len(schema.fields), len(pages))
        return out

    def extract_document(self, path: Union[str, Path], schema: ExtractionSchema,
                         document: Optional[DocumentRecord] = None) -> Dict[str, str]:
        """Rasterise a PDF (or take an image file as its single page) and run `extract`."""
        _set_status(document, ProcessingStatus.PROCESSING)
        try:
            with rendered_pages(path, self.config) as pages:
                return self.extract(pages, schema, document)
        except Exception as e:
            if document is not None:
                document.error = str(e)
                if document.status is not ProcessingStatus.FAILED:
                    _set_status(document, ProcessingStatus.FAILED)
            raise

    def extract_text(self, path: Union[str, Path]) -> TextExtraction:
        """Full OCR text of a document. Pages whose OCR fails are skipped."""
        texts: List[str] = []
        confs: List[float] = []
        with rendered_pages(path, self.config) as pages:
            for pno, page in enumerate(pages, start=1):
                try:
                    res = self.fields.recognize(preprocess(load_image(page), self.config))
                except Exception as e:
                    logger.error("OCR failed for page %d of %s: %s", pno, path, e)
                    continue
                texts.append(res.text)
                confs.append(res.mean_confidence())
        return TextExtraction(
            text="\n".join(texts).strip(),
            confidence=(sum(confs) / len(confs)) if confs else 0.0,
            page_count=len(texts),
        )

    def batch_extract(self, paths: Iterable[Union[str, Path]], schema: ExtractionSchema) -> List[BatchItem]:
        out: List[BatchItem] = []
        for p in paths:
            doc = DocumentRecord(id=str(p))
            try:
                data = self.extract_document(p, schema, doc)
                out.append(BatchItem(document=str(p), success=True, data=data))
            except Exception as e:
                out.append(BatchItem(document=str(p), success=False, error=str(e)))
        return out

    def rows_for_images(self, pages: Sequence[PageImage], schema: ExtractionSchema) -> List[Dict[str, Optional[str]]]:
        """One record per page image: each page is treated as a separate one-page document."""
        rows = []
        for page in pages:
            rows.append({f.name: self.fields.extract_field([page], f) for f in schema.fields})
        return rows
