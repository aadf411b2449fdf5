# docfields/api/main.py
import json, logging, os, tempfile
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, File, Form, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from docfields.core.config import OCRConfig
from docfields.core.errors import ExtractionError, SchemaError, UnsupportedFileError
from docfields.core.models import DocumentRecord, ExtractionSchema
from docfields.core.ocr_backends import available_backends
from docfields.core.pipeline import SchemaExtractor
from docfields.core.regex_infer import define_schema_fields, infer_regex

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="docfields API", version="0.1.0")


@lru_cache(maxsize=1)
def get_extractor() -> SchemaExtractor:
    return SchemaExtractor(OCRConfig())


def _save_upload(file: UploadFile) -> str:
    suffix = Path(file.filename or "").suffix.lower() or ".pdf"
    fd, path = tempfile.mkstemp(suffix=suffix); os.close(fd)
    with open(path, "wb") as f: f.write(file.file.read())
    return path


def _error(e: Exception, status: int) -> JSONResponse:
    return JSONResponse({"error": str(e)}, status_code=status)


@app.get("/health")
def health():
    return {"status": "ok", "backends": available_backends()}


@app.post("/extract")
def extract(file: UploadFile = File(...), schema: str = Form(...),
            extractor: SchemaExtractor = Depends(get_extractor)):
    try:
        parsed = ExtractionSchema.model_validate(json.loads(schema))
    except (ValueError, ValidationError) as e:
        return _error(e, 400)
    path = _save_upload(file)
    doc = DocumentRecord(id=file.filename or os.path.basename(path))
    try:
        fields = extractor.extract_document(path, parsed, doc)
        return {"document": doc.id, "status": doc.status.value, "page_count": doc.page_count, "fields": fields}
    except (UnsupportedFileError, SchemaError) as e:
        return _error(e, 400)
    except ExtractionError as e:
        return JSONResponse({"document": doc.id, "status": doc.status.value, "error": str(e)}, status_code=500)
    finally:
        os.remove(path)


@app.post("/extract-text")
def extract_text(file: UploadFile = File(...), extractor: SchemaExtractor = Depends(get_extractor)):
    path = _save_upload(file)
    try:
        return extractor.extract_text(path).model_dump()
    except UnsupportedFileError as e:
        return _error(e, 400)
    except ExtractionError as e:
        return _error(e, 500)
    finally:
        os.remove(path)


class InferRegexRequest(BaseModel):
    text: str
    value: str
    context_length: int = Field(30, ge=0, alias="contextLength")


@app.post("/schema/infer-regex")
def schema_infer_regex(req: InferRegexRequest):
    return {"regex": infer_regex(req.text, req.value, req.context_length)}


class DefineSchemaRequest(BaseModel):
    name: str
    description: Optional[str] = None
    fields: List[Dict[str, Any]]
    ocr_text: Optional[str] = Field(None, alias="ocrText")


@app.post("/schema/define")
def schema_define(req: DefineSchemaRequest):
    fields = define_schema_fields(req.fields, req.ocr_text)
    try:
        schema = ExtractionSchema.model_validate(
            {"name": req.name, "description": req.description, "fields": fields})
    except ValidationError as e:
        return _error(e, 400)
    return schema.model_dump(by_alias=True, exclude_none=True)
