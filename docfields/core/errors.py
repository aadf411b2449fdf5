from __future__ import annotations


class ExtractionError(RuntimeError):
    """Base class for failures that abort an extraction run."""


class SchemaError(ExtractionError, ValueError):
    pass


class ImageTransformError(ExtractionError):
    pass


class OCRError(ExtractionError):
    pass


class RasterizeError(ExtractionError):
    pass


class UnsupportedFileError(ExtractionError, ValueError):
    pass
