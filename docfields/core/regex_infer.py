from __future__ import annotations
import logging
import re
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


def infer_regex(full_text: str, selected_value: str, context_length: int = 30) -> Optional[str]:
    """
    Build a regex that captures `selected_value` from its surroundings in `full_text`:
    up to `context_length` chars before and after become literal anchors around a lazy group.
    None when the value does not occur in the text.
    """
    if not full_text or not selected_value:
        return None
    idx = full_text.find(selected_value)
    if idx == -1:
        return None
    before = full_text[max(0, idx - context_length):idx].strip()
    end = idx + len(selected_value)
    after = full_text[end:end + context_length].strip()
    pattern = ""
    if before: pattern += re.escape(before) + r"\s*"
    pattern += "(.+?)"
    if after: pattern += r"\s*" + re.escape(after)
    return pattern


def value_regex(value: str) -> str:
    """Literal pattern for a value, tolerant to any run of whitespace between its words."""
    return r"\s+".join(re.escape(part) for part in value.split())


def define_schema_fields(fields: List[Dict[str, Any]], ocr_text: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Turn authoring entries {name, value} into {name, regex}.
    The pattern is inferred from the value's context in `ocr_text` when possible.
    Entries that already declare regex, region or template pass through unchanged.
    """
    out = []
    for f in fields:
        value = f.get("value")
        if f.get("regex") or f.get("region") or f.get("template") or not value:
            out.append(f)
            continue
        rx = infer_regex(ocr_text, value) if ocr_text else None
        if rx is None:
            logger.debug("no context for %r, using literal pattern", f.get("name"))
            rx = value_regex(value)
        out.append({"name": f["name"], "regex": rx})
    return out
