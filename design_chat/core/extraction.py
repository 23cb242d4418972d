"""Extraction of HTML, JSON and audit issues from model responses"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError, model_validator

from design_chat.models.errors import ErrorCode, ProviderError
from design_chat.models.schemas import ReferenceEntry
from design_chat.core.validation import INPUT_LIMITS, sanitize_text

logger = logging.getLogger(__name__)

MAX_AUDIT_ISSUES = 5

_DOCTYPE_PATTERN = re.compile(r"<!DOCTYPE\s+html[^>]*>", re.IGNORECASE)
_HTML_OPEN_PATTERN = re.compile(r"<html[^>]*>", re.IGNORECASE)
_HTML_CLOSE_PATTERN = re.compile(r"</html>", re.IGNORECASE)
_FENCE_LINE_PATTERN = re.compile(r"^\s*```[a-zA-Z]*\s*$", re.MULTILINE)
_SEPARATOR_PATTERN = re.compile(r"^[-=]+$")
_REFERENCE_LINE_PATTERN = re.compile(r"^(?:\d+\.\s*)?(\S+)\s+-\s+(.+)$")


def extract_html_from_response(response: Optional[str]) -> str:
    """
    Cut the HTML document out of a model response.

    Keeps everything from <!DOCTYPE html> (or <html> when there is no
    doctype) through the last </html>, dropping prose and code fences around
    it. Raises ProviderError when no complete document is present.
    """
    if not response or not isinstance(response, str):
        raise ProviderError("Empty response from HTML generation", code=ErrorCode.INVALID_RESPONSE)

    start_match = _DOCTYPE_PATTERN.search(response) or _HTML_OPEN_PATTERN.search(response)
    if start_match is None:
        raise ProviderError(
            "Could not find HTML start tag (<!DOCTYPE html> or <html>)",
            code=ErrorCode.INVALID_RESPONSE
        )

    end_matches = list(_HTML_CLOSE_PATTERN.finditer(response, start_match.start()))
    if not end_matches:
        raise ProviderError("Could not find HTML end tag (</html>)", code=ErrorCode.INVALID_RESPONSE)

    html = response[start_match.start():end_matches[-1].end()]
    html = _FENCE_LINE_PATTERN.sub("", html)

    if not _HTML_OPEN_PATTERN.search(html):
        # Doctype without an <html> element
        doctype = start_match.group(0)
        html = f"{doctype}\n<html>\n{html[len(doctype):]}"

    return html.strip()


def extract_json_from_response(response: Optional[str]) -> Optional[str]:
    """JSON object text between the first { and the last }, or None"""
    if not response or not isinstance(response, str):
        return None

    cleaned = re.sub(r"^```(?:json)?\s*$", "", response.strip(), flags=re.MULTILINE | re.IGNORECASE)
    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace == -1 or last_brace == -1 or first_brace >= last_brace:
        return None
    return cleaned[first_brace:last_brace + 1].strip()


def parse_json_response(response: Optional[str]) -> Dict[str, Any]:
    """Parsed JSON object from a model response; ProviderError when there is none"""
    json_text = extract_json_from_response(response)
    if json_text is None:
        raise ProviderError("No JSON object found in model response", code=ErrorCode.INVALID_RESPONSE)
    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise ProviderError(f"Model response is not valid JSON: {e}", code=ErrorCode.INVALID_RESPONSE) from e
    if not isinstance(parsed, dict):
        raise ProviderError("Model response JSON is not an object", code=ErrorCode.INVALID_RESPONSE)
    return parsed


def parse_audit_response(audit_response: Optional[str]) -> List[str]:
    """Up to five issue lines from an audit response, without headers or separators"""
    if not audit_response or not audit_response.strip():
        return []

    issues = []
    for line in audit_response.split("\n"):
        line = line.strip()
        if not line:
            continue
        lowered = line.lower()
        if "high impact:" in lowered or lowered == "high impact":
            continue
        if _SEPARATOR_PATTERN.match(line):
            continue
        issues.append(line)

    return issues[:MAX_AUDIT_ISSUES]


class ColorNote(BaseModel):
    model_config = ConfigDict(extra="allow")

    hex: StrictStr
    type: StrictStr


class ReferenceWebsiteAnalysis(BaseModel):
    """Expected shape of a reference-site analysis"""
    model_config = ConfigDict(extra="allow")

    website_url: StrictStr
    user_likes_about_this: StrictStr
    layout_notes: Optional[StrictStr] = None
    colors: Optional[List[ColorNote]] = None
    typography_notes: Optional[StrictStr] = None
    components_liked: Optional[List[StrictStr]] = None
    interaction_notes: Optional[StrictStr] = None
    design_principles: Optional[List[StrictStr]] = None

    @model_validator(mode="after")
    def check_has_content(self):
        if not self.website_url.strip():
            raise ValueError("website_url must not be empty")
        optional_fields = (
            self.layout_notes,
            self.colors,
            self.typography_notes,
            self.components_liked,
            self.interaction_notes,
            self.design_principles,
        )
        if all(value is None for value in optional_fields):
            raise ValueError("analysis has no design notes")
        return self


def validate_reference_website_json(json_text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Validated analysis dict, or None when the JSON does not match the expected shape"""
    if not json_text or not isinstance(json_text, str):
        return None
    try:
        analysis = ReferenceWebsiteAnalysis.model_validate_json(json_text)
    except ValidationError as e:
        logger.debug(f"[EXTRACTION] Reference analysis rejected: {e.error_count()} errors")
        return None
    return analysis.model_dump(exclude_none=True)


def extract_reference_analysis(response: Optional[str]) -> Optional[Dict[str, Any]]:
    json_text = extract_json_from_response(response)
    if json_text is None:
        return None
    return validate_reference_website_json(json_text)


def parse_references_string(references: Optional[str]) -> List[ReferenceEntry]:
    """
    Parse the stored references format back into entries.

    Accepts "1. https://a.com - description" lines with or without numbering;
    lines missing either part are dropped.
    """
    if not references or not references.strip():
        return []

    entries = []
    for line in references.split("\n"):
        match = _REFERENCE_LINE_PATTERN.match(line.strip())
        if not match:
            continue
        url = sanitize_text(match.group(1))[:INPUT_LIMITS["url"]]
        description = sanitize_text(match.group(2))[:INPUT_LIMITS["description"]]
        if url and description:
            entries.append(ReferenceEntry(url=url, description=description))
    return entries
