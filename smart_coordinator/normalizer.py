import json
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional

from .exceptions import UnsupportedResultShapeError
from .models import CanonicalResponse, SpecialistResult

logger = logging.getLogger(__name__)

# Specialists built on the older agent contract report "success" instead of "ok".
_STATUS_ALIASES = {"ok": "ok", "success": "ok", "error": "error"}


def _coerce_mapping(record: Mapping, key: str) -> Dict[str, Any]:
    value = record.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        logger.warning(f"Ignoring non-object '{key}' field of type {type(value).__name__} in specialist result.")
        return {}
    return dict(value)


def _coerce_response(record: Mapping) -> Optional[str]:
    value = record.get("response")
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def _coerce_status(record: Mapping) -> str:
    status = record.get("status")
    if isinstance(status, str):
        return _STATUS_ALIASES.get(status.lower(), "ok")
    return "ok"


class ResponseNormalizer:
    """
    Turns whatever a specialist returned into a CanonicalResponse.

    Text results are parsed as a JSON record when possible; text that is not
    a record is passed through verbatim as the display response. Mappings are
    read by key. Only the outermost shape is parsed: a JSON document nested
    inside `response` is left untouched.
    """

    def __init__(self, parse_failure_status: str = "ok"):
        if parse_failure_status not in ("ok", "error"):
            raise ValueError(f"parse_failure_status must be 'ok' or 'error', got {parse_failure_status!r}")
        self.parse_failure_status = parse_failure_status

    def normalize(self, result: SpecialistResult) -> CanonicalResponse:
        if isinstance(result, str):
            return self._normalize_text(result)
        if isinstance(result, Mapping):
            return self._normalize_record(result)

        logger.error(f"Invalid specialist result format: {type(result).__name__}.")
        raise UnsupportedResultShapeError(type(result).__name__)

    def _normalize_text(self, text: str) -> CanonicalResponse:
        try:
            parsed = json.loads(text)
        except (ValueError, RecursionError):
            return self._verbatim(text, "result is not valid JSON")

        if not isinstance(parsed, Mapping):
            return self._verbatim(text, f"result decodes to {type(parsed).__name__}, not an object")

        return self._normalize_record(parsed)

    def _normalize_record(self, record: Mapping) -> CanonicalResponse:
        return CanonicalResponse(
            status=_coerce_status(record),
            response=_coerce_response(record),
            data=_coerce_mapping(record, "data"),
            entities=_coerce_mapping(record, "entities"),
        )

    def _verbatim(self, text: str, reason: str) -> CanonicalResponse:
        logger.info(f"Specialist reply treated as plain text ({reason}).")
        return CanonicalResponse(status=self.parse_failure_status, response=text, data={}, entities={})
