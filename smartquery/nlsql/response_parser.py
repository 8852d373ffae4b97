"""Extract the structured answer from a free-form model reply."""
from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Union

from .errors import ParseError
from .schemas import ParsedResponse

_FENCE_RE = re.compile(r"```(?:json|sql)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_FENCE_MARKER_RE = re.compile(r"```(?:json|sql)?\n?", re.IGNORECASE)
# A salvaged statement must reach a FROM keyword; "select one" alone is not SQL
_SELECT_RE = re.compile(r"\bSELECT\s+[\s\S]*?\bFROM\b[\s\S]*?(?=\n\s*\n|$)", re.IGNORECASE)


class ResponseParser:
    """Turns raw model text into a ``ParsedResponse`` or a ``ParseError``.

    ``parse`` never raises: a failure is returned as a ``ParseError`` instance so
    the orchestrator can route it to the fallback path.
    """

    def parse(self, content: Optional[str]) -> Union[ParsedResponse, ParseError]:
        if not isinstance(content, str) or not content.strip():
            return ParseError("Model returned an empty response")

        payload = self._parse_json(content)
        if isinstance(payload, dict):
            return ParsedResponse(
                sql_query=self._string_field(payload, "sqlQuery"),
                chart_type=self._string_field(payload, "chartType"),
                response_message=self._string_field(payload, "responseMessage"),
                insights=self._insights(payload.get("insights")),
            )

        sql = self._extract_select(content)
        if sql:
            return ParsedResponse(sql_query=sql, recovered=True)

        return ParseError("Model reply contained neither JSON nor a SELECT statement")

    def _parse_json(self, content: str) -> Optional[Any]:
        """
        Attempt to parse JSON content with common LLM formatting quirks handled.

        This trims code fences like ```json blocks and tries to extract the first
        balanced JSON object when extra prose slips into the response.
        """
        candidates: List[str] = []
        stripped = content.strip()
        fenced_match = _FENCE_RE.search(stripped)
        if fenced_match:
            candidates.append(fenced_match.group(1).strip())
        candidates.append(_FENCE_MARKER_RE.sub("", stripped).strip())

        extracted_object = self._extract_first_json_object(stripped)
        if extracted_object:
            candidates.append(extracted_object)

        for candidate in candidates:
            if not candidate:
                continue
            try:
                return json.loads(candidate)
            except (json.JSONDecodeError, RecursionError):
                continue

        return None

    @staticmethod
    def _extract_first_json_object(text: str) -> Optional[str]:
        """Extract the first balanced JSON object from the text."""
        start = text.find("{")
        if start == -1:
            return None

        depth = 0
        in_string = False
        escape = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escape:
                    escape = False
                elif char == "\\":
                    escape = True
                elif char == '"':
                    in_string = False
                continue

            if char == '"':
                in_string = True
                continue

            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]

        return None

    @staticmethod
    def _extract_select(content: str) -> Optional[str]:
        cleaned = _FENCE_MARKER_RE.sub("", content)
        match = _SELECT_RE.search(cleaned)
        if not match:
            return None
        return match.group(0).strip() or None

    @staticmethod
    def _string_field(payload: Dict[str, Any], key: str) -> Optional[str]:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @staticmethod
    def _insights(value: Any) -> tuple[str, ...]:
        if not isinstance(value, list):
            return ()
        return tuple(item.strip() for item in value if isinstance(item, str) and item.strip())
