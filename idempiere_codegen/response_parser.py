"""
Response Parser
===============
Extracts a :class:`~idempiere_codegen.models.GeneratedCode` from free-form
AI output.

The prompt asks for a bare JSON object, but models often wrap it in prose
or a markdown fence.  Extraction strategies are tried in order and the
first one yielding a non-empty file list wins:

  1. the whole (stripped) response
  2. the first fenced code block (```json ... ``` or ``` ... ```)
  3. the text between the first ``{`` and the last ``}``

When every strategy fails, the error from the last strategy that was
attempted is reported, since it is the most targeted.  Never raises for
malformed input.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from pydantic import ValidationError

from idempiere_codegen.models import GeneratedCode

logger = logging.getLogger("idempiere_codegen.response_parser")

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(\{.*?\})\s*```", re.DOTALL)

NO_JSON_FOUND = "No parseable JSON object found in AI response"


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing an AI response.

    Attributes:
        code: Parsed file set, or None on failure.
        error: Failure description, or None on success.
        source: Name of the strategy that succeeded.
    """

    code: Optional[GeneratedCode] = None
    error: Optional[str] = None
    source: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.code is not None

    @classmethod
    def success(cls, code: GeneratedCode, source: str) -> "ParseResult":
        return cls(code=code, source=source)

    @classmethod
    def failure(cls, error: str) -> "ParseResult":
        return cls(error=error)


# ---------------------------------------------------------------------------
# Extraction strategies: each returns (source name, candidate text) or None
# ---------------------------------------------------------------------------

def _whole_response(raw: str) -> Optional[Tuple[str, str]]:
    return "raw response", raw.strip()


def _fenced_block(raw: str) -> Optional[Tuple[str, str]]:
    match = _FENCE_RE.search(raw)
    if match is None:
        return None
    return "markdown code fence", match.group(1).strip()


def _outer_braces(raw: str) -> Optional[Tuple[str, str]]:
    start = raw.find("{")
    end = raw.rfind("}")
    if start < 0 or end <= start:
        return None
    return "outer JSON block", raw[start:end + 1].strip()


STRATEGIES: List[Callable[[str], Optional[Tuple[str, str]]]] = [
    _whole_response,
    _fenced_block,
    _outer_braces,
]


def _single_line(message: str) -> str:
    return message.replace("\r", " ").replace("\n", " ")


def _try_parse(text: str, source: str) -> ParseResult:
    try:
        code = GeneratedCode.model_validate_json(text)
    except ValidationError as e:
        if all(err.get("type") == "json_invalid" for err in e.errors()):
            detail = "; ".join(str(err.get("msg")) for err in e.errors())
        else:
            detail = "; ".join(
                f"{'.'.join(str(p) for p in err.get('loc', ())) or 'document'}: {err.get('msg')}"
                for err in e.errors()
            )
        return ParseResult.failure(f"Invalid JSON in {source}: {_single_line(detail)}")
    except ValueError as e:
        return ParseResult.failure(f"Invalid JSON in {source}: {_single_line(str(e) or type(e).__name__)}")

    if not code.files:
        return ParseResult.failure(f"Parsed {source} but files array is empty")
    return ParseResult.success(code, source)


def parse_response(raw: Optional[str]) -> ParseResult:
    """Parse an AI response into a file set.

    Args:
        raw: Raw response text (may be None).

    Returns:
        ParseResult carrying either the code or the most specific error.
    """
    if raw is None or not raw.strip():
        return ParseResult.failure("AI response is empty")

    last_error: Optional[str] = None
    for strategy in STRATEGIES:
        candidate = strategy(raw)
        if candidate is None:
            continue
        source, text = candidate
        result = _try_parse(text, source)
        if result.ok:
            logger.debug("Parsed AI response via %s (%d files)", source, len(result.code.files))
            return result
        last_error = result.error

    return ParseResult.failure(last_error or NO_JSON_FOUND)


def parse(raw: Optional[str]) -> Optional[GeneratedCode]:
    """Parse ``raw`` and return only the code (None on failure)."""
    return parse_response(raw).code
