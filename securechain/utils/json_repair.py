"""
Utilities for repairing and extracting JSON from tool and model output
"""

import re
import json
from loguru import logger
from typing import Any, Dict, Iterator, Optional

_CODE_FENCE = re.compile(r'```(?:json)?\s*([\s\S]*?)```', re.IGNORECASE)


def repair_json(json_str: str) -> str:
    """
    Attempt to repair common JSON formatting issues in model output

    Args:
        json_str: JSON string to repair

    Returns:
        Repaired JSON string
    """
    # Remove trailing commas in arrays and objects
    json_str = re.sub(r',\s*]', ']', json_str)
    json_str = re.sub(r',\s*}', '}', json_str)

    # Quote bare property names
    json_str = re.sub(r'([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*:)', r'\1"\2"\3', json_str)

    # Python literals
    json_str = re.sub(r'\bNone\b', 'null', json_str)
    json_str = re.sub(r'\bTrue\b', 'true', json_str)
    json_str = re.sub(r'\bFalse\b', 'false', json_str)

    # Single-quoted documents with no double quotes at all
    if '"' not in json_str:
        json_str = json_str.replace("'", '"')

    return json_str


def safe_parse_json(json_str: str, default: Any = None) -> Any:
    """
    Parse JSON, retrying once on a repaired copy

    Args:
        json_str: JSON string to parse
        default: Value returned when both attempts fail

    Returns:
        Parsed JSON value or ``default``
    """
    try:
        return json.loads(json_str)
    except json.JSONDecodeError as e:
        try:
            return json.loads(repair_json(json_str))
        except json.JSONDecodeError:
            logger.debug(f"JSON repair failed: {e}")
            return default


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Extract a JSON object from text that may contain other content

    Fenced ```json blocks are tried first, then the span from the first ``{``
    to the last ``}``, then the first balanced ``{...}`` block.

    Args:
        text: Text that might contain a JSON object

    Returns:
        The parsed object, or None when no object can be recovered
    """
    candidates = [match.group(1) for match in _CODE_FENCE.finditer(text)]

    start = text.find('{')
    end = text.rfind('}')
    if start >= 0 and end > start:
        candidates.append(text[start:end + 1])

        depth = 0
        for i in range(start, len(text)):
            if text[i] == '{':
                depth += 1
            elif text[i] == '}':
                depth -= 1
                if depth == 0:
                    candidates.append(text[start:i + 1])
                    break

    for candidate in candidates:
        result = safe_parse_json(candidate.strip())
        if isinstance(result, dict):
            return result
    return None


def iter_json_lines(text: str) -> Iterator[Dict[str, Any]]:
    """Yield every line of ``text`` that parses as a JSON object"""
    for line in text.splitlines():
        line = line.strip()
        if not line.startswith('{'):
            continue
        try:
            value = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            yield value
