"""
Lexical helpers for the regex-based contract parser

Everything here works on plain strings. ``mask_comments_and_strings`` returns
a copy of the source with the same length and the same line breaks, so match
offsets found in the masked text can be applied to the raw text unchanged.
"""

from bisect import bisect_right
from typing import List, Optional, Tuple

# Characters str.splitlines() treats as line boundaries
LINE_BREAKS = frozenset("\n\r\x0b\x0c\x1c\x1d\x1e\x85\u2028\u2029")

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = frozenset(_OPENERS.values())


def _blank(ch: str) -> str:
    return ch if ch in LINE_BREAKS else " "


def mask_comments_and_strings(source: str) -> str:
    """
    Blank out comments and the contents of string literals.

    Quote characters are kept so that an empty string literal still looks like
    one. Unterminated strings end at the next line break.
    """
    out: List[str] = []
    state: Optional[str] = None
    i = 0
    n = len(source)

    while i < n:
        ch = source[i]
        nxt = source[i + 1] if i + 1 < n else ""

        if state is None:
            if ch == "/" and nxt == "/":
                state = "line"
                out.append("  ")
                i += 2
                continue
            if ch == "/" and nxt == "*":
                state = "block"
                out.append("  ")
                i += 2
                continue
            if ch in ("'", '"'):
                state = ch
            out.append(ch)
        elif state == "line":
            if ch in LINE_BREAKS:
                state = None
            out.append(_blank(ch))
        elif state == "block":
            if ch == "*" and nxt == "/":
                state = None
                out.append("  ")
                i += 2
                continue
            out.append(_blank(ch))
        else:
            if ch == "\\" and nxt:
                out.append(" " + _blank(nxt))
                i += 2
                continue
            if ch == state:
                state = None
                out.append(ch)
            elif ch in LINE_BREAKS:
                state = None
                out.append(ch)
            else:
                out.append(" ")
        i += 1

    return "".join(out)


class LineIndex:
    """Maps character offsets to 1-based line numbers"""

    def __init__(self, text: str):
        self.starts: List[int] = []
        offset = 0
        for line in text.splitlines(keepends=True):
            self.starts.append(offset)
            offset += len(line)
        if not self.starts:
            self.starts.append(0)

    def line_of(self, offset: int) -> int:
        return bisect_right(self.starts, offset)

    def __len__(self) -> int:
        return len(self.starts)


def matching_close(text: str, open_index: int) -> int:
    """
    Index of the bracket closing the one at ``open_index``, or -1.

    Only the bracket type found at ``open_index`` is counted.
    """
    opener = text[open_index]
    closer = _OPENERS[opener]
    depth = 0
    for i in range(open_index, len(text)):
        ch = text[i]
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i
    return -1


def scan_to_terminator(text: str, start: int) -> Tuple[int, str]:
    """
    Find the first ``{`` or ``;`` outside parentheses at or after ``start``.

    Returns ``(index, char)``, or ``(len(text), "")`` when neither is found.
    """
    depth = 0
    for i in range(start, len(text)):
        ch = text[i]
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth = max(0, depth - 1)
        elif depth == 0 and ch in "{;":
            return i, ch
    return len(text), ""


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """Split on ``separator`` where it is not nested inside brackets"""
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for ch in text:
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth = max(0, depth - 1)
        if ch == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


def split_words(text: str) -> List[str]:
    """Split on whitespace that is not nested inside brackets"""
    words: List[str] = []
    depth = 0
    current: List[str] = []
    for ch in text:
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth = max(0, depth - 1)
        if ch.isspace() and depth == 0:
            if current:
                words.append("".join(current))
                current = []
        else:
            current.append(ch)
    if current:
        words.append("".join(current))
    return words


def line_depths(masked_lines: List[str]) -> List[int]:
    """Curly-brace depth at the start of every line"""
    depths: List[int] = []
    depth = 0
    for line in masked_lines:
        depths.append(depth)
        depth += line.count("{") - line.count("}")
        depth = max(depth, 0)
    return depths
