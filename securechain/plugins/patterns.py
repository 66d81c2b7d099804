"""
Shared matching helpers for heuristic checks
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Pattern, Tuple, Union

from ..models.contract import ContractModel, FunctionInfo
from ..parser.lexical import LineIndex, mask_comments_and_strings, matching_close
from .base import CheckMatch

PatternLike = Union[str, Pattern[str]]


@lru_cache(maxsize=128)
def _masked(source: str) -> str:
    return mask_comments_and_strings(source)


def _compile(pattern: PatternLike) -> Pattern[str]:
    return re.compile(pattern) if isinstance(pattern, str) else pattern


def code_of(contract: ContractModel, mask: bool = True) -> str:
    """Source text with comments and strings blanked when ``mask`` is set"""
    return _masked(contract.source_code) if mask else contract.source_code


def contains(contract: ContractModel, pattern: PatternLike, mask: bool = True) -> bool:
    return _compile(pattern).search(code_of(contract, mask)) is not None


def count(contract: ContractModel, pattern: PatternLike, mask: bool = True) -> int:
    return len(_compile(pattern).findall(code_of(contract, mask)))


def first_line(contract: ContractModel, pattern: PatternLike, mask: bool = True) -> Optional[CheckMatch]:
    """CheckMatch for the first line matching ``pattern``"""
    regex = _compile(pattern)
    for number, line in enumerate(code_of(contract, mask).splitlines(), start=1):
        if regex.search(line):
            return CheckMatch(line_number=number)
    return None


def body_lines(func: FunctionInfo) -> List[Tuple[int, str]]:
    """(line number, masked line) pairs for a function body"""
    return [
        (func.line_number + offset, line)
        for offset, line in enumerate(_masked(func.body).splitlines())
    ]


@dataclass(frozen=True)
class Block:
    """A brace-delimited declaration found by a header pattern"""
    name: str
    line_number: int
    header: str
    body: str


def blocks(contract: ContractModel, header: PatternLike, mask: bool = True) -> List[Block]:
    """
    Find declarations whose header matches ``header``.

    The pattern must end at the opening brace and capture the declaration
    name in a group called ``name``. Bodies are taken from the raw source.
    """
    regex = _compile(header)
    text = code_of(contract, mask)
    index = LineIndex(contract.source_code)
    found: List[Block] = []
    for match in regex.finditer(text):
        open_brace = match.end() - 1
        if text[open_brace] != "{":
            continue
        close = matching_close(text, open_brace)
        end = len(text) if close == -1 else close + 1
        found.append(Block(
            name=match.group("name"),
            line_number=index.line_of(match.start()),
            header=contract.source_code[match.start():open_brace],
            body=contract.source_code[open_brace:end],
        ))
    return found
