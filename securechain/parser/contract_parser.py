"""
Regex-based structural parser for smart contract source

This module turns raw contract text into a ContractModel. It is a lightweight,
line-oriented extractor rather than a compiler front end: malformed input
yields a model with fewer entities, never an exception.

Header matching and brace counting run on a masked copy of the source where
comments and string contents are blanked, so declaration-like text inside a
comment or a string literal is not picked up. Bodies, imports, pragmas and the
licence identifier are always cut from the raw text.
"""

import re
import warnings
from typing import Dict, List, Optional, Tuple

from loguru import logger

from ..errors import ParseDegraded
from ..models.contract import (
    ContractModel,
    EventInfo,
    FunctionInfo,
    ModifierInfo,
    Parameter,
    SourceUnit,
    StateVariable,
)
from .lexical import (
    LineIndex,
    line_depths,
    mask_comments_and_strings,
    matching_close,
    scan_to_terminator,
    split_top_level,
    split_words,
)

VISIBILITY_KEYWORDS = ("external", "public", "internal", "private")
MUTABILITY_KEYWORDS = ("view", "pure", "payable")

# Words that may sit between a parameter's type and its name
PARAMETER_QUALIFIERS = frozenset({"indexed", "memory", "storage", "calldata", "payable"})

# Header words that are neither visibility, mutability nor modifier invocations
_HEADER_NOISE = frozenset({"virtual", "override"})


class ContractParser:
    """
    Regex-based parser producing immutable ContractModel instances
    """

    FUNCTION_HEADER = re.compile(
        r'(?<![\w.$])(?:function\s+(?P<name>[A-Za-z_$][\w$]*)'
        r'|(?P<legacy>function)(?=\s*\()'
        r'|(?P<special>constructor|fallback|receive))\s*\('
    )

    MODIFIER_HEADER = re.compile(r'(?<![\w.$])modifier\s+(?P<name>[A-Za-z_$][\w$]*)')

    EVENT = re.compile(
        r'(?<![\w.$])event\s+(?P<name>\w+)\s*\((?P<params>[^)]*)\)\s*(?P<anonymous>anonymous)?\s*;'
    )

    STATE_VARIABLE = re.compile(
        r'^\s*(?P<type>mapping\s*\(.*\)'
        r'|(?:u?int\d*|string|bool|bytes\d*|address(?:\s+payable)?|[A-Z][\w$]*(?:\.[A-Za-z_$][\w$]*)*)'
        r'(?:\s*\[[^\]]*\])*)'
        r'(?P<qualifiers>(?:\s+(?:public|private|internal|constant|immutable|override|transient))*)'
        r'\s+(?P<name>[A-Za-z_$][\w$]*)'
        r'(?:\s*=\s*(?P<value>[^;]+))?\s*;'
    )

    IMPORT = re.compile(r'(?<![\w.$])import\b[^;]*;')
    IMPORT_TARGET = re.compile(r'"([^"]+)"|\'([^\']+)\'')
    PRAGMA = re.compile(r'(?<![\w.$])pragma\s+([^;]+);')
    LICENSE = re.compile(r'//\s*SPDX-License-Identifier:\s*([^\r\n]+)')
    INHERITANCE = re.compile(r'(?<![\w.$])(?:contract|interface)\s+\w+\s+is\s+([^{]+)\{')

    def parse(
        self,
        raw_source: str,
        declared_name: str,
        *,
        file_path: str = "",
        compiler_version: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> ContractModel:
        """
        Parse contract source into a ContractModel

        Args:
            raw_source: Contract source text
            declared_name: Name given to the contract unit
            file_path: Path the source was read from, if any
            compiler_version: Version reported by the ingestion step
            metadata: Opaque key/value data carried through unchanged

        Returns:
            Immutable ContractModel
        """
        masked = mask_comments_and_strings(raw_source)
        index = LineIndex(raw_source)
        raw_lines = raw_source.splitlines()

        pragmas = self._extract_pragmas(raw_source, masked)
        if compiler_version is None:
            compiler_version = self._version_from_pragmas(pragmas)

        model = ContractModel(
            name=declared_name,
            file_path=file_path,
            source_code=raw_source,
            functions=tuple(self._extract_functions(masked, raw_lines, index, declared_name)),
            state_variables=tuple(self._extract_state_variables(masked, raw_lines)),
            modifiers=tuple(self._extract_modifiers(masked, raw_lines, index, declared_name)),
            events=tuple(self._extract_events(masked, index)),
            imports=tuple(self._extract_imports(raw_source, masked)),
            inheritance=tuple(self._extract_inheritance(masked)),
            compiler_version=compiler_version,
            pragma_directives=tuple(pragmas),
            license=self._extract_license(raw_source),
            metadata=dict(metadata or {}),
        )

        logger.debug(
            f"Parsed {declared_name}: {len(model.functions)} functions, "
            f"{len(model.state_variables)} state variables, {len(model.modifiers)} modifiers, "
            f"{len(model.events)} events"
        )
        return model

    def parse_unit(self, unit: SourceUnit) -> ContractModel:
        """Parse a SourceUnit handed over by a source provider"""
        return self.parse(
            unit.source_code,
            unit.name,
            file_path=unit.file_path,
            compiler_version=unit.compiler_version,
            metadata=unit.metadata,
        )

    # Functions

    def _extract_functions(
        self, masked: str, raw_lines: List[str], index: LineIndex, contract_name: str
    ) -> List[FunctionInfo]:
        functions: List[FunctionInfo] = []
        consumed = 0

        for match in self.FUNCTION_HEADER.finditer(masked):
            # Function types inside bodies and parameter lists
            if match.start() < consumed:
                continue

            open_paren = match.end() - 1
            close_paren = matching_close(masked, open_paren)
            if close_paren == -1:
                self._degraded(contract_name, index.line_of(match.start()), "unterminated parameter list")
                break

            terminator, kind = scan_to_terminator(masked, close_paren + 1)
            if match.group("legacy") and kind != "{":
                continue

            header_line = index.line_of(match.start())
            tail = masked[close_paren + 1:terminator]
            visibility, mutability, modifiers, returns = self._parse_header_tail(tail)

            if kind == "{":
                end, body = self._block(masked, raw_lines, index, terminator, header_line, contract_name)
            else:
                end, body = terminator + 1, ""
            consumed = end

            special = match.group("special")
            if match.group("name"):
                name = match.group("name")
            elif special:
                name = special
            else:
                name = "fallback"

            functions.append(FunctionInfo(
                name=name,
                visibility=visibility,
                state_mutability=mutability,
                parameters=tuple(parse_parameters(masked[open_paren + 1:close_paren])),
                return_parameters=tuple(parse_parameters(returns)),
                modifiers=tuple(modifiers),
                line_number=header_line,
                body=body,
                is_constructor=special == "constructor",
                is_fallback=special == "fallback" or bool(match.group("legacy")),
                is_receive=special == "receive",
            ))

        return functions

    def _parse_header_tail(self, tail: str) -> Tuple[str, str, List[str], str]:
        """Split the text between the parameter list and the body"""
        visibility = "internal"
        mutability = "none"
        modifiers: List[str] = []
        returns = ""

        for word, args in _header_words(tail):
            if word == "returns":
                returns = args
            elif word in VISIBILITY_KEYWORDS:
                visibility = word
            elif word in MUTABILITY_KEYWORDS:
                mutability = word
            elif word == "constant":
                # pre-0.5 spelling of view
                mutability = "view"
            elif word in _HEADER_NOISE:
                continue
            else:
                modifiers.append(word)

        return visibility, mutability, modifiers, returns

    # Modifiers, events and state variables

    def _extract_modifiers(
        self, masked: str, raw_lines: List[str], index: LineIndex, contract_name: str
    ) -> List[ModifierInfo]:
        modifiers: List[ModifierInfo] = []
        consumed = 0

        for match in self.MODIFIER_HEADER.finditer(masked):
            if match.start() < consumed:
                continue

            header_line = index.line_of(match.start())
            params_text = ""
            cursor = match.end()
            stripped = masked[cursor:].lstrip()
            if stripped.startswith("("):
                open_paren = masked.index("(", cursor)
                close_paren = matching_close(masked, open_paren)
                if close_paren == -1:
                    self._degraded(contract_name, header_line, "unterminated modifier parameters")
                    break
                params_text = masked[open_paren + 1:close_paren]
                cursor = close_paren + 1

            terminator, kind = scan_to_terminator(masked, cursor)
            if kind == "{":
                consumed, body = self._block(masked, raw_lines, index, terminator, header_line, contract_name)
            else:
                consumed, body = terminator + 1, ""

            modifiers.append(ModifierInfo(
                name=match.group("name"),
                parameters=tuple(parse_parameters(params_text)),
                body=body,
                line_number=header_line,
            ))

        return modifiers

    def _extract_events(self, masked: str, index: LineIndex) -> List[EventInfo]:
        return [
            EventInfo(
                name=match.group("name"),
                parameters=tuple(parse_parameters(match.group("params"))),
                anonymous=bool(match.group("anonymous")),
                line_number=index.line_of(match.start()),
            )
            for match in self.EVENT.finditer(masked)
        ]

    def _extract_state_variables(self, masked: str, raw_lines: List[str]) -> List[StateVariable]:
        masked_lines = masked.splitlines()
        depths = line_depths(masked_lines)
        variables: List[StateVariable] = []

        for number, (line, depth) in enumerate(zip(masked_lines, depths), start=1):
            # File-level constants sit at depth 0, contract storage at depth 1
            if depth > 1:
                continue
            match = self.STATE_VARIABLE.match(line)
            if not match:
                continue

            qualifiers = match.group("qualifiers").split()
            visibility = next((q for q in qualifiers if q in VISIBILITY_KEYWORDS), "internal")
            initial_value = None
            if match.group("value") is not None:
                start, end = match.span("value")
                initial_value = raw_lines[number - 1][start:end].strip()

            variables.append(StateVariable(
                name=match.group("name"),
                type_name=" ".join(match.group("type").split()),
                visibility=visibility,
                is_constant="constant" in qualifiers,
                is_immutable="immutable" in qualifiers,
                initial_value=initial_value,
                line_number=number,
            ))

        return variables

    # Whole-text directives

    def _extract_imports(self, raw_source: str, masked: str) -> List[str]:
        imports: List[str] = []
        for match in self.IMPORT.finditer(masked):
            statement = raw_source[match.start():match.end()]
            target = self.IMPORT_TARGET.search(statement)
            if target:
                imports.append(target.group(1) or target.group(2))
        return imports

    def _extract_pragmas(self, raw_source: str, masked: str) -> List[str]:
        return [
            " ".join(raw_source[match.start(1):match.end(1)].split())
            for match in self.PRAGMA.finditer(masked)
        ]

    def _extract_license(self, raw_source: str) -> Optional[str]:
        match = self.LICENSE.search(raw_source)
        if not match:
            return None
        value = match.group(1).strip()
        if value.endswith("*/"):
            value = value[:-2].rstrip()
        return value or None

    def _extract_inheritance(self, masked: str) -> List[str]:
        parents: List[str] = []
        for match in self.INHERITANCE.finditer(masked):
            for token in split_top_level(match.group(1)):
                name = token.split("(", 1)[0].strip()
                if name:
                    parents.append(" ".join(name.split()))
        return parents

    @staticmethod
    def _version_from_pragmas(pragmas: List[str]) -> str:
        for pragma in pragmas:
            parts = pragma.split(None, 1)
            if len(parts) == 2 and parts[0] == "solidity":
                return parts[1].strip()
        return "unknown"

    # Block extraction

    def _block(
        self,
        masked: str,
        raw_lines: List[str],
        index: LineIndex,
        brace_index: int,
        header_line: int,
        contract_name: str,
    ) -> Tuple[int, str]:
        """
        Return (end offset, raw body) for the block opening at ``brace_index``.

        The body runs from the header line through the line holding the
        matching closing brace. An unterminated block runs to end of file.
        """
        close = matching_close(masked, brace_index)
        if close == -1:
            self._degraded(contract_name, header_line, "unterminated block, body runs to end of file")
            return len(masked), "\n".join(raw_lines[header_line - 1:])

        end_line = index.line_of(close)
        return close + 1, "\n".join(raw_lines[header_line - 1:end_line])

    @staticmethod
    def _degraded(contract_name: str, line: int, reason: str) -> None:
        message = f"{contract_name}:{line}: {reason}"
        logger.debug(f"Degraded parse of {message}")
        warnings.warn(message, ParseDegraded, stacklevel=3)


def _header_words(tail: str) -> List[Tuple[str, str]]:
    """
    Split a header tail into (word, parenthesised argument text) pairs.

    ``returns (uint a)`` yields ``("returns", "uint a")``; ``onlyOwner``
    yields ``("onlyOwner", "")``.
    """
    words: List[Tuple[str, str]] = []
    i = 0
    n = len(tail)
    while i < n:
        ch = tail[i]
        if ch.isalpha() or ch in "_$":
            start = i
            while i < n and (tail[i].isalnum() or tail[i] in "_$."):
                i += 1
            word = tail[start:i]
            j = i
            while j < n and tail[j].isspace():
                j += 1
            args = ""
            if j < n and tail[j] == "(":
                close = matching_close(tail, j)
                if close == -1:
                    close = n - 1
                args = tail[j + 1:close]
                i = close + 1
            words.append((word, args))
        else:
            i += 1
    return words


def parse_parameters(text: str) -> List[Parameter]:
    """
    Parse a parameter list body such as ``address indexed from, uint256 value``.

    Each comma-separated token is split on whitespace; the first word is the
    type and the first non-qualifier word after it is the name. Tokens with
    fewer than two words, or with no name, are dropped.
    """
    parameters: List[Parameter] = []
    for token in split_top_level(text):
        words = split_words(token.strip())
        if len(words) < 2:
            continue

        type_name = words[0]
        rest = words[1:]
        if type_name == "address" and rest and rest[0] == "payable":
            type_name = "address payable"
            rest = rest[1:]

        names = [word for word in rest if word not in PARAMETER_QUALIFIERS]
        if not names:
            continue

        parameters.append(Parameter(
            name=names[0],
            type_name=type_name,
            indexed="indexed" in words,
        ))
    return parameters
