"""
ink! (Substrate / Polkadot) heuristic battery

Rust lifetimes look like unterminated character literals, so these checks
match against the raw source instead of the masked copy.
"""

import re
from typing import List, Optional

from ..models.contract import ContractModel
from ..models.finding import Severity, VulnerabilityCategory
from .base import CheckMatch, HeuristicCheck, Platform, PlatformPlugin
from .patterns import Block, blocks, contains, first_line

MESSAGE = re.compile(
    r'#\[ink\(message(?P<attrs>[^\]]*)\)\]\s*(?:#\[[^\]]*\]\s*)*'
    r'pub\s+fn\s+(?P<name>\w+)\s*(?:<[^>]*>)?\s*\([^)]*\)\s*(?:->\s*[^{]+)?\{'
)
FUNCTION = re.compile(r'\bfn\s+(?P<name>\w+)\s*(?:<[^>]*>)?\s*\([^)]*\)\s*(?:->\s*[^{]+)?\{')
SELF_WRITE = re.compile(r'\bself\.\w+(?:\.\w+)*\s*(?:\+=|-=|\*=|(?<![=!<>])=(?!=))|\bself\.\w+\.(?:insert|remove|push)\s*\(')
UNCHECKED_ARITHMETIC = re.compile(r'\w\s*(?:\+|-|\*)=\s*\w|\w\s*[+*]\s*\w')


def _raw(contract: ContractModel, pattern: str) -> Optional[CheckMatch]:
    return first_line(contract, pattern, mask=False)


def _has(contract: ContractModel, pattern: str) -> bool:
    return contains(contract, pattern, mask=False)


def _messages(contract: ContractModel) -> List[Block]:
    return blocks(contract, MESSAGE, mask=False)


def _is_mutating(block: Block) -> bool:
    return "&mut self" in block.header


def check_missing_contract_attribute(contract: ContractModel) -> Optional[CheckMatch]:
    if _has(contract, r'#\[ink::contract'):
        return None
    return CheckMatch(line_number=1)


def check_missing_storage(contract: ContractModel) -> Optional[CheckMatch]:
    if _has(contract, r'#\[ink\(storage\)\]'):
        return None
    return CheckMatch(line_number=1)


def check_missing_constructor(contract: ContractModel) -> Optional[CheckMatch]:
    if _has(contract, r'#\[ink\(constructor'):
        return None
    return CheckMatch(line_number=1)


def check_immutable_storage_write(contract: ContractModel) -> Optional[CheckMatch]:
    for block in blocks(contract, FUNCTION, mask=False):
        if "&self" in block.header and not _is_mutating(block) and SELF_WRITE.search(block.body):
            return CheckMatch(
                line_number=block.line_number,
                detail=f"Function '{block.name}' takes &self but writes to storage.",
            )
    return None


def check_mapping_import(contract: ContractModel) -> Optional[CheckMatch]:
    if _has(contract, r'\buse\s+ink(?:_storage)?::[\w:{}, ]*\bMapping\b'):
        return None
    return _raw(contract, r'\bMapping\s*<')


def check_message_access_control(contract: ContractModel) -> Optional[CheckMatch]:
    for block in _messages(contract):
        if _is_mutating(block) and "caller()" not in block.body:
            return CheckMatch(
                line_number=block.line_number,
                detail=f"Message '{block.name}' mutates storage without checking self.env().caller().",
            )
    return None


def check_payable_value(contract: ContractModel) -> Optional[CheckMatch]:
    if _has(contract, r'\btransferred_value\s*\('):
        return None
    return _raw(contract, r'#\[ink\(message[^\]]*\bpayable\b')


def check_message_result(contract: ContractModel) -> Optional[CheckMatch]:
    for block in _messages(contract):
        if _is_mutating(block) and "Result" not in block.header:
            return CheckMatch(
                line_number=block.line_number,
                detail=f"Message '{block.name}' mutates storage but does not return a Result.",
            )
    return None


def check_event_topics(contract: ContractModel) -> Optional[CheckMatch]:
    if _has(contract, r'#\[ink\(topic\)\]'):
        return None
    return _raw(contract, r'#\[ink\(event\)\]')


def check_event_emitted(contract: ContractModel) -> Optional[CheckMatch]:
    if _has(contract, r'\bemit_event\s*\('):
        return None
    return _raw(contract, r'#\[ink\(event\)\]')


def check_custom_errors(contract: ContractModel) -> Optional[CheckMatch]:
    if _has(contract, r'\benum\s+Error\b'):
        return None
    return CheckMatch()


def check_missing_tests(contract: ContractModel) -> Optional[CheckMatch]:
    if _has(contract, r'#\[cfg\(test\)\]|#\[ink::test\]|#\[ink_e2e::test'):
        return None
    return CheckMatch()


def check_integer_overflow(contract: ContractModel) -> Optional[CheckMatch]:
    if not _has(contract, r'\b(?:u8|u16|u32|u64|u128|Balance)\b'):
        return None
    if _has(contract, r'\b(?:checked|saturating)_(?:add|sub|mul)\b'):
        return None
    for block in _messages(contract):
        for offset, line in enumerate(block.body.splitlines()):
            if UNCHECKED_ARITHMETIC.search(line):
                return CheckMatch(line_number=block.line_number + _header_lines(block) + offset)
    return None


def _header_lines(block: Block) -> int:
    return block.header.count("\n")


def validate_ink(contract: ContractModel) -> bool:
    source = contract.source_code
    return "#[ink::contract]" in source or "use ink" in source


def _check(name, title, description, severity, category, confidence, predicate, recommendation=None):
    return HeuristicCheck(
        name=name,
        title=title,
        description=description,
        severity=severity,
        category=category,
        confidence=confidence,
        predicate=predicate,
        recommendation=recommendation,
    )


INK_CHECKS = (
    _check("missing-contract-attribute", "Missing Contract Attribute",
           "The crate has no #[ink::contract] module.",
           Severity.HIGH, VulnerabilityCategory.CODE_QUALITY, 0.9, check_missing_contract_attribute,
           "Annotate the contract module with #[ink::contract]."),
    _check("missing-storage", "Missing Storage Struct",
           "No struct is annotated with #[ink(storage)].",
           Severity.HIGH, VulnerabilityCategory.CODE_QUALITY, 0.9, check_missing_storage,
           "Declare exactly one #[ink(storage)] struct."),
    _check("missing-constructor", "Missing Constructor",
           "No #[ink(constructor)] is defined.",
           Severity.MEDIUM, VulnerabilityCategory.CODE_QUALITY, 0.7, check_missing_constructor,
           "Define a constructor that initializes all storage fields."),
    _check("immutable-storage-write", "Storage Write Through &self",
           "A function takes &self but appears to write storage.",
           Severity.MEDIUM, VulnerabilityCategory.CODE_QUALITY, 0.6, check_immutable_storage_write,
           "Take &mut self in functions that modify storage."),
    _check("mapping-import", "Missing Mapping Import",
           "Mapping is used without importing ink::storage::Mapping.",
           Severity.MEDIUM, VulnerabilityCategory.CODE_QUALITY, 0.8, check_mapping_import,
           "Import Mapping from ink::storage."),
    _check("message-access-control", "Message Without Access Control",
           "A mutating message does not check the caller.",
           Severity.HIGH, VulnerabilityCategory.ACCESS_CONTROL, 0.7, check_message_access_control,
           "Compare self.env().caller() against an owner or role before mutating storage."),
    _check("payable-without-value-check", "Payable Message Without Value Check",
           "A payable message never inspects transferred_value().",
           Severity.MEDIUM, VulnerabilityCategory.INPUT_VALIDATION, 0.6, check_payable_value,
           "Validate self.env().transferred_value() in payable messages."),
    _check("message-without-result", "Message Without Result",
           "A mutating message does not return a Result.",
           Severity.LOW, VulnerabilityCategory.CODE_QUALITY, 0.5, check_message_result,
           "Return Result<T, Error> from messages that can fail."),
    _check("event-without-topics", "Event Without Topics",
           "Events are declared without any #[ink(topic)] fields.",
           Severity.LOW, VulnerabilityCategory.CODE_QUALITY, 0.4, check_event_topics,
           "Mark indexable event fields with #[ink(topic)]."),
    _check("event-not-emitted", "Event Not Emitted",
           "Events are declared but never emitted.",
           Severity.INFO, VulnerabilityCategory.CODE_QUALITY, 0.3, check_event_emitted,
           "Emit events for state changes with self.env().emit_event()."),
    _check("custom-errors", "No Custom Error Type",
           "The contract does not define an Error enum.",
           Severity.INFO, VulnerabilityCategory.CODE_QUALITY, 0.3, check_custom_errors,
           "Define an Error enum and return it from fallible messages."),
    _check("missing-tests", "Missing Tests",
           "The contract has no unit or end-to-end tests.",
           Severity.LOW, VulnerabilityCategory.CODE_QUALITY, 0.5, check_missing_tests,
           "Add #[ink::test] unit tests."),
    _check("integer-overflow", "Unchecked Integer Arithmetic",
           "Integer arithmetic is performed without checked_* or saturating_* helpers.",
           Severity.MEDIUM, VulnerabilityCategory.INTEGER_OVERFLOW, 0.6, check_integer_overflow,
           "Use checked_add/checked_sub or saturating arithmetic."),
)


INK_PLUGIN = PlatformPlugin(
    platform_id=Platform.INK.value,
    display_name="Ink",
    languages=("ink", "rust"),
    tools=("cargo", "cargo-contract", "substrate", "ink-analyzer"),
    validator=validate_ink,
    checks=INK_CHECKS,
)
