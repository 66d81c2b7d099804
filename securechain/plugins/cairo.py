"""
Cairo (StarkNet) heuristic battery
"""

import re
from typing import Optional

from ..models.contract import ContractModel
from ..models.finding import Severity, VulnerabilityCategory
from .base import CheckMatch, HeuristicCheck, Platform, PlatformPlugin
from .patterns import contains, count, first_line

EXTERNAL_MARKER = r'@external\b|#\[external\b|#\[abi\(embed_v0\)\]'
STORAGE_MARKER = r'@storage_var\b|#\[storage\]'
ACCESS_CHECK = r'\bassert_only_owner\b|\bonly_owner\b|\bget_caller_address\b'
MAX_ASSERTS = 10


def check_felt_overflow(contract: ContractModel) -> Optional[CheckMatch]:
    if not contains(contract, r'\bfelt(?:252)?\b'):
        return None
    return first_line(contract, r'\w\s*[*+]\s*\w.*;|\w\s*[*+]=')


def check_felt_conversion(contract: ContractModel) -> Optional[CheckMatch]:
    return first_line(contract, r'\.try_into\(\)\s*\.unwrap\(\)|\bfelt_to_uint\w*\s*\(|\bfelt252_\w+_to_\w+\s*\(')


def check_uninitialized_storage(contract: ContractModel) -> Optional[CheckMatch]:
    if contains(contract, r'@constructor\b|#\[constructor\]|\bfn\s+constructor\b|\binitializer\b'):
        return None
    return first_line(contract, STORAGE_MARKER)


def check_unchecked_storage_read(contract: ContractModel) -> Optional[CheckMatch]:
    if contains(contract, r'\bassert\w*!?\s*\('):
        return None
    return first_line(contract, r'\.read\s*\(')


def check_external_access_control(contract: ContractModel) -> Optional[CheckMatch]:
    if contains(contract, ACCESS_CHECK):
        return None
    return first_line(contract, EXTERNAL_MARKER)


def check_call_reentrancy(contract: ContractModel) -> Optional[CheckMatch]:
    if not contains(contract, STORAGE_MARKER) and not contains(contract, r'\.write\s*\('):
        return None
    return first_line(contract, r'\bcall_contract(?:_syscall)?\b|\w+Dispatcher\s*\{')


def check_excessive_asserts(contract: ContractModel) -> Optional[CheckMatch]:
    total = count(contract, r'\bassert\w*!?\s*\(')
    if total <= MAX_ASSERTS:
        return None
    return CheckMatch(detail=f"Contract contains {total} assertions; consider consolidating validation.")


def check_missing_input_validation(contract: ContractModel) -> Optional[CheckMatch]:
    if contains(contract, r'\bassert\w*!?\s*\('):
        return None
    return first_line(contract, EXTERNAL_MARKER)


def check_namespace(contract: ContractModel) -> Optional[CheckMatch]:
    return first_line(contract, r'\bnamespace\s+\w+')


def check_missing_alloc(contract: ContractModel) -> Optional[CheckMatch]:
    if contains(contract, r'\bimport\b[^\n]*\balloc\b', mask=False):
        return None
    return first_line(contract, r'\balloc\s*\(\s*\)')


def validate_cairo(contract: ContractModel) -> bool:
    source = contract.source_code
    return (
        "%lang starknet" in source
        or "from starkware.cairo.common" in source
        or "#[starknet::contract]" in source
    )


CAIRO_CHECKS = (
    HeuristicCheck(
        name="felt-overflow",
        title="Potential felt Overflow",
        description="Arithmetic on felt values wraps modulo the field prime.",
        severity=Severity.MEDIUM,
        category=VulnerabilityCategory.INTEGER_OVERFLOW,
        confidence=0.6,
        predicate=check_felt_overflow,
        recommendation="Use bounded integer types (u256, u128) or explicit range checks.",
    ),
    HeuristicCheck(
        name="felt-conversion",
        title="Unchecked felt Conversion",
        description="A felt is converted to a narrower type without handling failure.",
        severity=Severity.LOW,
        category=VulnerabilityCategory.INPUT_VALIDATION,
        confidence=0.5,
        predicate=check_felt_conversion,
        recommendation="Handle the conversion result explicitly instead of unwrapping.",
    ),
    HeuristicCheck(
        name="uninitialized-storage",
        title="Uninitialized Storage Variables",
        description="Storage variables are declared but the contract has no constructor or initializer.",
        severity=Severity.MEDIUM,
        category=VulnerabilityCategory.CODE_QUALITY,
        confidence=0.7,
        predicate=check_uninitialized_storage,
        recommendation="Initialize storage in a constructor.",
    ),
    HeuristicCheck(
        name="unchecked-storage-read",
        title="Unchecked Storage Access",
        description="Storage values are read without any validation.",
        severity=Severity.LOW,
        category=VulnerabilityCategory.INPUT_VALIDATION,
        confidence=0.4,
        predicate=check_unchecked_storage_read,
        recommendation="Validate values read from storage before relying on them.",
    ),
    HeuristicCheck(
        name="external-access-control",
        title="External Function Without Access Control",
        description="External functions exist but no caller or owner check is performed anywhere.",
        severity=Severity.HIGH,
        category=VulnerabilityCategory.ACCESS_CONTROL,
        confidence=0.8,
        predicate=check_external_access_control,
        recommendation="Check get_caller_address() against an owner or role in privileged functions.",
    ),
    HeuristicCheck(
        name="call-reentrancy",
        title="Potential Reentrancy via External Call",
        description="The contract calls other contracts and also writes storage.",
        severity=Severity.HIGH,
        category=VulnerabilityCategory.REENTRANCY,
        confidence=0.7,
        predicate=check_call_reentrancy,
        recommendation="Write storage before making external calls, or add a reentrancy guard.",
    ),
    HeuristicCheck(
        name="excessive-asserts",
        title="Excessive Assertions",
        description="The contract contains a large number of assertions.",
        severity=Severity.LOW,
        category=VulnerabilityCategory.CODE_QUALITY,
        confidence=0.5,
        predicate=check_excessive_asserts,
        recommendation="Consolidate validation into helper functions.",
    ),
    HeuristicCheck(
        name="missing-input-validation",
        title="Missing Input Validation",
        description="External functions exist but no assertions validate their inputs.",
        severity=Severity.MEDIUM,
        category=VulnerabilityCategory.INPUT_VALIDATION,
        confidence=0.6,
        predicate=check_missing_input_validation,
        recommendation="Assert on argument ranges and invariants in external functions.",
    ),
    HeuristicCheck(
        name="namespace-usage",
        title="Namespace Usage",
        description="Namespaces are used; make sure functions inside them are not unintentionally exposed.",
        severity=Severity.INFO,
        category=VulnerabilityCategory.CODE_QUALITY,
        confidence=0.3,
        predicate=check_namespace,
    ),
    HeuristicCheck(
        name="missing-alloc-import",
        title="Missing alloc Import",
        description="alloc() is called but never imported.",
        severity=Severity.INFO,
        category=VulnerabilityCategory.CODE_QUALITY,
        confidence=0.2,
        predicate=check_missing_alloc,
        recommendation="Import alloc from starkware.cairo.common.alloc.",
    ),
)


CAIRO_PLUGIN = PlatformPlugin(
    platform_id=Platform.CAIRO.value,
    display_name="Cairo",
    languages=("cairo",),
    tools=("cairo-compile", "starknet-compile", "protostar", "scarb"),
    validator=validate_cairo,
    checks=CAIRO_CHECKS,
)
