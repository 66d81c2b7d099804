"""
Move (Aptos / Sui) heuristic battery
"""

import re
from typing import Optional

from ..models.contract import ContractModel
from ..models.finding import Severity, VulnerabilityCategory
from .base import CheckMatch, HeuristicCheck, Platform, PlatformPlugin
from .patterns import blocks, contains, first_line

MOVE_FUNCTION = re.compile(
    r'(?P<prefix>(?:public(?:\s*\(\s*\w+\s*\))?\s+)?(?:entry\s+)?)fun\s+(?P<name>\w+)[^{;]*\{'
)
GLOBAL_STORAGE_MUTATION = re.compile(r'\b(?:borrow_global_mut|move_to|move_from)\b')


def check_unchecked_resource_access(contract: ContractModel) -> Optional[CheckMatch]:
    if contains(contract, r'\bexists\s*<'):
        return None
    return first_line(contract, r'\bmove_from\s*<')


def check_resource_leak(contract: ContractModel) -> Optional[CheckMatch]:
    if contains(contract, r'\bmove_from\b'):
        return None
    return first_line(contract, r'\bmove_to\b')


def check_copyable_capability(contract: ContractModel) -> Optional[CheckMatch]:
    return first_line(contract, r'\bstruct\s+\w*Cap(?:ability)?\w*\s+has\s+[^{]*\bcopy\b')


def check_magic_abort(contract: ContractModel) -> Optional[CheckMatch]:
    return first_line(contract, r'\babort\s+\d+|\bassert!\s*\([^;]*,\s*\d+\s*\)')


def check_mutable_global(contract: ContractModel) -> Optional[CheckMatch]:
    return first_line(contract, r'\bborrow_global_mut\s*<')


def check_missing_acquires(contract: ContractModel) -> Optional[CheckMatch]:
    for block in blocks(contract, MOVE_FUNCTION):
        if re.search(r'\b(?:borrow_global|borrow_global_mut|move_from)\s*<', block.body) \
                and "acquires" not in block.header:
            return CheckMatch(
                line_number=block.line_number,
                detail=f"Function '{block.name}' accesses global storage without an acquires annotation.",
            )
    return None


def check_missing_module(contract: ContractModel) -> Optional[CheckMatch]:
    if contains(contract, r'\bmodule\s+[\w:]+') or contains(contract, r'\bscript\s*\{'):
        return None
    return CheckMatch(line_number=1)


def check_permissive_visibility(contract: ContractModel) -> Optional[CheckMatch]:
    for block in blocks(contract, MOVE_FUNCTION):
        prefix = block.header.split("fun", 1)[0]
        if not re.search(r'\bpublic\s*$|\bpublic\s+entry\b', prefix.strip() + " "):
            continue
        if "&signer" in block.header:
            continue
        if GLOBAL_STORAGE_MUTATION.search(block.body):
            return CheckMatch(
                line_number=block.line_number,
                detail=(
                    f"Public function '{block.name}' mutates global storage without taking a signer; "
                    "consider public(friend) or a signer check."
                ),
            )
    return None


def validate_move(contract: ContractModel) -> bool:
    source = contract.source_code
    has_unit = "module" in source or "script" in source
    has_members = "fun " in source or "struct " in source
    return has_unit and has_members


MOVE_CHECKS = (
    HeuristicCheck(
        name="unchecked-resource-access",
        title="Unchecked Resource Access",
        description="move_from is used without first checking exists<T>.",
        severity=Severity.HIGH,
        category=VulnerabilityCategory.ACCESS_CONTROL,
        confidence=0.8,
        predicate=check_unchecked_resource_access,
        recommendation="Guard move_from with exists<T>(addr) and abort with a named error code.",
    ),
    HeuristicCheck(
        name="resource-leak",
        title="Potential Resource Leak",
        description="Resources are published with move_to but never removed with move_from.",
        severity=Severity.MEDIUM,
        category=VulnerabilityCategory.CODE_QUALITY,
        confidence=0.6,
        predicate=check_resource_leak,
        recommendation="Provide a path to destroy or reclaim published resources.",
    ),
    HeuristicCheck(
        name="copyable-capability",
        title="Capability Management",
        description="A capability struct has the copy ability and can be duplicated by its holder.",
        severity=Severity.HIGH,
        category=VulnerabilityCategory.ACCESS_CONTROL,
        confidence=0.7,
        predicate=check_copyable_capability,
        recommendation="Remove the copy ability from capability types.",
    ),
    HeuristicCheck(
        name="magic-abort-code",
        title="Magic Abort Code",
        description="abort or assert! uses a literal error code instead of a named constant.",
        severity=Severity.LOW,
        category=VulnerabilityCategory.CODE_QUALITY,
        confidence=0.5,
        predicate=check_magic_abort,
        recommendation="Declare error codes as named constants.",
    ),
    HeuristicCheck(
        name="mutable-global-access",
        title="Mutable Global Storage Access",
        description="borrow_global_mut hands out a mutable reference to global storage.",
        severity=Severity.MEDIUM,
        category=VulnerabilityCategory.REENTRANCY,
        confidence=0.6,
        predicate=check_mutable_global,
        recommendation="Keep mutable borrows short and validate state before and after mutation.",
    ),
    HeuristicCheck(
        name="missing-acquires",
        title="Missing acquires Annotation",
        description="A function accesses global storage without declaring acquires.",
        severity=Severity.HIGH,
        category=VulnerabilityCategory.CODE_QUALITY,
        confidence=0.9,
        predicate=check_missing_acquires,
        recommendation="Declare every resource the function borrows or moves in an acquires clause.",
    ),
    HeuristicCheck(
        name="missing-module",
        title="Missing Module Declaration",
        description="Source declares neither a module nor a script.",
        severity=Severity.MEDIUM,
        category=VulnerabilityCategory.CODE_QUALITY,
        confidence=0.8,
        predicate=check_missing_module,
        recommendation="Wrap the code in a module declaration.",
    ),
    HeuristicCheck(
        name="permissive-visibility",
        title="Overly Permissive Visibility",
        description="A public function mutates global storage without requiring a signer.",
        severity=Severity.LOW,
        category=VulnerabilityCategory.ACCESS_CONTROL,
        confidence=0.4,
        predicate=check_permissive_visibility,
        recommendation="Use public(friend) or require a &signer argument.",
    ),
)


MOVE_PLUGIN = PlatformPlugin(
    platform_id=Platform.MOVE.value,
    display_name="Move",
    languages=("move",),
    tools=("move", "move-prover", "aptos", "sui"),
    validator=validate_move,
    checks=MOVE_CHECKS,
)
