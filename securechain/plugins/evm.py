"""
EVM (Solidity / Vyper) heuristic battery
"""

import re
from typing import Optional

from ..models.contract import ContractModel, FunctionInfo
from ..models.finding import Severity, VulnerabilityCategory
from .base import CheckMatch, HeuristicCheck, Platform, PlatformPlugin
from .patterns import body_lines, contains, first_line

SWC_REGISTRY = "https://swcregistry.io/docs/"

VALUE_TRANSFER = re.compile(r'\.(?:call\s*\{|call\.value\s*\(|call\s*\(|transfer\s*\(|send\s*\()')
LOW_LEVEL_CALL = re.compile(r'\.(?:call|delegatecall|staticcall)\s*[({]|\.call\.value\s*\(')
CHECKED_CALL = re.compile(r'\b(?:require|assert|if)\s*\(|(?<![=!<>])=(?!=)|\breturn\b')
ASSIGNMENT = r'(?:\s*\[[^\]]*\])*(?:\.\w+)*\s*(?:\+=|-=|\*=|/=|(?<![=!<>])=(?!=)|\+\+|--)'
LOOP_OVER_LENGTH = re.compile(r'\b(?:for|while)\s*\([^)]*\.length')
TIMESTAMP_CONDITION = re.compile(
    r'(?:\b(?:require|if|while)\s*\(|[<>%]).*\b(?:block\.timestamp|now)\b'
    r'|\b(?:block\.timestamp|now)\b.*(?:[<>%]|==)'
)
ARITHMETIC = re.compile(r'\+=|-=|\*=|\w\s*[+*]\s*\w|\w\s+-\s+\w')
PRIVILEGED_NAME = re.compile(
    r'^(?:set|update|change|withdraw|mint|burn|pause|unpause|upgrade|kill|destroy|'
    r'transferOwnership|renounceOwnership|emergency|sweep|rescue)',
    re.IGNORECASE,
)
PRIVILEGED_BODY = re.compile(r'\b(?:selfdestruct|suicide)\s*\(|\bowner\s*=(?!=)')
PRAGMA_VERSION = re.compile(r'(\d+)\.(\d+)')


def _state_write(contract: ContractModel) -> re.Pattern:
    names = contract.state_variable_names
    if not names:
        return re.compile(r'\w+\s*\[[^\]]*\]\s*(?:\+=|-=|(?<![=!<>])=(?!=))|\bdelete\s+\w')
    joined = "|".join(re.escape(name) for name in names)
    return re.compile(rf'\b(?:{joined})\b{ASSIGNMENT}|\bdelete\s+(?:{joined})\b')


def _is_guarded(func: FunctionInfo) -> bool:
    return any("nonreentrant" in modifier.lower() for modifier in func.modifiers)


def check_reentrancy(contract: ContractModel) -> Optional[CheckMatch]:
    """A value-transferring call followed by a state write in the same function"""
    state_write = _state_write(contract)
    for func in contract.functions:
        if not func.body or _is_guarded(func):
            continue
        lines = body_lines(func)
        for position, (number, line) in enumerate(lines):
            if not VALUE_TRANSFER.search(line):
                continue
            if any(state_write.search(later) for _, later in lines[position + 1:]):
                return CheckMatch(
                    line_number=number,
                    detail=(
                        f"Function '{func.name}' makes an external call before updating state. "
                        "A malicious callee can re-enter the function and observe stale state."
                    ),
                )
    return None


def check_tx_origin(contract: ContractModel) -> Optional[CheckMatch]:
    return first_line(contract, r'\btx\.origin\b')


def check_selfdestruct(contract: ContractModel) -> Optional[CheckMatch]:
    return first_line(contract, r'\b(?:selfdestruct|suicide)\s*\(')


def check_unchecked_call(contract: ContractModel) -> Optional[CheckMatch]:
    for func in contract.functions:
        for number, line in body_lines(func):
            match = LOW_LEVEL_CALL.search(line)
            if match and not CHECKED_CALL.search(line[:match.start()]):
                return CheckMatch(
                    line_number=number,
                    detail=f"Return value of a low-level call in '{func.name}' is not checked.",
                )
    return None


def check_delegatecall(contract: ContractModel) -> Optional[CheckMatch]:
    return first_line(contract, r'\.delegatecall\s*\(')


def check_unbounded_loop(contract: ContractModel) -> Optional[CheckMatch]:
    return first_line(contract, LOOP_OVER_LENGTH)


def check_timestamp(contract: ContractModel) -> Optional[CheckMatch]:
    return first_line(contract, TIMESTAMP_CONDITION)


def check_unprotected_function(contract: ContractModel) -> Optional[CheckMatch]:
    for func in contract.functions:
        if func.is_constructor or not func.is_externally_callable:
            continue
        if func.state_mutability in ("view", "pure") or func.modifiers:
            continue
        if "msg.sender" in func.body:
            continue
        if PRIVILEGED_NAME.match(func.name) or PRIVILEGED_BODY.search(func.body):
            return CheckMatch(
                line_number=func.line_number,
                detail=(
                    f"Function '{func.name}' is {func.visibility}, changes privileged state "
                    "and has neither an access-control modifier nor a msg.sender check."
                ),
            )
    return None


def check_floating_pragma(contract: ContractModel) -> Optional[CheckMatch]:
    for pragma in contract.pragma_directives:
        if not pragma.startswith("solidity"):
            continue
        constraint = pragma[len("solidity"):]
        if "^" in constraint or (">" in constraint and "<" not in constraint):
            return first_line(contract, r'\bpragma\s+solidity\b') or CheckMatch()
    return None


def check_legacy_arithmetic(contract: ContractModel) -> Optional[CheckMatch]:
    match = PRAGMA_VERSION.search(contract.compiler_version)
    if not match or (int(match.group(1)), int(match.group(2))) >= (0, 8):
        return None
    if contains(contract, r'\bSafeMath\b') or any("SafeMath" in path for path in contract.imports):
        return None
    for func in contract.functions:
        for number, line in body_lines(func):
            if ARITHMETIC.search(line) and not LOOP_OVER_LENGTH.search(line):
                return CheckMatch(line_number=number)
    return None


def validate_evm(contract: ContractModel) -> bool:
    source = contract.source_code
    if "pragma solidity" not in source and "contract" not in source:
        return False
    return bool(contract.functions or contract.state_variables)


EVM_CHECKS = (
    HeuristicCheck(
        name="reentrancy",
        title="Potential Reentrancy",
        description="External call is made before contract state is updated.",
        severity=Severity.HIGH,
        category=VulnerabilityCategory.REENTRANCY,
        confidence=0.8,
        predicate=check_reentrancy,
        recommendation=(
            "Apply the checks-effects-interactions pattern: update state before the external call, "
            "or protect the function with a reentrancy guard."
        ),
        cwe_id="CWE-362",
        references=(SWC_REGISTRY + "SWC-107",),
    ),
    HeuristicCheck(
        name="tx-origin",
        title="Use of tx.origin",
        description="tx.origin is used, which can be exploited by phishing attacks.",
        severity=Severity.HIGH,
        category=VulnerabilityCategory.ACCESS_CONTROL,
        confidence=0.9,
        predicate=check_tx_origin,
        recommendation="Use msg.sender instead of tx.origin for authorization.",
        cwe_id="CWE-477",
        references=(SWC_REGISTRY + "SWC-115",),
    ),
    HeuristicCheck(
        name="selfdestruct",
        title="Use of selfdestruct",
        description="Contract uses selfdestruct, which permanently removes code and forwards its balance.",
        severity=Severity.MEDIUM,
        category=VulnerabilityCategory.CODE_QUALITY,
        confidence=0.7,
        predicate=check_selfdestruct,
        recommendation="Avoid selfdestruct or restrict it behind strict access control.",
        references=(SWC_REGISTRY + "SWC-106",),
    ),
    HeuristicCheck(
        name="unchecked-low-level-call",
        title="Unchecked Low-Level Call",
        description="Return value of a low-level call is not checked.",
        severity=Severity.HIGH,
        category=VulnerabilityCategory.UNHANDLED_EXCEPTIONS,
        confidence=0.8,
        predicate=check_unchecked_call,
        recommendation="Check the boolean returned by call/delegatecall/staticcall and revert on failure.",
        cwe_id="CWE-252",
        references=(SWC_REGISTRY + "SWC-104",),
    ),
    HeuristicCheck(
        name="delegatecall",
        title="Use of delegatecall",
        description="delegatecall executes foreign code in the storage context of this contract.",
        severity=Severity.HIGH,
        category=VulnerabilityCategory.LOW_LEVEL_CALLS,
        confidence=0.7,
        predicate=check_delegatecall,
        recommendation="Only delegatecall into trusted, immutable implementation addresses.",
        cwe_id="CWE-829",
        references=(SWC_REGISTRY + "SWC-112",),
    ),
    HeuristicCheck(
        name="unbounded-loop",
        title="Loop Over Dynamic Array",
        description="Loop bound depends on a dynamic array length and may exceed the block gas limit.",
        severity=Severity.MEDIUM,
        category=VulnerabilityCategory.DENIAL_OF_SERVICE,
        confidence=0.6,
        predicate=check_unbounded_loop,
        recommendation="Bound loop iterations or switch to a pull-based pattern.",
        cwe_id="CWE-400",
        references=(SWC_REGISTRY + "SWC-128",),
    ),
    HeuristicCheck(
        name="timestamp-dependence",
        title="Timestamp Dependence",
        description="Control flow depends on block.timestamp, which miners can influence.",
        severity=Severity.LOW,
        category=VulnerabilityCategory.TIMESTAMP_DEPENDENCE,
        confidence=0.6,
        predicate=check_timestamp,
        recommendation="Do not use block.timestamp for randomness or tight timing conditions.",
        references=(SWC_REGISTRY + "SWC-116",),
    ),
    HeuristicCheck(
        name="unprotected-function",
        title="Missing Access Control",
        description="A privileged function can be called by anyone.",
        severity=Severity.HIGH,
        category=VulnerabilityCategory.ACCESS_CONTROL,
        confidence=0.6,
        predicate=check_unprotected_function,
        recommendation="Restrict the function with an access-control modifier such as onlyOwner.",
        cwe_id="CWE-284",
        references=(SWC_REGISTRY + "SWC-105",),
    ),
    HeuristicCheck(
        name="floating-pragma",
        title="Floating Pragma",
        description="The compiler version is not locked.",
        severity=Severity.LOW,
        category=VulnerabilityCategory.CODE_QUALITY,
        confidence=0.8,
        predicate=check_floating_pragma,
        recommendation="Lock the pragma to the exact compiler version the contract was tested with.",
        references=(SWC_REGISTRY + "SWC-103",),
    ),
    HeuristicCheck(
        name="legacy-arithmetic",
        title="Unchecked Arithmetic",
        description="Compiler versions before 0.8 do not check arithmetic for overflow and SafeMath is not used.",
        severity=Severity.MEDIUM,
        category=VulnerabilityCategory.INTEGER_OVERFLOW,
        confidence=0.6,
        predicate=check_legacy_arithmetic,
        recommendation="Upgrade to Solidity 0.8 or use SafeMath for arithmetic.",
        cwe_id="CWE-190",
        references=(SWC_REGISTRY + "SWC-101",),
    ),
)


EVM_PLUGIN = PlatformPlugin(
    platform_id=Platform.EVM.value,
    display_name="EVM",
    languages=("solidity", "vyper"),
    tools=("slither", "mythril", "echidna", "foundry", "solhint"),
    validator=validate_evm,
    checks=EVM_CHECKS,
)
