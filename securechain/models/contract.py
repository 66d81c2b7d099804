"""
Structural model of a parsed smart contract
"""

from types import MappingProxyType
from typing import Annotated, Mapping, Optional, Tuple

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer

# Read-only view over opaque key/value data; dumps back to a plain dict
Metadata = Annotated[Mapping[str, str], AfterValidator(MappingProxyType), PlainSerializer(dict)]


def _empty_metadata() -> Mapping[str, str]:
    return MappingProxyType({})


class Parameter(BaseModel):
    """A single parameter of a function, modifier or event"""
    model_config = ConfigDict(frozen=True)

    name: str
    type_name: str
    indexed: bool = False


class FunctionInfo(BaseModel):
    """A function declaration and its raw body"""
    model_config = ConfigDict(frozen=True)

    name: str
    visibility: str = Field("internal", description="external, public, internal or private")
    state_mutability: str = Field("none", description="view, pure, payable or none")
    parameters: Tuple[Parameter, ...] = ()
    return_parameters: Tuple[Parameter, ...] = ()
    modifiers: Tuple[str, ...] = ()
    line_number: int = Field(..., ge=1, description="1-based line of the declaration header")
    body: str = ""
    is_constructor: bool = False
    is_fallback: bool = False
    is_receive: bool = False

    @property
    def is_externally_callable(self) -> bool:
        return self.visibility in ("public", "external")

    def has_modifier(self, name: str) -> bool:
        return name in self.modifiers


class StateVariable(BaseModel):
    """A contract-level storage declaration"""
    model_config = ConfigDict(frozen=True)

    name: str
    type_name: str
    visibility: str = "internal"
    is_constant: bool = False
    is_immutable: bool = False
    initial_value: Optional[str] = None
    line_number: int = Field(..., ge=1)


class ModifierInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    parameters: Tuple[Parameter, ...] = ()
    body: str = ""
    line_number: int = Field(..., ge=1)


class EventInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    parameters: Tuple[Parameter, ...] = ()
    anonymous: bool = False
    line_number: int = Field(..., ge=1)


class ContractModel(BaseModel):
    """
    Parsed representation of one contract unit.

    Instances are immutable. The pair (name, file_path) identifies a unit
    within one analysis run.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    file_path: str = ""
    source_code: str
    functions: Tuple[FunctionInfo, ...] = ()
    state_variables: Tuple[StateVariable, ...] = ()
    modifiers: Tuple[ModifierInfo, ...] = ()
    events: Tuple[EventInfo, ...] = ()
    imports: Tuple[str, ...] = ()
    inheritance: Tuple[str, ...] = ()
    compiler_version: str = "unknown"
    pragma_directives: Tuple[str, ...] = ()
    license: Optional[str] = None
    metadata: Metadata = Field(default_factory=_empty_metadata)

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.name, self.file_path)

    @property
    def lines_of_code(self) -> int:
        return len(self.source_code.splitlines())

    @property
    def state_variable_names(self) -> Tuple[str, ...]:
        return tuple(var.name for var in self.state_variables)

    def function(self, name: str) -> Optional[FunctionInfo]:
        """Return the first function with the given name, if any"""
        for func in self.functions:
            if func.name == name:
                return func
        return None

    def line_at(self, line_number: int) -> Optional[str]:
        """Return the raw source line for a 1-based line number"""
        lines = self.source_code.splitlines()
        if 1 <= line_number <= len(lines):
            return lines[line_number - 1]
        return None


class SourceUnit(BaseModel):
    """Raw contract text handed over by a source provider"""
    model_config = ConfigDict(frozen=True)

    name: str
    source_code: str
    file_path: str = ""
    compiler_version: Optional[str] = None
    metadata: Metadata = Field(default_factory=_empty_metadata)
