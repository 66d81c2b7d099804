"""
Structural parsing of contract source text
"""

from .contract_parser import ContractParser, parse_parameters
from .async_parser import AsyncContractParser
from .lexical import mask_comments_and_strings

__all__ = [
    "ContractParser",
    "AsyncContractParser",
    "parse_parameters",
    "mask_comments_and_strings",
]
