"""Library placeholder linking for contract bytecode."""

import re
from typing import Mapping, Optional

from eth_utils import is_hex_address
from loguru import logger

from .exceptions import LinkingError
from .registry import ContractRegistry

# solc-style library placeholders, e.g. __MyLibrary____________________________
LEFTOVER_PLACEHOLDER = re.compile(r"__[A-Za-z0-9_$:./]{2,}?__")


def link_library(bytecode: str, placeholder: str, library_address: str) -> str:
    """
    Replace every occurrence of a placeholder with a library address.

    Args:
        bytecode: Unlinked bytecode
        placeholder: Placeholder token as it appears in the bytecode
        library_address: 0x-prefixed library address

    Returns:
        Bytecode with the address (without 0x) substituted
    """
    return bytecode.replace(placeholder, library_address[2:])


def link_contract_libraries(
    registry: ContractRegistry,
    bytecode: str,
    placeholder_replacements: Optional[Mapping[str, str]],
) -> str:
    """
    Link all library placeholders of a bytecode.

    A replacement naming a registry key uses that contract's deployed
    address; any other replacement must be an address literal.

    Args:
        registry: Contract registry
        bytecode: Unlinked bytecode
        placeholder_replacements: Placeholder -> address or registry key

    Returns:
        Linked bytecode

    Raises:
        LinkingError: If a replacement resolves to no address
    """
    for placeholder, replacement in (placeholder_replacements or {}).items():
        if replacement in registry:
            address = registry.address(replacement)
            if address is None:
                raise LinkingError(
                    f"Library '{replacement}' for placeholder {placeholder} is not deployed"
                )
        elif is_hex_address(replacement):
            address = replacement
        else:
            raise LinkingError(
                f"Replacement '{replacement}' for placeholder {placeholder} "
                "is neither a contract key nor an address"
            )
        bytecode = link_library(bytecode, placeholder, address)

    leftover = LEFTOVER_PLACEHOLDER.search(bytecode)
    if leftover:
        logger.warning(f"Bytecode still contains unlinked placeholder {leftover.group(0)}")

    return bytecode
