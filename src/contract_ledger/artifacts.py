"""Build artifact loading for contract-ledger library."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import ArtifactNotFoundError
from .ledger import Ledger
from .paths import get_artifact_paths
from .types import ContractArtifact, ContractRecord


class ArtifactFormat(Enum):
    """
    Build artifact file formats.

    - BUILD_JSON: single {name}.json build artifact with "abi" and "bytecode"
    - ABI_BIN: separate {name}.abi and {name}.bin files
    """

    BUILD_JSON = "build-json"
    ABI_BIN = "abi-bin"


def detect_artifact_format(
    contract_name: str, build_dir: Optional[Union[Path, str]] = None
) -> Optional[ArtifactFormat]:
    """
    Detect which artifact format is available for a contract.

    Args:
        contract_name: Declared contract name
        build_dir: Build artifacts directory

    Returns:
        ArtifactFormat.BUILD_JSON if {name}.json exists
        ArtifactFormat.ABI_BIN if only {name}.abi or {name}.bin exists
        None if no artifact files found
    """
    json_path, abi_path, bin_path = get_artifact_paths(contract_name, build_dir)

    # Build JSON is preferred
    if json_path.exists():
        return ArtifactFormat.BUILD_JSON

    if abi_path.exists() or bin_path.exists():
        return ArtifactFormat.ABI_BIN

    return None


def strip_hex_prefix(bytecode: Optional[str]) -> Optional[str]:
    if bytecode is None:
        return None
    bytecode = bytecode.strip()
    if bytecode.startswith(("0x", "0X")):
        return bytecode[2:]
    return bytecode


def load_contract_artifact(
    contract_name: str,
    build_dir: Optional[Union[Path, str]] = None,
    strict: bool = False,
) -> ContractArtifact:
    """
    Load interface descriptor and bytecode for a contract.

    Args:
        contract_name: Declared contract name
        build_dir: Build artifacts directory
        strict: Raise instead of returning an empty artifact when nothing is found

    Returns:
        ContractArtifact; fields are None where files are missing.
        Bytecode never carries a 0x prefix.

    Raises:
        ArtifactNotFoundError: If strict and no artifact files exist
    """
    json_path, abi_path, bin_path = get_artifact_paths(contract_name, build_dir)

    match detect_artifact_format(contract_name, build_dir):
        case ArtifactFormat.BUILD_JSON:
            with open(json_path) as f:
                data = json.load(f)
            return ContractArtifact(
                abi=data.get("abi"),
                bytecode=strip_hex_prefix(data.get("bytecode")),
                source_format=ArtifactFormat.BUILD_JSON.value,
            )
        case ArtifactFormat.ABI_BIN:
            abi = None
            bytecode = None
            if abi_path.exists():
                with open(abi_path) as f:
                    abi = json.load(f)
            if bin_path.exists():
                bytecode = strip_hex_prefix(bin_path.read_text())
            return ContractArtifact(
                abi=abi, bytecode=bytecode, source_format=ArtifactFormat.ABI_BIN.value
            )
        case None:
            if strict:
                raise ArtifactNotFoundError(
                    f"No build artifact for '{contract_name}' in {json_path.parent}"
                )
            return ContractArtifact()


def load_contract_files(
    record: ContractRecord,
    ledger: Ledger,
    build_dir: Optional[Union[Path, str]] = None,
) -> dict[str, Any]:
    """
    Load artifacts for a record and bind its instance.

    Args:
        record: Contract record (name and address are used)
        ledger: Ledger used to bind the instance
        build_dir: Build artifacts directory

    Returns:
        Field mapping {abi, bytecode, instance} ready to merge into the registry
    """
    artifact = load_contract_artifact(record.artifact_name, build_dir)
    return {
        "abi": artifact.abi,
        "bytecode": artifact.bytecode,
        "instance": ledger.bind_instance(artifact.abi, record.address),
    }
