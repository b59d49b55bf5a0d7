"""Path management utilities for contract-ledger library."""

from pathlib import Path
from typing import Optional, Union

from .constants import DEFAULT_BUILD_DIR


def get_default_build_dir() -> Path:
    """
    Get default build artifacts directory.

    Returns:
        Path to ./resources/public/contracts/build
    """
    return Path.cwd() / DEFAULT_BUILD_DIR


def get_artifact_paths(
    contract_name: str, build_dir: Optional[Union[Path, str]] = None
) -> tuple[Path, Path, Path]:
    """
    Get artifact file paths for a contract.

    Args:
        contract_name: Declared contract name (file stem)
        build_dir: Custom build directory (defaults to ./resources/public/contracts/build)

    Returns:
        Tuple of (json_path, abi_path, bin_path)
    """
    if build_dir is None:
        build_dir = get_default_build_dir()
    else:
        build_dir = Path(build_dir).absolute()

    json_path = build_dir / f"{contract_name}.json"
    abi_path = build_dir / f"{contract_name}.abi"
    bin_path = build_dir / f"{contract_name}.bin"

    return (json_path, abi_path, bin_path)
