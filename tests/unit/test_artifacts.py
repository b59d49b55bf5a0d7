"""Unit tests for build artifact detection and loading."""

import json
from pathlib import Path

import pytest

from contract_ledger.artifacts import (
    ArtifactFormat,
    detect_artifact_format,
    load_contract_artifact,
    load_contract_files,
    strip_hex_prefix,
)
from contract_ledger.exceptions import ArtifactNotFoundError
from contract_ledger.types import ContractRecord

from conftest import IMPL_ABI, TOKEN_ABI, TOKEN_ADDRESS, FakeInstance


class TestDetectArtifactFormat:
    """Test the detect_artifact_format function."""

    def test_detects_build_json_format(self, build_dir: Path):
        """Test detection of a single JSON build artifact."""
        assert detect_artifact_format("Token", build_dir) == ArtifactFormat.BUILD_JSON

    def test_detects_abi_bin_format(self, build_dir: Path):
        """Test detection of separate .abi/.bin files."""
        assert detect_artifact_format("Impl", build_dir) == ArtifactFormat.ABI_BIN

    def test_detects_none_when_no_files_exist(self, build_dir: Path):
        """Test returns None when no artifact found."""
        assert detect_artifact_format("Missing", build_dir) is None

    def test_build_json_priority_over_abi_bin(self, tmp_path: Path):
        """Test that the JSON artifact is checked first."""
        (tmp_path / "Token.json").write_text("{}")
        (tmp_path / "Token.abi").write_text("[]")
        (tmp_path / "Token.bin").write_text("00")

        assert detect_artifact_format("Token", tmp_path) == ArtifactFormat.BUILD_JSON

    def test_abi_only_is_abi_bin_format(self, tmp_path: Path):
        """Test that an .abi file without .bin still counts."""
        (tmp_path / "Token.abi").write_text("[]")

        assert detect_artifact_format("Token", tmp_path) == ArtifactFormat.ABI_BIN


class TestLoadContractArtifact:
    """Test the load_contract_artifact function."""

    def test_loads_build_json(self, build_dir: Path):
        """Test loading abi and bytecode from a JSON artifact."""
        artifact = load_contract_artifact("Token", build_dir)

        assert artifact.abi == TOKEN_ABI
        assert artifact.bytecode == "6060604052"
        assert artifact.source_format == "build-json"

    def test_loads_abi_bin_files(self, build_dir: Path):
        """Test loading from separate files, trimming the trailing newline."""
        artifact = load_contract_artifact("Impl", build_dir)

        assert artifact.abi == IMPL_ABI
        assert artifact.bytecode == "60606040"
        assert artifact.source_format == "abi-bin"

    def test_missing_bin_file_gives_no_bytecode(self, tmp_path: Path):
        """Test that a lone .abi file yields an artifact without bytecode."""
        (tmp_path / "Token.abi").write_text(json.dumps(TOKEN_ABI))

        artifact = load_contract_artifact("Token", tmp_path)

        assert artifact.abi == TOKEN_ABI
        assert artifact.bytecode is None

    def test_build_json_without_bytecode(self, tmp_path: Path):
        """Test a JSON artifact of an interface (no bytecode key)."""
        (tmp_path / "IToken.json").write_text(json.dumps({"abi": TOKEN_ABI}))

        artifact = load_contract_artifact("IToken", tmp_path)

        assert artifact.abi == TOKEN_ABI
        assert artifact.bytecode is None

    def test_missing_artifact_returns_empty(self, tmp_path: Path):
        """Test that absent artifacts give None fields instead of failing."""
        artifact = load_contract_artifact("Missing", tmp_path)

        assert artifact.abi is None
        assert artifact.bytecode is None
        assert artifact.source_format is None

    def test_missing_artifact_strict_raises(self, tmp_path: Path):
        """Test that strict loading raises ArtifactNotFoundError."""
        with pytest.raises(ArtifactNotFoundError):
            load_contract_artifact("Missing", tmp_path, strict=True)


class TestStripHexPrefix:
    """Test the strip_hex_prefix helper."""

    def test_strips_prefix(self):
        assert strip_hex_prefix("0x6060") == "6060"

    def test_leaves_plain_bytecode(self):
        assert strip_hex_prefix("6060") == "6060"

    def test_none(self):
        assert strip_hex_prefix(None) is None


class TestLoadContractFiles:
    """Test the load_contract_files function."""

    def test_binds_instance_at_record_address(self, build_dir: Path, ledger):
        """Test that the loaded abi is bound at the record's address."""
        record = ContractRecord(key="token", name="Token", address=TOKEN_ADDRESS)

        fields = load_contract_files(record, ledger, build_dir)

        assert fields["abi"] == TOKEN_ABI
        assert fields["bytecode"] == "6060604052"
        assert isinstance(fields["instance"], FakeInstance)
        assert fields["instance"].address == TOKEN_ADDRESS
        assert fields["instance"].abi == TOKEN_ABI

    def test_uses_key_when_name_missing(self, tmp_path: Path, ledger):
        """Test that the key is the artifact name when no name is declared."""
        (tmp_path / "token.json").write_text(json.dumps({"abi": [], "bytecode": "00"}))
        record = ContractRecord(key="token")

        fields = load_contract_files(record, ledger, tmp_path)

        assert fields["bytecode"] == "00"
