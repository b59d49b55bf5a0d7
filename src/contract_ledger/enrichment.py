"""Event log enrichment for contract-ledger library."""

import re
from typing import Any, Mapping

from .registry import ContractRegistry
from .types import EventLog

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def kebab_case(name: str) -> str:
    """
    Convert a camelCase or snake_case identifier to kebab-case.

    Examples:
        valueChanged -> value-changed
        ownerURIUpdated -> owner-uri-updated
    """
    name = _ACRONYM_BOUNDARY.sub(r"\1-\2", name)
    name = _WORD_BOUNDARY.sub(r"\1-\2", name)
    return name.replace("_", "-").lower()


def normalize_event_name(name: str) -> str:
    """
    Normalize an event name to its identifier form.

    Names whose first character is unchanged by upper-casing (Transfer,
    _Legacy) are kept as-is; the rest are converted to kebab-case.
    """
    if not name or name[0] == name[0].upper():
        return name
    return kebab_case(name)


class EventLogEnricher:
    """Attaches owning contract metadata to raw logs."""

    def __init__(self, registry: ContractRegistry):
        self.registry = registry

    def enrich(self, raw_log: Mapping[str, Any]) -> EventLog:
        """
        Build an EventLog from a raw ledger log.

        Args:
            raw_log: Raw log (address, event, args, block_number,
                     transaction_index, log_index, optional hashes)

        Returns:
            EventLog with normalized event name and metadata-only contract
        """
        owner = self.registry.lookup_by_address(raw_log.get("address"))
        return EventLog(
            address=raw_log.get("address"),
            event=normalize_event_name(raw_log.get("event") or ""),
            args=dict(raw_log.get("args") or {}),
            block_number=raw_log["block_number"],
            transaction_index=raw_log["transaction_index"],
            log_index=raw_log["log_index"],
            transaction_hash=raw_log.get("transaction_hash"),
            block_hash=raw_log.get("block_hash"),
            contract=owner.metadata() if owner else None,
        )
