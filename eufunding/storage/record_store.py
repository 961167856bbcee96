"""
Generic CRUD storage for records kept in the key-value store.

Partners, saved proposals and funding-scheme templates are all stored as
JSON blobs under a type prefix; the record's `id` completes the key.
"""

import logging
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from eufunding.core.domain_models import PartnerProfile
from eufunding.core.errors import StoreError
from eufunding.core.time_utils import utc_timestamp
from eufunding.core.utils import new_record_id
from .kv_store import KVStore


logger = logging.getLogger(__name__)

T = TypeVar("T")

PARTNER_PREFIX = "partner:"
PROPOSAL_PREFIX = "proposal:"
FUNDING_SCHEME_PREFIX = "funding_scheme:"


class RecordStore(Generic[T]):
    """
    CRUD over KV entries sharing a prefix.

    Usage:
        partners = partner_store(kv)
        partner = partners.create(PartnerProfile(id="", name="ACME"))
        partners.update(partner.id, {"country": "FI"})
    """

    def __init__(
        self,
        kv: KVStore,
        prefix: str,
        from_dict: Callable[[Dict[str, Any]], T],
        to_dict: Callable[[T], Dict[str, Any]]
    ):
        self.kv = kv
        self.prefix = prefix
        self.from_dict = from_dict
        self.to_dict = to_dict

    def _key(self, record_id: str) -> str:
        return f"{self.prefix}{record_id}"

    def create(self, record: T) -> T:
        """
        Persist a new record, assigning an id and created_at when missing.

        Returns:
            The stored record
        """
        data = dict(self.to_dict(record))
        if not data.get("id"):
            data["id"] = new_record_id()
        if not data.get("created_at"):
            data["created_at"] = utc_timestamp()

        self.kv.set(self._key(data["id"]), data)
        logger.info(f"Created {self.prefix.rstrip(':')} {data['id']}")
        return self.from_dict(data)

    def get(self, record_id: str) -> Optional[T]:
        data = self.kv.get(self._key(record_id))
        return self.from_dict(data) if data is not None else None

    def list(self) -> List[T]:
        return [self.from_dict(data) for data in self.kv.get_by_prefix(self.prefix)]

    def update(self, record_id: str, changes: Dict[str, Any]) -> T:
        """
        Merge changes into an existing record.

        The id cannot be changed.

        Raises:
            StoreError: if no record has this id
        """
        data = self.kv.get(self._key(record_id))
        if data is None:
            raise StoreError(f"No {self.prefix.rstrip(':')} with id {record_id}")

        data.update({k: v for k, v in changes.items() if k != "id"})
        data["updated_at"] = utc_timestamp()
        self.kv.set(self._key(record_id), data)
        return self.from_dict(data)

    def delete(self, record_id: str) -> None:
        self.kv.delete(self._key(record_id))
        logger.info(f"Deleted {self.prefix.rstrip(':')} {record_id}")


def _partner_to_dict(partner: PartnerProfile) -> Dict[str, Any]:
    return partner.to_dict()


def partner_store(kv: KVStore) -> RecordStore[PartnerProfile]:
    return RecordStore(kv, PARTNER_PREFIX, PartnerProfile.from_dict, _partner_to_dict)


def proposal_store(kv: KVStore) -> RecordStore[Dict[str, Any]]:
    """Saved proposals, kept as plain dicts."""
    return RecordStore(kv, PROPOSAL_PREFIX, dict, dict)


def funding_scheme_store(kv: KVStore) -> RecordStore[Dict[str, Any]]:
    """Funding-scheme templates (section structure extracted from call documents)."""
    return RecordStore(kv, FUNDING_SCHEME_PREFIX, dict, dict)
