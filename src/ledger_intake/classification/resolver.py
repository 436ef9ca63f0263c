"""
Registry resolver.

Maps free-text account and category labels from informal notes to the ids
of a caller-supplied registry snapshot.

Lookup order for a label:
1. exact (case-insensitive) key match
2. first key that contains the label or is contained in it, in the order
   the registry was supplied
3. categories only: a bilingual synonym table

The snapshot is read once per resolver; nothing here writes to it.
"""

import logging
from typing import Iterable, Optional

from ..schemas import AccountRecord, CategoryRecord, PreparedTransaction, ToonTransaction
from .keywords import CATEGORY_SYNONYMS

logger = logging.getLogger(__name__)


def _register(table: dict[str, int], key: Optional[str], record_id: int) -> None:
    """Add a lower-cased key; the first registration of a key wins."""
    if not key:
        return
    normalized = key.lower().strip()
    if normalized:
        table.setdefault(normalized, record_id)


def _fuzzy_lookup(table: dict[str, int], label: str) -> Optional[int]:
    """Exact match, then substring containment in either direction."""
    needle = label.lower().strip()
    if not needle:
        return None

    if needle in table:
        return table[needle]

    # dicts keep insertion order, so this is registry order
    for key, record_id in table.items():
        if key in needle or needle in key:
            return record_id
    return None


class RegistryResolver:
    """
    Resolves labels against one account/category snapshot.

    Caches the lookup tables built from the snapshot.
    """

    def __init__(
        self,
        accounts: Iterable[AccountRecord],
        categories: Iterable[CategoryRecord],
    ):
        """
        Initialize the resolver.

        Args:
            accounts: Account snapshot (name, alias and institution are all keys)
            categories: Category snapshot (name is the key)
        """
        self._accounts: dict[str, int] = {}
        self._categories: dict[str, int] = {}

        for account in accounts:
            _register(self._accounts, account.name, account.id)
            _register(self._accounts, account.alias, account.id)
            _register(self._accounts, account.institution, account.id)

        for category in categories:
            _register(self._categories, category.name, category.id)

        logger.debug(
            "Registry loaded: %d account keys, %d category keys",
            len(self._accounts),
            len(self._categories),
        )

    @classmethod
    def from_mapping(cls, data: dict) -> "RegistryResolver":
        """
        Build from plain data, e.g. a parsed YAML registry file:

            accounts:
              - {id: 1, name: BBVA, institution: BBVA Argentina}
            categories:
              - {id: 1, name: Alimentación}
        """
        accounts = [
            AccountRecord(
                id=int(item["id"]),
                name=str(item["name"]),
                alias=item.get("alias"),
                institution=item.get("institution"),
            )
            for item in data.get("accounts") or []
        ]
        categories = [
            CategoryRecord(id=int(item["id"]), name=str(item["name"]))
            for item in data.get("categories") or []
        ]
        return cls(accounts, categories)

    def resolve_account(self, label: Optional[str]) -> Optional[int]:
        """Resolve an account label to its id, or None."""
        if not label:
            return None
        return _fuzzy_lookup(self._accounts, label)

    def resolve_category(self, label: Optional[str]) -> Optional[int]:
        """Resolve a category label to its id, or None."""
        if not label:
            return None

        category_id = _fuzzy_lookup(self._categories, label)
        if category_id is not None:
            return category_id

        canonical = CATEGORY_SYNONYMS.get(label.lower().strip())
        if canonical:
            return self._categories.get(canonical)
        return None

    def prepare_for_insert(self, transactions: list[ToonTransaction]) -> list[PreparedTransaction]:
        """
        Resolve registry ids for parsed notes.

        A transaction whose source account does not resolve is skipped.
        An unresolved destination falls back to the source account; an
        unresolved category becomes None.
        """
        prepared = []
        for tx in transactions:
            source_id = self.resolve_account(tx.source)
            if source_id is None:
                logger.warning(
                    "Skipping transaction: source account %r not found (note=%r)",
                    tx.source,
                    tx.note,
                )
                continue

            destination_id = self.resolve_account(tx.destination)
            if destination_id is None:
                destination_id = source_id

            prepared.append(
                PreparedTransaction(
                    source_account_id=source_id,
                    destination_account_id=destination_id,
                    amount=tx.amount,
                    date=tx.date,
                    category_id=self.resolve_category(tx.category),
                    description=tx.note,
                    currency=tx.currency,
                )
            )

        logger.info("Prepared %d of %d transactions", len(prepared), len(transactions))
        return prepared
