"""
admin/service.py -- Read-all and delete-by-id operations for moderators.

Categories are an explicit mapping of URL name -> key prefix, supplied by
configuration (ADMIN_CATEGORIES). Records for category "events" with prefix
"event" live at "event:<id>".

Credential fields are stripped from every record returned, whatever its
category, so a user record can never leak a password hash through this path.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from auth.errors import NotFound
from auth.models import strip_credentials
from kv.store import KVStore

logger = logging.getLogger("alumni.admin")


class AdminService:
    def __init__(self, store: KVStore, categories: Mapping[str, str]) -> None:
        self.store = store
        self.categories = dict(categories)

    def prefix_for(self, category: str) -> str:
        """Return the key prefix for category. Raises NotFound for unknown categories."""
        try:
            return self.categories[category]
        except KeyError:
            raise NotFound(f"Unknown category '{category}'") from None

    def get_admin_data(self) -> dict[str, list[dict[str, Any]]]:
        """Every record of every configured category, keyed by category name."""
        data: dict[str, list[dict[str, Any]]] = {}
        for category, prefix in self.categories.items():
            records = self.store.get_by_prefix(f"{prefix}:")
            data[category] = [strip_credentials(r) if isinstance(r, dict) else r for r in records]
        return data

    def delete_by_category(self, category: str, item_id: str) -> None:
        """Delete <prefix>:<item_id>. A missing record is not an error."""
        key = f"{self.prefix_for(category)}:{item_id}"
        self.store.delete(key)
        logger.info("Deleted %s", key)
