"""
Stored-format migrations applied on load.

Each migration takes a raw record and returns (record, description).
description is None when nothing had to change.
"""

import copy
from typing import Any, Optional

from biztrack.models.ledger import FeeType, new_id


def migrate_legacy_platforms(record: dict) -> tuple[dict, Optional[str]]:
    """
    Upgrade platforms stored as bare names to structured records.

    Old settings kept platforms as ["Facebook", "Website"]. Each bare
    name becomes {id, name, feeValue: 0, feeType: FIXED}; entries that
    are already structured are left untouched.
    """
    platforms = record.get("platforms")
    if not platforms or not any(isinstance(p, str) for p in platforms):
        return record, None

    migrated = copy.deepcopy(record)
    migrated["platforms"] = [
        {
            "id": new_id(),
            "name": p,
            "feeValue": 0,
            "feeType": FeeType.FIXED.value,
        }
        if isinstance(p, str) else p
        for p in platforms
    ]
    converted = sum(1 for p in platforms if isinstance(p, str))
    return migrated, f"converted {converted} legacy platform names"


SETTINGS_MIGRATIONS = [
    migrate_legacy_platforms,
]


def migrate_settings(record: Any) -> tuple[Any, list[str]]:
    """Run every settings migration in order."""
    applied = []
    if not isinstance(record, dict):
        return record, applied
    for migration in SETTINGS_MIGRATIONS:
        record, description = migration(record)
        if description:
            applied.append(description)
    return record, applied
