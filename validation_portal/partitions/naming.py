from __future__ import annotations

import enum
import re
from dataclasses import dataclass

from validation_portal.core.errors import PartitionKeyError

# Table names are built from external asset ids, so only identifier-safe
# characters are accepted.
_ASSET_ID_RE = re.compile(r"[A-Za-z0-9_]{1,64}")


class PartitionFamily(str, enum.Enum):
    SUBMISSIONS = "surveys_flags"
    ENUMERATOR_STATS = "enumerators_stats"


@dataclass(frozen=True)
class PartitionKey:
    family: PartitionFamily
    asset_id: str

    def __post_init__(self) -> None:
        asset_id = self.asset_id if isinstance(self.asset_id, str) else ""
        if not _ASSET_ID_RE.fullmatch(asset_id):
            raise PartitionKeyError(f"unsafe asset id for partition name: {self.asset_id!r}")

    @property
    def table_name(self) -> str:
        return f"{self.family.value}_{self.asset_id}"

    def __str__(self) -> str:
        return self.table_name


def submissions_partition(asset_id: str) -> PartitionKey:
    return PartitionKey(PartitionFamily.SUBMISSIONS, asset_id)


def stats_partition(asset_id: str) -> PartitionKey:
    return PartitionKey(PartitionFamily.ENUMERATOR_STATS, asset_id)
