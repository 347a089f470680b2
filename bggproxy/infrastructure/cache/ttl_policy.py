"""Per-entity cache lifetimes for both tiers.

Catalog data changes rarely and is kept for a week in L2; user-driven data
(collections, plays) is refreshed within the hour.
"""

import logging
from typing import Dict, Mapping, Optional

from bggproxy.domain.models.common import EntityType, TtlPolicy

logger = logging.getLogger(__name__)

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR

DEFAULT_TTL_POLICIES: Dict[EntityType, TtlPolicy] = {
    EntityType.THING: TtlPolicy(l1_seconds=5 * MINUTE, l2_seconds=7 * DAY),
    EntityType.USER: TtlPolicy(l1_seconds=HOUR, l2_seconds=DAY),
    EntityType.COLLECTION: TtlPolicy(l1_seconds=30 * MINUTE, l2_seconds=HOUR),
    EntityType.PLAYS: TtlPolicy(l1_seconds=15 * MINUTE, l2_seconds=30 * MINUTE),
    EntityType.GEEKLIST: TtlPolicy(l1_seconds=HOUR, l2_seconds=DAY),
    EntityType.GEEKLISTS: TtlPolicy(l1_seconds=30 * MINUTE, l2_seconds=HOUR),
    EntityType.HOT_ITEMS: TtlPolicy(l1_seconds=30 * MINUTE, l2_seconds=HOUR),
    EntityType.SEARCH: TtlPolicy(l1_seconds=30 * MINUTE, l2_seconds=HOUR),
}


class TtlPolicyTable:
    """Looks up the TTL policy of an entity, applying configured overrides."""

    def __init__(self, overrides: Optional[Mapping[str, Mapping[str, int]]] = None):
        """Initializes the table.

        Args:
            overrides: e.g. {"thing": {"l1": 60}, "plays": {"l2": 600}}; keys
                are entity names, unknown names are ignored with a warning.
        """
        self._policies: Dict[EntityType, TtlPolicy] = dict(DEFAULT_TTL_POLICIES)
        for name, values in (overrides or {}).items():
            try:
                entity = EntityType(name.lower())
            except ValueError:
                logger.warning(f"Ignoring TTL override for unknown entity type: {name}")
                continue
            current = self._policies[entity]
            self._policies[entity] = TtlPolicy(
                l1_seconds=int(values.get("l1", current.l1_seconds)),
                l2_seconds=int(values.get("l2", current.l2_seconds)),
            )
            logger.info(f"TTL override for {entity.value}: {self._policies[entity]}")

    def for_entity(self, entity: EntityType) -> TtlPolicy:
        return self._policies[entity]

    def as_dict(self) -> Dict[str, Dict[str, int]]:
        return {
            entity.value: {"l1": policy.l1_seconds, "l2": policy.l2_seconds}
            for entity, policy in self._policies.items()
        }
