"""Read contracts the engine depends on, with in-memory implementations."""

import uuid
from typing import Iterable, List, Protocol

from autolend.core.enums import EntityType
from autolend.services.rule_engine.base import BlacklistEntry, Rule
from autolend.services.rule_engine.selector import order_rules


class RuleSource(Protocol):
    """Read-only access to a lender's auto-lending rules."""

    async def list_active_rules(self, lender_id: uuid.UUID) -> List[Rule]:
        """Active rules of the lender ordered by ``(created_at, id)``."""
        ...


class BlacklistSource(Protocol):
    """Read-only access to a lender's blacklist."""

    async def is_entity_blacklisted(
        self,
        lender_id: uuid.UUID,
        entity_type: EntityType,
        entity_id: str,
    ) -> bool:
        ...


class StaticRuleSource:
    """Rule source over a fixed collection of rules."""

    def __init__(self, rules: Iterable[Rule] = ()):
        self._rules = list(rules)

    def add(self, rule: Rule) -> None:
        self._rules.append(rule)

    async def list_active_rules(self, lender_id: uuid.UUID) -> List[Rule]:
        return order_rules(r for r in self._rules if r.lender_id == lender_id)


class StaticBlacklistSource:
    """Blacklist source over a fixed collection of entries."""

    def __init__(self, entries: Iterable[BlacklistEntry] = ()):
        self._entries = list(entries)

    def add(self, entry: BlacklistEntry) -> None:
        self._entries.append(entry)

    async def is_entity_blacklisted(
        self,
        lender_id: uuid.UUID,
        entity_type: EntityType,
        entity_id: str,
    ) -> bool:
        return any(
            entry.active
            and entry.lender_id == lender_id
            and entry.entity_type == entity_type
            and entry.entity_id == entity_id
            for entry in self._entries
        )
