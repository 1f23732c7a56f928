"""Blacklist veto applied before any rule matching."""

import uuid
from dataclasses import dataclass
from typing import Optional

from autolend.core.enums import EntityType
from autolend.core.exceptions import ValidationError
from autolend.services.rule_engine.base import LoanRequest
from autolend.services.rule_engine.sources import BlacklistSource


@dataclass(frozen=True)
class BlacklistHit:
    """The counterparty that vetoed a request."""

    entity_type: EntityType
    entity_id: str


class BlacklistGuard:
    """
    Hard veto check, independent of rule matching.

    A hit on either the retailer or the supplier of a request denies it; no
    rule, including trusted-supplier auto-approval, can override the veto.
    """

    def __init__(self, source: BlacklistSource):
        self.source = source

    async def is_blacklisted(
        self,
        lender_id: uuid.UUID,
        entity_type: EntityType,
        entity_id: str,
    ) -> bool:
        """
        Check whether an entity is on the lender's active blacklist.

        Raises:
            ValidationError: If entity_type is not retailer or supplier
        """
        try:
            entity_type = EntityType(entity_type)
        except ValueError as e:
            raise ValidationError(f"Unknown blacklist entity type: {entity_type!r}") from e
        return await self.source.is_entity_blacklisted(lender_id, entity_type, entity_id)

    async def check_request(self, request: LoanRequest) -> Optional[BlacklistHit]:
        """Check the retailer, then the supplier; return the first hit."""
        if await self.is_blacklisted(request.lender_id, EntityType.RETAILER, request.retailer_id):
            return BlacklistHit(EntityType.RETAILER, request.retailer_id)

        if request.supplier_id and await self.is_blacklisted(
            request.lender_id, EntityType.SUPPLIER, request.supplier_id
        ):
            return BlacklistHit(EntityType.SUPPLIER, request.supplier_id)

        return None
