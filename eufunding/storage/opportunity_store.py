"""
Storage layer for funding opportunities.

Handles:
- Upserting normalized opportunities keyed by call_id
- Recording enrichment results
- Freshness checks so recently refreshed calls are not re-fetched
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from eufunding.core.domain_models import (
    EnrichedOpportunity,
    NormalizedOpportunity,
    OpportunityStatus,
)
from .db import Database


logger = logging.getLogger(__name__)


class OpportunityStore:
    """
    Persistent storage for opportunities.

    Usage:
        store = OpportunityStore(Database("eufunding.db"))
        store.upsert_opportunities(opportunities)
        opp = store.get("HORIZON-CL4-2025-04-DATA-03")
    """

    def __init__(self, db: Database):
        self.db = db

    def upsert_opportunities(self, opportunities: List[NormalizedOpportunity]) -> int:
        """
        Insert or update opportunities, using call_id as the conflict key.

        Enrichment columns (opening_date, last_enriched) are left untouched
        on update.

        Returns:
            Number of rows written
        """
        if not opportunities:
            return 0

        with self.db.get_connection() as conn:
            cursor = conn.cursor()

            for opp in opportunities:
                cursor.execute(
                    """
                    INSERT INTO opportunities (
                        call_id, title, url, description, source, status,
                        deadline, budget, funding_entity, topic, ccm_id,
                        created_at, updated_at
                    )
                    VALUES (
                        :call_id, :title, :url, :description, :source, :status,
                        :deadline, :budget, :funding_entity, :topic, :ccm_id,
                        CURRENT_TIMESTAMP, CURRENT_TIMESTAMP
                    )
                    ON CONFLICT(call_id) DO UPDATE SET
                        title=excluded.title,
                        url=excluded.url,
                        description=excluded.description,
                        source=excluded.source,
                        status=excluded.status,
                        deadline=COALESCE(excluded.deadline, opportunities.deadline),
                        budget=excluded.budget,
                        funding_entity=excluded.funding_entity,
                        topic=excluded.topic,
                        ccm_id=COALESCE(excluded.ccm_id, opportunities.ccm_id),
                        updated_at=CURRENT_TIMESTAMP;
                    """,
                    opp.to_dict(),
                )
                logger.debug(f"Upserted opportunity: {opp.call_id}")

        logger.info(f"Saved {len(opportunities)} opportunities")
        return len(opportunities)

    def upsert_enriched(self, enriched: List[EnrichedOpportunity]) -> int:
        """Record enrichment results; rows are created if missing."""
        if not enriched:
            return 0

        with self.db.get_connection() as conn:
            cursor = conn.cursor()

            for item in enriched:
                cursor.execute(
                    """
                    INSERT INTO opportunities (
                        call_id, title, url, description, status, deadline,
                        opening_date, budget, funding_entity, last_enriched,
                        created_at, updated_at
                    )
                    VALUES (
                        :call_id, :title, :url, :description, :status, :deadline,
                        :opening_date, :budget, :funding_entity, :last_enriched,
                        CURRENT_TIMESTAMP, CURRENT_TIMESTAMP
                    )
                    ON CONFLICT(call_id) DO UPDATE SET
                        status=excluded.status,
                        deadline=COALESCE(excluded.deadline, opportunities.deadline),
                        opening_date=excluded.opening_date,
                        last_enriched=excluded.last_enriched,
                        updated_at=CURRENT_TIMESTAMP;
                    """,
                    {
                        "call_id": item.call_id,
                        "title": item.title,
                        "url": item.url,
                        "description": item.description,
                        "status": item.status,
                        "deadline": item.deadline,
                        "opening_date": item.opening_date,
                        "budget": item.budget,
                        "funding_entity": item.funding_entity,
                        "last_enriched": item.last_enriched,
                    },
                )

        return len(enriched)

    def get(self, call_id: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve a stored opportunity row as a dict.

        Rows carry enrichment columns that NormalizedOpportunity lacks,
        hence the plain dict.
        """
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM opportunities WHERE call_id = ? LIMIT 1",
                (call_id,)
            ).fetchone()

        return dict(row) if row else None

    def get_fresh(self, call_id: str, max_age_hours: int = 24) -> Optional[Dict[str, Any]]:
        """
        Return the opportunity only if it was enriched within max_age_hours.
        """
        row = self.get(call_id)
        if not row or not row.get("last_enriched"):
            return None

        try:
            enriched_at = datetime.fromisoformat(row["last_enriched"])
        except ValueError:
            return None
        if enriched_at.tzinfo is None:
            enriched_at = enriched_at.replace(tzinfo=timezone.utc)

        if datetime.now(timezone.utc) - enriched_at > timedelta(hours=max_age_hours):
            logger.debug(f"Cache expired for {call_id}")
            return None
        return row

    def list_opportunities(
        self,
        status: Optional[OpportunityStatus] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """
        List stored opportunities, newest first.

        Args:
            status: Only return this status
            limit: Maximum rows
            offset: Rows to skip
        """
        query = "SELECT * FROM opportunities"
        params: List[Any] = []

        if status is not None:
            query += " WHERE status = ?"
            params.append(status.value)

        query += " ORDER BY updated_at DESC, call_id LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with self.db.get_connection() as conn:
            rows = conn.execute(query, params).fetchall()

        return [dict(row) for row in rows]

    def delete(self, call_id: str) -> None:
        with self.db.get_connection() as conn:
            conn.execute("DELETE FROM opportunities WHERE call_id = ?", (call_id,))

    def to_opportunity(self, row: Dict[str, Any]) -> NormalizedOpportunity:
        """Convert a stored row back to a NormalizedOpportunity."""
        try:
            status = OpportunityStatus(row.get("status"))
        except ValueError:
            status = OpportunityStatus.OPEN

        return NormalizedOpportunity(
            call_id=row["call_id"],
            title=row["title"],
            description=row.get("description") or "",
            url=row["url"],
            source=row.get("source") or "",
            status=status,
            deadline=row.get("deadline"),
            budget=row.get("budget"),
            funding_entity=row.get("funding_entity"),
            topic=row.get("topic"),
            ccm_id=row.get("ccm_id"),
        )
