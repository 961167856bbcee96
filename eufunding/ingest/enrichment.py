"""
Enrich opportunities with deadline and status data from the per-topic API.

Search results only carry a summary deadline; the topic API exposes the
call's actions (status, deadline dates, planned opening date) as a
JSON-encoded string. Enrichment is best-effort: any failure returns the
base data with no deadline.
"""

import json
import logging
import time
from typing import Callable, Iterable, List, Optional

import requests
from tqdm import tqdm

from eufunding.core.config import Settings
from eufunding.core.domain_models import EnrichedOpportunity, NormalizedOpportunity
from eufunding.core.time_utils import utc_timestamp
from eufunding.core.utils import format_deadline, parse_date_maybe


logger = logging.getLogger(__name__)

# Pause between topic requests to stay under the portal's rate limit
REQUEST_DELAY_SECONDS = 0.2


class TopicEnricher:
    """Look up topic details for opportunities that have a ccm_id."""

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or Settings()
        self.session = session or requests.Session()

    def enrich_opportunity(self, opportunity: NormalizedOpportunity) -> EnrichedOpportunity:
        """
        Enrich a single opportunity.

        Args:
            opportunity: Normalized opportunity (ccm_id required for a lookup)

        Returns:
            EnrichedOpportunity; base data with deadline=None when the
            lookup is impossible or fails
        """
        if not opportunity.ccm_id:
            logger.warning(f"[Enrich] No ccmId for {opportunity.call_id}, skipping enrichment")
            return _base_enrichment(opportunity)

        try:
            response = self.session.get(
                self.settings.topic_api_url,
                params={"topicId": opportunity.ccm_id},
                timeout=self.settings.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning(f"[Enrich] Request failed for {opportunity.call_id}: {e}")
            return _base_enrichment(opportunity)

        if not response.ok:
            logger.warning(f"[Enrich] HTTP {response.status_code} for {opportunity.call_id}")
            return _base_enrichment(opportunity)

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"[Enrich] Non-JSON response for {opportunity.call_id}")
            return _base_enrichment(opportunity)

        action = _first_action(data)
        if action is None:
            logger.warning(f"[Enrich] No action data found for {opportunity.call_id}")
            return _base_enrichment(opportunity)

        status_info = action.get("status") if isinstance(action.get("status"), dict) else {}
        status = status_info.get("description") or status_info.get("abbreviation") or opportunity.status.value

        deadline_dates = action.get("deadlineDates") or []
        raw_deadline = deadline_dates[0] if isinstance(deadline_dates, list) and deadline_dates else None
        parsed = parse_date_maybe(raw_deadline)
        deadline = format_deadline(parsed) if parsed else raw_deadline

        logger.info(f"[Enrich] {opportunity.call_id}: status={status!r} deadline={deadline!r}")

        return EnrichedOpportunity(
            call_id=opportunity.call_id,
            url=opportunity.url,
            title=opportunity.title,
            description=opportunity.description,
            status=status,
            deadline=deadline,
            opening_date=action.get("plannedOpeningDate") or None,
            budget=opportunity.budget,
            funding_entity=opportunity.funding_entity,
            last_enriched=utc_timestamp(),
        )

    def batch_enrich(
        self,
        opportunities: Iterable[NormalizedOpportunity],
        on_progress: Optional[Callable[[int, int], None]] = None,
        progress: bool = False
    ) -> List[EnrichedOpportunity]:
        """
        Enrich opportunities one at a time.

        Args:
            opportunities: Opportunities to enrich
            on_progress: Called with (current, total) after each item
            progress: Show a tqdm progress bar

        Returns:
            One EnrichedOpportunity per input, in input order
        """
        opportunities = list(opportunities)
        total = len(opportunities)
        results = []

        for i, opp in enumerate(tqdm(opportunities, desc="Enriching", disable=not progress), 1):
            results.append(self.enrich_opportunity(opp))

            if on_progress:
                on_progress(i, total)

            # Topics without ccm_id made no request
            if opp.ccm_id and i < total:
                time.sleep(REQUEST_DELAY_SECONDS)

        return results


def _first_action(data) -> Optional[dict]:
    """Decode the JSON-encoded `actions` field and return its first entry."""
    if not isinstance(data, dict):
        return None

    actions = data.get("actions")
    if isinstance(actions, str):
        try:
            actions = json.loads(actions)
        except ValueError:
            return None

    if isinstance(actions, list) and actions and isinstance(actions[0], dict):
        return actions[0]
    return None


def _base_enrichment(opportunity: NormalizedOpportunity) -> EnrichedOpportunity:
    return EnrichedOpportunity(
        call_id=opportunity.call_id,
        url=opportunity.url,
        title=opportunity.title,
        description=opportunity.description,
        status=opportunity.status.value,
        deadline=None,
        opening_date=None,
        budget=opportunity.budget,
        funding_entity=opportunity.funding_entity,
        last_enriched=utc_timestamp(),
    )
