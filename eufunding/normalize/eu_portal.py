"""
Normalizer for EU Funding & Tenders portal search results.

Converts raw search hits → NormalizedOpportunity, de-duplicates them by
call identifier and optionally drops calls whose deadline is well past.

Malformed records never abort a run; every missing field falls back to a
documented default.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from eufunding.core.domain_models import (
    NormalizedOpportunity,
    OpportunityStatus,
    RawOpportunityRecord,
)
from eufunding.core.time_utils import today_brussels
from eufunding.core.utils import format_deadline, parse_date_maybe, strip_html


logger = logging.getLogger(__name__)


TOPIC_URL_TEMPLATE = (
    "https://ec.europa.eu/info/funding-tenders/opportunities/portal/screen/"
    "opportunities/topic-details/{call_id}"
)
SOURCE_NAME = "EU Funding Portal"

MAX_DESCRIPTION_CHARS = 500

# Portal status codes; 31094501 (open) falls through to the default
STATUS_UPCOMING = "31094502"
STATUS_CLOSED = "31094503"

# Deadline strings that mean "no deadline known"
UNKNOWN_DEADLINES = {"Unknown", "TBD", "undefined"}

# Calls stay visible for this long after their deadline
GRACE_PERIOD = timedelta(days=7)


class OpportunityNormalizer:
    """Map, de-duplicate and filter portal search results."""

    def normalize(self, raw_results: Iterable[Any]) -> List[NormalizedOpportunity]:
        """
        Convert raw search hits into de-duplicated opportunities.

        Args:
            raw_results: Items of the search API's `results` array (dicts)

        Returns:
            One NormalizedOpportunity per distinct call_id, in order of
            first appearance
        """
        records = [RawOpportunityRecord.from_json(item) for item in raw_results]
        records = self.filter_language(records)
        logger.debug(f"{len(records)} records after language filter")

        mapped = [self.map_record(record) for record in records]
        deduped = dedupe_by_call_id(mapped)
        logger.debug(f"{len(deduped)} opportunities after dedup ({len(mapped)} mapped)")
        return deduped

    def filter_language(self, records: List[RawOpportunityRecord]) -> List[RawOpportunityRecord]:
        """Keep English records when there are any, otherwise keep everything."""
        english = [r for r in records if r.language == "en"]
        return english or records

    def map_record(self, record: RawOpportunityRecord) -> NormalizedOpportunity:
        call_id = record.identifier or "Unknown"
        description = strip_html(record.description_html)[:MAX_DESCRIPTION_CHARS]

        return NormalizedOpportunity(
            call_id=call_id,
            title=record.title or "Untitled",
            description=description,
            url=TOPIC_URL_TEMPLATE.format(call_id=call_id),
            source=SOURCE_NAME,
            status=map_status(record.status_code),
            deadline=_format_deadline_maybe(record.deadline_date),
            budget=record.budget or "See details",
            funding_entity=record.framework_programme or "EU",
            topic=record.destination_description or "General",
            ccm_id=record.ccm_id,
        )


def map_status(code: Optional[str]) -> OpportunityStatus:
    """
    Map a portal status code to OpportunityStatus.

    Missing and unrecognized codes count as open.
    """
    if code == STATUS_UPCOMING:
        return OpportunityStatus.UPCOMING
    if code == STATUS_CLOSED:
        return OpportunityStatus.CLOSED
    return OpportunityStatus.OPEN


def _format_deadline_maybe(raw: Optional[str]) -> Optional[str]:
    parsed = parse_date_maybe(raw)
    return format_deadline(parsed) if parsed else None


def dedupe_by_call_id(opportunities: Iterable[NormalizedOpportunity]) -> List[NormalizedOpportunity]:
    """
    Keep one opportunity per call_id.

    The first record seen wins unless a later duplicate has a deadline
    and the kept one does not. Output follows first-seen order.
    """
    by_call_id: Dict[str, NormalizedOpportunity] = {}
    for opp in opportunities:
        existing = by_call_id.get(opp.call_id)
        if existing is None or (opp.deadline and not existing.deadline):
            by_call_id[opp.call_id] = opp
    return list(by_call_id.values())


def filter_expired(
    opportunities: Iterable[NormalizedOpportunity],
    today: Optional[date] = None
) -> List[NormalizedOpportunity]:
    """
    Drop opportunities whose deadline passed more than GRACE_PERIOD ago.

    Opportunities without a deadline, with a placeholder deadline or with
    an unparseable one are kept.

    Args:
        opportunities: Normalized opportunities
        today: Reference date (defaults to today in Brussels)

    Returns:
        Surviving opportunities in input order
    """
    if today is None:
        today = today_brussels()
    cutoff = today - GRACE_PERIOD

    opportunities = list(opportunities)
    kept = []
    for opp in opportunities:
        if _is_current(opp.deadline, cutoff):
            kept.append(opp)
        else:
            logger.debug(f"Filtered (>7 days expired): {opp.title} ({opp.deadline})")

    logger.info(f"Expiry filter kept {len(kept)} of {len(opportunities)} opportunities")
    return kept


def _is_current(deadline: Optional[str], cutoff: date) -> bool:
    if not deadline or deadline in UNKNOWN_DEADLINES:
        return True

    parsed = parse_date_maybe(deadline)
    if parsed is None:
        logger.debug(f"Keeping opportunity with unparseable deadline: {deadline!r}")
        return True

    return parsed.date() >= cutoff
