"""
Search over user-maintained funding sources.
"""

from typing import List

from eufunding.core.domain_models import NormalizedOpportunity, OpportunityStatus, SearchConfig
from eufunding.core.utils import tokenize


CUSTOM_SOURCE_NAME = "Custom source"


def match_custom_sources(query: str, config: SearchConfig) -> List[NormalizedOpportunity]:
    """
    Return enabled custom sources mentioning any query token.

    Matching is case-insensitive substring search over the source's
    description and URL.
    """
    tokens = tokenize(query)
    if not tokens:
        return []

    matches = []
    for source in config.custom_sources:
        if not source.enabled or not source.url:
            continue
        haystack = f"{source.description} {source.url}".lower()
        if any(token in haystack for token in tokens):
            matches.append(
                NormalizedOpportunity(
                    call_id=source.url,
                    title=source.description or source.url,
                    description=source.description,
                    url=source.url,
                    source=CUSTOM_SOURCE_NAME,
                    status=OpportunityStatus.OPEN,
                    deadline=None,
                )
            )
    return matches
