"""
Client for the EU Funding & Tenders portal search API.

The API takes a POST with a boolean filter query in the body and the
free-text query, page and page size as query-string parameters. Results
come back as `{"results": [...]}`; normalization happens elsewhere.
"""

import logging
import time
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from eufunding.core.config import Settings
from eufunding.core.domain_models import NormalizedOpportunity, SearchConfig
from eufunding.core.errors import UpstreamFailure
from eufunding.ingest.sources import match_custom_sources
from eufunding.normalize.eu_portal import OpportunityNormalizer, filter_expired


logger = logging.getLogger(__name__)


# Grants, cascade funding and prizes; open and forthcoming only
DEFAULT_QUERY_FILTER = {
    "bool": {
        "must": [
            {"terms": {"type": ["1", "2", "8"]}},
            {"terms": {"status": ["31094501", "31094502"]}},
        ]
    }
}

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class EuSearchClient:
    """Fetch raw search hits from the portal with retry and backoff."""

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or Settings()
        self.session = session or requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Accept': 'application/json',
            'User-Agent': 'eu-funding-assistant/0.1',
        })

    def search(
        self,
        query: str,
        page: int = 1,
        page_size: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Run one search request.

        Args:
            query: Free-text query
            page: 1-based page number
            page_size: Results per page (defaults to settings.page_size)

        Returns:
            The raw `results` array (empty when the body has none)

        Raises:
            UpstreamFailure: on non-retryable HTTP errors, exhausted retries
                or a body that is not JSON
        """
        params = {
            "apiKey": self.settings.search_api_key,
            "text": query,
            "pageSize": page_size or self.settings.page_size,
            "page": page,
        }

        data = self._post_with_retry(params, DEFAULT_QUERY_FILTER)
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return []
        return results

    def _post_with_retry(self, params: Dict[str, Any], payload: Dict[str, Any]) -> Any:
        retries = max(0, self.settings.retry_max)
        backoff = max(0.1, self.settings.retry_backoff_seconds)
        url = self.settings.search_api_url

        for attempt in range(retries + 1):
            try:
                response = self.session.post(
                    url,
                    params=params,
                    json=payload,
                    timeout=self.settings.timeout_seconds,
                )
            except requests.RequestException as e:
                if attempt < retries:
                    delay = backoff * (2 ** attempt)
                    logger.warning(f"Search request failed ({e}); retrying in {delay:.1f}s")
                    time.sleep(delay)
                    continue
                raise UpstreamFailure(f"Funding search request failed: {e}") from e

            logger.info(
                f"[eu_search] query={params.get('text')!r} page={params.get('page')} "
                f"http={response.status_code} bytes={len(response.content)}"
            )

            if response.status_code in RETRYABLE_STATUS and attempt < retries:
                delay = backoff * (2 ** attempt)
                # Rate limits need a longer pause
                if response.status_code == 429:
                    delay = max(delay, 10.0)
                logger.warning(f"Search API returned {response.status_code}; retrying in {delay:.1f}s")
                time.sleep(delay)
                continue

            if response.status_code >= 400:
                raise UpstreamFailure(
                    f"Funding search API returned {response.status_code}",
                    status_code=response.status_code,
                )

            try:
                return response.json()
            except ValueError as e:
                raise UpstreamFailure(
                    "Funding search API returned a non-JSON body",
                    status_code=response.status_code,
                ) from e

        raise UpstreamFailure("Funding search request failed")


def search_opportunities(
    query: str,
    client: EuSearchClient,
    normalizer: Optional[OpportunityNormalizer] = None,
    include_expired: bool = False,
    today: Optional[date] = None,
    search_config: Optional[SearchConfig] = None
) -> List[NormalizedOpportunity]:
    """
    Search the portal (and optionally custom sources) for opportunities.

    Args:
        query: Free-text query; blank queries return nothing
        client: Search API client
        normalizer: Normalizer to use (a default one when omitted)
        include_expired: Skip the deadline grace filter
        today: Reference date for the grace filter
        search_config: Custom sources and search modes

    Returns:
        Portal opportunities followed by matching custom sources
    """
    if not query or not query.strip():
        return []

    search_config = search_config or SearchConfig()
    normalizer = normalizer or OpportunityNormalizer()
    opportunities: List[NormalizedOpportunity] = []

    if search_config.use_portal:
        raw = client.search(query)
        opportunities = normalizer.normalize(raw)
        logger.info(f"Portal returned {len(raw)} results, {len(opportunities)} after normalization")

        if not include_expired:
            opportunities = filter_expired(opportunities, today=today)

    if search_config.use_local_sources:
        local = match_custom_sources(query, search_config)
        logger.info(f"Matched {len(local)} custom sources")
        opportunities.extend(local)

    return opportunities
