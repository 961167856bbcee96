from datetime import date
from unittest.mock import MagicMock

import pytest
import requests

from conftest import FakeResponse, raw_record
from eufunding.core.config import Settings
from eufunding.core.domain_models import FundingSource, SearchConfig
from eufunding.core.errors import UpstreamFailure
from eufunding.ingest.eu_search import DEFAULT_QUERY_FILTER, EuSearchClient, search_opportunities


def make_client(*responses, retry_max=3):
    session = MagicMock()
    session.headers = {}
    session.post.side_effect = list(responses)
    settings = Settings(retry_max=retry_max, retry_backoff_seconds=1.0)
    return EuSearchClient(settings=settings, session=session), session


def test_search_posts_filter_and_query_params(no_sleep):
    client, session = make_client(FakeResponse(payload={"results": [raw_record("X1")]}))

    results = client.search("digital health", page=2)

    assert results == [raw_record("X1")]
    _, kwargs = session.post.call_args
    assert session.post.call_args[0][0] == Settings().search_api_url
    assert kwargs["params"] == {"apiKey": "SEDIA", "text": "digital health", "pageSize": 15, "page": 2}
    assert kwargs["json"] == DEFAULT_QUERY_FILTER
    assert session.headers["Content-Type"] == "application/json"
    assert no_sleep == []


def test_search_without_results_key_returns_empty_list(no_sleep):
    client, _ = make_client(FakeResponse(payload={"totalResults": 0}))

    assert client.search("anything") == []


def test_server_errors_are_retried_with_backoff(no_sleep):
    client, session = make_client(
        FakeResponse(status_code=503),
        FakeResponse(status_code=502),
        FakeResponse(payload={"results": []}),
    )

    assert client.search("energy") == []
    assert session.post.call_count == 3
    assert no_sleep == [1.0, 2.0]


def test_rate_limit_waits_at_least_ten_seconds(no_sleep):
    client, _ = make_client(FakeResponse(status_code=429), FakeResponse(payload={"results": []}))

    client.search("energy")

    assert no_sleep == [10.0]


def test_exhausted_retries_raise_upstream_failure(no_sleep):
    client, session = make_client(*[FakeResponse(status_code=500)] * 3, retry_max=2)

    with pytest.raises(UpstreamFailure) as exc_info:
        client.search("energy")

    assert exc_info.value.status_code == 500
    assert session.post.call_count == 3


def test_client_errors_are_not_retried(no_sleep):
    client, session = make_client(FakeResponse(status_code=400))

    with pytest.raises(UpstreamFailure) as exc_info:
        client.search("energy")

    assert exc_info.value.status_code == 400
    assert session.post.call_count == 1
    assert no_sleep == []


def test_connection_errors_are_retried_then_raised(no_sleep):
    client, session = make_client(
        *[requests.ConnectionError("boom")] * 2,
        retry_max=1,
    )

    with pytest.raises(UpstreamFailure) as exc_info:
        client.search("energy")

    assert exc_info.value.status_code is None
    assert session.post.call_count == 2


def test_non_json_body_raises_upstream_failure(no_sleep):
    client, _ = make_client(FakeResponse(status_code=200, body=b"<html>maintenance</html>"))

    with pytest.raises(UpstreamFailure):
        client.search("energy")


def test_search_opportunities_normalizes_and_filters_expired(no_sleep):
    client, _ = make_client(FakeResponse(payload={"results": [
        raw_record("OLD", deadlineDate="2025-01-01"),
        raw_record("NEW", deadlineDate="2026-06-30", status="31094502"),
        raw_record("NEW"),
    ]}))

    result = search_opportunities("hydrogen", client, today=date(2026, 1, 1))

    assert [o.call_id for o in result] == ["NEW"]
    assert result[0].deadline == "Jun 30, 2026"


def test_search_opportunities_can_include_expired(no_sleep):
    client, _ = make_client(FakeResponse(payload={"results": [raw_record("OLD", deadlineDate="2025-01-01")]}))

    result = search_opportunities("hydrogen", client, include_expired=True, today=date(2026, 1, 1))

    assert [o.call_id for o in result] == ["OLD"]


def test_blank_query_makes_no_request():
    client, session = make_client()

    assert search_opportunities("   ", client) == []
    assert session.post.call_count == 0


def test_custom_sources_appended_after_portal_results(no_sleep):
    client, _ = make_client(FakeResponse(payload={"results": [raw_record("X1")]}))
    config = SearchConfig(
        custom_sources=[
            FundingSource(url="https://www.nordicinnovation.org/funding", description="Nordic Innovation"),
            FundingSource(url="https://example.org/arts", description="Arts council"),
        ],
        use_local_sources=True,
    )

    result = search_opportunities("nordic innovation", client, search_config=config)

    assert [o.call_id for o in result] == ["X1", "https://www.nordicinnovation.org/funding"]
    assert result[1].source == "Custom source"


def test_portal_can_be_disabled():
    client, session = make_client()
    config = SearchConfig(
        custom_sources=[FundingSource(url="https://eeagrants.org/", description="EEA Grants")],
        use_portal=False,
        use_local_sources=True,
    )

    result = search_opportunities("grants", client, search_config=config)

    assert [o.url for o in result] == ["https://eeagrants.org/"]
    assert session.post.call_count == 0
