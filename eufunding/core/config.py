"""
Runtime settings read from the environment.

Call `load_dotenv()` before `load_settings()` when a .env file should be
honoured; the CLI does this at start-up.
"""

import json
import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

from eufunding.core.domain_models import FundingSource, SearchConfig


logger = logging.getLogger(__name__)


DEFAULT_SEARCH_API_URL = "https://api.tech.ec.europa.eu/search-api/prod/rest/search"
DEFAULT_TOPIC_API_URL = "https://ec.europa.eu/info/funding-tenders/opportunities/api/topicProjectsList.json"


@dataclass
class Settings:
    db_path: str = "eufunding.db"

    # Funding portal search API
    search_api_url: str = DEFAULT_SEARCH_API_URL
    search_api_key: str = "SEDIA"
    topic_api_url: str = DEFAULT_TOPIC_API_URL
    page_size: int = 15
    retry_max: int = 3
    retry_backoff_seconds: float = 2.0
    timeout_seconds: float = 30.0

    # Text generation
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"

    cache_hours: int = 24
    sources_file: str = "funding_sources.json"
    log_level: str = "INFO"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}")
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}")
        return default


def load_settings() -> Settings:
    """Build Settings from environment variables, falling back to defaults."""
    defaults = Settings()
    return Settings(
        db_path=os.getenv("EUFUNDING_DB_PATH", defaults.db_path),
        search_api_url=os.getenv("EU_SEARCH_API_URL", defaults.search_api_url),
        search_api_key=os.getenv("EU_SEARCH_API_KEY", defaults.search_api_key),
        topic_api_url=os.getenv("EU_TOPIC_API_URL", defaults.topic_api_url),
        page_size=_int_env("EU_SEARCH_PAGE_SIZE", defaults.page_size),
        retry_max=_int_env("EU_SEARCH_RETRY_MAX", defaults.retry_max),
        retry_backoff_seconds=_float_env("EU_SEARCH_RETRY_BACKOFF", defaults.retry_backoff_seconds),
        timeout_seconds=_float_env("EU_SEARCH_TIMEOUT", defaults.timeout_seconds),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL", defaults.openai_model),
        cache_hours=_int_env("EUFUNDING_CACHE_HOURS", defaults.cache_hours),
        sources_file=os.getenv("EUFUNDING_SOURCES_FILE", defaults.sources_file),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
    )


# Pre-populated Nordic sources offered to new users
DEFAULT_FUNDING_SOURCES = [
    FundingSource(
        url="https://www.oph.fi/en/programmes/edufi-fellowship",
        description="EDUFI Fellowship (Finland) - Doctoral researchers",
    ),
    FundingSource(
        url="https://www.nordplusonline.org/",
        description="Nordplus - Nordic & Baltic education cooperation",
    ),
    FundingSource(
        url="https://www.nordicinnovation.org/funding",
        description="Nordic Innovation - Innovation & green transition",
    ),
    FundingSource(
        url="https://eeagrants.org/",
        description="EEA & Norway Grants - European cooperation",
    ),
    FundingSource(
        url="https://www.nationalgeographic.org/funding-opportunities/grants/",
        description="National Geographic Society Grants",
    ),
]


def default_search_config() -> SearchConfig:
    return SearchConfig(
        custom_sources=[FundingSource(**asdict(s)) for s in DEFAULT_FUNDING_SOURCES]
    )


def load_search_config(path: Path) -> SearchConfig:
    """
    Load custom sources from a JSON file.

    A missing or unreadable file yields the default sources.
    """
    if not path.exists():
        return default_search_config()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not read sources file {path}: {e}")
        return default_search_config()

    if not isinstance(data, dict):
        return default_search_config()

    sources = []
    for item in data.get("custom_sources") or []:
        if not isinstance(item, dict) or not item.get("url"):
            continue
        sources.append(
            FundingSource(
                url=str(item["url"]),
                description=str(item.get("description") or ""),
                enabled=bool(item.get("enabled", True)),
            )
        )

    return SearchConfig(
        custom_sources=sources,
        use_portal=bool(data.get("use_portal", True)),
        use_local_sources=bool(data.get("use_local_sources", False)),
    )


def save_search_config(path: Path, config: SearchConfig) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(config), indent=2, ensure_ascii=False), encoding="utf-8")
