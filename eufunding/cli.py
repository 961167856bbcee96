#!/usr/bin/env python3
"""
Command-line interface for the EU funding assistant.

Usage:
    # Search the portal, hiding calls that closed more than a week ago
    eufunding search "digital health"

    # Include expired calls, refresh deadlines from the topic API and save everything
    eufunding search "green hydrogen" --include-expired --enrich --save

    # Rank stored partners against proposal text
    eufunding rank-partners "AI-driven precision agriculture for smallholders"

    # Manage partners and custom sources
    eufunding partners add "ACME Research" --keyword AI --keyword robotics
    eufunding sources add https://eeagrants.org/ "EEA & Norway Grants"

    # Extract a funding-scheme template from a call document
    eufunding extract-template guidelines.pdf --name "Horizon RIA"
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from eufunding.core.config import Settings, load_settings, load_search_config, save_search_config
from eufunding.core.domain_models import (
    EnrichedOpportunity,
    FundingSource,
    NormalizedOpportunity,
    PartnerProfile,
)
from eufunding.core.errors import EuFundingError
from eufunding.ingest.enrichment import TopicEnricher
from eufunding.ingest.eu_search import EuSearchClient, search_opportunities
from eufunding.ingest.sources import CUSTOM_SOURCE_NAME
from eufunding.rank.partner_ranker import PartnerRelevanceRanker
from eufunding.storage.db import Database
from eufunding.storage.kv_store import KVStore
from eufunding.storage.opportunity_store import OpportunityStore
from eufunding.storage.record_store import funding_scheme_store, partner_store


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eufunding",
        description="Discover EU funding calls and manage consortium partners"
    )
    parser.add_argument("--db", help="Path to SQLite database (default: EUFUNDING_DB_PATH or eufunding.db)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Search the EU Funding & Tenders portal")
    search.add_argument("query", help="Free-text query")
    search.add_argument("--include-expired", action="store_true", help="Keep calls closed more than 7 days ago")
    search.add_argument("--enrich", action="store_true", help="Refresh deadline/status from the topic API")
    search.add_argument("--save", action="store_true", help="Upsert results into the database")
    search.add_argument("--local-sources", action="store_true", help="Also match custom funding sources")
    search.add_argument("--json", action="store_true", help="Print results as JSON")

    rank = sub.add_parser("rank-partners", help="Rank stored partners against proposal text")
    rank.add_argument("context", help="Proposal summary or description")
    rank.add_argument("--limit", type=int, default=10, help="Number of partners to show")

    partners = sub.add_parser("partners", help="Manage partner profiles")
    partners_sub = partners.add_subparsers(dest="action", required=True)
    add = partners_sub.add_parser("add", help="Add a partner")
    add.add_argument("name")
    add.add_argument("--description")
    add.add_argument("--experience")
    add.add_argument("--country")
    add.add_argument("--keyword", action="append", default=[], help="Repeat for several keywords")
    partners_sub.add_parser("list", help="List partners")
    delete = partners_sub.add_parser("delete", help="Delete a partner")
    delete.add_argument("partner_id")

    sources = sub.add_parser("sources", help="Manage custom funding sources")
    sources_sub = sources.add_subparsers(dest="action", required=True)
    sources_sub.add_parser("list", help="List custom sources")
    source_add = sources_sub.add_parser("add", help="Add a custom source")
    source_add.add_argument("url")
    source_add.add_argument("description", nargs="?", default="")

    template = sub.add_parser("extract-template", help="Extract a funding-scheme template from a document")
    template.add_argument("path", help="PDF or text file")
    template.add_argument("--name", default="Extracted Funding Scheme", help="Funding scheme name")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = load_settings()
    if args.db:
        settings.db_path = args.db

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    handlers = {
        "search": cmd_search,
        "rank-partners": cmd_rank_partners,
        "partners": cmd_partners,
        "sources": cmd_sources,
        "extract-template": cmd_extract_template,
    }

    try:
        handlers[args.command](args, settings)
    except EuFundingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_search(args, settings: Settings) -> None:
    search_config = load_search_config(Path(settings.sources_file))
    search_config.use_local_sources = args.local_sources or search_config.use_local_sources

    client = EuSearchClient(settings)
    opportunities = search_opportunities(
        args.query,
        client,
        include_expired=args.include_expired,
        search_config=search_config,
    )

    # Nothing is written to the database without --save
    store = OpportunityStore(Database(settings.db_path)) if args.save else None
    if store is not None:
        store.upsert_opportunities(opportunities)
    if args.enrich:
        enriched = _enrich_stale(opportunities, store, settings)
        _apply_enrichment(opportunities, enriched)
        if store is not None:
            store.upsert_enriched(enriched)

    if args.json:
        print(json.dumps([opp.to_dict() for opp in opportunities], indent=2, ensure_ascii=False))
        return

    for opp in opportunities:
        print(f"[{opp.status.value}] {opp.call_id} - {opp.title}")
        print(f"    deadline: {opp.deadline or 'Visit portal for deadline'} | budget: {opp.budget or '-'}")
        print(f"    {opp.url}")
    print(f"\n{len(opportunities)} opportunities")


def _enrich_stale(
    opportunities: List[NormalizedOpportunity],
    store: Optional[OpportunityStore],
    settings: Settings
) -> List[EnrichedOpportunity]:
    """
    Enrich portal opportunities.

    With a store, opportunities refreshed within the cache window are skipped.
    """
    stale = [
        opp for opp in opportunities
        if opp.source != CUSTOM_SOURCE_NAME
        and (store is None or store.get_fresh(opp.call_id, settings.cache_hours) is None)
    ]
    logger.info(f"Enriching {len(stale)} of {len(opportunities)} opportunities")
    return TopicEnricher(settings).batch_enrich(stale, progress=True)


def _apply_enrichment(
    opportunities: List[NormalizedOpportunity],
    enriched: List[EnrichedOpportunity]
) -> None:
    """Show enriched deadlines in place of the search summary ones."""
    deadlines = {e.call_id: e.deadline for e in enriched if e.deadline}
    for opp in opportunities:
        opp.deadline = deadlines.get(opp.call_id, opp.deadline)


def cmd_rank_partners(args, settings: Settings) -> None:
    partners = partner_store(KVStore(Database(settings.db_path))).list()
    ranked = PartnerRelevanceRanker().rank(partners, args.context)

    for scored in ranked[:args.limit]:
        reasons = "; ".join(scored.match_reasons)
        print(f"{scored.relevance_score:4d}  {scored.partner.name}  {reasons}".rstrip())


def cmd_partners(args, settings: Settings) -> None:
    store = partner_store(KVStore(Database(settings.db_path)))

    if args.action == "add":
        partner = store.create(
            PartnerProfile(
                id="",
                name=args.name,
                description=args.description,
                experience=args.experience,
                country=args.country,
                keywords=args.keyword,
            )
        )
        print(partner.id)
    elif args.action == "list":
        for partner in store.list():
            keywords = ", ".join(partner.keywords)
            print(f"{partner.id}  {partner.name}  [{keywords}]")
    elif args.action == "delete":
        store.delete(args.partner_id)


def cmd_sources(args, settings: Settings) -> None:
    path = Path(settings.sources_file)
    config = load_search_config(path)

    if args.action == "add":
        config.custom_sources.append(FundingSource(url=args.url, description=args.description))
        save_search_config(path, config)
    for source in config.custom_sources:
        flag = " " if source.enabled else "x"
        print(f"[{flag}] {source.url}  {source.description}")


def cmd_extract_template(args, settings: Settings) -> None:
    # Imported lazily: PDF backends and the OpenAI client are only needed here
    from eufunding.api.generation import TextGenerationClient
    from eufunding.ingest.document_parser import CallDocumentParser
    from eufunding.proposals.drafting import extract_funding_scheme

    path = Path(args.path)
    text = CallDocumentParser().read(path)
    if not text:
        raise EuFundingError(f"Could not extract text from {path}")

    client = TextGenerationClient(model=settings.openai_model, api_key=settings.openai_api_key)
    scheme = extract_funding_scheme(text, args.name, path.name, client)
    stored = funding_scheme_store(KVStore(Database(settings.db_path))).create(scheme)
    print(json.dumps(stored, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    sys.exit(main())
