"""
AI-assisted proposal drafting.

Thin orchestration over the text-generation client: build a prompt, ask
for JSON, coerce the answer into domain objects.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from eufunding.api.generation import TextGenerationClient
from eufunding.api.prompts import (
    build_funding_scheme_prompt,
    build_ideas_prompt,
    build_partner_suggestion_prompt,
    build_proposal_prompt,
    build_relevance_prompt,
)
from eufunding.core.domain_models import (
    Idea,
    PartnerProfile,
    ProposalDraft,
    RelevanceAnalysis,
    ScoredPartner,
)
from eufunding.core.errors import GenerationError
from eufunding.core.time_utils import utc_timestamp
from eufunding.rank.partner_ranker import PartnerRelevanceRanker


logger = logging.getLogger(__name__)

RELEVANCE_SCORES = ("Good", "Fair", "Poor")

# Text sections beyond summary/relevance/methods/impact
EXTRA_SECTIONS = (
    "introduction",
    "objectives",
    "methodology",
    "expectedResults",
    "innovation",
    "sustainability",
    "consortium",
    "workPlan",
    "riskManagement",
    "dissemination",
)


def generate_ideas(
    summary: str,
    constraints: Dict[str, Any],
    client: TextGenerationClient,
    user_prompt: Optional[str] = None
) -> List[Idea]:
    """Ask the model for project ideas; entries without a title are dropped."""
    data = client.generate_json(build_ideas_prompt(summary, constraints, user_prompt))

    ideas = []
    for item in (data.get("ideas") if isinstance(data, dict) else None) or []:
        if not isinstance(item, dict) or not item.get("title"):
            continue
        ideas.append(Idea(title=str(item["title"]), description=str(item.get("description") or "")))

    logger.info(f"Generated {len(ideas)} ideas")
    return ideas


def assess_relevance(
    url: str,
    content: str,
    ideas: List[Idea],
    constraints: Dict[str, Any],
    client: TextGenerationClient,
    user_prompt: Optional[str] = None
) -> RelevanceAnalysis:
    """Score ideas against the source page; unknown scores become Fair."""
    data = client.generate_json(build_relevance_prompt(url, content, ideas, constraints, user_prompt))
    if not isinstance(data, dict):
        data = {}

    score = str(data.get("score") or "").strip().capitalize()
    if score not in RELEVANCE_SCORES:
        logger.warning(f"Unexpected relevance score {data.get('score')!r}, using Fair")
        score = "Fair"

    return RelevanceAnalysis(score=score, justification=str(data.get("justification") or ""))


def draft_proposal(
    idea: Idea,
    summary: str,
    constraints: Dict[str, Any],
    partners: List[PartnerProfile],
    client: TextGenerationClient,
    user_prompt: Optional[str] = None
) -> ProposalDraft:
    """Generate a full proposal for the selected idea."""
    data = client.generate_json(build_proposal_prompt(idea, summary, constraints, partners, user_prompt))
    if not isinstance(data, dict):
        raise GenerationError("Proposal response was not a JSON object")

    def _list(key: str) -> List[Dict[str, Any]]:
        value = data.get(key)
        return [v for v in value if isinstance(v, dict)] if isinstance(value, list) else []

    return ProposalDraft(
        title=str(data.get("title") or idea.title),
        summary=str(data.get("summary") or ""),
        relevance=str(data.get("relevance") or ""),
        methods=str(data.get("methods") or ""),
        impact=str(data.get("impact") or ""),
        sections={key: str(data[key]) for key in EXTRA_SECTIONS if data.get(key)},
        partners=_list("partners"),
        work_packages=_list("workPackages"),
        milestones=_list("milestones"),
        risks=_list("risks"),
        budget=_list("budget"),
        timeline=_list("timeline"),
        generated_at=utc_timestamp(),
    )


def suggest_partners(
    call_text: str,
    partners: List[PartnerProfile],
    client: Optional[TextGenerationClient],
    limit: int = 5
) -> List[ScoredPartner]:
    """
    Suggest partners for a funding call.

    The keyword ranker shortlists `limit` partners; the model then orders
    the shortlist and supplies reasons. Without a client, or if generation
    fails, the ranker's shortlist is returned as is.
    """
    shortlist = PartnerRelevanceRanker().rank(partners, call_text)[:limit]
    if not shortlist or client is None:
        return shortlist

    try:
        data = client.generate_json(
            build_partner_suggestion_prompt(call_text, [s.partner for s in shortlist])
        )
    except GenerationError as e:
        logger.warning(f"Partner suggestion failed, using keyword ranking: {e}")
        return shortlist

    by_id = {s.partner.id: s for s in shortlist}
    suggested: List[ScoredPartner] = []
    for item in (data.get("suggestions") if isinstance(data, dict) else None) or []:
        if not isinstance(item, dict):
            continue
        scored = by_id.pop(str(item.get("id")), None)
        if scored is None:
            continue
        reason = str(item.get("reason") or "").strip()
        reasons = ([reason] if reason else []) + scored.match_reasons
        suggested.append(
            ScoredPartner(
                partner=scored.partner,
                relevance_score=scored.relevance_score,
                match_reasons=reasons[:PartnerRelevanceRanker.MAX_REASONS],
            )
        )

    # Shortlisted partners the model skipped keep their ranked order at the end
    remaining = [s for s in shortlist if s.partner.id in by_id]
    return suggested + remaining


def extract_funding_scheme(
    document_text: str,
    scheme_name: str,
    source: str,
    client: TextGenerationClient
) -> Dict[str, Any]:
    """
    Extract a funding scheme's section template from a call document.

    Sections are sorted by their order; limits that are not positive
    integers become None and `mandatory` defaults to True.

    Raises:
        GenerationError: if the model output has no usable sections
    """
    data = client.generate_json(build_funding_scheme_prompt(document_text, scheme_name, source))
    raw_sections = data.get("sections") if isinstance(data, dict) else None
    if not isinstance(raw_sections, list):
        raise GenerationError("Template extraction returned no sections")

    sections = [_clean_section(s, i) for i, s in enumerate(raw_sections, 1) if isinstance(s, dict)]
    sections = [s for s in sections if s["label"]]
    if not sections:
        raise GenerationError("Template extraction returned no sections")
    sections.sort(key=lambda s: s["order"])

    metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
    return {
        "name": str(data.get("fundingScheme") or scheme_name),
        "extracted_from": source,
        "sections": sections,
        "metadata": metadata,
    }


def _positive_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _clean_section(section: Dict[str, Any], position: int) -> Dict[str, Any]:
    label = str(section.get("label") or "").strip()
    key = str(section.get("key") or "").strip() or re.sub(r"[^a-z0-9]+", "_", label.lower()).strip("_")
    subsections = section.get("subsections")
    return {
        "key": key,
        "label": label,
        "order": _positive_int(section.get("order")) or position,
        "char_limit": _positive_int(section.get("charLimit")),
        "word_limit": _positive_int(section.get("wordLimit")),
        "page_limit": _positive_int(section.get("pageLimit")),
        "mandatory": section.get("mandatory") is not False,
        "description": str(section.get("description") or ""),
        "subsections": [
            _clean_section(sub, i) for i, sub in enumerate(subsections, 1) if isinstance(sub, dict)
        ] if isinstance(subsections, list) else [],
    }
