"""
Prompt templates for idea generation, relevance checks, proposal drafting
and partner suggestions.

Every builder takes an optional free-text block of user requirements,
which is placed first and marked as overriding everything else.
"""

import json
from typing import Any, Dict, List, Optional

from eufunding.core.domain_models import Idea, PartnerProfile

JSON_ONLY = "Return ONLY valid JSON (no markdown, no backticks), no other text."

# Source pages are truncated before being sent to the model
MAX_SOURCE_CHARS = 5000


def _constraints_block(constraints: Dict[str, Any]) -> str:
    return (
        "CONSTRAINTS:\n"
        f"- Partners: {constraints.get('partners') or 'Not specified'}\n"
        f"- Budget: {constraints.get('budget') or 'Not specified'}\n"
        f"- Duration: {constraints.get('duration') or 'Not specified'}"
    )


def _requirements_block(user_prompt: Optional[str]) -> str:
    if not user_prompt:
        return ""
    return (
        "MANDATORY USER REQUIREMENTS - HIGHEST PRIORITY:\n"
        f"{user_prompt}\n"
        "These requirements override any other default or inferred value.\n\n"
    )


def build_ideas_prompt(
    summary: str,
    constraints: Dict[str, Any],
    user_prompt: Optional[str] = None
) -> str:
    aim = (
        "Generate 6-10 project ideas that DIRECTLY address the user requirements above."
        if user_prompt
        else "Generate 6-10 innovative project ideas based on the context summary."
    )
    return (
        "You are a creative brainstorming assistant.\n\n"
        f"{_requirements_block(user_prompt)}"
        f"CONTEXT SUMMARY: {summary}\n\n"
        f"{_constraints_block(constraints)}\n\n"
        f"TASK: {aim}\n"
        "Each idea must align with the funding opportunity, be feasible within the "
        "constraints, and be innovative and impactful.\n\n"
        'OUTPUT FORMAT: {"ideas": [{"title": "...", "description": "2-3 sentences"}]}\n'
        f"{JSON_ONLY}"
    )


def build_relevance_prompt(
    url: str,
    content: str,
    ideas: List[Idea],
    constraints: Dict[str, Any],
    user_prompt: Optional[str] = None
) -> str:
    ideas_json = json.dumps([{"title": i.title, "description": i.description} for i in ideas], indent=2)
    return (
        "Validate these project ideas against the source content.\n\n"
        f"{_requirements_block(user_prompt)}"
        f"SOURCE URL: {url}\n"
        f"SOURCE CONTENT: {content[:MAX_SOURCE_CHARS]}\n\n"
        f"PROJECT IDEAS:\n{ideas_json}\n\n"
        f"{_constraints_block(constraints)}\n\n"
        "Scoring:\n"
        '- "Good": ideas strongly align with the source and constraints\n'
        '- "Fair": ideas partially align\n'
        '- "Poor": ideas do not align\n\n'
        'OUTPUT FORMAT: {"score": "Good" | "Fair" | "Poor", "justification": "..."}\n'
        f"{JSON_ONLY}"
    )


def build_proposal_prompt(
    idea: Idea,
    summary: str,
    constraints: Dict[str, Any],
    partners: List[PartnerProfile],
    user_prompt: Optional[str] = None
) -> str:
    partner_info = ""
    if partners:
        lines = [
            f"- {p.name} ({p.country or 'Country not specified'}): {p.description or 'No description'}"
            for p in partners
        ]
        partner_info = "\n\nCONSORTIUM PARTNERS:\n" + "\n".join(lines)

    return (
        "You are an expert EU funding proposal writer.\n\n"
        f"{_requirements_block(user_prompt)}"
        "SELECTED PROJECT IDEA:\n"
        f"Title: {idea.title}\n"
        f"Description: {idea.description}\n\n"
        f"CONTEXT: {summary}\n\n"
        f"{_constraints_block(constraints)}{partner_info}\n\n"
        "TASK: Generate a comprehensive funding proposal in EU format.\n"
        "1. Use HTML formatting for text sections (<p>, <strong>, <ul>, <li>).\n"
        "2. Generate a realistic budget in Euros with detailed breakdowns.\n"
        "3. Create specific work packages with deliverables.\n"
        "4. Include a risk assessment matrix and a monthly timeline.\n"
        "5. Include a dissemination and communication strategy.\n\n"
        "OUTPUT FORMAT (JSON object with these keys):\n"
        "title, summary, relevance, impact, methods, introduction, objectives, "
        "methodology, expectedResults, innovation, sustainability, consortium, "
        "workPlan, riskManagement, dissemination (HTML strings);\n"
        'partners: [{"name", "role"}];\n'
        'workPackages: [{"name", "description", "deliverables": [...]}];\n'
        'milestones: [{"milestone", "workPackage", "dueDate"}];\n'
        'risks: [{"risk", "likelihood", "impact", "mitigation"}];\n'
        'budget: [{"item", "cost", "description", "breakdown": [{"subItem", "quantity", "unitCost", "total"}]}];\n'
        'timeline: [{"phase", "activities": [...], "startMonth", "endMonth"}]\n'
        f"{JSON_ONLY}"
    )


def build_partner_suggestion_prompt(call_text: str, partners: List[PartnerProfile]) -> str:
    candidates = [
        {
            "id": p.id,
            "name": p.name,
            "country": p.country,
            "type": p.organization_type,
            "description": (p.description or "")[:500],
            "keywords": p.keywords,
        }
        for p in partners
    ]
    return (
        "You are an EU consortium-building advisor.\n\n"
        f"FUNDING CALL:\n{call_text[:MAX_SOURCE_CHARS]}\n\n"
        f"CANDIDATE PARTNERS:\n{json.dumps(candidates, indent=2, ensure_ascii=False)}\n\n"
        "TASK: Pick the partners best suited to this call, best first. Use only the "
        "candidates listed. Give a one-sentence reason for each.\n\n"
        'OUTPUT FORMAT: {"suggestions": [{"id": "...", "reason": "..."}]}\n'
        f"{JSON_ONLY}"
    )


def build_funding_scheme_prompt(document_text: str, scheme_name: str, source: str) -> str:
    return (
        "You are an expert at analyzing EU funding application guidelines and call documents.\n\n"
        "TASK: Extract the proposal application structure from the document below.\n"
        "For each section give: a snake_case key, the label as written, its order, any "
        "character/word/page limit (null if none), whether it is mandatory (true when "
        "unclear), a short description of what is required, and any subsections.\n"
        "Look for headings such as 'Section 1:', 'Part A:', 'Criterion 1:' and limits such "
        "as 'Maximum 5000 characters' or 'Max 3 pages'. Extract ALL sections.\n\n"
        f"DOCUMENT:\n{document_text[:MAX_SOURCE_CHARS * 6]}\n\n"
        "OUTPUT FORMAT:\n"
        "{\n"
        f'  "fundingScheme": {json.dumps(scheme_name)},\n'
        f'  "extractedFrom": {json.dumps(source)},\n'
        '  "sections": [{"key": "excellence", "label": "1. Excellence", "charLimit": 5000, '
        '"wordLimit": null, "pageLimit": null, "mandatory": true, "order": 1, '
        '"description": "...", "subsections": []}],\n'
        '  "metadata": {"totalCharLimit": null, "totalWordLimit": null}\n'
        "}\n"
        f"{JSON_ONLY}"
    )
