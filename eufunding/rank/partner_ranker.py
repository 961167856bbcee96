"""
Rank consortium partners by relevance to free-text proposal content.
"""

import logging
from typing import Iterable, List, Optional

from eufunding.core.domain_models import PartnerProfile, ScoredPartner
from eufunding.core.utils import tokenize


logger = logging.getLogger(__name__)


class PartnerRelevanceRanker:
    """Score partners against proposal text with keyword and token overlap."""

    # Curated keywords outweigh incidental word overlap
    KEYWORD_POINTS = 10
    TOKEN_POINTS = 1

    MAX_REASONS = 3

    def rank(
        self,
        partners: Iterable[PartnerProfile],
        context: Optional[str]
    ) -> List[ScoredPartner]:
        """
        Score every partner and sort by descending relevance.

        Ties keep their input order. With no context every partner scores 0
        and the input order is returned untouched.

        Args:
            partners: Partner profiles (not modified)
            context: Proposal summary or description to match against

        Returns:
            List of ScoredPartner, best match first
        """
        partners = list(partners)

        if not context:
            return [ScoredPartner(partner=p) for p in partners]

        context_lower = context.lower()
        tokens = tokenize(context)

        scored = [self.score(p, context_lower, tokens) for p in partners]
        scored.sort(key=lambda s: s.relevance_score, reverse=True)

        logger.debug(f"Ranked {len(scored)} partners against {len(tokens)} context tokens")
        return scored

    def score(
        self,
        partner: PartnerProfile,
        context_lower: str,
        tokens: List[str]
    ) -> ScoredPartner:
        """
        Score a single partner.

        Args:
            partner: Partner to score
            context_lower: Lower-cased context text
            tokens: Distinct context tokens from `tokenize`
        """
        score = 0
        reasons = []

        for keyword in partner.keywords or []:
            if keyword is None:
                continue
            if keyword.lower() in context_lower:
                score += self.KEYWORD_POINTS
                reasons.append(f"Keyword match: {keyword}")

        for text in (partner.description, partner.experience):
            if not text:
                continue
            text_lower = text.lower()
            score += self.TOKEN_POINTS * sum(1 for token in tokens if token in text_lower)

        return ScoredPartner(
            partner=partner,
            relevance_score=score,
            match_reasons=reasons[:self.MAX_REASONS],
        )


def rank_partners(
    partners: Iterable[PartnerProfile],
    context: Optional[str]
) -> List[ScoredPartner]:
    """Convenience wrapper around PartnerRelevanceRanker.rank."""
    return PartnerRelevanceRanker().rank(partners, context)
