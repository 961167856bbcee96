"""
Partner relevance ranking.
"""

from .partner_ranker import PartnerRelevanceRanker, rank_partners

__all__ = ['PartnerRelevanceRanker', 'rank_partners']
