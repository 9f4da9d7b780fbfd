"""
Fuzzy matching of accounts to statement items.

Account descriptions are typed by the user ("Itau Dunamis") while the
platform names its products its own way ("Itaú Dunamis Fundo de Ações"), so
items are paired by string similarity rather than by key.
"""

import logging
from typing import List, Optional, Sequence

from rapidfuzz import fuzz, process, utils

from .models import Account, InvestmentItem, MatchedInvestmentAccount

logger = logging.getLogger(__name__)

# 0 accepts only exact matches, 1 accepts anything
DEFAULT_MATCH_THRESHOLD = 0.4


class FuzzyMatcher:
    """Finds the closest string in a corpus.

    Subclasses implement find_best_match; the account matcher only relies on
    that one method.
    """

    def find_best_match(self, query: str, corpus: Sequence[str]) -> Optional[int]:
        """Return the index of the best candidate in corpus, or None."""
        raise NotImplementedError


class RapidFuzzMatcher(FuzzyMatcher):
    """rapidfuzz based matcher.

    Args:
        threshold (float): Tolerated distance between 0 and 1. A candidate
            must score at least (1 - threshold) * 100 to be returned.
        scorer: rapidfuzz scorer, fuzz.WRatio by default
    """

    def __init__(self, threshold=DEFAULT_MATCH_THRESHOLD, scorer=fuzz.WRatio):
        if not 0 <= threshold <= 1:
            raise ValueError(f"Threshold must be between 0 and 1, got {threshold}")
        self.threshold = threshold
        self.scorer = scorer

    @property
    def score_cutoff(self):
        return (1 - self.threshold) * 100

    def find_best_match(self, query, corpus):
        if not query or not corpus:
            return None

        result = process.extractOne(
            query,
            list(corpus),
            scorer=self.scorer,
            processor=utils.default_process,
            score_cutoff=self.score_cutoff,
        )
        if result is None:
            return None

        choice, score, index = result
        logger.debug(f"Best match for {query!r}: {choice!r} ({score:.1f})")
        return index


def match_investments_to_accounts(investments: List[InvestmentItem], accounts: List[Account],
                                  matcher: Optional[FuzzyMatcher] = None) -> List[MatchedInvestmentAccount]:
    """
    Pair every account with its closest statement item.

    Args:
        investments (list): InvestmentItem extracted from the statement
        accounts (list): Known accounts
        matcher (FuzzyMatcher, optional): Similarity search, RapidFuzzMatcher by default

    Returns:
        list: One MatchedInvestmentAccount per account, in account order

    Notes:
        - An item is not reserved once matched; two accounts with similar
          descriptions can both be paired with the same item
    """
    if matcher is None:
        matcher = RapidFuzzMatcher()

    names = [investment.name for investment in investments]
    matched_list = []

    for account in accounts:
        index = matcher.find_best_match(account.description, names)
        if index is None:
            matched_list.append(MatchedInvestmentAccount(account))
        else:
            matched_list.append(MatchedInvestmentAccount(account, investments[index]))

    matched_count = sum(1 for item in matched_list if item.matched)
    logger.info(f"Matched {matched_count} of {len(accounts)} accounts to {len(investments)} investments")
    return matched_list
