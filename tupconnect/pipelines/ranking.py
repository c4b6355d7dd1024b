"""Organization ranking against a classification result.

Scores organization records sent with a match request against the
MatchResult so the "Find Your Match" view can order clubs by category
overlap.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from config.category_taxonomy import AFFILIATION_TITLES, NO_AFFILIATION
from tupconnect.pipelines.extraction import MatchResult

logger = logging.getLogger(__name__)

NON_COLLEGE = "NON_COLLEGE"
AFFILIATION_BONUS = 0.25


@dataclass
class Organization:
    """Organization record as stored in the directory."""
    id: str
    name: str
    affiliation: str | None = None
    categories: list[str] = field(default_factory=list)
    abbreviation: str | None = None
    description: str | None = None


@dataclass
class RankedOrganization:
    """Organization with its match score against one interest."""
    organization: Organization
    score: float
    matched_categories: list[str]

    @property
    def match_percentage(self) -> int:
        return round(self.score * 100)


def score_organization(org: Organization, result: MatchResult) -> tuple[float, list[str]]:
    """Score one organization.

    The base score is the share of the organization's categories that the
    interest matched. Sharing the student's college adds AFFILIATION_BONUS,
    but only when at least one category matched.

    Returns:
        (score in [0, 1], matched categories in the organization's order)
    """
    if not org.categories:
        return 0.0, []

    wanted = set(result.matched_categories)
    matched = [c for c in org.categories if c in wanted]
    if not matched:
        return 0.0, []

    score = len(matched) / len(org.categories)
    if result.user_affiliation != NO_AFFILIATION and org.affiliation == result.user_affiliation:
        score += AFFILIATION_BONUS
    return min(score, 1.0), matched


def rank_organizations(
    organizations: Iterable[Organization],
    result: MatchResult,
    min_score: float = 0.0,
) -> list[RankedOrganization]:
    """Rank organizations by score (desc), then name.

    Organizations with no category overlap are left out.
    """
    ranked = []
    for org in organizations:
        score, matched = score_organization(org, result)
        if matched and score >= min_score:
            ranked.append(RankedOrganization(org, score, matched))

    ranked.sort(key=lambda r: (-r.score, r.organization.name.lower()))
    logger.info(f"Ranked {len(ranked)} organizations for {len(result.matched_categories)} categories")
    return ranked


def affiliation_title(code: str | None) -> str:
    """Human-readable college name; unknown codes are returned unchanged."""
    code = code or NON_COLLEGE
    return AFFILIATION_TITLES.get(code, code)
