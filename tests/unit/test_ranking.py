"""Unit tests for organization ranking and affiliation titles."""

from __future__ import annotations

import pytest

from tupconnect.pipelines.extraction import MatchResult
from tupconnect.pipelines.ranking import (
    Organization,
    affiliation_title,
    rank_organizations,
    score_organization,
)


@pytest.fixture
def organizations() -> list[Organization]:
    return [
        Organization("1", "Computer Students' Association", "COS", ["Academic/Research", "Technology/IT/Gaming"]),
        Organization("2", "TUP Esports Guild", None, ["Technology/IT/Gaming"]),
        Organization("3", "Dugong Bughaw", "CAFA", ["Arts/Design/Media", "Culture/Religion"]),
        Organization("4", "Engineering Society", "COE", ["Engineering/Built Env.", "Technology/IT/Gaming"]),
        Organization("5", "Chess Club", "COS", []),
    ]


@pytest.mark.unit
class TestScoring:
    def test_share_of_categories(self, organizations: list[Organization]) -> None:
        result = MatchResult(matched_categories=("Technology/IT/Gaming",))
        score, matched = score_organization(organizations[3], result)
        assert score == pytest.approx(0.5)
        assert matched == ["Technology/IT/Gaming"]

    def test_affiliation_bonus_is_capped(self, organizations: list[Organization]) -> None:
        result = MatchResult(
            matched_categories=("Academic/Research", "Technology/IT/Gaming"),
            user_affiliation="COS",
        )
        score, _ = score_organization(organizations[0], result)
        assert score == 1.0

    def test_affiliation_alone_scores_zero(self, organizations: list[Organization]) -> None:
        result = MatchResult(matched_categories=("Culture/Religion",), user_affiliation="COS")
        assert score_organization(organizations[0], result) == (0.0, [])

    def test_no_categories(self, organizations: list[Organization]) -> None:
        result = MatchResult(matched_categories=("Academic/Research",), user_affiliation="COS")
        assert score_organization(organizations[4], result) == (0.0, [])


@pytest.mark.unit
class TestRanking:
    def test_orders_by_score_then_name(self, organizations: list[Organization]) -> None:
        result = MatchResult(matched_categories=("Technology/IT/Gaming",))

        ranked = rank_organizations(organizations, result)

        assert [r.organization.id for r in ranked] == ["2", "1", "4"]
        assert [r.match_percentage for r in ranked] == [100, 50, 50]

    def test_min_score_filters(self, organizations: list[Organization]) -> None:
        result = MatchResult(matched_categories=("Technology/IT/Gaming",))
        ranked = rank_organizations(organizations, result, min_score=0.75)
        assert [r.organization.id for r in ranked] == ["2"]

    def test_empty_result_ranks_nothing(self, organizations: list[Organization]) -> None:
        assert rank_organizations(organizations, MatchResult()) == []


@pytest.mark.unit
class TestAffiliationTitle:
    @pytest.mark.parametrize(
        ("code", "title"),
        [
            ("COE", "College of Engineering"),
            ("NON_COLLEGE", "Non-College Based"),
            (None, "Non-College Based"),
            ("GUILD", "GUILD"),
        ],
    )
    def test_affiliation_title(self, code: str | None, title: str) -> None:
        assert affiliation_title(code) == title
