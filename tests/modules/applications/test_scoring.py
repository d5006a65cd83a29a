"""
Unit tests for the competence scorer.
"""

import math

import pytest

from careers.modules.applications.scoring import (
    compute_score,
    extract_ratings,
    is_meta_key,
)


class TestComputeScore:
    """Tests for compute_score."""

    def test_all_max_ratings_score_100(self):
        assert compute_score({"a": 5, "b": 5, "c": 5, "d": 5, "e": 5}) == 100

    def test_proportional_average(self):
        """Sum 15 out of a possible 25 is 60."""
        assert compute_score({"a": 3, "b": 4, "c": 5, "d": 2, "e": 1}) == 60

    @pytest.mark.parametrize("skills", [{"a": 0, "b": 0}, {}, None])
    def test_zero_cases(self, skills):
        assert compute_score(skills) == 0

    def test_only_meta_keys_score_zero(self):
        assert compute_score({"Requirements": 5, "exigences:": 4}) == 0

    def test_meta_entries_are_excluded(self):
        """The requirements note is neither summed nor counted."""
        skills = {"Python": 5, "SQL": 3, "Requirements": "3 years of Django"}
        assert compute_score(skills) == 80

    def test_meta_keys_match_trimmed_and_case_insensitive(self):
        skills = {"Python": 4, "  REQUIREMENTS  ": 0}
        assert compute_score(skills) == 80

    def test_non_numeric_values_are_ignored(self):
        skills = {"Python": 5, "Docker": "good", "Git": None, "Team": [5]}
        assert compute_score(skills) == 100

    def test_numeric_strings_are_not_ratings(self):
        assert compute_score({"Python": "5", "SQL": 0}) == 0

    def test_booleans_are_not_ratings(self):
        assert compute_score({"Python": True, "SQL": 5}) == 100

    def test_non_finite_values_are_ignored(self):
        assert compute_score({"Python": math.nan, "SQL": math.inf, "Go": 4}) == 80

    def test_rounds_half_up(self):
        """12.5 out of 20 is 62.5 percent."""
        assert compute_score({"a": 3, "b": 2, "c": 4, "d": 3.5}) == 63

    def test_fractional_ratings(self):
        assert compute_score({"a": 4.5}) == 90

    def test_out_of_range_ratings_are_clamped(self):
        assert compute_score({"a": 9, "b": 8}) == 100
        assert compute_score({"a": -3}) == 0

    @pytest.mark.parametrize(
        "skills",
        [
            {"a": 1},
            {"a": 5, "b": 0, "c": 2.5},
            {"a": 12, "b": -4},
            {"x": 3, "requirements": 5, "note": "text"},
        ],
    )
    def test_score_always_within_bounds(self, skills):
        score = compute_score(skills)
        assert isinstance(score, int)
        assert 0 <= score <= 100

    def test_does_not_mutate_input(self):
        skills = {"Python": 5, "Requirements": "note"}
        compute_score(skills)
        assert skills == {"Python": 5, "Requirements": "note"}


class TestExtractRatings:
    """Tests for extract_ratings."""

    def test_keeps_numeric_non_meta_values(self):
        skills = {"Python": 5, "competences": 4, "SQL": 2.5, "Docker": "yes"}
        assert extract_ratings(skills) == [5.0, 2.5]

    def test_empty_input(self):
        assert extract_ratings({}) == []
        assert extract_ratings(None) == []


class TestIsMetaKey:
    """Tests for is_meta_key."""

    @pytest.mark.parametrize(
        "key",
        ["exigences", "Exigences:", "compétences", "Competences", "requirements:", " Requirements "],
    )
    def test_meta_keys(self, key):
        assert is_meta_key(key) is True

    @pytest.mark.parametrize("key", ["Python", "requirement", "skills"])
    def test_rating_keys(self, key):
        assert is_meta_key(key) is False
