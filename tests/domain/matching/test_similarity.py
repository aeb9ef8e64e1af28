from __future__ import annotations

import pytest

from cantus.domain.matching import (
    normalize_text,
    numeric_similarity,
    set_similarity,
    string_similarity,
)
from cantus.domain.matching.similarity import weighted_score


def test_normalize_text_folds_case_width_and_whitespace() -> None:
    assert normalize_text("  The   BEATLES ") == "the beatles"
    assert normalize_text("Ｆｕｌｌ") == "full"


def test_string_similarity_ignores_case() -> None:
    assert string_similarity("Beyoncé", "BEYONCÉ") == pytest.approx(1.0)
    assert string_similarity("", "  ") == pytest.approx(1.0)
    assert 0.0 < string_similarity("Abbey Road", "Abbey Rd") < 1.0


def test_set_similarity_is_order_insensitive() -> None:
    assert set_similarity(["A", "B"], ["B", "A"]) == pytest.approx(1.0)
    assert set_similarity(["Alpha"], ["Alpha", "Beta"]) == pytest.approx(0.5)
    assert set_similarity([], ["Alpha"]) == 0.0
    assert set_similarity([], []) == 1.0


def test_numeric_similarity() -> None:
    assert numeric_similarity(3, 3, scale=1.0) == 1.0
    assert numeric_similarity(1, 3, scale=2.0) == pytest.approx(0.5)
    assert numeric_similarity(1, 2, scale=0.0) == 0.0


def test_weighted_score_renormalizes_over_present_fields() -> None:
    weights = {"title": 0.5, "artists": 0.5}

    assert weighted_score({"title": 1.0, "artists": None}, weights) == pytest.approx(1.0)
    assert weighted_score({"title": 1.0, "artists": 0.0}, weights) == pytest.approx(0.5)
    assert weighted_score({"title": None, "artists": None}, weights) is None
