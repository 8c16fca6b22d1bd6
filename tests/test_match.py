"""Tests for best-match search over the part catalog."""

import pytest

from parts_logic.core.match import find_best_match, rank_matches
from parts_logic.models.types import PartType


class TestFindBestMatch:
    def test_returns_closest_same_type_part(self, make_part):
        catalog = [
            make_part("U1", dimensions={"length": "100", "radius": "10"}),
            make_part("U2", dimensions={"length": "99", "radius": "10"}),
        ]
        match = find_best_match(PartType.U_SHAPE, {"length": "100", "radius": "10"}, catalog)
        assert match is not None
        assert match.part.name == "U1"
        assert match.score == 100

    def test_other_types_are_ignored(self, make_part):
        catalog = [make_part("S1", type=PartType.STRAIGHT, dimensions={"length": "100", "radius": "10"})]
        assert find_best_match(PartType.U_SHAPE, {"length": "100", "radius": "10"}, catalog) is None

    def test_score_of_exactly_95_is_not_a_match(self, make_part):
        catalog = [make_part("U1", dimensions={"length": "100"})]
        assert find_best_match(PartType.U_SHAPE, {"length": "95"}, catalog) is None

    def test_score_above_95_is_a_match(self, make_part):
        catalog = [make_part("U1", dimensions={"length": "1000"})]
        match = find_best_match(PartType.U_SHAPE, {"length": "951"}, catalog)
        assert match is not None
        assert match.score == pytest.approx(95.1)

    def test_ties_keep_catalog_order(self, make_part):
        catalog = [
            make_part("U4", dimensions={"length": "100"}),
            make_part("U2", dimensions={"length": "100"}),
        ]
        match = find_best_match(PartType.U_SHAPE, {"length": "100"}, catalog)
        assert match.part.name == "U4"

    def test_empty_inputs(self, make_part):
        catalog = [make_part("U1", dimensions={"length": "100"})]
        assert find_best_match(PartType.U_SHAPE, {}, catalog) is None
        assert find_best_match(None, {"length": "100"}, catalog) is None
        assert find_best_match(PartType.U_SHAPE, {"length": "100"}, []) is None

    def test_accepts_type_value_strings(self, make_part):
        catalog = [make_part("K1", type=PartType.KNOB, dimensions={"depth": "12"})]
        match = find_best_match("Knob", {"depth": "12"}, catalog)
        assert match.part.name == "K1"

    def test_type_strings_are_trimmed(self, make_part):
        catalog = [make_part("K1", type=PartType.KNOB, dimensions={"depth": "12"})]
        assert find_best_match(" Knob ", {"depth": "12"}, catalog).part.name == "K1"
        assert [c.part.name for c in rank_matches("Knob ", {"depth": "12"}, catalog)] == ["K1"]
        assert find_best_match("Widget", {"depth": "12"}, catalog) is None

    def test_custom_threshold(self, make_part):
        catalog = [make_part("U1", dimensions={"length": "100"})]
        assert find_best_match(PartType.U_SHAPE, {"length": "80"}, catalog, threshold=75) is not None


class TestRankMatches:
    def test_sorted_best_first_and_truncated(self, make_part):
        catalog = [
            make_part("U1", dimensions={"length": "97"}),
            make_part("U2", dimensions={"length": "100"}),
            make_part("U3", dimensions={"length": "98"}),
            make_part("U4", dimensions={"length": "50"}),
        ]
        ranked = rank_matches(PartType.U_SHAPE, {"length": "100"}, catalog, max_suggestions=2)
        assert [c.part.name for c in ranked] == ["U2", "U3"]

    def test_head_agrees_with_best_match(self, make_part):
        catalog = [
            make_part("U7", dimensions={"length": "99"}),
            make_part("U8", dimensions={"length": "101"}),
            make_part("U9", dimensions={"length": "99"}),
        ]
        dims = {"length": "100"}
        ranked = rank_matches(PartType.U_SHAPE, dims, catalog)
        assert ranked[0].part is find_best_match(PartType.U_SHAPE, dims, catalog).part
