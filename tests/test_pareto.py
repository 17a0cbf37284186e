"""Tests for Pareto dominance and the candidate collection."""

import pytest

from promptground.core.pareto import ParetoSelector
from promptground.models import PromptCandidate, dominates

METRICS = ["tone", "accuracy"]


def candidate(cid: str, tone: float, accuracy: float, overall: float = 0.5) -> PromptCandidate:
    return PromptCandidate(
        id=cid,
        prompt=f"prompt {cid}",
        metrics={"tone": tone, "accuracy": accuracy},
        overall_score=overall,
    )


class TestDominance:
    """Tests for the dominance relation."""

    def test_better_on_one_equal_on_other(self) -> None:
        assert dominates({"tone": 0.8, "accuracy": 0.5}, {"tone": 0.5, "accuracy": 0.5}, METRICS)

    def test_tie_does_not_dominate(self) -> None:
        a = {"tone": 0.6, "accuracy": 0.6}
        assert not dominates(a, dict(a), METRICS)

    def test_tradeoff_neither_dominates(self) -> None:
        a = {"tone": 0.9, "accuracy": 0.4}
        b = {"tone": 0.4, "accuracy": 0.9}
        assert not dominates(a, b, METRICS)
        assert not dominates(b, a, METRICS)

    def test_missing_metric_counts_as_zero(self) -> None:
        assert dominates({"tone": 0.1}, {}, METRICS)
        assert not dominates({}, {"accuracy": 0.1}, METRICS)

    def test_only_named_metrics_are_compared(self) -> None:
        a = {"tone": 0.5, "accuracy": 0.5, "guardrails": 0.0}
        b = {"tone": 0.5, "accuracy": 0.4, "guardrails": 1.0}
        assert dominates(a, b, METRICS)


class TestParetoSelector:
    """Tests for collection maintenance and selection."""

    def test_update_adds_to_empty_collection(self) -> None:
        selector = ParetoSelector(METRICS)
        new = candidate("a", 0.5, 0.5)
        assert selector.update_frontier([], new) == [new]

    def test_dominating_candidate_replaces_dominated(self) -> None:
        selector = ParetoSelector(METRICS)
        old = candidate("old", 0.5, 0.5)
        new = candidate("new", 0.6, 0.5)
        assert selector.update_frontier([old], new) == [new]

    def test_dominated_candidate_is_not_added(self) -> None:
        selector = ParetoSelector(METRICS)
        best = candidate("best", 0.9, 0.9)
        result = selector.update_frontier([best], candidate("weak", 0.2, 0.2))
        assert result == [best]

    def test_tradeoff_candidates_coexist(self) -> None:
        selector = ParetoSelector(METRICS)
        a = candidate("a", 0.9, 0.4)
        b = candidate("b", 0.4, 0.9)
        assert selector.update_frontier([a], b) == [a, b]

    def test_equal_metrics_both_kept(self) -> None:
        selector = ParetoSelector(METRICS)
        a = candidate("a", 0.5, 0.5)
        b = candidate("b", 0.5, 0.5)
        assert [c.id for c in selector.update_frontier([a], b)] == ["a", "b"]

    def test_update_does_not_mutate_input(self) -> None:
        selector = ParetoSelector(METRICS)
        collection = [candidate("old", 0.1, 0.1)]
        selector.update_frontier(collection, candidate("new", 0.9, 0.9))
        assert [c.id for c in collection] == ["old"]

    def test_collection_stays_non_dominated(self) -> None:
        selector = ParetoSelector(METRICS)
        points = [(0.2, 0.9), (0.5, 0.5), (0.9, 0.2), (0.6, 0.6), (0.1, 0.1), (0.95, 0.3)]
        collection = []
        for index, (tone, accuracy) in enumerate(points):
            collection = selector.update_frontier(collection, candidate(f"c{index}", tone, accuracy))

        for a in collection:
            for b in collection:
                if a is not b:
                    assert not selector.dominates(a, b)
        assert {c.id for c in collection} == {"c0", "c3", "c5"}

    def test_get_pareto_frontier(self) -> None:
        selector = ParetoSelector(METRICS)
        frontier = selector.get_pareto_frontier([
            candidate("a", 0.1, 0.1),
            candidate("b", 0.9, 0.1),
            candidate("c", 0.1, 0.9),
        ])
        assert [c.id for c in frontier] == ["b", "c"]

    def test_select_highest_overall_score(self) -> None:
        selector = ParetoSelector(METRICS)
        collection = [
            candidate("a", 0.9, 0.1, overall=0.4),
            candidate("b", 0.1, 0.9, overall=0.8),
        ]
        assert selector.select(collection).id == "b"

    def test_select_tie_keeps_first(self) -> None:
        selector = ParetoSelector(METRICS)
        collection = [
            candidate("a", 0.9, 0.1, overall=0.6),
            candidate("b", 0.1, 0.9, overall=0.6),
        ]
        assert selector.select(collection).id == "a"

    def test_select_empty_raises(self) -> None:
        with pytest.raises(ValueError):
            ParetoSelector(METRICS).select([])
