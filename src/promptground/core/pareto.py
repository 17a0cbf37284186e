"""Pareto frontier maintenance for multi-objective prompt optimization."""

from typing import List, Sequence

from loguru import logger

from ..models import PromptCandidate, dominates


class ParetoSelector:
    """Maintains the collection of non-dominated prompt candidates."""

    def __init__(self, metric_names: Sequence[str]):
        """Initialize selector with the ordered metrics used for dominance."""
        self.metric_names = list(metric_names)

    def dominates(self, a: PromptCandidate, b: PromptCandidate) -> bool:
        return dominates(a.metrics, b.metrics, self.metric_names)

    def update_frontier(
        self,
        collection: Sequence[PromptCandidate],
        new_candidate: PromptCandidate,
    ) -> List[PromptCandidate]:
        """Return a new collection with `new_candidate` folded in.

        Members dominated by the new candidate are dropped; the candidate is
        added only if no member dominates it. The input is left untouched.
        """
        non_dominated: List[PromptCandidate] = []
        is_dominated = False

        for existing in collection:
            if self.dominates(existing, new_candidate):
                is_dominated = True
            if not self.dominates(new_candidate, existing):
                non_dominated.append(existing)

        if not is_dominated:
            non_dominated.append(new_candidate)

        logger.debug(
            f"Pareto frontier: {len(collection)} -> {len(non_dominated)} candidates "
            f"({new_candidate.id} {'dominated' if is_dominated else 'kept'})"
        )
        return non_dominated

    def get_pareto_frontier(self, candidates: Sequence[PromptCandidate]) -> List[PromptCandidate]:
        """Extract non-dominated candidates from an arbitrary list."""
        frontier: List[PromptCandidate] = []
        for candidate in candidates:
            frontier = self.update_frontier(frontier, candidate)
        return frontier

    def select(self, collection: Sequence[PromptCandidate]) -> PromptCandidate:
        """Pick the candidate with the highest overall score; earliest wins ties."""
        if not collection:
            raise ValueError("Cannot select from empty collection")
        return max(collection, key=lambda c: c.overall_score)
