"""Progress tracker for optimization runs using tqdm."""

from types import TracebackType
from typing import Optional, Type

from tqdm import tqdm

from ...models import ProgressEvent
from ..events import EventSink


class ProgressTracker(EventSink):
    """Track optimization progress with tqdm; consumes progress events."""

    def __init__(self, num_rollouts: int, disable: bool = False):
        """Initialize progress tracker."""
        self.num_rollouts = num_rollouts
        self.disable = disable
        self.best_score = 0.0
        self.collection_size = 0
        self.accepted = 0
        self._pbar: Optional[tqdm] = None

    def start(self) -> None:
        """Start the progress bar."""
        self._pbar = tqdm(
            total=self.num_rollouts,
            desc="GEPA Optimization",
            unit="rollout",
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]",
            dynamic_ncols=True,
            disable=self.disable,
        )

    def close(self) -> None:
        """Close the progress bar."""
        if self._pbar:
            self._pbar.close()
            self._pbar = None

    def __enter__(self) -> "ProgressTracker":
        """Enter progress context."""
        self.start()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        """Exit progress context."""
        self.close()

    async def send(self, event: ProgressEvent) -> None:
        if event.type == "start":
            self.collection_size = event.collection_size
            self.best_score = event.best_score
            self.set_start_iteration(event.iteration + 1)
        elif event.type == "iteration":
            self.update_rollout(event)
        elif event.type == "complete":
            self.best_score = event.best_score
            self.collection_size = event.collection_size
            self._refresh_postfix()

    def set_start_iteration(self, start_iteration: int) -> None:
        """Advance progress for resumed runs."""
        if start_iteration > 1 and self._pbar is not None:
            self._pbar.update(start_iteration - 1)

    def update_rollout(self, event: ProgressEvent) -> None:
        """Advance one rollout and show best score and collection size."""
        if event.accepted:
            self.accepted += 1
        self.best_score = max(self.best_score, event.best_score)
        self.collection_size = event.collection_size
        if self._pbar:
            self._pbar.update(1)
        self._refresh_postfix()

    def _refresh_postfix(self) -> None:
        if self._pbar:
            self._pbar.set_postfix({
                "best": f"{self.best_score:.2f}",
                "pool": self.collection_size,
                "acc": self.accepted,
            })
