"""Breadth-first crawl frontier with crawl-scoped dedup."""

import logging
from collections import deque
from typing import AbstractSet, Deque, NamedTuple, Optional, Set

logger = logging.getLogger(__name__)


class FrontierEntry(NamedTuple):
    url: str
    depth: int


class Frontier:
    """FIFO queue of URLs awaiting a visit, plus the set already visited.

    One instance belongs to one search invocation. URLs must already be
    normalised; equality on the normalised string is the dedup key.
    """

    def __init__(self, max_depth: int) -> None:
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        self.max_depth = max_depth
        self._queue: Deque[FrontierEntry] = deque()
        self._queued: Set[str] = set()
        self._visited: Set[str] = set()

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)

    @property
    def visited(self) -> AbstractSet[str]:
        return frozenset(self._visited)

    def is_visited(self, url: str) -> bool:
        return url in self._visited

    def mark_visited(self, url: str) -> bool:
        """Record *url* as visited; return False if it already was."""
        if url in self._visited:
            return False
        self._visited.add(url)
        return True

    def push(self, url: str, depth: int) -> bool:
        """Queue *url* at *depth*; return False when it is not queued.

        Entries deeper than ``max_depth``, already visited, or already
        waiting in the queue are ignored.
        """
        if depth < 0:
            raise ValueError("depth must be >= 0")
        if depth > self.max_depth:
            return False
        if url in self._visited or url in self._queued:
            return False
        self._queued.add(url)
        self._queue.append(FrontierEntry(url, depth))
        return True

    def pop(self) -> Optional[FrontierEntry]:
        """Return the oldest unvisited entry and mark it visited.

        Returns None once the queue is exhausted.
        """
        while self._queue:
            entry = self._queue.popleft()
            self._queued.discard(entry.url)
            if entry.url in self._visited:
                logger.debug("Frontier: already visited %s", entry.url)
                continue
            self._visited.add(entry.url)
            return entry
        return None
