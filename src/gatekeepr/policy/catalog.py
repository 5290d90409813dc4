from __future__ import annotations

import logging
import threading
from typing import Iterable, Tuple

from ..domain.models import RuleDefinition

logger = logging.getLogger(__name__)


class RuleCatalog:
    """
    The current generation of rule definitions.

    Readers take the tuple reference returned by current() and keep using it;
    reload() builds a new tuple and swaps the reference, so an evaluation never
    observes a mix of two generations and readers never wait on the writer.
    """

    def __init__(self, rules: Iterable[RuleDefinition] = ()) -> None:
        self._rules: Tuple[RuleDefinition, ...] = tuple(rules)
        self._generation = 0
        self._write_lock = threading.Lock()

    def current(self) -> Tuple[RuleDefinition, ...]:
        return self._rules

    @property
    def generation(self) -> int:
        return self._generation

    def reload(self, rules: Iterable[RuleDefinition]) -> int:
        """Replace the snapshot wholesale. Returns the new generation number."""
        snapshot = tuple(rules)
        with self._write_lock:
            self._rules = snapshot
            self._generation += 1
            generation = self._generation
        logger.info("Rule catalog generation %d active (%d rules)", generation, len(snapshot))
        return generation

    def __len__(self) -> int:
        return len(self._rules)
