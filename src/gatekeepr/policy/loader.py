from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Callable, Hashable, List, Optional, Tuple

from pydantic import ValidationError

from gatekeepr_common.errors import RuleCatalogLoadError

from ..domain.models import RuleDefinition
from ..domain.ports import WatchedRuleSourcePort
from .catalog import RuleCatalog

logger = logging.getLogger(__name__)

FileSignature = Tuple[int, int]  # (st_mtime_ns, st_size)


class RuleFileSource:
    """Reads the rule list from a JSON file (a top-level array of rule objects)."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def __str__(self) -> str:
        return str(self.path)

    def signature(self) -> Optional[FileSignature]:
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return None
        return st.st_mtime_ns, st.st_size

    def load(self) -> List[RuleDefinition]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise RuleCatalogLoadError(f"Cannot read rule file {self.path}: {e}") from e

        if not isinstance(data, list):
            raise RuleCatalogLoadError(f"Rule file {self.path} must contain a JSON array")

        rules: List[RuleDefinition] = []
        for idx, item in enumerate(data):
            try:
                rules.append(RuleDefinition.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping invalid rule #%d in %s: %s", idx, self.path, e)
        return rules


class RuleReloadService:
    """
    Keeps a RuleCatalog in sync with a watched rule source (normally a RuleFileSource).

    A background thread compares the source signature every `interval_s`
    seconds and reloads on change. A failed load keeps the last good
    snapshot and leaves the signature untouched so the next poll retries.
    """

    def __init__(
        self,
        source: WatchedRuleSourcePort,
        catalog: RuleCatalog,
        *,
        interval_s: float = 5.0,
        on_tick: Optional[Callable[[], None]] = None,
    ) -> None:
        self.source = source
        self.catalog = catalog
        self.interval_s = float(interval_s)
        self.on_tick = on_tick
        self._last_sig: Optional[Hashable] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def load_initial(self) -> bool:
        if self.source.signature() is None:
            logger.warning("Rule source does not exist at startup: %s", self.source)
            return False
        logger.info("Initial rule source detected: %s", self.source)
        return self.check_for_updates()

    def check_for_updates(self) -> bool:
        """Reload when the source changed. Returns True when a new generation was installed."""
        sig = self.source.signature()
        if sig is None or sig == self._last_sig:
            return False

        try:
            rules = self.source.load()
        except RuleCatalogLoadError as e:
            logger.error("Rule reload failed, keeping %d current rules: %s", len(self.catalog), e)
            return False

        self.catalog.reload(rules)
        self._last_sig = sig
        logger.info("Loaded %d policy rules from '%s'", len(rules), self.source)
        return True

    def _tick(self) -> None:
        try:
            self.check_for_updates()
        except Exception:
            logger.exception("Error while checking for rule updates")
        if self.on_tick is not None:
            try:
                self.on_tick()
            except Exception:
                logger.exception("Rule poller tick hook failed")

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            self._tick()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self.load_initial()
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="gatekeepr-rule-reload", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
