from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional, Protocol

from core.errors import CollectorError, MetricCollisionError


class Source(Protocol):
    name: str

    def read(self, metrics: Dict[str, float]) -> None: ...


class MetricAggregator:
    """
    Runs every metric source in turn and merges their output into one snapshot.

    A failing source is logged as a warning and skipped; whatever it wrote
    before failing is kept. Sources are expected to use disjoint key
    namespaces: a key emitted by two sources is logged, and the later
    source wins unless `strict` is set, in which case MetricCollisionError
    is raised.
    """

    def __init__(self, sources: Iterable[Source],
                 logger: Optional[logging.Logger] = None,
                 strict: bool = False) -> None:
        self.sources: List[Source] = list(sources)
        self.logger = logger or logging.getLogger(__name__)
        self.strict = strict

    def collect(self) -> Dict[str, float]:
        """
        Build a fresh snapshot from all sources.

        Returns:
            Mapping of metric name to value; possibly incomplete when a
            source failed, never an exception for a single bad source.
        """
        snapshot: Dict[str, float] = {}
        owners: Dict[str, str] = {}
        for source in self.sources:
            partial: Dict[str, float] = {}
            try:
                source.read(partial)
            except (CollectorError, OSError, UnicodeError) as e:
                self.logger.warning("%s: %s", source.name, e)
            self._merge(snapshot, owners, source.name, partial)
        self.logger.debug("collected %d metrics from %d sources",
                          len(snapshot), len(self.sources))
        return snapshot

    def _merge(self, snapshot: Dict[str, float], owners: Dict[str, str],
               name: str, partial: Dict[str, float]) -> None:
        for key, value in partial.items():
            if key in owners:
                if self.strict:
                    raise MetricCollisionError(key, owners[key], name)
                self.logger.warning("metric %s from %s overwrites value from %s",
                                    key, name, owners[key])
            owners[key] = name
            snapshot[key] = value
