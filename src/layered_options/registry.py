from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from layered_options.errors import ParseError, SourceLoadError
from layered_options.interfaces import ConfigSource
from layered_options.merger import merge
from layered_options.view import MergedView

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[ConfigSource], None]


@dataclass(frozen=True, slots=True)
class _Registration:
    source: ConfigSource
    rank: int
    order: int


class SourceRegistry:
    """
    Ordered collection of configuration sources.

    Sources are merged by ascending ``priority_rank``; among equal ranks the source
    registered later wins. Change notifications from sources are forwarded to
    subscribers on the calling thread. The registry never re-merges on its own;
    subscribers decide when to call :meth:`reload`.
    """

    def __init__(self) -> None:
        self._registrations: list[_Registration] = []
        self._subscribers: list[ChangeCallback] = []
        self._view: Optional[MergedView] = None

    def register(self, source: ConfigSource, priority_rank: Optional[int] = None) -> ConfigSource:
        if any(r.source.name == source.name for r in self._registrations):
            raise ValueError(f"A configuration source named '{source.name}' is already registered.")
        if priority_rank is None:
            priority_rank = max((r.rank for r in self._registrations), default=-1) + 1
        self._registrations.append(
            _Registration(source=source, rank=priority_rank, order=len(self._registrations))
        )
        source.add_change_listener(self._on_source_changed)
        logger.debug("registry.source_registered name=%s rank=%s", source.name, priority_rank)
        return source

    @property
    def sources(self) -> list[ConfigSource]:
        """Registered sources in merge order (lowest priority first)."""
        ordered = sorted(self._registrations, key=lambda r: (r.rank, r.order))
        return [r.source for r in ordered]

    def get(self, name: str) -> ConfigSource:
        for registration in self._registrations:
            if registration.source.name == name:
                return registration.source
        raise KeyError(f"Unknown configuration source: {name}")

    def load_all(self) -> None:
        for source in self.sources:
            self._load_source(source)

    def build(self) -> MergedView:
        """Load any source not loaded yet and merge every snapshot into a new view."""
        sources = self.sources
        for source in sources:
            if not source.loaded:
                self._load_source(source)
        self._view = merge(sources)
        logger.info("registry.view_built sources=%s keys=%s", len(sources), len(self._view))
        return self._view

    @property
    def view(self) -> MergedView:
        if self._view is None:
            return self.build()
        return self._view

    def reload(self, name: str) -> MergedView:
        source = self.get(name)
        self._load_source(source)
        logger.info("registry.source_reloaded name=%s", name)
        return self.build()

    def poll_changes(self) -> list[ConfigSource]:
        """Ask every source to check its input; returns the sources that changed."""
        return [source for source in self.sources if source.poll_changes()]

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def dump_view(self) -> str:
        return self.view.dump_view()

    def _load_source(self, source: ConfigSource) -> None:
        try:
            source.load()
        except (SourceLoadError, ParseError) as exc:
            if not source.optional:
                logger.error("registry.source_failed name=%s error=%s", source.name, exc)
                raise
            logger.warning("registry.optional_source_skipped name=%s error=%s", source.name, exc)
            source.clear()

    def _on_source_changed(self, source: ConfigSource) -> None:
        logger.debug("registry.source_changed name=%s subscribers=%s", source.name, len(self._subscribers))
        for callback in list(self._subscribers):
            callback(source)
