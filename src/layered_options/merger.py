from __future__ import annotations

import logging
from typing import Dict, Iterable

from layered_options.interfaces import ConfigSource
from layered_options.keys import normalize_key
from layered_options.view import ConfigEntry, MergedView

logger = logging.getLogger(__name__)


def merge(sources: Iterable[ConfigSource]) -> MergedView:
    """
    Apply *sources* in order; a key defined by a later source replaces the earlier value.

    Callers pass sources already sorted by ascending priority.
    """
    merged: Dict[str, ConfigEntry] = {}
    count = 0
    for source in sources:
        count += 1
        overridden = 0
        for key, value in source.data.items():
            norm = normalize_key(key)
            if norm in merged:
                overridden += 1
            merged[norm] = ConfigEntry(key=key, value=value, origin=source.name)
        logger.debug(
            "merge.source_applied name=%s entries=%s overridden=%s",
            source.name,
            len(source.data),
            overridden,
        )
    logger.debug("merge.completed sources=%s keys=%s", count, len(merged))
    return MergedView(merged)
