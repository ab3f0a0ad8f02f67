"""Aggregation of tabular records and their merge onto features."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from mapmap.core.config import DEFAULT_KEY_FIELD
from mapmap.core.layer_store import LayerStore
from mapmap.models.feature import normalize_key

logger = logging.getLogger(__name__)

KeySpec = str | Callable[[dict], Any]
Reducer = Callable[[dict, dict], dict]


def merge_records(current: dict, record: dict) -> dict:
    """Default reducer: shallow merge, later fields win."""
    return {**current, **record}


def aggregate(
    records: dict | Iterable[dict],
    key: KeySpec = DEFAULT_KEY_FIELD,
    reduce: Reducer | None = None,
) -> dict[str, dict]:
    """
    Reduce records to a mapping from normalized key to attributes.

    Args:
        records: A list of record dictionaries, or a mapping that is already
                 keyed (key -> attributes)
        key: Record field holding the key, or a function record -> key
        reduce: Combines two records sharing a key, shallow merge if None

    Returns:
        Dictionary from normalized key to attribute dictionary

    Raises:
        ValueError: If a keyed mapping holds a non-mapping value
    """
    reduce = reduce or merge_records
    result: dict[str, dict] = {}

    if isinstance(records, dict):
        for raw_key, attributes in records.items():
            if not isinstance(attributes, dict):
                raise ValueError(f"Record for key {raw_key!r} is not a mapping")
            result[normalize_key(raw_key)] = dict(attributes)
        return result

    skipped = 0
    for record in records:
        value = key(record) if callable(key) else record.get(key)
        if value is None or value == "":
            skipped += 1
            continue
        normalized = normalize_key(value)
        if normalized in result:
            result[normalized] = reduce(result[normalized], record)
        else:
            result[normalized] = dict(record)

    if skipped:
        logger.debug(f"Skipped {skipped} records without a key")
    return result


class DataIngestor:
    """Merges attributes onto the features of a LayerStore.

    Methods here mutate feature properties and must run inside a data
    Sequencer turn.
    """

    def __init__(self, store: LayerStore):
        """
        Initialize ingestor.

        Args:
            store: Layer store whose features receive the data
        """
        self.store = store

    def merge(self, keyed: dict[str, dict]) -> int:
        """
        Merge keyed attributes onto features by canonical key.

        Args:
            keyed: Mapping from normalized key to attributes

        Returns:
            Number of features updated
        """
        updated = 0
        unkeyed = 0
        for feature in self.store.features():
            if feature.canonical_key is None:
                unkeyed += 1
                continue
            attributes = keyed.get(feature.canonical_key)
            if attributes is not None:
                feature.merge(attributes)
                updated += 1

        if unkeyed:
            logger.debug(f"{unkeyed} features have no canonical key, not merged")
        logger.info(f"Merged data onto {updated} features ({len(keyed)} records)")
        return updated

    def transform(self, func: Callable[[dict], dict | None]) -> int:
        """
        Apply a function to the properties of every feature.

        A mapping returned by func is shallow-merged into the properties;
        None leaves the feature unchanged.

        Args:
            func: Function properties -> mapping or None

        Returns:
            Number of features updated
        """
        updated = 0
        for feature in self.store.features():
            values = func(feature.properties)
            if values:
                feature.merge(values)
                updated += 1
        logger.info(f"Transformed {updated} features")
        return updated
