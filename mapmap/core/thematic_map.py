"""Geometry, merged data and projection state of one thematic map.

Geometry loads and data loads each go through their own Sequencer, so the
layer store and the features' properties change in call order no matter in
which order the underlying fetches complete. Every geometry load is also
chained onto the data sequence, so data always lands on the geometry
requested before it.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import Any

from mapmap.core.config import CANONICAL_KEY, DEFAULT_KEY_FIELD
from mapmap.core.data_ingestor import DataIngestor, KeySpec, Reducer, aggregate
from mapmap.core.geometry_ingestor import DerivedLayer, GeometryIngestor
from mapmap.core.layer_store import LayerStore
from mapmap.core.projection import MercatorProjection, compute_extent
from mapmap.core.resolver import ResolverFunc, as_list, match_properties, resolve_by_properties
from mapmap.core.sequencer import Sequencer
from mapmap.core.source_client import SourceClient
from mapmap.models.extent import Extent
from mapmap.models.feature import Feature
from mapmap.models.map_settings import ExtentOptions, FocalCenter, GeometryOptions, MapSettings
from mapmap.models.metadata import Metadata, MetadataRegistry
from mapmap.models.selector import CurrentSelection, Selector, as_selector
from mapmap.utils.stats import ValueStats, value_stats

logger = logging.getLogger(__name__)


async def _resolved(value: Any = None) -> Any:
    return value


def describe_source(source: Any) -> str:
    """Short description of a source for log messages."""
    if isinstance(source, (str, Path)):
        return str(source)
    return f"<{type(source).__name__}>"


def _is_transform(source: Any) -> bool:
    # iscoroutinefunction sees through functools.partial
    return callable(source) and not inspect.iscoroutinefunction(source)


def _check_not_awaitable(result: Any, kind: str) -> Any:
    if inspect.isawaitable(result):
        if inspect.iscoroutine(result):
            result.close()
        raise TypeError(
            f"{kind} transform returned an awaitable; pass an async def function (or a partial of one) to load a source"
        )
    return result


class ThematicMap:
    """A thematic map: ordered layers, merged data, selection and projection.

    Loading methods return Sequencer tickets (asyncio tasks) and must be
    called from inside a running event loop.
    """

    def __init__(self, settings: MapSettings | None = None, client: SourceClient | None = None):
        """
        Initialize map.

        Args:
            settings: Map settings, defaults if None
            client: Source client used for loading, a new one if None
        """
        self.settings = settings or MapSettings()
        self.client = client or SourceClient()
        self.store = LayerStore()
        self.projection = MercatorProjection()
        self.metadata = MetadataRegistry()
        self.geometry_sequence = Sequencer("geometry")
        self.data_sequence = Sequencer("data")

        self.selected: Selector | None = None
        self.selected_extent: Selector | None = None
        self.fitted_extent: Extent | None = None

        self._geometry_ingestor = GeometryIngestor(self.store)
        self._data_ingestor = DataIngestor(self.store)
        self._resolver: ResolverFunc = resolve_by_properties(self.settings.identify_properties)

    async def __aenter__(self):
        """Async context manager entry."""
        await self.client.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.client.close()

    # Loading

    def geometry(
        self,
        source: Any,
        layers: str | list[str] | None = None,
        key_field: str | None = None,
        index: int | None = None,
        fmt: str | None = None,
    ) -> asyncio.Task:
        """
        Load geometry into the layer store.

        Args:
            source: URL, file path, decoded GeoJSON/topology payload, awaitable
                    or coroutine function producing one. A plain function is a
                    transform: it receives the LayerStore once all earlier
                    geometry is loaded and returns DerivedLayer objects; a
                    plain function returning an awaitable fails with TypeError.
            layers: Topology objects to load, or the layer name for a plain
                    GeoJSON payload (generated if None)
            key_field: Property normalized into canonical_key, the map's
                       key_field if None, "" to skip normalization
            index: Explicit layer position in the store
            fmt: Payload format, detected from the source if None

        Returns:
            Ticket resolving with the names of the layers written
        """
        if _is_transform(source):
            ticket = self.geometry_sequence.submit(_resolved(), on_turn=lambda _: self._derive(source))
        else:
            options = GeometryOptions(
                layers=layers,
                key_field=self.settings.key_field if key_field is None else key_field,
                index=index,
            )
            name = describe_source(source)
            logger.debug(f"Requesting geometry: {name}")
            ticket = self.geometry_sequence.submit(
                self._loader(source, fmt),
                on_turn=lambda payload: self._on_geometry(payload, options, name),
            )
        # later data operations must see these layers
        self.data_sequence.chain(ticket)
        return ticket

    def data(
        self,
        source: Any,
        key: KeySpec = DEFAULT_KEY_FIELD,
        reduce: Reducer | None = None,
        fmt: str | None = None,
    ) -> asyncio.Task:
        """
        Merge tabular data onto features by canonical key.

        Args:
            source: URL, file path, records (list of dicts or keyed dict),
                    awaitable or coroutine function producing them. A plain
                    function is a transform applied to every feature's
                    properties, its returned mapping merged in; it must not
                    return an awaitable (TypeError).
            key: Record field holding the join key, or a function record -> key
            reduce: Combines records sharing a key, shallow merge if None
            fmt: Payload format, detected from the source if None

        Returns:
            Ticket resolving with the number of features updated
        """
        if _is_transform(source):
            return self.data_sequence.submit(_resolved(), on_turn=lambda _: self._transform_data(source))

        logger.debug(f"Requesting data: {describe_source(source)}")
        return self.data_sequence.submit(
            self._loader(source, fmt),
            on_turn=lambda payload: self._data_ingestor.merge(aggregate(payload, key, reduce)),
        )

    def _loader(self, source: Any, fmt: str | None) -> Callable:
        if inspect.iscoroutinefunction(source):
            return lambda: self._load_produced(source, fmt)
        return lambda: self.client.load(source, fmt)

    async def _load_produced(self, factory, fmt):
        return await self.client.load(await factory(), fmt)

    def _on_geometry(self, payload, options: GeometryOptions, name: str) -> list[str]:
        written = self._geometry_ingestor.ingest(payload, options, name)
        # set up projection once, before anything is drawn
        if self.fitted_extent is None and self.selected_extent is None:
            self._fit(self.store.features(), self.settings.extent)
        return written

    def _derive(self, transform) -> list[str]:
        derived = _check_not_awaitable(transform(self.store), "Geometry")
        if derived is None:
            return []
        return self._geometry_ingestor.apply_derived(derived)

    def _transform_data(self, transform) -> int:
        return self._data_ingestor.transform(lambda properties: _check_not_awaitable(transform(properties), "Data"))

    # Waiting

    async def ready(self) -> Any:
        """
        Wait until every geometry and data operation requested so far is done.

        Returns:
            Result of the most recent data operation

        Raises:
            Exception: If the most recent operation of either sequence failed
        """
        await self.geometry_sequence.ready()
        return await self.data_sequence.ready()

    async def settled(self) -> None:
        """Wait until every operation requested so far has finished or failed."""
        await self.geometry_sequence.settled()
        await self.data_sequence.settled()

    # Identification and selection

    def identify(self, spec: str | list[str] | ResolverFunc) -> "ThematicMap":
        """
        Configure how selectors are resolved.

        Args:
            spec: Property name(s) for name lookups in priority order, or a
                  replacement resolver function (store, selector) -> result

        Returns:
            self
        """
        if callable(spec):
            self._resolver = spec
        else:
            self._resolver = resolve_by_properties(spec)
        return self

    def resolve(self, selection: Any = None) -> list[Feature]:
        """
        Resolve a selection against the current store.

        Args:
            selection: Anything as_selector() accepts; None means the current
                       selection, or every feature when nothing is selected

        Returns:
            Matching features (possibly empty)
        """
        selector = as_selector(selection)
        if isinstance(selector, CurrentSelection) and self.selected is not None:
            selector = self.selected
        return as_list(self._resolver(self.store, selector))

    def select(self, selection: Any) -> "ThematicMap":
        """
        Set the current selection.

        Args:
            selection: Anything as_selector() accepts, None to clear

        Returns:
            self
        """
        self.selected = None if selection is None else as_selector(selection)
        return self

    def search(self, value: str, key: str = CANONICAL_KEY) -> list[Feature]:
        """Features whose property ``key`` equals value, case-insensitively."""
        return match_properties(self.store, value, (key,))

    # Extent and projection

    def center(self, x: float, y: float | None = None) -> "ThematicMap":
        """
        Set the focal center used for extent fitting.

        Args:
            x: Horizontal canvas fraction
            y: Vertical canvas fraction, unchanged if None

        Returns:
            self
        """
        current = self.settings.focal_center
        self.settings.focal_center = FocalCenter(x=x, y=current.y if y is None else y)
        return self

    def extent(self, selection: Any = None, fill: float | None = None) -> asyncio.Task:
        """
        Fit the projection to a selection once the geometry requested so far is loaded.

        Pinning an extent stops the automatic fit of geometry loads that are
        still pending.

        Args:
            selection: Features to fit, the current selection if None
            fill: Fraction of the canvas to cover, the map's setting if None

        Returns:
            Ticket resolving with the fitted geographic Extent (None if the
            selection has no coordinates)
        """
        if selection is not None:
            self.selected_extent = as_selector(selection)
        else:
            self.selected_extent = self.selected or CurrentSelection()
        options = self.settings.extent if fill is None else replace(self.settings.extent, fill=fill)
        pinned = self.selected_extent
        return self.geometry_sequence.submit(
            _resolved(),
            on_turn=lambda _: self._fit(self.resolve(pinned), options),
        )

    def _fit(self, features: list[Feature], options: ExtentOptions) -> Extent | None:
        extent = compute_extent(
            features,
            self.projection,
            self.settings.canvas,
            self.settings.focal_center,
            options,
        )
        if extent is not None:
            self.fitted_extent = extent
        return extent

    def project(self, lon: float, lat: float) -> tuple[float, float]:
        """Geographic position to canvas coordinates."""
        return self.projection.project(lon, lat)

    def invert(self, x: float, y: float) -> tuple[float, float]:
        """Canvas coordinates to geographic position."""
        return self.projection.invert(x, y)

    # Consumers

    async def symbolize(self, callback: Callable[[Feature], Any], selection: Any = None) -> int:
        """
        Call back for every selected feature once the data requested so far is merged.

        Args:
            callback: Function called with each feature (awaited if it returns an awaitable)
            selection: Features to visit, the current selection at call time if None

        Returns:
            Number of features visited
        """
        selector = as_selector(selection)
        if isinstance(selector, CurrentSelection) and self.selected is not None:
            selector = self.selected
        await self.data_sequence.settled()
        features = self.resolve(selector)
        for feature in features:
            result = callback(feature)
            if inspect.isawaitable(result):
                await result
        return len(features)

    async def get_data(self, key: str, selection: Any = None) -> dict[Any, dict]:
        """
        Properties of the selected features indexed by one property.

        Args:
            key: Property whose value indexes the result
            selection: Features to include, the current selection if None

        Returns:
            Dictionary value of key -> properties, in feature order; features
            without the property are left out
        """
        await self.data_sequence.settled()
        result = {}
        for feature in self.resolve(selection):
            value = feature.properties.get(key)
            if value is not None:
                result[value] = feature.properties
        return result

    def value_stats(self, value: str | Callable[[dict], Any], selection: Any = None) -> ValueStats:
        """Statistics of an attribute over the selected features."""
        return value_stats(self.resolve(selection), value)

    def meta(self, specs: dict) -> "ThematicMap":
        """
        Register attribute metadata by name pattern.

        Args:
            specs: Mapping from name pattern (``*``/``?`` wildcards or compiled
                   regex) to metadata fields

        Returns:
            self
        """
        self.metadata.register(specs)
        return self

    def get_metadata(self, name: str) -> Metadata:
        """Resolved metadata of an attribute."""
        return self.metadata.get(name)


__all__ = ["ThematicMap", "DerivedLayer", "describe_source"]
