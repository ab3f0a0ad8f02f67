"""Ordered registry of named feature layers.

Iteration order is controlled by the caller (first insertion, or an explicit
position), never sorted. Mutations are synchronous and are expected to run
inside a Sequencer turn so that concurrent loads apply in submission order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from mapmap.models.feature import Feature, Layer

logger = logging.getLogger(__name__)


class LayerStore:
    """Ordered mapping from layer name to Layer."""

    def __init__(self) -> None:
        self._layers: dict[str, Layer] = {}
        self._order: list[str] = []

    def append_layer(self, name: str, features: list[Feature]) -> Layer:
        """
        Add a layer at the end of the order, or replace an existing layer's content.

        An existing name keeps its position; its features are overwritten,
        not concatenated.

        Args:
            name: Layer name
            features: Features of the layer

        Returns:
            The stored Layer
        """
        layer = self._layers.get(name)
        if layer is None:
            layer = Layer(name=name, features=list(features))
            self._layers[name] = layer
            self._order.append(name)
            logger.debug(f"Appended layer '{name}' ({len(features)} features)")
        else:
            layer.features = list(features)
            logger.debug(f"Replaced layer '{name}' ({len(features)} features)")
        return layer

    def insert_layer_at(self, index: int, name: str, features: list[Feature]) -> Layer:
        """
        Add or replace a layer and force its position in the order.

        Index semantics follow list.insert: existing entries shift, out-of-range
        indexes clamp to the ends.

        Args:
            index: Target position in keys()
            name: Layer name
            features: Features of the layer

        Returns:
            The stored Layer
        """
        if name in self._layers:
            self._order.remove(name)
        layer = self.append_layer(name, features)
        self._order.remove(name)
        self._order.insert(index, name)
        logger.debug(f"Moved layer '{name}' to position {self._order.index(name)}")
        return layer

    def remove(self, name: str) -> bool:
        """
        Remove a layer.

        Returns:
            True if the layer was removed, False if it didn't exist
        """
        if name in self._layers:
            del self._layers[name]
            self._order.remove(name)
            return True
        return False

    def get(self, name: str) -> Layer | None:
        """Get a layer by its exact name."""
        return self._layers.get(name)

    def find(self, name: str) -> Layer | None:
        """
        Get a layer by case-insensitive name.

        An exact match wins; otherwise the first layer in store order whose
        name matches case-insensitively.
        """
        if name in self._layers:
            return self._layers[name]
        folded = name.casefold()
        for key in self._order:
            if key.casefold() == folded:
                return self._layers[key]
        return None

    def keys(self) -> list[str]:
        """Layer names in store order."""
        return list(self._order)

    def layers(self) -> list[Layer]:
        """Layers in store order."""
        return [self._layers[key] for key in self._order]

    def features(self) -> list[Feature]:
        """All features, in store order then feature order."""
        return [feature for layer in self.layers() for feature in layer.features]

    def __contains__(self, name: object) -> bool:
        return name in self._layers

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())
