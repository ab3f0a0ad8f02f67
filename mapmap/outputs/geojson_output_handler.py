"""GeoJSON output format handler."""

import json
import logging
from pathlib import Path

from mapmap.core.config import CANONICAL_KEY
from mapmap.core.layer_store import LayerStore
from mapmap.models.extent import Extent

logger = logging.getLogger(__name__)


class GeoJSONOutputHandler:
    """Handler for GeoJSON FeatureCollection output.

    Features of all layers are written in store order, each tagged with the
    name of its layer in a ``layer`` property. A feature property of the same
    name is replaced, with a warning.
    """

    @staticmethod
    def get_type_name() -> str:
        """Get the unique type identifier for this output format."""
        return "geojson"

    @staticmethod
    def get_display_name() -> str:
        """Get the human-readable display name for this output format."""
        return "GeoJSON FeatureCollection"

    @staticmethod
    def get_file_extension() -> str:
        """Get the default file extension for this output format."""
        return "geojson"

    def generate(
        self,
        output_path: Path,
        store: LayerStore,
        extent: Extent | None = None,
        name: str | None = None,
        description: str | None = None,
        **options,
    ) -> Path:
        """Write a GeoJSON file.

        Args:
            output_path: Path where the file should be saved
            store: Layer store holding the merged features
            extent: Fitted geographic extent, written as bbox if given
            name: Collection name
            description: Collection description
            **options: GeoJSON-specific options:
                - indent (int | None): JSON indentation (default: None)
                - include_key (bool): Write canonical_key property (default: True)

        Returns:
            Path to the created file
        """
        indent = options.get("indent")
        include_key = options.get("include_key", True)

        features = []
        for layer in store.layers():
            replaced: set[str] = set()
            for feature in layer:
                extra = {"layer": layer.name}
                if include_key and feature.canonical_key is not None:
                    extra[CANONICAL_KEY] = feature.canonical_key
                replaced.update(k for k in extra if k in feature.properties)
                features.append(feature.to_geojson(**extra))
            if replaced:
                logger.warning(f"Layer {layer.name}: properties {sorted(replaced)} replaced by export tags")

        collection = {"type": "FeatureCollection", "features": features}
        if name:
            collection["name"] = name
        if description:
            collection["description"] = description
        if extent is not None:
            collection["bbox"] = [extent.min_lon, extent.min_lat, extent.max_lon, extent.max_lat]

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(collection, f, indent=indent, ensure_ascii=False)

        logger.debug(f"Wrote {len(features)} features to {output_path}")
        return output_path

    @staticmethod
    def get_default_options() -> dict:
        """Get default GeoJSON options."""
        return {"indent": None, "include_key": True}

    @staticmethod
    def validate_options(options: dict) -> None:
        """Validate GeoJSON options.

        Raises:
            ValueError: If options are invalid
        """
        indent = options.get("indent")
        if indent is not None and (not isinstance(indent, int) or isinstance(indent, bool) or indent < 0):
            raise ValueError(f"indent must be a non-negative integer, got {indent!r}")
        if not isinstance(options.get("include_key", True), bool):
            raise ValueError("include_key must be a boolean")
