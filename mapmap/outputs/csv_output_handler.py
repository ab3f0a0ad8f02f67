"""CSV attribute table output format handler."""

import csv
import logging
from pathlib import Path

from mapmap.core.config import CANONICAL_KEY
from mapmap.core.layer_store import LayerStore
from mapmap.models.extent import Extent

logger = logging.getLogger(__name__)

DELIMITERS = {"comma": ",", "tab": "\t", "semicolon": ";"}


class CSVOutputHandler:
    """Handler for the merged attribute table, one row per feature."""

    @staticmethod
    def get_type_name() -> str:
        """Get the unique type identifier for this output format."""
        return "csv"

    @staticmethod
    def get_display_name() -> str:
        """Get the human-readable display name for this output format."""
        return "CSV attribute table"

    @staticmethod
    def get_file_extension() -> str:
        """Get the default file extension for this output format."""
        return "csv"

    def generate(
        self,
        output_path: Path,
        store: LayerStore,
        extent: Extent | None = None,
        name: str | None = None,
        description: str | None = None,
        **options,
    ) -> Path:
        """Write a CSV file.

        Args:
            output_path: Path where the file should be saved
            store: Layer store holding the merged features
            extent: Unused, the table carries no geometry
            name: Unused
            description: Unused
            **options: CSV-specific options:
                - delimiter (str): "comma", "tab" or "semicolon" (default: "comma")
                - columns (list[str]): Property columns to write (default: all,
                  in order of first appearance)

        Returns:
            Path to the created file
        """
        delimiter = DELIMITERS[options.get("delimiter", "comma")]
        columns = options.get("columns")

        rows = []
        seen: dict[str, None] = {}
        for layer in store.layers():
            replaced: set[str] = set()
            for feature in layer:
                replaced.update(k for k in ("layer", CANONICAL_KEY) if k in feature.properties)
                rows.append({**feature.properties, "layer": layer.name, CANONICAL_KEY: feature.canonical_key})
                for key in feature.properties:
                    seen.setdefault(key, None)
            if replaced:
                logger.warning(f"Layer {layer.name}: properties {sorted(replaced)} replaced by export tags")

        fieldnames = ["layer", CANONICAL_KEY] + [c for c in (columns or seen) if c not in ("layer", CANONICAL_KEY)]

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, delimiter=delimiter, extrasaction="ignore")
            writer.writeheader()
            writer.writerows(rows)

        logger.debug(f"Wrote {len(rows)} rows to {output_path}")
        return output_path

    @staticmethod
    def get_default_options() -> dict:
        """Get default CSV options."""
        return {"delimiter": "comma", "columns": None}

    @staticmethod
    def validate_options(options: dict) -> None:
        """Validate CSV options.

        Raises:
            ValueError: If options are invalid
        """
        delimiter = options.get("delimiter", "comma")
        if delimiter not in DELIMITERS:
            raise ValueError(f"Invalid delimiter: {delimiter}. Valid delimiters: {', '.join(DELIMITERS)}")
        columns = options.get("columns")
        if columns is not None and not (isinstance(columns, list) and all(isinstance(c, str) for c in columns)):
            raise ValueError("columns must be a list of property names")
