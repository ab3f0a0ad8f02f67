"""Protocol for export format handlers."""

from pathlib import Path
from typing import Protocol

from mapmap.core.layer_store import LayerStore
from mapmap.models.extent import Extent


class OutputHandler(Protocol):
    """Protocol defining the interface for export format handlers.

    Each export format (GeoJSON, CSV, etc.) implements this protocol to be
    usable from the build command.
    """

    @staticmethod
    def get_type_name() -> str:
        """Get the unique type identifier for this output format.

        Returns:
            Type name (e.g., "geojson", "csv")
        """
        ...

    @staticmethod
    def get_display_name() -> str:
        """Get the human-readable display name for this output format.

        Returns:
            Display name (e.g., "GeoJSON FeatureCollection")
        """
        ...

    @staticmethod
    def get_file_extension() -> str:
        """Get the default file extension for this output format.

        Returns:
            File extension without dot (e.g., "geojson", "csv")
        """
        ...

    def generate(
        self,
        output_path: Path,
        store: LayerStore,
        extent: Extent | None = None,
        name: str | None = None,
        description: str | None = None,
        **options,
    ) -> Path:
        """Write the layers of a store.

        Args:
            output_path: Path where the output should be saved
            store: Layer store holding the merged features
            extent: Fitted geographic extent, if any
            name: Document name
            description: Document description
            **options: Format-specific options

        Returns:
            Path to the created output file

        Raises:
            OSError: If the file cannot be written
        """
        ...

    @staticmethod
    def get_default_options() -> dict:
        """Get default format-specific options.

        Returns:
            Dictionary of default options for this format
        """
        ...

    @staticmethod
    def validate_options(options: dict) -> None:
        """Validate format-specific options.

        Args:
            options: Dictionary of options to validate

        Raises:
            ValueError: If options are invalid
        """
        ...
