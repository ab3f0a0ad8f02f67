"""Output format handlers registry."""

from mapmap.models.output_handler import OutputHandler
from mapmap.outputs.csv_output_handler import CSVOutputHandler
from mapmap.outputs.geojson_output_handler import GeoJSONOutputHandler

# Registry of available output handlers
OUTPUT_HANDLERS: dict[str, type[OutputHandler]] = {
    "geojson": GeoJSONOutputHandler,
    "csv": CSVOutputHandler,
}


def get_output_handler(output_type: str) -> OutputHandler:
    """Get an output handler instance for the given type.

    Args:
        output_type: Output type name (e.g., "geojson", "csv")

    Returns:
        Instance of the output handler

    Raises:
        ValueError: If output type is not supported
    """
    if output_type not in OUTPUT_HANDLERS:
        raise ValueError(
            f"Unsupported output type: {output_type}. Supported types: {', '.join(OUTPUT_HANDLERS.keys())}"
        )

    handler_class = OUTPUT_HANDLERS[output_type]
    return handler_class()


def get_available_output_types() -> list[tuple[str, str]]:
    """Get list of available output types.

    Returns:
        List of (type_name, display_name) tuples
    """
    return [
        (handler_class.get_type_name(), handler_class.get_display_name()) for handler_class in OUTPUT_HANDLERS.values()
    ]


__all__ = [
    "OUTPUT_HANDLERS",
    "get_output_handler",
    "get_available_output_types",
    "GeoJSONOutputHandler",
    "CSVOutputHandler",
]
