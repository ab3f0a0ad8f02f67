"""Output configuration model."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class OutputConfig:
    """Configuration for a single output."""

    output_type: str  # Type identifier (e.g., "geojson", "csv")
    output_path: Path
    options: dict = field(default_factory=dict)  # Format-specific options

    def __post_init__(self):
        """Validate and normalize the output configuration."""
        if isinstance(self.output_path, str):
            self.output_path = Path(self.output_path)

        from mapmap.outputs import OUTPUT_HANDLERS, get_output_handler

        if self.output_type not in OUTPUT_HANDLERS:
            valid_types = list(OUTPUT_HANDLERS.keys())
            raise ValueError(f"Invalid output_type: {self.output_type}. Valid types: {valid_types}")

        handler = get_output_handler(self.output_type)
        handler.validate_options(self.options)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization.

        Returns:
            Dictionary representation of the output config
        """
        result = {
            "type": self.output_type,
            "path": str(self.output_path),
        }
        for key, value in self.options.items():
            if key not in result:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: dict, config_dir: Path | None = None) -> "OutputConfig":
        """Create OutputConfig from dictionary.

        Args:
            data: Dictionary containing output configuration
            config_dir: Directory relative output paths resolve against

        Returns:
            OutputConfig instance

        Raises:
            ValueError: If required keys are missing or invalid
        """
        if "path" not in data:
            raise ValueError("Missing required key 'path' in output configuration")

        output_type = data.get("type", "geojson")
        output_path = Path(data["path"])
        if config_dir is not None and not output_path.is_absolute():
            output_path = config_dir / output_path

        standard_keys = {"type", "path"}
        options = {k: v for k, v in data.items() if k not in standard_keys}

        return cls(output_type=output_type, output_path=output_path, options=options)
