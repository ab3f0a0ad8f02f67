"""CLI mode for building maps from a YAML config."""

import asyncio
import logging
from pathlib import Path

import yaml

from mapmap.core.errors import MapError
from mapmap.core.source_client import SourceClient
from mapmap.core.thematic_map import ThematicMap
from mapmap.models.feature import Feature
from mapmap.models.map_settings import MapSettings
from mapmap.models.output_config import OutputConfig
from mapmap.models.schema import MapConfiguration
from mapmap.outputs import get_output_handler

logger = logging.getLogger(__name__)


def load_config(config_path: str) -> tuple[dict, Path]:
    """
    Load YAML configuration file.

    Args:
        config_path: Path to YAML config file

    Returns:
        Tuple of (configuration dictionary, config directory path)

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is not valid YAML
    """
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_file) as f:
        try:
            config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

    # Sources and outputs resolve relative to the config file
    config_dir = config_file.parent.resolve()

    return config, config_dir


def validate_config(config: dict) -> MapConfiguration:
    """
    Validate configuration using Pydantic schema validation.

    Args:
        config: Configuration dictionary

    Returns:
        Validated configuration model

    Raises:
        ValueError: If configuration is invalid
    """
    from pydantic import ValidationError

    if not isinstance(config, dict):
        raise ValueError("Configuration must be a mapping")

    try:
        model = MapConfiguration.model_validate(config)
    except ValidationError as e:
        # Convert Pydantic errors to ValueError for consistency
        raise ValueError(f"Configuration validation failed:\n{e}") from e

    # Checks Pydantic can't express
    if model.center is not None:
        MapSettings.from_dict({"center": model.center})
    for output in model.outputs:
        OutputConfig.from_dict(output.model_dump())

    return model


def create_map(config: MapConfiguration, config_dir: Path | None = None) -> ThematicMap:
    """
    Create an empty map from a validated configuration.

    Args:
        config: Validated configuration
        config_dir: Directory relative source paths resolve against

    Returns:
        ThematicMap with settings, identification and metadata applied
    """
    settings = MapSettings.from_dict(config.settings.model_dump(exclude_none=True))
    thematic_map = ThematicMap(settings, SourceClient(base_dir=config_dir))
    if config.identify is not None:
        thematic_map.identify(config.identify)
    if config.metadata:
        thematic_map.meta(config.metadata)
    if config.center is not None:
        thematic_map.center(*config.center)
    return thematic_map


async def build_map(config: MapConfiguration, config_dir: Path | None = None) -> ThematicMap:
    """
    Load every configured source into a new map.

    Args:
        config: Validated configuration
        config_dir: Directory relative source paths resolve against

    Returns:
        The loaded map

    Raises:
        MapError: The first load that failed, after all loads have settled
    """
    thematic_map = create_map(config, config_dir)

    async with thematic_map:
        tickets = []
        for entry in config.geometry:
            tickets.append(
                thematic_map.geometry(
                    entry.source,
                    layers=entry.layers,
                    key_field=entry.key_field,
                    index=entry.index,
                    fmt=entry.format,
                )
            )
        for entry in config.data:
            tickets.append(thematic_map.data(entry.source, key=entry.key, fmt=entry.format))
        if config.select is not None:
            thematic_map.select(config.select)
        if config.extent is not None:
            tickets.append(thematic_map.extent(config.extent))

        results = await asyncio.gather(*tickets, return_exceptions=True)

    errors = [result for result in results if isinstance(result, BaseException)]
    for error in errors:
        logger.error(f"Load failed: {error}")
    if errors:
        raise errors[0]

    return thematic_map


def layer_names_by_feature(thematic_map: ThematicMap) -> dict[int, str]:
    """Map id() of every feature to the name of the layer holding it."""
    return {id(feature): layer.name for layer in thematic_map.store.layers() for feature in layer}


def describe_features(thematic_map: ThematicMap, features: list[Feature]) -> list[tuple[str, str | None]]:
    """
    Pair features with their layer names.

    Returns:
        List of (layer name, canonical key) tuples
    """
    layers = layer_names_by_feature(thematic_map)
    return [(layers.get(id(feature), "?"), feature.canonical_key) for feature in features]


def open_map(config_path: str) -> ThematicMap:
    """
    Load, validate and build the map described by a config file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        The loaded map
    """
    logger.info(f"Loading configuration from: {config_path}")
    raw_config, config_dir = load_config(config_path)
    config = validate_config(raw_config)
    return asyncio.run(build_map(config, config_dir))


def run_cli(config_path: str) -> int:
    """
    Run CLI mode with config file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        logger.info(f"Loading configuration from: {config_path}")
        raw_config, config_dir = load_config(config_path)
        config = validate_config(raw_config)

        outputs = [OutputConfig.from_dict(output.model_dump(), config_dir=config_dir) for output in config.outputs]
        if not outputs:
            logger.error("No outputs specified. At least one output is required.")
            return 1

        thematic_map = asyncio.run(build_map(config, config_dir))

        logger.info("Configuration:")
        logger.info(f"  Layers: {', '.join(thematic_map.store.keys())}")
        logger.info(f"  Features: {len(thematic_map.store.features())}")
        extent = thematic_map.fitted_extent
        if extent is not None:
            logger.info(
                f"  Extent: {extent.min_lon:.4f}, {extent.min_lat:.4f} to {extent.max_lon:.4f}, {extent.max_lat:.4f}"
            )
            if not extent.is_valid():
                logger.warning("Extent falls outside lon/lat range; sources may not be in geographic coordinates")
        logger.info(f"  Outputs: {len(outputs)}")

        for idx, output_config in enumerate(outputs, 1):
            handler = get_output_handler(output_config.output_type)
            logger.info(
                f"Writing output {idx}/{len(outputs)} ({handler.get_display_name()}): {output_config.output_path}"
            )
            result_path = handler.generate(
                output_path=output_config.output_path,
                store=thematic_map.store,
                extent=extent,
                name=config.name,
                description=config.description,
                **output_config.options,
            )
            logger.info(f"✓ Created: {result_path}")

        logger.info("All outputs written successfully")
        return 0

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except MapError as e:
        logger.error(f"Load error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1
