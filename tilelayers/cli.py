"""CLI mode for building layers from a YAML config."""

import logging
from pathlib import Path
from typing import Optional

import yaml

from tilelayers.core.config import SOURCE_GEOPACKAGE, SOURCE_WMS_LAYER_CAPABILITIES, SOURCES
from tilelayers.core.errors import LayerBuilderError
from tilelayers.core.front_context import FrontContext, get_front_context
from tilelayers.core.layer_builder import LayerBuilder
from tilelayers.core.task_service import TaskService
from tilelayers.core.wms_client import WmsClient
from tilelayers.models.build_request import LayerResult
from tilelayers.models.source_config import LayerSourceModel, LayerSourcesConfiguration
from tilelayers.utils.capabilities_parser import CapabilitiesParseError, parse_capabilities_file

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
        yaml.YAMLError: If config file is invalid
    """
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_file) as f:
        config = yaml.safe_load(f)

    return config, config_file.parent.resolve()


def validate_config(config: dict) -> LayerSourcesConfiguration:
    """
    Validate configuration using Pydantic schema validation.

    Args:
        config: Configuration dictionary

    Returns:
        Validated configuration

    Raises:
        ValueError: If configuration is invalid or names an unknown preset
    """
    from pydantic import ValidationError

    if not isinstance(config, dict):
        raise ValueError("Configuration validation failed: expected a mapping at the top level")

    try:
        validated = LayerSourcesConfiguration.model_validate(config)
    except ValidationError as e:
        raise ValueError(f"Configuration validation failed:\n{e}") from e

    for entry in validated.sources:
        if entry.preset is not None and entry.preset not in SOURCES:
            raise ValueError(f"Invalid preset: {entry.preset}. Valid presets: {', '.join(SOURCES.keys())}")

    return validated


def resolve_entry(entry: LayerSourceModel, config_dir: Path) -> tuple[str, str, str, list[str]]:
    """
    Resolve a configured source to (label, source, location, layer names).

    Presets are expanded from the registry. File locations are resolved
    against the config directory.
    """
    if entry.preset is not None:
        preset = SOURCES[entry.preset]
        source, location, layers = preset.source.upper(), preset.location, list(preset.layer_names)
        label = entry.name or preset.name
    else:
        source, location, layers = entry.source, entry.location, list(entry.layers)
        label = entry.name or location

    if source in (SOURCE_GEOPACKAGE, SOURCE_WMS_LAYER_CAPABILITIES):
        path = Path(location)
        if not path.is_absolute():
            path = config_dir / path
        location = str(path)

    return label, source, location, layers


def _configure_builder(builder: LayerBuilder, source: str, location: str, layers: list[str]) -> None:
    """Apply a resolved source to a builder."""
    builder.set_source(source)

    if source == SOURCE_WMS_LAYER_CAPABILITIES:
        capabilities = parse_capabilities_file(location)
        selected = []
        for name in layers:
            layer = capabilities.get_layer_by_name(name)
            if layer is None:
                logger.warning(f"Layer '{name}' not found in {location}")
            else:
                selected.append(layer)
        builder.set_precomputed_capabilities(selected)
    else:
        builder.set_location(location)
        builder.set_sub_layer_names(layers)


def run_cli(
    config_path: str,
    front_context: Optional[FrontContext] = None,
    task_service: Optional[TaskService] = None,
    wms_client: Optional[WmsClient] = None,
) -> int:
    """
    Run CLI mode with config file.

    Args:
        config_path: Path to YAML configuration file
        front_context: Context receiving layer results (defaults to the process-wide one)
        task_service: Worker pool for background reads
        wms_client: Client for capabilities requests

    Returns:
        Exit code (0 for success, 1 for error)
    """
    front_context = front_context or get_front_context()

    try:
        logger.info(f"Loading configuration from: {config_path}")
        config, config_dir = load_config(config_path)
        validated = validate_config(config)
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    results: dict[str, LayerResult] = {}
    failures: dict[str, str] = {}
    expected = []

    for idx, entry in enumerate(validated.sources, 1):
        label, source, location, layers = resolve_entry(entry, config_dir)
        # Labels must stay unique to count results
        if label in expected or label in failures:
            label = f"{label} #{idx}"

        logger.info(f"Building layer {idx}/{len(validated.sources)}: {label} ({source})")

        builder = LayerBuilder(front_context=front_context, task_service=task_service, wms_client=wms_client)
        try:
            _configure_builder(builder, source, location, layers)
            builder.set_callback(lambda result, label=label: results.__setitem__(label, result))
            builder.build()
        except (FileNotFoundError, CapabilitiesParseError, LayerBuilderError) as e:
            logger.error(f"✗ {label}: {e}")
            failures[label] = str(e)
            continue

        expected.append(label)

    finished = front_context.process_events_until(lambda: len(results) >= len(expected), validated.timeout)
    if not finished:
        for label in expected:
            if label not in results:
                logger.error(f"✗ {label}: timed out after {validated.timeout} seconds")
                failures[label] = "timed out"

    for label in expected:
        result = results.get(label)
        if result is None:
            continue
        if result.succeeded:
            layer = result.layer
            logger.info(f"✓ {label}: {layer.display_name or 'layer'} with {layer.count()} renderable(s)")
        else:
            logger.error(f"✗ {label}: {result.error}")
            failures[label] = str(result.error)

    built = len(validated.sources) - len(failures)
    logger.info(f"Built {built}/{len(validated.sources)} layers")

    return 1 if failures else 0
