"""
Pipeline configuration: defaults, YAML/JSON files, overrides and schema checks.

Precedence, lowest first: ``DEFAULT_CONFIG``, the configuration file, then
overrides passed in code. The merged result is validated as a whole so a
file may set only the keys it changes.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import jsonschema
import yaml

logger = logging.getLogger(__name__)

PACKAGE_SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"
PIPELINE_SCHEMA = "pipeline_config_schema.json"
# Mirrors config/pipeline_config.yaml
DEFAULT_CONFIG: Dict[str, Any] = {
    "input": {
        "date_column": "date",
        "component_column": "component",
        "level_column": "level",
        "weight_column": "weight",
        "weight_scale": 1.0,
        "start_date": None,
        "end_date": None,
    },
    "distribution": {
        "method": "exact",
        "precision": 10000,
    },
    "trim": {
        "lower": 0.25,
        "upper": 0.75,
    },
    "common": {
        "min_observations": 2,
    },
    "aggregate": {
        "join": "inner",
    },
    "output": {
        "directory": "output",
        "prefix": "core_inflation",
        "decimals": 4,
    },
    "logging": {
        "level": "INFO",
        "directory": "logs",
    },
}


class ConfigManager:
    """Reads configuration files and checks them against packaged JSON schemas."""

    READERS: Dict[str, Callable[[Any], Any]] = {
        ".yaml": yaml.safe_load,
        ".yml": yaml.safe_load,
        ".json": json.load,
    }

    def __init__(self, schema_dir: Optional[Union[str, Path]] = None):
        self.schema_dir = Path(schema_dir) if schema_dir else PACKAGE_SCHEMA_DIR
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def read(self, path: Union[str, Path]) -> Dict[str, Any]:
        """
        Parse a YAML or JSON configuration file.

        An empty file reads as an empty mapping.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the suffix is not a supported format or the
                document is not a mapping
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        reader = self.READERS.get(path.suffix.lower())
        if reader is None:
            raise ValueError(
                f"Unsupported configuration format: {path.suffix}. "
                f"Use one of {sorted(self.READERS)}"
            )

        with open(path, "r") as f:
            content = reader(f)
        if content is None:
            return {}
        if not isinstance(content, dict):
            raise ValueError(f"Configuration in {path} must be a mapping, got {type(content).__name__}")
        return content

    def schema(self, name: str = PIPELINE_SCHEMA) -> Dict[str, Any]:
        """Load a schema from the schema directory, once per manager."""
        if name not in self._schemas:
            schema_path = self.schema_dir / name
            if not schema_path.exists():
                raise FileNotFoundError(f"Schema file not found: {schema_path}")
            with open(schema_path, "r") as f:
                self._schemas[name] = json.load(f)
        return self._schemas[name]

    def validate(self, config: Dict[str, Any], schema_name: str = PIPELINE_SCHEMA) -> None:
        """
        Check a configuration against a schema.

        All violations are collected; the message names the first one by its
        key path (e.g. 'trim -> lower') and counts the rest.

        Raises:
            ValueError: If the configuration violates the schema
        """
        validator = jsonschema.Draft7Validator(self.schema(schema_name))
        errors: List[jsonschema.ValidationError] = sorted(
            validator.iter_errors(config), key=lambda e: [str(p) for p in e.path]
        )
        if not errors:
            logger.debug(f"Configuration valid against {schema_name}")
            return

        first = errors[0]
        location = " -> ".join(str(p) for p in first.path) or "root"
        message = f"Configuration validation failed at '{location}': {first.message}"
        if len(errors) > 1:
            message += f" ({len(errors) - 1} more)"
        logger.error(message)
        raise ValueError(message)

    @staticmethod
    def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge ``override`` into a copy of ``base``.

        Nested mappings are merged key by key; any other value in
        ``override`` replaces the one in ``base``. Neither input is modified.
        """
        merged = dict(base)
        for key, value in override.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = ConfigManager.deep_merge(current, value)
            else:
                merged[key] = value
        return merged

    @staticmethod
    def lookup(config: Dict[str, Any], dotted: str, default: Any = None) -> Any:
        """Value at a dotted key path such as 'trim.lower', or ``default``."""
        node: Any = config
        for part in dotted.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    @staticmethod
    def assign(config: Dict[str, Any], dotted: str, value: Any) -> None:
        """Set a dotted key path in place, replacing non-mapping nodes on the way."""
        *parents, leaf = dotted.split(".")
        node = config
        for part in parents:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[leaf] = value


def load_pipeline_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build the effective pipeline configuration.

    Args:
        path: Optional YAML/JSON configuration file
        overrides: Optional dictionary of overrides (highest precedence)

    Returns:
        Validated configuration dictionary, independent of ``DEFAULT_CONFIG``
    """
    manager = ConfigManager()
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path is not None:
        config = manager.deep_merge(config, manager.read(path))
        logger.info(f"Loaded pipeline configuration from {path}")

    if overrides:
        config = manager.deep_merge(config, copy.deepcopy(overrides))

    manager.validate(config)
    return config
