"""
Configuration for the business graph pipeline.

Settings are read from a YAML (or JSON) file. When no file is given, or the
file does not exist, built-in defaults are used so the pipeline always runs.

Example bizgraph.yaml:

    graph:
      title: Business Context Graph
    layout:
      total_width: 1200
      level_gap: 150
    export:
      formats: [json, cytoscape, d3]
      include_positions: true
    logging:
      level: INFO
"""

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from bizgraph.json_utils import JSONValidationError, validate_against_schema

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or is invalid."""
    pass


DEFAULT_CONFIG: Dict[str, Any] = {
    "graph": {
        "title": "Business Context Graph",
        "description": "Reverse-engineered business context from codebase",
    },
    "layout": {
        "total_width": 1000,
        "level_gap": 150,
        "left_margin": 100,
        "top_margin": 100,
    },
    "clusters": {
        "feature_collapse_threshold": 5,
    },
    "export": {
        "formats": ["json", "cytoscape", "d3"],
        "include_metadata": True,
        "include_positions": True,
        "pretty_print": True,
    },
    "logging": {
        "level": "INFO",
    },
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "graph": {
            "type": "object",
            "properties": {
                "title": {"type": "string"},
                "description": {"type": "string"},
            },
        },
        "layout": {
            "type": "object",
            "properties": {
                "total_width": {"type": "number", "exclusiveMinimum": 0},
                "level_gap": {"type": "number", "exclusiveMinimum": 0},
                "left_margin": {"type": "number", "minimum": 0},
                "top_margin": {"type": "number", "minimum": 0},
            },
        },
        "clusters": {
            "type": "object",
            "properties": {
                "feature_collapse_threshold": {"type": "integer", "minimum": 0},
            },
        },
        "export": {
            "type": "object",
            "properties": {
                "formats": {
                    "type": "array",
                    "items": {"enum": ["json", "cytoscape", "d3", "graphml", "gexf", "vis"]},
                },
                "include_metadata": {"type": "boolean"},
                "include_positions": {"type": "boolean"},
                "pretty_print": {"type": "boolean"},
            },
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {"enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
            },
        },
    },
}


@dataclass
class LayoutConfig:
    total_width: float = 1000
    level_gap: float = 150
    left_margin: float = 100
    top_margin: float = 100


@dataclass
class ExportConfig:
    formats: List[str] = field(default_factory=lambda: ["json", "cytoscape", "d3"])
    include_metadata: bool = True
    include_positions: bool = True
    pretty_print: bool = True


@dataclass
class BizGraphConfig:
    """Resolved configuration used by the builder and the CLI."""
    title: str = "Business Context Graph"
    description: str = "Reverse-engineered business context from codebase"
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    feature_collapse_threshold: int = 5
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BizGraphConfig":
        merged = merge_config(DEFAULT_CONFIG, data)
        return cls(
            title=merged["graph"]["title"],
            description=merged["graph"]["description"],
            layout=LayoutConfig(**merged["layout"]),
            export=ExportConfig(**merged["export"]),
            feature_collapse_threshold=merged["clusters"]["feature_collapse_threshold"],
            log_level=merged["logging"]["level"],
        )


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base. Unknown keys are ignored."""
    result = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if key not in result:
            logger.warning("Ignoring unknown configuration key '%s'", key)
            continue
        if isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_config(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: Optional[Union[str, Path]] = None) -> BizGraphConfig:
    """Load configuration from a YAML/JSON file.

    Falls back to defaults if no path is given or the file doesn't exist.

    Raises:
        ConfigError: If the file is unreadable or fails validation
    """
    if config_path is None:
        return BizGraphConfig()

    config_path = Path(config_path)
    if not config_path.exists():
        logger.warning("Config file %s not found, using defaults", config_path)
        return BizGraphConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {config_path} must contain a mapping, got {type(data).__name__}"
        )

    try:
        validate_against_schema(data, CONFIG_SCHEMA, "bizgraph config", source=str(config_path))
    except JSONValidationError as e:
        raise ConfigError(str(e)) from e

    logger.info("Loaded configuration from %s", config_path)
    return BizGraphConfig.from_dict(data)
