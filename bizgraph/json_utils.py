"""
JSON Utilities for bizgraph

Provides safe JSON loading with validation, helpful error messages,
and schema validation for the fact files and output bundle.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union

import jsonschema

logger = logging.getLogger(__name__)


class JSONValidationError(Exception):
    """Raised when JSON validation fails."""
    pass


def safe_load_json(
    file_path: Union[str, Path],
    schema: Optional[Dict[str, Any]] = None,
    file_type_description: str = "JSON file"
) -> Dict[str, Any]:
    """
    Safely load and validate JSON file with helpful error messages.

    Args:
        file_path: Path to JSON file
        schema: Optional JSON schema for validation
        file_type_description: Human-readable description (e.g., "facts file")

    Returns:
        Parsed JSON data as dictionary

    Raises:
        JSONValidationError: If JSON is invalid or fails schema validation
        FileNotFoundError: If file doesn't exist
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(
            f"{file_type_description.capitalize()} not found: {file_path}\n"
            f"Please ensure the file exists and the path is correct."
        )

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise JSONValidationError(
            f"Invalid JSON syntax in {file_type_description}: {file_path}\n"
            f"Error at line {e.lineno}, column {e.colno}: {e.msg}\n\n"
            f"Common issues:\n"
            f"  - Missing closing bracket/brace\n"
            f"  - Trailing comma in array or object\n"
            f"  - Single quotes instead of double quotes"
        ) from e
    except UnicodeDecodeError as e:
        raise JSONValidationError(
            f"File encoding error in {file_type_description}: {file_path}\n"
            f"Expected UTF-8 encoding. Error: {e}"
        ) from e

    logger.debug("Loaded %s from %s", file_type_description, file_path)

    if schema is not None:
        validate_against_schema(data, schema, file_type_description, source=str(file_path))

    return data


def validate_against_schema(
    data: Any,
    schema: Dict[str, Any],
    file_type_description: str = "JSON data",
    source: str = "<memory>"
) -> None:
    """
    Validate already-parsed data against a JSON schema.

    Raises:
        JSONValidationError: With the failing path and message
    """
    try:
        jsonschema.validate(data, schema)
    except jsonschema.ValidationError as e:
        error_path = ".".join(str(p) for p in e.path) if e.path else "root"
        raise JSONValidationError(
            f"Schema validation failed for {file_type_description}: {source}\n"
            f"Error at '{error_path}': {e.message}\n\n"
            f"The structure doesn't match the expected {file_type_description} format."
        ) from e
    except jsonschema.SchemaError as e:
        raise JSONValidationError(
            f"Invalid schema definition for {file_type_description}\n"
            f"Schema error: {e.message}"
        ) from e


def save_json(data: Any, file_path: Union[str, Path], pretty: bool = True) -> Path:
    """Write data as JSON, creating parent directories."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2 if pretty else None)
    return file_path
