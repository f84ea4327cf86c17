"""JSON Schema validation for AT Link configuration."""

import copy
from typing import List, Tuple, Dict, Any
import jsonschema
from jsonschema import Draft7Validator


class ConfigSchema:
    """Configuration schema validator using JSON Schema Draft 7.

    Example:
        >>> is_valid, errors = ConfigSchema.validate_config({"serial": {"baud_rate": 9600}})
        >>> is_valid
        True
    """

    VALID_BAUD_RATES = [1200, 2400, 4800, 9600, 19200, 38400, 57600, 115200, 230400, 460800, 921600]

    @staticmethod
    def get_schema() -> Dict[str, Any]:
        """JSON Schema Draft 7 for configuration validation."""
        return {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "title": "AT Link Configuration",
            "type": "object",
            "properties": {
                "serial": {
                    "type": "object",
                    "description": "Serial port settings",
                    "properties": {
                        "port": {
                            "type": ["string", "null"],
                            "description": "Serial port device path",
                            "minLength": 1
                        },
                        "baud_rate": {
                            "type": "integer",
                            "description": "Baud rate",
                            "enum": ConfigSchema.VALID_BAUD_RATES
                        },
                        "read_timeout": {
                            "type": "number",
                            "description": "Reader poll timeout in seconds",
                            "exclusiveMinimum": 0,
                            "maximum": 10
                        },
                        "write_timeout": {
                            "type": "number",
                            "description": "Write timeout in seconds",
                            "exclusiveMinimum": 0,
                            "maximum": 60
                        }
                    },
                    "additionalProperties": False
                },
                "session": {
                    "type": "object",
                    "description": "Command/response session settings",
                    "properties": {
                        "tick_interval_ms": {
                            "type": "integer",
                            "description": "Interval between state machine steps",
                            "minimum": 10,
                            "maximum": 5000
                        },
                        "response_timeout": {
                            "type": "number",
                            "description": "Seconds to wait for a response, 0 disables",
                            "minimum": 0,
                            "maximum": 3600
                        },
                        "keepalive_interval": {
                            "type": "number",
                            "description": "Idle seconds before a keepalive ping, 0 disables",
                            "minimum": 0,
                            "maximum": 86400
                        }
                    },
                    "additionalProperties": False
                },
                "logging": {
                    "type": "object",
                    "description": "Communication logging settings",
                    "properties": {
                        "enabled": {"type": "boolean"},
                        "level": {
                            "type": "string",
                            "enum": ["DEBUG", "INFO", "WARNING", "ERROR"]
                        },
                        "log_to_file": {"type": "boolean"},
                        "log_to_console": {"type": "boolean"},
                        "log_file_path": {
                            "type": ["string", "null"],
                            "minLength": 1
                        },
                        "max_file_size_mb": {
                            "type": "integer",
                            "minimum": 1,
                            "maximum": 1000
                        },
                        "backup_count": {
                            "type": "integer",
                            "minimum": 0,
                            "maximum": 100
                        }
                    },
                    "additionalProperties": False
                }
            },
            "additionalProperties": False
        }

    @staticmethod
    def validate_config(config: Dict[str, Any], strict: bool = True) -> Tuple[bool, List[str]]:
        """Validate configuration dictionary against schema.

        Args:
            config: Configuration dictionary to validate.
            strict: If True, reject unknown fields.

        Returns:
            Tuple of (is_valid, error_messages).
        """
        schema = ConfigSchema.get_schema()
        if not strict:
            schema = ConfigSchema._make_permissive(schema)

        validator = Draft7Validator(schema)
        errors = [
            ConfigSchema._format_error(error)
            for error in sorted(validator.iter_errors(config), key=lambda e: list(e.path))
        ]
        errors.extend(ConfigSchema._custom_validation(config))

        return len(errors) == 0, errors

    @staticmethod
    def _make_permissive(schema: Dict[str, Any]) -> Dict[str, Any]:
        """Copy of schema with every additionalProperties constraint removed."""
        permissive_schema = copy.deepcopy(schema)

        def remove_additional_properties(obj):
            if isinstance(obj, dict):
                obj.pop("additionalProperties", None)
                for value in obj.values():
                    remove_additional_properties(value)

        remove_additional_properties(permissive_schema)
        return permissive_schema

    @staticmethod
    def _format_error(error: jsonschema.exceptions.ValidationError) -> str:
        """Format a validation error with section and field.

        Example:
            "Section 'serial', field 'baud_rate': Expected one of [...], got 12345."
        """
        path_parts = list(error.path)
        if len(path_parts) == 0:
            section, field = "root", "configuration"
        elif len(path_parts) == 1:
            section, field = path_parts[0], "section"
        else:
            section = path_parts[0]
            field = ".".join(str(p) for p in path_parts[1:])

        prefix = f"Section '{section}', field '{field}'"

        if error.validator == "type":
            return (f"{prefix}: Expected type {error.validator_value}, "
                    f"got {type(error.instance).__name__} (value: {error.instance})")
        elif error.validator == "enum":
            return f"{prefix}: Expected one of {error.validator_value}, got {error.instance}"
        elif error.validator in ("minimum", "exclusiveMinimum"):
            return f"{prefix}: Value must be >= {error.validator_value}, got {error.instance}"
        elif error.validator == "maximum":
            return f"{prefix}: Value must be <= {error.validator_value}, got {error.instance}"
        elif error.validator == "additionalProperties":
            extra_props = sorted(set(error.instance.keys()) - set(error.schema.get('properties', {}).keys()))
            return f"Section '{section}': Unknown fields {extra_props} not allowed"
        return f"{prefix}: {error.message}"

    @staticmethod
    def _custom_validation(config: Dict[str, Any]) -> List[str]:
        """Checks that span fields or go beyond JSON schema."""
        errors = []

        logging_section = config.get("logging")
        if isinstance(logging_section, dict):
            path = logging_section.get("log_file_path")
            if isinstance(path, str) and not ConfigSchema.validate_path(path):
                errors.append(
                    f"Section 'logging', field 'log_file_path': Path {path!r} "
                    f"contains invalid characters"
                )

        serial_section = config.get("serial")
        if isinstance(serial_section, dict):
            port = serial_section.get("port")
            if isinstance(port, str) and not ConfigSchema.validate_path(port):
                errors.append(
                    f"Section 'serial', field 'port': Port {port!r} contains invalid characters"
                )

        return errors

    @staticmethod
    def validate_baud_rate(baud: int) -> bool:
        return baud in ConfigSchema.VALID_BAUD_RATES

    @staticmethod
    def validate_path(path: str) -> bool:
        """Reject empty paths and paths with NUL, CR or LF."""
        if not path or path.strip() == "":
            return False
        return not any(char in path for char in ('\0', '\r', '\n'))
