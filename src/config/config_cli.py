"""Configuration management CLI commands.

Provides command-line operations for showing, validating and generating
configuration, and for printing the configuration schema.
"""

import sys
import json
from pathlib import Path
from typing import Optional

import yaml

from src.config.config_manager import ConfigManager
from src.config.config_schema import ConfigSchema
from src.config.defaults import get_default_config

SECTION_TITLES = (
    ("serial", "Serial Settings"),
    ("session", "Session Settings"),
    ("logging", "Logging Settings"),
)


def show_config_command() -> int:
    """Display current configuration with sources.

    Returns:
        Exit code (0 for success)
    """
    try:
        manager = ConfigManager.instance()
        config_dict = manager.show_config()
    except RuntimeError as e:
        print(f"Error showing configuration: {e}", file=sys.stderr)
        return 1

    print("\n" + "=" * 70)
    print("  Current Configuration")
    if manager.config_path:
        print(f"  File: {manager.config_path}")
    print("=" * 70)

    for section, title in SECTION_TITLES:
        _print_config_section(title, config_dict.get(section, {}))

    print()
    return 0


def _print_config_section(title: str, section: dict) -> None:
    print(f"\n{title}:")
    for key, entry in section.items():
        print(f"  {key}: {entry['value']} (source: {entry['source']})")


def validate_config_command(config_path: Optional[str] = None) -> int:
    """Validate a configuration file, or the loaded configuration.

    Args:
        config_path: Path to config file (default: use ConfigManager)

    Returns:
        Exit code (0 if valid, 1 if invalid)
    """
    try:
        if config_path:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = ConfigManager.instance().get_config().to_dict()
    except FileNotFoundError:
        print(f"Error: Configuration file not found: {config_path}", file=sys.stderr)
        return 1
    except (OSError, yaml.YAMLError, RuntimeError) as e:
        print(f"Error validating configuration: {e}", file=sys.stderr)
        return 1

    if not isinstance(config_dict, dict):
        is_valid, errors = False, ["Configuration must be a mapping at top level"]
    else:
        is_valid, errors = ConfigSchema.validate_config(config_dict)

    print("\n" + "=" * 70)
    print("  Configuration Validation")
    print("=" * 70)

    if is_valid:
        print("\n[OK] Configuration is valid")
        print()
        return 0

    print(f"\n[ERROR] Configuration has {len(errors)} error(s):\n")
    for i, error in enumerate(errors, 1):
        print(f"{i}. {error}")
    print()
    return 1


def generate_config_command(output_path: str = "./at-link.yaml", force: bool = False) -> int:
    """Generate default configuration file.

    Args:
        output_path: Path to output file
        force: Overwrite existing file

    Returns:
        Exit code (0 for success, 1 for error)
    """
    output_file = Path(output_path)

    if output_file.exists() and not force:
        print(f"Error: File already exists: {output_path}", file=sys.stderr)
        print("Use --force to overwrite", file=sys.stderr)
        return 1

    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(output_file, 'w', encoding='utf-8') as f:
            f.write("# AT Link Configuration\n")
            f.write("# Generated with default values\n\n")
            yaml.safe_dump(get_default_config().to_dict(), f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        print(f"Error generating configuration: {e}", file=sys.stderr)
        return 1

    print(f"\n[OK] Default configuration generated: {output_file}")
    print("\nNext steps:")
    print("  1. Set serial.port to your device")
    print(f"  2. Run 'python main.py --config {output_file} --validate-config' to validate")
    print()
    return 0


def schema_command() -> int:
    """Print the configuration JSON schema."""
    print(json.dumps(ConfigSchema.get_schema(), indent=2))
    return 0
