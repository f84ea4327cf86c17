"""AT Link - AT command terminal CLI.

Interactive serial terminal for AT command modems, with a one-shot
command mode for scripting.
"""

import argparse
import sys
from typing import Optional

from src.core import SerialTransport, LinkSession, ConfigError, InvalidCommandError
from src.config import ConfigManager, ConfigSchema, Config
from src.config.config_models import LogLevel
from src.logging import CommunicationLogger
from src.terminal import TerminalConsole, send_once


def discover_ports() -> None:
    """Discover and display available serial ports."""
    print("Discovering serial ports...")
    ports = SerialTransport.discover_ports()

    if not ports:
        print("No serial ports found.")
        return

    print(f"\nFound {len(ports)} port(s):")
    for port in ports:
        print(f"  {port.device}")
        print(f"    Description: {port.description}")
        print(f"    Hardware ID: {port.hwid}")
        print()


def execute_command(session: LinkSession,
                    command: str,
                    tick_interval: float,
                    verbose: bool,
                    logger: Optional[CommunicationLogger] = None) -> int:
    """Send a single command and print its response.

    Returns:
        Exit code (0 for an OK response, 1 otherwise)
    """
    if verbose:
        print(f"Opening port {session.transport.port} at {session.transport.baud_rate} baud...")

    try:
        response = send_once(session, command, tick_interval=tick_interval, logger=logger)
    except InvalidCommandError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1

    if response is None:
        print("Error: No response (port failed to open, write failed or timed out)", file=sys.stderr)
        return 1

    print(f"\n{'='*60}")
    print(f"Command: {response.command.normalized() if response.command else command}")
    print(f"Status: {response.status.value}")
    print(f"\nResponse:")
    print(response.response)
    print(f"{'='*60}\n")

    return 0 if response.is_successful() else 1


def create_logger(args: argparse.Namespace, config: Config) -> Optional[CommunicationLogger]:
    """Logger from --log flags, falling back to the logging config section."""
    if not args.log:
        return CommunicationLogger.from_config(config.logging)

    return CommunicationLogger(
        log_level=LogLevel[args.log_level],
        enable_file=True,
        enable_console=args.log_to_console,
        log_file_path=args.log_file or CommunicationLogger.default_log_path(),
        max_file_size_mb=config.logging.max_file_size_mb,
        backup_count=config.logging.backup_count
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="AT Link - AT command terminal for serial modems",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --discover-ports                                  # List serial ports
  %(prog)s --port /dev/ttyUSB0                               # Interactive terminal
  %(prog)s --port COM3 --command "AT+CGMI"                   # Send one command
  %(prog)s --port /dev/ttyUSB0 --baud 115200 --verbose

  # Logging examples:
  %(prog)s --port COM3 --log                                  # Log with defaults
  %(prog)s --port COM3 --log --log-file ~/at.log --log-level DEBUG --log-to-console

  # Configuration examples:
  %(prog)s --generate-config                                 # Write ./at-link.yaml
  %(prog)s --config ./at-link.yaml --show-config
        """
    )

    parser.add_argument(
        '--discover-ports',
        action='store_true',
        help='Discover and list available serial ports'
    )

    parser.add_argument(
        '--port',
        type=str,
        help='Serial port device (e.g., COM3, /dev/ttyUSB0)'
    )

    parser.add_argument(
        '--baud',
        type=int,
        help='Baud rate (default: serial.baud_rate from config, 9600)'
    )

    parser.add_argument(
        '--command',
        type=str,
        help='Send one command, print the response and exit (e.g., "AT+CGMI")'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose output (every state change in the terminal)'
    )

    # Logging arguments
    parser.add_argument(
        '--log',
        action='store_true',
        help='Enable communication logging to file'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        metavar='PATH',
        help='Path to log file (default: ~/.at-link/logs/session_YYYYMMDD_HHMMSS.log)'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Log level (default: INFO)'
    )

    parser.add_argument(
        '--log-to-console',
        action='store_true',
        help='Output logs to console (stderr) in addition to file'
    )

    # Configuration arguments
    parser.add_argument(
        '--config',
        type=str,
        metavar='PATH',
        help='Configuration file (default: ./at-link.yaml or ~/.at-link/config.yaml)'
    )

    parser.add_argument(
        '--watch-config',
        action='store_true',
        help='Reload the configuration file when it changes (session timeouts only)'
    )

    parser.add_argument(
        '--show-config',
        action='store_true',
        help='Show current configuration with sources'
    )

    parser.add_argument(
        '--validate-config',
        action='store_true',
        help='Validate configuration file'
    )

    parser.add_argument(
        '--generate-config',
        action='store_true',
        help='Generate default configuration file (./at-link.yaml, or --config PATH)'
    )

    parser.add_argument(
        '--config-schema',
        action='store_true',
        help='Output JSON schema for configuration'
    )

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configuration commands that do not need a loaded configuration
    from src.config import config_cli

    if args.generate_config:
        return config_cli.generate_config_command(args.config or "./at-link.yaml")

    if args.config_schema:
        return config_cli.schema_command()

    if args.validate_config and args.config:
        return config_cli.validate_config_command(args.config)

    try:
        manager = ConfigManager.initialize(config_path=args.config)
    except ConfigError as e:
        print(f"Error: Failed to load configuration: {e}", file=sys.stderr)
        return 1

    if args.show_config:
        return config_cli.show_config_command()

    if args.validate_config:
        return config_cli.validate_config_command()

    if args.discover_ports:
        discover_ports()
        return 0

    if args.baud is not None and not ConfigSchema.validate_baud_rate(args.baud):
        print(f"Error: Unsupported baud rate {args.baud}. "
              f"Expected one of {ConfigSchema.VALID_BAUD_RATES}", file=sys.stderr)
        return 1

    config = manager.get_config()
    logger = create_logger(args, config)

    try:
        try:
            session = LinkSession.from_config(config, port=args.port, baud_rate=args.baud, logger=logger)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            parser.print_usage(sys.stderr)
            return 1

        if args.watch_config:
            manager.register_reload_callback(session.apply_config)
            if not manager.enable_hot_reload():
                print("Warning: --watch-config needs a configuration file; not watching",
                      file=sys.stderr)

        if args.command:
            return execute_command(
                session,
                args.command,
                tick_interval=config.session.tick_interval,
                verbose=args.verbose,
                logger=logger
            )

        console = TerminalConsole(
            session,
            tick_interval=config.session.tick_interval,
            verbose=args.verbose,
            logger=logger
        )
        return console.run(auto_connect=True)

    finally:
        manager.disable_hot_reload()
        if logger:
            if args.verbose and logger.log_file_path:
                print(f"\nLog file: {logger.log_file_path}")
            logger.close()


if __name__ == '__main__':
    sys.exit(main())
