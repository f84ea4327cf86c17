"""Default configuration values for zero-config operation."""

from src.config.config_models import (
    Config,
    SerialConfig,
    SessionConfig,
    LoggingConfig,
    LogLevel
)


def get_default_config() -> Config:
    """Get default configuration.

    Default Values:
        - Serial: no port, 9600 baud, 100ms reader poll, 1s write timeout
        - Session: 100ms step interval, 10s response timeout, keepalive off
        - Logging: disabled; console output when enabled
    """
    return Config(
        serial=SerialConfig(
            port=None,  # Must come from --port, file or env
            baud_rate=9600,
            read_timeout=0.1,
            write_timeout=1.0
        ),
        session=SessionConfig(
            tick_interval_ms=100,
            response_timeout=10.0,
            keepalive_interval=0.0
        ),
        logging=LoggingConfig(
            enabled=False,
            level=LogLevel.INFO,
            log_to_file=False,
            log_to_console=True,
            log_file_path=None,  # Auto-generated: ~/.at-link/logs/session_{timestamp}.log
            max_file_size_mb=10,
            backup_count=5
        )
    )
