"""Configuration data models for AT Link.

Immutable configuration dataclasses with defaults that work without any
config file.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Dict, Any


class LogLevel(Enum):
    """Logging level."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class SerialConfig:
    """Serial port configuration."""
    port: Optional[str] = None
    baud_rate: int = 9600
    read_timeout: float = 0.1  # seconds
    write_timeout: float = 1.0  # seconds


@dataclass(frozen=True)
class SessionConfig:
    """Command/response session configuration."""
    tick_interval_ms: int = 100
    response_timeout: float = 10.0  # seconds, 0 disables
    keepalive_interval: float = 0.0  # seconds, 0 disables

    @property
    def tick_interval(self) -> float:
        """Step interval in seconds."""
        return self.tick_interval_ms / 1000.0


@dataclass(frozen=True)
class LoggingConfig:
    """Communication logging configuration."""
    enabled: bool = False
    level: LogLevel = LogLevel.INFO
    log_to_file: bool = False
    log_to_console: bool = True
    log_file_path: Optional[str] = None
    max_file_size_mb: int = 10
    backup_count: int = 5


@dataclass(frozen=True)
class Config:
    """Complete configuration object with all sections."""
    serial: SerialConfig = field(default_factory=SerialConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a plain nested dictionary (enums as values)."""
        def convert_value(obj: Any) -> Any:
            if isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, dict):
                return {k: convert_value(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert_value(item) for item in obj]
            return obj

        return convert_value(asdict(self))
