"""Communication logging package.

Logs commands, responses, received lines, state transitions and port
events of a serial session to file, console and an in-memory buffer.
"""

from src.logging.log_models import LogEntry
from src.logging.file_handler import FileHandler
from src.logging.communication_logger import CommunicationLogger

__all__ = ['LogEntry', 'FileHandler', 'CommunicationLogger']
