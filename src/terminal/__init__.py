"""Terminal front-end: step driver thread and interactive console."""

from src.terminal.driver import StepDriver
from src.terminal.console import TerminalConsole, send_once

__all__ = ['StepDriver', 'TerminalConsole', 'send_once']
