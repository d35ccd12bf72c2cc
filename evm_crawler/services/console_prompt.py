"""
Interactive operator confirmation, used only during startup.
"""

from typing import Optional

import structlog
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm

logger = structlog.get_logger(__name__)


class ConsolePromptService:
    """Blocking yes/no questions on the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.logger = logger.bind(service="console_prompt")

    def ask_user_confirmation(self, message: str) -> bool:
        """Ask until the operator answers yes or no."""
        return Confirm.ask(message, console=self.console)

    def ask_data_reset_confirmation(self, config_start_height: int, current_db_height: int) -> bool:
        self.logger.warning(
            "Data reset required",
            config_start_height=config_start_height,
            current_db_height=current_db_height
        )
        self.console.print(Panel(
            f"Configured start block: {config_start_height}\n"
            f"Current database block: {current_db_height}\n"
            "This operation will DELETE all existing blockchain data.",
            title="⚠️  WARNING: Data Reset Required",
            border_style="yellow",
        ))
        return self.ask_user_confirmation("Do you want to proceed with data reset?")
