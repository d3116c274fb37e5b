"""
Logging framework for the itinerary pipeline.

This module configures loguru for the application, providing a consistent
logging interface across the pipeline stages and the generation engine.
"""

import json
import os
import sys
from typing import Any

from loguru import logger

from itinerary_pipeline.config import LogLevel


def get_logger(name: str):
    """
    Get a logger instance for the specified module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Configured logger instance with the module name attached
    """
    return logger.bind(name=name)


def setup_logging(
    log_level: LogLevel | str = LogLevel.INFO, log_file: str | None = None
):
    """
    Set up the logging configuration for the application.

    Args:
        log_level: The logging level to use (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to write logs to
    """
    if isinstance(log_level, str):
        log_level = LogLevel(log_level.upper())

    logger.remove()

    logger.add(
        sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        level=log_level.value,
        colorize=True,
    )

    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        logger.add(
            log_file,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
                "{name}:{function}:{line} - {message}"
            ),
            level=log_level.value,
            rotation="10 MB",
            compression="zip",
        )

    logger.info(f"Logging initialized with level {log_level.value}")


class AgentLogger:
    """
    Logger specialized for pipeline stages, binding the stage name and the
    session being processed to every record.
    """

    def __init__(self, agent_name: str, session_id: str | None = None):
        self.agent_name = agent_name
        self.session_id = session_id
        self.logger = logger.bind(agent_name=agent_name, session_id=session_id)

    def for_session(self, session_id: str) -> "AgentLogger":
        """Return a logger bound to a specific session."""
        return AgentLogger(self.agent_name, session_id)

    def debug(self, message: str, **kwargs):
        """Log a debug message with agent context."""
        self.logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log an info message with agent context."""
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log a warning message with agent context."""
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log an error message with agent context."""
        self.logger.error(message, **kwargs)

    def log_api_request(
        self, api_name: str, endpoint: str, params: dict[str, Any] | None = None
    ):
        """
        Log an API request.

        Args:
            api_name: Name of the API being called
            endpoint: API endpoint
            params: Request parameters (optional)
        """
        self.debug(
            f"API Request: {api_name} - {endpoint}",
            api_name=api_name,
            endpoint=endpoint,
            params=self._safe_json(params),
        )

    def log_llm_input(self, model: str, prompt: str, temperature: float):
        """Log input to a language model."""
        self.debug(
            f"LLM Request: {model} - Temperature: {temperature} - "
            f"Prompt chars: {len(prompt)}",
            model=model,
            temperature=temperature,
        )

    def log_llm_output(self, model: str, response: Any):
        """Log output from a language model."""
        self.debug(
            f"LLM Response: {model}",
            model=model,
            response=self._safe_json(response),
        )

    def _safe_json(self, obj: Any) -> str | None:
        """
        Safely convert an object to JSON, handling conversion errors.

        Args:
            obj: Object to convert to JSON

        Returns:
            JSON string or None if conversion fails
        """
        if obj is None:
            return None

        try:
            return json.dumps(obj, default=str)
        except Exception as e:
            self.warning(f"Failed to serialize object to JSON: {e!s}")
            return str(obj)
