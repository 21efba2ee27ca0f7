"""Exit codes shared by CLI commands."""

SUCCESS_EXIT_CODE = 0
PARTIAL_EXIT_CODE = 1  # some instruments were not delivered
VALIDATION_EXIT_CODE = 2  # invalid input or configuration

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

__all__ = ["SUCCESS_EXIT_CODE", "PARTIAL_EXIT_CODE", "VALIDATION_EXIT_CODE", "LOG_LEVELS"]
