"""Custom filters for uvicorn access logging."""

import logging

from relay.settings import app_settings

ACCESS_LOGGER_NAME = "uvicorn.access"


class ExcludeMetricsFilter(logging.Filter):
    """
    Drops access log lines for the monitoring endpoints listed in
    LOG_EXCLUDED_PATHS (by default /metrics and /health).
    """

    def __init__(self, excluded_paths: list[str] | None = None):
        super().__init__()
        self.excluded_paths = (
            app_settings.LOG_EXCLUDED_PATHS
            if excluded_paths is None
            else excluded_paths
        )

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        return not any(path in message for path in self.excluded_paths)


def install_access_log_filter() -> ExcludeMetricsFilter:
    """
    Attaches an ExcludeMetricsFilter to the uvicorn access logger, once.

    Returns:
        The filter attached to the access logger.
    """
    access_logger = logging.getLogger(ACCESS_LOGGER_NAME)
    for existing in access_logger.filters:
        if isinstance(existing, ExcludeMetricsFilter):
            return existing

    access_filter = ExcludeMetricsFilter()
    access_logger.addFilter(access_filter)
    return access_filter
