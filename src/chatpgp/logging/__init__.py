"""chatpgp Logging Module

Centralized logging configuration for chatpgp. Library modules log through
``logging.getLogger(__name__)`` below the ``chatpgp`` logger; applications
call :func:`configure_logging` once to attach console and rotating file
handlers.
"""

from .logger_setup import (
    LoggingConfig,
    configure_logging,
    get_logger,
    set_debug_logging,
)

__all__ = ["LoggingConfig", "configure_logging", "get_logger", "set_debug_logging"]
