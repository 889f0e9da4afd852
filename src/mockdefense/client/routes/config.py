"""Shared configuration for route modules."""

from dataclasses import dataclass, field
from pathlib import Path

from mockdefense.service.wiring import DefenseServices


@dataclass
class RouteConfig:
    """Configuration container for Flask route dependencies.

    Attributes:
        services: Wired defense pipeline
        upload_folder: Where uploaded files are written before ingestion
        allowed_extensions: Accepted upload extensions
        debug_context: Include retrieved excerpts in chat responses
        run_in_background: Run ingestion on a worker thread after upload
    """

    services: DefenseServices | None = None
    upload_folder: Path | None = None
    allowed_extensions: set[str] = field(default_factory=lambda: {"pdf"})
    debug_context: bool = False
    run_in_background: bool = True


# Single shared config instance
_config = RouteConfig()


def get_config() -> RouteConfig:
    """Get the shared route configuration.

    Returns:
        RouteConfig instance with current settings
    """
    return _config


def init_config(
    services: DefenseServices | None = None,
    upload_folder: Path | None = None,
    debug_context: bool | None = None,
    run_in_background: bool | None = None,
) -> None:
    """Initialize the shared route configuration.

    Args:
        services: Wired defense pipeline
        upload_folder: Path to upload folder
        debug_context: Expose retrieved excerpts in chat responses
        run_in_background: Run ingestion on a worker thread
    """
    if services is not None:
        _config.services = services
    if upload_folder is not None:
        _config.upload_folder = upload_folder
    if debug_context is not None:
        _config.debug_context = debug_context
    if run_in_background is not None:
        _config.run_in_background = run_in_background
