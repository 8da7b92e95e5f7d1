import logging

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "OTLP Gateway"
    debug: bool = False
    log_level: str = "INFO"

    # Fixed-window rate limiting, per principal
    rate_limit_window_ms: int = 60_000
    rate_limit_max_requests: int = 60

    # In-flight requests, per principal
    max_concurrent_requests: int = 10

    # Upper bound on tracked principals in each limiter map
    limiter_max_entries: int = 50_000
    # How often expired rate windows are swept
    limiter_cleanup_interval_ms: int = 60_000

    # Upper bound on a gzip-encoded OTLP body once inflated
    max_decompressed_bytes: int = 64 * 1024 * 1024


settings = Settings()

logger = logging.getLogger(__name__)


def setup_logging(level: str | None = None) -> None:
    """Configure the otlp_gateway logger hierarchy.

    Uses DEBUG when the debug flag is set, otherwise ``settings.log_level``.
    A handler is attached only if the root logger has none, so an embedding
    application's logging configuration wins.
    """
    if level is None:
        level = "DEBUG" if settings.debug else settings.log_level

    package_logger = logging.getLogger("otlp_gateway")
    package_logger.setLevel(level.upper())

    if not logging.getLogger().handlers:
        logging.basicConfig(
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )

    logger.info(f"Logging configured at {level.upper()} for {settings.app_name}")
