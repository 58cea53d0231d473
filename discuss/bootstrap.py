"""Process wiring for hosts embedding the comment cache."""

from dishka import AsyncContainer

from discuss.config import Settings
from discuss.util.di.container import create_container
from discuss.util.logging import setup_logging
from discuss.util.observability import configure_logfire, instrument_httpx


def bootstrap() -> AsyncContainer:
    """Configure logging and Logfire, then build the DI container.

    Settings are read from the environment here for logging and again by the
    container's config provider.

    Usage:
        container = bootstrap()
        async with container() as request:
            feed = await request.get(FeedViewer)
            await feed.load_posts()
        await container.close()
    """
    settings = Settings()

    setup_logging(settings)
    configure_logfire(settings)
    # Logfire must be configured before instrumentation
    instrument_httpx()

    return create_container()
