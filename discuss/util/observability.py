"""Observability configuration using Logfire.

Usage:
    import logfire

    logfire.info("Page merged", post_id=post_id, added=3)

    with logfire.span("comment_viewer.add_reply", post_id=post_id):
        ...
"""

import logfire

from discuss.config import Settings


def configure_logfire(settings: Settings) -> None:
    """Configure Logfire for observability.

    Telemetry is sent to the Logfire cloud only when a token is configured
    or ``OBSERVABILITY__SEND_TO_LOGFIRE`` says so; otherwise events go to
    the console.

    Args:
        settings: Application settings
    """
    # Priority: explicit setting > token presence > default (False)
    if settings.observability.send_to_logfire is not None:
        send_to_logfire = settings.observability.send_to_logfire
    elif settings.observability.logfire_token:
        send_to_logfire = True
    else:
        send_to_logfire = False

    config_kwargs = {
        "service_name": "discuss",
        "service_version": "0.1.0",
        "environment": settings.environment,
        "send_to_logfire": send_to_logfire,
        "console": logfire.ConsoleOptions(
            colors="auto",
            span_style="show-parents",
            include_timestamps=True,
            verbose=settings.debug,
        ),
    }

    if settings.observability.logfire_token:
        config_kwargs["token"] = settings.observability.logfire_token

    logfire.configure(**config_kwargs)

    logfire.info(
        "Observability configured",
        environment=settings.environment,
        debug=settings.debug,
        send_to_logfire=send_to_logfire,
        has_token=bool(settings.observability.logfire_token),
    )


def instrument_httpx() -> None:
    """Instrument httpx with Logfire.

    Every GraphQL request gets a client span with its duration and status,
    nested under the viewer operation that issued it.
    """
    logfire.instrument_httpx()
    logfire.info("httpx instrumented")
