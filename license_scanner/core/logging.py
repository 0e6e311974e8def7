import logging
import os
import sys
from typing import Any

import structlog
from rich.console import Console

# Logs go to stderr so the report on stdout can be piped or redirected
console = Console(stderr=True)


class RichConsoleRenderer:
    """
    A structlog renderer printing `event key=value ...` lines through rich.
    An optional '_style' key in the event dict overrides the line style.
    """

    def __init__(self, stream_console: Console | None = None):
        self._console = stream_console or console
        self._level_styles = {
            'debug': 'dim',
            'info': 'green',
            'warning': 'yellow',
            'error': 'bold red',
            'critical': 'bold magenta',
        }

    def __call__(self, logger, name, event_dict):
        custom_style = event_dict.pop('_style', None)

        event = event_dict.pop('event', '')
        log_level = event_dict.pop('level', 'info')
        logger_name = event_dict.pop('logger', 'root')
        timestamp = event_dict.pop('timestamp', '')
        exception = event_dict.pop('exception', None)
        event_dict.pop('exc_info', None)

        parts = []
        if timestamp:
            parts.append(f"[dim]{timestamp}[/dim]")
        if logger_name:
            parts.append(f"[bold]{logger_name}[/bold]")

        level_style = self._level_styles.get(log_level, 'white')
        parts.append(f"[{level_style}]{log_level:<8}[/{level_style}]")
        parts.append(str(event))

        for key, value in event_dict.items():
            parts.append(f"[cyan]{key}[/cyan]=[green]{value!r}[/green]")

        final_msg = ' '.join(parts)
        if exception:
            final_msg += f"\n[red]{exception}[/red]"

        self._console.print(final_msg, style=custom_style, highlight=False)

        # Already printed, keep the stdlib logger from emitting a blank line
        raise structlog.DropEvent


def drop_style_processor(logger, method_name, event_dict):
    """Remove the rich-only '_style' hint before JSON rendering."""
    event_dict.pop('_style', None)
    return event_dict


def setup_logging(level: str = 'INFO') -> None:
    """
    Configure structured logging for the scanner.

    `ENV=production` switches to one JSON object per line, which is what CI
    log collectors expect. Otherwise events are rendered for humans.
    """
    logging.basicConfig(format='%(message)s', stream=sys.stderr, level=level)
    # basicConfig is a no-op once handlers exist, the level must still apply
    logging.getLogger().setLevel(level)

    shared_processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if os.getenv('ENV') == 'production':
        processors = shared_processors + [
            drop_style_processor,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            RichConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
