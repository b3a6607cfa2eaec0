"""User-visible notices raised by the client components."""

import logging
from collections.abc import Callable

logger = logging.getLogger("parley.client")

# (title, description, variant); variant is "default" or "destructive"
Notifier = Callable[[str, str, str], None]


def log_notifier(title: str, description: str, variant: str = "default") -> None:
    """Fallback notifier for headless use: notices go to the log."""
    level = logging.ERROR if variant == "destructive" else logging.INFO
    logger.log(level, "%s: %s", title, description)
