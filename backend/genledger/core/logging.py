"""Logging setup for genledger.

``logger`` is the root application logger. ``logger.with_context(**dims)`` returns
a child logger that stamps every record with the given dimensions, so billing and
usage flows can be followed by ``stripe_event_id`` or ``account_id``.
"""

import logging
import sys
from typing import Any, MutableMapping, Optional

from genledger.core.config import settings

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter carrying a dict of dimensions.

    Dimensions are appended to the message and attached to the record under
    ``extra["dimensions"]`` for structured handlers.
    """

    def __init__(
        self,
        logger: logging.Logger,
        dimensions: Optional[dict[str, Any]] = None,
        prefix: str = "",
    ) -> None:
        """Wrap *logger* with an immutable set of dimensions."""
        super().__init__(logger, {})
        self.dimensions: dict[str, Any] = dict(dimensions or {})
        self.prefix = prefix

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping]:
        """Attach dimensions to the record and render them after the message."""
        extra = kwargs.setdefault("extra", {})
        extra["dimensions"] = {**self.dimensions, **extra.get("dimensions", {})}
        if self.dimensions:
            rendered = " ".join(f"{k}={v}" for k, v in self.dimensions.items())
            msg = f"{self.prefix}{msg} [{rendered}]"
        elif self.prefix:
            msg = f"{self.prefix}{msg}"
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a new logger with extra dimensions merged in."""
        return ContextualLogger(
            self.logger, {**self.dimensions, **dimensions}, prefix=self.prefix
        )

    def with_prefix(self, prefix: str) -> "ContextualLogger":
        """Return a new logger that prefixes every message."""
        return ContextualLogger(self.logger, self.dimensions, prefix=prefix)


def _configure_root_logger() -> logging.Logger:
    base = logging.getLogger("genledger")
    if not base.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        base.addHandler(handler)
    base.setLevel(logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL.upper())
    return base


logger = ContextualLogger(_configure_root_logger())
