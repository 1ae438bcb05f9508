"""Error reporting collaborator.

Non-ignorable errors end up here. They are always logged with their
traceback; when a DSN is configured the event is also forwarded to it as
JSON over HTTP.
"""

import logging
import traceback
from typing import Optional

import httpx

logger = logging.getLogger("contest_tracker.reporting")


class ErrorReporter:
    def __init__(self, dsn: Optional[str] = None, timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.dsn = dsn or None
        if self.dsn:
            try:
                url = httpx.URL(self.dsn)
            except httpx.InvalidURL as e:
                raise ValueError(f"invalid error reporter DSN: {e}") from e
            if url.scheme not in ("http", "https") or not url.host:
                raise ValueError(f"error reporter DSN must be an http(s) URL, got scheme {url.scheme!r}")
        self._client = client
        self._timeout = timeout

    def capture(self, exc: BaseException, **context):
        """Log `exc` and forward it to the configured endpoint, if any."""
        logger.error("unhandled error: %s", exc.__class__.__name__, exc_info=exc, extra={"context": context})
        if not self.dsn:
            return
        event = {
            "type": exc.__class__.__name__,
            "message": str(exc),
            "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            "context": {k: str(v) for k, v in context.items()},
        }
        try:
            if self._client is not None:
                self._client.post(self.dsn, json=event, timeout=self._timeout).raise_for_status()
            else:
                httpx.post(self.dsn, json=event, timeout=self._timeout).raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("failed to deliver error report: %s", e)
