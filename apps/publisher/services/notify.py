"""Best-effort "publication happened" notifications.

Notifiers are called after a version is durably activated. Failures are logged and swallowed by
the scheduler; a notifier never affects reconciliation.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublicationEvent:
    domain: str
    item_number: int
    version_number: int
    title: str
    url_path: str
    published: datetime | None
    recipient: str | None = None

    def to_payload(self) -> dict:
        data = asdict(self)
        data["published"] = self.published.isoformat() if self.published else None
        return data


@runtime_checkable
class PublicationNotifier(Protocol):
    def notify(self, event: PublicationEvent) -> None:
        ...

    def close(self) -> None:
        ...


class LoggingPublicationNotifier:
    """Default notifier: one log line per activation."""

    def notify(self, event: PublicationEvent) -> None:
        logger.info(
            "tenant=%s item=%s version=%s published url=%s recipient=%s",
            event.domain,
            event.item_number,
            event.version_number,
            event.url_path,
            event.recipient or "-",
        )

    def close(self) -> None:
        pass


class WebhookPublicationNotifier:
    """POSTs the event as JSON to a webhook (e.g. a mail relay). Raises on HTTP errors."""

    def __init__(self, url: str, *, timeout: float = 5.0, session: requests.Session | None = None) -> None:
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()

    def notify(self, event: PublicationEvent) -> None:
        resp = self._session.post(self.url, json=event.to_payload(), timeout=self.timeout)
        resp.raise_for_status()

    def close(self) -> None:
        self._session.close()
