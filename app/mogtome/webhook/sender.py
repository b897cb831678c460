import json
import logging
from typing import List, Optional

import requests

from ..config import DEFAULT_API_KEY_HEADER
from ..errors import NotificationError
from ..models.events import DomainEvent

log = logging.getLogger("mogtome.webhook")

DEFAULT_TIMEOUT = 10


def serialize_events(events: List[DomainEvent]) -> str:
    return json.dumps([event.to_json() for event in events])


class WebhookNotifier:
    """
    Post recorded events to the downstream event endpoint.

    The body is a JSON array of {id, text, type, timestamp} objects and the
    request carries the pre-shared API key header.
    """

    def __init__(
        self,
        url: Optional[str],
        api_key: Optional[str] = None,
        *,
        api_key_header: str = DEFAULT_API_KEY_HEADER,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.api_key_header = api_key_header
        self.timeout = timeout
        self.session = session or requests.Session()

    def publish(self, events: List[DomainEvent]) -> None:
        if not events:
            return
        if not self.url:
            log.warning("[webhook] No webhook URL configured; skipping %d events", len(events))
            return

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers[self.api_key_header] = self.api_key

        body = serialize_events(events)
        try:
            log.info("[webhook] Sending %d events (%d bytes)", len(events), len(body))
            resp = self.session.post(self.url, data=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise NotificationError(f"Request to webhook failed: {exc}") from exc

        if resp.status_code >= 400:
            raise NotificationError(f"HTTP {resp.status_code} from webhook: {resp.text[:200]}")
        log.info("[webhook] Events delivered successfully")
