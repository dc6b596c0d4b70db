"""Push transport used by the edge dispatcher to reach a device."""
import json
import logging
from typing import Protocol

import requests
from pywebpush import WebPushException, webpush

from eventalarm.core.config import settings
from eventalarm.core.errors import TransportFailure
from eventalarm.schemas import DeliveryAddress

logger = logging.getLogger(__name__)


class PushTransport(Protocol):
    """Anything that can deliver a notification payload to a device.

    ``send`` raises TransportFailure when delivery fails.
    """

    def send(self, delivery_address: DeliveryAddress, payload: dict) -> None: ...


class WebPushTransport:
    """Web Push delivery signed with the configured VAPID key."""

    def __init__(
        self,
        vapid_private_key: str | None = None,
        vapid_subject: str | None = None,
        ttl: int = 3600,
    ):
        self.vapid_private_key = vapid_private_key or settings.vapid_private_key
        self.vapid_subject = vapid_subject or settings.vapid_subject
        self.ttl = ttl

    def send(self, delivery_address: DeliveryAddress, payload: dict) -> None:
        if not self.vapid_private_key:
            raise TransportFailure("No VAPID private key configured")

        try:
            webpush(
                subscription_info=delivery_address.model_dump(),
                data=json.dumps(payload),
                vapid_private_key=self.vapid_private_key,
                vapid_claims={"sub": self.vapid_subject},
                ttl=self.ttl,
            )
        except WebPushException as e:
            status = e.response.status_code if e.response is not None else None
            raise TransportFailure(f"Web push failed: {e}", status_code=status) from e
        except requests.RequestException as e:
            raise TransportFailure(f"Push service unreachable: {e}") from e
        except (ValueError, TypeError) as e:
            # Subscription keys are only decoded here; binascii.Error is a ValueError
            raise TransportFailure(f"Invalid subscription keys: {e}") from e


_transport: PushTransport | None = None


def get_transport() -> PushTransport:
    """Dependency returning the process-wide push transport."""
    global _transport

    if _transport is None:
        _transport = WebPushTransport()
    return _transport
