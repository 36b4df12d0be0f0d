# Models package — request/event value objects. Nothing here is persisted.

from mirada.models.events import (  # noqa: F401
    EventKind,
    InboundWebhookRequest,
    VerifiedEvent,
    parse_event,
)
