"""Transport-level guard for inbound webhooks.

Only looks at the HTTP method, the User-Agent and the event-type header. There
is no payload signature check.
"""

from collections.abc import Iterable, Mapping

import structlog

logger = structlog.get_logger()

DEFAULT_ALLOWED_EVENTS = ("ping", "push")


class RequestAuthenticator:
    """Accept POSTs from the expected agent carrying an allowed event type.

    Args:
        required_agent: Prefix the ``User-Agent`` header must start with.
        event_header: Name of the header carrying the event type.
        allowed_events: Event types that are let through.
    """

    def __init__(
        self,
        required_agent: str,
        event_header: str,
        allowed_events: Iterable[str] = DEFAULT_ALLOWED_EVENTS,
    ) -> None:
        self.required_agent = required_agent
        self.event_header = event_header.lower()
        self.allowed_events = frozenset(allowed_events)

    def authenticate(self, method: str, headers: Mapping[str, str]) -> str | None:
        """Return the accepted event type, or ``None`` when the request is rejected.

        ``headers`` must support case-insensitive lookup (Starlette's
        ``Headers`` does) or use lowercase keys.
        """
        if method.upper() != "POST":
            logger.info("request_rejected", reason="method", method=method)
            return None

        agent = headers.get("user-agent")
        if not agent or not agent.startswith(self.required_agent):
            logger.info("request_rejected", reason="agent", agent=agent)
            return None

        event = headers.get(self.event_header)
        if event not in self.allowed_events:
            logger.info("request_rejected", reason="event", received_event=event)
            return None

        return event
