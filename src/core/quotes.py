"""Reply/quote helpers.

WhatsApp embeds a copy of the quoted content in the reply's context, so we
can rebuild a stand-in Message for it and run the regular criteria on it.
"""

from __future__ import annotations

from typing import Optional

from core.models import ContextInfo, Message, MessageKey


def get_context_info(message: Message) -> Optional[ContextInfo]:
    """Return the reply context carried by the message content, if any."""

    content = message.content
    if content is None:
        return None
    return content.context


def is_reply(message: Message) -> bool:
    """A message is a reply when its context names both a message id and a participant."""

    context = get_context_info(message)
    if context is None:
        return False
    return bool(context.stanza_id) and bool(context.participant)


def resolve_quoted(message: Message, own_id: Optional[str] = None) -> Optional[Message]:
    """Build the quoted message from the reply context.

    The quoted message's own timestamp is not part of the context, so the
    outer message's timestamp is reused.
    """

    context = get_context_info(message)
    if context is None or context.quoted is None:
        return None

    participant = context.participant
    return Message(
        key=MessageKey(
            remote_jid=message.key.remote_jid,
            from_me=participant is not None and participant == own_id,
            id=context.stanza_id or "",
            participant=participant,
        ),
        timestamp=message.timestamp,
        push_name=participant.split("@")[0] if participant else "Unknown",
        content=context.quoted,
    )


class QuoteResolver:
    """Resolve quoted messages relative to the bridge's own WhatsApp id."""

    def __init__(self, own_id: Optional[str] = None) -> None:
        self.own_id = own_id

    def resolve(self, message: Message) -> Optional[Message]:
        return resolve_quoted(message, self.own_id)
