from __future__ import annotations

from datetime import datetime, timezone

from core.models import ContentKind, ContextInfo, Message, MessageContent, MessageKey
from core.quotes import QuoteResolver, is_reply, resolve_quoted

GROUP = "120363025@g.us"
STAMP = datetime(2024, 3, 5, 12, 30, tzinfo=timezone.utc)


def _message(content: MessageContent) -> Message:
    return Message(
        key=MessageKey(remote_jid=GROUP, from_me=False, id="OUTER", participant="111@s.whatsapp.net"),
        timestamp=STAMP,
        push_name="Alice",
        content=content,
    )


def _reply(participant, quoted=MessageContent(kind=ContentKind.IMAGE, caption="slides")) -> Message:
    return _message(
        MessageContent(
            kind=ContentKind.EXTENDED_TEXT,
            text="check #CSC 101",
            context=ContextInfo(stanza_id="QUOTED", participant=participant, quoted=quoted),
        )
    )


def test_resolve_quoted_builds_message_from_context() -> None:
    quoted = resolve_quoted(_reply("222@s.whatsapp.net"))
    assert quoted is not None
    assert quoted.key == MessageKey(
        remote_jid=GROUP,
        from_me=False,
        id="QUOTED",
        participant="222@s.whatsapp.net",
    )
    assert quoted.content == MessageContent(kind=ContentKind.IMAGE, caption="slides")
    assert quoted.timestamp == STAMP
    assert quoted.push_name == "222"


def test_resolve_quoted_without_participant_uses_unknown_name() -> None:
    quoted = resolve_quoted(_reply(None))
    assert quoted is not None
    assert quoted.push_name == "Unknown"
    assert quoted.key.from_me is False


def test_resolve_quoted_sets_from_me_for_own_id() -> None:
    resolver = QuoteResolver(own_id="999@s.whatsapp.net")
    assert resolver.resolve(_reply("999@s.whatsapp.net")).key.from_me is True
    assert resolver.resolve(_reply("222@s.whatsapp.net")).key.from_me is False


def test_resolve_quoted_returns_none_without_quoted_payload() -> None:
    assert resolve_quoted(_reply("222@s.whatsapp.net", quoted=None)) is None
    assert resolve_quoted(_message(MessageContent(kind=ContentKind.TEXT, text="hi"))) is None


def test_resolve_quoted_reads_context_from_media_content() -> None:
    video_reply = _message(
        MessageContent(
            kind=ContentKind.VIDEO,
            caption="answer",
            context=ContextInfo(
                stanza_id="Q",
                participant="222@s.whatsapp.net",
                quoted=MessageContent(kind=ContentKind.TEXT, text="question"),
            ),
        )
    )
    assert is_reply(video_reply)
    assert resolve_quoted(video_reply).content.text == "question"


def test_resolve_quoted_is_idempotent() -> None:
    message = _reply("222@s.whatsapp.net")
    assert resolve_quoted(message) == resolve_quoted(message)
