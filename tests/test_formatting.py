from __future__ import annotations

from datetime import datetime, timezone

from telethon.extensions import html as telegram_html
from telethon.tl.types import MessageEntityBold

from core.formatting import format_alert, format_forward_text


def test_forward_text_bolds_escaped_sender_name() -> None:
    assert format_forward_text("<Admin>", "hi", include_sender=True) == "<b>&lt;Admin&gt;</b>:\n\nhi"
    assert format_forward_text(None, "hi", include_sender=True) == "<b>Unknown</b>:\n\nhi"
    assert format_forward_text("Alice", "hi", include_sender=False) == "hi"


def test_forwarded_content_reaches_telegram_unchanged() -> None:
    body = "run __init__ and **not bold**, see [a](b) or <i>x</i> & `y`"

    text, entities = telegram_html.parse(format_forward_text("john_doe", body, include_sender=True))

    assert text == f"john_doe:\n\n{body}"
    assert len(entities) == 1
    assert isinstance(entities[0], MessageEntityBold)
    assert (entities[0].offset, entities[0].length) == (0, len("john_doe"))


def test_forwarded_content_without_sender_has_no_entities() -> None:
    text, entities = telegram_html.parse(format_forward_text("Alice", "**x** _y_", include_sender=False))
    assert text == "**x** _y_"
    assert entities == []


def test_alert_contains_time_type_and_error() -> None:
    alert = format_alert(datetime(2024, 1, 1, tzinfo=timezone.utc), "health check failed", "timed_out <eof>")
    assert "2024-01-01T00:00:00+00:00" in alert
    assert "<b>Type:</b> health check failed" in alert
    assert "<b>Error:</b> timed_out &lt;eof&gt;" in alert

    text, _ = telegram_html.parse(alert)
    assert "Error: timed_out <eof>" in text
