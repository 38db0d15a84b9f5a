"""Shared Telegram text formatting helpers.

Keeping formatting here prevents drift between the forwarder and the
escalation alert. Output is Telegram HTML, sent with parse_mode="html", so
WhatsApp text is escaped and reaches Telegram exactly as it was written.
"""

from __future__ import annotations

from datetime import datetime
import html
from typing import Optional

UNSUPPORTED_PLACEHOLDER = "[Sent a message that cannot be displayed]"


def format_forward_text(push_name: Optional[str], text: Optional[str], include_sender: bool) -> str:
    """Return forwarded content, with a bold "Name:" header when enabled."""

    body = html.escape(text or "", quote=False)
    if not include_sender:
        return body
    name = html.escape(push_name or "Unknown", quote=False)
    return f"<b>{name}</b>:\n\n{body}"


def format_alert(timestamp: datetime, classification: str, message: str) -> str:
    """Create the critical error alert sent to the admin chat."""

    lines = [
        "🚨 <b>CRITICAL ERROR ALERT</b> 🚨",
        "",
        f"<b>Time:</b> {html.escape(timestamp.isoformat())}",
        f"<b>Type:</b> {html.escape(classification)}",
        f"<b>Error:</b> {html.escape(message)}",
        "",
        "The bridge will shut down now.",
    ]
    return "\n".join(lines)
