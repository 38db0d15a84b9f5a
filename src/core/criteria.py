"""Message criteria (core domain).

The set of criteria is closed: `evaluate` and `describe` dispatch over every
variant and reject anything else, so adding a criterion means touching both.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable, Optional, Tuple, Union

from core.models import ContentKind, Message, message_text
from core.quotes import QuoteResolver, is_reply

_DEFAULT_RESOLVER = QuoteResolver()


@dataclass(frozen=True)
class SenderCriteria:
    """Message comes from a specific contact or group JID."""

    sender_id: str

    def matches(self, message: Message, resolver: Optional[QuoteResolver] = None) -> bool:
        return evaluate(self, message, resolver)

    def describe(self) -> str:
        return describe(self)


@dataclass(frozen=True)
class TextContentCriteria:
    """Message text contains a substring."""

    search_text: str
    case_sensitive: bool = False

    def matches(self, message: Message, resolver: Optional[QuoteResolver] = None) -> bool:
        return evaluate(self, message, resolver)

    def describe(self) -> str:
        return describe(self)


@dataclass(frozen=True)
class RegexCriteria:
    """Message text contains a match for a compiled pattern."""

    pattern: "re.Pattern[str]"

    def matches(self, message: Message, resolver: Optional[QuoteResolver] = None) -> bool:
        return evaluate(self, message, resolver)

    def describe(self) -> str:
        return describe(self)


@dataclass(frozen=True)
class MediaTypeCriteria:
    """Message content is one of the given kinds."""

    media_types: Tuple[ContentKind, ...]

    def matches(self, message: Message, resolver: Optional[QuoteResolver] = None) -> bool:
        return evaluate(self, message, resolver)

    def describe(self) -> str:
        return describe(self)


@dataclass(frozen=True)
class NotCriteria:
    criteria: "Criterion"

    def matches(self, message: Message, resolver: Optional[QuoteResolver] = None) -> bool:
        return evaluate(self, message, resolver)

    def describe(self) -> str:
        return describe(self)


@dataclass(frozen=True)
class ReplyMessageCriteria:
    """Message is a reply, optionally checking the reply and the quoted message."""

    main: Optional["Criterion"] = None
    replied: Optional["Criterion"] = None

    def matches(self, message: Message, resolver: Optional[QuoteResolver] = None) -> bool:
        return evaluate(self, message, resolver)

    def describe(self) -> str:
        return describe(self)


Criterion = Union[
    SenderCriteria,
    TextContentCriteria,
    RegexCriteria,
    MediaTypeCriteria,
    NotCriteria,
    ReplyMessageCriteria,
]


def evaluate(criterion: Criterion, message: Message, resolver: Optional[QuoteResolver] = None) -> bool:
    """Return True when the message satisfies the criterion."""

    resolver = resolver or _DEFAULT_RESOLVER

    if isinstance(criterion, SenderCriteria):
        return message.key.remote_jid == criterion.sender_id

    if isinstance(criterion, TextContentCriteria):
        text = message_text(message)
        if criterion.case_sensitive:
            return criterion.search_text in text
        return criterion.search_text.lower() in text.lower()

    if isinstance(criterion, RegexCriteria):
        return criterion.pattern.search(message_text(message)) is not None

    if isinstance(criterion, MediaTypeCriteria):
        if message.content is None:
            return False
        return message.content.kind in criterion.media_types

    if isinstance(criterion, NotCriteria):
        return not evaluate(criterion.criteria, message, resolver)

    if isinstance(criterion, ReplyMessageCriteria):
        if not is_reply(message):
            return False
        if criterion.main is not None and not evaluate(criterion.main, message, resolver):
            return False
        if criterion.replied is None:
            return True
        quoted = resolver.resolve(message)
        if quoted is None:
            return False
        return evaluate(criterion.replied, quoted, resolver)

    raise TypeError(f"Unsupported criterion: {criterion!r}")


def describe(criterion: Criterion) -> str:
    """Return a stable, human-readable description for audit logs."""

    if isinstance(criterion, SenderCriteria):
        return f"From: {criterion.sender_id}"

    if isinstance(criterion, TextContentCriteria):
        suffix = " (case-sensitive)" if criterion.case_sensitive else ""
        return f'Contains text: "{criterion.search_text}"{suffix}'

    if isinstance(criterion, RegexCriteria):
        return f"Matches pattern: /{criterion.pattern.pattern}/"

    if isinstance(criterion, MediaTypeCriteria):
        return f"Contains media type: {' or '.join(kind.value for kind in criterion.media_types)}"

    if isinstance(criterion, NotCriteria):
        return f"NOT ({describe(criterion.criteria)})"

    if isinstance(criterion, ReplyMessageCriteria):
        description = "Is a reply"
        if criterion.main is not None:
            description += f" where main message matches: {describe(criterion.main)}"
        if criterion.replied is not None:
            description += f" to a message matching: {describe(criterion.replied)}"
        else:
            description += " to any message"
        return description

    raise TypeError(f"Unsupported criterion: {criterion!r}")


def _media_kinds(values: Iterable[str]) -> Tuple[ContentKind, ...]:
    kinds = []
    for value in values:
        try:
            kinds.append(ContentKind(str(value).lower()))
        except ValueError:
            raise ValueError(f"Unknown media type: {value}") from None
    if not kinds:
        raise ValueError("media criterion needs at least one media type")
    return tuple(kinds)


def _optional_child(config: dict, key: str) -> Optional[Criterion]:
    child = config.get(key)
    if child is None:
        return None
    return build_criterion(child)


def build_criterion(config: dict) -> Criterion:
    """Build a criterion from its config.json representation.

    Examples:
    - {"type": "sender", "id": "1203630@g.us"}
    - {"type": "text", "text": "exam", "case_sensitive": false}
    - {"type": "regex", "pattern": "#[A-Z]{3}\\s?\\d{3}", "ignore_case": false}
    - {"type": "media", "media_types": ["image", "video"]}
    - {"type": "not", "criteria": {...}}
    - {"type": "reply", "main": {...}, "replied": {...}}
    """

    kind = str(config.get("type", "")).lower()
    try:
        if kind == "sender":
            return SenderCriteria(sender_id=config["id"])
        if kind == "text":
            return TextContentCriteria(
                search_text=config["text"],
                case_sensitive=bool(config.get("case_sensitive", False)),
            )
        if kind == "regex":
            flags = re.IGNORECASE if config.get("ignore_case", False) else 0
            return RegexCriteria(pattern=re.compile(config["pattern"], flags))
        if kind == "media":
            return MediaTypeCriteria(media_types=_media_kinds(config["media_types"]))
        if kind == "not":
            return NotCriteria(criteria=build_criterion(config["criteria"]))
        if kind == "reply":
            return ReplyMessageCriteria(
                main=_optional_child(config, "main"),
                replied=_optional_child(config, "replied"),
            )
    except KeyError as exc:
        raise ValueError(f"Criterion '{kind}' is missing field {exc}") from exc
    raise ValueError(f"Unsupported criterion type: {config.get('type')!r}")
