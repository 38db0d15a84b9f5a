"""Named message filters built from criteria (core domain)."""

from __future__ import annotations

from enum import Enum
import logging
from typing import Iterable, List, Optional

from core.criteria import Criterion, build_criterion, describe, evaluate
from core.models import Message
from core.ports import AuditLogPort
from core.quotes import QuoteResolver

LOGGER = logging.getLogger(__name__)

FORWARD_MESSAGE = "message"
FORWARD_QUOTED = "quoted"


class FilterMode(str, Enum):
    ALL = "all"
    ANY = "any"


class MessageFilter:
    """A named set of criteria combined with ALL or ANY.

    An empty filter matches nothing.
    """

    def __init__(
        self,
        name: str,
        criteria: Iterable[Criterion] = (),
        mode: FilterMode = FilterMode.ALL,
        forward: str = FORWARD_MESSAGE,
        resolver: Optional[QuoteResolver] = None,
    ) -> None:
        if forward not in {FORWARD_MESSAGE, FORWARD_QUOTED}:
            raise ValueError(f"Unsupported forward option: {forward}")
        self.name = name
        self.criteria = tuple(criteria)
        self.mode = FilterMode(mode)
        self.forward = forward
        self._resolver = resolver or QuoteResolver()

    def matches(self, message: Message) -> bool:
        if not self.criteria:
            return False
        results = (evaluate(criterion, message, self._resolver) for criterion in self.criteria)
        if self.mode is FilterMode.ALL:
            return all(results)
        return any(results)

    def describe(self) -> str:
        if not self.criteria:
            return f"{self.name}: Empty filter (matches nothing)"
        operator = " AND " if self.mode is FilterMode.ALL else " OR "
        return f"{self.name}: ({operator.join(describe(criterion) for criterion in self.criteria)})"

    def record_match(self, message: Message, sink: AuditLogPort) -> None:
        """Append the message to this filter's match log. Never raises."""

        try:
            sink.append_filter_match(self.name, message)
        except Exception:
            LOGGER.exception("Failed to log match for filter %s", self.name)


def build_filters(filters_config: Iterable[dict], resolver: Optional[QuoteResolver] = None) -> List[MessageFilter]:
    """Normalize filter configs and build their criteria.

    Disabled entries are skipped. Names must be unique because they key the
    match log.
    """

    built: List[MessageFilter] = []
    seen_names: set[str] = set()
    for entry in filters_config:
        if not entry.get("enabled", True):
            continue
        name = entry.get("name")
        if not name:
            raise ValueError("Every filter needs a name")
        if name in seen_names:
            raise ValueError(f"Duplicate filter name: {name}")
        seen_names.add(name)
        try:
            mode = FilterMode(str(entry.get("mode", "all")).lower())
        except ValueError:
            raise ValueError(f"Filter {name}: mode must be 'all' or 'any'") from None
        built.append(
            MessageFilter(
                name=name,
                criteria=[build_criterion(item) for item in entry.get("criteria", [])],
                mode=mode,
                forward=entry.get("forward", FORWARD_MESSAGE),
                resolver=resolver,
            )
        )
    return built
