"""Match events against the configured routing table."""

from __future__ import annotations

from typing import Iterable

from gh_forwarder.models import (
    ChatId,
    Destination,
    Event,
    EventKind,
    RoutingRule,
    UnknownEvent,
)


def rule_matches(rule: RoutingRule, event: Event) -> bool:
    if isinstance(event, UnknownEvent):
        return False
    if not rule.pattern.matches(event.repository):
        return False
    return rule.accepts(event.kind, event.key)


def match_routes(event: Event, rules: Iterable[RoutingRule]) -> list[Destination]:
    """
    Return one destination per distinct chat selected by ``rules``.

    Rules are checked in configured order and destinations keep the order in
    which their chat was first matched. A chat matched by several rules is
    listed once, carrying every rule that selected it.
    """
    if event.kind is EventKind.UNKNOWN:
        return []

    matched: dict[ChatId, list[RoutingRule]] = {}
    for rule in rules:
        if rule_matches(rule, event):
            matched.setdefault(rule.chat_id, []).append(rule)
    return [Destination(chat_id=chat_id, rules=tuple(hits)) for chat_id, hits in matched.items()]
