"""Redaction of sensitive keys before content is dumped as text."""

from __future__ import annotations

from typing import TYPE_CHECKING

from reportexport.typing.models import RedactionPolicy

if TYPE_CHECKING:
    from reportexport.settings import Settings
    from reportexport.typing.models import ContentValue

_DEFAULT_POLICY = RedactionPolicy()


def policy_from_settings(settings: Settings) -> RedactionPolicy:
    """Build the redaction policy configured for a run.

    Args:
        settings (Settings): Runtime settings.

    Returns:
        RedactionPolicy: Policy built from `REDACTED_KEYS` and friends.
    """
    return RedactionPolicy(
        matchers=tuple(settings.redacted_keys),
        max_depth=settings.redaction_max_depth,
        placeholder=settings.redaction_placeholder,
    )


def should_redact_key(key: str, policy: RedactionPolicy = _DEFAULT_POLICY) -> bool:
    """Return whether a key name contains any policy matcher, ignoring case.

    Args:
        key (str): Mapping key.
        policy (RedactionPolicy): Redaction policy.

    Returns:
        bool: True when the key must be redacted.
    """
    lowered = key.lower()
    return any(matcher.lower() in lowered for matcher in policy.matchers)


def _is_empty(value: ContentValue) -> bool:
    # Emptiness is by size, not truthiness: 0 and False are values, [] and {} are empty.
    if value is None:
        return True
    if isinstance(value, str | list | dict):
        return len(value) == 0
    return False


def redact_record(value: ContentValue, policy: RedactionPolicy = _DEFAULT_POLICY) -> ContentValue:
    """Return a copy of `value` with every matching key elided.

    A matching key whose value is non-empty is kept with the policy
    placeholder; a matching key whose value is empty (None, empty string,
    list or mapping) is dropped. Lists are filtered element-wise. Subtrees
    nested deeper than `policy.max_depth` are returned as-is.

    Args:
        value (ContentValue): Content to filter.
        policy (RedactionPolicy): Redaction policy.

    Returns:
        ContentValue: Filtered content; the input is never mutated.
    """
    return _redact(value, policy, depth=0)


def _redact(value: ContentValue, policy: RedactionPolicy, *, depth: int) -> ContentValue:
    if depth > policy.max_depth:
        return value

    match value:
        case dict():
            filtered: dict[str, ContentValue] = {}
            for key, item in value.items():
                if should_redact_key(key, policy):
                    if not _is_empty(item):
                        filtered[key] = policy.placeholder
                    continue
                filtered[key] = _redact(item, policy, depth=depth + 1)
            return filtered
        case list():
            return [_redact(item, policy, depth=depth + 1) for item in value]
        case _:
            return value
