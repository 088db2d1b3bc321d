from __future__ import annotations

import copy

from reportexport.redaction import policy_from_settings, redact_record, should_redact_key
from reportexport.settings import Settings
from reportexport.typing.models import REDACTION_PLACEHOLDER, RedactionPolicy


def test_should_redact_key_matches_substrings_ignoring_case() -> None:
    assert should_redact_key("heroImage")
    assert should_redact_key("BACKGROUNDIMAGEURL")
    assert should_redact_key("partnerLogoUrl")
    assert not should_redact_key("title")


def test_redact_record_replaces_non_empty_and_drops_empty_matches() -> None:
    record = {"hero": {"heroImage": "https://cdn.test/a.png", "title": "Hi"}, "footer": {"heroImage": ""}}

    result = redact_record(record)

    assert result == {"hero": {"heroImage": REDACTION_PLACEHOLDER, "title": "Hi"}, "footer": {}}


def test_redact_record_treats_zero_and_false_as_values() -> None:
    policy = RedactionPolicy(matchers=("secret",))

    result = redact_record({"secretCount": 0, "secretFlag": False, "secretList": []}, policy)

    assert result == {"secretCount": REDACTION_PLACEHOLDER, "secretFlag": REDACTION_PLACEHOLDER}


def test_redact_record_filters_lists_elementwise() -> None:
    record = {"partners": [{"name": "A", "logo": "a.png"}, {"name": "B", "logo": None}, "plain"]}

    result = redact_record(record)

    assert result == {"partners": [{"name": "A", "logo": REDACTION_PLACEHOLDER}, {"name": "B"}, "plain"]}


def test_redact_record_does_not_mutate_input() -> None:
    record = {"hero": {"heroImage": "x", "items": [{"iconUrl": "y"}]}}
    snapshot = copy.deepcopy(record)

    redact_record(record)

    assert record == snapshot


def test_redact_record_is_idempotent() -> None:
    record = {"a": {"imageUrl": "x", "b": [{"videoUrl": "", "c": 1}], "title": "t"}}

    once = redact_record(record)

    assert redact_record(once) == once


def test_redact_record_leaves_subtrees_beyond_depth_limit() -> None:
    policy = RedactionPolicy(max_depth=1)
    record = {"level0": {"imageUrl": "kept-out", "level1": {"imageUrl": "deep"}}}

    result = redact_record(record, policy)

    assert result == {"level0": {"imageUrl": REDACTION_PLACEHOLDER, "level1": {"imageUrl": "deep"}}}


def test_redact_record_passes_scalars_through() -> None:
    assert redact_record("text") == "text"
    assert redact_record(None) is None
    assert redact_record(3.5) == 3.5


def test_policy_from_settings_uses_configured_keys() -> None:
    settings = Settings(REDACTED_KEYS=["token"], REDACTION_MAX_DEPTH=3, REDACTION_PLACEHOLDER="***")

    policy = policy_from_settings(settings)

    assert policy.matchers == ("token",)
    assert policy.max_depth == 3
    assert redact_record({"apiToken": "abc"}, policy) == {"apiToken": "***"}
