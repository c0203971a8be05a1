"""Tests for domain entities."""

import json

import pytest
from pydantic import ValidationError

from authsession.domain.entities import SessionEvent, TokenPayload, user_subject


class TestTokenPayload:
    """Test TokenPayload."""

    def test_accepts_field_names_and_aliases(self) -> None:
        by_name = TokenPayload(access_token="a", refresh_token="b")
        by_alias = TokenPayload.model_validate({"accessToken": "a", "refreshToken": "b"})
        assert by_name == by_alias

    def test_tokens_are_frozen(self) -> None:
        payload = TokenPayload(access_token="a", refresh_token="b")
        with pytest.raises(ValidationError):
            payload.access_token = "other"  # type: ignore[misc]
        with pytest.raises(ValidationError):
            payload.refresh_token = "other"  # type: ignore[misc]

    def test_to_json_uses_camel_case_and_omits_missing_expiry(self) -> None:
        payload = TokenPayload(access_token="a", refresh_token="b")
        assert json.loads(payload.to_json()) == {"accessToken": "a", "refreshToken": "b"}

    def test_to_json_includes_expiry(self) -> None:
        payload = TokenPayload(access_token="a", refresh_token="b", expires_in=1700000000)
        assert json.loads(payload.to_json())["expiresIn"] == 1700000000

    def test_from_json_rejects_garbage(self) -> None:
        with pytest.raises(ValidationError):
            TokenPayload.from_json('{"accessToken": "a"}')

    def test_fill_expiry_is_one_shot(self) -> None:
        payload = TokenPayload(access_token="a", refresh_token="b")

        assert payload.fill_expiry(100) is True
        assert payload.fill_expiry(200) is False
        assert payload.expires_in == 100

    def test_fill_expiry_ignores_missing_claim(self) -> None:
        payload = TokenPayload(access_token="a", refresh_token="b")
        assert payload.fill_expiry(None) is False
        assert payload.expires_in is None

    @pytest.mark.parametrize(
        ("expires_in", "now", "expected"),
        [
            (None, 10**12, False),
            (100, 99, False),
            (100, 100, False),
            (100, 101, True),
        ],
    )
    def test_is_expired(self, expires_in: int | None, now: float, expected: bool) -> None:
        payload = TokenPayload(access_token="a", refresh_token="b", expires_in=expires_in)
        assert payload.is_expired(now) is expected


def test_session_event_values() -> None:
    assert {event.value for event in SessionEvent} == {"SIGNIN", "SIGNOUT", "SETUSER"}


@pytest.mark.parametrize(
    ("user", "expected"),
    [
        ({"sub": "u1"}, "u1"),
        ({"sub": "u1", "email": "x@example.com"}, "u1"),
        ({"sub": ""}, None),
        ({"sub": 42}, None),
        ({}, None),
        (None, None),
    ],
)
def test_user_subject(user: object, expected: str | None) -> None:
    assert user_subject(user) == expected
