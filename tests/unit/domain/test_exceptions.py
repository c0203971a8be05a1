"""Tests for domain exceptions."""

import httpx
import pytest

from authsession.domain.exceptions import TokenRefreshException


def status_error(status: int, **kwargs: object) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://auth.example.com/refresh")
    response = httpx.Response(status, request=request, **kwargs)  # type: ignore[arg-type]
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class TestTokenRefreshException:
    """Test TokenRefreshException."""

    @pytest.mark.parametrize(
        ("error_code", "http_status", "expected"),
        [
            ("invalid_grant", None, True),
            (None, 400, True),
            (None, 401, True),
            (None, 403, True),
            (None, 503, False),
            (None, None, False),
        ],
    )
    def test_requires_reauth(
        self, error_code: str | None, http_status: int | None, expected: bool
    ) -> None:
        error = TokenRefreshException(error_code=error_code, http_status=http_status)
        assert error.requires_reauth is expected

    def test_from_error_reads_status_and_oauth_error(self) -> None:
        original = status_error(400, json={"error": "invalid_grant"})

        wrapped = TokenRefreshException.from_error(original)

        assert wrapped.http_status == 400
        assert wrapped.error_code == "invalid_grant"
        assert wrapped.requires_reauth is True
        assert wrapped.__cause__ is original

    def test_from_error_tolerates_non_json_body(self) -> None:
        wrapped = TokenRefreshException.from_error(status_error(502, text="Bad Gateway"))

        assert wrapped.http_status == 502
        assert wrapped.error_code is None
        assert wrapped.requires_reauth is False

    def test_from_error_without_response(self) -> None:
        wrapped = TokenRefreshException.from_error(RuntimeError())

        assert wrapped.http_status is None
        assert wrapped.message == "RuntimeError"

    def test_from_error_keeps_existing_instance(self) -> None:
        original = TokenRefreshException("no payload")
        assert TokenRefreshException.from_error(original) is original
