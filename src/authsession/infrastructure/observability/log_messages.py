"""Structured log message templates for session lifecycle logging.

Hey future me - every non-trivial session log line goes through here so failures
read the same everywhere:

    🔴 Sign-In Failed
    ├─ User: alice
    ├─ Reason: authorize callback returned no payload
    └─ 💡 Check the authorize callback - it must return a TokenPayload

Principles:
1. **Icon First** - 🔴 error, ⚠️ warning, ✅ success, 🔑 auth state change
2. **What happened** - short title
3. **Context** - subject, storage key, status codes
4. **Hint** - what to look at next (optional)

Usage:
    from authsession.infrastructure.observability.log_messages import LogMessages

    logger.error(LogMessages.sign_in_failed(subject="alice", error=str(e)))
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class LogTemplate:
    """A log message with icon, title, tree-formatted fields and optional hint.

    Field values are rendered as-is. Error text often contains braces (JSON,
    pydantic errors) so values are never run through str.format().
    """

    icon: str
    title: str
    fields: dict[str, str]
    hint: str | None = None

    def render(self) -> str:
        """Render the multi-line message."""
        lines = [f"{self.icon} {self.title}"]

        field_items = list(self.fields.items())
        for i, (key, value) in enumerate(field_items):
            # Last field uses └─ unless a hint follows
            prefix = "└─" if i == len(field_items) - 1 and not self.hint else "├─"
            lines.append(f"{prefix} {key}: {value}")

        if self.hint:
            lines.append(f"└─ 💡 {self.hint}")

        return "\n".join(lines)


class LogMessages:
    """Collection of standardized session log messages.

    Template categories:
    - Sign-in / sign-out
    - Token persistence
    - Token refresh
    - Worker lifecycle
    - Configuration
    """

    # === Sign-in / Sign-out ===

    @staticmethod
    def signed_in(subject: str, storage_key: str) -> str:
        """Format a successful sign-in message."""
        return LogTemplate(
            icon="🔑",
            title="User Signed In",
            fields={"User": subject, "Storage Key": storage_key},
        ).render()

    @staticmethod
    def sign_in_failed(
        subject: str | None,
        error: str,
        hint: str | None = None,
    ) -> str:
        """Format a sign-in failure message.

        Args:
            subject: User subject (None if the user had none)
            error: Error description
            hint: Custom troubleshooting hint
        """
        return LogTemplate(
            icon="🔴",
            title="Sign-In Failed",
            fields={"User": subject or "<missing sub>", "Reason": error},
            hint=hint or "Check the authorize callback - it must return a TokenPayload",
        ).render()

    @staticmethod
    def signed_out(storage_key: str, detached: int) -> str:
        """Format a sign-out message."""
        return LogTemplate(
            icon="🔑",
            title="User Signed Out",
            fields={"Storage Key": storage_key, "Middleware Detached": str(detached)},
        ).render()

    # === Token persistence ===

    @staticmethod
    def payload_updated(storage_key: str, expires_in: Any = None) -> str:
        """Format a token payload update message."""
        fields = {"Storage Key": storage_key}
        if expires_in is not None:
            fields["Expires"] = str(expires_in)
        return LogTemplate(
            icon="✅",
            title="Token Payload Updated",
            fields=fields,
        ).render()

    @staticmethod
    def storage_failed(
        operation: str,
        storage_key: str,
        error: str,
        hint: str | None = None,
    ) -> str:
        """Format a storage failure message.

        Args:
            operation: "read", "write" or "remove"
            storage_key: Effective storage key
            error: Error description
            hint: Custom troubleshooting hint
        """
        return LogTemplate(
            icon="🔴",
            title=f"Session Storage {operation.capitalize()} Failed",
            fields={"Storage Key": storage_key, "Reason": error},
            hint=hint,
        ).render()

    @staticmethod
    def stored_payload_invalid(storage_key: str, error: str) -> str:
        """Format a message for a stored value that isn't a token payload."""
        return LogTemplate(
            icon="⚠️",
            title="Stored Session Discarded",
            fields={"Storage Key": storage_key, "Reason": error},
            hint="The stored value was removed - the user has to sign in again",
        ).render()

    # === Token refresh ===

    @staticmethod
    def token_expired(expires_in: Any, now: float) -> str:
        """Format an access token expiry message."""
        return LogTemplate(
            icon="⚠️",
            title="Access Token Expired",
            fields={"Expired": str(expires_in), "Now": f"{now:.0f}"},
        ).render()

    @staticmethod
    def token_refresh_failed(
        error: str,
        detached: int,
        http_status: int | None = None,
        requires_reauth: bool = True,
        hint: str | None = None,
    ) -> str:
        """Format a refresh failure (forced-expiry teardown) message.

        Args:
            error: Error description
            detached: Number of middleware handles detached by the teardown
            http_status: Status of the failed refresh response, if there was one
            requires_reauth: Whether the server rejected the refresh token itself
            hint: Custom troubleshooting hint
        """
        fields = {"Reason": error}
        if http_status is not None:
            fields["HTTP Status"] = str(http_status)
        fields["Session"] = "cleared"
        fields["Middleware Detached"] = str(detached)
        fields["Re-auth Required"] = "yes" if requires_reauth else "no"

        if hint is None:
            hint = (
                "The refresh token was rejected - the user has to sign in again"
                if requires_reauth
                else "Refresh backend unreachable or failing - check it, then sign in again"
            )
        return LogTemplate(
            icon="🔴",
            title="Token Refresh Failed",
            fields=fields,
            hint=hint,
        ).render()

    # === Worker Lifecycle ===

    @staticmethod
    def worker_started(worker: str, interval: int | None = None) -> str:
        """Format a worker start message."""
        fields: dict[str, str] = {}
        if interval:
            fields["Interval"] = f"{interval}s"
        return LogTemplate(icon="✅", title=f"{worker} Started", fields=fields).render()

    @staticmethod
    def worker_failed(worker: str, error: str, will_retry: bool = True) -> str:
        """Format a worker failure message."""
        status = "Will retry" if will_retry else "Stopped"
        return LogTemplate(
            icon="❌",
            title=f"{worker} Failed",
            fields={"Reason": error, "Status": status},
        ).render()

    # === Configuration ===

    @staticmethod
    def config_invalid(setting: str, value: Any, expected: str) -> str:
        """Format an invalid configuration message."""
        return LogTemplate(
            icon="⚙️",
            title="Invalid Configuration",
            fields={"Setting": setting, "Value": repr(value), "Expected": expected},
            hint="Fix the AUTHSESSION_* environment variable or the .env file",
        ).render()
