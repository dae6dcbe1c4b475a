from __future__ import annotations

"""Map HTTP status codes onto success and failure outcomes."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .exceptions import ClientError, HTTPStatusError, MalformedQuery, ServerError


class Outcome(Enum):
    SUCCESS = "success"
    MALFORMED_QUERY = "malformed_query"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"


_ERRORS: dict[Outcome, Optional[type[HTTPStatusError]]] = {
    Outcome.SUCCESS: None,
    Outcome.MALFORMED_QUERY: MalformedQuery,
    Outcome.CLIENT_ERROR: ClientError,
    Outcome.SERVER_ERROR: ServerError,
}


@dataclass(frozen=True)
class Classified:
    """A status code paired with its outcome; the body rides along as payload."""

    outcome: Outcome
    status: Optional[int]
    body: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    def error(self) -> Optional[HTTPStatusError]:
        error_cls = _ERRORS[self.outcome]
        if error_cls is None:
            return None
        return error_cls(self.body, status=self.status)

    def raise_for_outcome(self) -> "Classified":
        """Raise the error matching this outcome, or return ``self`` on success."""
        exc = self.error()
        if exc is not None:
            raise exc
        return self


def outcome_for(status: Optional[int]) -> Outcome:
    if status is None:
        return Outcome.SERVER_ERROR
    if 200 <= status < 300:
        return Outcome.SUCCESS
    if status == 400:
        return Outcome.MALFORMED_QUERY
    if 400 < status < 500:
        return Outcome.CLIENT_ERROR
    # 5xx, plus 1xx/3xx that should never reach this layer.
    return Outcome.SERVER_ERROR


def parse_decimal(text: object) -> int:
    """Lenient non-negative integer parse used by informational reads."""
    try:
        value = int(str(text).strip())
    except (TypeError, ValueError):
        return 0
    return max(value, 0)


def classify(status: Optional[int], body: str = "") -> Classified:
    return Classified(outcome_for(status), status, body or "")


__all__ = ["Outcome", "Classified", "classify", "outcome_for", "parse_decimal"]
