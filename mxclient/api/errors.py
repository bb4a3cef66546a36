#
# This file is licensed under the Affero General Public License (AGPL) version 3.
#
# Copyright (C) 2026 Element Creations Ltd
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# See the GNU Affero General Public License for more details:
# <https://www.gnu.org/licenses/agpl-3.0.html>.
#
#

"""Contains exceptions and error codes."""

import logging
from enum import Enum
from http import HTTPStatus
from typing import Any

from mxclient.types import JsonDict

logger = logging.getLogger(__name__)


class Codes(str, Enum):
    """
    All known error codes, as an enum of strings.
    """

    UNKNOWN = "M_UNKNOWN"
    UNRECOGNIZED = "M_UNRECOGNIZED"
    NOT_FOUND = "M_NOT_FOUND"
    FORBIDDEN = "M_FORBIDDEN"
    UNKNOWN_TOKEN = "M_UNKNOWN_TOKEN"
    MISSING_TOKEN = "M_MISSING_TOKEN"
    LIMIT_EXCEEDED = "M_LIMIT_EXCEEDED"
    GUEST_ACCESS_FORBIDDEN = "M_GUEST_ACCESS_FORBIDDEN"
    BAD_JSON = "M_BAD_JSON"


class CodeMessageException(RuntimeError):
    """An exception with integer code, a message string attributes and optional headers.

    Attributes:
        code: HTTP error code
        msg: string describing the error
    """

    def __init__(self, code: int | HTTPStatus, msg: str):
        super().__init__("%d: %s" % (code, msg))

        # Some calls to this method pass instances of http.HTTPStatus for `code`.
        # While HTTPStatus is a subclass of int, it has magic __str__ methods
        # which emit `HTTPStatus.FORBIDDEN` when converted to a str, instead of `403`.
        # This causes inconsistency in our log lines.
        #
        # To eliminate this behaviour, we convert them to their integer equivalents here.
        self.code = int(code)
        self.msg = msg


class MatrixError(CodeMessageException):
    """An error returned by the homeserver, carrying a Matrix `errcode`.

    Args:
        code: The HTTP status code of the response.
        msg: The human-readable error message from the response.
        errcode: The Matrix error code, e.g. `M_FORBIDDEN`.
        data: The full decoded error body, if any.
    """

    def __init__(
        self,
        code: int | HTTPStatus,
        msg: str,
        errcode: str = Codes.UNKNOWN,
        data: JsonDict | None = None,
    ):
        super().__init__(code, msg)
        self.errcode = errcode
        self.data = data or {}

    @classmethod
    def from_response(cls, code: int, body: Any) -> "MatrixError":
        """Build the right error class for a decoded error response body."""
        if not isinstance(body, dict):
            return cls(code, str(body))

        errcode = body.get("errcode", Codes.UNKNOWN)
        msg = body.get("error", "")
        if code == HTTPStatus.TOO_MANY_REQUESTS or errcode == Codes.LIMIT_EXCEEDED:
            return LimitExceededError(
                code, msg, errcode, body, retry_after_ms=body.get("retry_after_ms")
            )
        return cls(code, msg, errcode, body)


class LimitExceededError(MatrixError):
    """A client has sent too many requests and is being throttled."""

    def __init__(
        self,
        code: int = 429,
        msg: str = "Too Many Requests",
        errcode: str = Codes.LIMIT_EXCEEDED,
        data: JsonDict | None = None,
        retry_after_ms: int | None = None,
    ):
        super().__init__(code, msg, errcode, data)
        self.retry_after_ms = retry_after_ms


class NetworkError(Exception):
    """The request never produced an HTTP response (DNS, TCP, TLS failures...)."""


class RequestTimedOutError(NetworkError):
    """The request did not complete within its client-side time bound."""

    def __init__(self, msg: str = "Request timed out"):
        super().__init__(msg)


class UnsupportedByServerError(Exception):
    """The homeserver does not advertise a capability required by the call.

    Raised before any network attempt and never retried.
    """


class InvalidEventStateError(Exception):
    """An operation was attempted on a pending event in a status that forbids it."""


def is_rate_limit_error(e: BaseException) -> bool:
    return isinstance(e, LimitExceededError) or (
        isinstance(e, MatrixError) and e.code == HTTPStatus.TOO_MANY_REQUESTS
    )


def is_unsupported_endpoint_error(e: BaseException) -> bool:
    """Whether an error from a stable endpoint means "try the unstable one".

    A 400, 404 or 405 means the homeserver doesn't know the endpoint. A rate
    limited request is never treated as unsupported, even if its errcode claims
    the endpoint is unrecognised.
    """
    if not isinstance(e, MatrixError) or is_rate_limit_error(e):
        return False
    return e.code in (
        HTTPStatus.BAD_REQUEST,
        HTTPStatus.NOT_FOUND,
        HTTPStatus.METHOD_NOT_ALLOWED,
    )


def is_transient_error(e: BaseException) -> bool:
    """Whether a failed request may succeed if we try it again later.

    Transport failures, rate limiting, gateway and other server side errors are
    all transient. An invalidated access token is not, and nor is anything
    which isn't an HTTP error at all (that points to a bug or a bad config).
    """
    if isinstance(e, NetworkError):
        return True
    if isinstance(e, MatrixError):
        return e.errcode != Codes.UNKNOWN_TOKEN
    return False


class NotLoggedInError(Exception):
    """An operation needed a logged in user, but the client has none."""

    def __init__(self, msg: str = "Expected logged in user but found none."):
        super().__init__(msg)
