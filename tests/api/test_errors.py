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
from parameterized import parameterized

from mxclient.api.errors import (
    Codes,
    LimitExceededError,
    MatrixError,
    NetworkError,
    RequestTimedOutError,
    is_transient_error,
    is_unsupported_endpoint_error,
)
from mxclient.api.urls import encode_path

from tests import unittest


class MatrixErrorTestCase(unittest.TestCase):
    def test_from_response(self) -> None:
        e = MatrixError.from_response(
            403, {"errcode": "M_FORBIDDEN", "error": "You shall not pass"}
        )
        self.assertNotIsInstance(e, LimitExceededError)
        self.assertEqual(e.code, 403)
        self.assertEqual(e.errcode, Codes.FORBIDDEN)
        self.assertEqual(e.msg, "You shall not pass")

    def test_rate_limited_response(self) -> None:
        e = MatrixError.from_response(
            429,
            {"errcode": "M_LIMIT_EXCEEDED", "error": "Slow down", "retry_after_ms": 500},
        )
        assert isinstance(e, LimitExceededError)
        self.assertEqual(e.retry_after_ms, 500)

    def test_non_json_response(self) -> None:
        e = MatrixError.from_response(502, "<html>Bad gateway</html>")
        self.assertEqual(e.errcode, Codes.UNKNOWN)
        self.assertEqual(e.code, 502)


class ErrorClassificationTestCase(unittest.TestCase):
    @parameterized.expand(
        [
            (NetworkError("DNS failure"), True),
            (RequestTimedOutError(), True),
            (MatrixError(502, "Bad gateway"), True),
            (LimitExceededError(), True),
            (MatrixError(404, "Not found", Codes.NOT_FOUND), True),
            (MatrixError(401, "Bad token", Codes.UNKNOWN_TOKEN), False),
            (KeyError("next_batch"), False),
        ]
    )
    def test_is_transient_error(self, error: Exception, expected: bool) -> None:
        self.assertEqual(is_transient_error(error), expected)

    @parameterized.expand(
        [
            (MatrixError(400, "Unrecognized", Codes.UNRECOGNIZED), True),
            (MatrixError(404, "Not found"), True),
            (MatrixError(405, "Method not allowed"), True),
            (MatrixError(429, "Unrecognized", Codes.UNRECOGNIZED), False),
            (MatrixError(500, "Internal error"), False),
            (NetworkError("Timed out"), False),
        ]
    )
    def test_is_unsupported_endpoint_error(
        self, error: Exception, expected: bool
    ) -> None:
        self.assertEqual(is_unsupported_endpoint_error(error), expected)


class EncodePathTestCase(unittest.TestCase):
    def test_encode_path(self) -> None:
        self.assertEqual(
            encode_path("/rooms/%s/send/%s/%s", "!a:b", "m.room.message", "m1.1"),
            "/rooms/%21a%3Ab/send/m.room.message/m1.1",
        )
        self.assertEqual(
            encode_path("/rooms/%s/state/%s/%s", "!a:b", "m.room.name", ""),
            "/rooms/%21a%3Ab/state/m.room.name/",
        )
        self.assertEqual(encode_path("/x/%s", "a/b c"), "/x/a%2Fb%20c")
