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
from mxclient.util.json import content_equal
from mxclient.util.stringutils import random_string

from tests import unittest


class ContentEqualTestCase(unittest.TestCase):
    def test_key_order_is_ignored(self) -> None:
        self.assertTrue(content_equal({"a": 1, "b": [1, 2]}, {"b": [1, 2], "a": 1}))

    def test_differences(self) -> None:
        self.assertFalse(content_equal({"a": 1}, {"a": 2}))
        self.assertFalse(content_equal({"a": [1, 2]}, {"a": [2, 1]}))
        self.assertFalse(content_equal({"a": 1}, {"a": 1, "b": None}))

    def test_unserialisable(self) -> None:
        self.assertFalse(content_equal({"a": object()}, {"a": object()}))


class RandomStringTestCase(unittest.TestCase):
    def test_random_string(self) -> None:
        s = random_string(10)
        self.assertEqual(len(s), 10)
        self.assertTrue(s.isalnum())
        self.assertNotEqual(s, random_string(10))
