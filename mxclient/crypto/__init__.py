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

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from mxclient.events import MatrixEvent
    from mxclient.rooms import Room


class IEncryptionBackend(Protocol):
    """The interface that an end-to-end encryption backend must implement."""

    async def encrypt_event(self, event: "MatrixEvent", room: "Room") -> None:
        """Encrypt an event for sending to a room.

        The backend hands the ciphertext back with
        `MatrixEvent.set_encrypted_payload`.
        """
        ...
