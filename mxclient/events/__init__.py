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

import enum
from typing import Generic, TypeVar, overload

import attr
from typing_extensions import Literal

from mxclient.api.constants import (
    EventContentFields,
    EventTypes,
    EventUnsignedContentFields,
    RelationTypes,
)
from mxclient.types import JsonDict

T = TypeVar("T")


class EventStatus(str, enum.Enum):
    """The send status of a locally originated event.

    Events received from the homeserver have no status at all (`None`).
    """

    # The event is waiting for the connection to come back.
    QUEUED = "queued"
    # The event is being handed to the encryption backend.
    ENCRYPTING = "encrypting"
    # The event is being sent to the homeserver.
    SENDING = "sending"
    # The homeserver accepted the event and gave us its event ID.
    SENT = "sent"
    # The send failed. The event may be cancelled (or sent again by the caller).
    NOT_SENT = "not_sent"
    # The send was cancelled by the caller.
    CANCELLED = "cancelled"


@attr.s(slots=True, frozen=True, auto_attribs=True)
class PushActions:
    """The push actions the homeserver computed for an event."""

    notify: bool
    tweaks: JsonDict = attr.Factory(dict)

    @property
    def highlight(self) -> bool:
        return bool(self.tweaks.get("highlight", False))

    @classmethod
    def from_actions(cls, actions: list) -> "PushActions":
        """Parse a list of push rule actions, as returned by `/notifications`.

        Unknown actions are ignored.
        """
        notify = False
        tweaks: JsonDict = {}
        for action in actions:
            if action == "notify":
                notify = True
            elif isinstance(action, dict) and isinstance(action.get("set_tweak"), str):
                tweaks[action["set_tweak"]] = action.get("value", True)
        return cls(notify=notify, tweaks=tweaks)


class DictProperty(Generic[T]):
    """An object property which delegates to the `_dict` within its parent object."""

    __slots__ = ["key"]

    def __init__(self, key: str):
        self.key = key

    @overload
    def __get__(
        self, instance: Literal[None], owner: type | None = None
    ) -> "DictProperty": ...

    @overload
    def __get__(self, instance: "MatrixEvent", owner: type | None = None) -> T: ...

    def __get__(
        self, instance: "MatrixEvent | None", owner: type | None = None
    ) -> "T | DictProperty":
        # if the property is accessed as a class property rather than an instance
        # property, return the property itself rather than the value
        if instance is None:
            return self
        try:
            return instance._dict[self.key]
        except KeyError as e1:
            # We want this to look like a regular attribute error (mostly so that
            # hasattr() works correctly), so we convert the KeyError into an
            # AttributeError.
            raise AttributeError(
                "'%s' has no '%s' property" % (type(instance), self.key)
            ) from e1.__context__

    def __set__(self, instance: "MatrixEvent", v: T) -> None:
        instance._dict[self.key] = v


class DefaultDictProperty(DictProperty, Generic[T]):
    """An extension of DictProperty which provides a default if the property is
    not present in the parent's _dict.

    Note that this means that hasattr() on the property always returns True.
    """

    __slots__ = ["default"]

    def __init__(self, key: str, default: T):
        super().__init__(key)
        self.default = default

    def __get__(
        self, instance: "MatrixEvent | None", owner: type | None = None
    ) -> "T | DefaultDictProperty":
        if instance is None:
            return self
        return instance._dict.get(self.key, self.default)


class MatrixEvent:
    """A room event, either received from the homeserver or originated locally.

    Locally originated events (local echoes) carry a transaction ID and a send
    `status`. When the homeserver's copy of the event comes down sync, the local
    echo is updated in place with `handle_remote_echo` so that anything holding
    a reference to it sees the confirmed event.

    Args:
        event_dict: the event as it appears on the wire (or as we built it).
        txn_id: the transaction ID, for locally originated events.
        status: the send status, for locally originated events.
    """

    event_id: DictProperty[str] = DictProperty("event_id")
    type: DictProperty[str] = DictProperty("type")
    room_id: DictProperty[str] = DictProperty("room_id")
    sender: DictProperty[str] = DictProperty("sender")
    state_key: DictProperty[str] = DictProperty("state_key")
    origin_server_ts: DefaultDictProperty[int] = DefaultDictProperty(
        "origin_server_ts", 0
    )

    def __init__(
        self,
        event_dict: JsonDict,
        txn_id: str | None = None,
        status: EventStatus | None = None,
    ):
        self._dict = dict(event_dict)
        self._dict.setdefault("content", {})
        self._dict.setdefault("unsigned", {})

        self.txn_id = txn_id
        self.status = status

        # The error which made the last send attempt fail, if any.
        self.error: Exception | None = None

        # The push actions computed by the homeserver, if we've been told them.
        self.push_actions: PushActions | None = None

        # The encrypted form of the event, once the encryption backend has run.
        self._encrypted: tuple[str, JsonDict] | None = None

    @property
    def content(self) -> JsonDict:
        return self._dict["content"]

    @property
    def unsigned(self) -> JsonDict:
        return self._dict["unsigned"]

    def get_dict(self) -> JsonDict:
        return dict(self._dict)

    def is_state(self) -> bool:
        return "state_key" in self._dict

    def is_redaction(self) -> bool:
        return self.type == EventTypes.Redaction

    def get_state_key(self) -> str | None:
        return self._dict.get("state_key")

    @property
    def redacts(self) -> str | None:
        """The event this redaction targets, whichever room version it uses."""
        redacts = self.content.get("redacts", self._dict.get("redacts"))
        return redacts if isinstance(redacts, str) else None

    @property
    def relation(self) -> JsonDict | None:
        relation = self.content.get(EventContentFields.RELATES_TO)
        return relation if isinstance(relation, dict) else None

    @property
    def relation_type(self) -> str | None:
        relation = self.relation
        if relation is None:
            return None
        rel_type = relation.get("rel_type")
        return rel_type if isinstance(rel_type, str) else None

    def is_relation_to_thread(self) -> bool:
        return self.relation_type == RelationTypes.THREAD

    def is_thread_root(self) -> bool:
        """Whether the homeserver bundled a thread summary with this event."""
        relations = self.unsigned.get(EventUnsignedContentFields.RELATIONS)
        return isinstance(relations, dict) and isinstance(
            relations.get(RelationTypes.THREAD), dict
        )

    @property
    def thread_root_id(self) -> str | None:
        """The ID of the thread this event belongs to, if any.

        A thread root belongs to its own thread.
        """
        if self.is_relation_to_thread():
            assert self.relation is not None
            root = self.relation.get("event_id")
            return root if isinstance(root, str) else None
        if self.is_thread_root():
            return self.event_id
        return None

    @property
    def unsigned_txn_id(self) -> str | None:
        """The transaction ID the homeserver echoed back to us, if any."""
        return self.unsigned.get(EventUnsignedContentFields.TRANSACTION_ID)

    def set_encrypted_payload(self, event_type: str, content: JsonDict) -> None:
        """Called by the encryption backend with the ciphertext to send."""
        self._encrypted = (event_type, content)

    def is_encrypted(self) -> bool:
        return self._encrypted is not None

    @property
    def wire_type(self) -> str:
        """The event type to put on the wire: the encrypted one if there is one."""
        if self._encrypted is not None:
            return self._encrypted[0]
        return self.type

    @property
    def wire_content(self) -> JsonDict:
        if self._encrypted is not None:
            return self._encrypted[1]
        return self.content

    def replace_local_event_id(self, event_id: str) -> None:
        self._dict["event_id"] = event_id

    def handle_remote_echo(self, event: "MatrixEvent") -> None:
        """Replace the contents of a local echo with the homeserver's copy."""
        self._dict = dict(event._dict)
        self._encrypted = event._encrypted
        self.status = None
        self.error = None

    def __repr__(self) -> str:
        return "<%s event_id=%r, type=%r, status=%s>" % (
            self.__class__.__name__,
            self._dict.get("event_id"),
            self._dict.get("type"),
            self.status.value if self.status else None,
        )


def make_event(
    event: "JsonDict | MatrixEvent", room_id: str | None = None
) -> MatrixEvent:
    """Wrap a raw event dict from the homeserver, filling in its room ID.

    `/sync` omits the room ID from the events it nests under a room.
    """
    if isinstance(event, MatrixEvent):
        return event
    if room_id is not None and "room_id" not in event:
        event = {**event, "room_id": room_id}
    return MatrixEvent(event)
