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

"""Contains constants from the Matrix client-server API."""

import enum
from typing import Final

# Prefix of the ids we give to local echoes until the server assigns a real one.
LOCAL_ECHO_ID_PREFIX: Final = "~"

# The name under which the sync filter id is cached in the store, scoped on the
# user ID because people may log in with many accounts.
SYNC_FILTER_NAME_PREFIX: Final = "FILTER_SYNC_"


class Membership:
    """Represents the membership states of a user in a room."""

    INVITE: Final = "invite"
    JOIN: Final = "join"
    KNOCK: Final = "knock"
    LEAVE: Final = "leave"
    BAN: Final = "ban"
    LIST: Final = frozenset((INVITE, JOIN, KNOCK, LEAVE, BAN))


class EventTypes:
    Member: Final = "m.room.member"
    Create: Final = "m.room.create"
    Tombstone: Final = "m.room.tombstone"
    Redaction: Final = "m.room.redaction"
    Encrypted: Final = "m.room.encrypted"
    RoomEncryption: Final = "m.room.encryption"

    Message: Final = "m.room.message"
    Topic: Final = "m.room.topic"
    Name: Final = "m.room.name"

    Reaction: Final = "m.reaction"

    # MSC3946: dynamic room predecessors
    MSC3946_RoomPredecessor: Final = "org.matrix.msc3946.room_predecessor"


class RelationTypes:
    """The types of relations known to this client."""

    ANNOTATION: Final = "m.annotation"
    REPLACE: Final = "m.replace"
    REFERENCE: Final = "m.reference"
    THREAD: Final = "m.thread"


class EventContentFields:
    """Fields found in events' content, regardless of type."""

    RELATES_TO: Final = "m.relates_to"
    IN_REPLY_TO: Final = "m.in_reply_to"
    IS_FALLING_BACK: Final = "is_falling_back"

    # `m.room.create` predecessor block, and the room id inside it.
    ROOM_PREDECESSOR: Final = "predecessor"
    # `org.matrix.msc3946.room_predecessor` content field.
    MSC3946_PREDECESSOR_ROOM_ID: Final = "predecessor_room_id"

    TOMBSTONE_SUCCESSOR_ROOM: Final = "replacement_room"

    REDACTION_REASON: Final = "reason"


class EventUnsignedContentFields:
    """Fields found inside the 'unsigned' data on events"""

    TRANSACTION_ID: Final = "transaction_id"
    # Server-side bundled aggregations.
    RELATIONS: Final = "m.relations"


class AccountDataTypes:
    DIRECT: Final = "m.direct"
    IGNORED_USER_LIST: Final = "m.ignored_user_list"
    TAG: Final = "m.tag"
    PUSH_RULES: Final = "m.push_rules"


class Direction(enum.Enum):
    BACKWARDS = "b"
    FORWARDS = "f"


class UpdateDelayedEventAction(str, enum.Enum):
    """The actions which can be applied to a scheduled (delayed) event."""

    SEND = "send"
    RESTART = "restart"
    CANCEL = "cancel"


class UnstableFeatures:
    """Feature flags advertised in the `unstable_features` map of `/versions`."""

    # Threads
    MSC3440: Final = "org.matrix.msc3440"
    MSC3440_STABLE: Final = "org.matrix.msc3440.stable"
    # Account data deletion
    MSC3391: Final = "org.matrix.msc3391"
    # Relation based redactions
    MSC3912: Final = "org.matrix.msc3912"
    MSC3912_STABLE: Final = "org.matrix.msc3912.stable"
    # Delayed events
    MSC4140: Final = "org.matrix.msc4140"


class RedactionFields:
    """Body keys for relation based redactions (MSC3912)."""

    WITH_REL_TYPES: Final = "with_rel_types"
    UNSTABLE_WITH_REL_TYPES: Final = "org.matrix.msc3912.with_relations"


class DelayedEventQueryParams:
    """Query parameters selecting the delayed-send variant (MSC4140)."""

    DELAY: Final = "org.matrix.msc4140.delay"
    PARENT_DELAY_ID: Final = "org.matrix.msc4140.parent_delay_id"
