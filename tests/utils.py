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

from typing import Any

from mxclient.types import JsonDict


def default_config(user_id: str | None, **sync_options: Any) -> JsonDict:
    """Create a reasonable client config dict for the tests.

    Args:
        user_id: the user to log in as, or None for a client with no user.
        **sync_options: overrides for the `sync` section.
    """
    account: JsonDict = {
        "base_url": "https://test",
        "access_token": "secret",
        "device_id": "DEVICE",
    }
    if user_id is not None:
        account["user_id"] = user_id

    return {
        "account": account,
        "sync": {
            "poll_timeout": "30s",
            "retry_initial_delay": "10s",
            "retry_max_delay": "5m",
            "keepalive_interval": "5s",
            **sync_options,
        },
        "logging": {"level": "DEBUG"},
    }


def make_sync_response(
    next_batch: str,
    join: dict[str, JsonDict] | None = None,
    invite: dict[str, JsonDict] | None = None,
    leave: dict[str, JsonDict] | None = None,
    account_data: list[JsonDict] | None = None,
    presence: list[JsonDict] | None = None,
) -> JsonDict:
    """Build the body of a `/sync` response."""
    response: JsonDict = {"next_batch": next_batch, "rooms": {}}
    if join:
        response["rooms"]["join"] = join
    if invite:
        response["rooms"]["invite"] = invite
    if leave:
        response["rooms"]["leave"] = leave
    if account_data is not None:
        response["account_data"] = {"events": account_data}
    if presence is not None:
        response["presence"] = {"events": presence}
    return response


def make_joined_room(
    timeline: list[JsonDict] | None = None,
    state: list[JsonDict] | None = None,
    account_data: list[JsonDict] | None = None,
) -> JsonDict:
    """Build the section of a `/sync` response for one joined room."""
    return {
        "timeline": {"events": timeline or []},
        "state": {"events": state or []},
        "account_data": {"events": account_data or []},
    }


def make_state_event(
    event_type: str,
    content: JsonDict,
    state_key: str = "",
    event_id: str | None = None,
    sender: str = "@creator:test",
) -> JsonDict:
    return {
        "event_id": event_id or "$%s:%s" % (event_type, state_key),
        "type": event_type,
        "state_key": state_key,
        "sender": sender,
        "content": content,
        "origin_server_ts": 1,
    }


def make_message(
    event_id: str,
    body: str = "hello",
    sender: str = "@bob:test",
    relates_to: JsonDict | None = None,
    unsigned: JsonDict | None = None,
) -> JsonDict:
    content: JsonDict = {"msgtype": "m.text", "body": body}
    if relates_to is not None:
        content["m.relates_to"] = relates_to
    event: JsonDict = {
        "event_id": event_id,
        "type": "m.room.message",
        "sender": sender,
        "content": content,
        "origin_server_ts": 1,
    }
    if unsigned is not None:
        event["unsigned"] = unsigned
    return event
