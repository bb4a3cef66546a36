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

"""The `/sync` loop which keeps the client's local model up to date."""

import enum
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Final, Mapping, TypeVar

from twisted.internet import defer

from mxclient.api.constants import AccountDataTypes, Membership
from mxclient.api.errors import LimitExceededError, is_transient_error
from mxclient.api.urls import CLIENT_API_PREFIX, VERSIONS_PATH
from mxclient.events import MatrixEvent, make_event
from mxclient.http import Method
from mxclient.metrics import sync_requests_counter, sync_state_transitions_counter
from mxclient.rooms import Room
from mxclient.types import JsonDict, QueryParams
from mxclient.util import log_failure
from mxclient.util.clock import DelayedCallWrapper

if TYPE_CHECKING:
    from mxclient.client import MatrixClient

logger = logging.getLogger(__name__)

R = TypeVar("R")

# How much longer than the long-poll timeout we give a `/sync` request before
# giving up on it.
SYNC_REQUEST_BUFFER_MS: Final = 80 * 1000

# The name of the signal fired on every state transition.
SYNC_STATE_SIGNAL: Final = "sync_state"


class SyncState(str, enum.Enum):
    # Not syncing: we haven't been started yet, or have been stopped.
    STOPPED = "STOPPED"
    # The first sync has completed; the local model is ready to use.
    PREPARED = "PREPARED"
    # A later sync has completed.
    SYNCING = "SYNCING"
    # A request failed; waiting to retry.
    ERROR = "ERROR"
    # A request failed again while we were already in error; waiting to retry.
    RECONNECTING = "RECONNECTING"
    # The homeserver answered a keepalive; retrying straight away.
    CATCHUP = "CATCHUP"


SyncStateListener = Callable[[SyncState, SyncState], None]

VALID_TRANSITIONS: Final[Mapping[SyncState, frozenset[SyncState]]] = {
    SyncState.STOPPED: frozenset((SyncState.PREPARED, SyncState.ERROR)),
    SyncState.PREPARED: frozenset(
        (SyncState.SYNCING, SyncState.ERROR, SyncState.STOPPED)
    ),
    SyncState.SYNCING: frozenset(
        (SyncState.SYNCING, SyncState.ERROR, SyncState.STOPPED)
    ),
    SyncState.ERROR: frozenset(
        (
            SyncState.PREPARED,
            SyncState.SYNCING,
            SyncState.RECONNECTING,
            SyncState.CATCHUP,
            SyncState.STOPPED,
        )
    ),
    SyncState.RECONNECTING: frozenset(
        (
            SyncState.PREPARED,
            SyncState.SYNCING,
            SyncState.RECONNECTING,
            SyncState.CATCHUP,
            SyncState.STOPPED,
        )
    ),
    SyncState.CATCHUP: frozenset(
        (
            SyncState.PREPARED,
            SyncState.SYNCING,
            SyncState.RECONNECTING,
            SyncState.STOPPED,
        )
    ),
}

# The states in which we know the connection to the homeserver is down.
_ERROR_STATES: Final = frozenset((SyncState.ERROR, SyncState.RECONNECTING))


class InvalidSyncStateTransition(Exception):
    pass


class SyncHandler:
    """Runs the `/sync` loop.

    Before the first sync, non-guest clients fetch their push rules and make
    sure a sync filter exists. Then `/sync` is called over and over, each time
    with the token from the previous response.

    A request which fails with a transient error is retried with exponential
    backoff. While we wait, we poll `/versions` to find out as soon as the
    homeserver is reachable again. Any other error stops the loop for good.

    Every change of state is reported to the listeners of the
    `SYNC_STATE_SIGNAL` signal as `(new_state, old_state)`.
    """

    def __init__(self, client: "MatrixClient"):
        self._client = client
        self._clock = client.get_clock()
        self._transport = client.get_transport()
        self._store = client.get_store()
        self._distributor = client.get_distributor()
        self._config = client.config.sync

        self._distributor.declare(SYNC_STATE_SIGNAL)

        self._state = SyncState.STOPPED
        self._started = False
        self._stopped = False
        self._running = False
        self._has_synced = False

        self._filter_id: str | None = None

        # The number of consecutive failed requests, for the backoff.
        self._failed_attempts = 0

        # The request to the homeserver currently in flight, if any.
        self._current_request: defer.Deferred | None = None

        # While waiting to retry: resolves when it is time to retry.
        self._retry_waiter: defer.Deferred[None] | None = None
        self._retry_call: DelayedCallWrapper | None = None
        self._keepalive_call: DelayedCallWrapper | None = None
        self._keepalive_request: defer.Deferred | None = None
        # Bumped whenever we stop waiting to retry, so that a keepalive which
        # completes late knows to do nothing.
        self._keepalive_generation = 0

        # Sends waiting for the connection to come back.
        self._send_waiters: list[defer.Deferred[None]] = []

    def get_sync_state(self) -> SyncState:
        return self._state

    def is_running(self) -> bool:
        """Whether the sync loop is running, and will see echoes of our writes."""
        return self._running

    def is_send_allowed(self) -> bool:
        return self._state not in _ERROR_STATES

    def wait_until_send_allowed(self) -> "defer.Deferred[None]":
        """Get a Deferred which resolves once sending is allowed.

        Cancelling the Deferred stops the wait.
        """
        if self.is_send_allowed():
            return defer.succeed(None)

        def _cancel(d: defer.Deferred[None]) -> None:
            if d in self._send_waiters:
                self._send_waiters.remove(d)

        d: defer.Deferred[None] = defer.Deferred(_cancel)
        self._send_waiters.append(d)
        return d

    def _set_state(self, new_state: SyncState) -> None:
        old_state = self._state
        if new_state not in VALID_TRANSITIONS[old_state]:
            raise InvalidSyncStateTransition(
                "Invalid sync state transition %s -> %s"
                % (old_state.value, new_state.value)
            )

        logger.info("Sync state %s -> %s", old_state.value, new_state.value)
        self._state = new_state
        sync_state_transitions_counter.labels(state=new_state.value).inc()

        if self.is_send_allowed() and self._send_waiters:
            waiters = self._send_waiters
            self._send_waiters = []
            for waiter in waiters:
                waiter.callback(None)

        self._distributor.fire(SYNC_STATE_SIGNAL, new_state, old_state)

    def start(self) -> None:
        """Start the sync loop in the background.

        Raises:
            RuntimeError: if the loop has been started before.
        """
        if self._started:
            raise RuntimeError("Sync has already been started")
        self._started = True
        self._running = True

        d = defer.ensureDeferred(self._run())
        d.addErrback(log_failure, "Sync loop failed")

    def stop(self) -> None:
        """Stop the sync loop, abandoning any request in flight.

        The client cannot be restarted afterwards.
        """
        if self._stopped:
            return
        logger.info("Stopping sync")
        self._stopped = True
        self._running = False

        if self._current_request is not None:
            self._current_request.cancel()
        if self._retry_waiter is not None and not self._retry_waiter.called:
            self._retry_waiter.cancel()
        self._stop_retry_timers()

        self._client.get_account_data_handler().release_waiters()

        if self._state != SyncState.STOPPED:
            self._set_state(SyncState.STOPPED)

    def retry_immediately(self) -> bool:
        """Retry the failed request now rather than when the backoff ends.

        Returns:
            True if we were waiting to retry, False otherwise.
        """
        if self._retry_waiter is None or self._retry_waiter.called:
            return False

        logger.info("Retrying sync immediately")
        self._retry_waiter.callback(None)
        return True

    async def _run(self) -> None:
        try:
            if not self._client.is_guest():
                await self._with_retries(self._fetch_push_rules, is_sync=False)
                await self._with_retries(self._resolve_filter, is_sync=False)

            while not self._stopped:
                await self._with_retries(self._sync_once, is_sync=True)
        except defer.CancelledError:
            logger.debug("Sync loop cancelled")
        except Exception:
            logger.exception("Stopping sync after a non-retryable error")
            self._running = False
            self._client.get_account_data_handler().release_waiters()
        finally:
            self._stop_retry_timers()

    async def _with_retries(
        self, step: Callable[[], Awaitable[R]], is_sync: bool
    ) -> R:
        """Run one step of the loop, retrying it until it succeeds.

        Raises:
            CancelledError: if we are stopped.
            Exception: any error which is not transient.
        """
        while True:
            try:
                result = await step()
            except defer.CancelledError:
                raise
            except Exception as e:
                if self._stopped:
                    raise defer.CancelledError() from e
                if not is_transient_error(e):
                    if is_sync:
                        sync_requests_counter.labels(outcome="fatal").inc()
                    raise
                if is_sync:
                    sync_requests_counter.labels(outcome="transient").inc()
                await self._wait_for_retry(e, is_sync)
                continue

            self._failed_attempts = 0
            return result

    async def _wait_for_retry(self, error: Exception, is_sync: bool) -> None:
        """Enter the error state and wait until it is time to retry.

        Args:
            error: the error which made the request fail.
            is_sync: whether the request was `/sync` rather than a bootstrap
                request.
        """
        self._failed_attempts += 1
        delay_ms = min(
            self._config.retry_initial_delay_ms * 2 ** (self._failed_attempts - 1),
            self._config.retry_max_delay_ms,
        )
        if isinstance(error, LimitExceededError) and error.retry_after_ms:
            delay_ms = max(delay_ms, error.retry_after_ms)

        if self._state in _ERROR_STATES or self._state == SyncState.CATCHUP:
            new_state = SyncState.RECONNECTING
        else:
            new_state = SyncState.ERROR

        logger.warning(
            "%s request failed (attempt %d), retrying in %dms: %s",
            "Sync" if is_sync else "Startup",
            self._failed_attempts,
            delay_ms,
            error,
        )

        # Everything must be in place before the listeners hear about the new
        # state, as they may call `retry_immediately` or `stop`.
        waiter: defer.Deferred[None] = defer.Deferred()
        self._retry_waiter = waiter
        self._retry_call = self._clock.call_later(
            delay_ms / 1000, self._on_retry_timer, waiter
        )
        self._schedule_keepalive(self._keepalive_generation, is_sync)

        try:
            self._set_state(new_state)
            await waiter
        finally:
            self._retry_waiter = None
            self._keepalive_generation += 1
            self._stop_retry_timers()

    def _on_retry_timer(self, waiter: "defer.Deferred[None]") -> None:
        self._retry_call = None
        if not waiter.called:
            waiter.callback(None)

    def _stop_retry_timers(self) -> None:
        if self._retry_call is not None:
            self._clock.cancel_call_later(self._retry_call, ignore_errs=True)
            self._retry_call = None
        if self._keepalive_call is not None:
            self._clock.cancel_call_later(self._keepalive_call, ignore_errs=True)
            self._keepalive_call = None
        if self._keepalive_request is not None:
            self._keepalive_request.cancel()
            self._keepalive_request = None

    def _schedule_keepalive(self, generation: int, is_sync: bool) -> None:
        self._keepalive_call = self._clock.call_later(
            self._config.keepalive_interval_ms / 1000,
            self._on_keepalive_timer,
            generation,
            is_sync,
        )

    def _on_keepalive_timer(self, generation: int, is_sync: bool) -> None:
        self._keepalive_call = None
        d = defer.ensureDeferred(self._keepalive(generation, is_sync))
        d.addErrback(log_failure, "Keepalive failed")

    async def _keepalive(self, generation: int, is_sync: bool) -> None:
        """Probe the homeserver, and retry straight away if it answers."""
        request = defer.ensureDeferred(
            self._transport.request(
                Method.GET, VERSIONS_PATH, prefix=CLIENT_API_PREFIX, authed=False
            )
        )
        self._keepalive_request = request
        try:
            await request
        except defer.CancelledError:
            return
        except Exception as e:
            if generation != self._keepalive_generation:
                return
            self._keepalive_request = None
            logger.debug("Keepalive failed: %s", e)
            self._schedule_keepalive(generation, is_sync)
            return

        if generation != self._keepalive_generation:
            return
        self._keepalive_request = None

        waiter = self._retry_waiter
        if waiter is None or waiter.called:
            return

        logger.info("Homeserver is reachable again")
        if is_sync:
            self._set_state(SyncState.CATCHUP)
            if self._stopped or waiter.called:
                return
        waiter.callback(None)

    async def _request(
        self,
        method: Method,
        path: str,
        query_params: QueryParams | None = None,
        body: JsonDict | None = None,
        **kwargs: Any,
    ) -> JsonDict:
        """Make a request which `stop` can cancel."""
        request = defer.ensureDeferred(
            self._transport.request(method, path, query_params, body, **kwargs)
        )
        self._current_request = request
        try:
            return await request
        finally:
            self._current_request = None

    async def _fetch_push_rules(self) -> None:
        logger.debug("Fetching push rules")
        rules = await self._request(Method.GET, "/pushrules/")
        self._client.get_push_rules_handler().on_push_rules(rules)

    def build_sync_filter(self) -> JsonDict:
        timeline: JsonDict = {"limit": self._config.initial_sync_limit}
        if self._config.thread_support:
            timeline["unread_thread_notifications"] = True
        return {"room": {"timeline": timeline}}

    async def _resolve_filter(self) -> None:
        filter_handler = self._client.get_filter_handler()
        filter_name = filter_handler.get_sync_filter_name(
            self._client.get_safe_user_id()
        )
        logger.debug("Resolving sync filter %s", filter_name)
        self._filter_id = await filter_handler.get_or_create_filter(
            filter_name, self.build_sync_filter()
        )

    async def _sync_once(self) -> None:
        since = self._store.get_sync_token()

        timeout_ms = self._config.poll_timeout_ms
        if since is None or self._state == SyncState.CATCHUP:
            # Don't make the homeserver wait for new data: we want the data it
            # has already got as soon as possible.
            timeout_ms = 0

        query_params = {"timeout": str(timeout_ms)}
        if since is not None:
            query_params["since"] = since
        if self._filter_id is not None:
            query_params["filter"] = self._filter_id

        data = await self._request(
            Method.GET,
            "/sync",
            query_params,
            timeout_ms=timeout_ms + SYNC_REQUEST_BUFFER_MS,
        )
        if self._stopped:
            return
        sync_requests_counter.labels(outcome="success").inc()

        self._process_sync_response(data)
        self._store.set_sync_token(data["next_batch"])
        await self._store.save()

        if self._stopped:
            return
        if self._has_synced:
            self._set_state(SyncState.SYNCING)
        else:
            self._has_synced = True
            self._set_state(SyncState.PREPARED)

    def _get_or_create_room(self, room_id: str) -> Room:
        room = self._store.get_room(room_id)
        if room is None:
            room = Room(room_id, thread_support=self._config.thread_support)
            self._store.store_room(room)
        return room

    def _process_sync_response(self, data: JsonDict) -> None:
        """Apply a `/sync` response to the local model."""
        rooms = data.get("rooms") or {}

        for room_id, joined in (rooms.get("join") or {}).items():
            room = self._get_or_create_room(room_id)
            room.membership = Membership.JOIN
            room.add_state_events(_events_in(joined, "state"))
            room.add_live_events(_events_in(joined, "timeline"))
            for event in _events_in(joined, "account_data"):
                ev = make_event(event, room_id)
                room.account_data[ev.type] = ev

        for room_id, invited in (rooms.get("invite") or {}).items():
            room = self._get_or_create_room(room_id)
            room.membership = Membership.INVITE
            room.add_state_events(_events_in(invited, "invite_state"))

        for room_id, left in (rooms.get("leave") or {}).items():
            room = self._get_or_create_room(room_id)
            room.membership = Membership.LEAVE
            room.add_state_events(_events_in(left, "state"))
            room.add_live_events(_events_in(left, "timeline"))

        account_data = [MatrixEvent(e) for e in _events_in(data, "account_data")]
        if account_data:
            for event in account_data:
                if event.type == AccountDataTypes.PUSH_RULES:
                    self._client.get_push_rules_handler().on_push_rules(event.content)
            self._client.get_account_data_handler().on_sync_account_data(account_data)

        for event in _events_in(data, "presence"):
            sender = event.get("sender")
            if isinstance(sender, str):
                self._store.store_presence(sender, event.get("content") or {})


def _events_in(section: Any, key: str) -> list[JsonDict]:
    """Get the list of events under `key` in a section of a `/sync` response.

    Anything which isn't an event object is dropped.
    """
    if not isinstance(section, dict):
        return []
    container = section.get(key)
    if not isinstance(container, dict):
        return []
    events = container.get("events")
    if not isinstance(events, list):
        return []
    return [e for e in events if isinstance(e, dict)]
