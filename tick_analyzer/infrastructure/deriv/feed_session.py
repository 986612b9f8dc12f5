"""Deriv live tick feed session using asyncio + websockets.

State machine:
    disconnected -> connecting -> connected -> authorizing -> authorized -> subscribed
Any transport close goes back to disconnected and schedules one reconnect.

Features:
- Authorize with API token, fall back to public tick streams on auth errors
- Delayed reconnect after close (single cancellable timer)
- Same-connection instrument switch: forget_all, clear window, resubscribe
- Stale transports are invalidated by generation so they can't write ticks
"""

from __future__ import annotations

import asyncio
import json
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed

from tick_analyzer.infrastructure.logging.logging import get_logger
from tick_analyzer.models.market_models import parse_tick
from tick_analyzer.services.market.tick_window import TickWindow
from tick_analyzer.services.monitoring.event_log import EventLog

JsonDict = Dict[str, Any]
Connector = Callable[[str], Awaitable[Any]]

# Error codes answered with a public (unauthenticated) subscription
AUTH_FALLBACK_CODES = frozenset({"InvalidToken", "AuthorizationRequired"})


class FeedSessionError(RuntimeError):
    pass


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AUTHORIZING = "authorizing"
    AUTHORIZED = "authorized"
    SUBSCRIBED = "subscribed"


async def _websockets_connector(url: str) -> Any:
    return await websockets.connect(url, ping_interval=15, close_timeout=5, max_queue=256)


class FeedSession:
    def __init__(
        self,
        websocket_url: str,
        app_id: str,
        api_token: str,
        *,
        window: TickWindow,
        symbol: str,
        events: Optional[EventLog] = None,
        reconnect_delay_sec: float = 3.0,
        resubscribe_delay_sec: float = 0.2,
        connector: Optional[Connector] = None,
    ) -> None:
        if not symbol:
            raise FeedSessionError("symbol must not be empty")
        self._logger = get_logger("feed_session")
        self._url = f"{websocket_url}?app_id={app_id}"
        self._token = api_token
        self._reconnect_delay = float(reconnect_delay_sec)
        self._resubscribe_delay = float(resubscribe_delay_sec)
        self._connector = connector or _websockets_connector

        self.window = window
        self.events = events or EventLog()
        self._symbol = symbol

        self._state = SessionState.DISCONNECTED
        self._ws: Optional[Any] = None
        self._generation = 0
        self._stopped = False

        self._reader_task: Optional[asyncio.Task[None]] = None
        self._reconnect_task: Optional[asyncio.Task[None]] = None
        self._resubscribe_task: Optional[asyncio.Task[None]] = None

        self.public_access = False
        self.last_error: Optional[str] = None

    # ---- read-only view ----
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_connected(self) -> bool:
        return self._state not in (SessionState.DISCONNECTED, SessionState.CONNECTING)

    @property
    def is_authorized(self) -> bool:
        return self._state in (SessionState.AUTHORIZED, SessionState.SUBSCRIBED)

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    # ---- lifecycle ----
    async def connect(self) -> None:
        """(Re)connect. A live or half-open transport is torn down first."""
        self._stopped = False
        self._cancel_reconnect()
        await self._teardown()

        generation = self._generation
        self._set_state(SessionState.CONNECTING)
        self._event("Connecting to Deriv API...")
        self._logger.info("ws_connect", url=self._url)

        try:
            ws = await self._connector(self._url)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if generation != self._generation:
                return
            self.last_error = f"Failed to connect: {e}"
            self._logger.error("ws_connect_failed", error=str(e))
            self._event(f"Connection error: {e}")
            self._on_transport_closed(f"connect failed: {e}")
            return

        if generation != self._generation:
            # Superseded by a newer connect/stop while the handshake was in flight
            await self._close_quietly(ws)
            return

        self._ws = ws
        self.last_error = None
        self._set_state(SessionState.CONNECTED)
        self._event("WebSocket CONNECTED")

        self._set_state(SessionState.AUTHORIZING)
        await self._send({"authorize": self._token})

        # Reader starts after the authorize request so its reply is handled in AUTHORIZING
        self._reader_task = asyncio.create_task(self._reader_loop(ws, generation))

    async def stop(self) -> None:
        """Shutdown: close the transport without scheduling a reconnect."""
        self._stopped = True
        self._cancel_reconnect()
        await self._teardown()
        self.public_access = False
        self._set_state(SessionState.DISCONNECTED)
        self._event("Session stopped")

    async def change_instrument(self, symbol: str) -> None:
        if not symbol:
            raise FeedSessionError("symbol must not be empty")
        if symbol == self._symbol:
            return

        previous = self._symbol
        self._symbol = symbol
        self.window.clear()
        self._logger.info("instrument_changed", previous=previous, symbol=symbol, state=self._state.value)

        if self.is_authorized and self._ws is not None:
            await self._send({"forget_all": "ticks"})
            self._set_state(SessionState.AUTHORIZED)
            self._schedule_resubscribe()

    # ---- inbound ----
    async def handle_message(self, raw: Union[str, bytes]) -> None:
        try:
            msg = json.loads(raw)
        except (TypeError, ValueError, RecursionError) as e:
            self._protocol_error(f"Parse error: {e}")
            return
        if not isinstance(msg, dict):
            self._protocol_error("Parse error: message is not a JSON object")
            return

        msg_type = msg.get("msg_type") or "unknown"
        self._event(f"<- Received: {msg_type}")
        self._logger.debug("ws_recv", msg_type=msg_type)

        if msg.get("error"):
            await self._handle_error(msg["error"])
            return

        if msg.get("authorize"):
            await self._handle_authorized()
            return

        if msg.get("tick"):
            self._handle_tick(msg["tick"])
            return

        if msg.get("msg_type"):
            self._event(f"Info: {msg_type}")

    async def _handle_error(self, error: Any) -> None:
        if isinstance(error, dict):
            code = str(error.get("code") or "")
            message = str(error.get("message") or "")
        else:
            code, message = "", str(error)

        self.last_error = f"{message} ({code})"
        self._event(f"ERROR: {self.last_error}")
        self._logger.warning("ws_error_response", code=code, message=message, state=self._state.value)

        if code in AUTH_FALLBACK_CODES and self._ws is not None:
            self._event("Token invalid, trying public access...")
            self._logger.info("ws_public_fallback", code=code, symbol=self._symbol)
            self.public_access = True
            self._set_state(SessionState.AUTHORIZED)
            await self._subscribe()

    async def _handle_authorized(self) -> None:
        if self._ws is None:
            self._logger.debug("authorize_ignored", reason="no_transport")
            return
        self.public_access = False
        self.last_error = None
        self._set_state(SessionState.AUTHORIZED)
        self._event("AUTHORIZED successfully")
        self._logger.info("ws_authorized")
        await self._subscribe()

    def _handle_tick(self, payload: Any) -> None:
        tick = parse_tick(payload) if isinstance(payload, dict) else None
        if tick is None:
            self._protocol_error(f"Rejected tick payload: {payload!r}")
            return
        if self._state is not SessionState.SUBSCRIBED:
            self._logger.debug("tick_ignored", reason="not_subscribed", state=self._state.value)
            return
        if tick.symbol and tick.symbol != self._symbol:
            self._logger.debug("tick_ignored", reason="stale_symbol", symbol=tick.symbol)
            return

        self.window.push(tick)
        self.last_error = None
        self._event(f"Tick: {tick.price}")

    def _protocol_error(self, message: str) -> None:
        self._event(message)
        self._logger.warning("ws_protocol_error", error=message)

    # ---- outbound ----
    async def _subscribe(self) -> None:
        if self._ws is None:
            self._event("Cannot subscribe: WebSocket not open")
            return
        self._event(f"-> Subscribing to {self._symbol}...")
        if await self._send({"ticks": self._symbol, "subscribe": 1}):
            self._set_state(SessionState.SUBSCRIBED)
            self._logger.info("subscribed", symbol=self._symbol, public=self.public_access)

    async def _send(self, payload: JsonDict) -> bool:
        ws = self._ws
        if ws is None:
            self._event("Cannot send: WebSocket not open")
            return False

        try:
            await ws.send(json.dumps(payload))
        except ConnectionClosed as e:
            # The reader sees the same close and drives the transition
            self._logger.warning("ws_send_failed", error=str(e))
            return False

        shown = {"authorize": "***"} if "authorize" in payload else payload
        self._event(f"-> Sent: {json.dumps(shown)}")
        self._logger.debug("ws_send", payload=shown)
        return True

    # ---- transport ----
    async def _reader_loop(self, ws: Any, generation: int) -> None:
        reason = "closed by peer"
        try:
            async for raw in ws:
                if generation != self._generation:
                    return
                await self.handle_message(raw)
        except asyncio.CancelledError:
            raise
        except ConnectionClosed as e:
            reason = str(e) or reason
        except Exception as e:
            self._logger.error("reader_loop_error", error=str(e))
            self.last_error = "WebSocket connection error"
            reason = str(e)
            await self._close_quietly(ws)

        if generation == self._generation:
            self._reader_task = None
            self._on_transport_closed(reason)

    def _on_transport_closed(self, reason: str) -> None:
        self._ws = None
        self._generation += 1
        self._cancel_resubscribe()
        self.public_access = False
        self._set_state(SessionState.DISCONNECTED)
        self._event(f"Connection closed ({reason})")
        self._logger.warning("ws_closed", reason=reason)
        if not self._stopped:
            self._schedule_reconnect()

    async def _teardown(self) -> None:
        # Invalidate anything still running against the old transport
        self._generation += 1
        self._cancel_resubscribe()

        reader, self._reader_task = self._reader_task, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()

        ws, self._ws = self._ws, None
        if ws is not None:
            await self._close_quietly(ws)

    async def _close_quietly(self, ws: Any) -> None:
        try:
            await ws.close()
        except Exception as e:
            self._logger.debug("ws_close_failed", error=str(e))

    # ---- timers ----
    def _schedule_reconnect(self) -> None:
        self._cancel_reconnect()
        self._logger.info("reconnect_scheduled", seconds=self._reconnect_delay)
        self._reconnect_task = asyncio.create_task(self._reconnect_after(self._reconnect_delay))

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._reconnect_task = None
        self._event("Auto-reconnecting...")
        await self.connect()

    def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    def _schedule_resubscribe(self) -> None:
        self._cancel_resubscribe()
        self._resubscribe_task = asyncio.create_task(self._resubscribe_after(self._resubscribe_delay))

    async def _resubscribe_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._resubscribe_task = None
        if self._state is SessionState.AUTHORIZED:
            await self._subscribe()

    def _cancel_resubscribe(self) -> None:
        task, self._resubscribe_task = self._resubscribe_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    # ---- reporting ----
    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        self._logger.debug("state_transition", previous=self._state.value, state=state.value)
        self._state = state

    def _event(self, message: str) -> None:
        self.events.add(message)
