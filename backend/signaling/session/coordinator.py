from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from signaling.messaging.encoder import DecodeError, decode
from signaling.messaging.types import (
    DestroySessionMessage,
    ErrorMessage,
    HandshakeMessage,
    JoinSessionMessage,
    LeaveSessionMessage,
    NewSessionMessage,
    PeerDisconnectedMessage,
    PingMessage,
    PongMessage,
    RelayMessage,
    ServerPongMessage,
    SessionCreatedMessage,
    SessionDestroyedMessage,
    SessionErrorCode,
    SessionJoinedMessage,
    parse_client_message,
)
from signaling.session.events import ConnectionClosed, ConnectionOpened, MessageReceived, SweepTick
from signaling.session.liveness import LIVENESS_SWEEP_INTERVAL, LivenessTicker
from signaling.session.models import Role
from signaling.session.registry import ClientRegistry, SessionRegistry

if TYPE_CHECKING:
    from signaling.messaging.types import GameConfig
    from signaling.session.connection import ConnectionHandle
    from signaling.session.events import CoordinatorEvent
    from signaling.session.models import Session

logger = structlog.get_logger()


class Coordinator:
    """
    Own every client and session and apply the signaling protocol to them.

    All mutation happens in one task draining a single event queue, so
    connect, message, close and sweep handling never interleave. The
    handle_* methods can also be awaited directly (as the tests do) as long
    as the caller does not run them concurrently.
    """

    def __init__(self, *, liveness_interval: float = LIVENESS_SWEEP_INTERVAL) -> None:
        self._clients = ClientRegistry()
        self._sessions = SessionRegistry()
        self._events: asyncio.Queue[CoordinatorEvent] = asyncio.Queue()
        self._ticker = LivenessTicker(liveness_interval)
        self._task: asyncio.Task[None] | None = None

    @property
    def client_count(self) -> int:
        return len(self._clients)

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def get_client(self, client_id: str) -> ConnectionHandle | None:
        return self._clients.get(client_id)

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    # --- event loop ---

    def submit(self, event: CoordinatorEvent) -> None:
        self._events.put_nowait(event)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        self._ticker.start(lambda: self.submit(SweepTick()))
        logger.info("coordinator started", liveness_interval=self._ticker.interval)

    async def stop(self) -> None:
        await self._ticker.stop()
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("coordinator stopped")

    async def drain(self) -> None:
        """Wait until every submitted event has been processed."""
        await self._events.join()

    async def _run(self) -> None:
        while True:
            event = await self._events.get()
            try:
                await self.process(event)
            except Exception:
                logger.exception("failed to process event", event_type=type(event).__name__)
            finally:
                self._events.task_done()

    async def process(self, event: CoordinatorEvent) -> None:
        if isinstance(event, ConnectionOpened):
            await self.handle_connect(event.handle)
        elif isinstance(event, MessageReceived):
            await self.handle_message(event.handle, event.text)
        elif isinstance(event, ConnectionClosed):
            await self.handle_disconnect(event.handle)
        elif isinstance(event, SweepTick):
            await self.sweep()

    # --- connection lifecycle ---

    async def handle_connect(self, handle: ConnectionHandle) -> None:
        await handle.send(HandshakeMessage(client_id=handle.client_id))
        replaced = self._clients.register(handle)
        logger.info(
            "client connected",
            client_id=handle.client_id,
            address=handle.address,
            total=self.client_count,
        )
        if replaced is not None:
            # the slot ids already name this client, so the binding moves with it
            handle.session_id = replaced.session_id
            replaced.session_id = None
            logger.info("client reconnected, replacing stale connection", client_id=handle.client_id)
            replaced.terminate("replaced_by_reconnect")

    async def handle_disconnect(self, handle: ConnectionHandle) -> None:
        handle.is_alive = False
        if not self._clients.unregister(handle):
            logger.debug("stale connection closed", client_id=handle.client_id)
            return
        logger.info("client disconnected", client_id=handle.client_id, total=self.client_count)

        session = self._sessions.get(handle.session_id)
        if session is None:
            handle.session_id = None
            return

        counterpart = self._bound_occupant(session, session.counterpart_of(handle.client_id))
        if counterpart is not None:
            await counterpart.send(PeerDisconnectedMessage())

        # either side may already have been dead before this close
        if self._live_occupant(session, session.initiator_id) is None and (
            self._live_occupant(session, session.peer_id) is None
        ):
            await self._destroy(session, origin=handle)

    async def handle_message(self, handle: ConnectionHandle, text: str) -> None:
        if not self._clients.is_current(handle):
            logger.debug("ignoring message from replaced connection", client_id=handle.client_id)
            return

        try:
            message = parse_client_message(decode(text))
        except (DecodeError, ValidationError) as e:
            logger.warning("invalid message", client_id=handle.client_id, error=str(e))
            await self._send_error(handle, SessionErrorCode.INVALID_REQUEST)
            return

        if isinstance(message, NewSessionMessage):
            await self.create_session(handle, message.config)
        elif isinstance(message, JoinSessionMessage):
            await self.join_session(handle, message.session_id)
        elif isinstance(message, LeaveSessionMessage):
            await self.leave_session(handle)
        elif isinstance(message, DestroySessionMessage):
            await self.destroy_session(handle)
        elif isinstance(message, RelayMessage):
            await self.relay(handle, text)
        elif isinstance(message, PongMessage):
            handle.mark_alive()
        elif isinstance(message, PingMessage):
            handle.mark_alive()
            await handle.send(ServerPongMessage())
        else:
            await self._send_error(handle, SessionErrorCode.INVALID_REQUEST)

    # --- session transitions ---

    async def create_session(self, handle: ConnectionHandle, config: GameConfig) -> Session:
        if handle.session_id is not None:
            logger.warning(
                "client already bound to a session, leaving it for a new one",
                client_id=handle.client_id,
                session_id=handle.session_id,
            )
            # an initiator leaving destroys its session, a peer vacates its slot
            await self.leave_session(handle)
        session = self._sessions.create(handle.client_id, config)
        handle.session_id = session.session_id
        logger.info(
            "session created",
            client_id=handle.client_id,
            session_id=session.session_id,
            total=self.session_count,
        )
        await handle.send(SessionCreatedMessage(session_id=session.session_id))
        return session

    async def join_session(self, handle: ConnectionHandle, session_id: str) -> None:
        if handle.session_id is not None and handle.session_id != session_id:
            await self._send_error(
                handle,
                SessionErrorCode.SESSION_EXISTS,
                f"Already in session {handle.session_id}, leave first",
            )
            return

        session = self._sessions.get(session_id)
        if session is None:
            await self._send_error(handle, SessionErrorCode.SESSION_NOT_FOUND)
            return

        role = session.role_of(handle.client_id)
        if role is None:
            # a peer that has not yet answered the current probe still holds its slot
            if self._bound_occupant(session, session.peer_id) is not None:
                await self._send_error(handle, SessionErrorCode.SESSION_FULL)
                return
            session.peer_id = handle.client_id
            role = Role.PEER

        handle.session_id = session.session_id
        logger.info("client joined session", client_id=handle.client_id, session_id=session.session_id, role=role)
        await self._announce_joined(session)

    async def leave_session(self, handle: ConnectionHandle) -> None:
        session = self._sessions.get(handle.session_id)
        if session is None:
            handle.session_id = None
            return

        role = session.role_of(handle.client_id)
        if role is Role.INITIATOR:
            await self._destroy(session, origin=handle)
            return

        handle.session_id = None
        if role is None:
            return
        session.peer_id = None
        logger.info("client left session", client_id=handle.client_id, session_id=session.session_id)

        initiator = self._bound_occupant(session, session.initiator_id)
        if initiator is not None:
            await initiator.send(PeerDisconnectedMessage())

    async def destroy_session(self, handle: ConnectionHandle) -> None:
        session = self._sessions.get(handle.session_id)
        if session is None:
            handle.session_id = None
            return
        await self._destroy(session, origin=handle)

    async def relay(self, handle: ConnectionHandle, raw: str) -> None:
        session = self._sessions.get(handle.session_id)
        if session is None:
            await self._send_error(handle, SessionErrorCode.NO_P2P_SESSION)
            return
        counterpart = self._bound_occupant(session, session.counterpart_of(handle.client_id))
        if counterpart is None:
            await self._send_error(handle, SessionErrorCode.NO_PEER)
            return
        await counterpart.send_raw(raw)

    # --- liveness ---

    async def sweep(self) -> None:
        """Terminate connections that missed the previous probe, then probe the rest."""
        for session in self._sessions:
            if all(self._bound_occupant(session, cid) is None for cid in session.occupant_ids):
                await self._destroy(session, origin=None)

        terminated = 0
        for handle in self._clients.handles():
            if not handle.is_alive:
                handle.terminate("liveness_timeout")
                terminated += 1
                continue
            await handle.probe_liveness()

        logger.debug("liveness sweep done", clients=self.client_count, terminated=terminated)

    # --- helpers ---

    def _bound_occupant(self, session: Session, client_id: str | None) -> ConnectionHandle | None:
        """Resolve a slot to its registered handle, if that handle is bound to this session."""
        handle = self._clients.get(client_id)
        if handle is None or handle.session_id != session.session_id:
            return None
        return handle

    def _live_occupant(self, session: Session, client_id: str | None) -> ConnectionHandle | None:
        handle = self._bound_occupant(session, client_id)
        if handle is None or not handle.is_alive:
            return None
        return handle

    async def _announce_joined(self, session: Session) -> None:
        """Send sessionJoined to both occupants, each with its own side in the config."""
        initiator = self._bound_occupant(session, session.initiator_id)
        if initiator is not None:
            await initiator.send(SessionJoinedMessage(session_id=session.session_id, config=session.config))
        peer = self._bound_occupant(session, session.peer_id)
        if peer is not None:
            await peer.send(SessionJoinedMessage(session_id=session.session_id, config=session.config.for_peer()))

    async def _destroy(self, session: Session, origin: ConnectionHandle | None) -> None:
        """Remove the session and clear every binding to it, notifying live occupants other than origin."""
        self._sessions.remove(session.session_id)
        for client_id in session.occupant_ids:
            occupant = self._bound_occupant(session, client_id)
            if occupant is None:
                continue
            occupant.session_id = None
            if occupant is not origin and occupant.is_alive:
                await occupant.send(SessionDestroyedMessage())
        if origin is not None and origin.session_id == session.session_id:
            origin.session_id = None
        logger.info("session destroyed", session_id=session.session_id, total=self.session_count)

    @staticmethod
    async def _send_error(handle: ConnectionHandle, code: SessionErrorCode, err_msg: str | None = None) -> None:
        await handle.send(ErrorMessage.for_code(code, err_msg))
