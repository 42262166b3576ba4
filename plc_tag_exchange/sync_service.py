"""
Real-time tag synchronisation over a JSON message protocol.

Each connection gets a :class:`SyncSession`, created at handshake and
dropped at disconnect.  Session states::

    UNAUTHENTICATED --(valid token)--> IDLE <--(subscribe/unsubscribe)--> SUBSCRIBED
          |                              |                                   |
          +--(bad token)--> CLOSED <-----+-----------(disconnect)------------+

Client messages:

    ``subscribe {projectId}``
        Join the project's subscriber set and receive its current tags.
    ``unsubscribe {}``
        Leave the current subscriber set (no-op when not subscribed).
    ``sync_tags {projectId, vendor, stCode, debounceMs?}``
        Queue a parse + reconcile of *stCode*.  Acknowledged at once with
        ``sync_queued {projectId, syncId}``.  Each session has at most one
        pending debounce timer; a newer ``sync_tags`` replaces it.  When
        the timer fires the project's stored vendor is used (the message's
        ``vendor`` is ignored), and ``tags_updated`` is broadcast to every
        subscriber of the project.
    ``ping {}``
        Answered with ``pong``.

Server frames always carry ``type``, ``success`` and ``timestamp``.
Ownership is checked against the :class:`~.store.ProjectDirectory` on
every message that touches a project; nothing is cached.

The service is transport-agnostic: a connection only needs awaitable
``accept()``, ``send_json(dict)`` and ``close(code, reason)``, which is
exactly what a Starlette/FastAPI ``WebSocket`` offers.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from .auth import UserIdentity
from .config import SyncSettings, get_settings
from .errors import AccessDenied, ProtocolError
from .models import RawTagTuple, Vendor
from .reconciler import reconcile_tags, resolve_vendor
from .st_parser import parse_st_variables
from .store import ProjectDirectory, TagStore

logger = logging.getLogger(__name__)

# WebSocket close codes
CLOSE_NORMAL = 1000
CLOSE_POLICY_VIOLATION = 1008

Parser = Callable[[str, Optional[str]], List[RawTagTuple]]

_session_ids = itertools.count(1)


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    IDLE = "idle"
    SUBSCRIBED = "subscribed"
    CLOSED = "closed"


@dataclass(eq=False)
class SyncSession:
    """Per-connection state, owned by :class:`TagSyncService`."""
    connection: Any
    user: Optional[UserIdentity] = None
    state: SessionState = SessionState.UNAUTHENTICATED
    project_id: Optional[str] = None
    debounce_task: Optional[asyncio.Task] = None
    id: int = field(default_factory=lambda: next(_session_ids))

    @property
    def user_id(self) -> Optional[str]:
        return self.user.user_id if self.user is not None else None


def new_sync_id() -> str:
    """``sync_<epoch ms>_<random>``."""
    return f"sync_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def make_frame(frame_type: str, success: bool = True, **fields: Any) -> Dict[str, Any]:
    """Build a server frame; ``None`` fields are omitted."""
    frame: Dict[str, Any] = {"type": frame_type, "success": success}
    frame.update({k: v for k, v in fields.items() if v is not None})
    frame["timestamp"] = _timestamp()
    return frame


def _project_id(message: Dict[str, Any], error: str) -> str:
    value = message.get("projectId")
    if value is None or str(value).strip() == "":
        raise ProtocolError(error)
    return str(value).strip()


class TagSyncService:
    """Session registry, message dispatcher and broadcaster.

    Args:
        store: Tag persistence.
        directory: Project lookup and ownership checks.
        authenticator: Object with ``authenticate(token) -> UserIdentity | None``.
        parser: Structured text parser, ``parser(code, vendor_hint)``.
        settings: Debounce and vendor defaults.
    """

    def __init__(
        self,
        store: TagStore,
        directory: ProjectDirectory,
        authenticator,
        parser: Parser = parse_st_variables,
        settings: Optional[SyncSettings] = None,
    ):
        self.store = store
        self.directory = directory
        self.authenticator = authenticator
        self.parser = parser
        self.settings = settings or get_settings()

        self._lock = asyncio.Lock()
        self._sessions: Set[SyncSession] = set()
        self._subscribers: Dict[str, Set[SyncSession]] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self._handlers = {
            "subscribe": self._handle_subscribe,
            "unsubscribe": self._handle_unsubscribe,
            "sync_tags": self._handle_sync_tags,
            "ping": self._handle_ping,
        }

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def open_session(self, connection, token: Optional[str]) -> Optional[SyncSession]:
        """Authenticate and accept *connection*.

        Returns:
            The new session, or ``None`` if authentication failed, in
            which case the connection has been closed with code 1008.
        """
        self._loop = asyncio.get_running_loop()
        session = SyncSession(connection=connection)

        user = self.authenticator.authenticate(token)
        if user is None:
            session.state = SessionState.CLOSED
            reason = "Token required" if not token else "Invalid token"
            await self._close_connection(session, CLOSE_POLICY_VIOLATION, reason)
            return None

        await connection.accept()
        session.user = user
        session.state = SessionState.IDLE
        async with self._lock:
            self._sessions.add(session)
        logger.info("Session %d opened for user %s", session.id, user.user_id)
        return session

    async def close_session(self, session: SyncSession) -> None:
        """Forget *session*: cancel its timer and drop its subscription."""
        if session.state == SessionState.CLOSED and session not in self._sessions:
            return
        session.state = SessionState.CLOSED
        self._cancel_debounce(session)
        async with self._lock:
            self._sessions.discard(session)
            self._remove_subscription(session)
        logger.info("Session %d closed", session.id)

    async def shutdown(self) -> None:
        """Cancel every pending timer, then close every connection."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        async with self._lock:
            sessions = list(self._sessions)
            self._sessions.clear()
            self._subscribers.clear()

        for session in sessions:
            session.debounce_task = None
            session.state = SessionState.CLOSED
            await self._close_connection(session, CLOSE_NORMAL, "Server shutdown")
        logger.info("Sync service shut down (%d connection(s) closed)", len(sessions))

    # ------------------------------------------------------------------
    # Message dispatch
    # ------------------------------------------------------------------

    async def handle_message(self, session: SyncSession, raw: Any) -> None:
        """Decode and dispatch one client message.

        Protocol problems are answered with an ``error`` frame to this
        session only; the connection stays open.
        """
        if session.state in (SessionState.CLOSED, SessionState.UNAUTHENTICATED):
            return

        try:
            message = json.loads(raw) if isinstance(raw, (str, bytes, bytearray)) else raw
        except ValueError:
            message = None
        if not isinstance(message, dict):
            logger.debug("Session %d sent an undecodable message", session.id)
            await self.send_error(session, "Invalid message format")
            return

        msg_type = message.get("type")
        handler = self._handlers.get(msg_type)
        try:
            if handler is None:
                raise ProtocolError(f"Unknown message type: {msg_type}")
            await handler(session, message)
        except (ProtocolError, AccessDenied) as e:
            logger.info("Session %d: %s", session.id, e)
            await self.send_error(session, str(e))

    async def _handle_ping(self, session: SyncSession, message: Dict[str, Any]) -> None:
        await self.send(session, make_frame("pong"))

    async def _handle_subscribe(self, session: SyncSession, message: Dict[str, Any]) -> None:
        project_id = _project_id(message, "Project ID required for subscription")
        await self._require_owner(session, project_id)

        async with self._lock:
            self._remove_subscription(session)
            self._subscribers.setdefault(project_id, set()).add(session)
            session.project_id = project_id
            session.state = SessionState.SUBSCRIBED
        logger.info("Session %d subscribed to project %s", session.id, project_id)

        tags = await asyncio.to_thread(self.store.list_tags, project_id)
        await self.send(session, make_frame(
            "tags_updated",
            projectId=project_id,
            tags=[t.to_dict() for t in tags],
        ))

    async def _handle_unsubscribe(self, session: SyncSession, message: Dict[str, Any]) -> None:
        async with self._lock:
            self._remove_subscription(session)
        if session.state == SessionState.SUBSCRIBED:
            session.state = SessionState.IDLE

    async def _handle_sync_tags(self, session: SyncSession, message: Dict[str, Any]) -> None:
        project_id = _project_id(message, "Missing required fields: projectId, stCode")
        code = message.get("stCode")
        if not isinstance(code, str):
            raise ProtocolError("Missing required fields: projectId, stCode")

        delay_ms = self.settings.clamp_debounce(message.get("debounceMs"))
        sync_id = new_sync_id()

        self._cancel_debounce(session)
        await self.send(session, make_frame("sync_queued", projectId=project_id, syncId=sync_id))

        task = asyncio.create_task(
            self._debounced_sync(session, project_id, code, sync_id, delay_ms)
        )
        session.debounce_task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Session %d queued %s for project %s in %d ms",
                     session.id, sync_id, project_id, delay_ms)

    # ------------------------------------------------------------------
    # Sync execution
    # ------------------------------------------------------------------

    async def _debounced_sync(
        self, session: SyncSession, project_id: str, code: str, sync_id: str, delay_ms: int
    ) -> None:
        await asyncio.sleep(delay_ms / 1000.0)
        # Only the waiting phase is cancellable by a newer message.
        if session.debounce_task is asyncio.current_task():
            session.debounce_task = None
        try:
            await self.run_sync(session, project_id, code, sync_id)
        except AccessDenied as e:
            logger.warning("Sync %s denied: %s", sync_id, e)
            await self.send_error(session, str(e))
        except Exception as e:
            logger.exception("Sync %s for project %s failed", sync_id, project_id)
            await self.send_error(session, f"Tag sync failed: {e}")

    async def run_sync(
        self, session: SyncSession, project_id: str, code: str, sync_id: Optional[str] = None
    ) -> None:
        """Parse, reconcile and broadcast immediately (no debounce).

        Raises:
            AccessDenied: If the session's user does not own the project.
        """
        await self._require_owner(session, project_id)
        vendor: Vendor = await asyncio.to_thread(
            resolve_vendor, self.directory, project_id, self.settings.default_vendor
        )

        parsed = await asyncio.to_thread(self.parser, code, vendor.value)
        result = await asyncio.to_thread(
            reconcile_tags, self.store, self.directory,
            project_id, session.user_id, parsed, vendor,
        )
        tags = await asyncio.to_thread(self.store.list_tags, project_id)
        logger.info("Sync %s for project %s: %d parsed, %d created, %d updated",
                    sync_id, project_id, len(parsed), len(result.created), len(result.updated))

        frame = make_frame(
            "tags_updated",
            projectId=project_id,
            tags=[t.to_dict() for t in tags],
            syncId=sync_id,
            parsedCount=len(parsed),
        )
        reached = await self.broadcast(project_id, frame)
        # An editor watching another project must not see this project's tags.
        if session not in reached and session.state == SessionState.IDLE:
            await self.send(session, frame)

    # ------------------------------------------------------------------
    # Broadcasting
    # ------------------------------------------------------------------

    async def broadcast(self, project_id: Any, frame: Dict[str, Any]) -> Set[SyncSession]:
        """Send *frame* to every subscriber of *project_id*.

        Subscribers whose send fails are dropped from the registry.

        Returns:
            The sessions the frame was delivered to.
        """
        key = str(project_id)
        async with self._lock:
            targets = list(self._subscribers.get(key, ()))

        delivered: Set[SyncSession] = set()
        failed: List[SyncSession] = []
        for session in targets:
            if await self.send(session, frame):
                delivered.add(session)
            else:
                failed.append(session)

        if failed:
            async with self._lock:
                for session in failed:
                    self._remove_subscription(session)
            logger.debug("Dropped %d dead subscriber(s) of project %s", len(failed), key)
        return delivered

    async def notify_project_tags_updated(self, project_id: Any) -> None:
        """Push the project's current tags to all of its subscribers."""
        key = str(project_id)
        tags = await asyncio.to_thread(self.store.list_tags, key)
        await self.broadcast(key, make_frame(
            "tags_updated",
            projectId=key,
            tags=[t.to_dict() for t in tags],
        ))

    def notify_from_thread(self, project_id: Any) -> None:
        """Thread-safe :meth:`notify_project_tags_updated`.

        Suitable as the ``on_inserted`` callback of
        :func:`~.importer.import_tags`.  Does nothing before the service
        has seen its first connection.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.notify_project_tags_updated(project_id), loop)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def send(self, session: SyncSession, frame: Dict[str, Any]) -> bool:
        """Send one frame; returns ``False`` if the connection is gone."""
        if session.state == SessionState.CLOSED:
            return False
        try:
            await session.connection.send_json(frame)
            return True
        except Exception as e:
            logger.debug("Send to session %d failed: %s", session.id, e)
            return False

    async def send_error(self, session: SyncSession, message: str) -> bool:
        return await self.send(session, make_frame("error", success=False, message=message, error=message))

    async def _require_owner(self, session: SyncSession, project_id: str) -> None:
        owns = await asyncio.to_thread(
            self.directory.user_owns_project, session.user_id, project_id
        )
        if not owns:
            raise AccessDenied(session.user_id, project_id, f"Project {project_id} not found")

    def _remove_subscription(self, session: SyncSession) -> None:
        # Caller holds self._lock.
        project_id = session.project_id
        if project_id is None:
            return
        members = self._subscribers.get(project_id)
        if members is not None:
            members.discard(session)
            if not members:
                del self._subscribers[project_id]
        session.project_id = None

    def _cancel_debounce(self, session: SyncSession) -> None:
        task = session.debounce_task
        if task is not None and not task.done():
            task.cancel()
        session.debounce_task = None

    async def _close_connection(self, session: SyncSession, code: int, reason: str) -> None:
        try:
            await session.connection.close(code=code, reason=reason)
        except Exception as e:
            logger.debug("Closing session %d failed: %s", session.id, e)

    def get_stats(self) -> Dict[str, Any]:
        """Connection counts for monitoring."""
        subscribed = sum(len(members) for members in self._subscribers.values())
        return {
            "totalConnections": len(self._sessions),
            "subscribedConnections": subscribed,
            "projectSubscriptions": len(self._subscribers),
            "projects": sorted(self._subscribers),
        }
