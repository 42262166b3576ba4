"""
FastAPI host for the real-time tag sync protocol.

Clients connect to ``ws://<host>:<port>/ws/tags?token=<JWT>`` and speak
the JSON protocol described in :mod:`.sync_service`.

Usage:
    plc-tags-sync
    # or
    uvicorn --factory plc_tag_exchange.server:create_app
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from .auth import JWTAuthenticator
from .config import SyncSettings, get_settings
from .store import InMemoryProjectDirectory, InMemoryTagStore, ProjectDirectory, TagStore
from .sync_service import TagSyncService

logger = logging.getLogger(__name__)


def create_app(
    store: Optional[TagStore] = None,
    directory: Optional[ProjectDirectory] = None,
    settings: Optional[SyncSettings] = None,
    authenticator=None,
) -> FastAPI:
    """Build the application around a :class:`TagSyncService`.

    Without arguments the app runs over empty in-memory stores, which is
    only useful for demos; real deployments pass their own store and
    directory.
    """
    settings = settings or get_settings()
    service = TagSyncService(
        store if store is not None else InMemoryTagStore(),
        directory if directory is not None else InMemoryProjectDirectory(),
        authenticator or JWTAuthenticator(settings),
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Tag sync service listening on %s", settings.ws_path)
        yield
        logger.info("Shutting down tag sync service...")
        await service.shutdown()

    app = FastAPI(title="PLC Tag Sync", version="0.1.0", lifespan=lifespan)
    app.state.sync_service = service

    @app.websocket(settings.ws_path)
    async def tag_sync(websocket: WebSocket) -> None:
        token = websocket.query_params.get("token")
        session = await service.open_session(websocket, token)
        if session is None:
            return
        try:
            while True:
                message = await websocket.receive_text()
                await service.handle_message(session, message)
        except WebSocketDisconnect as e:
            logger.debug("Session %d disconnected (code %s)", session.id, e.code)
        except Exception:
            logger.exception("Error in message loop for session %d", session.id)
        finally:
            await service.close_session(session)

    @app.get("/health")
    async def health() -> Dict[str, object]:
        return {"status": "ok", **service.get_stats()}

    return app


def main():
    """Run the sync server with uvicorn."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
