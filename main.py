from typing import Callable, Optional

from fastapi import FastAPI
from contextlib import asynccontextmanager
from app.core.config import settings
from app.core.logging import setup_logging
from app.apis.room.main import router as room_router
from app.modules.room.session import RoomSession, SessionManager

import uvicorn
from fastapi.middleware.cors import CORSMiddleware


def create_app(
    session_factory: Optional[Callable[[str, str], RoomSession]] = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.sessions = SessionManager(session_factory)
        try:
            yield
        finally:
            # leaving cancels every room timer and closes gateway connections
            await app.state.sessions.close_all()

    app = FastAPI(
        title=settings.app.name, version=settings.app.version, lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(room_router)

    @app.get("/")
    async def root():
        return {
            "status": "ok",
            "app": settings.app.name,
            "version": settings.app.version,
        }

    return app


setup_logging()
app = create_app()


if __name__ == "__main__":
    try:
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.app.port,
            reload=not settings.app.is_production,
        )
    except Exception as e:
        print(f"An error occurred when starting the server: {e}.")
