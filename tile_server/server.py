from __future__ import annotations

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response

from common.logging_setup import get_logger
from tile_server.config import ServerConfig
from tile_server.tiles import TileCoordinate, TileFound, TileNotFound, read_tile

log = get_logger(__name__)

ROOT_HTML = "<h1>map source</h1>"
_UVICORN_LEVELS = {"warn": "warning"}


def serve_root() -> HTMLResponse:
    return HTMLResponse(ROOT_HTML)


def serve_tile(coord: TileCoordinate, config: ServerConfig) -> Response:
    """
    Map a tile read onto HTTP:
      200 image/png  -> file bytes
      404            -> file could not be opened
      500            -> file opened but the read failed
    """
    outcome = read_tile(config.tiles_dir, coord)
    if isinstance(outcome, TileFound):
        log.info("Serving tile: %s", outcome.path, extra={"extra": {"path": outcome.path, "bytes": len(outcome.data)}})
        return Response(content=outcome.data, media_type=outcome.media_type)
    if isinstance(outcome, TileNotFound):
        log.warning("File not found: %s", outcome.path, extra={"extra": {"path": outcome.path}})
        return Response(status_code=404)
    log.error("Error reading file: %s", outcome.path, extra={"extra": {"path": outcome.path}})
    return Response(status_code=500)


def create_app(config: ServerConfig) -> FastAPI:
    app = FastAPI(title="Tile Server", version="0.1.0")
    app.state.config = config

    # Map front ends are usually served from another origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/", response_class=HTMLResponse)
    def index():
        return serve_root()

    # `:int` only matches digits, so bad segments 404 before reaching the handler.
    @app.get("/tiles/{z:int}/{x:int}/{y:int}")
    def get_tile(z: int, x: int, y: int, request: Request):
        return serve_tile(TileCoordinate(z, x, y), request.app.state.config)

    return app


def run_server(config: ServerConfig) -> None:
    print(f"Server starting on http://{config.host}:{config.port}")
    print(f"Serving tiles from: {config.tiles_dir}")
    # log_config=None keeps uvicorn on the root handlers set up by the service.
    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_config=None,
        log_level=_UVICORN_LEVELS.get(config.log_level.lower(), config.log_level.lower()),
    )
