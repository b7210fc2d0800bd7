from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response, PlainTextResponse
from contextlib import asynccontextmanager
import argparse
import asyncio
import uvicorn
import logging
from typing import List, Optional
from .config import Settings, load_settings
from .tree_serializer import serialize_tree
from .watch_manager import WatchManager
from .error_handling import (
    setup_logging,
    handle_error,
    log_operation,
    LogTreeError,
    ConfigError
)

logger = logging.getLogger(__name__)

JSON_ERROR_MESSAGE = "Failed to generate JSON data"


def create_app(settings: Settings) -> FastAPI:
    watch_manager = WatchManager(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.watch:
            # registration walks the whole tree, keep it off the event loop;
            # a failed watcher is logged and never blocks serving
            await asyncio.to_thread(watch_manager.start)
        try:
            yield
        finally:
            await asyncio.to_thread(watch_manager.stop)

    app = FastAPI(title="logtree", lifespan=lifespan)
    app.state.settings = settings
    app.state.watch_manager = watch_manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health_check():
        """Simple health check endpoint"""
        return {"status": "ok", "service": "logtree"}

    @app.get("/")
    def directory_tree():
        """Serve the whole tree under log_dir as one JSON object"""
        log_operation(logger, "serialize_tree", root=settings.log_dir)
        try:
            data = serialize_tree(settings.log_dir, settings.decode_errors)
        except LogTreeError as e:
            handle_error(logger, e, "serialize_tree")
            return PlainTextResponse(JSON_ERROR_MESSAGE, status_code=500)
        return Response(content=data, media_type="application/json")

    return app


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve a directory tree as JSON and log changes to it")
    parser.add_argument('--logdir', dest='log_dir', help='log directory to monitor (default /var/log)')
    parser.add_argument('--port', type=int, help='port to listen on (default 8080)')
    parser.add_argument('--host', help='address to bind (default 0.0.0.0)')
    parser.add_argument('--log-level', dest='log_level', help='logging level (default INFO)')
    parser.add_argument('--no-watch', dest='watch', action='store_false', default=None,
                        help='do not watch the directory for changes')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    try:
        settings = load_settings(**vars(args))
    except ConfigError as e:
        print(f"{e}: {'; '.join(e.details.get('errors', []))}")
        raise SystemExit(2)

    setup_logging(settings.log_level, settings.log_file)
    print(f"Monitoring log directory: {settings.log_dir}")
    print(f"Listening on port: {settings.port}")

    try:
        uvicorn.run(
            create_app(settings),
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower()
        )
    except Exception as e:
        print(f"Failed to start server: {str(e)}")
        raise


if __name__ == "__main__":
    main()
