import asyncio
import sys
from typing import Any, Callable

from fastapi import FastAPI
from loguru import logger
from pydantic import ValidationError

from k8s_app.app.composition import ServiceDependencies, create_service_dependencies
from k8s_app.app.config.settings import Settings
from k8s_app.app.constants import ExitCode
from k8s_app.app.core import SERVICE_NAME
from k8s_app.app.core.errors import DatabaseConnectionError, ListenerStartError
from k8s_app.app.core.logging import configure_logging
from k8s_app.app.core.shutdown import ShutdownSignal
from k8s_app.app.infrastructure.http.server import HttpListener
from k8s_app.app.ports.database_connection import DatabaseConnection
from k8s_app.app.routers.root import root_router


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def create_app(database: DatabaseConnection) -> FastAPI:
    """Build the ASGI app around an already-owned database connection."""
    app = FastAPI(
        title="Node K8s App",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.database = database
    app.include_router(root_router)
    return app


async def shutdown_service(listener: HttpListener | None, dependencies: ServiceDependencies) -> None:
    """Stop accepting requests, then release the database. The close runs even if the listener fails to stop."""
    try:
        if listener is not None:
            await listener.stop()
    finally:
        await dependencies.close()
        logger.bind(service_name=SERVICE_NAME, event="db_closed").info(
            "Mongoose connection closed due to app termination"
        )


async def run_service(
    settings: Settings,
    *,
    dependencies: ServiceDependencies | None = None,
    shutdown: ShutdownSignal | None = None,
    listener_factory: Callable[..., HttpListener] = HttpListener,
) -> int:
    """Connect, serve until a shutdown signal arrives, release. Returns the process exit code."""
    _log("service_starting")
    dependencies = dependencies or create_service_dependencies(settings)
    shutdown = shutdown or ShutdownSignal()
    shutdown.install()
    try:
        try:
            await dependencies.connect()
        except DatabaseConnectionError as e:
            logger.bind(service_name=SERVICE_NAME, event="service_start_failed").error("startup aborted: {}", e)
            await dependencies.close()
            return ExitCode.STARTUP_FAILURE

        listener: HttpListener | None = None
        try:
            if not shutdown.requested:
                listener = listener_factory(
                    create_app(dependencies.database),
                    host=settings.host,
                    port=settings.port,
                    log_level=settings.log_level,
                )
                await listener.start()
                _log("service_started", port=settings.port)
        except ListenerStartError as e:
            logger.bind(service_name=SERVICE_NAME, event="service_start_failed").error("startup aborted: {}", e)
            await dependencies.close()
            return ExitCode.STARTUP_FAILURE
        except Exception:
            await dependencies.close()
            raise

        try:
            await shutdown.wait()
        finally:
            await shutdown_service(listener, dependencies)
    finally:
        shutdown.uninstall()

    _log("service_stopped", signal=shutdown.signal_name)
    return ExitCode.OK


def main() -> None:
    try:
        settings = Settings()
    except ValidationError as e:
        configure_logging()
        logger.bind(service_name=SERVICE_NAME, event="invalid_configuration").error("invalid configuration: {}", e)
        sys.exit(ExitCode.STARTUP_FAILURE)

    configure_logging(settings.log_level, serialize=settings.log_json)
    try:
        exit_code = asyncio.run(run_service(settings))
    except Exception as e:
        logger.exception("service failed: {}", e)
        raise
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
