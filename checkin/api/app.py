"""FastAPI application for party check-in registration.

The lifespan builds the storage adapters, the notifier and the single
``RegistrationController`` and stores them on ``app.state``.  Handlers get
them through ``Depends`` rather than reaching for module globals.
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from checkin.config import get_settings
from checkin.errors import GuestValidationError, RegistrationError, RemoteConfigError
from checkin.notifications import Notifier
from checkin.presentation import compute_stats, export_csv, export_filename, recent_guests
from checkin.registration.config_source import RemoteConfigSource
from checkin.registration.controller import ConnectOutcome, RegistrationController
from checkin.storage.local_store import KeyValueFile, LocalGuestStore
from checkin.storage.remote_store import FirestoreGuestStore, describe_remote_config

from .errors import ErrorCode, error_response
from .middleware import CheckinRequestMiddleware, RequestBodyLimitMiddleware
from .models import (
    ActionResponse,
    ConfigStatusResponse,
    ConnectResponse,
    GuestIn,
    GuestListResponse,
    GuestOut,
    HealthResponse,
    LiveResponse,
    NotificationOut,
    RegisterResponse,
)

# Note: settings are accessed via get_settings() at call sites rather than
# frozen at module level so test monkeypatching works.
logger = logging.getLogger(__name__)


def build_controller() -> RegistrationController:
    """Wire the local store, the Firestore store and the config source."""
    settings = get_settings()
    kv = KeyValueFile(settings.LOCAL_STORE_PATH)
    return RegistrationController(
        local=LocalGuestStore(kv, key=settings.LOCAL_GUESTS_KEY),
        remote=FirestoreGuestStore(collection=settings.FIRESTORE_COLLECTION),
        config_source=RemoteConfigSource(kv, settings.REMOTE_CONFIG_PATH),
        tz_name=settings.ENTRY_TIME_ZONE,
    )


def announce(notifier: Notifier, outcome: ConnectOutcome) -> None:
    """Turn a connection outcome into banners."""
    if outcome.ok:
        notifier.success(outcome.message)
    else:
        notifier.error(outcome.message)
    if outcome.local_data_corrupted:
        notifier.error("Datos locales dañados - se ignoraron registros inválidos")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Decide online/offline mode on startup, stop the reconnect timer on shutdown."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    controller = build_controller()
    notifier = Notifier(ttl=settings.NOTIFICATION_TTL_SECONDS)
    app.state.controller = controller
    app.state.notifier = notifier

    outcome = await controller.initialize()
    announce(notifier, outcome)
    logger.info("Startup complete in %s mode (%d guests)", outcome.mode.value, len(controller.guests))

    reconnect_task: asyncio.Task | None = None
    if settings.RECONNECT_INTERVAL_SECONDS > 0:
        reconnect_task = asyncio.create_task(
            controller.reconnect_periodically(settings.RECONNECT_INTERVAL_SECONDS)
        )

    app.state.ready = True
    yield
    app.state.ready = False
    if reconnect_task is not None:
        reconnect_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reconnect_task
    logger.info("Application shutdown complete.")


def get_controller(request: Request) -> RegistrationController:
    return request.app.state.controller


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def _connect_response(outcome: ConnectOutcome) -> ConnectResponse:
    return ConnectResponse(
        mode=outcome.mode.value,
        ok=outcome.ok,
        message=outcome.message,
        local_data_corrupted=outcome.local_data_corrupted,
    )


def _validation_message(exc: RequestValidationError) -> str:
    """First field error as one line; a bad guest name gets the form's message."""
    errors = exc.errors()
    if not errors:
        return "Solicitud inválida"
    first = errors[0]
    field = str(first.get("loc", ("",))[-1])
    if field == "name":
        return "El nombre es obligatorio"
    return f"{field}: {first.get('msg', 'invalid')}"


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    # Starlette runs middleware in reverse add order: the body limit is
    # outermost, so oversized bodies never reach the request envelope.
    app.add_middleware(CheckinRequestMiddleware)
    app.add_middleware(RequestBodyLimitMiddleware)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(ErrorCode.VALIDATION_ERROR, _validation_message(exc)),
        )

    # ------------------------------------------------------------------
    # Probes
    # ------------------------------------------------------------------
    @app.get("/live", response_model=LiveResponse)
    async def liveness():
        return LiveResponse()

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request):
        ready = getattr(request.app.state, "ready", False)
        controller: RegistrationController | None = getattr(request.app.state, "controller", None)
        healthy = ready and controller is not None and controller.initialized
        body = HealthResponse(
            status="healthy" if healthy else "degraded",
            version=settings.VERSION,
            environment=settings.ENVIRONMENT,
            mode=controller.mode.value if controller else "unknown",
            guest_count=len(controller.guests) if controller else 0,
        )
        return JSONResponse(content=body.model_dump(), status_code=200 if healthy else 503)

    # ------------------------------------------------------------------
    # Guests
    # ------------------------------------------------------------------
    @app.get("/guests", response_model=GuestListResponse)
    async def list_guests(controller: RegistrationController = Depends(get_controller)):
        guests = controller.guests
        stats = compute_stats(guests)
        return GuestListResponse(
            mode=controller.mode.value,
            total_guests=stats.total_guests,
            total_companions=stats.total_companions,
            guests=[
                GuestOut.from_record(g)
                for g in recent_guests(guests, get_settings().RECENT_GUESTS_LIMIT)
            ],
        )

    @app.post("/guests", response_model=RegisterResponse, status_code=201)
    async def register_guest(
        body: GuestIn,
        controller: RegistrationController = Depends(get_controller),
        notifier: Notifier = Depends(get_notifier),
    ):
        try:
            record = await controller.register(body.name, body.phone, body.companions)
        except GuestValidationError as exc:
            notifier.error(str(exc))
            return JSONResponse(
                status_code=422,
                content=error_response(ErrorCode.VALIDATION_ERROR, str(exc)),
            )
        except RegistrationError as exc:
            notifier.error(str(exc))
            return JSONResponse(
                status_code=503,
                content=error_response(ErrorCode.STORE_UNAVAILABLE, str(exc)),
            )
        message = "¡Registro exitoso!"
        notifier.success(message)
        return RegisterResponse(guest=GuestOut.from_record(record), message=message)

    @app.delete("/guests/{guest_id}", response_model=ActionResponse)
    async def delete_guest(
        guest_id: str,
        controller: RegistrationController = Depends(get_controller),
        notifier: Notifier = Depends(get_notifier),
    ):
        try:
            await controller.delete_guest(guest_id)
        except RegistrationError as exc:
            notifier.error(str(exc))
            return JSONResponse(
                status_code=503,
                content=error_response(ErrorCode.STORE_UNAVAILABLE, str(exc)),
            )
        message = "Registro eliminado"
        notifier.success(message)
        return ActionResponse(status="deleted", message=message)

    @app.delete("/guests", response_model=ActionResponse)
    async def clear_guests(
        controller: RegistrationController = Depends(get_controller),
        notifier: Notifier = Depends(get_notifier),
    ):
        if not controller.guests:
            message = "No hay datos para eliminar"
            notifier.error(message)
            return JSONResponse(status_code=409, content=error_response(ErrorCode.NO_DATA, message))
        try:
            await controller.clear_all()
        except RegistrationError as exc:
            notifier.error(str(exc))
            return JSONResponse(
                status_code=503,
                content=error_response(ErrorCode.STORE_UNAVAILABLE, str(exc)),
            )
        message = "Todos los registros eliminados"
        notifier.success(message)
        return ActionResponse(status="cleared", message=message)

    @app.get("/guests/export")
    async def export_guests(
        controller: RegistrationController = Depends(get_controller),
        notifier: Notifier = Depends(get_notifier),
    ):
        guests = controller.guests
        if not guests:
            message = "No hay datos para exportar"
            notifier.error(message)
            return JSONResponse(status_code=409, content=error_response(ErrorCode.NO_DATA, message))
        notifier.success("Archivo CSV descargado")
        return Response(
            content=export_csv(guests),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
        )

    # ------------------------------------------------------------------
    # Remote configuration
    # ------------------------------------------------------------------
    @app.get("/config", response_model=ConfigStatusResponse)
    async def config_status(controller: RegistrationController = Depends(get_controller)):
        configured = controller.config_source.is_configured
        return ConfigStatusResponse(
            configured=configured,
            mode=controller.mode.value,
            show_config=not configured,
        )

    @app.post("/config/remote", response_model=ConnectResponse)
    async def save_remote_config(
        body: dict[str, Any],
        controller: RegistrationController = Depends(get_controller),
        notifier: Notifier = Depends(get_notifier),
    ):
        try:
            describe_remote_config(body)
        except RemoteConfigError as exc:
            notifier.error(str(exc))
            return JSONResponse(
                status_code=422,
                content=error_response(ErrorCode.INVALID_CONFIG, str(exc)),
            )
        controller.config_source.save(body)
        outcome = await controller.reconnect(body)
        announce(notifier, outcome)
        return _connect_response(outcome)

    @app.post("/config/offline", response_model=ActionResponse)
    async def init_offline_mode(
        controller: RegistrationController = Depends(get_controller),
        notifier: Notifier = Depends(get_notifier),
    ):
        controller.config_source.mark_configured()
        message = "Configurado en modo offline"
        notifier.success(message)
        return ActionResponse(status="configured", message=message)

    @app.post("/config/reconnect", response_model=ConnectResponse)
    async def reconnect(
        controller: RegistrationController = Depends(get_controller),
        notifier: Notifier = Depends(get_notifier),
    ):
        outcome = await controller.reconnect()
        announce(notifier, outcome)
        return _connect_response(outcome)

    # ------------------------------------------------------------------
    # Banners
    # ------------------------------------------------------------------
    @app.get("/notifications", response_model=list[NotificationOut])
    async def notifications(notifier: Notifier = Depends(get_notifier)):
        return [NotificationOut(level=n.level, message=n.message) for n in notifier.active()]

    return app


app = create_app()

if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        "checkin.api.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8080")),
        reload=True,
    )
