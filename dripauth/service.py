"""
HTTP service for DripAuth.

Exposes the drip request interface, the admin configuration interface and
read-only views over engine state.
"""

import logging
import math
import os
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from . import config as settings
from .codec import nonce_to_hex
from .engine import DripEngine
from .errors import CooldownNotElapsedError, DripError, ErrorKind
from .events import InMemoryEventLog
from .logging_config import configure_logging, set_request_id
from .models import (
    CooldownStatus,
    DripRequest,
    ErrorBody,
    EventList,
    ModuleConfigBody,
    ModuleView,
    NonceStatus,
)
from .modules import create_module
from .registry import ModuleConfig, ModuleRegistry
from .security import (
    ValidationError,
    parse_identifier,
    parse_nonce,
    validate_base64,
    validate_module_id,
)
from .transfer import InMemoryLedger

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.MODULE_NOT_SUPPORTED: 404,
    ErrorKind.AUTHENTICATION_FAILED: 401,
    ErrorKind.NONCE_ALREADY_USED: 409,
    ErrorKind.COOLDOWN_NOT_ELAPSED: 429,
    ErrorKind.TRANSFER_FAILED: 502,
}


def build_engine_from_config() -> DripEngine:
    """Registry, ledger and engine as described by the environment."""
    registry = ModuleRegistry(admin=settings.ADMIN_IDENTITY)

    if os.path.exists(settings.MODULES_PATH):
        for definition in settings.load_module_definitions(settings.MODULES_PATH):
            module = create_module(
                definition["type"],
                module_id=definition["module_id"],
                authority_public_key=definition["authority_public_key"],
                scheme_name=definition.get("scheme_name"),
                version=definition.get("version", "1"),
            )
            registry.install(settings.ADMIN_IDENTITY, module)
            registry.configure(
                settings.ADMIN_IDENTITY,
                module.module_id,
                ModuleConfig.from_dict(definition["config"]),
            )
    else:
        logger.warning("Module definition file %s not found; registry is empty", settings.MODULES_PATH)

    return DripEngine(
        registry=registry,
        transfer=InMemoryLedger(reserve=settings.RESERVE),
        chain_id=settings.CHAIN_ID,
    )


def _module_view(engine: DripEngine, module_id: str) -> ModuleView:
    module, config = engine.registry.resolve(module_id)
    view = ModuleView(module_id=module_id)
    if module is not None:
        view = ModuleView(module_id=module_id, **{
            k: v for k, v in module.describe().items() if k != "module_id"
        })
    if config is not None:
        view.config = ModuleConfigBody(**config.to_dict())
    return view


def create_app(engine: Optional[DripEngine] = None) -> FastAPI:
    app = FastAPI(
        title="DripAuth",
        debug=settings.is_debug(),
        docs_url=None if settings.is_production() else "/docs",
    )
    app.state.engine = engine

    if engine is None:
        @app.on_event("startup")
        def _startup():
            configure_logging(settings.LOG_LEVEL, json_format=settings.LOG_JSON)
            app.state.engine = build_engine_from_config()

    def get_engine() -> DripEngine:
        if app.state.engine is None:
            raise HTTPException(503, "ENGINE_NOT_READY")
        return app.state.engine

    @app.middleware("http")
    async def _request_id(request: Request, call_next):
        request_id = set_request_id(request.headers.get("X-Request-ID"))
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(DripError)
    async def _drip_error(request: Request, exc: DripError):
        body = {"error": exc.kind.value, "detail": exc.message}
        headers = {}
        if isinstance(exc, CooldownNotElapsedError):
            retry_after = max(1, math.ceil(exc.retry_after))
            headers["Retry-After"] = str(retry_after)
            body["extra"] = {"retry_after": exc.retry_after}
        return JSONResponse(status_code=STATUS_BY_KIND[exc.kind], content=body, headers=headers)

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=422,
            content={"error": "ValidationError", "detail": str(exc)},
        )

    @app.get("/health")
    def health():
        engine = get_engine()
        return {
            "status": "ok",
            "env": settings.ENV,
            "chain_id": engine.chain_id,
            "modules": len(engine.registry.list_modules()),
            "config": settings.validate_config(),
        }

    @app.post("/drip", responses={s: {"model": ErrorBody} for s in (401, 404, 409, 429, 502)})
    def drip(req: DripRequest):
        engine = get_engine()
        event = engine.drip(
            recipient=req.recipient,
            nonce=parse_nonce(req.nonce),
            module_id=validate_module_id(req.module_id),
            identifier=parse_identifier(req.identifier),
            signature=validate_base64(req.signature, "signature"),
        )
        return event.to_dict()

    @app.put("/modules/{module_id}", responses={403: {"model": ErrorBody}})
    def configure_module(
        module_id: str,
        body: ModuleConfigBody,
        caller: Optional[str] = Header(default=None, alias="X-Caller-Identity")
    ):
        engine = get_engine()
        validate_module_id(module_id)
        engine.registry.configure(caller, module_id, ModuleConfig(**body.model_dump()))
        return _module_view(engine, module_id)

    @app.get("/modules")
    def list_modules():
        engine = get_engine()
        return [_module_view(engine, m) for m in engine.registry.list_modules()]

    @app.get("/modules/{module_id}")
    def get_module(module_id: str):
        engine = get_engine()
        module, config = engine.registry.resolve(module_id)
        if module is None and config is None:
            raise HTTPException(404, "NOT_FOUND")
        return _module_view(engine, module_id)

    @app.get("/nonces/{nonce}")
    def nonce_status(nonce: str):
        value = parse_nonce(nonce)
        return NonceStatus(nonce="0x" + nonce_to_hex(value), used=get_engine().is_nonce_used(value))

    @app.get("/cooldowns/{module_id}/{identifier}")
    def cooldown_status(module_id: str, identifier: str):
        engine = get_engine()
        ident = parse_identifier(identifier)
        return CooldownStatus(
            module_id=module_id,
            identifier="0x" + ident.hex(),
            last_drip=engine.last_drip(module_id, ident),
            next_drip_at=engine.next_drip_at(module_id, ident),
        )

    @app.get("/events")
    def events(module_id: Optional[str] = None, recipient: Optional[str] = None):
        sink = get_engine().event_sink
        if not isinstance(sink, InMemoryEventLog):
            raise HTTPException(404, "EVENT_FEED_UNAVAILABLE")
        return EventList(events=[e.to_dict() for e in sink.query(module_id=module_id, recipient=recipient)])

    return app


app = create_app()
