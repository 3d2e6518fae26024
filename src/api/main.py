"""
FastAPI gateway: contacts, messages, status, and manual refresh over one opened archive.
Build with create_app(service, settings); the CLI in server/ serves it with uvicorn.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.auth import AuthGate
from api.errors import (
    ApiError,
    AuthError,
    InternalError,
    NotFoundError,
    ValidationError,
    error_response,
    success,
)
from chatvault.application import ArchiveService, EnrichedMessage
from chatvault.config import ServerSettings
from chatvault.domain import Contact

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE_LIMIT = 1000

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Authorization, Content-Type",
}


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# --- Response payloads ---


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict:
        return self.model_dump(by_alias=True)


class ContactItem(_CamelModel):
    index: int
    nick_name: str
    wxid: str
    remark: str
    alias: str

    @classmethod
    def from_contact(cls, index: int, contact: Contact) -> "ContactItem":
        return cls(
            index=index,
            nick_name=contact.nick_name,
            wxid=contact.username,
            remark=contact.remark,
            alias=contact.alias,
        )


class MessageItem(_CamelModel):
    local_id: int
    create_time: int
    formatted_time: str
    type: str
    local_type: int
    content: str
    is_send: bool
    sender_username: str
    sender_display_name: str

    @classmethod
    def from_message(cls, message: EnrichedMessage) -> "MessageItem":
        r = message.record
        return cls(
            local_id=r.local_id,
            create_time=r.create_time,
            formatted_time=r.formatted_time,
            type=r.type_label,
            local_type=r.local_type,
            content=r.content,
            is_send=r.is_send,
            sender_username=r.sender_username,
            sender_display_name=message.sender_display_name,
        )


class SessionItem(_CamelModel):
    wxid: str
    nickname: str
    remark: str
    display_name: str
    message_count: int


class Pagination(_CamelModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class StatusItem(_CamelModel):
    status: str = "running"
    database_connected: bool
    database_path: str
    contacts_cache_time: str | None
    contacts_count: int
    shard_count: int
    uptime: int
    refresh_interval_seconds: int
    port: int


class RefreshItem(_CamelModel):
    contacts_count: int
    refresh_time: str | None


def create_app(service: ArchiveService, settings: ServerSettings) -> FastAPI:
    """Build the API for one archive. The app starts the service on startup and closes it on shutdown."""
    auth = AuthGate(settings.auth_key)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service.start()
        try:
            yield
        finally:
            service.close()

    app = FastAPI(title="chatvault API", lifespan=lifespan, redirect_slashes=False)
    app.state.service = service
    app.state.settings = settings

    # --- Gateway: preflight, auth, top-level failures, CORS, access log ---

    @app.middleware("http")
    async def gateway(request: Request, call_next):
        started = time.perf_counter()
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        elif not auth.validate(request):
            response = error_response(AuthError())
        else:
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.exception(
                    "Unhandled error: %s %s", request.method, request.url.path
                )
                response = error_response(InternalError(f"Internal Server Error: {exc}"))
        response.headers.update(CORS_HEADERS)
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "%s %s - %d (%dms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return error_response(NotFoundError(f"Not Found: {request.url.path}"))
        return error_response(_as_api_error(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'][1:])}: {err['msg']}"
            for err in exc.errors()
        )
        return error_response(ValidationError(f"Bad Request: {problems}"))

    # --- Routes ---

    @app.get("/api/contacts")
    def list_contacts():
        snapshot = service.directory.get()
        contacts = [
            ContactItem.from_contact(i, c).dump()
            for i, c in enumerate(snapshot.contacts, start=1)
        ]
        return success(
            {
                "total": len(contacts),
                "contacts": contacts,
                "lastUpdateTime": _iso(snapshot.captured_at),
            }
        )

    @app.post("/api/contacts/refresh")
    def refresh_contacts():
        count = service.directory.manual_refresh()
        snapshot = service.directory.snapshot
        payload = RefreshItem(
            contacts_count=count,
            refresh_time=_iso(snapshot.captured_at if snapshot else None),
        )
        return success(payload.dump(), message="Contacts refreshed successfully")

    @app.get("/api/messages/")
    def messages_missing_id():
        raise ValidationError("Missing wxid parameter")

    @app.get("/api/messages/{wxid}")
    def get_messages(
        wxid: str,
        limit: int = Query(DEFAULT_MESSAGE_LIMIT, ge=1),
        offset: int = Query(0, ge=0),
    ):
        if not wxid.strip():
            raise ValidationError("wxid cannot be empty")
        page = service.messages.page(wxid, limit, offset)
        session = page.session
        return success(
            {
                "session": SessionItem(
                    wxid=session.username,
                    nickname=session.nick_name,
                    remark=session.remark,
                    display_name=session.display_name,
                    message_count=session.message_count,
                ).dump(),
                "messages": [MessageItem.from_message(m).dump() for m in page.messages],
                "pagination": Pagination(
                    limit=page.limit,
                    offset=page.offset,
                    total=page.total,
                    has_more=page.has_more,
                ).dump(),
                "exportTime": datetime.now().isoformat(),
            }
        )

    @app.get("/api/status")
    def get_status():
        status = service.status()
        payload = StatusItem(
            database_connected=status.database_connected,
            database_path=str(status.database_path),
            contacts_cache_time=_iso(status.contacts_cache_time),
            contacts_count=status.contacts_count,
            shard_count=status.shard_count,
            uptime=status.uptime_seconds,
            refresh_interval_seconds=status.refresh_interval_seconds,
            port=settings.port,
        )
        return success(payload.dump())

    return app


def _as_api_error(exc: StarletteHTTPException) -> ApiError:
    error = ApiError(str(exc.detail))
    error.status_code = exc.status_code
    return error
