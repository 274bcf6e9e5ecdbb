"""Validation of login sessions presented by proctoring clients."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError

from .catalog import Catalog

logger = logging.getLogger(__name__)


class LoginValidationError(Exception):
    """Raised when a login session ID cannot be validated."""


@dataclass(frozen=True)
class LoginSession:
    """An authenticated login session, distinct from any proctoring session."""

    login_session_id: str
    user_id: str
    effective_user_id: Optional[str] = None
    role: str = "STUDENT"
    now: Optional[datetime] = None

    @property
    def student_id(self) -> str:
        return self.effective_user_id or self.user_id


class LoginValidator(Protocol):
    async def validate(self, login_session_id: str) -> LoginSession:
        ...


class InMemoryLoginValidator:
    """Validates login session IDs against the records in a ``Catalog``."""

    def __init__(self, catalog: Catalog, now: Callable[[], datetime] = datetime.now):
        self.catalog = catalog
        self.now = now

    async def validate(self, login_session_id: str) -> LoginSession:
        if not login_session_id:
            raise LoginValidationError("No login session ID provided")

        record = self.catalog.query_login_session(login_session_id)
        if record is None:
            raise LoginValidationError(f"Invalid session {login_session_id}")

        now = self.now()
        if record.expires_at is not None and record.expires_at < now:
            raise LoginValidationError("Session has timed out")

        return LoginSession(
            login_session_id=record.login_session_id,
            user_id=record.user_id,
            effective_user_id=record.effective_user_id,
            role=record.role,
            now=now,
        )


class SessionServiceReply(BaseModel):
    """Body of a successful session service lookup."""

    user_id: str = Field(min_length=1)
    effective_user_id: Optional[str] = Field(default=None, min_length=1)
    role: str = "STUDENT"


class RemoteLoginValidator:
    """Validates login session IDs with an external session service.

    The service answers ``GET {url}/{login_session_id}`` with a JSON object
    holding ``user_id`` and optionally ``effective_user_id`` and ``role``.
    """

    def __init__(self, url: str, timeout: float = 5.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 now: Callable[[], datetime] = datetime.now):
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.now = now

    async def validate(self, login_session_id: str) -> LoginSession:
        if not login_session_id:
            raise LoginValidationError("No login session ID provided")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(f"{self.url}/{login_session_id}")
        except httpx.HTTPError as e:
            raise LoginValidationError(f"Session service unavailable: {e}") from e

        if response.status_code != 200:
            raise LoginValidationError(
                f"Session service rejected {login_session_id}: status {response.status_code}"
            )

        try:
            reply = SessionServiceReply.model_validate_json(response.content)
        except ValidationError as e:
            raise LoginValidationError(f"Malformed session service response: {e}") from e

        return LoginSession(
            login_session_id=login_session_id,
            user_id=reply.user_id,
            effective_user_id=reply.effective_user_id,
            role=reply.role,
            now=self.now(),
        )


def build_login_validator(catalog: Catalog, url: Optional[str] = None,
                          timeout: float = 5.0) -> LoginValidator:
    """Use the remote session service when a URL is configured, else the catalog."""
    if url:
        logger.info(f"[AUTH] validating login sessions with {url}")
        return RemoteLoginValidator(url, timeout)
    logger.info("[AUTH] validating login sessions from catalog data")
    return InMemoryLoginValidator(catalog)
