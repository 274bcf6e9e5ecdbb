"""Per-connection handler for the proctoring WebSocket protocol."""

import logging
import time
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Tuple

from .. import config
from ..models.session import ProctoringSession, Trigger, new_session_id
from ..services.auth import LoginSession, LoginValidationError, LoginValidator
from ..services.catalog import Catalog, StudentRecord
from ..services.eligibility import EligibilityError, EligibilityService, ExamCategory
from ..services.registry import SessionConflictError, SessionRegistry
from . import schemas
from .messages import (
    AssessmentStarted, Connect, EnvironmentScanned, Finished, IdCaptured, Keepalive,
    PhotoCaptured, Ping, Query, Rejoin, Start, StartOver, Unknown, parse_message,
)

logger = logging.getLogger(__name__)

LOG_PREFIX = "MPS WebSocket endpoint:"


class ProctoringEndpoint:
    """Drives proctoring sessions for one client connection.

    The hosting transport calls ``on_open``, ``on_message`` (in arrival
    order), ``on_error`` and ``on_close``. Every reply goes through ``send``.
    The handler only remembers the ID of the session it is driving; the
    session itself lives in the registry and is re-read for each message.
    """

    def __init__(
        self,
        send: Callable[[str], Awaitable[None]],
        registry: SessionRegistry,
        catalog: Catalog,
        validator: LoginValidator,
        eligibility: EligibilityService,
        *,
        clock: Callable[[], float] = time.time,
        timeout: float = config.SESSION_TIMEOUT_SECONDS,
        psid_length: int = config.PSID_LENGTH,
    ):
        self.send = send
        self.registry = registry
        self.catalog = catalog
        self.validator = validator
        self.eligibility = eligibility
        self.clock = clock
        self.timeout = timeout
        self.psid_length = psid_length

        # Per-connection state
        self.student: Optional[StudentRecord] = None
        self.psid: Optional[str] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def on_open(self) -> None:
        logger.info(f"{LOG_PREFIX} websocket opened")

    async def on_close(self) -> None:
        logger.info(f"{LOG_PREFIX} websocket closed")
        self.student = None
        self.psid = None

    async def on_error(self, error: BaseException) -> None:
        logger.warning(f"{LOG_PREFIX} websocket error: {error!r}")

    async def on_message(self, text: str) -> None:
        logger.info(f"{LOG_PREFIX} websocket received message: {text}")

        message = parse_message(text)
        if message is None:
            return

        if isinstance(message, Connect):
            await self.process_connect(message.login_session_id)
        elif isinstance(message, Query):
            await self.process_query()
        elif isinstance(message, Start):
            await self.process_start(message.exam_id)
        elif isinstance(message, PhotoCaptured):
            await self.process_trigger(Trigger.PHOTO_CAPTURED)
        elif isinstance(message, IdCaptured):
            await self.process_trigger(Trigger.ID_CAPTURED)
        elif isinstance(message, EnvironmentScanned):
            await self.process_trigger(Trigger.ENVIRONMENT_SCANNED)
        elif isinstance(message, AssessmentStarted):
            await self.process_trigger(Trigger.ASSESSMENT_STARTED)
        elif isinstance(message, Finished):
            await self.process_finished()
        elif isinstance(message, StartOver):
            await self.process_start_over(message.login_session_id)
        elif isinstance(message, Rejoin):
            await self.process_rejoin()
        elif isinstance(message, Ping):
            await self.process_ping()
        elif isinstance(message, Keepalive):
            await self.process_keepalive()
        elif isinstance(message, Unknown):
            logger.warning(f"{LOG_PREFIX} unexpected message type: {message.opcode!r}")

    # ------------------------------------------------------------------
    # Message handlers
    # ------------------------------------------------------------------

    async def process_connect(self, login_session_id: str) -> None:
        """Attach to the student's live session, or offer the menu of exams."""
        resolved = await self._resolve_student(login_session_id)
        if resolved is None:
            await self.send(schemas.ERROR)
            return
        login, student = resolved

        existing = self.registry.lookup_by_student(student.stu_id)
        if existing is not None:
            self.psid = existing.psid
            await self.send(schemas.session_frame(existing, connected=True))
            return

        self.psid = None
        categories = self._find_available_exams(login, student)
        if categories is None:
            await self.send(schemas.ERROR)
        else:
            await self.send(schemas.menu_frame(categories))

    async def process_query(self) -> None:
        session = self._current_session()
        if session is None:
            logger.warning("Query received while proctoring session is null")
            await self.send(schemas.ERROR)
        else:
            await self.send(schemas.session_frame(session))

    async def process_start(self, exam_id: str) -> None:
        """Create a new proctoring session for the selected exam."""
        if self.student is None:
            logger.warning("Received START request with no student set.")
            await self.send(schemas.ERROR)
            return

        if self._current_session() is not None:
            logger.warning("Attempt to create new proctoring session when one exists")
            await self.send(schemas.ERROR)
            return

        exam = self.catalog.query_exam(exam_id)
        if exam is None:
            logger.warning(f"Received START request with bad exam ID: {exam_id}")
            await self.send(schemas.ERROR)
            return

        session = ProctoringSession(
            psid=new_session_id(self.psid_length),
            stu_id=self.student.stu_id,
            course_id=exam.course,
            exam_id=exam.version,
            timeout_at=self.clock() + self.timeout,
        )
        try:
            self.registry.add(session)
        except SessionConflictError as e:
            logger.warning(f"Student {session.stu_id} already has a session; attaching to {e.existing.psid}")
            session = e.existing

        self.psid = session.psid
        await self.send(schemas.session_frame(session))

    async def process_trigger(self, trigger: Trigger) -> None:
        """Apply a state-advancing client event to the attached session."""
        if self._current_session() is None:
            logger.warning(f"{trigger.value.capitalize()} received while proctoring session is null")
            return

        session, allowed = self.registry.advance(self.psid, trigger, self.clock(), self.timeout)
        if session is None:
            logger.warning(f"Session {self.psid} ended before {trigger.value} could be applied")
            self.psid = None
            return

        if allowed:
            logger.info(f"{trigger.value.capitalize()} received - switching to {session.state.value}")
        else:
            logger.warning(f"Ignoring {trigger.value} on session {session} in state {session.state.value}")
        await self.send(schemas.session_frame(session))

    async def process_finished(self) -> None:
        session = self._current_session()
        if session is None:
            logger.warning("Assessment finished while proctoring session is null")
        else:
            logger.info(f"Assessment finished on session {session}")
            self.registry.remove(session)
            self.psid = None

        await self.send(schemas.CLOSED)

    async def process_start_over(self, login_session_id: str) -> None:
        """Abandon the attached session and offer the menu of exams again."""
        session = self._current_session()
        if session is not None:
            logger.info(f"Starting over: abandoning session {session}")
            self.registry.remove(session)
            self.psid = None

        resolved = await self._resolve_student(login_session_id)
        if resolved is None:
            await self.send(schemas.ERROR)
            return
        login, student = resolved

        categories = self._find_available_exams(login, student)
        if categories is None:
            await self.send(schemas.ERROR)
        else:
            await self.send(schemas.menu_frame(categories, terminated=True))

    async def process_rejoin(self) -> None:
        session = self._extend_timeout()
        if session is None:
            logger.warning("Session rejoined while proctoring session is null")
        else:
            logger.info(f"Session rejoined: {session}")
            await self.send(schemas.session_frame(session))

    async def process_ping(self) -> None:
        session = self._extend_timeout()
        if session is not None:
            await self.send(schemas.session_frame(session))

    async def process_keepalive(self) -> None:
        self._extend_timeout()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _current_session(self) -> Optional[ProctoringSession]:
        """The attached session, or None (detaching if it has been swept)."""
        if self.psid is None:
            return None
        session = self.registry.lookup(self.psid)
        if session is None:
            logger.info(f"Session {self.psid} is no longer live")
            self.psid = None
        return session

    def _extend_timeout(self) -> Optional[ProctoringSession]:
        if self._current_session() is None:
            return None
        session = self.registry.extend_timeout(self.psid, self.clock(), self.timeout)
        if session is None:
            self.psid = None
        return session

    async def _resolve_student(self, login_session_id: str) -> Optional[Tuple[LoginSession, StudentRecord]]:
        try:
            login = await self.validator.validate(login_session_id)
        except LoginValidationError as e:
            logger.warning(f"{LOG_PREFIX} unable to validate login session: {e}")
            return None

        student = self.catalog.query_student(login.student_id)
        if student is None:
            logger.warning(f"{LOG_PREFIX} unable to look up student {login.student_id}")
            return None

        self.student = student
        return login, student

    def _find_available_exams(self, login: LoginSession,
                              student: StudentRecord) -> Optional[List[ExamCategory]]:
        now = login.now or datetime.now()
        try:
            return self.eligibility.find_available_exams(student, now)
        except EligibilityError as e:
            logger.warning(f"{LOG_PREFIX} unable to determine exams for {student.stu_id}: {e}")
            return None
