from typing import List, Optional

from pydantic import BaseModel

from ..models.session import ProctoringSession
from ..services.eligibility import ExamCategory

ERROR = "ERROR"
CLOSED = "CLOSED"
CONNECTED_NO_SESSION = "CONNECTED-NO-SESSION"
CONNECTED_SESSION = "CONNECTED-SESSION"
SESSION = "SESSION"
TERMINATED = "TERMINATED"


class ExamPayload(BaseModel):
    id: str
    label: str
    note: Optional[str] = None


class CategoryPayload(BaseModel):
    title: str
    exams: List[ExamPayload]


class MenuPayload(BaseModel):
    categories: List[CategoryPayload]

    @classmethod
    def from_categories(cls, categories: List[ExamCategory]) -> "MenuPayload":
        return cls(categories=[
            CategoryPayload(
                title=cat.title,
                exams=[ExamPayload(id=e.exam_id, label=e.button_label, note=e.note) for e in cat.exams],
            )
            for cat in categories
        ])


class SessionPayload(BaseModel):
    psid: str
    stuid: str
    courseid: str
    examid: str
    state: str

    @classmethod
    def from_session(cls, session: ProctoringSession) -> "SessionPayload":
        return cls(**session.to_dict())


def _frame(tag: str, payload: BaseModel) -> str:
    return tag + payload.model_dump_json(exclude_none=True)


def menu_frame(categories: List[ExamCategory], terminated: bool = False) -> str:
    """``CONNECTED-NO-SESSION{...}`` (or ``TERMINATED{...}`` after a start-over)."""
    tag = TERMINATED if terminated else CONNECTED_NO_SESSION
    return _frame(tag, MenuPayload.from_categories(categories))


def session_frame(session: ProctoringSession, connected: bool = False) -> str:
    """``SESSION{...}`` (or ``CONNECTED-SESSION{...}`` when attaching on connect)."""
    tag = CONNECTED_SESSION if connected else SESSION
    return _frame(tag, SessionPayload.from_session(session))
