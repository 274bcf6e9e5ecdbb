"""Shared fixtures for the proctoring service tests."""

from datetime import date, datetime
from typing import List, Optional

from mps.services.catalog import (
    AdminHold, Catalog, CatalogData, ExamRecord, LoginSessionRecord, Registration,
    SpecialCategory, StudentRecord, Term,
)

NOW = datetime(2026, 10, 19, 10, 0, 0)

STUDENT_ID = "888888888"
OTHER_STUDENT_ID = "888888889"
TOKEN = "validtoken"
OTHER_TOKEN = "othertoken"


class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, start: float = 1_800_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_exams() -> List[ExamRecord]:
    return [
        ExamRecord(version="171UE", course="M 117", unit=1, exam_type="U", button_label="Unit 1 Exam"),
        ExamRecord(version="172UE", course="M 117", unit=2, exam_type="U", button_label="Unit 2 Exam"),
        ExamRecord(version="173UE", course="M 117", unit=3, exam_type="U", button_label="Unit 3 Exam",
                   active=False),
        ExamRecord(version="181UE", course="M 118", unit=1, exam_type="U", button_label="Unit 1 Exam"),
        ExamRecord(version="18FIN", course="M 118", unit=5, exam_type="F", button_label="Final Exam"),
        ExamRecord(version="MT4UE", course="M 100T", unit=4, exam_type="U", button_label="ELM Exam"),
        ExamRecord(version="7T4UE", course="M 1170", unit=4, exam_type="U", button_label="Tutorial Exam"),
        ExamRecord(version="7T3UE", course="M 1170", unit=3, exam_type="U", button_label="Tutorial Unit 3"),
        ExamRecord(version="MPTRW", course="M 100P", unit=1, exam_type="Q", button_label="Math Placement Tool"),
    ]


def make_student(stu_id: str = STUDENT_ID, registrations: Optional[List[Registration]] = None,
                 **kwargs) -> StudentRecord:
    if registrations is None:
        registrations = [Registration(course="M 117", term="FA26", open_status="Y", instrn_type="CE")]
    kwargs.setdefault("placement_attempts_remaining", 1)
    return StudentRecord(stu_id=stu_id, first_name="Test", last_name="Student",
                         registrations=registrations, **kwargs)


def make_catalog(students: Optional[List[StudentRecord]] = None) -> Catalog:
    if students is None:
        students = [make_student(), make_student(OTHER_STUDENT_ID, registrations=[],
                                                 placement_attempts_remaining=0,
                                                 elm_exam_eligible=True)]
    return Catalog(CatalogData(
        terms=[Term(term_id="FA26", start_date=date(2026, 8, 24), end_date=date(2026, 12, 18))],
        exams=make_exams(),
        students=students,
        login_sessions=[
            LoginSessionRecord(login_session_id=TOKEN, user_id=STUDENT_ID),
            LoginSessionRecord(login_session_id=OTHER_TOKEN, user_id=OTHER_STUDENT_ID),
            LoginSessionRecord(login_session_id="expired", user_id=STUDENT_ID,
                               expires_at=datetime(2026, 10, 19, 9, 0, 0)),
            LoginSessionRecord(login_session_id="nostudent", user_id="111111111"),
            LoginSessionRecord(login_session_id="actingas", user_id="999999999",
                               effective_user_id=STUDENT_ID, role="ADMINISTRATOR"),
        ],
    ))


__all__ = [
    "AdminHold", "FakeClock", "NOW", "OTHER_STUDENT_ID", "OTHER_TOKEN", "Registration",
    "STUDENT_ID", "SpecialCategory", "TOKEN", "make_catalog", "make_exams", "make_student",
]
