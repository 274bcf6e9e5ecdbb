"""Student, exam, term and login-session records used by the proctoring service."""

import logging
import os
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

FATAL_HOLD = "F"


class Term(BaseModel):
    term_id: str
    start_date: date
    end_date: date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class ExamRecord(BaseModel):
    version: str
    course: str
    unit: int = 0
    exam_type: str = "U"
    button_label: str = ""
    active: bool = True


class Registration(BaseModel):
    course: str
    term: str
    open_status: Optional[str] = None
    instrn_type: Optional[str] = None


class AdminHold(BaseModel):
    hold_id: str
    severity: str = FATAL_HOLD


class SpecialCategory(BaseModel):
    category: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def applies_on(self, day: date) -> bool:
        if self.start_date and day < self.start_date:
            return False
        if self.end_date and day > self.end_date:
            return False
        return True


class StudentRecord(BaseModel):
    stu_id: str
    first_name: str = ""
    last_name: str = ""
    registrations: List[Registration] = Field(default_factory=list)
    holds: List[AdminHold] = Field(default_factory=list)
    special_categories: List[SpecialCategory] = Field(default_factory=list)
    elm_exam_eligible: bool = False
    precalc_tutorial_courses: List[str] = Field(default_factory=list)
    placement_attempts_remaining: int = 0

    def is_special_category(self, day: date, category: str) -> bool:
        return any(c.category == category and c.applies_on(day) for c in self.special_categories)

    def has_fatal_hold(self) -> bool:
        return any(h.severity == FATAL_HOLD for h in self.holds)

    def active_registrations(self, term_id: str) -> List[Registration]:
        return [r for r in self.registrations if r.term == term_id]


class LoginSessionRecord(BaseModel):
    login_session_id: str
    user_id: str
    effective_user_id: Optional[str] = None
    role: str = "STUDENT"
    expires_at: Optional[datetime] = None


class CatalogData(BaseModel):
    terms: List[Term] = Field(default_factory=list)
    exams: List[ExamRecord] = Field(default_factory=list)
    students: List[StudentRecord] = Field(default_factory=list)
    login_sessions: List[LoginSessionRecord] = Field(default_factory=list)


class Catalog:
    """Read-only lookups over the records of a ``CatalogData``."""

    def __init__(self, data: Optional[CatalogData] = None):
        data = data or CatalogData()
        self.terms: List[Term] = list(data.terms)
        self._exams: Dict[str, ExamRecord] = {e.version: e for e in data.exams}
        self._students: Dict[str, StudentRecord] = {s.stu_id: s for s in data.students}
        self._login_sessions: Dict[str, LoginSessionRecord] = {
            ls.login_session_id: ls for ls in data.login_sessions
        }

    @classmethod
    def load(cls, path: Optional[str]) -> "Catalog":
        """Load a catalog from a JSON file; a missing file gives an empty catalog."""
        if not path or not os.path.exists(path):
            logger.warning(f"[CATALOG] data file not found: {path}")
            return cls()

        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
        try:
            data = CatalogData.model_validate_json(text)
        except ValidationError as e:
            raise ValueError(f"Invalid catalog data in {path}: {e}") from e

        logger.info(
            f"[CATALOG] loaded {len(data.students)} students, {len(data.exams)} exams from {path}"
        )
        return cls(data)

    def query_student(self, stu_id: str) -> Optional[StudentRecord]:
        return self._students.get(stu_id)

    def query_exam(self, version: str) -> Optional[ExamRecord]:
        return self._exams.get(version)

    def query_active_by_course(self, course: str) -> List[ExamRecord]:
        return [e for e in self._exams.values() if e.course == course and e.active]

    def query_active_exam(self, course: str, unit: int, exam_type: str) -> Optional[ExamRecord]:
        for exam in self.query_active_by_course(course):
            if exam.unit == unit and exam.exam_type == exam_type:
                return exam
        return None

    def query_login_session(self, login_session_id: str) -> Optional[LoginSessionRecord]:
        return self._login_sessions.get(login_session_id)

    def active_term(self, day: date) -> Optional[Term]:
        for term in self.terms:
            if term.contains(day):
                return term
        return None
