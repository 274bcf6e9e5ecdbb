"""Determines which proctored exams a student may currently start."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from .catalog import Catalog, StudentRecord, Term

logger = logging.getLogger(__name__)

PROCTORED_COURSES = ("M 117", "M 118", "M 124", "M 125", "M 126")
ELM_EXAM_ID = "MT4UE"
PLACEMENT_EXAM_ID = "MPTRW"
PLACEMENT_FEE_NOTE = "One-time $15 fee"

FINAL_EXAM_UNIT = 5


@dataclass(frozen=True)
class ExamEntry:
    """An exam the student may pick, as shown on a menu button."""

    exam_id: str
    button_label: str
    note: Optional[str] = None


@dataclass
class ExamCategory:
    title: str
    exams: List[ExamEntry] = field(default_factory=list)


class EligibilityProvider(Protocol):
    title: str

    def list_eligible_exams(self, student: StudentRecord, term: Optional[Term],
                            now: datetime) -> List[ExamEntry]:
        ...


class CourseExamProvider:
    """Unit and final exams in the student's open precalculus courses."""

    title = "Precalculus Course Exams"

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def list_eligible_exams(self, student: StudentRecord, term: Optional[Term],
                            now: datetime) -> List[ExamEntry]:
        if term is None:
            return []

        not_ramwork = not student.is_special_category(now.date(), "RAMWORK")
        regs = []
        for reg in student.active_registrations(term.term_id):
            if reg.instrn_type == "OT":
                # placement credit, not a real enrollment
                continue
            if reg.course not in PROCTORED_COURSES:
                continue
            if not_ramwork and reg.instrn_type == "RI":
                continue
            regs.append(reg)

        if not regs:
            return []

        if student.has_fatal_hold():
            logger.warning(f"Course exams not available to {student.stu_id}: fatal hold on account")
            return []

        exams: List[ExamEntry] = []
        for reg in regs:
            if reg.open_status != "Y":
                continue

            label = reg.course.replace("M ", "MATH ")
            for unit, exam_type in ((1, "U"), (2, "U"), (3, "U"), (4, "U"), (FINAL_EXAM_UNIT, "F")):
                exam = self.catalog.query_active_exam(reg.course, unit, exam_type)
                if exam is None:
                    logger.warning(f"Unit {unit} in {reg.course} not available: no active exam")
                    continue
                exams.append(ExamEntry(exam.version, f"{label} - {exam.button_label}"))

        return exams


class TutorialExamProvider:
    """The ELM exam and the unit 4 exams of precalculus tutorials."""

    title = "Tutorial Exams"

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def list_eligible_exams(self, student: StudentRecord, term: Optional[Term],
                            now: datetime) -> List[ExamEntry]:
        exams: List[ExamEntry] = []

        if student.elm_exam_eligible:
            exams.append(ExamEntry(ELM_EXAM_ID, "ELM Exam"))

        for course in student.precalc_tutorial_courses:
            for exam in self.catalog.query_active_by_course(course):
                if exam.exam_type == "U" and exam.unit == 4:
                    exams.append(ExamEntry(exam.version, exam.button_label))

        return exams


class PlacementExamProvider:
    """The Math Placement Tool, while the student has attempts left."""

    title = "Math Placement Tool and Course Challenge Exams"

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def list_eligible_exams(self, student: StudentRecord, term: Optional[Term],
                            now: datetime) -> List[ExamEntry]:
        if student.placement_attempts_remaining <= 0:
            return []

        exam = self.catalog.query_exam(PLACEMENT_EXAM_ID)
        if exam is None:
            return []
        return [ExamEntry(exam.version, exam.button_label, PLACEMENT_FEE_NOTE)]


class EligibilityError(Exception):
    """Raised when a provider cannot compute a student's eligible exams."""


class EligibilityService:
    """Builds the categorized menu of exams a student may start.

    Categories keep the order of ``providers`` and empty categories are left out.
    """

    def __init__(self, catalog: Catalog, providers: Optional[Sequence[EligibilityProvider]] = None):
        self.catalog = catalog
        if providers is None:
            providers = (
                CourseExamProvider(catalog),
                TutorialExamProvider(catalog),
                PlacementExamProvider(catalog),
            )
        self.providers = list(providers)

    def find_available_exams(self, student: StudentRecord, now: datetime) -> List[ExamCategory]:
        term = self.catalog.active_term(now.date())
        if term is None:
            logger.warning(f"No active term on {now.date()}")

        categories: List[ExamCategory] = []
        for provider in self.providers:
            try:
                exams = provider.list_eligible_exams(student, term, now)
            except Exception as e:
                logger.error(f"[ELIGIBILITY ERROR] {provider.title} for {student.stu_id}: {e}")
                raise EligibilityError(f"{provider.title}: {e}") from e
            if exams:
                categories.append(ExamCategory(provider.title, list(exams)))

        return categories
