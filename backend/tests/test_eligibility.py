import unittest
from datetime import date
from unittest.mock import MagicMock

from mps.services.eligibility import (
    CourseExamProvider, EligibilityError, EligibilityService, ExamEntry, PlacementExamProvider,
    TutorialExamProvider,
)

from .support import NOW, AdminHold, Registration, SpecialCategory, make_catalog, make_student


class TestCourseExamProvider(unittest.TestCase):

    def setUp(self):
        self.catalog = make_catalog()
        self.provider = CourseExamProvider(self.catalog)
        self.term = self.catalog.active_term(NOW.date())

    def test_active_unit_exams_of_open_course(self):
        student = make_student()

        exams = self.provider.list_eligible_exams(student, self.term, NOW)

        # unit 3 is inactive and units 4/final have no exam
        self.assertEqual(exams, [
            ExamEntry("171UE", "MATH 117 - Unit 1 Exam"),
            ExamEntry("172UE", "MATH 117 - Unit 2 Exam"),
        ])

    def test_final_exam_included(self):
        student = make_student(registrations=[Registration(course="M 118", term="FA26", open_status="Y")])

        exams = self.provider.list_eligible_exams(student, self.term, NOW)

        self.assertEqual([e.exam_id for e in exams], ["181UE", "18FIN"])
        self.assertEqual(exams[1].button_label, "MATH 118 - Final Exam")

    def test_filters_registrations(self):
        student = make_student(registrations=[
            Registration(course="M 117", term="FA26", open_status="Y", instrn_type="OT"),
            Registration(course="M 160", term="FA26", open_status="Y"),
            Registration(course="M 118", term="SP26", open_status="Y"),
            Registration(course="M 118", term="FA26", open_status="N"),
        ])

        self.assertEqual(self.provider.list_eligible_exams(student, self.term, NOW), [])

    def test_ri_registrations_need_ramwork(self):
        regs = [Registration(course="M 117", term="FA26", open_status="Y", instrn_type="RI")]

        plain = make_student(registrations=regs)
        self.assertEqual(self.provider.list_eligible_exams(plain, self.term, NOW), [])

        ramwork = make_student(registrations=regs, special_categories=[
            SpecialCategory(category="RAMWORK", start_date=date(2026, 8, 1), end_date=date(2026, 12, 31)),
        ])
        self.assertEqual(len(self.provider.list_eligible_exams(ramwork, self.term, NOW)), 2)

        lapsed = make_student(registrations=regs, special_categories=[
            SpecialCategory(category="RAMWORK", end_date=date(2026, 5, 1)),
        ])
        self.assertEqual(self.provider.list_eligible_exams(lapsed, self.term, NOW), [])

    def test_fatal_hold_blocks_course_exams(self):
        student = make_student(holds=[AdminHold(hold_id="06", severity="F")])
        self.assertEqual(self.provider.list_eligible_exams(student, self.term, NOW), [])

        advisory = make_student(holds=[AdminHold(hold_id="21", severity="N")])
        self.assertEqual(len(self.provider.list_eligible_exams(advisory, self.term, NOW)), 2)

    def test_no_active_term(self):
        self.assertEqual(self.provider.list_eligible_exams(make_student(), None, NOW), [])


class TestTutorialAndPlacementProviders(unittest.TestCase):

    def setUp(self):
        self.catalog = make_catalog()

    def test_elm_and_precalc_tutorial(self):
        student = make_student(elm_exam_eligible=True, precalc_tutorial_courses=["M 1170"])

        exams = TutorialExamProvider(self.catalog).list_eligible_exams(student, None, NOW)

        self.assertEqual(exams, [ExamEntry("MT4UE", "ELM Exam"), ExamEntry("7T4UE", "Tutorial Exam")])

    def test_no_tutorial_status(self):
        exams = TutorialExamProvider(self.catalog).list_eligible_exams(make_student(), None, NOW)
        self.assertEqual(exams, [])

    def test_placement_with_attempts_remaining(self):
        exams = PlacementExamProvider(self.catalog).list_eligible_exams(make_student(), None, NOW)
        self.assertEqual(exams, [ExamEntry("MPTRW", "Math Placement Tool", "One-time $15 fee")])

    def test_placement_without_attempts(self):
        student = make_student(placement_attempts_remaining=0)
        self.assertEqual(PlacementExamProvider(self.catalog).list_eligible_exams(student, None, NOW), [])


class TestEligibilityService(unittest.TestCase):

    def setUp(self):
        self.catalog = make_catalog()
        self.service = EligibilityService(self.catalog)

    def test_categories_in_fixed_order_without_empty_ones(self):
        student = make_student(elm_exam_eligible=True)

        categories = self.service.find_available_exams(student, NOW)

        self.assertEqual([c.title for c in categories], [
            "Precalculus Course Exams",
            "Tutorial Exams",
            "Math Placement Tool and Course Challenge Exams",
        ])

    def test_course_and_placement_only(self):
        categories = self.service.find_available_exams(make_student(), NOW)

        self.assertEqual([c.title for c in categories],
                         ["Precalculus Course Exams", "Math Placement Tool and Course Challenge Exams"])
        self.assertEqual(len(categories[0].exams), 2)

    def test_nothing_eligible(self):
        student = make_student(registrations=[], placement_attempts_remaining=0)
        self.assertEqual(self.service.find_available_exams(student, NOW), [])

    def test_provider_failure_raises(self):
        broken = MagicMock()
        broken.title = "Broken"
        broken.list_eligible_exams.side_effect = RuntimeError("database unavailable")
        service = EligibilityService(self.catalog, providers=[PlacementExamProvider(self.catalog), broken])

        with self.assertRaises(EligibilityError):
            service.find_available_exams(make_student(), NOW)

    def test_providers_receive_active_term(self):
        provider = MagicMock()
        provider.title = "Spy"
        provider.list_eligible_exams.return_value = []
        EligibilityService(self.catalog, providers=[provider]).find_available_exams(make_student(), NOW)

        _, term, now = provider.list_eligible_exams.call_args.args
        self.assertEqual(term.term_id, "FA26")
        self.assertEqual(now, NOW)


if __name__ == '__main__':
    unittest.main()
