"""
Tests for the institution registry.
"""
import pytest

from accredit.core.exceptions import ConflictError, InvalidInputError, NoActiveTermError
from accredit.core.security import verify_password
from accredit.models.organization import RecognitionStatus
from accredit.models.user import User, UserRole
from accredit.services import registry


class TestCollegesAndCourses:
    """Colleges and courses."""

    @pytest.mark.asyncio
    async def test_create_college(self, db_session):
        """College codes are stored upper-case."""
        college = await registry.create_college(db_session, " cas ", "College of Arts and Sciences")

        assert college.code == "CAS"

    @pytest.mark.asyncio
    async def test_duplicate_college_code(self, db_session, college):
        """College codes are unique."""
        with pytest.raises(ConflictError) as exc_info:
            await registry.create_college(db_session, "ceit", "Another College")

        assert exc_info.value.message == "College code 'CEIT' already exists."

    @pytest.mark.asyncio
    async def test_create_course(self, db_session, college):
        """Courses belong to a college."""
        course = await registry.create_course(db_session, college.id, "bsece", "BS Electronics Engineering")

        assert course.code == "BSECE"
        assert course.college_id == college.id

    @pytest.mark.asyncio
    async def test_duplicate_course_code(self, db_session, course):
        """Course codes are unique."""
        with pytest.raises(ConflictError):
            await registry.create_course(db_session, course.college_id, "BSCS", "Duplicate")


class TestMisCoordinators:
    """One MIS coordinator per college per term."""

    @pytest.mark.asyncio
    async def test_register(self, db_session, term, college):
        """Registration creates an MIS coordinator account."""
        coordinator = await registry.register_mis_coordinator(
            db_session, college.id, "rosa garcia", "rosa.garcia", "Rosa@cvsu.edu.ph",
            "Coordinator1", "Coordinator1",
        )

        assert coordinator.coordinator_name == "ROSA GARCIA"
        assert coordinator.academic_term_id == term.id
        user = await db_session.get(User, coordinator.user_id)
        assert user.role == UserRole.MIS_COORDINATOR
        assert user.email == "rosa@cvsu.edu.ph"
        assert verify_password("Coordinator1", user.password_hash)

    @pytest.mark.asyncio
    async def test_one_per_college_per_term(self, db_session, term, college):
        """A second coordinator for the same college is refused."""
        college_id = college.id
        await registry.register_mis_coordinator(
            db_session, college_id, "Rosa Garcia", "rosa.garcia", "rosa@cvsu.edu.ph",
            "Coordinator1", "Coordinator1",
        )

        with pytest.raises(ConflictError):
            await registry.register_mis_coordinator(
                db_session, college_id, "Leo Tan", "leo.tan", "leo@cvsu.edu.ph",
                "Coordinator1", "Coordinator1",
            )

    @pytest.mark.asyncio
    async def test_password_rules(self, db_session, term, college):
        """Passwords need 8 characters and a matching confirmation."""
        with pytest.raises(InvalidInputError):
            await registry.register_mis_coordinator(
                db_session, college.id, "Rosa Garcia", "rosa.garcia", "rosa@cvsu.edu.ph", "short", "short",
            )
        with pytest.raises(InvalidInputError) as exc_info:
            await registry.register_mis_coordinator(
                db_session, college.id, "Rosa Garcia", "rosa.garcia", "rosa@cvsu.edu.ph",
                "Coordinator1", "Coordinator2",
            )

        assert exc_info.value.message == "Passwords do not match."

    @pytest.mark.asyncio
    async def test_taken_username(self, db_session, term, college, osas_user):
        """Usernames are unique across all accounts."""
        with pytest.raises(ConflictError) as exc_info:
            await registry.register_mis_coordinator(
                db_session, college.id, "Rosa Garcia", "osas.director", "rosa@cvsu.edu.ph",
                "Coordinator1", "Coordinator1",
            )

        assert exc_info.value.message == "Username already exists."

    @pytest.mark.asyncio
    async def test_requires_active_term(self, db_session, college):
        """Coordinators are registered for the active term."""
        with pytest.raises(NoActiveTermError):
            await registry.register_mis_coordinator(
                db_session, college.id, "Rosa Garcia", "rosa.garcia", "rosa@cvsu.edu.ph",
                "Coordinator1", "Coordinator1",
            )


class TestRecognition:
    """Recognition status set by OSAS."""

    @pytest.mark.asyncio
    async def test_recognize(self, db_session, make_entity):
        """An unrecognized organization can be recognized."""
        org = await make_entity(status=RecognitionStatus.UNRECOGNIZED)

        entity = await registry.set_recognition(db_session, org.owner, RecognitionStatus.RECOGNIZED)

        assert entity.status == RecognitionStatus.RECOGNIZED
