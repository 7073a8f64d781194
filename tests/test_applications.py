"""
Tests for application review: approval provisioning and rejection.
"""
import re

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from accredit.core.exceptions import (
    ConflictError, InvalidInputError, NoActiveTermError, NotFoundError, StateViolationError
)
from accredit.core.security import get_password_hash, verify_password
from accredit.models.application import Application, ApplicationStatus, ApplicationType
from accredit.models.organization import Organization, Council, RecognitionStatus, EntityType
from accredit.models.user import User, UserRole
from accredit.services import applications, guards, provisioning
from accredit.services.applications import approve_application, reject_application
from accredit.services.notifications import NotificationKind


async def count(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


async def reload_application(db, application_id) -> Application:
    result = await db.execute(
        select(Application)
        .where(Application.id == application_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestApproveOrganization:
    """Approving an organization application."""

    @pytest.mark.asyncio
    async def test_approval_creates_entity_and_accounts(
        self, db_session, term, osas_user, make_application, notifier
    ):
        """Approval provisions both accounts and an unrecognized organization."""
        application = await make_application()

        result = await approve_application(db_session, application.id, osas_user.id, notifier)

        entity = result.entity
        assert isinstance(entity, Organization)
        assert entity.code == "CSS"
        assert entity.name == "Computer Science Society"
        assert entity.status == RecognitionStatus.UNRECOGNIZED
        assert entity.type == EntityType.NEW
        assert entity.academic_term_id == term.id
        assert entity.course_id == application.course_id

        president = await db_session.get(User, entity.president_id)
        adviser = await db_session.get(User, entity.adviser_id)
        assert president.role == UserRole.ORG_PRESIDENT
        assert adviser.role == UserRole.ORG_ADVISER
        assert president.email == "juan@cvsu.edu.ph"
        assert re.fullmatch(r"juan\.dela\.cruz_[0-9a-f]{4}", president.username)

        reloaded = await reload_application(db_session, application.id)
        assert reloaded.status == ApplicationStatus.APPROVED
        assert reloaded.reviewed_by == osas_user.id
        assert reloaded.reviewed_at is not None

    @pytest.mark.asyncio
    async def test_credentials_are_mailed_after_commit(
        self, db_session, term, osas_user, make_application, notifier
    ):
        """Each account owner gets a password that matches the stored hash."""
        application = await make_application()

        result = await approve_application(db_session, application.id, osas_user.id, notifier)

        credentials = notifier.of_kind(NotificationKind.ACCOUNT_CREDENTIALS)
        assert {c[0] for c in credentials} == {"juan@cvsu.edu.ph", "maria@cvsu.edu.ph"}
        president_mail = next(c for c in credentials if c[0] == "juan@cvsu.edu.ph")
        payload = president_mail[2]
        assert payload["username"] == result.president.username
        assert re.fullmatch(r"[0-9a-f]{8}", payload["password"])
        assert verify_password(payload["password"], result.president.user.password_hash)
        assert payload["role_label"] == "Organization President"

        approved = notifier.of_kind(NotificationKind.APPLICATION_APPROVED)
        assert [a[0] for a in approved] == ["juan@cvsu.edu.ph"]

    @pytest.mark.asyncio
    async def test_names_are_normalized(
        self, db_session, term, osas_user, make_application, notifier
    ):
        """Organization names are title-cased and person names upper-cased."""
        application = await make_application(
            org_name="computer SCIENCE society",
            president_name="juan dela cruz",
            adviser_name="Maria Santos",
        )

        result = await approve_application(db_session, application.id, osas_user.id, notifier)

        assert result.entity.name == "Computer Science Society"
        assert result.entity.president_name == "JUAN DELA CRUZ"
        assert result.entity.adviser_name == "MARIA SANTOS"
        assert result.president.user.name == "JUAN DELA CRUZ"

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_approval(
        self, db_session, term, osas_user, make_application, failing_notifier
    ):
        """A broken mail transport does not undo a committed approval."""
        application = await make_application()

        result = await approve_application(
            db_session, application.id, osas_user.id, failing_notifier
        )

        assert result.application.status == ApplicationStatus.APPROVED
        assert await count(db_session, Organization) == 1


class TestApproveCouncil:
    """Approving a council application."""

    @pytest.mark.asyncio
    async def test_council_gets_canonical_code_and_name(
        self, db_session, term, college, osas_user, make_application, notifier
    ):
        """Council identity derives from the college."""
        application = await make_application(application_type=ApplicationType.COUNCIL)

        result = await approve_application(db_session, application.id, osas_user.id, notifier)

        assert isinstance(result.entity, Council)
        assert result.entity.code == "CEIT-SC"
        assert result.entity.name == f"{college.name} Student Council"
        assert result.president.role == UserRole.COUNCIL_PRESIDENT
        assert result.adviser.role == UserRole.COUNCIL_ADVISER

    @pytest.mark.asyncio
    async def test_second_council_for_college_conflicts(
        self, db_session, term, college, osas_user, make_application, notifier
    ):
        """Only one of two pending council applications for a college can be approved."""
        reviewer_id = osas_user.id
        first = await make_application(application_type=ApplicationType.COUNCIL)
        second = await make_application(
            application_type=ApplicationType.COUNCIL,
            president_email="pedro@cvsu.edu.ph",
            adviser_email="ana@cvsu.edu.ph",
            verified_email="pedro@cvsu.edu.ph",
        )
        first_id, second_id = first.id, second.id

        await approve_application(db_session, first_id, reviewer_id, notifier)
        with pytest.raises(ConflictError) as exc_info:
            await approve_application(db_session, second_id, reviewer_id, notifier)

        assert "A student council already exists for this college" in exc_info.value.message
        assert await count(db_session, Council) == 1
        assert (await reload_application(db_session, second_id)).status == ApplicationStatus.PENDING_REVIEW
        emails = (await db_session.execute(select(User.email))).scalars().all()
        assert "pedro@cvsu.edu.ph" not in emails

    @pytest.mark.asyncio
    async def test_unique_constraint_is_final_arbiter(
        self, db_session, term, college, osas_user, make_application, notifier, monkeypatch
    ):
        """When the pre-check is bypassed the database constraint still rejects the duplicate."""
        reviewer_id = osas_user.id
        first = await make_application(application_type=ApplicationType.COUNCIL)
        second = await make_application(
            application_type=ApplicationType.COUNCIL,
            president_email="pedro@cvsu.edu.ph",
            adviser_email="ana@cvsu.edu.ph",
            verified_email="pedro@cvsu.edu.ph",
        )
        first_id, second_id = first.id, second.id
        await approve_application(db_session, first_id, reviewer_id, notifier)
        users_before = await count(db_session, User)

        async def slot_always_free(*args, **kwargs):
            return None

        monkeypatch.setattr(guards, "ensure_entity_slot_free", slot_always_free)

        with pytest.raises(ConflictError):
            await approve_application(db_session, second_id, reviewer_id, notifier)

        assert await count(db_session, Council) == 1
        assert await count(db_session, User) == users_before
        assert (await reload_application(db_session, second_id)).status == ApplicationStatus.PENDING_REVIEW


class TestApprovalGuards:
    """Approval is all-or-nothing."""

    @pytest.mark.asyncio
    async def test_registered_email_blocks_approval(
        self, db_session, term, osas_user, make_application, notifier
    ):
        """An email already on an account rejects the approval with nothing created."""
        reviewer_id = osas_user.id
        db_session.add(User(
            username="maria.existing",
            email="MARIA@cvsu.edu.ph",
            password_hash=get_password_hash("Secret123"),
            name="MARIA SANTOS",
            role=UserRole.ORG_ADVISER,
        ))
        await db_session.commit()
        application = await make_application()
        application_id = application.id
        users_before = await count(db_session, User)

        with pytest.raises(ConflictError) as exc_info:
            await approve_application(db_session, application_id, reviewer_id, notifier)

        assert exc_info.value.code == "EMAIL_TAKEN"
        assert "maria@cvsu.edu.ph" in exc_info.value.message
        assert "juan@cvsu.edu.ph" not in exc_info.value.message
        assert await count(db_session, User) == users_before
        assert await count(db_session, Organization) == 0
        assert (await reload_application(db_session, application_id)).status == ApplicationStatus.PENDING_REVIEW
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_existing_org_code_blocks_approval(
        self, db_session, osas_user, make_entity, make_application, other_course, notifier
    ):
        """Organization codes are unique across courses."""
        reviewer_id = osas_user.id
        await make_entity(code="CSS")
        application = await make_application(course_id=other_course.id)
        application_id = application.id

        with pytest.raises(ConflictError) as exc_info:
            await approve_application(db_session, application_id, reviewer_id, notifier)

        assert "Organization code 'CSS' already exists for" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_org_code_ignores_case(
        self, db_session, osas_user, make_entity, make_application, other_course, notifier
    ):
        """``css`` collides with an existing ``CSS``."""
        reviewer_id = osas_user.id
        await make_entity(code="CSS")
        application = await make_application(course_id=other_course.id, org_code="css")
        application_id = application.id

        with pytest.raises(ConflictError) as exc_info:
            await approve_application(db_session, application_id, reviewer_id, notifier)

        assert exc_info.value.message == (
            "Organization code 'CSS' already exists for: Computer Science Society"
        )
        codes = (await db_session.execute(select(Organization.code))).scalars().all()
        assert codes == ["CSS"]

    @pytest.mark.asyncio
    async def test_code_constraint_is_final_arbiter(
        self, db_session, osas_user, make_entity, make_application, other_course, notifier, monkeypatch
    ):
        """With the pre-check bypassed, the code constraint still refuses ``css``."""
        reviewer_id = osas_user.id
        await make_entity(code="CSS")
        application = await make_application(course_id=other_course.id, org_code="css")
        application_id = application.id
        users_before = await count(db_session, User)

        async def slot_always_free(*args, **kwargs):
            return None

        monkeypatch.setattr(guards, "ensure_entity_slot_free", slot_always_free)

        with pytest.raises(ConflictError):
            await approve_application(db_session, application_id, reviewer_id, notifier)

        assert await count(db_session, Organization) == 1
        assert await count(db_session, User) == users_before

    @pytest.mark.asyncio
    async def test_lowercase_code_is_stored_upper(
        self, db_session, term, osas_user, make_application, notifier
    ):
        application = await make_application(org_code=" css ")

        result = await approve_application(db_session, application.id, osas_user.id, notifier)

        assert result.entity.code == "CSS"

    @pytest.mark.asyncio
    async def test_codes_differing_in_case_cannot_both_be_stored(
        self, db_session, term, college, other_course, make_entity
    ):
        """The database itself refuses ``css`` next to ``CSS``."""
        await make_entity(code="CSS")
        db_session.add(Organization(
            code="css",
            name="Another Society",
            college_id=college.id,
            course_id=other_course.id,
            academic_term_id=term.id,
            president_name="ANA REYES",
            adviser_name="LEO TAN",
        ))

        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_existing_org_for_course_blocks_approval(
        self, db_session, osas_user, make_entity, make_application, notifier
    ):
        """A course already holding an organization cannot get a second one."""
        reviewer_id = osas_user.id
        await make_entity(code="OTHER", name="Other Computing Society")
        application = await make_application()
        application_id = application.id
        users_before = await count(db_session, User)

        with pytest.raises(ConflictError) as exc_info:
            await approve_application(db_session, application_id, reviewer_id, notifier)

        assert exc_info.value.message == (
            "There is already an existing organization for this course: Other Computing Society"
        )
        assert await count(db_session, User) == users_before
        assert await count(db_session, Organization) == 1
        assert (await reload_application(db_session, application_id)).status == ApplicationStatus.PENDING_REVIEW
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_course_constraint_is_final_arbiter(
        self, db_session, osas_user, make_entity, make_application, notifier, monkeypatch
    ):
        """With the pre-check bypassed, the course constraint still refuses a second organization."""
        reviewer_id = osas_user.id
        await make_entity(code="OTHER", name="Other Computing Society")
        application = await make_application()
        application_id = application.id
        users_before = await count(db_session, User)

        async def slot_always_free(*args, **kwargs):
            return None

        monkeypatch.setattr(guards, "ensure_entity_slot_free", slot_always_free)

        with pytest.raises(ConflictError):
            await approve_application(db_session, application_id, reviewer_id, notifier)

        assert await count(db_session, Organization) == 1
        assert await count(db_session, User) == users_before
        assert (await reload_application(db_session, application_id)).status == ApplicationStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_shared_email_blocks_approval(
        self, db_session, term, osas_user, make_application, notifier
    ):
        """President and adviser cannot share one address."""
        reviewer_id = osas_user.id
        application = await make_application(adviser_email="JUAN@cvsu.edu.ph")
        application_id = application.id
        users_before = await count(db_session, User)

        with pytest.raises(ConflictError) as exc_info:
            await approve_application(db_session, application_id, reviewer_id, notifier)

        assert exc_info.value.code == "EMAIL_SHARED"
        assert "juan@cvsu.edu.ph" in exc_info.value.message
        assert await count(db_session, User) == users_before
        assert await count(db_session, Organization) == 0
        assert (await reload_application(db_session, application_id)).status == ApplicationStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_no_active_term(self, db_session, osas_user, make_application, notifier):
        """Approval needs an active academic term."""
        reviewer_id = osas_user.id
        application = await make_application()
        application_id = application.id

        with pytest.raises(NoActiveTermError):
            await approve_application(db_session, application_id, reviewer_id, notifier)

        assert await count(db_session, User) == 1
        assert (await reload_application(db_session, application_id)).status == ApplicationStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_username_collisions_are_retried(
        self, db_session, term, osas_user, make_application, notifier, monkeypatch
    ):
        """A generated username that is already taken is replaced."""
        db_session.add(User(
            username="juan.dela.cruz_aaaa",
            email="other@cvsu.edu.ph",
            password_hash=get_password_hash("Secret123"),
            name="JUAN DELA CRUZ",
            role=UserRole.ORG_PRESIDENT,
        ))
        await db_session.commit()
        candidates = iter(["juan.dela.cruz_aaaa", "juan.dela.cruz_bbbb", "maria.santos_cccc"])
        monkeypatch.setattr(provisioning, "generate_username", lambda name: next(candidates))
        application = await make_application()

        result = await approve_application(db_session, application.id, osas_user.id, notifier)

        assert result.president.username == "juan.dela.cruz_bbbb"
        assert result.adviser.username == "maria.santos_cccc"

    @pytest.mark.asyncio
    async def test_username_attempts_exhausted(
        self, db_session, term, osas_user, make_application, notifier, monkeypatch
    ):
        """Provisioning gives up after a bounded number of collisions."""
        reviewer_id = osas_user.id
        db_session.add(User(
            username="juan.dela.cruz_aaaa",
            email="other@cvsu.edu.ph",
            password_hash=get_password_hash("Secret123"),
            name="JUAN DELA CRUZ",
            role=UserRole.ORG_PRESIDENT,
        ))
        await db_session.commit()
        monkeypatch.setattr(provisioning, "generate_username", lambda name: "juan.dela.cruz_aaaa")
        application = await make_application()
        application_id = application.id

        with pytest.raises(ConflictError):
            await approve_application(db_session, application_id, reviewer_id, notifier)

        assert await count(db_session, Organization) == 0
        assert (await reload_application(db_session, application_id)).status == ApplicationStatus.PENDING_REVIEW


class TestDecideOnce:
    """An application is decided exactly once."""

    @pytest.mark.asyncio
    async def test_second_approval_is_refused(
        self, db_session, term, osas_user, make_application, notifier
    ):
        """Approving an approved application does not create a second entity."""
        reviewer_id = osas_user.id
        application = await make_application()
        application_id = application.id
        await approve_application(db_session, application_id, reviewer_id, notifier)

        with pytest.raises(StateViolationError) as exc_info:
            await approve_application(db_session, application_id, reviewer_id, notifier)

        assert exc_info.value.current_state == "approved"
        assert await count(db_session, Organization) == 1

    @pytest.mark.asyncio
    async def test_reject_after_approval_is_refused(
        self, db_session, term, osas_user, make_application, notifier
    ):
        """A decided application cannot change its decision."""
        reviewer_id = osas_user.id
        application = await make_application()
        application_id = application.id
        await approve_application(db_session, application_id, reviewer_id, notifier)

        with pytest.raises(StateViolationError):
            await reject_application(db_session, application_id, reviewer_id, "Too late", notifier)

        assert (await reload_application(db_session, application_id)).status == ApplicationStatus.APPROVED

    @pytest.mark.asyncio
    async def test_get_application_not_found(self, db_session):
        """Unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await applications.get_application(db_session, "missing")


class TestReject:
    """Rejecting an application."""

    @pytest.mark.asyncio
    async def test_reason_is_required(self, db_session, osas_user, make_application, notifier):
        """A blank reason leaves the application pending."""
        reviewer_id = osas_user.id
        application = await make_application()
        application_id = application.id

        with pytest.raises(InvalidInputError) as exc_info:
            await reject_application(db_session, application_id, reviewer_id, "   ", notifier)

        assert exc_info.value.code == "REASON_REQUIRED"
        assert (await reload_application(db_session, application_id)).status == ApplicationStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_rejection_records_reason_and_notifies(
        self, db_session, osas_user, make_application, notifier
    ):
        """Rejection stores the reason and mails the verifying contact."""
        application = await make_application()

        rejected = await reject_application(
            db_session, application.id, osas_user.id, "Incomplete requirements", notifier
        )

        assert rejected.status == ApplicationStatus.REJECTED
        assert rejected.rejection_reason == "Incomplete requirements"
        assert rejected.reviewed_by == osas_user.id
        sent = notifier.of_kind(NotificationKind.APPLICATION_REJECTED)
        assert len(sent) == 1
        assert sent[0][0] == "juan@cvsu.edu.ph"
        assert sent[0][2]["reason"] == "Incomplete requirements"
        assert await count(db_session, User) == 1
