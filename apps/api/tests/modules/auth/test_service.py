"""
Unit tests for the authentication service layer.

These tests cover:
- Signup per role (viewer, student, university admin)
- Login check order
- Email verification and resend
- Profile updates
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from trustteams.modules.auth.schemas import ProfileUpdateRequest, SignupRequest
from trustteams.modules.auth.service import (
    AccountDeactivatedError,
    AlreadyVerifiedError,
    ApprovalPendingError,
    ApprovalRejectedError,
    EmailAlreadyExistsError,
    EmailDeliveryFailedError,
    InvalidCredentialsError,
    InvalidTokenError,
    NoChangesError,
    SignupUniversityNotFoundError,
    TokenExpiredError,
    UniversityHasAdminError,
    UniversityNotReadyError,
    UserNotFoundError,
    VerificationRequiredError,
    force_verify_email,
    login,
    resend_verification,
    signup,
    update_profile,
    verify_email,
)
from trustteams.modules.shared import ValidationError
from trustteams.modules.universities.models import University
from trustteams.modules.users.models import ApprovalStatus, UserRole

SERVICE = "trustteams.modules.auth.service"


@pytest.fixture
def university():
    uni = MagicMock(spec=University)
    uni.id = str(uuid4())
    uni.name = "Test University"
    return uni


@pytest.fixture
def user_repo():
    with patch(f"{SERVICE}.UserRepository") as repo:
        repo.email_exists = AsyncMock(return_value=False)
        repo.has_approved_university_admin = AsyncMock(return_value=True)
        repo.has_university_admin = AsyncMock(return_value=False)
        repo.update = AsyncMock(side_effect=lambda db, user, **fields: _apply(user, fields))
        yield repo


def _apply(user, fields):
    for key, value in fields.items():
        setattr(user, key, value)
    return user


@pytest.fixture
def send_verification():
    with patch(f"{SERVICE}.send_verification_email", new_callable=AsyncMock) as send:
        send.return_value = True
        yield send


class TestSignup:
    """Tests for signup function."""

    @pytest.mark.asyncio
    async def test_missing_fields_rejected(self, mock_db):
        with pytest.raises(ValidationError) as exc_info:
            await signup(mock_db, SignupRequest(email="a@test.edu", password="secret1"))

        assert "required" in exc_info.value.message
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_short_password_rejected(self, mock_db):
        with pytest.raises(ValidationError) as exc_info:
            await signup(mock_db, SignupRequest(name="A", email="a@test.edu", password="12345"))

        assert "at least 6" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, mock_db, user_repo):
        user_repo.email_exists = AsyncMock(return_value=True)

        with pytest.raises(EmailAlreadyExistsError) as exc_info:
            await signup(mock_db, SignupRequest(name="A", email="a@test.edu", password="secret1"))

        assert exc_info.value.status_code == 400
        user_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_viewer_signup_is_approved_immediately(
        self, mock_db, user_repo, send_verification, make_user
    ):
        """A signup without a role becomes an approved, active viewer."""
        created = make_user(role=UserRole.VIEWER, email_verified=False, name="Ada Lovelace")
        user_repo.create = AsyncMock(return_value=created)

        with patch(f"{SERVICE}.registration_repository") as reg_repo:
            reg_repo.create = AsyncMock()
            result = await signup(
                mock_db,
                SignupRequest(
                    first_name="Ada",
                    last_name="Lovelace",
                    email="ada@test.edu",
                    password="secret1",
                ),
            )

        kwargs = user_repo.create.call_args.kwargs
        assert kwargs["name"] == "Ada Lovelace"
        assert kwargs["role"] == UserRole.VIEWER
        assert kwargs["approval_status"] == ApprovalStatus.APPROVED
        assert kwargs["is_active"] is True
        assert kwargs["password_hash"] != "secret1"
        reg_repo.create.assert_not_called()
        mock_db.commit.assert_awaited_once()
        assert result.requires_approval is False
        assert result.email_verification_sent is True

    @pytest.mark.asyncio
    async def test_student_signup_creates_registration_request(
        self, mock_db, user_repo, send_verification, make_user, university
    ):
        created = make_user(
            role=UserRole.STUDENT,
            approval_status=ApprovalStatus.PENDING,
            is_active=False,
            email_verified=False,
            university_id=university.id,
        )
        user_repo.create = AsyncMock(return_value=created)

        with (
            patch(f"{SERVICE}.UniversityRepository") as uni_repo,
            patch(f"{SERVICE}.registration_repository") as reg_repo,
        ):
            uni_repo.get_by_id = AsyncMock(return_value=university)
            reg_repo.create = AsyncMock()

            result = await signup(
                mock_db,
                SignupRequest(
                    name="Stu Dent",
                    email="stu@test.edu",
                    password="secret1",
                    role="student",
                    university_id=university.id,
                    institute_name="Computer Science",
                ),
            )

        kwargs = user_repo.create.call_args.kwargs
        assert kwargs["approval_status"] == ApprovalStatus.PENDING
        assert kwargs["is_active"] is False
        assert kwargs["university_id"] == university.id

        reg_kwargs = reg_repo.create.call_args.kwargs
        assert reg_kwargs["user_id"] == created.id
        assert reg_kwargs["university_id"] == university.id
        assert reg_kwargs["role"] == UserRole.STUDENT
        assert reg_kwargs["institute_name"] == "Computer Science"
        assert result.requires_approval is True

    @pytest.mark.asyncio
    async def test_student_needs_institute_name(self, mock_db, user_repo, university):
        with pytest.raises(ValidationError):
            await signup(
                mock_db,
                SignupRequest(
                    name="Stu",
                    email="stu@test.edu",
                    password="secret1",
                    role="student",
                    university_id=university.id,
                ),
            )

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_student_rejected_when_university_has_no_approved_admin(
        self, mock_db, user_repo, university
    ):
        user_repo.has_approved_university_admin = AsyncMock(return_value=False)

        with patch(f"{SERVICE}.UniversityRepository") as uni_repo:
            uni_repo.get_by_id = AsyncMock(return_value=university)
            with pytest.raises(UniversityNotReadyError):
                await signup(
                    mock_db,
                    SignupRequest(
                        name="Stu",
                        email="stu@test.edu",
                        password="secret1",
                        user_type="student",
                        university_id=university.id,
                        institute_name="CS",
                    ),
                )

        user_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_malformed_university_id_is_not_found(self, mock_db, user_repo):
        with pytest.raises(SignupUniversityNotFoundError):
            await signup(
                mock_db,
                SignupRequest(
                    name="Stu",
                    email="stu@test.edu",
                    password="secret1",
                    role="student",
                    university_id="not-a-uuid",
                    institute_name="CS",
                ),
            )

    @pytest.mark.asyncio
    async def test_university_admin_cannot_claim_taken_university(
        self, mock_db, user_repo, university
    ):
        user_repo.has_university_admin = AsyncMock(return_value=True)

        with patch(f"{SERVICE}.UniversityRepository") as uni_repo:
            uni_repo.get_by_id = AsyncMock(return_value=university)
            with pytest.raises(UniversityHasAdminError):
                await signup(
                    mock_db,
                    SignupRequest(
                        name="Admin",
                        email="admin@test.edu",
                        password="secret1",
                        role="university_admin",
                        university_id=university.id,
                    ),
                )

    @pytest.mark.asyncio
    async def test_university_admin_defaults_institute_to_university_name(
        self, mock_db, user_repo, send_verification, make_user, university
    ):
        created = make_user(role=UserRole.UNIVERSITY_ADMIN, university_id=university.id)
        user_repo.create = AsyncMock(return_value=created)

        with patch(f"{SERVICE}.UniversityRepository") as uni_repo:
            uni_repo.get_by_id = AsyncMock(return_value=university)
            result = await signup(
                mock_db,
                SignupRequest(
                    name="Admin",
                    email="admin@test.edu",
                    password="secret1",
                    role="university_admin",
                    university_id=university.id,
                ),
            )

        kwargs = user_repo.create.call_args.kwargs
        assert kwargs["institute_name"] == "Test University"
        assert kwargs["approval_status"] == ApprovalStatus.APPROVED
        assert result.requires_approval is False

    @pytest.mark.asyncio
    async def test_email_failure_does_not_fail_signup(
        self, mock_db, user_repo, send_verification, make_user
    ):
        user_repo.create = AsyncMock(return_value=make_user(role=UserRole.VIEWER))
        send_verification.side_effect = RuntimeError("smtp down")

        result = await signup(mock_db, SignupRequest(name="A", email="a@test.edu", password="secret1"))

        assert result.email_verification_sent is False
        mock_db.commit.assert_awaited_once()


class TestLogin:
    """Tests for login check order."""

    @pytest.fixture
    def verify(self):
        with patch(f"{SERVICE}.verify_password", return_value=True) as verify:
            yield verify

    @pytest.mark.asyncio
    async def test_unknown_email(self, mock_db, user_repo):
        user_repo.get_by_email = AsyncMock(return_value=None)

        with pytest.raises(InvalidCredentialsError):
            await login(mock_db, "nobody@test.edu", "secret1")

    @pytest.mark.asyncio
    async def test_wrong_password(self, mock_db, user_repo, verify, make_user):
        user_repo.get_by_email = AsyncMock(return_value=make_user())
        verify.return_value = False

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await login(mock_db, "user@test.edu", "wrong")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_unverified_email_checked_before_approval(
        self, mock_db, user_repo, verify, make_user
    ):
        user = make_user(email_verified=False, approval_status=ApprovalStatus.PENDING)
        user_repo.get_by_email = AsyncMock(return_value=user)

        with pytest.raises(VerificationRequiredError) as exc_info:
            await login(mock_db, user.email, "secret1")

        detail = exc_info.value.to_detail()
        assert exc_info.value.status_code == 403
        assert detail["email_verified"] is False
        assert detail["approval_status"] == "pending"

    @pytest.mark.asyncio
    async def test_pending_student(self, mock_db, user_repo, verify, make_user):
        user = make_user(approval_status=ApprovalStatus.PENDING, is_active=False)
        user_repo.get_by_email = AsyncMock(return_value=user)

        with pytest.raises(ApprovalPendingError) as exc_info:
            await login(mock_db, user.email, "secret1")

        assert exc_info.value.to_detail()["approval_status"] == "pending"

    @pytest.mark.asyncio
    async def test_rejected_student_gets_reason(self, mock_db, user_repo, verify, make_user):
        user = make_user(
            approval_status=ApprovalStatus.REJECTED,
            is_active=False,
            rejection_reason="Not enrolled",
        )
        user_repo.get_by_email = AsyncMock(return_value=user)

        with pytest.raises(ApprovalRejectedError) as exc_info:
            await login(mock_db, user.email, "secret1")

        assert exc_info.value.to_detail()["rejection_reason"] == "Not enrolled"

    @pytest.mark.asyncio
    async def test_deactivated_account(self, mock_db, user_repo, verify, make_user):
        user = make_user(role=UserRole.MANAGER, is_active=False)
        user_repo.get_by_email = AsyncMock(return_value=user)

        with pytest.raises(AccountDeactivatedError):
            await login(mock_db, user.email, "secret1")

    @pytest.mark.asyncio
    async def test_success_issues_tokens_and_records_login(
        self, mock_db, user_repo, verify, make_user
    ):
        user = make_user(role=UserRole.MANAGER)
        user_repo.get_by_email = AsyncMock(return_value=user)

        result = await login(mock_db, f"  {user.email} ", "secret1")

        user_repo.get_by_email.assert_awaited_once_with(mock_db, user.email)
        assert result.access_token
        assert result.refresh_token
        assert result.user.id == user.id
        assert user.last_login is not None
        mock_db.commit.assert_awaited_once()


class TestVerifyEmail:
    """Tests for verify_email function."""

    @pytest.mark.asyncio
    async def test_unknown_token(self, mock_db, user_repo):
        user_repo.get_by_verification_token = AsyncMock(return_value=None)

        with pytest.raises(InvalidTokenError):
            await verify_email(mock_db, "bogus")

    @pytest.mark.asyncio
    async def test_email_of_verified_user_answers_already_verified(
        self, mock_db, user_repo, make_user
    ):
        user = make_user()
        user_repo.get_by_verification_token = AsyncMock(return_value=None)
        user_repo.get_by_email = AsyncMock(return_value=user)

        result = await verify_email(mock_db, user.email)

        assert result.already_verified is True

    @pytest.mark.asyncio
    async def test_expired_token(self, mock_db, user_repo, make_user):
        user = make_user(
            email_verified=False,
            email_verification_expires=datetime.now(UTC) - timedelta(minutes=1),
        )
        user_repo.get_by_verification_token = AsyncMock(return_value=user)

        with pytest.raises(TokenExpiredError):
            await verify_email(mock_db, "token")

        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_success_marks_verified_and_clears_token(
        self, mock_db, user_repo, make_user
    ):
        user = make_user(
            email_verified=False,
            is_active=False,
            email_verification_token="hash",
            email_verification_expires=datetime.now(UTC) + timedelta(hours=1),
        )
        user_repo.get_by_verification_token = AsyncMock(return_value=user)

        with patch(f"{SERVICE}.send_welcome_email", new_callable=AsyncMock) as welcome:
            welcome.return_value = True
            result = await verify_email(mock_db, "token")

        assert result.email_verified is True
        assert result.already_verified is False
        assert user.email_verified is True
        assert user.email_verification_token is None
        welcome.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rejected_student_stays_inactive(self, mock_db, user_repo, make_user):
        user = make_user(
            approval_status=ApprovalStatus.REJECTED,
            email_verified=False,
            is_active=False,
            email_verification_token="hash",
            email_verification_expires=datetime.now(UTC) + timedelta(hours=1),
        )
        user_repo.get_by_verification_token = AsyncMock(return_value=user)

        with patch(f"{SERVICE}.send_welcome_email", new_callable=AsyncMock, return_value=True):
            await verify_email(mock_db, "token")

        assert user.email_verified is True
        assert user.is_active is False

    @pytest.mark.asyncio
    async def test_already_verified_owner_gets_new_link(
        self, mock_db, user_repo, send_verification, make_user
    ):
        user = make_user(email_verification_token="old-hash")
        user_repo.get_by_verification_token = AsyncMock(return_value=user)

        result = await verify_email(mock_db, "token")

        assert result.already_verified is True
        assert result.verification_resent is True
        assert user.email_verification_token != "old-hash"
        send_verification.assert_awaited_once()


class TestResendVerification:
    """Tests for resend_verification function."""

    @pytest.mark.asyncio
    async def test_unknown_email(self, mock_db, user_repo):
        user_repo.get_by_email = AsyncMock(return_value=None)

        with pytest.raises(UserNotFoundError):
            await resend_verification(mock_db, "nobody@test.edu")

    @pytest.mark.asyncio
    async def test_already_verified(self, mock_db, user_repo, make_user):
        user_repo.get_by_email = AsyncMock(return_value=make_user())

        with pytest.raises(AlreadyVerifiedError):
            await resend_verification(mock_db, "user@test.edu")

    @pytest.mark.asyncio
    async def test_delivery_failure_is_an_error(self, mock_db, user_repo, make_user):
        user_repo.get_by_email = AsyncMock(return_value=make_user(email_verified=False))

        with patch(
            f"{SERVICE}.send_resend_verification_email", new_callable=AsyncMock
        ) as send:
            send.return_value = False
            with pytest.raises(EmailDeliveryFailedError) as exc_info:
                await resend_verification(mock_db, "user@test.edu")

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_success(self, mock_db, user_repo, make_user):
        user = make_user(email_verified=False)
        user_repo.get_by_email = AsyncMock(return_value=user)

        with patch(
            f"{SERVICE}.send_resend_verification_email", new_callable=AsyncMock
        ) as send:
            send.return_value = True
            message = await resend_verification(mock_db, user.email)

        assert "sent" in message.lower()
        assert user.email_verification_token is not None


class TestForceVerifyEmail:
    @pytest.mark.asyncio
    async def test_marks_user_verified(self, mock_db, user_repo, make_user):
        user = make_user(email_verified=False, is_active=False)
        user_repo.get_by_email = AsyncMock(return_value=user)

        result = await force_verify_email(mock_db, user.email)

        assert result.email_verified is True
        assert result.is_active is True

    @pytest.mark.asyncio
    async def test_unknown_user(self, mock_db, user_repo):
        user_repo.get_by_email = AsyncMock(return_value=None)

        with pytest.raises(UserNotFoundError):
            await force_verify_email(mock_db, "nobody@test.edu")


class TestUpdateProfile:
    """Tests for update_profile function."""

    @pytest.mark.asyncio
    async def test_no_changes(self, mock_db, user_repo, make_user):
        user = make_user(name="Same")

        with pytest.raises(NoChangesError):
            await update_profile(mock_db, user, ProfileUpdateRequest(name="Same"))

    @pytest.mark.asyncio
    async def test_email_taken(self, mock_db, user_repo, make_user):
        user_repo.email_exists = AsyncMock(return_value=True)

        with pytest.raises(EmailAlreadyExistsError):
            await update_profile(mock_db, make_user(), ProfileUpdateRequest(email="x@test.edu"))

    @pytest.mark.asyncio
    async def test_password_change_needs_current_password(self, mock_db, user_repo, make_user):
        with pytest.raises(ValidationError) as exc_info:
            await update_profile(
                mock_db, make_user(), ProfileUpdateRequest(new_password="newsecret")
            )

        assert "Current password is required" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, mock_db, user_repo, make_user):
        with patch(f"{SERVICE}.verify_password", return_value=False):
            with pytest.raises(ValidationError) as exc_info:
                await update_profile(
                    mock_db,
                    make_user(),
                    ProfileUpdateRequest(current_password="bad", new_password="newsecret"),
                )

        assert exc_info.value.message == "Current password is incorrect"

    @pytest.mark.asyncio
    async def test_updates_name(self, mock_db, user_repo, make_user):
        user = make_user(name="Old")

        result = await update_profile(mock_db, user, ProfileUpdateRequest(name=" New "))

        assert result.user.name == "New"
        mock_db.commit.assert_awaited_once()
