import pytest

from accounts_api.core.security import CredentialHasher
from accounts_api.exceptions import DuplicateKeyError, RepositoryError
from accounts_api.outcomes import OutcomeKind
from accounts_api.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    RestoreAccountRequest,
    SignupRequest,
    VerifyEmailRequest,
)
from accounts_api.service import AccountService

from .conftest import PASSWORD, code_from


def login(service, email="b@x.com", password=PASSWORD):
    return service.login(LoginRequest(email=email, password=password))


class TestSignup:
    def test_creates_unverified_account(self, service, signed_up):
        account = service.repository.find_by_email("b@x.com", include_soft_deleted=False)
        assert account.verified is False
        assert account.verification_token
        assert len(signed_up) == 10
        assert CredentialHasher().verify(signed_up, account.verification_token)
        assert account.password != PASSWORD

    def test_message_carries_the_code(self, service):
        outcome = service.signup(SignupRequest(username="bob", email="b@x.com", password=PASSWORD))
        assert outcome.status_code == 200
        assert outcome.body["message"].startswith("Your email verification code is")

    def test_validation_failure(self, service):
        outcome = service.signup(SignupRequest(username="b", email="nope", password="abc"))
        assert outcome.kind is OutcomeKind.VALIDATION_FAILED
        assert outcome.status_code == 422
        assert len(outcome.body["errors"]) == 4

    @pytest.mark.parametrize("username, email, expected", [
        ("bob", "new@x.com", ["This username is already in use."]),
        ("newbie", "B@X.com", ["This email address is already in use."]),
        ("bob", "b@x.com", ["This username is already in use.", "This email address is already in use."]),
    ])
    def test_duplicates_conflict(self, service, signed_up, username, email, expected):
        outcome = service.signup(SignupRequest(username=username, email=email, password=PASSWORD))
        assert outcome.kind is OutcomeKind.CONFLICT
        assert outcome.body == {"errors": expected}
        assert service.repository.find_by_username("newbie", include_soft_deleted=True) is None

    def test_username_uniqueness_ignores_case(self, service, signed_up):
        outcome = service.signup(SignupRequest(username="BOB", email="other@x.com", password=PASSWORD))
        assert outcome.kind is OutcomeKind.CONFLICT
        assert outcome.body == {"errors": ["This username is already in use."]}

    def test_numeric_token_becomes_text(self):
        assert VerifyEmailRequest(email="b@x.com", token=1234567890).token == "1234567890"
        assert ResetPasswordRequest(token=42).token == "42"

    def test_duplicates_include_soft_deleted_accounts(self, service, verified):
        service.repository.soft_delete(verified.id)
        outcome = service.signup(SignupRequest(username="bobby", email="b@x.com", password=PASSWORD))
        assert outcome.kind is OutcomeKind.CONFLICT

    def test_lost_race_is_conflict(self, service, monkeypatch):
        def create(account):
            raise DuplicateKeyError(["email"])
        monkeypatch.setattr(service.repository, "create", create)
        outcome = service.signup(SignupRequest(username="bob", email="b@x.com", password=PASSWORD))
        assert outcome.kind is OutcomeKind.CONFLICT
        assert outcome.body == {"errors": ["This email address is already in use."]}

    def test_repository_failure_is_internal_error(self, service, monkeypatch):
        def create(account):
            raise RepositoryError("database is locked")
        monkeypatch.setattr(service.repository, "create", create)
        outcome = service.signup(SignupRequest(username="bob", email="b@x.com", password=PASSWORD))
        assert outcome.kind is OutcomeKind.INTERNAL_ERROR
        assert outcome.status_code == 500
        assert outcome.body == {"error": "An error occurred while signing up. Please try again."}

    def test_internal_error_detail_can_be_exposed(self, repository, tokens, monkeypatch):
        service = AccountService(repository=repository, tokens=tokens, expose_internal_errors=True)

        def create(account):
            raise RepositoryError("database is locked")
        monkeypatch.setattr(repository, "create", create)
        outcome = service.signup(SignupRequest(username="bob", email="b@x.com", password=PASSWORD))
        assert outcome.body == {"error": "database is locked"}


class TestVerifyEmail:
    def test_verifies_and_clears_token(self, service, verified):
        assert verified.verified is True
        assert verified.verification_token is None

    def test_second_verification_fails(self, service, signed_up, verified):
        outcome = service.verify_email(VerifyEmailRequest(email="b@x.com", token=signed_up))
        assert outcome.kind is OutcomeKind.UNAUTHORIZED

    def test_unknown_email_and_wrong_token_look_the_same(self, service, signed_up):
        wrong = service.verify_email(VerifyEmailRequest(email="b@x.com", token="0000000000"))
        unknown = service.verify_email(VerifyEmailRequest(email="z@x.com", token=signed_up))
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.body == unknown.body == {"error": "Invalid email or verification token."}
        account = service.repository.find_by_email("b@x.com", include_soft_deleted=False)
        assert account.verified is False


class TestLogin:
    def test_success_issues_token(self, service, verified):
        outcome = login(service)
        assert outcome.ok
        assert outcome.body["is_admin"] is False
        assert outcome.body["soft_deleted"] is False
        assert outcome.body["user"]["email"] == "b@x.com"
        assert "password" not in outcome.body["user"]
        assert service.tokens.resolve(outcome.body["token"]).id == verified.id

    def test_admin_flag(self, service, verified):
        service.repository.grant_role(verified.id, "admin")
        assert login(service).body["is_admin"] is True

    def test_each_token_is_new(self, service, verified):
        first, second = login(service).body["token"], login(service).body["token"]
        assert first != second
        assert service.tokens.resolve(first) and service.tokens.resolve(second)

    def test_unknown_email(self, service):
        outcome = login(service, email="z@x.com")
        assert outcome.status_code == 404
        assert outcome.body == {"error": "User not found."}

    def test_unverified(self, service, signed_up):
        outcome = login(service)
        assert outcome.status_code == 401
        assert outcome.body == {"error": "Please verify your email address first."}

    def test_soft_deleted(self, service, verified):
        service.repository.soft_delete(verified.id)
        outcome = login(service)
        assert outcome.status_code == 401
        assert outcome.body == {
            "error": "Your account has been deleted. Please contact support for assistance."
        }

    def test_wrong_password(self, service, verified):
        outcome = login(service, password="Wrong123")
        assert outcome.status_code == 401
        assert outcome.body == {"error": "Invalid credentials."}

    def test_email_lookup_ignores_case(self, service, verified):
        assert login(service, email="B@X.COM").ok


class TestLogout:
    def test_revokes_every_token(self, service, verified):
        first, second = login(service).body["token"], login(service).body["token"]
        outcome = service.logout(service.tokens.resolve(first))
        assert outcome.body == {"message": "You have logged out."}
        assert service.tokens.resolve(first) is None
        assert service.tokens.resolve(second) is None

    def test_without_caller_is_unauthorized(self, service):
        outcome = service.logout(None)
        assert outcome.status_code == 401
        assert outcome.body == {"error": "Unauthenticated."}


class TestPasswordReset:
    def forgot(self, service, email="b@x.com"):
        return service.forgot_password(ForgotPasswordRequest(email=email))

    def test_round_trip(self, service, verified):
        outcome = self.forgot(service)
        assert outcome.body["message"].startswith("Your password reset code is")
        code = code_from(outcome.body["message"])

        outcome = service.reset_password(ResetPasswordRequest(email="b@x.com", token=code, password="Newpass1"))
        assert outcome.body == {"message": "Password reset successful."}

        account = service.repository.find_by_email("b@x.com", include_soft_deleted=False)
        assert account.reset_token is None
        assert login(service, password="Newpass1").ok
        assert login(service, password=PASSWORD).status_code == 401

    def test_forgot_leaves_other_state_alone(self, service, signed_up):
        self.forgot(service)
        account = service.repository.find_by_email("b@x.com", include_soft_deleted=False)
        assert account.reset_token
        assert account.verification_token
        assert account.verified is False
        assert CredentialHasher().verify(PASSWORD, account.password)

    def test_consumed_code_fails(self, service, verified):
        code = code_from(self.forgot(service).body["message"])
        request = ResetPasswordRequest(email="b@x.com", token=code, password="Newpass1")
        assert service.reset_password(request).ok
        outcome = service.reset_password(request)
        assert outcome.status_code == 404
        assert outcome.body == {"error": "Invalid verification code."}

    def test_only_latest_code_works(self, service, verified):
        old = code_from(self.forgot(service).body["message"])
        new = code_from(self.forgot(service).body["message"])
        stale = service.reset_password(ResetPasswordRequest(email="b@x.com", token=old, password="Newpass1"))
        assert stale.status_code == 404
        assert service.reset_password(ResetPasswordRequest(email="b@x.com", token=new, password="Newpass1")).ok

    def test_unknown_email(self, service):
        assert self.forgot(service, "z@x.com").body == {"error": "User not found."}
        outcome = service.reset_password(ResetPasswordRequest(email="z@x.com", token="abc", password="Newpass1"))
        assert outcome.status_code == 404
        assert outcome.body == {"error": "User not found."}

    def test_wrong_code_without_pending_reset(self, service, verified):
        outcome = service.reset_password(ResetPasswordRequest(email="b@x.com", token="abc", password="Newpass1"))
        assert outcome.status_code == 404

    def test_weak_new_password(self, service, verified):
        outcome = service.reset_password(ResetPasswordRequest(email="b@x.com", token="abc", password="weak"))
        assert outcome.kind is OutcomeKind.VALIDATION_FAILED

    def test_soft_deleted_accounts_are_rejected(self, service, verified):
        code = code_from(self.forgot(service).body["message"])
        service.repository.soft_delete(verified.id)
        assert self.forgot(service).status_code == 401
        outcome = service.reset_password(ResetPasswordRequest(email="b@x.com", token=code, password="Newpass1"))
        assert outcome.status_code == 401


class TestDeleteAndRestore:
    def test_soft_delete_revokes_tokens(self, service, verified):
        token = login(service).body["token"]
        outcome = service.soft_delete_account(service.tokens.resolve(token))
        assert outcome.body == {"message": "Your account has been deleted."}
        assert service.tokens.resolve(token) is None
        account = service.repository.find_by_id(verified.id, include_soft_deleted=True)
        assert account.trashed

    def test_soft_delete_without_caller(self, service):
        assert service.soft_delete_account(None).status_code == 401

    def test_restore_makes_account_loginable(self, service, verified):
        service.repository.soft_delete(verified.id)
        outcome = service.restore_account(RestoreAccountRequest(user_id=verified.id))
        assert outcome.body == {"message": "User account has been undeleted."}
        assert login(service).ok

    def test_restore_accepts_string_ids(self, service, verified):
        service.repository.soft_delete(verified.id)
        assert service.restore_account(RestoreAccountRequest(user_id=str(verified.id))).ok

    def test_restore_active_account_is_bad_request(self, service, verified):
        outcome = service.restore_account(RestoreAccountRequest(user_id=verified.id))
        assert outcome.status_code == 400
        assert outcome.body == {"error": "Account is not soft-deleted."}
        account = service.repository.find_by_id(verified.id, include_soft_deleted=False)
        assert account.deleted_at is None

    def test_restore_unknown_account(self, service):
        outcome = service.restore_account(RestoreAccountRequest(user_id=999))
        assert outcome.status_code == 404
        assert outcome.body == {"error": "User not found."}

    def test_restore_requires_user_id(self, service):
        outcome = service.restore_account(RestoreAccountRequest())
        assert outcome.body == {"errors": ["Please enter a user ID."]}

    def test_restored_unverified_account_still_cannot_login(self, service, signed_up):
        account = service.repository.find_by_email("b@x.com", include_soft_deleted=False)
        service.repository.soft_delete(account.id)
        assert service.restore_account(RestoreAccountRequest(user_id=account.id)).ok
        assert login(service).body == {"error": "Please verify your email address first."}
