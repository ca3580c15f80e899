"""Account lifecycle state machine.

Accounts start unverified and active. ``verify_email`` moves them to verified,
``soft_delete_account`` and ``restore_account`` toggle ``deleted_at`` without
touching anything else. Login needs a verified, active account.

Every public operation returns an :class:`~accounts_api.outcomes.Outcome`;
storage failures and unexpected errors are logged and reported as internal
errors instead of propagating.
"""
import functools
import logging
from typing import Optional

from . import models, schemas, validation
from .core.config import settings
from .core.security import CredentialHasher, SecretGenerator
from .exceptions import DuplicateKeyError
from .mailer import InlineDelivery
from .outcomes import Outcome
from .repository import AccountRepository, normalize_email
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "User not found."
UNAUTHENTICATED = "Unauthenticated."
ACCOUNT_DELETED = "Your account has been deleted. Please contact support for assistance."


def request_boundary(action: str):
    """Turn any error escaping an operation into an internal-error outcome."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except Exception as exc:
                logger.exception("%s failed", func.__name__)
                if self.expose_internal_errors:
                    return Outcome.internal_error(str(exc))
                return Outcome.internal_error(f"An error occurred while {action}. Please try again.")
        return wrapper
    return decorator


def snapshot(account: models.User) -> dict:
    return schemas.User.model_validate(account).model_dump(mode="json")


class AccountService:
    def __init__(
            self,
            repository: AccountRepository,
            tokens: TokenIssuer,
            hasher: Optional[CredentialHasher] = None,
            generator: Optional[SecretGenerator] = None,
            delivery=None,
            admin_role: Optional[str] = None,
            expose_internal_errors: Optional[bool] = None,
    ):
        self.repository = repository
        self.tokens = tokens
        self.hasher = hasher or CredentialHasher()
        self.generator = generator or SecretGenerator()
        self.delivery = delivery or InlineDelivery()
        self.admin_role = admin_role or settings.ADMIN_ROLE
        if expose_internal_errors is None:
            expose_internal_errors = settings.EXPOSE_INTERNAL_ERRORS
        self.expose_internal_errors = expose_internal_errors

    @request_boundary("signing up")
    def signup(self, data: schemas.SignupRequest) -> Outcome:
        errors = validation.validate_signup(data.username, data.email, data.password)
        if errors:
            return Outcome.validation_failed(errors)

        username = validation.clean(data.username)
        email = normalize_email(data.email)

        conflicts = []
        if self.repository.find_by_username(username, include_soft_deleted=True):
            conflicts.append("username")
        if self.repository.find_by_email(email, include_soft_deleted=True):
            conflicts.append("email")
        if conflicts:
            return self._conflict(conflicts)

        secret = self.generator.generate()
        account = models.User(
            username=username,
            email=email,
            password=self.hasher.hash(data.password),
            verification_token=self.hasher.hash(secret),
            verified=False,
        )
        try:
            account = self.repository.create(account)
        except DuplicateKeyError as exc:
            # lost a race against a concurrent signup
            return self._conflict(exc.fields or ["username", "email"])

        try:
            message = self.delivery.deliver_verification(account, secret)
        except Exception:
            # nobody received the code, free the username and email for a retry
            self.repository.delete(account.id)
            raise

        logger.info("account %s signed up", account.id)
        return Outcome.success(message)

    @request_boundary("verifying your email")
    def verify_email(self, data: schemas.VerifyEmailRequest) -> Outcome:
        errors = validation.validate_verify_email(data.email, data.token)
        if errors:
            return Outcome.validation_failed(errors)

        account = self.repository.find_by_email(data.email, include_soft_deleted=False)
        digest = account.verification_token if account else None
        if not self.hasher.verify(data.token, digest) or account is None:
            return Outcome.unauthorized("Invalid email or verification token.")

        account.verification_token = None
        account.verified = True
        self.repository.save(account)

        logger.info("account %s verified", account.id)
        return Outcome.success("Email verified successfully. You can now login to your account.")

    @request_boundary("logging in")
    def login(self, data: schemas.LoginRequest) -> Outcome:
        errors = validation.validate_login(data.email, data.password)
        if errors:
            return Outcome.validation_failed(errors)

        account = self.repository.find_by_email(data.email, include_soft_deleted=True)
        if account is None:
            return Outcome.not_found(USER_NOT_FOUND)
        if not account.verified:
            return Outcome.unauthorized("Please verify your email address first.")
        if account.trashed:
            return Outcome.unauthorized(ACCOUNT_DELETED)
        if not self.hasher.verify(data.password, account.password):
            return Outcome.unauthorized("Invalid credentials.")

        is_admin = self.repository.has_role(account.id, self.admin_role)
        token = self.tokens.issue(account.id)

        logger.info("account %s logged in", account.id)
        return Outcome.payload(
            token=token,
            user=snapshot(account),
            is_admin=is_admin,
            soft_deleted=account.trashed,
        )

    @request_boundary("logging out")
    def logout(self, caller: Optional[models.User]) -> Outcome:
        if caller is None:
            return Outcome.unauthorized(UNAUTHENTICATED)
        revoked = self.tokens.revoke_all(caller.id)
        logger.info("account %s logged out, %d token(s) revoked", caller.id, revoked)
        return Outcome.success("You have logged out.")

    @request_boundary("requesting a password reset")
    def forgot_password(self, data: schemas.ForgotPasswordRequest) -> Outcome:
        errors = validation.validate_forgot_password(data.email)
        if errors:
            return Outcome.validation_failed(errors)

        account = self.repository.find_by_email(data.email, include_soft_deleted=True)
        if account is None:
            return Outcome.not_found(USER_NOT_FOUND)
        if account.trashed:
            return Outcome.unauthorized(ACCOUNT_DELETED)

        secret = self.generator.generate()
        account.reset_token = self.hasher.hash(secret)
        self.repository.save(account)

        logger.info("account %s requested a password reset", account.id)
        return Outcome.success(self.delivery.deliver_reset(account, secret))

    @request_boundary("resetting your password")
    def reset_password(self, data: schemas.ResetPasswordRequest) -> Outcome:
        errors = validation.validate_reset_password(data.email, data.token, data.password)
        if errors:
            return Outcome.validation_failed(errors)

        account = self.repository.find_by_email(data.email, include_soft_deleted=True)
        if account is None:
            return Outcome.not_found(USER_NOT_FOUND)
        if account.trashed:
            return Outcome.unauthorized(ACCOUNT_DELETED)
        if not self.hasher.verify(data.token, account.reset_token):
            return Outcome.not_found("Invalid verification code.")

        account.password = self.hasher.hash(data.password)
        account.reset_token = None
        self.repository.save(account)

        logger.info("account %s reset its password", account.id)
        return Outcome.success("Password reset successful.")

    @request_boundary("deleting your account")
    def soft_delete_account(self, caller: Optional[models.User]) -> Outcome:
        if caller is None:
            return Outcome.unauthorized(UNAUTHENTICATED)
        # revoke first: a failure in between leaves a live account without tokens
        self.tokens.revoke_all(caller.id)
        self.repository.soft_delete(caller.id)
        logger.info("account %s soft-deleted", caller.id)
        return Outcome.success("Your account has been deleted.")

    @request_boundary("restoring the account")
    def restore_account(self, data: schemas.RestoreAccountRequest) -> Outcome:
        errors = validation.validate_restore(data.user_id)
        if errors:
            return Outcome.validation_failed(errors)

        account = self.repository.find_by_id(data.user_id, include_soft_deleted=True)
        if account is None:
            return Outcome.not_found(USER_NOT_FOUND)
        if not account.trashed:
            return Outcome.bad_request("Account is not soft-deleted.")

        self.repository.restore(account.id)
        logger.info("account %s restored", account.id)
        return Outcome.success("User account has been undeleted.")

    @request_boundary("loading your account")
    def current_account(self, caller: Optional[models.User]) -> Outcome:
        if caller is None:
            return Outcome.unauthorized(UNAUTHENTICATED)
        return Outcome.payload(user=snapshot(caller))

    def _conflict(self, fields) -> Outcome:
        return Outcome.conflict([validation.message(f"{field}.unique") for field in fields])
