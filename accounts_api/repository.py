# accounts_api/repository.py
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .exceptions import DuplicateKeyError, RepositoryError

UNIQUE_FIELDS = ("username", "email")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _duplicate_fields(exc: IntegrityError):
    detail = str(exc.orig).lower()
    return [field for field in UNIQUE_FIELDS if field in detail]


class AccountRepository:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self):
        try:
            yield
        except IntegrityError as exc:
            self.db.rollback()
            fields = _duplicate_fields(exc)
            if fields:
                raise DuplicateKeyError(fields, str(exc.orig)) from exc
            raise RepositoryError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RepositoryError(str(exc)) from exc

    def _query(self, include_soft_deleted: bool):
        query = self.db.query(models.User)
        if not include_soft_deleted:
            query = query.filter(models.User.deleted_at.is_(None))
        return query

    def find_by_email(self, email: str, include_soft_deleted: bool) -> Optional[models.User]:
        with self._guard():
            return self._query(include_soft_deleted).filter(
                models.User.email == normalize_email(email)
            ).first()

    def find_by_username(self, username: str, include_soft_deleted: bool) -> Optional[models.User]:
        with self._guard():
            return self._query(include_soft_deleted).filter(
                func.lower(models.User.username) == username.strip().lower()
            ).first()

    def find_by_id(self, account_id, include_soft_deleted: bool) -> Optional[models.User]:
        try:
            account_id = int(account_id)
        except (TypeError, ValueError):
            return None
        with self._guard():
            return self._query(include_soft_deleted).filter(models.User.id == account_id).first()

    def create(self, account: models.User) -> models.User:
        account.email = normalize_email(account.email)
        with self._guard():
            self.db.add(account)
            self.db.commit()
            self.db.refresh(account)
        return account

    def save(self, account: models.User) -> models.User:
        with self._guard():
            account.updated_at = models.utcnow()
            self.db.add(account)
            self.db.commit()
            self.db.refresh(account)
        return account

    def delete(self, account_id) -> None:
        """Remove the row for good. Only used to undo a signup that never completed."""
        account = self.find_by_id(account_id, include_soft_deleted=True)
        if account is None:
            return
        with self._guard():
            self.db.delete(account)
            self.db.commit()

    def soft_delete(self, account_id) -> None:
        self._set_deleted_at(account_id, models.utcnow())

    def restore(self, account_id) -> None:
        self._set_deleted_at(account_id, None)

    def _set_deleted_at(self, account_id, value) -> None:
        account = self.find_by_id(account_id, include_soft_deleted=True)
        if account is None:
            raise RepositoryError(f"account {account_id} does not exist")
        with self._guard():
            account.deleted_at = value
            self.db.commit()
            self.db.refresh(account)

    def has_role(self, account_id, role: str) -> bool:
        with self._guard():
            return self.db.query(models.UserRole).filter(
                models.UserRole.user_id == account_id,
                models.UserRole.role == role,
            ).first() is not None

    def grant_role(self, account_id, role: str) -> None:
        if self.has_role(account_id, role):
            return
        with self._guard():
            self.db.add(models.UserRole(user_id=account_id, role=role))
            self.db.commit()
