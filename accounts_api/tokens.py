# accounts_api/tokens.py
import hmac
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .core import security
from .core.config import settings
from .exceptions import RepositoryError


class TokenIssuer:
    """Opaque bearer tokens of the form ``<record id>|<secret>``.

    Only a keyed digest of the secret part is stored, so a leaked table cannot
    be replayed. Tokens never expire; they disappear when revoked.
    """

    def __init__(self, db: Session, secret_key: Optional[str] = None, name: Optional[str] = None):
        self.db = db
        self.secret_key = secret_key or settings.SECRET_KEY
        self.name = name or settings.AUTH_TOKEN_NAME

    def issue(self, account_id: int) -> str:
        plain = security.generate_token_secret()
        record = models.AuthToken(
            user_id=account_id,
            name=self.name,
            token=security.digest_token(plain, self.secret_key),
        )
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RepositoryError(str(exc)) from exc
        return f"{record.id}|{plain}"

    def resolve(self, token: Optional[str]) -> Optional[models.User]:
        if not token:
            return None
        token_id, _, plain = token.partition("|")
        if not plain:
            token_id, plain = None, token
        digest = security.digest_token(plain, self.secret_key)

        try:
            record = self.db.query(models.AuthToken).filter(models.AuthToken.token == digest).first()
            if record is None or not hmac.compare_digest(record.token, digest):
                return None
            if token_id is not None and str(record.id) != token_id:
                return None
            user = record.user
            if user is None or user.deleted_at is not None:
                return None
            record.last_used_at = models.utcnow()
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RepositoryError(str(exc)) from exc
        return user

    def revoke_all(self, account_id: int) -> int:
        try:
            count = self.db.query(models.AuthToken).filter(
                models.AuthToken.user_id == account_id
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RepositoryError(str(exc)) from exc
        return count
