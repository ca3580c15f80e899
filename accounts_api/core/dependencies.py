from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from accounts_api import models
from accounts_api.database import get_db
from accounts_api.mailer import get_delivery
from accounts_api.repository import AccountRepository
from accounts_api.service import AccountService
from accounts_api.tokens import TokenIssuer
from .security import CredentialHasher, SecretGenerator

hasher = CredentialHasher()
generator = SecretGenerator()


async def get_token_from_cookie_or_header(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):].strip() or None

    token = request.cookies.get("token")
    if token:
        return token.replace("Bearer ", "")

    return None


def get_token_issuer(db: Session = Depends(get_db)) -> TokenIssuer:
    return TokenIssuer(db)


def get_account_service(
        db: Session = Depends(get_db),
        tokens: TokenIssuer = Depends(get_token_issuer),
) -> AccountService:
    return AccountService(
        repository=AccountRepository(db),
        tokens=tokens,
        hasher=hasher,
        generator=generator,
        delivery=get_delivery(),
    )


def get_current_account(
        token: Optional[str] = Depends(get_token_from_cookie_or_header),
        tokens: TokenIssuer = Depends(get_token_issuer),
) -> Optional[models.User]:
    """Resolve the calling account, or None when the request carries no valid token."""
    return tokens.resolve(token)
