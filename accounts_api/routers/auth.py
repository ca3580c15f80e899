from typing import Optional

from fastapi import APIRouter, Depends

from .. import models, schemas
from ..core.dependencies import get_account_service, get_current_account
from ..service import AccountService

router = APIRouter()

ERROR_RESPONSES = {
    401: {"model": schemas.Error},
    404: {"model": schemas.Error},
    422: {"model": schemas.Errors},
    500: {"model": schemas.Error},
}


@router.post("/signup", response_model=schemas.Message, responses=ERROR_RESPONSES)
def signup(
        data: Optional[schemas.SignupRequest] = None,
        service: AccountService = Depends(get_account_service)
):
    return service.signup(data or schemas.SignupRequest()).to_response()


@router.post("/verify-email", response_model=schemas.Message, responses=ERROR_RESPONSES)
def verify_email(
        data: Optional[schemas.VerifyEmailRequest] = None,
        service: AccountService = Depends(get_account_service)
):
    return service.verify_email(data or schemas.VerifyEmailRequest()).to_response()


@router.post("/login", response_model=schemas.LoginResponse, responses=ERROR_RESPONSES)
def login(
        data: Optional[schemas.LoginRequest] = None,
        service: AccountService = Depends(get_account_service)
):
    return service.login(data or schemas.LoginRequest()).to_response()


@router.post("/logout", response_model=schemas.Message, responses=ERROR_RESPONSES)
def logout(
        current_account: Optional[models.User] = Depends(get_current_account),
        service: AccountService = Depends(get_account_service)
):
    return service.logout(current_account).to_response()


@router.post("/forgot-password", response_model=schemas.Message, responses=ERROR_RESPONSES)
def forgot_password(
        data: Optional[schemas.ForgotPasswordRequest] = None,
        service: AccountService = Depends(get_account_service)
):
    return service.forgot_password(data or schemas.ForgotPasswordRequest()).to_response()


@router.post("/reset-password", response_model=schemas.Message, responses=ERROR_RESPONSES)
def reset_password(
        data: Optional[schemas.ResetPasswordRequest] = None,
        service: AccountService = Depends(get_account_service)
):
    return service.reset_password(data or schemas.ResetPasswordRequest()).to_response()


@router.delete("/account", response_model=schemas.Message, responses=ERROR_RESPONSES)
def soft_delete_account(
        current_account: Optional[models.User] = Depends(get_current_account),
        service: AccountService = Depends(get_account_service)
):
    return service.soft_delete_account(current_account).to_response()


@router.post("/restore-account", response_model=schemas.Message,
             responses={**ERROR_RESPONSES, 400: {"model": schemas.Error}})
def restore_account(
        data: Optional[schemas.RestoreAccountRequest] = None,
        service: AccountService = Depends(get_account_service)
):
    return service.restore_account(data or schemas.RestoreAccountRequest()).to_response()


@router.get("/me", responses=ERROR_RESPONSES)
def read_current_account(
        current_account: Optional[models.User] = Depends(get_current_account),
        service: AccountService = Depends(get_account_service)
):
    return service.current_account(current_account).to_response()
