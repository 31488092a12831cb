import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from filevault.core.config import Settings
from filevault.core.errors import ServiceError, ValidationFailed, error_response, operation
from filevault.dependencies import app_settings, get_accounts
from filevault.guard import require_user
from filevault.schemas import AccessTokenResponse, SignInRequest, SignUpRequest, password_policy_violations
from filevault.services.accounts import AccountService, TokenPair

log = logging.getLogger(__name__)

router = APIRouter()


def _signed_in(pair: TokenPair, settings: Settings) -> JSONResponse:
    response = JSONResponse({"accessToken": pair.access_token})
    response.set_cookie(
        settings.refresh_token_cookie_name,
        pair.refresh_token,
        secure=settings.cookie_secure,
        httponly=settings.cookie_httponly,
    )
    return response


@router.post("/signup", response_model=AccessTokenResponse)
def signup(body: SignUpRequest, settings: Settings = Depends(app_settings),
           accounts: AccountService = Depends(get_accounts)):
    with operation("signup_failed"):
        violations = password_policy_violations(body.password, settings)
        if violations:
            log.info("Sign-up rejected, password breaks %s", ", ".join(violations))
            raise ValidationFailed("weak_password")
        pair = accounts.sign_up(body.password, email=body.email, phone=body.phone)
    return _signed_in(pair, settings)


@router.post("/signin", response_model=AccessTokenResponse)
def signin(body: SignInRequest, settings: Settings = Depends(app_settings),
           accounts: AccountService = Depends(get_accounts)):
    with operation("signin_failed"):
        pair = accounts.sign_in(body.email_or_phone, body.password)
    return _signed_in(pair, settings)


@router.post("/token", response_model=AccessTokenResponse)
def token(request: Request, settings: Settings = Depends(app_settings),
          accounts: AccountService = Depends(get_accounts)):
    with operation("get_new_access_token_failed"):
        access_token = accounts.refresh_access(request.cookies.get(settings.refresh_token_cookie_name))
    return {"accessToken": access_token}


@router.get("/logout")
def logout(request: Request, user_id: str = Depends(require_user),
           settings: Settings = Depends(app_settings),
           accounts: AccountService = Depends(get_accounts)):
    # The cookie is cleared whether or not the stored token was found
    try:
        with operation("logout_failed"):
            accounts.sign_out(request.cookies.get(settings.refresh_token_cookie_name))
        response = JSONResponse({"detail": "logged_out"})
    except ServiceError as ex:
        response = error_response(ex)
    response.delete_cookie(
        settings.refresh_token_cookie_name,
        secure=settings.cookie_secure,
        httponly=settings.cookie_httponly,
    )
    return response


@router.get("/info")
def info(user_id: str = Depends(require_user), accounts: AccountService = Depends(get_accounts)):
    with operation("get_user_info_failed"):
        return accounts.user_info(user_id)
