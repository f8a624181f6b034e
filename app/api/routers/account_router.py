"""
Account Router for Account Service.
Handles registration, login, logout, token refresh and profile endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse

from app.api.deps.auth_guard import (
    ACCESS_TOKEN_COOKIE,
    AuthenticatedAccount,
    get_current_account,
)
from app.api.dto.account_dto import (
    AccountResponseDTO,
    ApiErrorResponseDTO,
    ApiResponseDTO,
    ChangePasswordRequestDTO,
    LoginRequestDTO,
    LoginResponseDataDTO,
    RefreshTokenRequestDTO,
    TokenPairDTO,
    UpdateAccountDetailsRequestDTO,
    build_api_response,
)
from app.api.services.account_service import AccountService, get_account_service
from app.core.config import settings
from app.core.exceptions import async_handler
from app.core.logging import get_logger

logger = get_logger(__name__)

REFRESH_TOKEN_COOKIE = "refreshToken"

# Create router
router = APIRouter(
    responses={
        400: {"model": ApiErrorResponseDTO},
        401: {"model": ApiErrorResponseDTO},
        404: {"model": ApiErrorResponseDTO},
        409: {"model": ApiErrorResponseDTO},
        500: {"model": ApiErrorResponseDTO},
    }
)


def _set_token_cookies(
    response: JSONResponse, tokens: TokenPairDTO, service: AccountService
) -> None:
    """Set the accessToken/refreshToken cookies on a response."""
    cookie_kwargs = settings.get_cookie_kwargs()
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=tokens.access_token,
        max_age=int(service.tokens.access_ttl.total_seconds()),
        **cookie_kwargs,
    )
    response.set_cookie(
        key=REFRESH_TOKEN_COOKIE,
        value=tokens.refresh_token,
        max_age=int(service.tokens.refresh_ttl.total_seconds()),
        **cookie_kwargs,
    )


def _clear_token_cookies(response: JSONResponse) -> None:
    """Clear the accessToken/refreshToken cookies with the attributes they were set with."""
    cookie_kwargs = settings.get_cookie_kwargs()
    response.delete_cookie(key=ACCESS_TOKEN_COOKIE, **cookie_kwargs)
    response.delete_cookie(key=REFRESH_TOKEN_COOKIE, **cookie_kwargs)


@router.post(
    "/register",
    response_model=ApiResponseDTO,
    status_code=status.HTTP_201_CREATED,
)
@async_handler
async def register_user(
    full_name: Optional[str] = Form(None, alias="fullName"),
    email: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """
    Register a new account.

    Multipart form with fullName, email, username, password, an avatar file
    (required) and a coverImage file (optional).

    Returns:
        201 envelope with the created account (no password or refresh token)
    """
    logger.info(f"Registering account: {username}")

    account = await service.register(
        full_name=full_name,
        email=email,
        username=username,
        password=password,
        avatar=avatar,
        cover_image=cover_image,
    )

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=build_api_response(
            status.HTTP_201_CREATED,
            AccountResponseDTO.from_account(account),
            "User registered successfully",
        ),
    )


@router.post("/login", response_model=ApiResponseDTO)
@async_handler
async def login_user(
    request: LoginRequestDTO,
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """
    Log in with a username or email and a password.

    Sets the accessToken and refreshToken cookies and returns both tokens
    with the account.
    """
    account, tokens = await service.login(
        username=request.username,
        email=request.email,
        password=request.password,
    )

    data = LoginResponseDataDTO(
        user=AccountResponseDTO.from_account(account),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )
    response = JSONResponse(
        status_code=status.HTTP_200_OK,
        content=build_api_response(
            status.HTTP_200_OK, data, "User logged in successfully"
        ),
    )
    _set_token_cookies(response, tokens, service)
    return response


@router.post("/logout", response_model=ApiResponseDTO)
@async_handler
async def logout_user(
    current_account: AuthenticatedAccount = Depends(get_current_account),
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """
    Log out the authenticated account.

    Clears the stored refresh token and both cookies.
    """
    await service.logout(current_account.account_id)

    response = JSONResponse(
        status_code=status.HTTP_200_OK,
        content=build_api_response(status.HTTP_200_OK, {}, "User logged out"),
    )
    _clear_token_cookies(response)
    return response


@router.post("/refresh-token", response_model=ApiResponseDTO)
@async_handler
async def refresh_access_token(
    request: Request,
    payload: Optional[RefreshTokenRequestDTO] = Body(None),
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """
    Rotate the access/refresh token pair.

    The refresh token is read from the refreshToken cookie, or from the
    request body when no cookie is sent.
    """
    incoming_refresh_token = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if not incoming_refresh_token and payload is not None:
        incoming_refresh_token = payload.refresh_token

    tokens = await service.refresh_access_token(incoming_refresh_token)

    response = JSONResponse(
        status_code=status.HTTP_200_OK,
        content=build_api_response(status.HTTP_200_OK, tokens, "Access token refreshed"),
    )
    _set_token_cookies(response, tokens, service)
    return response


@router.post("/change-password", response_model=ApiResponseDTO)
@async_handler
async def change_current_password(
    request: ChangePasswordRequestDTO,
    current_account: AuthenticatedAccount = Depends(get_current_account),
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Change the authenticated account's password."""
    await service.change_password(
        current_account.account_id, request.old_password, request.new_password
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=build_api_response(
            status.HTTP_200_OK, {}, "Password changed successfully"
        ),
    )


@router.get("/current-user", response_model=ApiResponseDTO)
@async_handler
async def get_current_user(
    current_account: AuthenticatedAccount = Depends(get_current_account),
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Get the authenticated account."""
    account = await service.get_current_account(current_account.account_id)
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=build_api_response(
            status.HTTP_200_OK,
            AccountResponseDTO.from_account(account),
            "Current user fetched successfully",
        ),
    )


@router.patch("/update-account", response_model=ApiResponseDTO)
@async_handler
async def update_account_details(
    request: UpdateAccountDetailsRequestDTO,
    current_account: AuthenticatedAccount = Depends(get_current_account),
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Update the authenticated account's full name and email."""
    account = await service.update_account_details(
        current_account.account_id, request.full_name, request.email
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=build_api_response(
            status.HTTP_200_OK,
            AccountResponseDTO.from_account(account),
            "Account details updated successfully",
        ),
    )


@router.patch("/avatar", response_model=ApiResponseDTO)
@async_handler
async def update_user_avatar(
    avatar: Optional[UploadFile] = File(None),
    current_account: AuthenticatedAccount = Depends(get_current_account),
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Replace the authenticated account's avatar."""
    account = await service.update_avatar(current_account.account_id, avatar)
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=build_api_response(
            status.HTTP_200_OK,
            AccountResponseDTO.from_account(account),
            "Avatar updated successfully",
        ),
    )


@router.patch("/cover-image", response_model=ApiResponseDTO)
@async_handler
async def update_user_cover_image(
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    current_account: AuthenticatedAccount = Depends(get_current_account),
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Replace the authenticated account's cover image."""
    account = await service.update_cover_image(current_account.account_id, cover_image)
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=build_api_response(
            status.HTTP_200_OK,
            AccountResponseDTO.from_account(account),
            "Cover image updated successfully",
        ),
    )


@router.get("/health", include_in_schema=False)
async def health_check() -> dict:
    """
    Health check endpoint for the account service.

    Returns:
        Dict containing service status
    """
    return {
        "status": "healthy",
        "service": "account_management",
        "functions": [
            "register",
            "login",
            "logout",
            "refresh_token",
            "change_password",
            "current_user",
            "update_account",
            "update_avatar",
            "update_cover_image",
        ],
    }
