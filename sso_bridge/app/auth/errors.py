"""
SSO error taxonomy and localized user-facing messages.

Issuance-side errors (raised by the redirector) derive from SsoError.
Verification-side errors (raised by the token codec and the verifier)
derive from SsoTokenError. Every error carries an ErrorCode and the HTTP
status the web layer should answer with. Messages never contain secrets.
"""

from enum import Enum
from typing import Dict

from fastapi import status


class ErrorCode(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    MISSING_EMAIL = "MISSING_EMAIL"
    INVALID_PRINCIPAL = "INVALID_PRINCIPAL"
    UNKNOWN_TARGET = "UNKNOWN_TARGET"
    MISCONFIGURED = "MISCONFIGURED"
    MALFORMED_TOKEN = "MALFORMED_TOKEN"
    BAD_SIGNATURE = "BAD_SIGNATURE"
    EXPIRED = "EXPIRED"
    REPLAYED = "REPLAYED"


# =============================================================================
# Localized Messages
# =============================================================================

MESSAGES: Dict[str, Dict[ErrorCode, str]] = {
    "en": {
        ErrorCode.UNAUTHENTICATED: "You are not signed in.",
        ErrorCode.MISSING_EMAIL: "Your account has no email address. Please contact the administrator.",
        ErrorCode.INVALID_PRINCIPAL: "Your account identifier cannot be used for single sign-on. Please contact the administrator.",
        ErrorCode.UNKNOWN_TARGET: "Unknown target system: {target}",
        ErrorCode.MISCONFIGURED: "SSO for {target} is not configured. Please contact the administrator.",
        ErrorCode.MALFORMED_TOKEN: "The sign-in token is malformed.",
        ErrorCode.BAD_SIGNATURE: "The sign-in token signature is invalid.",
        ErrorCode.EXPIRED: "The sign-in token has expired.",
        ErrorCode.REPLAYED: "The sign-in token has already been used.",
    },
    "ru": {
        ErrorCode.UNAUTHENTICATED: "Пользователь не авторизован.",
        ErrorCode.MISSING_EMAIL: "У вашего аккаунта не указан email. Обратитесь к администратору.",
        ErrorCode.INVALID_PRINCIPAL: "Идентификатор вашего аккаунта не подходит для единого входа. Обратитесь к администратору.",
        ErrorCode.UNKNOWN_TARGET: "Неизвестная целевая система: {target}",
        ErrorCode.MISCONFIGURED: "SSO для {target} не настроен. Обратитесь к администратору.",
        ErrorCode.MALFORMED_TOKEN: "Токен входа повреждён.",
        ErrorCode.BAD_SIGNATURE: "Неверная подпись токена входа.",
        ErrorCode.EXPIRED: "Срок действия токена входа истёк.",
        ErrorCode.REPLAYED: "Токен входа уже был использован.",
    },
}

TITLES: Dict[str, str] = {
    "en": "Single sign-on failed",
    "ru": "Ошибка единого входа",
}


def localized_message(code: ErrorCode, locale: str = "en", **params) -> str:
    catalog = MESSAGES.get(locale, MESSAGES["en"])
    return catalog[code].format(**params)


# =============================================================================
# Issuance Errors
# =============================================================================

class SsoError(Exception):
    """Base exception for SSO handoff failures."""
    code: ErrorCode = ErrorCode.MISCONFIGURED
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, target: str = ""):
        self.target = target
        super().__init__(f"{self.code.value}: {target}" if target else self.code.value)

    def user_message(self, locale: str = "en") -> str:
        return localized_message(self.code, locale, target=self.target)


class UnauthenticatedError(SsoError):
    code = ErrorCode.UNAUTHENTICATED
    status_code = status.HTTP_401_UNAUTHORIZED


class MissingEmailError(SsoError):
    code = ErrorCode.MISSING_EMAIL
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidPrincipalError(SsoError):
    code = ErrorCode.INVALID_PRINCIPAL
    status_code = status.HTTP_400_BAD_REQUEST


class UnknownTargetError(SsoError):
    code = ErrorCode.UNKNOWN_TARGET
    status_code = status.HTTP_404_NOT_FOUND


class MisconfiguredError(SsoError):
    code = ErrorCode.MISCONFIGURED
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


# =============================================================================
# Verification Errors
# =============================================================================

class SsoTokenError(Exception):
    """Base exception for token decoding and verification failures."""
    code: ErrorCode = ErrorCode.MALFORMED_TOKEN
    status_code: int = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(f"{self.code.value}: {detail}" if detail else self.code.value)


class MalformedTokenError(SsoTokenError):
    code = ErrorCode.MALFORMED_TOKEN


class BadSignatureError(SsoTokenError):
    code = ErrorCode.BAD_SIGNATURE


class TokenExpiredError(SsoTokenError):
    code = ErrorCode.EXPIRED


class TokenReplayedError(SsoTokenError):
    code = ErrorCode.REPLAYED


__all__ = [
    "ErrorCode",
    "MESSAGES",
    "TITLES",
    "localized_message",
    "SsoError",
    "UnauthenticatedError",
    "MissingEmailError",
    "InvalidPrincipalError",
    "UnknownTargetError",
    "MisconfiguredError",
    "SsoTokenError",
    "MalformedTokenError",
    "BadSignatureError",
    "TokenExpiredError",
    "TokenReplayedError",
]
