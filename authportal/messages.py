"""
Localized User-Facing Messages.

Maps every ``ErrorKind`` and ``NoticeKind`` to display text per locale.
This module holds **no logic** beyond lookup and formatting; the
classification itself lives in ``services.error_normalizer``.
"""

from __future__ import annotations

from typing import Final, Optional

from authportal.models.auth_models import AuthError
from authportal.models.enums import ErrorKind, NoticeKind

DEFAULT_LOCALE: Final[str] = "en"

ERROR_MESSAGES: Final[dict[str, dict[ErrorKind, str]]] = {
    "en": {
        ErrorKind.INVALID_CREDENTIALS: "Incorrect email or password.",
        ErrorKind.EMAIL_NOT_CONFIRMED: "Confirm your email address to sign in. Check your inbox.",
        ErrorKind.WEAK_PASSWORD: "Password must be at least {min_length} characters.",
        ErrorKind.PASSWORD_MISMATCH: "Passwords do not match.",
        ErrorKind.USERNAME_REQUIRED: "Enter a username.",
        ErrorKind.RATE_LIMITED: "Too many requests. Please try again later.",
        ErrorKind.USER_NOT_FOUND: "No account exists for this email.",
        ErrorKind.INVALID_EMAIL_FORMAT: "Please enter a valid email address.",
        ErrorKind.SAME_PASSWORD_REUSE: "The new password must differ from the old one.",
        ErrorKind.EMAIL_ALREADY_REGISTERED: "An account with this email already exists. Try signing in.",
        ErrorKind.NETWORK_ERROR: "Cannot reach the server. Check your internet connection.",
        ErrorKind.BUSY: "A request is already in progress.",
        ErrorKind.UNKNOWN: "Something went wrong. Please try again.",
    },
    "ru": {
        ErrorKind.INVALID_CREDENTIALS: "Введены неверные данные",
        ErrorKind.EMAIL_NOT_CONFIRMED: "Подтвердите ваши данные на почте для входа",
        ErrorKind.WEAK_PASSWORD: "Пароль должен содержать минимум {min_length} символов",
        ErrorKind.PASSWORD_MISMATCH: "Пароли не совпадают",
        ErrorKind.USERNAME_REQUIRED: "Введите имя пользователя",
        ErrorKind.RATE_LIMITED: "Слишком много запросов. Попробуйте позже",
        ErrorKind.USER_NOT_FOUND: "Пользователь с таким email не найден",
        ErrorKind.INVALID_EMAIL_FORMAT: "Неверный формат email",
        ErrorKind.SAME_PASSWORD_REUSE: "Новый пароль не может совпадать со старым",
        ErrorKind.EMAIL_ALREADY_REGISTERED: "Пользователь с таким email уже зарегистрирован",
        ErrorKind.NETWORK_ERROR: "Нет соединения с сервером. Проверьте подключение к интернету",
        ErrorKind.BUSY: "Запрос уже выполняется",
        ErrorKind.UNKNOWN: "Произошла ошибка. Попробуйте ещё раз",
    },
}

NOTICE_MESSAGES: Final[dict[str, dict[NoticeKind, str]]] = {
    "en": {
        NoticeKind.REGISTERED: (
            "Registration successful! We sent you an email to confirm your account."
        ),
        NoticeKind.RESET_EMAIL_SENT: "A password reset email was sent to {email}.",
        NoticeKind.PASSWORD_CHANGED: (
            "Password changed! Sign in with your new password."
        ),
    },
    "ru": {
        NoticeKind.REGISTERED: (
            "Регистрация успешна! Вам отправлено письмо на почту для подтверждения данных."
        ),
        NoticeKind.RESET_EMAIL_SENT: "Письмо для восстановления пароля отправлено на {email}",
        NoticeKind.PASSWORD_CHANGED: (
            "Пароль успешно изменен! Теперь войдите с новым паролем."
        ),
    },
}


def _catalog(table: dict[str, dict], locale: str) -> dict:
    return table.get(locale) or table[DEFAULT_LOCALE]


def describe_error(error: AuthError, locale: str = DEFAULT_LOCALE, min_length: int = 6) -> str:
    """Return the display text for *error*.

    ``UNKNOWN`` errors show the provider's own message when there is one.
    """
    if error.kind == ErrorKind.UNKNOWN and error.message:
        return error.message
    template = _catalog(ERROR_MESSAGES, locale)[error.kind]
    return template.format(min_length=min_length)


def describe_notice(kind: NoticeKind, locale: str = DEFAULT_LOCALE, email: Optional[str] = None) -> str:
    """Return the banner text for *kind*."""
    template = _catalog(NOTICE_MESSAGES, locale)[kind]
    return template.format(email=email or "")
