"""
Provider Error Normalization.

Maps the free-text (and, where available, coded) errors returned by the
identity provider onto the closed ``ErrorKind`` set.

Matching is case-insensitive substring search over an ordered rule
table; the first rule whose context set contains the calling operation
and whose needle occurs in the error wins.  The same provider text can
classify differently per operation: "Email not confirmed" is only
meaningful to a login, so a registration that reports it falls through
to ``UNKNOWN``.

Everything here is pure: no I/O, no logging, no state.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from authportal.models.auth_models import AuthError
from authportal.models.enums import ErrorKind, OperationContext

_ALL: frozenset[OperationContext] = frozenset(OperationContext)


class NormalizationRule(NamedTuple):
    contexts: frozenset[OperationContext]
    needles: tuple[str, ...]
    kind: ErrorKind


# Order matters: specific phrases first, the bare "seconds" cooldown
# hint last so it cannot shadow a more precise match.
RULES: tuple[NormalizationRule, ...] = (
    NormalizationRule(
        frozenset({OperationContext.LOGIN}),
        ("email not confirmed", "email confirmation", "email_not_confirmed"),
        ErrorKind.EMAIL_NOT_CONFIRMED,
    ),
    NormalizationRule(
        frozenset({OperationContext.LOGIN}),
        ("invalid login credentials", "invalid_credentials", "invalid_grant"),
        ErrorKind.INVALID_CREDENTIALS,
    ),
    NormalizationRule(
        frozenset({OperationContext.RESET_REQUEST}),
        ("security purposes", "only request this after", "over_email_send_rate_limit"),
        ErrorKind.RATE_LIMITED,
    ),
    NormalizationRule(
        _ALL,
        ("rate limit", "too many requests", "over_request_rate_limit"),
        ErrorKind.RATE_LIMITED,
    ),
    NormalizationRule(
        frozenset({OperationContext.RESET_REQUEST}),
        ("user not found", "user_not_found"),
        ErrorKind.USER_NOT_FOUND,
    ),
    NormalizationRule(
        frozenset({OperationContext.REGISTER, OperationContext.RESET_REQUEST}),
        ("invalid email", "unable to validate email address", "email_address_invalid"),
        ErrorKind.INVALID_EMAIL_FORMAT,
    ),
    NormalizationRule(
        frozenset({OperationContext.REGISTER}),
        ("user already registered", "user_already_exists", "email_exists"),
        ErrorKind.EMAIL_ALREADY_REGISTERED,
    ),
    NormalizationRule(
        frozenset({OperationContext.RESET_PERFORM}),
        ("same as the old password", "different from the old password", "same_password"),
        ErrorKind.SAME_PASSWORD_REUSE,
    ),
    NormalizationRule(
        frozenset({OperationContext.REGISTER, OperationContext.RESET_PERFORM}),
        ("password should be at least", "weak password", "weak_password"),
        ErrorKind.WEAK_PASSWORD,
    ),
    NormalizationRule(
        frozenset({OperationContext.RESET_REQUEST}),
        ("seconds",),
        ErrorKind.RATE_LIMITED,
    ),
)


def normalize(
    raw_message: Optional[str],
    context: OperationContext,
    code: Optional[str] = None,
) -> AuthError:
    """Classify a provider error.

    Parameters
    ----------
    raw_message:
        The provider's error text.  ``None`` / empty is treated as an
        unknown error with no message.
    context:
        The operation that produced the error.
    code:
        Optional machine-readable code from the provider; matched with
        the same needles as the message.

    Returns
    -------
    AuthError
        The first matching kind, or ``UNKNOWN`` carrying *raw_message*.
    """
    message = raw_message or ""
    haystack = f"{message}\n{code or ''}".lower()

    for rule in RULES:
        if context not in rule.contexts:
            continue
        if any(needle in haystack for needle in rule.needles):
            return AuthError(kind=rule.kind, message=message or None)

    return AuthError(kind=ErrorKind.UNKNOWN, message=message or None)
