"""Error taxonomy shared by the backends and the complaint service."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Category attached to an error where it originates."""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    RATE_LIMIT = "rate_limit"
    AUTH_EXPIRED = "auth_expired"
    CONNECTIVITY = "connectivity"
    SCHEMA_MISSING = "schema_missing"
    UNKNOWN = "unknown"


GENERIC_MESSAGE = "Terjadi kesalahan. Silakan coba lagi."
CONNECTION_FAILED_MESSAGE = "Koneksi database gagal"

USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.AUTH_EXPIRED: "Sesi berakhir. Silakan refresh halaman.",
    ErrorKind.CONNECTIVITY: "Masalah koneksi. Periksa koneksi internet Anda.",
    ErrorKind.SCHEMA_MISSING: "Tabel database belum dibuat. Jalankan SQL schema terlebih dahulu.",
}

# Kinds whose own message is already meant for the end user.
_SELF_DESCRIBING = {ErrorKind.VALIDATION, ErrorKind.RATE_LIMIT, ErrorKind.CONFIGURATION}


class IntakeError(Exception):
    """Base error carrying an ErrorKind."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class ConfigurationError(IntakeError):
    kind = ErrorKind.CONFIGURATION


class ValidationError(IntakeError):
    kind = ErrorKind.VALIDATION


class RateLimitError(IntakeError):
    kind = ErrorKind.RATE_LIMIT


class BackendError(IntakeError):
    """Error raised by a backend adapter after classifying the library error."""


def error_kind(error: BaseException) -> ErrorKind:
    """Return the kind of an error, UNKNOWN for anything not raised by this package."""
    if isinstance(error, IntakeError):
        return error.kind
    return ErrorKind.UNKNOWN


def user_message(error: BaseException, debug: bool = False) -> str:
    """Map an error to the message shown to the person filing or handling a complaint."""
    kind = error_kind(error)
    if kind in USER_MESSAGES:
        return USER_MESSAGES[kind]
    if kind in _SELF_DESCRIBING:
        return str(error)
    return str(error) if debug else GENERIC_MESSAGE
