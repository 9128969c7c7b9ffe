"""Recoverable domain errors shared by the socket and REST surfaces."""

from __future__ import annotations


class MessengerError(RuntimeError):
	code = "error"
	status_code = 400

	def __init__(self, message: str | None = None, *, code: str | None = None, status_code: int | None = None) -> None:
		super().__init__(message or code or self.code)
		if code is not None:
			self.code = code
		if status_code is not None:
			self.status_code = status_code
		self.detail = message or self.code


class NotFound(MessengerError):
	code = "not_found"
	status_code = 404


class PermissionDenied(MessengerError):
	code = "permission_denied"
	status_code = 403

	def __init__(self, message: str = "Permission denied") -> None:
		super().__init__(message)


class AuthenticationRequired(MessengerError):
	code = "authentication_required"
	status_code = 401

	def __init__(self, message: str = "Authentication required") -> None:
		super().__init__(message)


class InvalidCredentials(MessengerError):
	code = "invalid_credentials"
	status_code = 401


class UsernameTaken(InvalidCredentials):
	def __init__(self, message: str = "Username already taken") -> None:
		super().__init__(message)


class WrongPassword(InvalidCredentials):
	def __init__(self, message: str = "Invalid username or password") -> None:
		super().__init__(message)


class UnknownUser(InvalidCredentials):
	def __init__(self, message: str = "Invalid username or password") -> None:
		super().__init__(message)


class ValidationError(MessengerError):
	code = "validation_error"
	status_code = 400


class PayloadError(ValidationError):
	"""Raised when a socket payload does not match its intent schema."""

	def __init__(self, event: str, message: str = "Invalid payload") -> None:
		super().__init__(message)
		self.event = event
