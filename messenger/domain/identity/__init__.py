"""Identity domain exports."""

from .credentials import CredentialStore
from .models import CredentialRecord, User
from .sessions import SessionRegistry

__all__ = [
	"CredentialRecord",
	"CredentialStore",
	"SessionRegistry",
	"User",
]
