"""In-memory credential store keyed by username."""

from __future__ import annotations

import logging
from typing import Dict, Optional

import ulid

from messenger.domain.errors import UnknownUser, UsernameTaken, WrongPassword
from messenger.domain.identity.models import CredentialRecord
from messenger.infra import password
from messenger.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class CredentialStore:
	"""Registers and verifies salted Argon2id password digests.

	Each username is issued a user id when it registers; that id is the only
	identity a successful login can bind to. Records never leave this class.
	All state is process-local.
	"""

	def __init__(self) -> None:
		self._records: Dict[str, CredentialRecord] = {}

	def __contains__(self, username: object) -> bool:
		return username in self._records

	def __len__(self) -> int:
		return len(self._records)

	def register(self, username: str, secret: str) -> str:
		"""Create credentials for ``username`` and return its issued user id."""
		if username in self._records:
			obs_metrics.inc_auth_attempt("register", "taken")
			raise UsernameTaken()
		record = self._new_record(username, secret, ulid.new().str)
		self._records[username] = record
		obs_metrics.inc_auth_attempt("register", "ok")
		logger.info("credential_registered", extra={"username": username, "user_id": record.user_id})
		return record.user_id

	def verify(self, username: str, secret: str) -> bool:
		record = self._records.get(username)
		if record is None:
			obs_metrics.inc_auth_attempt("login", "unknown")
			return False
		ok = password.hashes_match(record.password_hash, password.derive_hash(secret, record.salt))
		obs_metrics.inc_auth_attempt("login", "ok" if ok else "rejected")
		return ok

	def user_id_for(self, username: str) -> Optional[str]:
		record = self._records.get(username)
		return record.user_id if record is not None else None

	def change_password(self, username: str, current: str, new: str) -> None:
		record = self._records.get(username)
		if record is None:
			raise UnknownUser()
		if not self.verify(username, current):
			raise WrongPassword("Current password is incorrect")
		self._records[username] = self._new_record(username, new, record.user_id)
		logger.info("credential_rotated", extra={"username": username})

	@staticmethod
	def _new_record(username: str, secret: str, user_id: str) -> CredentialRecord:
		salt = password.new_salt()
		return CredentialRecord(
			username=username,
			user_id=user_id,
			password_hash=password.derive_hash(secret, salt),
			salt=salt,
		)
