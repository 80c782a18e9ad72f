from __future__ import annotations
import logging
import secrets

from sqlalchemy.orm import Session

from .errors import UpstreamError
from .models import Test

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
# Upper-case letters and digits without 0/O and 1/I
ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MAX_ATTEMPTS = 10


def generate_code() -> str:
	return "".join(secrets.choice(ALPHABET) for _ in range(CODE_LENGTH))


def normalize_code(code: str) -> str:
	return (code or "").strip().upper()


def allocate_code(db: Session) -> str:
	"""Return a code no existing test uses, retrying on collision."""
	for attempt in range(1, MAX_ATTEMPTS + 1):
		code = generate_code()
		taken = db.query(Test.id).filter(Test.access_code == code).first()
		if taken is None:
			return code
		logger.info("Access code collision on attempt %d", attempt)
	raise UpstreamError("Could not allocate an access code", detail=f"{MAX_ATTEMPTS} collisions in a row")
