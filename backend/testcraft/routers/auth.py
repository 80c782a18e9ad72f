from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import re
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, field_validator, model_validator

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..errors import BadRequestError
from ..models import AuthUser, AuthSession

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)
logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PASSWORD_SPECIALS = "@$!%*?&"


def _check_email(value: str) -> str:
	value = (value or "").strip().lower()
	if not _EMAIL.match(value):
		raise ValueError("Please include a valid email")
	return value


class SignupRequest(BaseModel):
	name: str
	email: str
	password: str

	@field_validator("name")
	@classmethod
	def _name_required(cls, v: str) -> str:
		v = v.strip()
		if not v:
			raise ValueError("Name is required")
		return v

	@field_validator("email")
	@classmethod
	def _valid_email(cls, v: str) -> str:
		return _check_email(v)

	@field_validator("password")
	@classmethod
	def _strong_password(cls, v: str) -> str:
		if len(v) < 8:
			raise ValueError("Password must be at least 8 characters")
		# bcrypt only looks at the first 72 bytes
		if len(v.encode("utf-8")) > 72:
			raise ValueError("Password must be at most 72 bytes")
		if not (
			any(c.islower() for c in v)
			and any(c.isupper() for c in v)
			and any(c.isdigit() for c in v)
			and any(c in _PASSWORD_SPECIALS for c in v)
		):
			raise ValueError("Password must contain uppercase, lowercase, number and special character")
		return v

	@model_validator(mode="after")
	def _password_without_name(self) -> "SignupRequest":
		if self.name and self.name.lower() in self.password.lower():
			raise ValueError("Password must not contain your name")
		return self


class LoginRequest(BaseModel):
	email: str
	password: str

	@field_validator("email")
	@classmethod
	def _valid_email(cls, v: str) -> str:
		return _check_email(v)


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(plain_password, hashed_password)


def hash_password(plain_password: str) -> str:
	return pwd_context.hash(plain_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	delta = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
	to_encode.update({"exp": datetime.now(timezone.utc) + delta})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def open_session(db: Session, user: AuthUser) -> str:
	"""Persist a server-side session and return a token bound to it."""
	session_id = uuid.uuid4().hex
	db.add(AuthSession(session_id=session_id, user_id=user.id))
	db.commit()
	return create_access_token({"sub": user.id, "jti": session_id})


def _current_session(token: str, db: Session) -> AuthSession:
	credentials_exception = HTTPException(
		status_code=401,
		detail="Invalid or expired session",
		headers={"WWW-Authenticate": "Bearer"},
	)
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
		user_id: str | None = payload.get("sub")
		jti: str | None = payload.get("jti")
		if user_id is None or jti is None:
			raise credentials_exception
	except JWTError:
		raise credentials_exception
	# A revoked (logged out) session fails even while the token is unexpired
	row = db.get(AuthSession, jti)
	if not row or row.user_id != user_id:
		raise credentials_exception
	return row


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> AuthUser:
	session_row = _current_session(token, db)
	user = db.get(AuthUser, session_row.user_id)
	if user is None:
		raise HTTPException(status_code=401, detail="Invalid or expired session", headers={"WWW-Authenticate": "Bearer"})
	session_row.last_activity_at = datetime.utcnow()
	db.commit()
	return user


@router.post("/signup", status_code=201)
async def signup(req: SignupRequest, db: Session = Depends(get_db)):
	existing = db.query(AuthUser).filter(AuthUser.email == req.email).first()
	if existing:
		raise BadRequestError("User already exists")
	row = AuthUser(name=req.name, email=req.email, password_hash=hash_password(req.password))
	db.add(row)
	db.commit()
	logger.info("Registered tutor %s", row.id)
	return row.to_dict()


@router.post("/login")
async def login(req: LoginRequest, db: Session = Depends(get_db)):
	user = db.query(AuthUser).filter(AuthUser.email == req.email).first()
	if not user or not verify_password(req.password, user.password_hash):
		raise BadRequestError("Invalid credentials")
	access_token = open_session(db, user)
	return {"user": user.to_dict(), "access_token": access_token, "token_type": "bearer"}


@router.post("/logout")
async def logout(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
	session_row = _current_session(token, db)
	db.delete(session_row)
	db.commit()
	return {"msg": "Logged out successfully"}


@router.get("/user")
async def current_user(user: AuthUser = Depends(get_current_user)):
	return user.to_dict()
