import os
import tempfile

# Settings are read at import time, so point them at scratch space first
_SCRATCH = tempfile.mkdtemp(prefix="testcraft-tests-")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STORAGE_DIR", os.path.join(_SCRATCH, "storage"))
os.environ.setdefault("TMP_DIR", os.path.join(_SCRATCH, "tmp"))
os.environ.setdefault("ENVIRONMENT", "development")

import json
from typing import Any, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from testcraft import models
from testcraft.db import Base, get_db
from testcraft.main import app
from testcraft.routers import ai as ai_router
from testcraft.routers.auth import hash_password, open_session
from testcraft.storage import LocalObjectStorage, get_storage


@pytest.fixture
def engine():
	eng = create_engine(
		"sqlite://",
		connect_args={"check_same_thread": False},
		poolclass=StaticPool,
		future=True,
	)
	Base.metadata.create_all(eng)
	yield eng
	eng.dispose()


@pytest.fixture
def session_factory(engine):
	return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db_session(session_factory):
	session = session_factory()
	yield session
	session.close()


@pytest.fixture
def storage(tmp_path):
	return LocalObjectStorage(str(tmp_path / "storage"), "http://testserver")


@pytest.fixture
def client(session_factory, storage):
	def override_get_db():
		db = session_factory()
		try:
			yield db
		finally:
			db.close()

	app.dependency_overrides[get_db] = override_get_db
	app.dependency_overrides[get_storage] = lambda: storage
	yield TestClient(app)
	app.dependency_overrides.clear()


@pytest.fixture
def tutor(db_session):
	user = models.AuthUser(name="Tina Tutor", email="tina@example.com", password_hash=hash_password("Str0ng@pass"))
	db_session.add(user)
	db_session.commit()
	return user


@pytest.fixture
def auth_headers(db_session, tutor):
	token = open_session(db_session, tutor)
	return {"Authorization": f"Bearer {token}"}


class FakeGemini:
	"""Stands in for GeminiClient; replies with queued texts."""

	def __init__(self) -> None:
		self.replies: List[str] = []
		self.prompts: List[Any] = []
		self.closed = 0

	def reply_with(self, payload: Any) -> None:
		self.replies.append(payload if isinstance(payload, str) else json.dumps(payload))

	async def generate(self, prompt: str) -> str:
		self.prompts.append(prompt)
		return self.replies.pop(0)

	async def generate_multimodal(self, parts, *, role: str = "user", model: Optional[str] = None) -> str:
		self.prompts.append(parts)
		return self.replies.pop(0)

	async def aclose(self) -> None:
		self.closed += 1


@pytest.fixture
def fake_gemini(monkeypatch):
	fake = FakeGemini()
	monkeypatch.setattr(ai_router, "GeminiClient", lambda *a, **k: fake)
	return fake


@pytest.fixture
def make_test(db_session, tutor):
	counter = {"n": 0}

	def _make(**overrides):
		counter["n"] += 1
		fields = {
			"tutor_id": tutor.id,
			"title": "Photosynthesis quiz",
			"type": "test",
			"status": "active",
			"pass_mark": 60,
			"shuffle_answers": False,
			"access_code": f"CODE{counter['n']:02d}",
		}
		fields.update(overrides)
		test = models.Test(**fields)
		db_session.add(test)
		db_session.commit()
		return test

	return _make


@pytest.fixture
def make_question(db_session):
	def _make(test, type_, answer, options=None, content="Question?", difficulty="medium"):
		question = models.Question(
			test_id=test.id,
			type=type_,
			content=content,
			options=options,
			answer=answer,
			difficulty=difficulty,
		)
		db_session.add(question)
		db_session.commit()
		return question

	return _make
