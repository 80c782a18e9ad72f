from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Float, Boolean, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from .db import Base


def _new_id() -> str:
	return str(uuid.uuid4())


class AuthUser(Base):
	__tablename__ = "auth_users"
	id = Column(String(36), primary_key=True, default=_new_id)
	name = Column(String(128), nullable=False)
	email = Column(String(256), unique=True, index=True, nullable=False)
	password_hash = Column(String(256), nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	def to_dict(self) -> dict:
		return {"id": self.id, "name": self.name, "email": self.email, "created_at": self.created_at}


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# Primary key is the JWT "jti" claim
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(36), ForeignKey("auth_users.id"), index=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Test(Base):
	__tablename__ = "tests"
	# Not a pytest test class
	__test__ = False

	id = Column(String(36), primary_key=True, default=_new_id)
	tutor_id = Column(String(36), index=True, nullable=False)
	title = Column(String(256), nullable=False)
	description = Column(Text, nullable=True)
	type = Column(String(16), default="test", nullable=False)
	status = Column(String(16), default="active", index=True, nullable=False)
	pass_mark = Column(Integer, default=50, nullable=False)
	shuffle_answers = Column(Boolean, default=False, nullable=False)
	result_text = Column(Text, nullable=True)
	access_code = Column(String(6), unique=True, index=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	questions = relationship("Question", back_populates="test", order_by="Question.created_at")

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"tutor_id": self.tutor_id,
			"title": self.title,
			"description": self.description,
			"type": self.type,
			"status": self.status,
			"pass_mark": self.pass_mark,
			"shuffle_answers": self.shuffle_answers,
			"result_text": self.result_text,
			"access_code": self.access_code,
			"created_at": self.created_at,
			"updated_at": self.updated_at,
		}


class Question(Base):
	__tablename__ = "questions"
	id = Column(String(36), primary_key=True, default=_new_id)
	test_id = Column(String(36), ForeignKey("tests.id"), index=True, nullable=False)
	type = Column(String(16), nullable=False)
	content = Column(Text, nullable=False)
	options = Column(JSON, nullable=True)
	# Index, "true"/"false", JSON list of indices, or free text
	answer = Column(Text, nullable=False)
	difficulty = Column(String(16), default="medium", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

	test = relationship("Test", back_populates="questions")

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"test_id": self.test_id,
			"type": self.type,
			"content": self.content,
			"options": self.options,
			"answer": self.answer,
			"difficulty": self.difficulty,
			"created_at": self.created_at,
		}


class Upload(Base):
	__tablename__ = "uploads"
	id = Column(String(36), primary_key=True, default=_new_id)
	test_id = Column(String(36), ForeignKey("tests.id"), index=True, nullable=False)
	file_url = Column(String(1024), nullable=False)
	file_type = Column(String(16), nullable=False)
	storage_path = Column(String(512), nullable=False)
	original_filename = Column(String(256), nullable=True)
	content_type = Column(String(128), nullable=True)
	# Cached generated questions; written once
	analysis_result = Column(JSON, nullable=True)
	analyzed_at = Column(DateTime, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

	@property
	def state(self) -> str:
		return "analyzed" if self.analysis_result is not None else "created"

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"test_id": self.test_id,
			"file_url": self.file_url,
			"file_type": self.file_type,
			"original_filename": self.original_filename,
			"state": self.state,
			"created_at": self.created_at,
		}


class LearnerSubmission(Base):
	__tablename__ = "learner_submissions"
	id = Column(String(36), primary_key=True, default=_new_id)
	test_id = Column(String(36), ForeignKey("tests.id"), index=True, nullable=False)
	# "Name <email>"
	learner_id = Column(String(512), nullable=False)
	answers = Column(JSON, nullable=False)
	score = Column(Float, nullable=False)
	passed = Column(Boolean, nullable=False)
	submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"test_id": self.test_id,
			"learner_id": self.learner_id,
			"answers": self.answers,
			"score": self.score,
			"passed": self.passed,
			"submitted_at": self.submitted_at,
		}
