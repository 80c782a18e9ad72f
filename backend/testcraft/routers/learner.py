from __future__ import annotations
import logging
import re
from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..access_codes import CODE_LENGTH, normalize_code
from ..db import get_db
from ..delivery import learner_view
from ..errors import NotFoundError, UpstreamError
from ..grading import format_learner_id, grade_answers, parse_learner_id
from ..models import LearnerSubmission, Question, Test
from ..question_store import list_questions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/learner", tags=["learner"])

_EMAIL = re.compile(r"^[^@\s<>]+@[^@\s<>]+\.[^@\s<>]+$")


class SubmittedAnswer(BaseModel):
	question_id: UUID
	answer: Any

	@field_validator("answer")
	@classmethod
	def _answer_required(cls, v: Any) -> Any:
		if v is None or (isinstance(v, str) and not v.strip()):
			raise ValueError("Answer is required")
		return v


class SubmitRequest(BaseModel):
	test_id: UUID
	learner_name: str
	learner_email: str
	answers: List[SubmittedAnswer]

	@field_validator("learner_name")
	@classmethod
	def _name_required(cls, v: str) -> str:
		v = v.strip()
		# Angle brackets would break the "Name <email>" learner id
		if not v or "<" in v or ">" in v:
			raise ValueError("Learner name is required")
		return v

	@field_validator("learner_email")
	@classmethod
	def _valid_email(cls, v: str) -> str:
		v = v.strip()
		if not _EMAIL.match(v):
			raise ValueError("Valid email is required")
		return v


def _active_test(db: Session, **criteria) -> Test:
	test = db.query(Test).filter_by(status="active", **criteria).first()
	if test is None:
		raise NotFoundError("Test not found or not available")
	return test


@router.get("/test/{access_code}")
def get_test_by_code(
	access_code: str = Path(..., min_length=CODE_LENGTH, max_length=CODE_LENGTH),
	db: Session = Depends(get_db),
):
	test = _active_test(db, access_code=normalize_code(access_code))
	return learner_view(test)


@router.post("/submit", status_code=201)
def submit_test(req: SubmitRequest, db: Session = Depends(get_db)):
	test = _active_test(db, id=str(req.test_id))
	try:
		questions = list_questions(db, test.id)
	except SQLAlchemyError as exc:
		raise UpstreamError("Error retrieving test questions", detail=str(exc)) from exc

	report = grade_answers(questions, [(str(a.question_id), a.answer) for a in req.answers], test.pass_mark)
	submission = LearnerSubmission(
		test_id=test.id,
		learner_id=format_learner_id(req.learner_name, req.learner_email),
		answers=[a.to_dict() for a in report.answers],
		score=report.score,
		passed=report.passed,
	)
	try:
		db.add(submission)
		db.commit()
		db.refresh(submission)
	except SQLAlchemyError as exc:
		db.rollback()
		raise UpstreamError("Error saving test submission", detail=str(exc)) from exc

	logger.info("Submission %s for test %s scored %.1f", submission.id, test.id, report.score)
	return {
		"message": "Test submitted successfully",
		"submission_id": submission.id,
		"test_title": test.title,
		"score": report.score,
		"passed": report.passed,
		"total_questions": report.total,
		"correct_answers": report.correct,
		"submission_date": submission.submitted_at,
	}


@router.get("/result/{submission_id}")
def get_result(submission_id: UUID, db: Session = Depends(get_db)):
	submission = db.get(LearnerSubmission, str(submission_id))
	if submission is None:
		raise NotFoundError("Submission not found")
	test = db.get(Test, submission.test_id)
	if test is None:
		raise NotFoundError("Test not found")
	try:
		by_id = {q.id: q for q in list_questions(db, test.id)}
	except SQLAlchemyError as exc:
		raise UpstreamError("Error retrieving questions", detail=str(exc)) from exc

	answers = []
	for answer in submission.answers or []:
		question: Question | None = by_id.get(answer.get("question_id"))
		if question is None:
			answers.append(dict(answer))
			continue
		answers.append({
			**answer,
			"question_content": question.content,
			"question_type": question.type,
			"options": question.options,
			"correct_answer": question.answer,
		})

	learner_name, learner_email = parse_learner_id(submission.learner_id)
	return {
		"id": submission.id,
		"test_title": test.title,
		"test_description": test.description,
		"learner_name": learner_name,
		"learner_email": learner_email,
		"score": submission.score,
		"passed": submission.passed,
		"pass_mark": test.pass_mark,
		"result_text": test.result_text,
		"submission_date": submission.submitted_at,
		"answers": answers,
	}
