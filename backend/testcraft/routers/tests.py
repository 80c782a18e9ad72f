from __future__ import annotations
import enum
import logging
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..access_codes import allocate_code
from ..db import get_db
from ..errors import NotFoundError
from ..models import AuthUser, LearnerSubmission, Test
from .auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tests", tags=["tests"])


class TestType(str, enum.Enum):
	TEST = "test"
	ASSIGNMENT = "assignment"


class TestStatus(str, enum.Enum):
	ACTIVE = "active"
	PAUSED = "paused"
	DELETED = "deleted"


SCORE_BUCKETS = (("0-20", 20), ("21-40", 40), ("41-60", 60), ("61-80", 80), ("81-100", 100))
NULLABLE_FIELDS = {"description", "result_text"}


def _title_not_blank(v: Optional[str]) -> Optional[str]:
	if v is not None:
		v = v.strip()
		if not v:
			raise ValueError("Title is required")
	return v


class CreateTestRequest(BaseModel):
	tutor_id: Optional[UUID] = None
	title: str
	description: Optional[str] = None
	type: TestType = TestType.TEST
	pass_mark: int = Field(default=50, ge=0, le=100)
	shuffle_answers: bool = False
	result_text: Optional[str] = None

	@field_validator("title")
	@classmethod
	def _title(cls, v: str) -> str:
		return _title_not_blank(v)


class UpdateTestRequest(BaseModel):
	title: Optional[str] = None
	description: Optional[str] = None
	type: Optional[TestType] = None
	status: Optional[TestStatus] = None
	pass_mark: Optional[int] = Field(default=None, ge=0, le=100)
	shuffle_answers: Optional[bool] = None
	result_text: Optional[str] = None

	@field_validator("title")
	@classmethod
	def _title(cls, v: Optional[str]) -> Optional[str]:
		return _title_not_blank(v)


def get_test_or_404(db: Session, test_id: UUID | str) -> Test:
	test = db.get(Test, str(test_id))
	if test is None:
		raise NotFoundError("Test not found")
	return test


def _set_status(db: Session, test_id: UUID, status: TestStatus) -> Test:
	test = get_test_or_404(db, test_id)
	test.status = status.value
	db.commit()
	db.refresh(test)
	logger.info("Test %s is now %s", test.id, test.status)
	return test


def score_distribution(scores: List[float]) -> Dict[str, int]:
	buckets = {label: 0 for label, _ in SCORE_BUCKETS}
	for score in scores:
		label = next((label for label, upper in SCORE_BUCKETS if score <= upper), SCORE_BUCKETS[-1][0])
		buckets[label] += 1
	return buckets


@router.post("", status_code=201)
def create_test(req: CreateTestRequest, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
	test = Test(
		tutor_id=str(req.tutor_id) if req.tutor_id else user.id,
		title=req.title,
		description=req.description,
		type=req.type.value,
		pass_mark=req.pass_mark,
		shuffle_answers=req.shuffle_answers,
		result_text=req.result_text,
		status=TestStatus.ACTIVE.value,
		access_code=allocate_code(db),
	)
	db.add(test)
	db.commit()
	db.refresh(test)
	logger.info("Created test %s with access code %s", test.id, test.access_code)
	return test.to_dict()


@router.get("")
def list_tests(
	tutor_id: Optional[UUID] = Query(default=None),
	user: AuthUser = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	owner = str(tutor_id) if tutor_id else user.id
	rows = (
		db.query(Test)
		.filter(Test.tutor_id == owner, Test.status != TestStatus.DELETED.value)
		.order_by(Test.created_at.desc())
		.all()
	)
	return [t.to_dict() for t in rows]


@router.get("/{test_id}")
def get_test(test_id: UUID, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
	return get_test_or_404(db, test_id).to_dict()


@router.patch("/{test_id}")
def update_test(test_id: UUID, req: UpdateTestRequest, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
	test = get_test_or_404(db, test_id)
	for name, value in req.model_dump(exclude_unset=True).items():
		if value is None and name not in NULLABLE_FIELDS:
			continue
		if isinstance(value, enum.Enum):
			value = value.value
		setattr(test, name, value)
	db.commit()
	db.refresh(test)
	return test.to_dict()


@router.delete("/{test_id}")
def delete_test(test_id: UUID, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
	# Tests are never removed, only hidden
	_set_status(db, test_id, TestStatus.DELETED)
	return {"msg": "Test deleted successfully"}


@router.patch("/{test_id}/pause")
def pause_test(test_id: UUID, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
	return _set_status(db, test_id, TestStatus.PAUSED).to_dict()


@router.patch("/{test_id}/activate")
def activate_test(test_id: UUID, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
	return _set_status(db, test_id, TestStatus.ACTIVE).to_dict()


@router.get("/{test_id}/stats")
def test_stats(test_id: UUID, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
	test = get_test_or_404(db, test_id)
	submissions = db.query(LearnerSubmission).filter(LearnerSubmission.test_id == test.id).all()
	total = len(submissions)
	passed = sum(1 for s in submissions if s.passed)
	scores = [s.score or 0 for s in submissions]
	return {
		"test_id": test.id,
		"test_title": test.title,
		"total_submissions": total,
		"passed_submissions": passed,
		"pass_rate": passed / total * 100 if total else 0,
		"average_score": sum(scores) / total if total else 0,
		"score_distribution": score_distribution(scores),
	}


@router.get("/{test_id}/responses")
def test_responses(test_id: UUID, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
	rows = (
		db.query(LearnerSubmission)
		.filter(LearnerSubmission.test_id == str(test_id))
		.order_by(LearnerSubmission.submitted_at.desc())
		.all()
	)
	return [s.to_dict() for s in rows]
