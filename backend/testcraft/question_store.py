from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import Question
from .question_kinds import Difficulty, QuestionType, KINDS

logger = logging.getLogger(__name__)


class QuestionDraft(BaseModel):
	"""A question as authored by a tutor or returned by the model."""

	type: QuestionType
	content: str
	options: Optional[List[str]] = None
	answer: Union[bool, int, List[int], str]
	difficulty: Difficulty

	@field_validator("content")
	@classmethod
	def _content_required(cls, v: str) -> str:
		v = v.strip()
		if not v:
			raise ValueError("Question content is required")
		return v

	@model_validator(mode="after")
	def _answer_fits_type(self) -> "QuestionDraft":
		if isinstance(self.answer, str) and not self.answer.strip():
			raise ValueError("Answer is required")
		KINDS[self.type].validate(self.options, self.answer)
		return self


@dataclass
class BatchResult:
	item: QuestionDraft
	question: Optional[Question] = None
	error: Optional[str] = None

	@property
	def ok(self) -> bool:
		return self.error is None


def insert_questions(db: Session, test_id: str, drafts: Sequence[QuestionDraft]) -> List[BatchResult]:
	"""Best-effort batch insert.

	Every draft gets its own SAVEPOINT, so one bad row does not undo the
	others. Returns one result per draft, in order, and commits whatever
	succeeded.
	"""
	results: List[BatchResult] = []
	for draft in drafts:
		try:
			with db.begin_nested():
				kind = KINDS[QuestionType(draft.type)]
				kind.validate(draft.options, draft.answer)
				row = Question(
					test_id=test_id,
					type=kind.type.value,
					content=draft.content,
					options=list(draft.options) if draft.options else None,
					answer=kind.encode(draft.answer),
					difficulty=Difficulty(draft.difficulty).value,
				)
				db.add(row)
				db.flush()
		except (SQLAlchemyError, ValueError) as exc:
			logger.warning("Error saving question for test %s: %s", test_id, exc)
			results.append(BatchResult(item=draft, error=str(exc)))
			continue
		results.append(BatchResult(item=draft, question=row))
	db.commit()
	saved = sum(1 for r in results if r.ok)
	if saved != len(results):
		logger.warning("Saved %d of %d questions for test %s", saved, len(results), test_id)
	return results


def batch_summary(results: Sequence[BatchResult]) -> dict:
	return {
		"saved": sum(1 for r in results if r.ok),
		"failed": [
			{"index": i, "content": r.item.content, "error": r.error}
			for i, r in enumerate(results)
			if not r.ok
		],
	}


def list_questions(db: Session, test_id: str) -> List[Question]:
	return (
		db.query(Question)
		.filter(Question.test_id == test_id)
		.order_by(Question.created_at.asc())
		.all()
	)


def draft_payload(drafts: Sequence[QuestionDraft]) -> List[dict[str, Any]]:
	return [d.model_dump(mode="json") for d in drafts]
