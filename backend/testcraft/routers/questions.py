from __future__ import annotations
import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import NotFoundError
from ..models import AuthUser, Question
from ..question_store import QuestionDraft, batch_summary, insert_questions, list_questions
from .auth import get_current_user
from .tests import get_test_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/questions", tags=["questions"])


class AddQuestionsRequest(BaseModel):
	test_id: UUID
	questions: List[QuestionDraft] = Field(min_length=1)


@router.post("", status_code=201)
def add_questions(req: AddQuestionsRequest, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
	test = get_test_or_404(db, req.test_id)
	results = insert_questions(db, test.id, req.questions)
	summary = batch_summary(results)
	return {
		"message": "Questions added successfully" if not summary["failed"] else "Some questions could not be saved",
		"questions": [r.question.to_dict() for r in results if r.ok],
		**summary,
	}


@router.get("/{test_id}")
def get_questions(test_id: UUID, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
	return [q.to_dict() for q in list_questions(db, str(test_id))]


@router.delete("/{question_id}")
def delete_question(question_id: UUID, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
	question = db.get(Question, str(question_id))
	if question is None:
		raise NotFoundError("Question not found")
	db.delete(question)
	db.commit()
	logger.info("Deleted question %s from test %s", question.id, question.test_id)
	return {"message": "Question deleted successfully"}
