from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from .question_kinds import kind_for


_EMAIL_IN_BRACKETS = re.compile(r"<(.+)>")


@dataclass
class GradedAnswer:
	question_id: str
	learner_answer: Any
	correct: bool

	def to_dict(self) -> Dict[str, Any]:
		return {"question_id": self.question_id, "learner_answer": self.learner_answer, "correct": self.correct}


@dataclass
class GradeReport:
	pass_mark: float
	answers: List[GradedAnswer] = field(default_factory=list)

	@property
	def total(self) -> int:
		return len(self.answers)

	@property
	def correct(self) -> int:
		return sum(1 for a in self.answers if a.correct)

	@property
	def score(self) -> float:
		return compute_score(self.correct, self.total)

	@property
	def passed(self) -> bool:
		return self.score >= self.pass_mark


def compute_score(correct: int, total: int) -> float:
	"""Percentage of correct answers; 0 when nothing was answered."""
	if total <= 0:
		return 0.0
	return correct * 100 / total


def grade_answers(questions: Iterable[Any], submitted: Sequence[Tuple[str, Any]], pass_mark: float) -> GradeReport:
	"""Grade ``(question_id, answer)`` pairs against the stored questions.

	Only the submitted answers count towards the total, so skipped questions
	do not lower the score. Answers to unknown questions are incorrect.
	"""
	by_id = {str(q.id): q for q in questions}
	report = GradeReport(pass_mark=pass_mark)
	for question_id, answer in submitted:
		question = by_id.get(str(question_id))
		if question is None:
			correct = False
		else:
			correct = kind_for(question.type).matches(question.answer, answer)
		report.answers.append(GradedAnswer(str(question_id), answer, correct))
	return report


def format_learner_id(name: str, email: str) -> str:
	return f"{name} <{email}>"


def parse_learner_id(learner_id: str) -> Tuple[str, str]:
	"""Split ``"Name <email>"`` back into name and email.

	Without the bracketed part the whole string is the name.
	"""
	match = _EMAIL_IN_BRACKETS.search(learner_id or "")
	if not match:
		return learner_id, ""
	return learner_id.split("<")[0].strip(), match.group(1)
