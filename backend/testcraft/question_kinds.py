"""Per-type rules for the five question kinds.

Each kind knows how to check an authored answer against its options, how to
store that answer as text, and how to compare a learner's answer with the
stored one. Grading never raises: anything that cannot be coerced is simply
not a match.
"""
from __future__ import annotations
import enum
import json
from typing import Any, Dict, List, Optional, Sequence


class QuestionType(str, enum.Enum):
	MCQ = "mcq"
	TRUE_FALSE = "true_false"
	SHORT = "short"
	SELECT = "select"
	FILL_GAP = "fill_gap"


class Difficulty(str, enum.Enum):
	EASY = "easy"
	MEDIUM = "medium"
	HARD = "hard"


TYPE_DESCRIPTIONS: Dict[QuestionType, str] = {
	QuestionType.MCQ: "multiple-choice",
	QuestionType.TRUE_FALSE: "true/false",
	QuestionType.SHORT: "short answer",
	QuestionType.SELECT: "multiple-select",
	QuestionType.FILL_GAP: "fill-in-the-gap",
}


def _as_text(value: Any) -> str:
	if isinstance(value, bool):
		return "true" if value else "false"
	return str(value)


def _as_index(value: Any) -> int:
	if isinstance(value, bool):
		raise ValueError("a boolean is not an option index")
	if isinstance(value, int):
		return value
	if isinstance(value, float) and value.is_integer():
		return int(value)
	if isinstance(value, str):
		return int(value.strip())
	raise ValueError(f"not an option index: {value!r}")


def _as_index_list(value: Any) -> List[int]:
	if isinstance(value, str):
		value = json.loads(value)
	if not isinstance(value, (list, tuple)):
		raise ValueError(f"not a list of option indices: {value!r}")
	return [_as_index(v) for v in value]


def _require_options(options: Optional[Sequence[str]]) -> Sequence[str]:
	if not options:
		raise ValueError("options are required for this question type")
	return options


class QuestionKind:
	type: QuestionType

	def validate(self, options: Optional[Sequence[str]], answer: Any) -> None:
		raise NotImplementedError

	def matches(self, stored: Any, submitted: Any) -> bool:
		raise NotImplementedError

	def encode(self, answer: Any) -> str:
		if isinstance(answer, (list, tuple, dict)):
			return json.dumps(list(answer) if isinstance(answer, tuple) else answer)
		return _as_text(answer)


class MultipleChoice(QuestionKind):
	type = QuestionType.MCQ

	def validate(self, options, answer):
		options = _require_options(options)
		index = _as_index(answer)
		if not 0 <= index < len(options):
			raise ValueError(f"answer index {index} is outside the {len(options)} options")

	def matches(self, stored, submitted):
		try:
			return _as_index(submitted) == _as_index(stored)
		except (TypeError, ValueError):
			return False


class TrueFalse(QuestionKind):
	type = QuestionType.TRUE_FALSE

	def validate(self, options, answer):
		if _as_text(answer).lower() not in ("true", "false"):
			raise ValueError("answer must be true or false")

	def matches(self, stored, submitted):
		return _as_text(submitted).lower() == _as_text(stored).lower()


class MultiSelect(QuestionKind):
	type = QuestionType.SELECT

	def validate(self, options, answer):
		options = _require_options(options)
		indices = _as_index_list(answer)
		if not indices:
			raise ValueError("at least one correct option is required")
		for index in indices:
			if not 0 <= index < len(options):
				raise ValueError(f"answer index {index} is outside the {len(options)} options")

	def matches(self, stored, submitted):
		# Order-independent, but [1, 1, 2] is not [1, 2]
		try:
			return sorted(_as_index_list(submitted)) == sorted(_as_index_list(stored))
		except (TypeError, ValueError):
			return False


class FreeText(QuestionKind):
	def __init__(self, type_: QuestionType) -> None:
		self.type = type_

	def validate(self, options, answer):
		if isinstance(answer, (list, tuple, dict)) or not _as_text(answer).strip():
			raise ValueError("answer must be non-empty text")

	def matches(self, stored, submitted):
		return _as_text(submitted).strip().lower() == _as_text(stored).strip().lower()


KINDS: Dict[QuestionType, QuestionKind] = {
	QuestionType.MCQ: MultipleChoice(),
	QuestionType.TRUE_FALSE: TrueFalse(),
	QuestionType.SELECT: MultiSelect(),
	QuestionType.SHORT: FreeText(QuestionType.SHORT),
	QuestionType.FILL_GAP: FreeText(QuestionType.FILL_GAP),
}


def kind_for(type_: Any) -> QuestionKind:
	"""Kind for a stored type tag; unknown tags compare as free text."""
	try:
		return KINDS[QuestionType(type_)]
	except ValueError:
		return KINDS[QuestionType.SHORT]
