from __future__ import annotations
import random
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .question_kinds import QuestionType


# Only these question fields ever reach a learner
LEARNER_FIELDS = ("id", "type", "content", "options", "difficulty")

_system_random = random.SystemRandom()


def shuffle_options(options: Sequence[str], rng: Optional[random.Random] = None) -> Tuple[List[str], List[int]]:
	"""Fisher-Yates shuffle returning the new order and, for each shuffled
	position, the index the option had originally."""
	rng = rng or _system_random
	indexed = list(enumerate(options))
	for i in range(len(indexed) - 1, 0, -1):
		j = rng.randint(0, i)
		indexed[i], indexed[j] = indexed[j], indexed[i]
	return [option for _, option in indexed], [index for index, _ in indexed]


def question_for_learner(question: Any, *, shuffle: bool, rng: Optional[random.Random] = None) -> Dict[str, Any]:
	item = {name: getattr(question, name) for name in LEARNER_FIELDS}
	options = item["options"]
	if shuffle and question.type == QuestionType.MCQ.value and isinstance(options, list) and options:
		item["options"], item["option_mapping"] = shuffle_options(options, rng)
	elif isinstance(options, list):
		item["options"] = list(options)
	return item


def learner_view(test: Any, rng: Optional[random.Random] = None) -> Dict[str, Any]:
	"""Learner view of a test: no answers, MCQ options shuffled on request."""
	return {
		"id": test.id,
		"title": test.title,
		"description": test.description,
		"type": test.type,
		"status": test.status,
		"pass_mark": test.pass_mark,
		"shuffle_answers": test.shuffle_answers,
		"result_text": test.result_text,
		"questions": [
			question_for_learner(q, shuffle=bool(test.shuffle_answers), rng=rng)
			for q in test.questions
		],
	}

