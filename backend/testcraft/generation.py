from __future__ import annotations
import base64
import json
import logging
import re
from typing import Any, List

from pydantic import BaseModel, Field, ValidationError

from .errors import GenerationFormatError, UpstreamError
from .gemini_client import GeminiClient, GeminiError
from .question_kinds import Difficulty, QuestionType, TYPE_DESCRIPTIONS
from .question_store import QuestionDraft
from .settings import settings

logger = logging.getLogger(__name__)


class GenerationSpec(BaseModel):
	num_questions: int = Field(default=5, ge=1, le=30)
	question_type: QuestionType = QuestionType.MCQ
	difficulty: Difficulty = Difficulty.MEDIUM


_TYPE_RULES = {
	QuestionType.MCQ: (
		"For multiple choice questions:\n"
		"- Provide exactly 4 options\n"
		"- Exactly one option is correct\n"
		"- The answer is the index of the correct option (0, 1, 2 or 3)\n"
	),
	QuestionType.TRUE_FALSE: (
		"For true/false questions:\n"
		"- Options are not needed\n"
		"- The answer is \"true\" or \"false\"\n"
	),
	QuestionType.SHORT: (
		"For short answer questions:\n"
		"- Options are not needed\n"
		"- The answer is a concise model answer\n"
	),
	QuestionType.SELECT: (
		"For multiple-select questions:\n"
		"- Provide 4 to 6 options\n"
		"- More than one option may be correct\n"
		"- The answer is an array with the indices of every correct option\n"
	),
	QuestionType.FILL_GAP: (
		"For fill-in-the-gap questions:\n"
		"- Mark the gap in the question content with [...]\n"
		"- The answer is the text that fills the gap\n"
	),
}

# A response that is nothing but one fenced block
_FENCED = re.compile(r"^```(?:json)?\s*([\s\S]*?)\s*```$")


def build_prompt(spec: GenerationSpec) -> str:
	qtype = spec.question_type.value
	difficulty = spec.difficulty.value
	return (
		"You are an expert educational content creator.\n"
		f"Analyze the provided content and generate {spec.num_questions} high-quality {difficulty} difficulty "
		f"{TYPE_DESCRIPTIONS[spec.question_type]} questions.\n\n"
		"Return a JSON object with exactly this shape:\n"
		"{\"questions\": [{"
		f"\"type\": \"{qtype}\", \"content\": \"Question text\", "
		"\"options\": [\"Option A\", \"Option B\", \"Option C\", \"Option D\"], "
		"\"answer\": \"The correct answer or index\", "
		f"\"difficulty\": \"{difficulty}\""
		"}]}\n\n"
		f"{_TYPE_RULES[spec.question_type]}\n"
		"Make sure the questions:\n"
		"1. Are clear, unambiguous and directly related to the content\n"
		"2. Cover different aspects of the content\n"
		f"3. Are appropriately challenging for {difficulty} difficulty\n"
		"4. Have factually correct answers\n"
		"5. For multiple choice, have plausible but clearly incorrect distractors\n\n"
		"Return ONLY the JSON object with no text before or after it."
	)


def parse_generated_questions(text: str, spec: GenerationSpec | None = None) -> List[QuestionDraft]:
	"""Validate model output against the question schema.

	The whole response (or the single fenced block it consists of) must be
	JSON: either ``{"questions": [...]}`` or a bare list. Missing ``type``
	and ``difficulty`` fall back to the requested ones.
	"""
	raw = (text or "").strip()
	fenced = _FENCED.match(raw)
	if fenced:
		raw = fenced.group(1)
	try:
		data: Any = json.loads(raw)
	except ValueError as exc:
		raise GenerationFormatError(detail=f"Model output is not JSON: {exc}") from exc
	items = data.get("questions") if isinstance(data, dict) else data
	if not isinstance(items, list) or not items:
		raise GenerationFormatError(detail="Model output has no questions list")
	drafts: List[QuestionDraft] = []
	for number, item in enumerate(items, 1):
		if not isinstance(item, dict):
			raise GenerationFormatError(detail=f"Question {number} is not an object")
		if spec is not None:
			item = {"type": spec.question_type.value, "difficulty": spec.difficulty.value, **item}
		try:
			drafts.append(QuestionDraft.model_validate(item))
		except ValidationError as exc:
			first = exc.errors()[0]
			where = ".".join(str(p) for p in first.get("loc", ()))
			raise GenerationFormatError(detail=f"Question {number} {where}: {first.get('msg')}") from exc
	return drafts


async def generate_from_text(client: GeminiClient, content: str, spec: GenerationSpec) -> List[QuestionDraft]:
	prompt = f"{build_prompt(spec)}\n\nContent to analyze:\n{content}"
	try:
		text = await client.generate(prompt)
	except GeminiError as exc:
		raise UpstreamError("Error generating questions", detail=str(exc)) from exc
	return parse_generated_questions(text, spec)


async def generate_from_image(client: GeminiClient, image: bytes, mime_type: str, spec: GenerationSpec) -> List[QuestionDraft]:
	parts = [
		{"text": f"{build_prompt(spec)}\n\nGenerate questions based on this image content:"},
		{"inline_data": {"mime_type": mime_type or "image/jpeg", "data": base64.b64encode(image).decode("ascii")}},
	]
	try:
		text = await client.generate_multimodal(parts, model=settings.gemini_vision_model)
	except GeminiError as exc:
		raise UpstreamError("Error generating questions", detail=str(exc)) from exc
	return parse_generated_questions(text, spec)
