import asyncio
import json

import pytest

from testcraft.errors import GenerationFormatError, UpstreamError
from testcraft.gemini_client import GeminiError
from testcraft.generation import (
	GenerationSpec,
	build_prompt,
	generate_from_image,
	generate_from_text,
	parse_generated_questions,
)
from testcraft.question_kinds import QuestionType


MCQ = {"type": "mcq", "content": "What do plants absorb?", "options": ["CO2", "O2", "N2", "He"], "answer": 0, "difficulty": "easy"}


def test_parses_questions_object():
	drafts = parse_generated_questions(json.dumps({"questions": [MCQ]}))
	assert len(drafts) == 1
	assert drafts[0].type is QuestionType.MCQ
	assert drafts[0].answer == 0


def test_parses_bare_list_and_fenced_block():
	fenced = "```json\n" + json.dumps([MCQ]) + "\n```"
	assert len(parse_generated_questions(fenced)) == 1


def test_rejects_prose_around_json():
	with pytest.raises(GenerationFormatError):
		parse_generated_questions("Sure! Here you go: " + json.dumps({"questions": [MCQ]}))


@pytest.mark.parametrize("payload", ["not json at all", "{}", '{"questions": []}', '{"questions": ["text"]}'])
def test_rejects_malformed_payloads(payload):
	with pytest.raises(GenerationFormatError):
		parse_generated_questions(payload)


def test_rejects_answers_that_do_not_fit_the_type():
	bad = dict(MCQ, answer=7)
	with pytest.raises(GenerationFormatError) as excinfo:
		parse_generated_questions(json.dumps({"questions": [bad]}))
	assert "Question 1" in excinfo.value.detail


def test_requested_type_and_difficulty_fill_gaps():
	spec = GenerationSpec(num_questions=1, question_type="true_false", difficulty="hard")
	drafts = parse_generated_questions(json.dumps({"questions": [{"content": "The sun is a star.", "answer": "true"}]}), spec)
	assert drafts[0].type is QuestionType.TRUE_FALSE
	assert drafts[0].difficulty.value == "hard"


def test_generation_spec_bounds():
	with pytest.raises(ValueError):
		GenerationSpec(num_questions=31)
	with pytest.raises(ValueError):
		GenerationSpec(num_questions=0)
	assert GenerationSpec().num_questions == 5


@pytest.mark.parametrize("qtype,needle", [("mcq", "exactly 4 options"), ("select", "indices of every correct option"), ("fill_gap", "[...]")])
def test_prompt_has_type_specific_rules(qtype, needle):
	prompt = build_prompt(GenerationSpec(num_questions=3, question_type=qtype))
	assert needle in prompt
	assert "generate 3 high-quality medium difficulty" in prompt


class StubClient:
	def __init__(self, reply=None, error=None):
		self.reply = reply
		self.error = error
		self.calls = []

	async def generate(self, prompt):
		self.calls.append(prompt)
		if self.error:
			raise self.error
		return self.reply

	async def generate_multimodal(self, parts, *, role="user", model=None):
		self.calls.append(parts)
		return self.reply


def test_generate_from_text_sends_content():
	client = StubClient(reply=json.dumps({"questions": [MCQ]}))
	drafts = asyncio.run(generate_from_text(client, "Plants absorb CO2.", GenerationSpec()))
	assert len(drafts) == 1
	assert client.calls[0].endswith("Plants absorb CO2.")


def test_generate_from_image_inlines_base64():
	client = StubClient(reply=json.dumps({"questions": [MCQ]}))
	asyncio.run(generate_from_image(client, b"\x89PNG", "image/png", GenerationSpec()))
	inline = client.calls[0][1]["inline_data"]
	assert inline["mime_type"] == "image/png"
	assert inline["data"] == "iVBORw=="


def test_model_failures_become_upstream_errors():
	client = StubClient(error=GeminiError("HTTP 503"))
	with pytest.raises(UpstreamError) as excinfo:
		asyncio.run(generate_from_text(client, "text", GenerationSpec()))
	assert excinfo.value.msg == "Error generating questions"
