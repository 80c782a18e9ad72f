from __future__ import annotations
import logging
import os
from datetime import datetime
from typing import Union
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from pydantic import field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..cleanup import scoped_temp_file
from ..db import get_db
from ..errors import BadRequestError, NotFoundError, UpstreamError
from ..extraction import extract_content
from ..gemini_client import GeminiClient
from ..generation import GenerationSpec, generate_from_image, generate_from_text
from ..models import AuthUser, Upload
from ..question_store import batch_summary, draft_payload, insert_questions
from ..storage import LocalObjectStorage, get_storage
from .auth import get_current_user
from .tests import get_test_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


class AnalyzeRequest(GenerationSpec):
	upload_id: UUID
	test_id: UUID


class GenerateRequest(GenerationSpec):
	test_id: UUID
	content: str

	@field_validator("content")
	@classmethod
	def _content_required(cls, v: str) -> str:
		if not v.strip():
			raise ValueError("Content is required")
		return v


def _spec(req: GenerationSpec) -> GenerationSpec:
	return GenerationSpec(num_questions=req.num_questions, question_type=req.question_type, difficulty=req.difficulty)


def _load_content(storage: LocalObjectStorage, storage_path: str, file_type: str) -> Union[str, bytes]:
	"""Fetch an upload and extract its content. Blocking, so run it off the event loop."""
	try:
		data = storage.download(storage_path)
	except (OSError, ValueError) as exc:
		raise UpstreamError("Failed to fetch uploaded file", detail=str(exc)) from exc

	suffix = os.path.splitext(storage_path)[1]
	with scoped_temp_file(data, suffix=suffix) as tmp_path:
		return extract_content(tmp_path, file_type)


def _open_client() -> GeminiClient:
	try:
		return GeminiClient()
	except ValueError as exc:
		raise UpstreamError("AI service is not configured", detail=str(exc)) from exc


@router.post("/analyze")
async def analyze_upload(
	req: AnalyzeRequest,
	user: AuthUser = Depends(get_current_user),
	db: Session = Depends(get_db),
	storage: LocalObjectStorage = Depends(get_storage),
):
	upload = db.get(Upload, str(req.upload_id))
	if upload is None:
		raise NotFoundError("Upload not found")
	if upload.test_id != str(req.test_id):
		raise BadRequestError("Upload does not belong to the specified test")

	if upload.analysis_result is not None:
		logger.info("Returning cached analysis for upload %s", upload.id)
		return {
			"message": "Questions already generated for this upload",
			"questions": upload.analysis_result,
			"upload_id": upload.id,
			"test_id": upload.test_id,
			"cached": True,
			"saved": 0,
			"failed": [],
		}

	content = await run_in_threadpool(_load_content, storage, upload.storage_path, upload.file_type)
	if isinstance(content, str) and not content.strip():
		raise BadRequestError("No text could be extracted from the file")

	spec = _spec(req)
	client = _open_client()
	try:
		if upload.file_type == "image":
			drafts = await generate_from_image(client, content, upload.content_type, spec)
		else:
			drafts = await generate_from_text(client, content, spec)
	finally:
		await client.aclose()

	try:
		upload.analysis_result = draft_payload(drafts)
		upload.analyzed_at = datetime.utcnow()
		db.commit()
	except SQLAlchemyError as exc:
		db.rollback()
		raise UpstreamError("Error saving analysis results", detail=str(exc)) from exc

	results = insert_questions(db, upload.test_id, drafts)
	logger.info("Generated %d questions from upload %s", len(drafts), upload.id)
	return {
		"message": "Content analyzed and questions generated successfully",
		"questions": upload.analysis_result,
		"upload_id": upload.id,
		"test_id": upload.test_id,
		"cached": False,
		**batch_summary(results),
	}


@router.post("/generate")
async def generate_questions(
	req: GenerateRequest,
	user: AuthUser = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	test = get_test_or_404(db, req.test_id)
	client = _open_client()
	try:
		drafts = await generate_from_text(client, req.content, _spec(req))
	finally:
		await client.aclose()
	results = insert_questions(db, test.id, drafts)
	return {
		"message": "Questions generated successfully",
		"questions": draft_payload(drafts),
		"test_id": test.id,
		**batch_summary(results),
	}
