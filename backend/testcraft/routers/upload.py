from __future__ import annotations
import logging
import os
import uuid
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import BadRequestError, UpstreamError
from ..extraction import ALLOWED_MIME_TYPES, file_type_for_mime
from ..models import AuthUser, Upload
from ..settings import settings
from ..storage import LocalObjectStorage, get_storage, object_prefix
from .auth import get_current_user
from .tests import get_test_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["upload"])


def _object_name(filename: Optional[str]) -> str:
	ext = os.path.splitext(filename or "")[1].lower()
	return f"{uuid.uuid4().hex}{ext}"


@router.post("", status_code=201)
async def upload_file(
	test_id: UUID = Form(...),
	file: Optional[UploadFile] = File(default=None),
	user: AuthUser = Depends(get_current_user),
	db: Session = Depends(get_db),
	storage: LocalObjectStorage = Depends(get_storage),
):
	if file is None:
		raise BadRequestError("No file uploaded")
	mime = (file.content_type or "").lower()
	if mime not in ALLOWED_MIME_TYPES:
		raise BadRequestError("Unsupported file type. Please upload an image, PDF, DOCX or TXT file.")
	# Bounded read: one byte over the limit means too large
	data = await file.read(settings.max_upload_bytes + 1)
	if len(data) > settings.max_upload_bytes:
		raise BadRequestError(f"File is larger than {settings.max_upload_bytes // (1024 * 1024)}MB")
	if not data:
		raise BadRequestError("Uploaded file is empty")
	test = get_test_or_404(db, test_id)

	path = f"{object_prefix(test.id)}/{_object_name(file.filename)}"
	try:
		file_url = storage.upload(path, data)
	except OSError as exc:
		raise UpstreamError("File upload to storage failed", detail=str(exc)) from exc

	row = Upload(
		test_id=test.id,
		file_url=file_url,
		file_type=file_type_for_mime(mime),
		storage_path=path,
		original_filename=file.filename,
		content_type=mime,
	)
	db.add(row)
	db.commit()
	db.refresh(row)
	logger.info("Stored %s upload %s for test %s (%d bytes)", row.file_type, row.id, test.id, len(data))
	return {"upload": row.to_dict(), "message": "File uploaded successfully"}
