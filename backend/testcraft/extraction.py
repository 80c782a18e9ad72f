from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional, Union

import PyPDF2
from docx import Document

from .errors import ContentExtractionError

logger = logging.getLogger(__name__)

# (mime substring, file type), checked in order
_MIME_RULES = (
	("image", "image"),
	("pdf", "pdf"),
	("word", "doc"),
	("document", "doc"),
	("text", "text"),
)

ALLOWED_MIME_TYPES = {
	"image/jpeg",
	"image/png",
	"application/pdf",
	"application/vnd.openxmlformats-officedocument.wordprocessingml.document",
	"text/plain",
}


def file_type_for_mime(mime: str) -> Optional[str]:
	mime = (mime or "").lower()
	for needle, file_type in _MIME_RULES:
		if needle in mime:
			return file_type
	return None


def extract_text_from_pdf(path: str) -> str:
	reader = PyPDF2.PdfReader(path)
	return "\n".join(page.extract_text() or "" for page in reader.pages)


def extract_text_from_docx(path: str) -> str:
	doc = Document(path)
	return "\n".join(p.text for p in doc.paragraphs)


def extract_content(path: str, file_type: str) -> Union[str, bytes]:
	"""Text for documents, raw bytes for images."""
	try:
		if file_type == "text":
			return Path(path).read_text(encoding="utf-8", errors="replace")
		if file_type == "doc":
			return extract_text_from_docx(path)
		if file_type == "pdf":
			return extract_text_from_pdf(path)
		if file_type == "image":
			return Path(path).read_bytes()
	except Exception as exc:
		logger.error("Error extracting content from %s file", file_type, exc_info=exc)
		raise ContentExtractionError(detail=f"{type(exc).__name__}: {exc}") from exc
	raise ContentExtractionError(detail=f"Unsupported file type: {file_type}")
