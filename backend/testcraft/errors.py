from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .settings import settings

logger = logging.getLogger(__name__)


class ApiError(Exception):
	status_code: int = 500
	default_msg: str = "Server error"

	def __init__(self, msg: Optional[str] = None) -> None:
		self.msg = msg or self.default_msg
		super().__init__(self.msg)


class BadRequestError(ApiError):
	status_code = 400
	default_msg = "Bad request"


class NotFoundError(ApiError):
	status_code = 404
	default_msg = "Not found"


class UpstreamError(ApiError):
	"""A storage, database, parsing or AI call failed.

	``msg`` is what clients see; ``detail`` is only exposed in development.
	"""

	status_code = 500
	default_msg = "Server error"

	def __init__(self, msg: Optional[str] = None, *, detail: Optional[str] = None) -> None:
		super().__init__(msg)
		self.detail = detail


class ContentExtractionError(UpstreamError):
	default_msg = "Could not extract content from file"


class GenerationFormatError(UpstreamError):
	default_msg = "AI response did not match the expected question format"


def error_body(*messages: str, **extra: Any) -> Dict[str, List[Dict[str, Any]]]:
	return {"errors": [{"msg": m, **extra} for m in messages]}


def _validation_entries(exc: RequestValidationError) -> List[Dict[str, Any]]:
	entries = []
	for err in exc.errors():
		# Drop the "body"/"path"/"query" prefix so params read like field names
		loc = [str(part) for part in err.get("loc", ())][1:]
		msg = str(err.get("msg", "Invalid value"))
		if msg.startswith("Value error, "):
			msg = msg[len("Value error, "):]
		entries.append({"msg": msg, "param": ".".join(loc)})
	return entries


async def _handle_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
	return JSONResponse(status_code=400, content={"errors": _validation_entries(exc)})


async def _handle_http(request: Request, exc: StarletteHTTPException) -> JSONResponse:
	return JSONResponse(
		status_code=exc.status_code,
		content=error_body(str(exc.detail)),
		headers=getattr(exc, "headers", None),
	)


async def _handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
	body = error_body(exc.msg)
	if isinstance(exc, UpstreamError):
		logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.msg, exc.detail)
		if settings.is_development and exc.detail:
			body["errors"][0]["detail"] = exc.detail
	return JSONResponse(status_code=exc.status_code, content=body)


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
	logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
	msg = str(exc) if settings.is_development else "Something went wrong"
	return JSONResponse(status_code=500, content=error_body("Server error", detail=msg))


def install_error_handlers(app: FastAPI) -> None:
	app.add_exception_handler(RequestValidationError, _handle_validation)
	app.add_exception_handler(StarletteHTTPException, _handle_http)
	app.add_exception_handler(ApiError, _handle_api_error)
	app.add_exception_handler(Exception, _handle_unexpected)
