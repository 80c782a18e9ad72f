from __future__ import annotations
import httpx
from typing import Any, Dict, List, Optional
from .settings import settings


class GeminiError(RuntimeError):
	pass


class GeminiClient:
	def __init__(self, api_key: Optional[str] = None, *, base_url: Optional[str] = None, model: Optional[str] = None) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		self._base_url_override = base_url
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds)

	def _endpoint(self, model: str) -> str:
		if self._base_url_override:
			return self._base_url_override
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			return (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{model}:generateContent"
			)
		# Google AI Studio (Generative Language API)
		return f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

	def _generation_config(self) -> Dict[str, Any]:
		return {
			"temperature": settings.gemini_temperature,
			"maxOutputTokens": settings.gemini_max_output_tokens,
			"responseMimeType": "application/json",
		}

	async def generate(self, prompt: str) -> str:
		return await self.generate_multimodal([{"text": prompt}])

	async def generate_multimodal(
		self,
		parts: List[Dict[str, Any]],
		*,
		role: str = "user",
		model: Optional[str] = None,
	) -> str:
		payload: Dict[str, Any] = {
			"contents": [{"role": role, "parts": parts}],
			"generationConfig": self._generation_config(),
		}
		return await self._post_payload(payload, model=model or self.model)

	async def _post_payload(self, payload: Dict[str, Any], *, model: str) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self.provider == "vertex":
			headers["x-goog-api-key"] = self.api_key
		else:
			params["key"] = self.api_key
		try:
			r = await self._client.post(self._endpoint(model), params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			raise GeminiError(f"Gemini returned HTTP {http_err.response.status_code}") from http_err
		except httpx.RequestError as net_err:
			raise GeminiError(f"Gemini request failed: {net_err}") from net_err
		try:
			data = r.json()
			return data["candidates"][0]["content"]["parts"][0]["text"]
		except Exception as exc:
			raise GeminiError(f"Unexpected Gemini response: {r.text[:500]}") from exc

	async def aclose(self) -> None:
		await self._client.aclose()

