from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional, Sequence, Union
from .settings import settings

logger = logging.getLogger(__name__)


class GeminiError(RuntimeError):
	"""Raised when neither Gemini nor the configured fallback produced a reply."""


def _to_gemini_contents(history: Sequence[Dict[str, str]], message: str) -> List[Dict[str, Any]]:
	contents: List[Dict[str, Any]] = []
	for turn in history:
		role = "user" if turn.get("role") == "user" else "model"
		contents.append({"role": role, "parts": [{"text": turn.get("content") or ""}]})
	contents.append({"role": "user", "parts": [{"text": message}]})
	return contents


def _to_openai_messages(system_instruction: Optional[str], history: Sequence[Dict[str, str]], message: str) -> List[Dict[str, str]]:
	messages: List[Dict[str, str]] = []
	if system_instruction:
		messages.append({"role": "system", "content": system_instruction})
	for turn in history:
		role = "user" if turn.get("role") == "user" else "assistant"
		messages.append({"role": role, "content": turn.get("content") or ""})
	messages.append({"role": "user", "content": message})
	return messages


class GeminiClient:
	def __init__(self, api_key: Optional[str] = None, *, base_url: Optional[str] = None, model: Optional[str] = None) -> None:
		self.api_key = api_key or settings.gemini_api_key
		# An OpenRouter-only deployment skips the Gemini call and goes straight to the fallback
		if not self.api_key and not settings.openrouter_api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._fallback_enabled = bool(settings.openrouter_api_key)
		self._openrouter_api_key = settings.openrouter_api_key
		self._openrouter_model = settings.openrouter_model
		self._openrouter_base_url = settings.openrouter_base_url
		self._openrouter_headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}" if self._openrouter_api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds)

	async def generate(self, prompt: str) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
		return await self._post_payload(payload, fallback_messages=_to_openai_messages(None, [], prompt))

	async def chat(self, system_instruction: str, message: str, history: Sequence[Dict[str, str]] = ()) -> str:
		"""Send one user turn with the prior conversation as context.

		``history`` holds ``{"role": "user" | "model", "content": str}`` dicts in
		conversation order. The system instruction is resent on every call since
		the model keeps no state between requests.
		"""
		payload: Dict[str, Any] = {
			"systemInstruction": {"parts": [{"text": system_instruction}]},
			"contents": _to_gemini_contents(history, message),
		}
		return await self._post_payload(
			payload,
			fallback_messages=_to_openai_messages(system_instruction, history, message),
		)

	async def _post_payload(
		self,
		payload: Dict[str, Any],
		*,
		fallback_messages: Optional[List[Dict[str, str]]],
	) -> str:
		if not self.api_key:
			last_error: Exception = GeminiError("GEMINI_API_KEY is not configured")
		else:
			result = await self._post_gemini(payload)
			if isinstance(result, str):
				return result
			last_error = result
			logger.warning("Gemini call failed: %s", last_error)
		if not self._fallback_enabled or fallback_messages is None:
			raise GeminiError(str(last_error)) from last_error
		return await self._fallback_generate(fallback_messages, last_error)

	async def _post_gemini(self, payload: Dict[str, Any]) -> Union[str, Exception]:
		"""Return the reply text, or the error that stopped the call."""
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			return http_err
		except httpx.RequestError as net_err:
			return net_err
		try:
			data = r.json()
			return data["candidates"][0]["content"]["parts"][0]["text"]
		except Exception:
			return GeminiError(f"Unexpected Gemini response: {r.text}")

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def _fallback_generate(self, messages: List[Dict[str, str]], primary_error: Optional[Exception]) -> str:
		if not self._fallback_client or not self._openrouter_api_key:
			raise GeminiError("Fallback requested but OpenRouter is not configured") from primary_error
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		payload: Dict[str, Any] = {
			"model": self._openrouter_model,
			"messages": messages,
		}
		try:
			r = await self._fallback_client.post(
				self._openrouter_base_url,
				headers=headers,
				json=payload,
			)
			r.raise_for_status()
			data = r.json()
			return data["choices"][0]["message"]["content"]
		except Exception as fallback_err:
			raise GeminiError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
			) from fallback_err


async def get_gemini_client():
	"""FastAPI dependency yielding a client that is closed after the request.

	Yields ``None`` when neither Gemini nor the OpenRouter fallback is
	configured so callers can degrade the same way they do for a failed call.
	"""
	if not settings.gemini_api_key and not settings.openrouter_api_key:
		logger.warning("No GEMINI_API_KEY or OPENROUTER_API_KEY configured; tutor replies are disabled")
		yield None
		return
	client = GeminiClient()
	try:
		yield client
	finally:
		await client.aclose()
