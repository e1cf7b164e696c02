"""
Gemini REST client for LLM interactions.

Uses the Gemini API with an API key when one is configured, otherwise Vertex
AI with Google application-default (or service account) credentials.
"""
import json
import logging
from typing import Optional, Dict, Any, List

import requests
import google.auth
import google.auth.exceptions
import google.auth.transport.requests
from google.oauth2 import service_account

from ...config import GEMINI_API_BASE, VERTEX_LOCATION, MODEL_NAME, LLM_TIMEOUT, MAX_OUTPUT_TOKENS

logger = logging.getLogger("llm_client")


class LLMError(RuntimeError):
    """Request to the model failed or came back unusable."""


class LLMCredentialsError(LLMError):
    """Neither an API key nor a Vertex project is configured."""


class GeminiRestClient:
    """REST-based client for Gemini models."""

    def __init__(self,
                 api_key: Optional[str] = None,
                 project: Optional[str] = None,
                 location: str = VERTEX_LOCATION,
                 model: str = MODEL_NAME,
                 credentials_json: Optional[str] = None,
                 timeout: int = LLM_TIMEOUT):
        self.api_key = api_key
        self.project = project
        self.location = location
        self.model = model
        self.credentials_json = credentials_json
        self.timeout = timeout
        self._token = None

    @property
    def uses_vertex(self) -> bool:
        return not self.api_key

    def _endpoint(self) -> str:
        if self.api_key:
            return f"{GEMINI_API_BASE}/models/{self.model}:generateContent"
        if not self.project:
            raise LLMCredentialsError("GEMINI_API_KEY is missing from environment and no GOOGLE_CLOUD_PROJECT is set.")
        return (
            f"https://{self.location}-aiplatform.googleapis.com/v1/projects/{self.project}"
            f"/locations/{self.location}/publishers/google/models/{self.model}:generateContent"
        )

    def _refresh_token(self):
        """Refresh the OAuth token for Vertex API calls."""
        if self.credentials_json:
            creds = service_account.Credentials.from_service_account_file(
                self.credentials_json,
                scopes=["https://www.googleapis.com/auth/cloud-platform"],
            )
        else:
            creds, _ = google.auth.default(scopes=["https://www.googleapis.com/auth/cloud-platform"])

        auth_req = google.auth.transport.requests.Request()
        creds.refresh(auth_req)
        self._token = creds.token

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["x-goog-api-key"] = self.api_key
        else:
            if not self._token:
                try:
                    self._refresh_token()
                except google.auth.exceptions.GoogleAuthError as e:
                    raise LLMCredentialsError(f"Could not load Google credentials: {e}") from e
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def generate_content(
        self,
        prompt_text: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.0,
        max_output_tokens: int = MAX_OUTPUT_TOKENS,
        response_mime_type: Optional[str] = None,
        response_schema: Optional[Dict[str, Any]] = None,
        thinking_budget: Optional[int] = None,
        stop_sequences: Optional[List[str]] = None,
    ) -> str:
        """Generate content using the generateContent REST method."""
        url = self._endpoint()

        body: Dict[str, Any] = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": prompt_text}],
                }
            ],
            "generationConfig": {
                "temperature": float(temperature),
                "maxOutputTokens": int(max_output_tokens),
            },
        }

        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if response_mime_type:
            body["generationConfig"]["responseMimeType"] = response_mime_type
        if response_schema:
            body["generationConfig"]["responseSchema"] = response_schema
        if thinking_budget is not None:
            body["generationConfig"]["thinkingConfig"] = {"thinkingBudget": int(thinking_budget)}
        if stop_sequences:
            body["generationConfig"]["stopSequences"] = list(stop_sequences)

        try:
            resp = requests.post(url, headers=self._headers(), json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise LLMError(f"Gemini request failed: {e}") from e
        if resp.status_code >= 400:
            raise LLMError(f"Gemini REST error {resp.status_code}: {resp.text}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise LLMError(f"Gemini returned a non-JSON body: {resp.text[:200]}") from e
        return self._parse_response_text(payload)

    def _parse_response_text(self, resp_json: Dict[str, Any]) -> str:
        """
        Extract the text of the first candidate.

        Raises:
            LLMError: If the response carries no text part
        """
        cands = resp_json.get("candidates") or []
        if cands:
            parts = (cands[0].get("content") or {}).get("parts") or []
            texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
            if texts:
                return "".join(texts)

        if isinstance(resp_json.get("text"), str):
            return resp_json["text"]

        raise LLMError(f"No text in Gemini response: {json.dumps(resp_json, separators=(',', ':'))[:500]}")

    def generate_json(self,
                      prompt: str,
                      system_instruction: Optional[str] = None,
                      response_schema: Optional[Dict[str, Any]] = None,
                      thinking_budget: Optional[int] = None) -> Dict[str, Any]:
        """
        Generate a JSON object, asking the model for application/json output.

        Raises:
            LLMError: If the request fails or the output is not a JSON object
        """
        text = self.generate_content(
            prompt,
            system_instruction=system_instruction,
            temperature=0.0,
            response_mime_type="application/json",
            response_schema=response_schema,
            thinking_budget=thinking_budget,
        )
        logger.debug("Raw LLM output: %s", repr(text))

        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("json.loads failed: %s", e)
            start = text.find("{")
            end = text.rfind("}")
            if start == -1 or end <= start:
                raise LLMError(f"LLM did not return valid JSON: {text}") from e
            try:
                parsed = json.loads(text[start:end + 1])
            except json.JSONDecodeError as e2:
                raise LLMError(f"LLM did not return valid JSON: {text}") from e2

        if not isinstance(parsed, dict):
            raise LLMError(f"Expected a JSON object, got {type(parsed).__name__}")
        return parsed
