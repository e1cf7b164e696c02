"""Tests for the Gemini REST client."""
from unittest.mock import Mock, patch

import pytest
import requests

from mockprep.infrastructure.llm import GeminiRestClient, LLMError, LLMCredentialsError


def gemini_response(text, status_code=200):
    resp = Mock()
    resp.status_code = status_code
    resp.text = text
    resp.json.return_value = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    return resp


@patch("mockprep.infrastructure.llm.client.requests.post")
def test_api_key_request_shape(mock_post):
    mock_post.return_value = gemini_response('{"ok": true}')
    client = GeminiRestClient(api_key="k", model="gemini-2.5-flash")

    result = client.generate_json("question text", system_instruction="be strict",
                                  response_schema={"type": "OBJECT"}, thinking_budget=0)

    assert result == {"ok": True}
    url = mock_post.call_args.args[0]
    kwargs = mock_post.call_args.kwargs
    assert url.endswith("/models/gemini-2.5-flash:generateContent")
    assert kwargs["headers"]["x-goog-api-key"] == "k"
    body = kwargs["json"]
    assert body["contents"][0]["parts"][0]["text"] == "question text"
    assert body["systemInstruction"]["parts"][0]["text"] == "be strict"
    assert body["generationConfig"]["responseMimeType"] == "application/json"
    assert body["generationConfig"]["responseSchema"] == {"type": "OBJECT"}
    assert body["generationConfig"]["thinkingConfig"] == {"thinkingBudget": 0}


@patch("mockprep.infrastructure.llm.client.requests.post")
def test_text_parts_are_joined(mock_post):
    resp = Mock(status_code=200)
    resp.json.return_value = {"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]}
    mock_post.return_value = resp

    assert GeminiRestClient(api_key="k").generate_content("p") == "ab"


@patch("mockprep.infrastructure.llm.client.requests.post")
def test_json_wrapped_in_prose_is_recovered(mock_post):
    mock_post.return_value = gemini_response('Sure: {"isCorrect": false} hope that helps')

    assert GeminiRestClient(api_key="k").generate_json("p") == {"isCorrect": False}


@patch("mockprep.infrastructure.llm.client.requests.post")
def test_non_object_json_is_rejected(mock_post):
    mock_post.return_value = gemini_response("[1, 2]")

    with pytest.raises(LLMError):
        GeminiRestClient(api_key="k").generate_json("p")


@patch("mockprep.infrastructure.llm.client.requests.post")
def test_http_error_raises(mock_post):
    mock_post.return_value = gemini_response("quota exceeded", status_code=429)

    with pytest.raises(LLMError):
        GeminiRestClient(api_key="k").generate_content("p")


@patch("mockprep.infrastructure.llm.client.requests.post")
def test_network_error_raises(mock_post):
    mock_post.side_effect = requests.Timeout("slow")

    with pytest.raises(LLMError):
        GeminiRestClient(api_key="k").generate_content("p")


@patch("mockprep.infrastructure.llm.client.requests.post")
def test_empty_candidates_raise(mock_post):
    resp = Mock(status_code=200)
    resp.json.return_value = {"candidates": []}
    mock_post.return_value = resp

    with pytest.raises(LLMError):
        GeminiRestClient(api_key="k").generate_content("p")


@patch("mockprep.infrastructure.llm.client.requests.post")
def test_missing_credentials_fail_before_any_request(mock_post):
    with pytest.raises(LLMCredentialsError):
        GeminiRestClient().generate_content("p")
    mock_post.assert_not_called()


def test_vertex_endpoint_when_only_project_is_set():
    client = GeminiRestClient(project="proj", location="us-central1", model="gemini-2.5-flash")

    assert client.uses_vertex
    assert client._endpoint() == (
        "https://us-central1-aiplatform.googleapis.com/v1/projects/proj/locations/us-central1"
        "/publishers/google/models/gemini-2.5-flash:generateContent"
    )
