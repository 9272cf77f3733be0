from types import SimpleNamespace

import pytest
from google.genai import errors

from app.gemini import services as gemini_services
from app.gemini.services import CompletionModelClient
from app.services.exceptions import CompletionModelError


class ScriptedModels:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    async def generate_content(self, model, contents, config):
        self.requests.append({"model": model, "contents": contents, "config": config})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _client(outcomes):
    models = ScriptedModels(outcomes)
    return SimpleNamespace(aio=SimpleNamespace(models=models)), models


def _response(text):
    return SimpleNamespace(text=text, usage_metadata=SimpleNamespace(prompt_token_count=11, candidates_token_count=22))


def _api_error(code):
    return errors.APIError(code, {"error": {"code": code, "message": "upstream said no", "status": "UNAVAILABLE"}})


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    async def _sleep(_seconds):
        return None
    monkeypatch.setattr(gemini_services.asyncio, "sleep", _sleep)


@pytest.mark.anyio
async def test_complete_returns_text_and_usage():
    client, models = _client([_response('{"days": []}')])
    result = await CompletionModelClient(client=client, model="gemini-test").complete("system", "user", 512)

    assert result.text == '{"days": []}'
    assert result.model == "gemini-test"
    assert result.input_tokens == 11
    assert result.output_tokens == 22
    config = models.requests[0]["config"]
    assert config.system_instruction == "system"
    assert config.max_output_tokens == 512
    assert config.response_mime_type == "application/json"


@pytest.mark.anyio
async def test_overload_is_retried():
    client, models = _client([_api_error(503), _api_error(429), _response("{}")])
    result = await CompletionModelClient(client=client, max_retries=3).complete("system", "user", 512)
    assert result.text == "{}"
    assert len(models.requests) == 3


@pytest.mark.anyio
@pytest.mark.parametrize("code", [500, 502, 504])
async def test_server_errors_are_retried(code):
    client, models = _client([_api_error(code), _response("{}")])
    result = await CompletionModelClient(client=client, max_retries=3).complete("system", "user", 512)
    assert result.text == "{}"
    assert len(models.requests) == 2


@pytest.mark.anyio
async def test_retries_exhausted_raise_model_error():
    client, _ = _client([_api_error(503), _api_error(503)])
    with pytest.raises(CompletionModelError):
        await CompletionModelClient(client=client, max_retries=2).complete("system", "user", 512)


@pytest.mark.anyio
async def test_client_errors_are_not_retried():
    client, models = _client([_api_error(400), _response("{}")])
    with pytest.raises(CompletionModelError) as exc:
        await CompletionModelClient(client=client, max_retries=3).complete("system", "user", 512)
    assert "HTTP 400" in exc.value.details["reason"]
    assert len(models.requests) == 1
