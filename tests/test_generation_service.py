"""
Tests for AI mind map generation.

The DeepSeek HTTP call is patched out; no network access is needed.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from apps.mindmap_portal.api.config import Settings
from apps.mindmap_portal.api.main import create_app
from apps.mindmap_portal.api.services.generation_service import (
    GenerationError,
    GenerationNotConfiguredError,
    SYSTEM_PROMPT,
    build_messages,
    clean_markdown,
    generate_mindmap_markdown,
)

from fastapi.testclient import TestClient

POST_PATH = "apps.mindmap_portal.api.services.generation_service.requests.post"


def _reply(content):
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"choices": [{"message": {"content": content}}]}
    return response


@pytest.fixture
def configured(settings):
    return Settings(**{**settings.model_dump(), "DEEPSEEK_API_KEY": "sk-testkey0000000000000000"})


# ============================================================
# Prompt / cleanup helpers
# ============================================================

class TestPromptHelpers:

    def test_build_messages(self):
        messages = build_messages("  Photosynthesis ")
        assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert messages[1]["role"] == "user"
        assert '"Photosynthesis"' in messages[1]["content"]
        assert "Markmap" in messages[1]["content"]

    @pytest.mark.parametrize("raw,expected", [
        ("# Root\n## A", "# Root\n## A"),
        ("```markdown\n# Root\n## A\n```", "# Root\n## A"),
        ("```\n# Root\n```\n", "# Root"),
        ("  \n# Root  \n", "# Root"),
    ])
    def test_clean_markdown(self, raw, expected):
        assert clean_markdown(raw) == expected


# ============================================================
# Provider call
# ============================================================

class TestGenerateMindmapMarkdown:

    def test_not_configured(self, settings):
        with patch(POST_PATH) as mock_post:
            with pytest.raises(GenerationNotConfiguredError) as exc_info:
                generate_mindmap_markdown("Topic", settings)
        assert str(exc_info.value) == "Server configuration error: API key not set"
        mock_post.assert_not_called()

    def test_success(self, configured):
        with patch(POST_PATH, return_value=_reply("```markdown\n# Topic\n## Branch\n```")) as mock_post:
            content = generate_mindmap_markdown("Topic", configured)

        assert content == "# Topic\n## Branch"

        args, kwargs = mock_post.call_args
        assert args[0] == "https://api.deepseek.com/chat/completions"
        assert kwargs["json"]["model"] == "deepseek-chat"
        assert kwargs["json"]["temperature"] == 0.7
        assert kwargs["json"]["messages"] == build_messages("Topic")
        assert kwargs["headers"]["Authorization"] == "Bearer sk-testkey0000000000000000"
        assert kwargs["timeout"] is None

    def test_http_error(self, configured):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("401 Client Error")
        with patch(POST_PATH, return_value=response):
            with pytest.raises(GenerationError) as exc_info:
                generate_mindmap_markdown("Topic", configured)
        assert "401 Client Error" in str(exc_info.value)

    def test_connection_error(self, configured):
        with patch(POST_PATH, side_effect=requests.exceptions.ConnectionError("unreachable")):
            with pytest.raises(GenerationError):
                generate_mindmap_markdown("Topic", configured)

    @pytest.mark.parametrize("payload", [{}, {"choices": []}, {"choices": [{"message": {}}]}])
    def test_malformed_reply(self, configured, payload):
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.return_value = payload
        with patch(POST_PATH, return_value=response):
            with pytest.raises(GenerationError) as exc_info:
                generate_mindmap_markdown("Topic", configured)
        assert "Invalid response structure" in str(exc_info.value)

    def test_non_json_reply(self, configured):
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError("Expecting value")
        with patch(POST_PATH, return_value=response):
            with pytest.raises(GenerationError):
                generate_mindmap_markdown("Topic", configured)


# ============================================================
# POST /generate
# ============================================================

class TestGenerateEndpoint:

    @pytest.mark.parametrize("body", [{}, {"topic": ""}, {"topic": "   "}, {"topic": 42}])
    def test_topic_required(self, client, body):
        response = client.post("/generate", json=body)
        assert response.status_code == 400
        assert response.json()["error"] == "Topic is required and must be a non-empty string"

    def test_key_not_configured(self, client):
        response = client.post("/generate", json={"topic": "Rust"})
        assert response.status_code == 500
        assert response.json()["error"] == "Server configuration error: API key not set"

    def test_success(self, configured, store):
        with TestClient(create_app(configured)) as client:
            with patch(POST_PATH, return_value=_reply("# Rust\n## Ownership")):
                response = client.post("/generate", json={"topic": "Rust"})

        assert response.status_code == 200
        assert response.json() == {"content": "# Rust\n## Ownership"}

    def test_upstream_failure(self, configured, store):
        with TestClient(create_app(configured)) as client:
            with patch(POST_PATH, side_effect=requests.exceptions.Timeout("read timed out")):
                response = client.post("/generate", json={"topic": "Rust"})

        assert response.status_code == 500
        assert response.json()["error"].startswith("Failed to generate content: ")
        assert "read timed out" in response.json()["error"]
