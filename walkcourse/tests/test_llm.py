from unittest.mock import MagicMock, patch

import pytest

from walkcourse.llm.config import LLMConfig
from walkcourse.llm.groq_client import LLMUnavailableError, complete_text

ENABLED_CONFIG = LLMConfig(api_key="test-key", model="test-model", enabled=True)
DISABLED_CONFIG = LLMConfig(api_key="test-key", enabled=False)
NO_KEY_CONFIG = LLMConfig(api_key="", enabled=True)


def _mock_groq_response(content: str | None) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


@patch("walkcourse.llm.groq_client.Groq")
def test_complete_text_returns_stripped_reply(mock_groq_cls):
    create = mock_groq_cls.return_value.chat.completions.create
    create.return_value = _mock_groq_response('\n  {"region": "강남"}  \n')

    reply = complete_text("system prompt", "user prompt", config=ENABLED_CONFIG)

    assert reply == '{"region": "강남"}'
    mock_groq_cls.assert_called_once_with(api_key="test-key", timeout=ENABLED_CONFIG.timeout)
    kwargs = create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["messages"][0] == {"role": "system", "content": "system prompt"}
    assert kwargs["messages"][1] == {"role": "user", "content": "user prompt"}


@patch("walkcourse.llm.groq_client.Groq")
def test_complete_text_empty_content(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(None)

    assert complete_text("s", "u", config=ENABLED_CONFIG) == ""


@patch("walkcourse.llm.groq_client.Groq")
def test_complete_text_propagates_api_errors(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = TimeoutError("API timeout")

    with pytest.raises(TimeoutError):
        complete_text("s", "u", config=ENABLED_CONFIG)


@patch("walkcourse.llm.groq_client.Groq")
def test_complete_text_disabled(mock_groq_cls):
    with pytest.raises(LLMUnavailableError):
        complete_text("s", "u", config=DISABLED_CONFIG)
    with pytest.raises(LLMUnavailableError):
        complete_text("s", "u", config=NO_KEY_CONFIG)
    mock_groq_cls.assert_not_called()
