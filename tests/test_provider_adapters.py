# tests/test_provider_adapters.py
import json

import pytest

from codegen.data_models import ProviderConfig, ProviderRequest
from codegen.errors import ProviderError
from codegen.provider_adapters import (
    AnthropicAdapter, GeminiAdapter, GroqAdapter, OpenAIAdapter, ProviderAdapterManager,
    flatten_arguments, invocation_from_arguments,
)
from codegen.tool_defs import TOOL_NAME_REPLACE_SCRIPT_FILE, TOOL_NAME_SPLIT_TASK_TO_SINGLE_FILES, get_tool


@pytest.fixture
def tool_request():
    return ProviderRequest(
        system_prompt="system",
        user_prompt="user",
        temperature=0.5,
        tool=get_tool(TOOL_NAME_REPLACE_SCRIPT_FILE),
        agent_name="CodeSynthesizer",
    )


# --- Argument normalization ---

def test_flatten_arguments_stringifies_scalars():
    flat = flatten_arguments({"FilePath": "a.py", "TaskId": 1.0, "Force": True, "Count": 3})
    assert flat == {"FilePath": "a.py", "TaskId": "1", "Force": "true", "Count": "3"}


def test_flatten_arguments_lifts_nested_object_one_level():
    flat = flatten_arguments({"file": {"FilePath": "a.py", "Content": "x"}})
    assert flat == {"FilePath": "a.py", "Content": "x"}


def test_invocation_from_json_string():
    invocation = invocation_from_arguments("ReplaceScriptFile", '{"FilePath": "a.py", "Content": "print(1)"}')
    assert invocation.arguments == {"FilePath": "a.py", "Content": "print(1)"}


def test_invocation_keeps_unparseable_text_verbatim():
    raw = '{"FilePath": "a.cs", "Content": "void F() \\{ }"}'
    invocation = invocation_from_arguments("ReplaceScriptFile", raw)
    assert invocation.arguments == {}
    assert invocation.raw_arguments == raw


# --- OpenAI ---

def test_openai_request_forces_the_tool(tool_request, openai_config):
    url, headers, payload = OpenAIAdapter().build_http_request(tool_request, openai_config)
    assert url == "https://api.openai.com/v1/chat/completions"
    assert headers["Authorization"] == "Bearer sk-test"
    assert payload["tool_choice"] == {"type": "function", "function": {"name": TOOL_NAME_REPLACE_SCRIPT_FILE}}
    assert payload["messages"][0] == {"role": "system", "content": "system"}
    assert payload["temperature"] == 0.5


def test_openai_parses_tool_calls():
    body = {"choices": [{"finish_reason": "tool_calls", "message": {"tool_calls": [
        {"function": {"name": "ReplaceScriptFile", "arguments": '{"FilePath": "a.py", "Content": "x = 1"}'}}
    ]}}]}
    response = OpenAIAdapter().parse(body)
    assert response.stop_reason == "tool_calls"
    assert response.tool_calls[0].name == "ReplaceScriptFile"
    assert response.tool_calls[0].arguments["Content"] == "x = 1"


def test_openai_forced_tool_choice_reports_stop():
    body = {"choices": [{"finish_reason": "stop", "message": {"tool_calls": [
        {"function": {"name": "MergeCode", "arguments": '{"FilePath": "a.py", "Content": "y"}'}}
    ]}}]}
    response = OpenAIAdapter().parse(body)
    assert len(response.tool_calls) == 1


def test_openai_length_keeps_cut_off_tool_arguments():
    raw = '{"FilePath": "a.py", "Content": "def f():\\n    return 1'
    body = {"choices": [{"finish_reason": "length", "message": {"tool_calls": [
        {"function": {"name": "ReplaceScriptFile", "arguments": raw}}
    ]}}]}
    response = OpenAIAdapter().parse(body)
    assert response.stop_reason == "length"
    assert not response.is_empty
    assert response.tool_calls[0].arguments == {}
    assert response.tool_calls[0].raw_arguments == raw


def test_openai_unrecognized_finish_reason_is_empty(mock_console):
    body = {"choices": [{"finish_reason": "content_filter", "message": {"content": None}}]}
    response = OpenAIAdapter(mock_console).parse(body)
    assert response.is_empty
    assert response.stop_reason == "content_filter"
    mock_console.print.assert_called_once()


def test_openai_error_body_raises():
    with pytest.raises(ProviderError):
        OpenAIAdapter().parse({"error": {"message": "model not found"}})


# --- Groq ---

def test_groq_uses_its_own_endpoint_and_accepts_object_arguments(tool_request):
    config = ProviderConfig(provider="groq", model="llama-3.3-70b-versatile", api_key="gsk")
    url, _, _ = GroqAdapter().build_http_request(tool_request, config)
    assert url == "https://api.groq.com/openai/v1/chat/completions"

    body = {"choices": [{"finish_reason": "tool_calls", "message": {"tool_calls": [
        {"function": {"name": "SplitTaskToSingleFiles", "arguments": {"FilePath": "a.py", "TaskId": 0}}}
    ]}}]}
    response = GroqAdapter().parse(body)
    assert response.provider == "groq"
    assert response.tool_calls[0].arguments == {"FilePath": "a.py", "TaskId": "0"}


# --- Anthropic ---

def test_anthropic_request_shape(tool_request, anthropic_config):
    url, headers, payload = AnthropicAdapter().build_http_request(tool_request, anthropic_config)
    assert url == "https://api.anthropic.com/v1/messages"
    assert headers["x-api-key"] == "sk-ant-test"
    assert headers["anthropic-version"] == "2023-06-01"
    assert payload["system"] == "system"
    assert payload["tools"][0]["name"] == TOOL_NAME_REPLACE_SCRIPT_FILE
    assert "input_schema" in payload["tools"][0]
    assert payload["tool_choice"] == {"type": "tool", "name": TOOL_NAME_REPLACE_SCRIPT_FILE}


def test_anthropic_parses_every_tool_use_block():
    body = {"stop_reason": "tool_use", "content": [
        {"type": "text", "text": "Splitting."},
        {"type": "tool_use", "name": "SplitTaskToSingleFiles", "input": {"FilePath": "a.py", "TaskId": 0}},
        {"type": "tool_use", "name": "SplitTaskToSingleFiles", "input": {"FilePath": "b.py", "TaskId": 1}},
    ]}
    response = AnthropicAdapter().parse(body)
    assert [call.arguments["FilePath"] for call in response.tool_calls] == ["a.py", "b.py"]
    assert response.text == "Splitting."


def test_anthropic_error_type_raises():
    with pytest.raises(ProviderError, match="overloaded_error"):
        AnthropicAdapter().parse({"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}})


def test_anthropic_end_turn_without_tool_is_text_only():
    response = AnthropicAdapter().parse({"stop_reason": "end_turn", "content": [{"type": "text", "text": "hi"}]})
    assert response.tool_calls == []
    assert response.text == "hi"


# --- Gemini ---

def test_gemini_request_shape(tool_request):
    config = ProviderConfig(provider="gemini", model="gemini-2.0-flash", api_key="g-key")
    url, _, payload = GeminiAdapter().build_http_request(tool_request, config)
    assert url.endswith("/models/gemini-2.0-flash:generateContent?key=g-key")
    declaration = payload["tools"][0]["function_declarations"][0]
    assert declaration["parameters"]["type"] == "OBJECT"
    assert declaration["parameters"]["properties"]["FilePath"]["type"] == "STRING"
    assert payload["tool_config"]["function_calling_config"] == {
        "mode": "ANY", "allowed_function_names": [TOOL_NAME_REPLACE_SCRIPT_FILE]
    }


def test_gemini_translate_keeps_integer_task_id_type():
    declaration = GeminiAdapter.translate_tool(get_tool(TOOL_NAME_SPLIT_TASK_TO_SINGLE_FILES))
    assert declaration["parameters"]["properties"]["TaskId"]["type"] == "INTEGER"


def test_gemini_parses_function_calls():
    body = {"candidates": [{"finishReason": "STOP", "content": {"parts": [
        {"functionCall": {"name": "SplitTaskToSingleFiles", "args": {"FilePath": "a.py", "TaskId": 1.0}}}
    ]}}]}
    response = GeminiAdapter().parse(body)
    assert response.tool_calls[0].arguments == {"FilePath": "a.py", "TaskId": "1"}


def test_gemini_max_tokens_keeps_function_calls():
    body = {"candidates": [{"finishReason": "MAX_TOKENS", "content": {"parts": [
        {"functionCall": {"name": "ReplaceScriptFile", "args": {"FilePath": "a.py", "Content": "x = "}}}
    ]}}]}
    response = GeminiAdapter().parse(body)
    assert response.stop_reason == "MAX_TOKENS"
    assert response.tool_calls[0].arguments == {"FilePath": "a.py", "Content": "x = "}


def test_gemini_safety_stop_is_empty(mock_console):
    body = {"candidates": [{"finishReason": "SAFETY", "content": {"parts": []}}]}
    response = GeminiAdapter(mock_console).parse(body)
    assert response.is_empty
    assert response.stop_reason == "SAFETY"


# --- Manager ---

def test_manager_returns_adapter_per_provider():
    manager = ProviderAdapterManager()
    assert isinstance(manager.get_adapter("Anthropic"), AnthropicAdapter)
    assert isinstance(manager.get_adapter("groq"), GroqAdapter)


def test_manager_rejects_unknown_provider():
    with pytest.raises(ProviderError, match="Unsupported provider"):
        ProviderAdapterManager().get_adapter("mistral")


def test_payloads_are_json_serializable(tool_request, anthropic_config):
    for adapter in (OpenAIAdapter(), AnthropicAdapter(), GeminiAdapter()):
        json.dumps(adapter.build_payload(tool_request, anthropic_config))
