import os
import unittest
from unittest.mock import Mock, patch

from nl_api.config import NlSettings
from nl_api.errors import ConfigurationError
from nl_api.infra import runtime


class SettingsTests(unittest.TestCase):
    def test_defaults_target_local_model_and_backend(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = NlSettings(_env_file=None)

        self.assertEqual(settings.provider, "ollama")
        self.assertEqual(settings.orchestration, "direct")
        self.assertEqual(settings.spec_url, "http://localhost:8080/v3/api-docs")
        self.assertEqual(settings.ollama_base_url, "http://localhost:11434")
        self.assertEqual(settings.vertex_location, "us-central1")

    def test_environment_overrides_use_prefix(self) -> None:
        env = {
            "NL_PROVIDER": "gemini-free",
            "NL_ORCHESTRATION": "langgraph",
            "NL_API_BASE_URL": "http://orders:8080",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = NlSettings(_env_file=None)

        self.assertEqual(settings.provider, "gemini-free")
        self.assertEqual(settings.orchestration, "langgraph")
        self.assertEqual(settings.api_base_url, "http://orders:8080")


class BedrockChatModelTests(unittest.TestCase):
    def setUp(self) -> None:
        runtime.get_bedrock_chat_model.cache_clear()
        self.addCleanup(runtime.get_bedrock_chat_model.cache_clear)

    def test_model_is_cached_and_bounded_by_model_timeout(self) -> None:
        settings = NlSettings(_env_file=None, model_timeout_seconds=12.5, aws_region="eu-west-1")
        params = {"model_id": "claude", "max_tokens": 256, "messages": ["hi"], "tools": []}

        with (
            patch.object(runtime, "get_settings", return_value=settings),
            patch.object(runtime, "ChatBedrockConverse") as chat_model,
        ):
            runtime._invoke_bedrock_converse(params)
            runtime._invoke_bedrock_converse(params)

        chat_model.assert_called_once()
        kwargs = chat_model.call_args.kwargs
        self.assertEqual(kwargs["model"], "claude")
        self.assertEqual(kwargs["region_name"], "eu-west-1")
        self.assertEqual(kwargs["config"].read_timeout, 12.5)
        self.assertEqual(chat_model.return_value.invoke.call_count, 2)


class ResolveSecretTests(unittest.TestCase):
    def test_explicit_value_wins_without_ssm_lookup(self) -> None:
        with patch.object(runtime, "get_ssm_client") as get_ssm_client:
            value = runtime.resolve_secret("sk-explicit", "/nl-app/openai-api-key", "OpenAI key")

        self.assertEqual(value, "sk-explicit")
        get_ssm_client.assert_not_called()

    def test_falls_back_to_ssm_parameter(self) -> None:
        ssm = Mock()
        ssm.get_parameter.return_value = {"Parameter": {"Value": "from-ssm"}}

        with patch.object(runtime, "get_ssm_client", return_value=ssm):
            value = runtime.resolve_secret(None, "/nl-app/gemini-api-key", "Gemini API key")

        self.assertEqual(value, "from-ssm")
        ssm.get_parameter.assert_called_once_with(
            Name="/nl-app/gemini-api-key", WithDecryption=True
        )

    def test_missing_secret_raises_configuration_error(self) -> None:
        ssm = Mock()
        ssm.get_parameter.side_effect = RuntimeError("ParameterNotFound")

        with patch.object(runtime, "get_ssm_client", return_value=ssm):
            with self.assertRaisesRegex(ConfigurationError, "Gemini API key"):
                runtime.resolve_secret(None, "/nl-app/gemini-api-key", "Gemini API key")

        with self.assertRaises(ConfigurationError):
            runtime.resolve_secret(None, None, "Gemini API key")


if __name__ == "__main__":
    unittest.main()
