import json
from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from underwriter.classification.exceptions import ClassificationError
from underwriter.classification.factory import ClassifierFactory
from underwriter.classification.openai_classifier import OpenAIDocumentClassifier
from underwriter.classification.rules import RuleBasedClassifier
from underwriter.config.settings import Settings


def _make_mock_response(content: str | None) -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    response = MagicMock()
    response.choices = [choice]
    return response


def _make_classifier(content: str | None = None) -> tuple[OpenAIDocumentClassifier, MagicMock]:
    client = MagicMock()
    client.chat.completions.create.return_value = _make_mock_response(content)
    classifier = OpenAIDocumentClassifier(
        api_key="k", model="gpt-test", timeout_seconds=30, client=client
    )
    return classifier, client


class TestOpenAIDocumentClassifier:
    def test_returns_classification(self) -> None:
        classifier, _client = _make_classifier(json.dumps({"doc_type": "t12", "confidence": 0.83}))

        result = classifier.classify("ops.pdf", "Net operating income")

        assert result.doc_type == "t12"
        assert result.confidence == 0.83
        assert result.method == "openai"

    def test_sends_json_schema_and_prompt(self) -> None:
        classifier, client = _make_classifier(json.dumps({"doc_type": "other", "confidence": 0.5}))

        classifier.classify("ops.pdf", "Net operating income")

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["response_format"]["type"] == "json_schema"
        assert "ops.pdf" in kwargs["messages"][1]["content"]
        assert "Net operating income" in kwargs["messages"][1]["content"]

    def test_strips_markdown_fence(self) -> None:
        classifier, _client = _make_classifier(
            '```json\n{"doc_type": "rent_roll", "confidence": 1.4}\n```'
        )

        result = classifier.classify("rr.pdf", "")

        assert result.doc_type == "rent_roll"
        assert result.confidence == 1.0

    def test_rejects_unknown_label(self) -> None:
        classifier, _client = _make_classifier(json.dumps({"doc_type": "lease", "confidence": 0.9}))

        with pytest.raises(ClassificationError, match="unknown doc_type"):
            classifier.classify("lease.pdf", "")

    def test_rejects_invalid_json(self) -> None:
        classifier, _client = _make_classifier("not json")

        with pytest.raises(ClassificationError, match="Invalid JSON"):
            classifier.classify("x.pdf", "")

    def test_rejects_empty_content(self) -> None:
        classifier, _client = _make_classifier(None)

        with pytest.raises(ClassificationError, match="empty response"):
            classifier.classify("x.pdf", "")

    def test_maps_connection_error(self) -> None:
        classifier, client = _make_classifier()
        client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", "https://api.example.test/v1/chat/completions")
        )

        with pytest.raises(ClassificationError, match="network error"):
            classifier.classify("x.pdf", "")

    def test_builds_openai_client(self) -> None:
        with patch(
            "underwriter.classification.openai_classifier.openai.OpenAI"
        ) as mock_openai:
            OpenAIDocumentClassifier(
                api_key="k", model="m", timeout_seconds=12, base_url="https://llm.local/v1"
            )

        mock_openai.assert_called_once_with(
            api_key="k", timeout=12, base_url="https://llm.local/v1"
        )


class TestClassifierFactory:
    def test_default_rules(self) -> None:
        assert isinstance(ClassifierFactory.create(Settings()), RuleBasedClassifier)

    def test_openai_requires_key(self) -> None:
        with pytest.raises(ValueError, match="openai_api_key"):
            ClassifierFactory.create(Settings(classifier_provider="openai", openai_api_key=""))

    def test_openai(self) -> None:
        with patch("underwriter.classification.openai_classifier.openai.OpenAI"):
            classifier = ClassifierFactory.create(
                Settings(classifier_provider="openai", openai_api_key="k")
            )

        assert isinstance(classifier, OpenAIDocumentClassifier)

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError, match="Unknown classifier provider"):
            ClassifierFactory.create(Settings(classifier_provider="magic"))
