import json
from typing import Any, ClassVar

import httpx
import openai

from underwriter.classification.base import BaseDocumentClassifier
from underwriter.classification.exceptions import ClassificationError
from underwriter.classification.models import DOC_TYPES, Classification
from underwriter.logging.logger import Log


class OpenAIDocumentClassifier(BaseDocumentClassifier):
    """Classifies documents with an OpenAI-compatible chat model.

    The model must answer with a JSON object matching RESPONSE_SCHEMA; any
    label outside DOC_TYPES is rejected.
    """

    METHOD = "openai"

    SYSTEM_PROMPT: ClassVar[str] = (
        "You label commercial real estate due-diligence documents. "
        "Answer only with the requested JSON object."
    )
    USER_PROMPT: ClassVar[str] = (
        "Choose the doc_type of this uploaded file from: {doc_types}.\n"
        "Use 'other' when none applies. confidence is between 0 and 1.\n\n"
        "Filename: {filename}\n"
        "Text excerpt:\n{excerpt}"
    )
    RESPONSE_SCHEMA: ClassVar[dict[str, Any]] = {
        "type": "object",
        "properties": {
            "doc_type": {"type": "string", "enum": list(DOC_TYPES)},
            "confidence": {"type": "number"},
        },
        "required": ["doc_type", "confidence"],
        "additionalProperties": False,
    }

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        base_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        self._model = model
        self._client = client or openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )

    def classify(self, filename: str, excerpt: str) -> Classification:
        prompt = self.USER_PROMPT.format(
            doc_types=", ".join(DOC_TYPES),
            filename=filename,
            excerpt=excerpt,
        )
        raw = self._call_model(prompt)
        Log.debug(f"Classifier raw response for {filename}: {raw}")
        parsed = self._parse_json(raw)

        doc_type = parsed.get("doc_type")
        if doc_type not in DOC_TYPES:
            raise ClassificationError(f"Model returned unknown doc_type '{doc_type}'")
        confidence = parsed.get("confidence")
        if not isinstance(confidence, (int, float)) or isinstance(confidence, bool):
            raise ClassificationError("Model returned a non-numeric confidence")
        return Classification(
            doc_type=str(doc_type),
            confidence=max(0.0, min(1.0, float(confidence))),
            method=self.METHOD,
        )

    def _call_model(self, prompt: str) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                temperature=0.0,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "document_classification",
                        "strict": True,
                        "schema": self.RESPONSE_SCHEMA,
                    },
                },
                messages=[
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ClassificationError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise ClassificationError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise ClassificationError("AI returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise ClassificationError("AI returned empty response")
        return content

    @staticmethod
    def _parse_json(raw: str) -> dict[str, Any]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ClassificationError(f"Invalid JSON response: {exc}") from exc
        if not isinstance(parsed, dict):
            raise ClassificationError("JSON response must be an object")
        return parsed
