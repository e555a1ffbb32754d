from underwriter.classification.base import BaseDocumentClassifier
from underwriter.classification.openai_classifier import OpenAIDocumentClassifier
from underwriter.classification.rules import RuleBasedClassifier
from underwriter.config.settings import Settings


class ClassifierFactory:
    """Creates the classifier named by CLASSIFIER_PROVIDER."""

    PROVIDERS: tuple[str, ...] = ("rules", "openai")

    @classmethod
    def create(cls, settings: Settings) -> BaseDocumentClassifier:
        provider = settings.classifier_provider.lower()
        if provider == "rules":
            return RuleBasedClassifier()
        if provider == "openai":
            if not settings.openai_api_key:
                raise ValueError("openai_api_key is required for classifier_provider=openai")
            return OpenAIDocumentClassifier(
                api_key=settings.openai_api_key,
                model=settings.openai_model_name,
                timeout_seconds=settings.openai_timeout_seconds,
                base_url=settings.openai_base_url,
            )
        raise ValueError(
            f"Unknown classifier provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
