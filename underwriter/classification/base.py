from abc import ABC, abstractmethod

from underwriter.classification.models import Classification


class BaseDocumentClassifier(ABC):
    """Contract for all document classifiers."""

    @abstractmethod
    def classify(self, filename: str, excerpt: str) -> Classification:
        """Assign a doc type to an uploaded file.

        Args:
            filename: Original filename as uploaded.
            excerpt: Leading text of the document, possibly empty.

        Raises:
            ClassificationError: if the classifier cannot produce a known type.
        """
