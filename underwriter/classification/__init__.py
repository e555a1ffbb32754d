from underwriter.classification.base import BaseDocumentClassifier
from underwriter.classification.factory import ClassifierFactory
from underwriter.classification.models import Classification, TabularDetection
from underwriter.classification.rules import RuleBasedClassifier
from underwriter.classification.tabular import TabularDocTypeDetector

__all__ = [
    "BaseDocumentClassifier",
    "Classification",
    "ClassifierFactory",
    "RuleBasedClassifier",
    "TabularDetection",
    "TabularDocTypeDetector",
]
