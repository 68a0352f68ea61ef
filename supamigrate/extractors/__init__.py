"""Sources of functions and documents to migrate."""

from .base import BaseExtractor, ExtractionResult
from .directory_extractor import DirectoryExtractor
from .firebase_project_extractor import FirebaseProjectExtractor
from .firestore_extractor import FirestoreExporter
from .firestore_client import create_firestore_client
from .hooks import load_hooks

__all__ = [
    "BaseExtractor",
    "ExtractionResult",
    "DirectoryExtractor",
    "FirebaseProjectExtractor",
    "FirestoreExporter",
    "create_firestore_client",
    "load_hooks",
]
