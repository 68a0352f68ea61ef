"""Writers and loaders for exported relations."""

from .base import BaseLoader, LoadResult
from .json_writer import JSONRecordWriter, read_relation, sanitize_relation_name
from .supabase_loader import SupabaseLoader

__all__ = [
    "BaseLoader",
    "LoadResult",
    "JSONRecordWriter",
    "read_relation",
    "sanitize_relation_name",
    "SupabaseLoader",
]
