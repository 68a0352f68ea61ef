"""Service layer for function recognition, rewriting and generation."""

from .pattern_registry import PatternRegistry, RecognitionRule
from .function_scanner import FunctionScanner
from .api_rewriter import ApiRewriter, REVIEW_MARKER, needs_review
from .code_generator import CodeGenerator, to_cron

__all__ = [
    "PatternRegistry",
    "RecognitionRule",
    "FunctionScanner",
    "ApiRewriter",
    "REVIEW_MARKER",
    "needs_review",
    "CodeGenerator",
    "to_cron",
]
