"""Recognizes Firebase function declarations in source text."""

import re
import logging
from typing import List, Optional, Tuple

from ..models.function import MIN_BODY_LENGTH, FunctionRecord
from .body_extractor import extract_block, first_block_of_size, function_body, split_arguments
from .pattern_registry import BODY_INLINE, PatternRegistry, RecognitionRule

logger = logging.getLogger(__name__)


# Minimum size of an arbitrary block picked when no handler can be located
FALLBACK_MIN_BLOCK = 50

_IDENTIFIER = re.compile(r"[A-Za-z_$][\w$]*")


class FunctionScanner:
    """
    Scans a source file for Firebase function declarations.

    Every rule of the registry is matched against the whole text. Where
    matches of different rules cover overlapping text, the most specific
    authoring style wins, so an exported factory call yields one record
    rather than two. Records come back ordered by their offset in the file.
    """

    def __init__(self, registry: Optional[PatternRegistry] = None):
        self.registry = registry or PatternRegistry()

    def scan(self, content: str, file_path: str = "") -> List[FunctionRecord]:
        """
        Find all function declarations in a file's content.

        Args:
            content: Source text
            file_path: Path reported on each record

        Returns:
            FunctionRecords ordered by position; empty if nothing matches
        """
        if not content:
            return []

        records = []
        for match, rule in self._select_matches(content):
            info = rule.resolve(match)
            name = info.pop("name")
            body = self._locate_body(content, match, rule, name)

            record = FunctionRecord(
                name=name,
                body=body,
                source_file=file_path,
                raw_match=match.group(0),
                rule=rule.name,
                span=match.span(),
                **info,
            )
            if not record.has_meaningful_body:
                logger.debug(f"Dropping {name} in {file_path or '<memory>'}: body too short")
                continue
            records.append(record)

        logger.debug(f"Found {len(records)} functions in {file_path or '<memory>'}")
        return records

    def _select_matches(self, content: str) -> List[Tuple[re.Match, RecognitionRule]]:
        """Collect matches of every rule and resolve overlaps."""
        candidates = []
        for order, rule in enumerate(self.registry):
            for match in rule.pattern.finditer(content):
                candidates.append((match, rule, order))

        # Most specific first, then registry order, then position
        candidates.sort(key=lambda c: (-c[1].specificity, c[2], c[0].start()))

        accepted = []
        for match, rule, order in candidates:
            start, end = match.span()
            if any(start < other.end() and other.start() < end for other, _, _ in accepted):
                continue
            accepted.append((match, rule, order))

        accepted.sort(key=lambda c: (c[0].start(), c[2]))
        return [(match, rule) for match, rule, _ in accepted]

    def _locate_body(self, content: str, match: re.Match, rule: RecognitionRule, name: str) -> str:
        """Extract the body for a match using the rule's strategy."""
        if rule.body_strategy == BODY_INLINE:
            return self._call_handler_body(content, match)

        handler = self._find_handler(content, name)
        if handler is not None:
            body = extract_block(content, handler)
            if body:
                return body

        inline = extract_block(content, match.end())
        if len(inline) > MIN_BODY_LENGTH and self._is_call_body(content, match):
            return inline

        return first_block_of_size(content, FALLBACK_MIN_BLOCK)

    def _call_handler_body(self, content: str, match: re.Match) -> str:
        """
        Extract the body of the handler passed as the trigger call's last argument.

        Leading arguments such as options objects are skipped. A handler
        passed by name is resolved to its declaration in the same file.
        Returns "" when the call holds no block-bodied handler.
        """
        open_paren = _enclosing_paren(match.group(0))
        if open_paren is None:
            return ""

        arguments = split_arguments(content, match.start() + open_paren)
        if not arguments:
            return ""

        begin, end = arguments[-1]
        handler = content[begin:end].strip()
        if _IDENTIFIER.fullmatch(handler):
            return self._named_function_body(content, handler)
        return function_body(content, begin, end)

    def _named_function_body(self, content: str, identifier: str) -> str:
        """Return the block of a function declared under a name, or ""."""
        escaped = re.escape(identifier)
        patterns = [
            rf"\b(?:async\s+)?function\s+{escaped}\s*\([^)]*\)\s*(?=\{{)",
            rf"\b(?:const|let|var)\s+{escaped}\s*=\s*(?:async\s+)?"
            rf"(?:function\b[^(]*\([^)]*\)|\([^)]*\)\s*=>|\w+\s*=>)\s*(?=\{{)",
        ]
        for pattern in patterns:
            found = re.search(pattern, content)
            if found:
                return extract_block(content, found.end())
        return ""

    def _find_handler(self, content: str, name: str) -> Optional[int]:
        """Return the offset just before a handler binding's block, if any."""
        escaped = re.escape(name)
        patterns = [
            rf"\b(?:const|let|var)\s+{escaped}\w*Handler\s*=\s*(?:async\s+)?(?:\([^)]*\)|\w+)\s*=>",
            rf"\b(?:async\s+)?function\s+{escaped}\w*Handler\s*\([^)]*\)",
        ]
        for pattern in patterns:
            found = re.search(pattern, content)
            if found:
                return found.end()
        return None

    def _is_call_body(self, content: str, match: re.Match) -> bool:
        """Check the block after a match opens before the next declaration."""
        block_start = content.find("{", match.end())
        if block_start == -1:
            return False
        for rule in self.registry:
            following = rule.pattern.search(content, match.end())
            if following is not None and following.start() < block_start:
                return False
        return True


def _enclosing_paren(text: str) -> Optional[int]:
    """Offset of the last "(" left open at the end of text."""
    stack = []
    for i, char in enumerate(text):
        if char == "(":
            stack.append(i)
        elif char == ")" and stack:
            stack.pop()
    return stack[-1] if stack else None
