"""Balanced-delimiter block extraction for source text."""

import re
from typing import List, Optional, Tuple


# Start of a function expression: an arrow or a `function` keyword up to its parameter list
_FUNCTION_HEAD = re.compile(r"=>|\bfunction\b[^(]*\(")


def find_block(
    content: str,
    start: int = 0,
    open_char: str = "{",
    close_char: str = "}"
) -> Optional[Tuple[int, int]]:
    """
    Locate the first balanced block at or after an offset.

    The scan is purely lexical: delimiters inside strings and comments count
    like any other, which keeps the returned text balanced by construction.

    Args:
        content: Source text
        start: Offset to begin scanning from
        open_char: Opening delimiter
        close_char: Closing delimiter

    Returns:
        (begin, end) offsets with content[begin] == open_char and
        content[end - 1] the matching close_char, or None when no block
        opens or the first one never closes
    """
    begin = content.find(open_char, max(start, 0))
    if begin == -1:
        return None

    depth = 0
    for i in range(begin, len(content)):
        char = content[i]
        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return begin, i + 1
    return None


def extract_block(content: str, start: int = 0) -> str:
    """
    Extract the brace-delimited block starting at or after an offset.

    Args:
        content: Source text
        start: Offset to begin scanning from

    Returns:
        Text from the first "{" through its matching "}", or "" when the
        block is missing or unterminated
    """
    span = find_block(content, start)
    if span is None:
        return ""
    return content[span[0]:span[1]]


def find_call_arguments(content: str, open_paren: int) -> Optional[int]:
    """
    Find the end of a parenthesized argument list.

    Args:
        content: Source text
        open_paren: Offset of the "(" that opens the list

    Returns:
        Offset just past the matching ")", or None if it never closes
    """
    if open_paren >= len(content) or content[open_paren] != "(":
        return None
    span = find_block(content, open_paren, "(", ")")
    if span is None or span[0] != open_paren:
        return None
    return span[1]


def split_arguments(content: str, open_paren: int) -> Optional[List[Tuple[int, int]]]:
    """
    Split a call's argument list at its top-level commas.

    Commas nested in brackets, braces, parentheses or quoted strings do not
    separate arguments.

    Args:
        content: Source text
        open_paren: Offset of the "(" that opens the list

    Returns:
        (begin, end) offsets of each non-empty argument, or None if the
        list never closes
    """
    close = find_call_arguments(content, open_paren)
    if close is None:
        return None

    spans = []
    depth = 0
    quote = None
    begin = open_paren + 1
    for i in range(open_paren + 1, close - 1):
        char = content[i]
        if quote is not None:
            if char == quote and content[i - 1] != "\\":
                quote = None
            continue
        if char in "'\"`":
            quote = char
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif char == "," and depth == 0:
            spans.append((begin, i))
            begin = i + 1

    spans.append((begin, close - 1))
    return [span for span in spans if content[span[0]:span[1]].strip()]


def function_body(content: str, start: int, end: int) -> str:
    """
    Extract the block body of a function expression between two offsets.

    Recognizes arrow functions and `function` expressions. An arrow with an
    expression body has no block and yields "".

    Args:
        content: Source text
        start: Offset where the expression begins
        end: Offset the body must close before

    Returns:
        The body block, or "" when the text holds no block-bodied function
    """
    head = _FUNCTION_HEAD.search(content, start, end)
    if head is None:
        return ""

    if head.group(0) == "=>":
        position = head.end()
    else:
        position = find_call_arguments(content, head.end() - 1)
        if position is None:
            return ""

    while position < end and content[position].isspace():
        position += 1
    if position >= end or content[position] != "{":
        return ""

    span = find_block(content, position)
    if span is None or span[1] > end:
        return ""
    return content[span[0]:span[1]]


def first_block_of_size(content: str, min_size: int) -> str:
    """
    Return the first balanced block at least min_size characters long.

    Args:
        content: Source text
        min_size: Minimum length of the block, delimiters included

    Returns:
        The block text, or "" when none qualifies
    """
    position = 0
    while True:
        begin = content.find("{", position)
        if begin == -1:
            return ""
        span = find_block(content, begin)
        if span is not None and span[1] - span[0] >= min_size:
            return content[span[0]:span[1]]
        position = begin + 1


def indent_code(code: str, spaces: int) -> str:
    """Indent every non-blank line of code by a number of spaces."""
    indent = " " * spaces
    return "\n".join(
        indent + line if line.strip() else line
        for line in code.split("\n")
    )
