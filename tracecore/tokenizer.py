"""Incremental splitter for top-level JSON array elements."""
import logging
import re
from typing import Callable

logger = logging.getLogger(__name__)

_STRING_SPECIAL = re.compile(r'["\\]')
_NESTED_SPECIAL = re.compile(r'["{}\[\]]')


class BalancedJSONTokenizer:
    """Re-assemble complete elements of a JSON array fed in arbitrary fragments.

    The callback receives the text of every element completed since the previous
    call, comma-joined and without the array's closing bracket. The first call
    includes the opening ``[`` (and anything before it); later calls start with
    the comma that separates them from the previous batch. An element is never
    split across two calls.

    Only nesting and string state are tracked here; the emitted text is left to
    ``json.loads`` to validate.
    """

    def __init__(self, callback: Callable[[str], None]):
        self._callback = callback
        self._buffer = ""
        self._index = 0
        self._depth = 0
        self._in_string = False
        self._escape = False
        self._scalar_open = False
        self._last_balanced = 0
        self.closed = False

    def write(self, chunk: str) -> bool:
        """Feed the next fragment. Returns False once the array's ``]`` was seen.

        Raises ValueError if something other than whitespace precedes the
        opening bracket or a top-level ``}`` appears.
        """
        if self.closed:
            return False
        self._buffer += chunk
        buffer = self._buffer
        end = len(buffer)
        index = self._index

        while index < end:
            if self._in_string:
                if self._escape:
                    self._escape = False
                    index += 1
                    continue
                match = _STRING_SPECIAL.search(buffer, index)
                if match is None:
                    index = end
                    break
                index = match.start()
                if buffer[index] == "\\":
                    self._escape = True
                else:
                    self._in_string = False
                    if self._depth == 1:
                        self._last_balanced = index + 1
                index += 1
                continue

            if self._depth > 1:
                match = _NESTED_SPECIAL.search(buffer, index)
                if match is None:
                    index = end
                    break
                index = match.start()

            ch = buffer[index]
            if self._depth == 0:
                if ch == "[":
                    self._depth = 1
                elif not ch.isspace():
                    raise ValueError(f"expected '[' at offset {index}, found {ch!r}")
            elif ch == '"':
                self._in_string = True
            elif ch == "{" or ch == "[":
                self._depth += 1
            elif ch == "}" or ch == "]":
                if self._depth == 1:
                    if ch == "}":
                        raise ValueError(f"unbalanced '}}' at offset {index}")
                    if self._scalar_open:
                        self._last_balanced = index
                        self._scalar_open = False
                    self.closed = True
                    index += 1
                    break
                self._depth -= 1
                if self._depth == 1:
                    self._last_balanced = index + 1
            elif self._depth == 1:
                if ch == ",":
                    if self._scalar_open:
                        self._last_balanced = index
                        self._scalar_open = False
                elif not ch.isspace():
                    self._scalar_open = True
            index += 1

        self._index = index
        self._report_balanced()
        if self.closed:
            self._buffer = self._buffer[self._index:]
            self._index = 0
            logger.debug("Array closed, %d characters left over", len(self._buffer))
        return not self.closed

    def remainder(self) -> str:
        """Text received but not yet handed to the callback."""
        return self._buffer

    def _report_balanced(self) -> None:
        if not self._last_balanced:
            return
        balanced = self._buffer[:self._last_balanced]
        self._buffer = self._buffer[self._last_balanced:]
        self._index -= self._last_balanced
        self._last_balanced = 0
        self._callback(balanced)
