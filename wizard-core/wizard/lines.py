"""Incremental line splitting for newline-delimited streams.

The installer backend streams one JSON document per line, but the network
delivers the body in arbitrary pieces. LineBuffer reassembles those pieces
into complete lines without ever assuming a chunk ends on a line boundary.
"""

from __future__ import annotations

LINE_TERMINATOR = "\n"


class LineBuffer:
    """Turns an append-only text stream into complete, trimmed lines.

    Example:
        >>> buffer = LineBuffer()
        >>> buffer.push('{"Status": ["Copy')
        []
        >>> buffer.push('ing", 0.5]}\\n\\n')
        ['{"Status": ["Copying", 0.5]}']
    """

    def __init__(self) -> None:
        self._carry = ""

    @property
    def pending(self) -> str:
        """Unterminated tail left over from previous pushes."""
        return self._carry

    def push(self, chunk: str) -> list[str]:
        """Feed newly arrived text and collect every line it completes.

        Lines that are empty after trimming are dropped.

        Args:
            chunk: Text that arrived since the previous call.

        Returns:
            Completed lines in stream order.
        """
        data = self._carry + chunk
        lines: list[str] = []

        while True:
            pointer = data.find(LINE_TERMINATOR)
            if pointer < 0:
                break
            line = data[:pointer].strip()
            data = data[pointer + 1 :]
            if line:
                lines.append(line)

        self._carry = data
        return lines

    def flush(self) -> list[str]:
        """Return the unterminated tail as a final line and reset the buffer."""
        line = self._carry.strip()
        self._carry = ""
        return [line] if line else []
