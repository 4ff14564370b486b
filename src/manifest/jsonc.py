"""JSON-with-comments parsing for ``*.jsonc`` manifests."""

import json
from typing import Any


def strip_json_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments and trailing commas outside strings.

    Removed comments are replaced by whitespace so error positions reported
    by :mod:`json` still point at the right line.
    """
    result = []
    i = 0
    length = len(text)
    in_string = False
    while i < length:
        char = text[i]
        if in_string:
            result.append(char)
            if char == "\\" and i + 1 < length:
                result.append(text[i + 1])
                i += 2
                continue
            if char == '"':
                in_string = False
            i += 1
            continue

        if char == '"':
            in_string = True
        elif char == "/" and text.startswith("//", i):
            end = text.find("\n", i)
            i = length if end == -1 else end
            continue
        elif char == "/" and text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = length if end == -1 else end + 2
            result.append("".join(c if c == "\n" else " " for c in text[i:end]))
            i = end
            continue
        elif char == ",":
            # Drop the comma when only whitespace/comments separate it from a closer.
            j = i + 1
            while j < length:
                if text[j].isspace():
                    j += 1
                elif text.startswith("//", j):
                    newline = text.find("\n", j)
                    j = length if newline == -1 else newline
                elif text.startswith("/*", j):
                    close = text.find("*/", j + 2)
                    j = length if close == -1 else close + 2
                else:
                    break
            if j < length and text[j] in "}]":
                i += 1
                continue
        result.append(char)
        i += 1
    return "".join(result)


def loads(text: str) -> Any:
    """Parse JSON or JSONC text."""
    return json.loads(strip_json_comments(text))
