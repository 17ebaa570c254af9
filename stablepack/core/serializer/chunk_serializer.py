# -----------------------------------------------------------------------------
# /*
#  * Copyright (C) 2025 CodeStory
#  *
#  * This program is free software; you can redistribute it and/or modify
#  * it under the terms of the GNU General Public License as published by
#  * the Free Software Foundation; Version 2.
#  *
#  * This program is distributed in the hope that it will be useful,
#  * but WITHOUT ANY WARRANTY; without even the implied warranty of
#  * MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
#  * GNU General Public License for more details.
#  *
#  * You should have received a copy of the GNU General Public License
#  * along with this program; if not, you can contact us at support@codestory.build
#  */
# -----------------------------------------------------------------------------

import json
import re
from typing import assert_never

from ..data.chunk import Chunk, ChunkKind
from ..data.module import Module

SERIALIZER_VERSION = "2"

_NAME_TOKEN = re.compile(r"\[(name|hash)\]")


def _js_string(value: str) -> bytes:
    return json.dumps(value).encode("utf-8")


def _terminated(content: bytes) -> bytes:
    return content if content.endswith(b"\n") or not content else content + b"\n"


_CODE, _SINGLE, _DOUBLE, _TEMPLATE, _REGEX, _CLASS, _BLOCK, _LINE = range(8)

_NEWLINE = ord("\n")
_BACKSLASH = ord("\\")
_SLASH = ord("/")
_STAR = ord("*")
_QUOTES = {ord("'"): _SINGLE, ord('"'): _DOUBLE}
_BACKTICK = ord("`")
# after these a slash starts a regular expression, not a division
_REGEX_PRECEDERS = frozenset(b"(,=:[!&|?{};+-*%<>~^")


def _scan_lines(content: bytes) -> list[tuple[bytes, bool, bool]] | None:
    """
    Split JavaScript source into lines, each flagged with whether it starts
    and ends in plain code (outside strings, template literals, regular
    expressions and block comments).

    Returns None when the source does not scan cleanly; callers then leave
    it untouched.
    """
    lines = []
    state = _CODE
    templates: list[int] = []  # open `${` braces per nested template literal
    escaped = False
    last = 0
    line_start = 0
    starts_in_code = True
    i = 0
    n = len(content)

    while i < n:
        c = content[i]

        if c == _NEWLINE:
            if state in (_SINGLE, _DOUBLE) and not escaped:
                return None
            if state in (_REGEX, _CLASS):
                return None
            if state == _LINE:
                state = _CODE
            lines.append((content[line_start:i], starts_in_code, state == _CODE))
            escaped = False
            line_start = i + 1
            starts_in_code = state == _CODE
            i += 1
            continue

        if state == _CODE:
            if c in _QUOTES:
                state = _QUOTES[c]
            elif c == _BACKTICK:
                templates.append(0)
                state = _TEMPLATE
            elif c == _SLASH:
                following = content[i + 1 : i + 2]
                if following == b"/":
                    state = _LINE
                    i += 1
                elif following == b"*":
                    state = _BLOCK
                    i += 1
                elif last == 0 or last in _REGEX_PRECEDERS:
                    state = _REGEX
                else:
                    last = c
            elif c == ord("{") and templates:
                templates[-1] += 1
                last = c
            elif c == ord("}") and templates and templates[-1] == 0:
                state = _TEMPLATE
            elif c == ord("}") and templates:
                templates[-1] -= 1
                last = c
            elif c not in b" \t\r":
                last = c
        elif state in (_SINGLE, _DOUBLE, _TEMPLATE, _REGEX, _CLASS):
            if escaped:
                escaped = False
            elif c == _BACKSLASH:
                escaped = True
            elif state == _TEMPLATE and c == _BACKTICK:
                templates.pop()
                state = _CODE
                last = c
            elif state == _TEMPLATE and content[i : i + 2] == b"${":
                state = _CODE
                last = ord("{")
                i += 1
            elif state == _REGEX and c == ord("["):
                state = _CLASS
            elif state == _CLASS and c == ord("]"):
                state = _REGEX
            elif state == _REGEX and c == _SLASH:
                state = _CODE
                last = c
            elif state in (_SINGLE, _DOUBLE) and _QUOTES.get(c) == state:
                state = _CODE
                last = c
        elif state == _BLOCK and c == _STAR and content[i + 1 : i + 2] == b"/":
            state = _CODE
            i += 1
        i += 1

    if state == _LINE:
        state = _CODE
    if state != _CODE or templates:
        return None
    lines.append((content[line_start:], starts_in_code, True))
    return lines


def minify_source(content: bytes) -> bytes:
    """
    Drop indentation, trailing whitespace, blank lines and whole-line
    comments, only where they sit in plain code. Text inside strings,
    template literals, regular expressions and block comments is kept
    byte for byte.
    """
    lines = _scan_lines(content)
    if lines is None:
        return _terminated(content)

    kept = []
    for text, starts_in_code, ends_in_code in lines:
        if starts_in_code:
            text = text.lstrip()
        if ends_in_code:
            text = text.rstrip()
        if starts_in_code and ends_in_code and (not text or text.startswith(b"//")):
            continue
        kept.append(text + b"\n")
    return b"".join(kept)


class ChunkSerializer:
    """
    Turns a chunk into the bytes that get emitted.

    Output depends on the chunk's modules, kind and roots. Only entry
    chunks mention their own name (the runtime needs it to decide whether
    to run them), so a renamed shared or dynamic chunk reuses cached output.
    """

    def __init__(self, minify: bool = False):
        self.minify = minify

    @property
    def namespace(self) -> str:
        """Separates cache entries of serializers that produce different bytes."""
        return f"serializer-{SERIALIZER_VERSION}-{'min' if self.minify else 'dev'}"

    def serialize(self, chunk: Chunk) -> bytes:
        kind = chunk.kind
        if kind is ChunkKind.RUNTIME:
            return b"".join(self._source(m.content) for m in chunk.modules)
        elif kind is ChunkKind.ENTRY:
            return self._register(chunk.modules) + self._run(chunk.name, chunk.roots)
        elif kind is ChunkKind.SHARED or kind is ChunkKind.DYNAMIC:
            return self._register(chunk.modules)
        else:
            assert_never(kind)

    def _register(self, modules: tuple[Module, ...]) -> bytes:
        parts = [b"__stablepack__.register({\n"]
        for module in modules:
            deps = json.dumps(list(module.dependencies)).encode("utf-8")
            parts.append(_js_string(module.id) + b": [" + deps + b", function (module, exports, require) {\n")
            parts.append(self._source(module.content))
            parts.append(b"}],\n")
        parts.append(b"});\n")
        return b"".join(parts)

    @staticmethod
    def _run(entry_name: str, roots: tuple[str, ...]) -> bytes:
        args = json.dumps([entry_name, list(roots)])[1:-1]
        return b"__stablepack__.run(" + args.encode("utf-8") + b");\n"

    def _source(self, content: bytes) -> bytes:
        if self.minify:
            return minify_source(content)
        return _terminated(content)


def render_file_name(template: str, name: str, identity: str, hash_length: int | None) -> str:
    """
    Fill a file name template such as ``[name].[hash].js``.

    `[hash]` is the identity, cut to `hash_length` characters when given.
    """
    short = identity if hash_length is None else identity[:hash_length]
    values = {"name": name, "hash": short}
    return _NAME_TOKEN.sub(lambda m: values[m.group(1)], template)
