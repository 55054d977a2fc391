"""
    OFMTree: Obsidian-Flavored Markdown tree transformer.
    Copyright (C) 2025  Nuaptan F. Evalisk = Z. F. Wang

    This file is part of OFMTree.

    OFMTree is free software: you can redistribute it and/or modify
    it under the terms of the GNU General Public License as published
    by the Free Software Foundation, either version 3 of the License,
    or (at your option) any later version.

    OFMTree is distributed in the hope that it will be useful, but WITHOUT
    ANY WARRANTY; without even the implied warranty of MERCHANTABILITY
    or FITNESS FOR A PARTICULAR PURPOSE. See the GNU General Public
    License for more details.

    You should have received a copy of the GNU General Public License
    along with OFMTree. If not, see <https://www.gnu.org/licenses/>.
"""

# ofmtree/references.py
import re
from dataclasses import dataclass
from typing import Iterator, Optional

from .utils import normalize_target

# Group 1: "!" for embeds, Group 2: everything up to the first "]]"
REFERENCE_RE = re.compile(r'(!)?\[\[(.*?)\]\]')

UNESCAPED_PIPE_RE = re.compile(r'(?<!\\)\|')
FENCE_OPEN_RE = re.compile(r'^ {0,3}(`{3,}|~{3,})')
INLINE_CODE_RE = re.compile(r'(`+)(?!`)(.+?)(?<!`)\1(?!`)', re.DOTALL)


@dataclass(frozen=True)
class Reference:
    """One parsed [[...]] / ![[...]] token."""
    raw_target: str
    target: str
    anchor: Optional[str] = None
    alias: Optional[str] = None
    is_embed: bool = False

    @property
    def label(self) -> str:
        # An explicit alias wins, otherwise the target exactly as typed (anchor included)
        return self.alias or self.raw_target


def parse_reference(body: str, is_embed: bool = False) -> Optional[Reference]:
    """
    Parses the text between the brackets of a reference token.

    Rules:
    - The first unescaped '|' splits the alias off (e.g. [[note|text]]).
    - The first '#' in what remains splits the anchor off (e.g. [[note#heading]]).

    Returns:
        A Reference, or None if the target is empty ("[[]]", "[[ ]]", "[[|alias]]").
    """
    pipe = UNESCAPED_PIPE_RE.search(body)
    if pipe:
        raw = body[:pipe.start()]
        alias = body[pipe.end():].strip() or None
    else:
        raw = body
        alias = None

    # "\|" 是表格里转义的竖线，先还原再统一斜杠
    raw_target = normalize_target(raw.replace('\\|', '|'))
    if not raw_target:
        return None

    target, _, anchor = raw_target.partition('#')
    return Reference(
        raw_target=raw_target,
        target=target.strip(),
        anchor=anchor.strip() or None,
        alias=alias,
        is_embed=is_embed,
    )


def _code_block_spans(text: str) -> list[tuple[int, int]]:
    """Character spans of fenced and indented code blocks in raw Markdown."""
    spans = []
    offset = 0
    fence = None          # (char, length) of the open fence
    block_start = 0
    prev_blank = True
    in_indented = False

    for line in text.splitlines(keepends=True):
        stripped = line.rstrip('\r\n')

        if fence:
            closing = stripped.strip()
            if closing and set(closing) == {fence[0]} and len(closing) >= fence[1]:
                spans.append((block_start, offset + len(line)))
                fence = None
        else:
            match = FENCE_OPEN_RE.match(stripped)
            if match:
                fence = (match.group(1)[0], len(match.group(1)))
                block_start = offset
                in_indented = False
            elif stripped.startswith(('    ', '\t')) and stripped.strip() and (prev_blank or in_indented):
                spans.append((offset, offset + len(line)))
                in_indented = True
            elif stripped.strip():
                in_indented = False

        prev_blank = not stripped.strip()
        offset += len(line)

    if fence:
        # An unclosed fence runs to the end of the document
        spans.append((block_start, len(text)))
    return spans


def _verbatim_spans(text: str) -> list[tuple[int, int]]:
    spans = _code_block_spans(text)

    def in_block(pos: int) -> bool:
        return any(start <= pos < end for start, end in spans)

    inline = [m.span() for m in INLINE_CODE_RE.finditer(text) if not in_block(m.start())]
    return spans + inline


def iter_references(text: str) -> Iterator[tuple[Reference, tuple[int, int]]]:
    """
    Lazily yields every reference found in raw Markdown text, together with its
    (start, end) span. Tokens inside inline code or code blocks are skipped, and
    degenerate tokens such as "[[]]" are not reported.
    """
    verbatim = _verbatim_spans(text)

    for match in REFERENCE_RE.finditer(text):
        start, end = match.span()
        if any(v_start < end and start < v_end for v_start, v_end in verbatim):
            continue
        reference = parse_reference(match.group(2), is_embed=match.group(1) == '!')
        if reference is None:
            continue
        yield reference, (start, end)
