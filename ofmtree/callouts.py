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

# ofmtree/callouts.py
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Mapping, Optional

from markdown_it.token import Token

if TYPE_CHECKING:
    from .config import CalloutAttrs

# > [!type]+/- Title
# Group 1: type ("note", "warning", ...)
# Group 2: fold marker ("+", "-" or "")
# Group 3: title (optional)
CALLOUT_RE = re.compile(r"^\[!(\w[\w-]*)\]([+-]?)(?:[ \t]+(.*))?(?:\n|$)")

LINE_BREAKS = ('softbreak', 'hardbreak')

_SVG = ('<svg xmlns="http://www.w3.org/2000/svg" width="1em" height="1em" viewBox="0 0 24 24" fill="none" '
        'stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round">{}</svg>')

SVG_ARROW_RIGHT = _SVG.format('<path d="m9 18 6-6-6-6"/>')
SVG_CHECK = _SVG.format('<polyline points="20 6 9 17 4 12"></polyline>')
SVG_TLDR = _SVG.format(
    '<rect x="8" y="2" width="8" height="4" rx="1" ry="1"></rect>'
    '<path d="M16 4h2a2 2 0 0 1 2 2v14a2 2 0 0 1-2 2H6a2 2 0 0 1-2-2V6a2 2 0 0 1 2-2h2"></path>'
    '<path d="M12 11h4"></path><path d="M12 16h4"></path><path d="M8 11h.01"></path><path d="M8 16h.01"></path>')
SVG_TIP = _SVG.format(
    '<path d="M8.5 14.5A2.5 2.5 0 0 0 11 12c0-1.38-.5-2-1-3-1.072-2.143-.224-4.054 2-6 .5 2.5 2 4.9 4 6.5 '
    '2 1.6 3 3.5 3 5.5a7 7 0 1 1-14 0c0-1.153.433-2.294 1-3a2.5 2.5 0 0 0 2.5 2.5z"></path>')
SVG_CROSS = _SVG.format('<line x1="18" y1="6" x2="6" y2="18"></line><line x1="6" y1="6" x2="18" y2="18"></line>')
SVG_WARNING = _SVG.format(
    '<path d="m21.73 18-8-14a2 2 0 0 0-3.48 0l-8 14A2 2 0 0 0 4 21h16a2 2 0 0 0 1.73-3Z"></path>'
    '<line x1="12" y1="9" x2="12" y2="13"></line><line x1="12" y1="17" x2="12.01" y2="17"></line>')
SVG_HELP = _SVG.format(
    '<circle cx="12" cy="12" r="10"></circle><path d="M9.09 9a3 3 0 0 1 5.83 1c0 2-3 3-3 3"></path>'
    '<line x1="12" y1="17" x2="12.01" y2="17"></line>')
SVG_ERROR = _SVG.format('<polygon points="13 2 3 14 12 14 11 22 21 10 12 10 13 2"></polygon>')
SVG_CITE = _SVG.format(
    '<path d="M3 21c3 0 7-1 7-8V5c0-1.25-.756-2.017-2-2H4c-1.25 0-2 .75-2 1.972V11c0 1.25.75 2 2 2 1 0 1 0 1 1v1c0 '
    '1-1 2-2 2s-1 .008-1 1.031V20c0 1 0 1 1 1z"></path>'
    '<path d="M15 21c3 0 7-1 7-8V5c0-1.25-.757-2.017-2-2h-4c-1.25 0-2 .75-2 1.972V11c0 1.25.75 2 2 2h.75c0 2.25.25 '
    '4-2.75 4v3c0 1 0 1 1 1z"></path>')
SVG_NOTE = _SVG.format('<line x1="18" y1="2" x2="22" y2="6"></line><path d="M7.5 20.5 19 9l-4-4L3.5 16.5 2 22z"></path>')
SVG_INFO = _SVG.format(
    '<circle cx="12" cy="12" r="10"></circle><line x1="12" y1="16" x2="12" y2="12"></line>'
    '<line x1="12" y1="8" x2="12.01" y2="8"></line>')
SVG_TODO = _SVG.format(
    '<path d="M12 22c5.523 0 10-4.477 10-10S17.523 2 12 2 2 6.477 2 12s4.477 10 10 10z"></path>'
    '<path d="m9 12 2 2 4-4"></path>')
SVG_BUG = _SVG.format(
    '<rect width="8" height="14" x="8" y="6" rx="4"></rect><path d="m19 7-3 2"></path><path d="m5 7 3 2"></path>'
    '<path d="m19 19-3-2"></path><path d="m5 19 3-2"></path><path d="M20 13h-4"></path><path d="M4 13h4"></path>'
    '<path d="m10 4 1 2"></path><path d="m14 4-1 2"></path>')
SVG_EXAMPLE = _SVG.format(
    '<line x1="8" y1="6" x2="21" y2="6"></line><line x1="8" y1="12" x2="21" y2="12"></line>'
    '<line x1="8" y1="18" x2="21" y2="18"></line><line x1="3" y1="6" x2="3.01" y2="6"></line>'
    '<line x1="3" y1="12" x2="3.01" y2="12"></line><line x1="3" y1="18" x2="3.01" y2="18"></line>')

DEFAULT_CALLOUT_ICONS = {
    'note': SVG_NOTE,
    'abstract': SVG_TLDR,
    'summary': SVG_TLDR,
    'tldr': SVG_TLDR,
    'info': SVG_INFO,
    'todo': SVG_TODO,
    'tip': SVG_TIP,
    'hint': SVG_TIP,
    'important': SVG_TIP,
    'success': SVG_CHECK,
    'check': SVG_CHECK,
    'done': SVG_CHECK,
    'question': SVG_HELP,
    'help': SVG_HELP,
    'faq': SVG_HELP,
    'warning': SVG_WARNING,
    'attention': SVG_WARNING,
    'caution': SVG_WARNING,
    'failure': SVG_CROSS,
    'missing': SVG_CROSS,
    'fail': SVG_CROSS,
    'danger': SVG_ERROR,
    'error': SVG_ERROR,
    'bug': SVG_BUG,
    'example': SVG_EXAMPLE,
    'quote': SVG_CITE,
    'cite': SVG_CITE,
}


class Foldable(str, Enum):
    NONE = 'none'
    OPEN = 'open'        # [!type]+
    CLOSED = 'closed'    # [!type]-


FOLD_MARKERS = {'': Foldable.NONE, '+': Foldable.OPEN, '-': Foldable.CLOSED}


@dataclass(frozen=True)
class CalloutHeader:
    type: str
    foldable: Foldable
    title: str
    span: int

    @property
    def collapsible(self) -> bool:
        return self.foldable != Foldable.NONE

    @property
    def open(self) -> bool:
        return self.foldable != Foldable.CLOSED


def parse_callout_header(text: str) -> Optional[CalloutHeader]:
    """
    Parses the leading "[!type]+/- Title" of a blockquote.

    Only plain text on the header line becomes the title. An empty title falls
    back to the capitalized type ("[!warning]" -> "Warning").
    """
    match = CALLOUT_RE.match(text)
    if not match:
        return None

    callout_type = match.group(1).lower()
    title = (match.group(3) or '').strip() or callout_type.capitalize()
    return CalloutHeader(
        type=callout_type,
        foldable=FOLD_MARKERS[match.group(2)],
        title=title,
        span=match.end(),
    )


def _header_at(tokens: list[Token], i: int) -> Optional[CalloutHeader]:
    if not (i + 2 < len(tokens) and
            tokens[i + 1].type == 'paragraph_open' and tokens[i + 2].type == 'inline'):
        return None

    children = tokens[i + 2].children
    if not children or children[0].type != 'text':
        return None
    return parse_callout_header(children[0].content)


def _find_close(tokens: list[Token], i: int) -> int:
    nesting = 1
    j = i + 1
    while j < len(tokens):
        if tokens[j].type == 'blockquote_open':
            nesting += 1
        elif tokens[j].type == 'blockquote_close':
            nesting -= 1
            if nesting == 0:
                return j
        j += 1
    return j


def _strip_header(tokens: list[Token], i: int, header: CalloutHeader) -> None:
    inline_token = tokens[i + 2]
    children = inline_token.children

    first = children[0]
    header_text = first.content[:header.span]
    first.content = first.content[header.span:]
    if not first.content:
        children.pop(0)

    # The body must not start with the line break that ended the header
    if children and children[0].type in LINE_BREAKS:
        children.pop(0)

    # Source text loses the same prefix, rich content after the title stays.
    # If the text node was decoded (entities, escapes) the source is left as is.
    if inline_token.content.startswith(header_text):
        rest = inline_token.content[header.span:].lstrip(' \t')
        inline_token.content = rest[1:] if rest.startswith('\n') else rest

    if not children:
        # paragraph_open, inline, paragraph_close
        del tokens[i + 1:i + 4]


def _marker_tokens(name: str, attrs: dict, default_class: str, markup: str) -> list[Token]:
    marker_open = Token(f'{name}_open', 'div', 1)
    marker_open.attrs = {**attrs, 'class': attrs.get('class', default_class)}

    icon = Token('html_inline', '', 0)
    icon.content = markup
    icon.level = 1

    return [marker_open, icon, Token(f'{name}_close', 'div', -1)]


def _title_row(header: CalloutHeader, icon_markup: str, attrs: 'CalloutAttrs', level: int) -> list[Token]:
    tag = 'summary' if header.collapsible else 'div'

    title_open = Token('callout_title_open', tag, 1)
    title_open.attrs = {**attrs.title, 'class': attrs.title.get('class', 'callout-title')}
    title_open.block = True
    title_open.level = level

    title_text = Token('text', '', 0)
    title_text.content = header.title

    children = _marker_tokens('callout_icon', attrs.icon, 'callout-icon', icon_markup)
    children.append(title_text)
    if header.collapsible:
        children.extend(_marker_tokens('callout_collapse', attrs.collapse, 'callout-collapse-icon', SVG_ARROW_RIGHT))

    inline_token = Token('inline', '', 0)
    inline_token.content = header.title
    inline_token.children = children
    inline_token.level = level + 1

    title_close = Token('callout_title_close', tag, -1)
    title_close.block = True
    title_close.level = level

    return [title_open, inline_token, title_close]


def rewrite_callouts(tokens: list[Token],
                     icons: Optional[Mapping[str, str]] = None,
                     attrs: Optional['CalloutAttrs'] = None,
                     component: Optional[str] = None) -> list[Token]:
    """
    Turns every blockquote that starts with "[!type]" into a callout container.

    Works directly on the token stream: blockquote_open/close become
    callout_open/close and a title row is inserted as the first child. Nested
    blockquotes are visited by the same loop, so inner callouts are handled
    independently of the outer one. Tokens that are already callouts are left
    alone.
    """
    if attrs is None:
        from .config import CalloutAttrs
        attrs = CalloutAttrs()
    icons = icons or DEFAULT_CALLOUT_ICONS

    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token.type != 'blockquote_open':
            i += 1
            continue

        header = _header_at(tokens, i)
        if header is None:
            i += 1
            continue

        # --- IT'S A CALLOUT. ---
        _strip_header(tokens, i, header)
        close_idx = _find_close(tokens, i)

        token.type = 'callout_open'
        token.info = header.type
        token.meta = {
            'type': header.type,
            'title': header.title,
            'foldable': header.foldable.value,
            'collapsible': header.collapsible,
            'open': header.open,
        }

        container_attrs = dict(attrs.container)
        if component:
            token.tag = component
            container_attrs.update({'title': header.title, 'type': header.type})
        else:
            token.tag = 'details' if header.collapsible else 'div'
            container_attrs.setdefault('class', 'callout')
            container_attrs['data-callout'] = header.type
            if header.collapsible and header.open:
                container_attrs['open'] = ''
        token.attrs = container_attrs

        if close_idx < len(tokens):
            tokens[close_idx].type = 'callout_close'
            tokens[close_idx].tag = token.tag

        if not component:
            icon_markup = icons.get(header.type) or icons.get('note') or SVG_NOTE
            tokens[i + 1:i + 1] = _title_row(header, icon_markup, attrs, token.level + 1)

        i += 1

    return tokens
