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

# ofmtree/embeds.py
from typing import Callable, Optional

from markdown_it.token import Token

from .resolver import PLACEHOLDER, degrade_to_link, outcome_tokens
from .utils import slugify as default_slugify
from .utils import warn

MAX_EMBED_DEPTH = 4

ParseFunc = Callable[[str, dict], list]


def _is_sole_placeholder(tokens: list[Token], i: int) -> bool:
    children = tokens[i].children
    return (len(children) == 1 and children[0].type == PLACEHOLDER and
            0 < i < len(tokens) - 1 and
            tokens[i - 1].type == 'paragraph_open' and tokens[i + 1].type == 'paragraph_close')


def _load_subtree(placeholder: Token, env: dict, parse: ParseFunc, depth: int) -> Optional[list[Token]]:
    """Loads, parses and fully transforms the embedded note. None on failure."""
    report = env.get('report') or warn
    path = placeholder.meta['path']
    target = placeholder.meta.get('target', path)

    loader = env.get('loader')
    if loader is None:
        report(f"Failed to embed [[{target}]]: no document loader configured.")
        return None

    try:
        text = loader.load(path).decode('utf-8')
    except (OSError, UnicodeDecodeError) as e:
        report(f"Failed to embed [[{target}]]: {e}")
        return None

    sub_env = dict(env)
    # Link reference definitions ([x]: url) belong to the note that declares them
    sub_env.pop('references', None)
    sub_env['embed_depth'] = depth + 1
    sub_env['current_path'] = path

    # --- RECURSIVE CALL: the whole pipeline runs again on the embedded note ---
    subtree = parse(text, sub_env)
    placeholder.meta['tokens'] = subtree
    return [token for token in subtree if token.type != 'front_matter']


def _shift_levels(tokens: list[Token], offset: int) -> list[Token]:
    if offset:
        for token in tokens:
            token.level += offset
    return tokens


def expand_embeds(tokens: list[Token],
                  env: dict,
                  parse: ParseFunc,
                  max_depth: int = MAX_EMBED_DEPTH,
                  custom_attrs=None,
                  url_prefix: str = "") -> list[Token]:
    """
    Replaces every embed placeholder in the token stream with the tokens of the
    embedded note.

    - A placeholder that is the only thing in its paragraph replaces the whole
      paragraph, so the embedded blocks join the surrounding flow.
    - Elsewhere, a one-paragraph note is inlined in place; anything else is dropped.
    - Notes that fail to load are dropped and reported, the document goes on.
    - At `max_depth` the placeholder becomes a plain link to the note instead,
      which is what stops circular embeds.

    Args:
        tokens: The block token stream, modified in place.
        env: The markdown-it env of the current parse ("embed_depth", "loader",
             "report", "slugify").
        parse: Parses and transforms a sub document, called as parse(text, env).

    Returns:
        The same list, without placeholders.
    """
    depth = env.get('embed_depth', 0)
    report = env.get('report') or warn
    slugify = env.get('slugify') or default_slugify

    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token.type != 'inline' or not token.children or \
                not any(child.type == PLACEHOLDER for child in token.children):
            i += 1
            continue

        # 深度到达上限：降级为普通链接
        if depth >= max_depth:
            new_children = []
            for child in token.children:
                if child.type == PLACEHOLDER:
                    outcome = degrade_to_link(child.meta['outcome'], slugify, url_prefix)
                    links = outcome_tokens(outcome, custom_attrs)
                    new_children.extend(_shift_levels(links, child.level))
                else:
                    new_children.append(child)
            token.children = new_children
            i += 1
            continue

        if _is_sole_placeholder(tokens, i):
            subtree = _load_subtree(token.children[0], env, parse, depth)
            paragraph_open = tokens[i - 1]
            replacement = _shift_levels(subtree, paragraph_open.level) if subtree else []
            # paragraph_open, inline, paragraph_close -> embedded blocks
            tokens[i - 1:i + 2] = replacement
            i = i - 1 + len(replacement)
            continue

        new_children = []
        for child in token.children:
            if child.type != PLACEHOLDER:
                new_children.append(child)
                continue

            subtree = _load_subtree(child, env, parse, depth)
            if subtree is None:
                continue

            blocks = [t for t in subtree if t.type != 'inline']
            if len(subtree) == 3 and [t.type for t in blocks] == ['paragraph_open', 'paragraph_close']:
                new_children.extend(_shift_levels(subtree[1].children or [], child.level))
            elif subtree:
                report(f"Cannot embed [[{child.meta.get('target')}]] inline: "
                       f"the note has block content and is not alone in its paragraph.")

        token.children = new_children
        i += 1

    return tokens
