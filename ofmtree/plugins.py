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

# ofmtree/plugins.py
from markdown_it import MarkdownIt
from markdown_it.rules_core import StateCore
from markdown_it.rules_inline import StateInline
from markdown_it.token import Token

from .callouts import DEFAULT_CALLOUT_ICONS, rewrite_callouts
from .embeds import MAX_EMBED_DEPTH, expand_embeds
from .references import REFERENCE_RE, parse_reference
from .resolver import outcome_tokens, resolve
from .utils import slugify as default_slugify


def _push(state: StateInline, token: Token) -> Token:
    """Pushes a detached token through the inline state so levels stay balanced."""
    pushed = state.push(token.type, token.tag, token.nesting)
    pushed.attrs = token.attrs
    pushed.content = token.content
    pushed.meta = token.meta
    pushed.children = token.children
    pushed.markup = token.markup
    return pushed


# ==============================================================================
#  PLUGIN 1: References ([[note]], [[note#heading|alias]], ![[image.png|300]])
# ==============================================================================

def _follows_bang(src: str, pos: int) -> bool:
    """True if src[pos] comes right after an unescaped '!'."""
    if pos == 0 or src[pos - 1] != '!':
        return False
    backslashes = 0
    j = pos - 2
    while j >= 0 and src[j] == '\\':
        backslashes += 1
        j -= 1
    # "\![[note]]" is a literal "!" followed by a normal link
    return backslashes % 2 == 0


def _make_reference_rule(embeds: bool):

    def reference_rule(state: StateInline, silent: bool):
        pos = state.pos
        src = state.src

        is_embed = src.startswith('![[', pos)
        if is_embed and not embeds:
            return False
        if not is_embed:
            # We are looking for [[, but not the tail of a ![[ that was rejected above
            if not src.startswith('[[', pos) or _follows_bang(src, pos):
                return False

        match = REFERENCE_RE.match(src, pos, state.posMax)
        if not match:
            return False

        reference = parse_reference(match.group(2), is_embed=is_embed)
        if reference is None:
            # "[[]]" stays literal text
            return False

        index = state.env.get('index')
        if index is None:
            return False

        if not silent:
            config = state.env.get('config')
            outcome = resolve(
                reference, index,
                slugify=state.env.get('slugify') or default_slugify,
                url_prefix=config.url_prefix if config else "",
            )
            for token in outcome_tokens(outcome, config.custom_attrs if config else None):
                _push(state, token)

        # Advance the parser position in both modes
        state.pos = match.end()
        return True

    return reference_rule


def reference_plugin(md: MarkdownIt, embeds: bool = True):
    """
    Resolves [[...]] references while inline content is tokenized.

    Runs before the 'link' and 'image' rules so it sees the brackets first;
    code spans and math are consumed by earlier rules and never reach it.
    With embeds=False, ![[...]] tokens are left as literal text.
    """
    md.inline.ruler.before('link', 'obsidian_reference', _make_reference_rule(embeds))


# ==============================================================================
#  PLUGIN 2: Embed expansion (![[note]])
# ==============================================================================

def embed_expander(state: StateCore):
    env = state.env
    config = env.get('config')
    parse = env.get('parse') or state.md.parse

    expand_embeds(
        state.tokens, env, parse,
        max_depth=config.max_embed_depth if config else MAX_EMBED_DEPTH,
        custom_attrs=config.custom_attrs if config else None,
        url_prefix=config.url_prefix if config else "",
    )


def embed_plugin(md: MarkdownIt):
    """Flattens embed placeholders right after inline parsing."""
    md.core.ruler.after('inline', 'obsidian_embed', embed_expander)


# ==============================================================================
#  PLUGIN 3: Callouts (> [!note] Title)
# ==============================================================================

def callout_transformer(state: StateCore):
    config = state.env.get('config')
    if config is None:
        rewrite_callouts(state.tokens, DEFAULT_CALLOUT_ICONS)
        return

    rewrite_callouts(
        state.tokens,
        icons=config.callout_icons,
        attrs=config.custom_attrs.callouts,
        component=config.callout_component,
    )


def callout_plugin(md: MarkdownIt):
    md.core.ruler.push('obsidian_callout', callout_transformer)
