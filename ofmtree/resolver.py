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

# ofmtree/resolver.py
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from markdown_it.token import Token

from .content_index import ContentIndex, ImageDescriptor
from .references import Reference
from .utils import slugify as default_slugify

if TYPE_CHECKING:
    from .config import CustomAttrs

PLACEHOLDER = 'embed_placeholder'

NUMERIC_ALIAS_RE = re.compile(r'^\d+(?:\.\d+)?$')
MARKDOWN_SUFFIX_RE = re.compile(r'\.mdx?$', re.IGNORECASE)


class OutcomeKind(str, Enum):
    HEADING_LINK = 'heading_link'
    BROKEN_LINK = 'broken_link'
    IMAGE_EMBED = 'image_embed'
    IMAGE_LINK = 'image_link'
    DOCUMENT_EMBED = 'document_embed'
    DOCUMENT_LINK = 'document_link'


@dataclass(frozen=True)
class ResolutionOutcome:
    kind: OutcomeKind
    reference: Reference
    label: str
    url: str = '#'
    path: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    style: Optional[str] = None


def document_url(path: str,
                 anchor: Optional[str] = None,
                 slugify: Callable[[str], str] = default_slugify,
                 url_prefix: str = "") -> str:
    """
    Builds the URL of a note from its logical path.

    "/Folder/My Note.md" -> "/folder/my-note", each segment slugified on its own.
    """
    stem = MARKDOWN_SUFFIX_RE.sub('', path)
    url = '/'.join(slugify(part) for part in stem.split('/'))

    if url_prefix:
        prefix = url_prefix.rstrip('/')
        url = f"{prefix}{url}" if url.startswith('/') else f"{prefix}/{url}"

    if anchor:
        url = f"{url}#{slugify(anchor)}"
    return url


def resolve(ref: Reference,
            index: ContentIndex,
            slugify: Callable[[str], str] = default_slugify,
            url_prefix: str = "") -> ResolutionOutcome:
    """
    Decides what a reference turns into. The order of the checks matters:
    the first matching case wins.

    An image embed alias is a width only when it is a plain non-negative
    decimal ("300", "120.5"). Signed or exponent forms ("-5", "1e2") stay
    captions.
    """
    label = ref.label

    # CASE 1: [[#Heading]] in the current note, never consults the index
    if ref.anchor and ref.target == "":
        return ResolutionOutcome(OutcomeKind.HEADING_LINK, ref, label, url=f"#{slugify(ref.anchor)}")

    descriptor = index.lookup(ref.target.lower())

    # CASE 2: broken link
    if descriptor is None:
        return ResolutionOutcome(OutcomeKind.BROKEN_LINK, ref, label, url='#')

    if isinstance(descriptor, ImageDescriptor):
        # CASE 3: ![[image.png|300]] resizes, ![[image.png|Caption]] sets the alt text
        if ref.is_embed:
            resized = bool(ref.alias) and NUMERIC_ALIAS_RE.match(ref.alias) is not None
            return ResolutionOutcome(
                OutcomeKind.IMAGE_EMBED, ref,
                label=ref.target if resized else label,
                url=descriptor.path,
                path=descriptor.path,
                width=descriptor.width,
                height=descriptor.height,
                style=f"width:{ref.alias}px;" if resized else None,
            )

        # CASE 4: plain link to the image file
        return ResolutionOutcome(OutcomeKind.IMAGE_LINK, ref, label, url=descriptor.path, path=descriptor.path)

    # CASE 5: note transclusion, expanded later by the embed expander
    if ref.is_embed:
        return ResolutionOutcome(OutcomeKind.DOCUMENT_EMBED, ref, label, url=descriptor.path, path=descriptor.path)

    # CASE 6: standard link to a note
    return ResolutionOutcome(
        OutcomeKind.DOCUMENT_LINK, ref, label,
        url=document_url(descriptor.path, ref.anchor, slugify, url_prefix),
        path=descriptor.path,
    )


def degrade_to_link(outcome: ResolutionOutcome,
                    slugify: Callable[[str], str] = default_slugify,
                    url_prefix: str = "") -> ResolutionOutcome:
    """Turns a document embed into a plain document link (same URL rule as CASE 6)."""
    return replace(
        outcome,
        kind=OutcomeKind.DOCUMENT_LINK,
        url=document_url(outcome.path, outcome.reference.anchor, slugify, url_prefix),
    )


def _link_tokens(outcome: ResolutionOutcome, attrs: dict) -> list[Token]:
    link_open = Token('link_open', 'a', 1)
    link_open.attrs = {**attrs, 'href': outcome.url}
    link_open.meta = {'wikilink': outcome.kind.value, 'target': outcome.reference.raw_target}

    text = Token('text', '', 0)
    text.content = outcome.label
    text.level = 1

    link_close = Token('link_close', 'a', -1)
    return [link_open, text, link_close]


def outcome_tokens(outcome: ResolutionOutcome, custom_attrs: Optional['CustomAttrs'] = None) -> list[Token]:
    """
    Builds the inline tokens that replace a reference in the tree.

    Levels are relative to the position of the reference (0 for the outer tokens).
    """
    kind = outcome.kind

    if kind == OutcomeKind.BROKEN_LINK:
        return _link_tokens(outcome, custom_attrs.not_found_wiki_links if custom_attrs else {})

    if kind == OutcomeKind.IMAGE_LINK:
        return _link_tokens(outcome, custom_attrs.image_links if custom_attrs else {})

    if kind in (OutcomeKind.HEADING_LINK, OutcomeKind.DOCUMENT_LINK):
        return _link_tokens(outcome, custom_attrs.wiki_links if custom_attrs else {})

    if kind == OutcomeKind.IMAGE_EMBED:
        token = Token('image', 'img', 0)
        attrs = {
            'src': outcome.url,
            'alt': outcome.label,
            'width': outcome.width,
            'height': outcome.height,
        }
        if outcome.style:
            attrs['style'] = outcome.style
        if custom_attrs:
            attrs.update(custom_attrs.image_embeds)
        token.attrs = attrs
        token.content = outcome.label
        token.meta = {'wikilink': kind.value, 'target': outcome.reference.raw_target}

        alt_text = Token('text', '', 0)
        alt_text.content = outcome.label
        token.children = [alt_text]
        return [token]

    # DOCUMENT_EMBED
    token = Token(PLACEHOLDER, '', 0)
    token.content = f"Embedding of {outcome.path}"
    token.meta = {
        'wikilink': kind.value,
        'target': outcome.reference.raw_target,
        'path': outcome.path,
        'outcome': outcome,
    }
    return [token]
