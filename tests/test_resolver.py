import pytest

from ofmtree.config import CustomAttrs
from ofmtree.content_index import ContentIndex, DocumentDescriptor, ImageDescriptor
from ofmtree.references import parse_reference
from ofmtree.resolver import (
    PLACEHOLDER,
    OutcomeKind,
    degrade_to_link,
    document_url,
    outcome_tokens,
    resolve,
)


@pytest.fixture
def index() -> ContentIndex:
    return ContentIndex({
        "My Note": DocumentDescriptor("/Folder/My Note.md"),
        "photo.png": ImageDescriptor("/images/photo.png", 400, 300),
    })


def resolve_text(body, index, is_embed=False, **kwargs):
    return resolve(parse_reference(body, is_embed=is_embed), index, **kwargs)


class TestResolve:
    def test_heading_link_never_consults_the_index(self):
        """[[#Heading]] resolves even against an empty index."""
        outcome = resolve_text("#Some Heading", ContentIndex())
        assert outcome.kind == OutcomeKind.HEADING_LINK
        assert outcome.url == "#some-heading"
        assert outcome.label == "#Some Heading"

    def test_broken_link(self, index):
        outcome = resolve_text("Nowhere|Alias", index)
        assert outcome.kind == OutcomeKind.BROKEN_LINK
        assert outcome.url == "#"
        assert outcome.label == "Alias"

    def test_broken_embed_is_a_broken_link(self, index):
        assert resolve_text("Nowhere", index, is_embed=True).kind == OutcomeKind.BROKEN_LINK

    def test_lookup_is_case_insensitive(self, index):
        assert resolve_text("MY NOTE", index).kind == OutcomeKind.DOCUMENT_LINK

    def test_image_embed_with_caption(self, index):
        outcome = resolve_text("photo.png|A cat", index, is_embed=True)
        assert outcome.kind == OutcomeKind.IMAGE_EMBED
        assert outcome.url == "/images/photo.png"
        assert outcome.label == "A cat"
        assert (outcome.width, outcome.height) == (400, 300)
        assert outcome.style is None

    def test_image_embed_resize(self, index):
        """A numeric alias is a display width, not a caption."""
        outcome = resolve_text("photo.png|300", index, is_embed=True)
        assert outcome.label == "photo.png"
        assert outcome.style == "width:300px;"
        assert (outcome.width, outcome.height) == (400, 300)

    def test_image_link(self, index):
        outcome = resolve_text("photo.png", index)
        assert outcome.kind == OutcomeKind.IMAGE_LINK
        assert outcome.url == "/images/photo.png"

    def test_document_embed(self, index):
        outcome = resolve_text("My Note", index, is_embed=True)
        assert outcome.kind == OutcomeKind.DOCUMENT_EMBED
        assert outcome.path == "/Folder/My Note.md"

    def test_document_link_with_anchor(self, index):
        outcome = resolve_text("My Note#Part Two|read", index)
        assert outcome.kind == OutcomeKind.DOCUMENT_LINK
        assert outcome.url == "/folder/my-note#part-two"
        assert outcome.label == "read"

    @pytest.mark.parametrize("body, is_embed, kind, url, style", [
        ("My Note#Section", True, OutcomeKind.DOCUMENT_EMBED, "/Folder/My Note.md", None),
        ("photo.png#x", False, OutcomeKind.IMAGE_LINK, "/images/photo.png", None),
        ("photo.png#x|120", True, OutcomeKind.IMAGE_EMBED, "/images/photo.png", "width:120px;"),
    ])
    def test_anchor_does_not_change_the_outcome(self, index, body, is_embed, kind, url, style):
        """An anchor on an image or an embedded note is ignored by the lookup."""
        outcome = resolve_text(body, index, is_embed=is_embed)
        assert outcome.kind == kind
        assert outcome.url == url
        assert outcome.style == style

    @pytest.mark.parametrize("alias", ["-5", "1e2", "300px"])
    def test_non_decimal_alias_is_a_caption(self, index, alias):
        outcome = resolve_text(f"photo.png|{alias}", index, is_embed=True)
        assert outcome.style is None
        assert outcome.label == alias

    def test_url_prefix(self, index):
        outcome = resolve_text("My Note", index, url_prefix="/docs/")
        assert outcome.url == "/docs/folder/my-note"

    def test_custom_slugify(self, index):
        outcome = resolve_text("My Note#Part", index, slugify=str.upper)
        assert outcome.url == "/FOLDER/MY NOTE#PART"


class TestDocumentUrl:
    def test_strips_markdown_suffix(self):
        assert document_url("/A Folder/Note.md") == "/a-folder/note"

    def test_relative_prefix(self):
        assert document_url("/note.md", url_prefix="wiki") == "wiki/note"


class TestDegradeToLink:
    def test_embed_becomes_link(self, index):
        embed = resolve_text("My Note#Intro", index, is_embed=True)
        link = degrade_to_link(embed)
        assert link.kind == OutcomeKind.DOCUMENT_LINK
        assert link.url == "/folder/my-note#intro"
        assert link.label == embed.label


class TestOutcomeTokens:
    def test_link_tokens_carry_custom_attrs(self, index):
        attrs = CustomAttrs(wiki_links={"class": "internal", "href": "ignored"})
        link_open, text, link_close = outcome_tokens(resolve_text("My Note", index), attrs)
        assert link_open.type == "link_open"
        assert link_open.attrs == {"class": "internal", "href": "/folder/my-note"}
        assert link_open.meta["wikilink"] == "document_link"
        assert text.content == "My Note"
        assert link_close.type == "link_close"

    def test_broken_link_uses_not_found_attrs(self, index):
        attrs = CustomAttrs(not_found_wiki_links={"class": "broken"})
        link_open = outcome_tokens(resolve_text("Nowhere", index), attrs)[0]
        assert link_open.attrs == {"class": "broken", "href": "#"}

    def test_image_embed_token(self, index):
        attrs = CustomAttrs(image_embeds={"loading": "lazy"})
        image, = outcome_tokens(resolve_text("photo.png|300", index, is_embed=True), attrs)
        assert image.type == "image"
        assert image.attrs["src"] == "/images/photo.png"
        assert image.attrs["style"] == "width:300px;"
        assert image.attrs["loading"] == "lazy"
        assert image.children[0].content == "photo.png"

    def test_document_embed_placeholder(self, index):
        placeholder, = outcome_tokens(resolve_text("My Note", index, is_embed=True))
        assert placeholder.type == PLACEHOLDER
        assert placeholder.meta["path"] == "/Folder/My Note.md"
