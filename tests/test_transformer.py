import asyncio
import json

import pytest
from markdown_it.tree import SyntaxTreeNode

from conftest import inline_children, token_types

from ofmtree.config import Config, CustomAttrs
from ofmtree.parser import OFMTransformer, dump_tokens


def text_of(tokens):
    return "".join(c.content for c in inline_children(tokens) if c.type == "text")


class TestReferences:
    def test_links_images_and_broken_links(self, transformer):
        tokens = transformer.transform("[[Note]] [[Missing]] [[photo.png]] ![[photo.png|200]] [[#Top]]\n")
        children = inline_children(tokens)
        hrefs = [c.attrs["href"] for c in children if c.type == "link_open"]
        assert hrefs == ["/note", "#", "/images/photo.png", "#top"]
        image = next(c for c in children if c.type == "image")
        assert image.attrs["src"] == "/images/photo.png"
        assert image.attrs["style"] == "width:200px;"

    def test_link_levels_are_balanced(self, transformer):
        tokens = transformer.transform("a [[Note|alias]] b\n")
        children = inline_children(tokens)
        assert [c.level for c in children] == [0, 0, 1, 0, 0]
        assert [c.content for c in children if c.type == "text"] == ["a ", "alias", " b"]

    def test_code_is_verbatim(self, transformer):
        tokens = transformer.transform("`[[Note]]`\n\n```\n![[Note]]\n```\n")
        assert token_types(inline_children(tokens)) == ["code_inline"]
        assert inline_children(tokens)[0].content == "[[Note]]"
        fence = next(t for t in tokens if t.type == "fence")
        assert fence.content == "![[Note]]\n"

    def test_math_is_verbatim(self, transformer):
        tokens = transformer.transform("$[[Note]]$\n")
        children = inline_children(tokens)
        assert "link_open" not in token_types(children)
        assert any("[[Note]]" in c.content for c in children)

    def test_escaped_bang_is_a_plain_link(self, transformer):
        tokens = transformer.transform("\\![[Note]]\n")
        children = inline_children(tokens)
        assert [c.attrs["href"] for c in children if c.type == "link_open"] == ["/note"]
        assert text_of(tokens) == "!Note"

    def test_escaped_bang_with_embeds_disabled(self, vault):
        transformer = OFMTransformer(Config(vault_root=vault, enable_embeds=False))
        tokens = transformer.transform("\\![[Note]] ![[Note]]\n")
        hrefs = [c.attrs["href"] for c in inline_children(tokens) if c.type == "link_open"]
        assert hrefs == ["/note"]

    def test_empty_reference_stays_literal(self, transformer):
        assert text_of(transformer.transform("[[]]\n")) == "[[]]"

    def test_reference_inside_table(self, transformer):
        tokens = transformer.transform("| a | b |\n| - | - |\n| [[Note\\|Alias]] | x |\n")
        link = next(c for c in inline_children(tokens) if c.type == "link_open")
        assert link.attrs["href"] == "/note"

    def test_custom_attrs_and_url_prefix(self, vault):
        cfg = Config(vault_root=vault, url_prefix="/wiki/",
                     custom_attrs=CustomAttrs(wiki_links={"class": "internal"}))
        tokens = OFMTransformer(cfg).transform("[[Deep Note#Some Heading]]\n")
        link = inline_children(tokens)[0]
        assert link.attrs == {"class": "internal", "href": "/wiki/folder/deep-note#some-heading"}


class TestFeatureToggles:
    def test_wiki_links_disabled(self, vault):
        transformer = OFMTransformer(Config(vault_root=vault, enable_wiki_links=False))
        tokens = transformer.transform("[[Note]] ![[Note]]\n")
        assert "link_open" not in token_types(inline_children(tokens))
        assert text_of(tokens) == "[[Note]] ![[Note]]"

    def test_embeds_disabled(self, vault):
        transformer = OFMTransformer(Config(vault_root=vault, enable_embeds=False))
        tokens = transformer.transform("![[Note]] and [[Note]]\n")
        children = inline_children(tokens)
        assert [c.attrs["href"] for c in children if c.type == "link_open"] == ["/note"]
        assert text_of(tokens).startswith("![[Note]] and ")


class TestHeadingAnchors:
    def test_heading_ids_match_heading_links(self, transformer):
        tokens = transformer.transform("# My Heading\n\n[[#My Heading]]\n")
        assert tokens[0].attrs["id"] == "my-heading"
        link = next(c for c in inline_children(tokens) if c.type == "link_open")
        assert link.attrs["href"] == "#my-heading"

    def test_disabled(self, vault):
        transformer = OFMTransformer(Config(vault_root=vault, heading_anchors=False))
        assert "id" not in transformer.transform("# Title\n")[0].attrs

    def test_custom_slugify(self, config):
        transformer = OFMTransformer(config, slugify=lambda text: text.replace(" ", "_"))
        tokens = transformer.transform("## A B\n")
        assert tokens[0].attrs["id"] == "A_B"


class TestPreProcessors:
    def test_builtin(self, vault):
        transformer = OFMTransformer(Config(vault_root=vault, pre_processors=["$strip_block_ids"]))
        assert text_of(transformer.transform("para ^abc123\n")) == "para"

    def test_user_script(self, vault, tmp_path):
        script = tmp_path / "shout.py"
        script.write_text("def shout(text):\n    return text.upper()\n", encoding="utf-8")
        transformer = OFMTransformer(Config(vault_root=vault, pre_processors=[f"{script}:shout"]))
        assert text_of(transformer.transform("quiet\n")) == "QUIET"

    def test_unknown_is_reported(self, vault, reports):
        OFMTransformer(Config(vault_root=vault, pre_processors=["$nope", "bogus"]), report=reports.append)
        assert len(reports) == 2


class TestFiles:
    def test_transform_file(self, transformer, vault):
        tokens = transformer.transform_file(vault / "Links.md")
        assert [c.attrs["href"] for c in inline_children(tokens) if c.type == "link_open"] == ["/note", "#"]

    def test_transform_file_async(self, transformer, vault):
        tokens = asyncio.run(transformer.transform_file_async(vault / "Note.md"))
        assert tokens[0].type == "heading_open"

    def test_front_matter_is_kept_at_top_level(self, transformer, vault):
        tokens = transformer.transform_file(vault / "WithMeta.md")
        assert tokens[0].type == "front_matter"


class TestDumpTokens:
    def test_json(self, transformer):
        data = json.loads(dump_tokens(transformer.transform("[[Note]]\n"), "json"))
        assert [item["type"] for item in data] == ["paragraph_open", "inline", "paragraph_close"]
        link = data[1]["children"][0]
        assert link["attrs"]["href"] == "/note"

    def test_tree(self, transformer):
        output = dump_tokens(transformer.transform("> [!note] Hi\n> [[Note]]\n"), "tree")
        assert output.startswith("<root>")
        assert "<callout" in output
        assert "<link" in output

    def test_syntax_tree(self, transformer):
        tree = OFMTransformer.tree(transformer.transform("# T\n\ntext\n"))
        assert isinstance(tree, SyntaxTreeNode)
        assert [node.type for node in tree.children] == ["heading", "paragraph"]

    def test_unknown_format(self, transformer):
        with pytest.raises(ValueError):
            dump_tokens([], "xml")
