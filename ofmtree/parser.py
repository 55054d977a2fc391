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

# ofmtree/parser.py
import asyncio
import importlib.util
import json
from pathlib import Path
from typing import Callable, List, Optional

from markdown_it import MarkdownIt
from markdown_it.token import Token
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.anchors import anchors_plugin
from mdit_py_plugins.front_matter import front_matter_plugin
from mdit_py_plugins.texmath import texmath_plugin

from . import plugins
from .config import Config
from .content_index import ContentIndex, build_content_index
from .loader import DocumentLoader, VaultLoader
from .utils import BUILTIN_PRE_PROCESSORS
from .utils import slugify as default_slugify
from .utils import warn


class OFMTransformer:
    """
    Parses Obsidian notes into a markdown-it token tree with wiki links,
    embeds and callouts resolved.

    One transformer can be shared by several threads: the content index is
    read-only and every call works on its own token list and env.
    """

    def __init__(self,
                 config: Config,
                 index: Optional[ContentIndex] = None,
                 loader: Optional[DocumentLoader] = None,
                 slugify: Optional[Callable[[str], str]] = None,
                 report: Optional[Callable[[str], None]] = None):
        self.config = config
        self.vault_root = Path(config.vault_root).resolve()

        # The index is built explicitly here (or passed in), never cached globally
        self.index = index if index is not None else build_content_index(self.vault_root)
        self.loader = loader or VaultLoader(self.vault_root)
        self.slugify = slugify or default_slugify
        self.report = report or warn

        self.pre_processor_chain = self._load_processor_chain(
            config.pre_processors, BUILTIN_PRE_PROCESSORS, "pre_processor"
        )

        self.md = (
            MarkdownIt("commonmark", {"breaks": True})
            .enable("table")
            .use(texmath_plugin, delimiters='dollars')
            .use(front_matter_plugin)
        )
        if config.heading_anchors:
            # Same slug function as [[#Heading]] links, so the anchors match
            self.md.use(anchors_plugin, max_level=6, slug_func=self.slugify)

        # Apply our custom plugins
        if config.enable_wiki_links:
            plugins.reference_plugin(self.md, embeds=config.enable_embeds)
            if config.enable_embeds:
                plugins.embed_plugin(self.md)
        if config.enable_callouts:
            plugins.callout_plugin(self.md)

    def _load_processor_chain(self, names: List[str], builtin_registry: dict, chain_type: str) -> List[Callable[[str], str]]:
        # 通用的加载器："$name" 为内置处理器，"path/to/script.py:func" 为用户脚本
        chain = []
        for name in names:
            if name.startswith('$'):
                func_name = name[1:]
                if func_name in builtin_registry:
                    chain.append(builtin_registry[func_name])
                else:
                    self.report(f"Unrecognized built-in {chain_type}: '{name}', ignored.")
            elif ":" in name:
                path_str, func_name = name.rsplit(":", 1)
                try:
                    spec = importlib.util.spec_from_file_location(Path(path_str).stem, path_str)
                    module = importlib.util.module_from_spec(spec)
                    spec.loader.exec_module(module)
                    chain.append(getattr(module, func_name))
                except (OSError, ImportError, AttributeError, SyntaxError) as e:
                    self.report(f"Cannot load {chain_type} '{name}': {e}")
            else:
                self.report(f"Unrecognized {chain_type}: '{name}', ignored.")
        return chain

    @staticmethod
    def _run_chain(content: str, chain: List[Callable[[str], str]]) -> str:
        for process_func in chain:
            content = process_func(content)
        return content

    def _make_env(self, depth: int = 0, current_path: Optional[str] = None) -> dict:
        # Pass necessary data through the environment
        return {
            'config': self.config,
            'index': self.index,
            'loader': self.loader,
            'slugify': self.slugify,
            'report': self.report,
            'parse': self._parse,
            'embed_depth': depth,
            'current_path': current_path,
        }

    def _parse(self, markdown_text: str, env: dict) -> list[Token]:
        markdown_text = self._run_chain(markdown_text, self.pre_processor_chain)
        return self.md.parse(markdown_text, env)

    def _transform_body(self, markdown_text: str, recursion_depth: int = 0,
                        current_path: Optional[str] = None) -> list[Token]:
        """
        Transforms Markdown text at a given embed depth.
        Embedded notes come back through here via env['parse'].
        """
        return self._parse(markdown_text, self._make_env(recursion_depth, current_path))

    def transform(self, markdown_text: str) -> list[Token]:
        """Public method: Markdown text -> transformed token stream."""
        return self._transform_body(markdown_text, 0)

    def transform_file(self, input_file) -> list[Token]:
        input_path = Path(input_file).resolve()
        markdown_text = input_path.read_text(encoding='utf-8')

        try:
            current_path = '/' + input_path.relative_to(self.vault_root).as_posix()
        except ValueError:
            # 不在 vault 里的文件也可以转换
            current_path = None

        return self._transform_body(markdown_text, 0, current_path)

    async def transform_file_async(self, input_file) -> list[Token]:
        """Runs transform_file in a worker thread so file reads don't block the event loop."""
        return await asyncio.to_thread(self.transform_file, input_file)

    @staticmethod
    def tree(tokens: list[Token]) -> SyntaxTreeNode:
        return SyntaxTreeNode(tokens)


def dump_tokens(tokens: list[Token], output_format: str = "json") -> str:
    """Serializes a transformed token stream ("json" dicts or a "tree" outline)."""
    if output_format == "tree":
        return SyntaxTreeNode(tokens).pretty(indent=2, show_text=True)
    if output_format == "json":
        return json.dumps([token.as_dict(as_upstream=False) for token in tokens], ensure_ascii=False, indent=2, default=str)
    raise ValueError(f"Unknown output format: {output_format}")
