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

# ofmtree/config.py

import tomli
from tomli import TOMLDecodeError
from pathlib import Path
from typing import Optional, List, Dict

from .callouts import DEFAULT_CALLOUT_ICONS
from .embeds import MAX_EMBED_DEPTH

OUTPUT_FORMATS = ("json", "tree")


def _attr_bag(value, name: str) -> dict:
    """Validates one table of custom HTML attributes."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"Configuration Error: '{name}' must be a table, but got {type(value).__name__}")
    for key, item in value.items():
        if not isinstance(item, (str, int, float)) or isinstance(item, bool):
            raise TypeError(
                f"Configuration Error in '{name}': attribute '{key}' must be a string or a number, "
                f"but found a {type(item).__name__}: {item!r}."
            )
    return dict(value)


class CalloutAttrs:
    """Custom attributes for the four parts of a callout."""
    def __init__(self,
                 container: Optional[Dict] = None,
                 icon: Optional[Dict] = None,
                 title: Optional[Dict] = None,
                 collapse: Optional[Dict] = None):
        self.container = _attr_bag(container, "custom_attrs.callouts.container")
        self.icon = _attr_bag(icon, "custom_attrs.callouts.icon")
        self.title = _attr_bag(title, "custom_attrs.callouts.title")
        self.collapse = _attr_bag(collapse, "custom_attrs.callouts.collapse")


class CustomAttrs:
    """Custom attributes attached verbatim to the generated nodes, per category."""
    def __init__(self,
                 wiki_links: Optional[Dict] = None,
                 not_found_wiki_links: Optional[Dict] = None,
                 image_links: Optional[Dict] = None,
                 image_embeds: Optional[Dict] = None,
                 callouts: Optional[CalloutAttrs] = None):
        self.wiki_links = _attr_bag(wiki_links, "custom_attrs.wiki_links")
        self.not_found_wiki_links = _attr_bag(not_found_wiki_links, "custom_attrs.not_found_wiki_links")
        self.image_links = _attr_bag(image_links, "custom_attrs.image_links")
        self.image_embeds = _attr_bag(image_embeds, "custom_attrs.image_embeds")
        self.callouts = callouts or CalloutAttrs()


class Config:
    """Holds the application configuration."""
    def __init__(self,
                 vault_root: Path = Path("./public"),
                 markdown_file: Optional[Path] = None,
                 batch_transform: bool = False,
                 output_dir: Path = Path("./output"),
                 output_format: str = "json",
                 excluded: Optional[List[str]] = None,
                 url_prefix: str = "",
                 max_embed_depth: int = MAX_EMBED_DEPTH,
                 heading_anchors: bool = True,
                 workers: int = 4,
                 enable_wiki_links: bool = True,
                 enable_embeds: bool = True,
                 enable_callouts: bool = True,
                 custom_attrs: Optional[CustomAttrs] = None,
                 callout_icons: Optional[Dict[str, str]] = None,
                 callout_component: Optional[str] = None,
                 pre_processors: Optional[List[str]] = None):
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Unknown output format: {output_format!r} (expected one of {', '.join(OUTPUT_FORMATS)})")
        if max_embed_depth < 0:
            raise ValueError(f"max_embed_depth must not be negative, got {max_embed_depth}")

        self.vault_root = vault_root
        self.markdown_file = markdown_file
        self.batch_transform = batch_transform
        self.output_dir = output_dir
        self.output_format = output_format
        self.excluded = excluded or []
        self.url_prefix = url_prefix
        self.max_embed_depth = max_embed_depth
        self.heading_anchors = heading_anchors
        self.workers = max(1, workers)
        self.enable_wiki_links = enable_wiki_links
        # Embeds are resolved by the reference rule, so they need wiki links
        self.enable_embeds = enable_embeds and enable_wiki_links
        self.enable_callouts = enable_callouts
        self.custom_attrs = custom_attrs or CustomAttrs()
        # 用户自定义的图标覆盖默认值，"note" 始终存在作为后备
        self.callout_icons = {**DEFAULT_CALLOUT_ICONS, **(callout_icons or {})}
        self.callout_component = callout_component or None
        self.pre_processors = pre_processors or []


def load_config(config_path: str = "config.toml") -> Config:
    """
    Loads configuration from a TOML file with conditional validation.
    """
    config_file = Path(config_path)
    if not config_file.is_file():
        raise FileNotFoundError(f"Config file not found: {config_file.resolve()}")

    try:
        with open(config_file, "rb") as f:
            data = tomli.load(f)
    except TOMLDecodeError as e:
        # 当 TOML 文件格式错误时，抛出一个更通用的 ValueError，并附带清晰信息
        raise ValueError(f"Error parsing '{config_file.name}': The file is not a valid TOML. Details: {e}") from e

    try:
        # --- 步骤 1: 加载所有可能的值 ---
        vault_root = Path(data["vault_root"]).expanduser()
        batch_transform = data.get("batch_transform", False)
        output_dir = Path(data.get("output_dir", "./output")).expanduser()
        output_format = data.get("output_format", "json")
        excluded = data.get("excluded", [])
        url_prefix = str(data.get("url_prefix", ""))
        max_embed_depth = int(data.get("max_embed_depth", MAX_EMBED_DEPTH))
        heading_anchors = data.get("heading_anchors", True)
        workers = int(data.get("workers", 4))

        features = data.get("features", {})
        enable_wiki_links = features.get("wiki_links", True)
        enable_embeds = features.get("embeds", True)
        enable_callouts = features.get("callouts", True)

        attrs_data = data.get("custom_attrs", {})
        callout_attrs_data = attrs_data.get("callouts", {})
        custom_attrs = CustomAttrs(
            wiki_links=attrs_data.get("wiki_links"),
            not_found_wiki_links=attrs_data.get("not_found_wiki_links"),
            image_links=attrs_data.get("image_links"),
            image_embeds=attrs_data.get("image_embeds"),
            callouts=CalloutAttrs(
                container=callout_attrs_data.get("container"),
                icon=callout_attrs_data.get("icon"),
                title=callout_attrs_data.get("title"),
                collapse=callout_attrs_data.get("collapse"),
            ),
        )

        callout_data = dict(data.get("callouts", {}))
        callout_component = callout_data.pop("callout_component", None)
        for name, markup in callout_data.items():
            if not isinstance(markup, str):
                raise TypeError(f"Configuration Error: icon for callout '{name}' must be a string, "
                                f"but got {type(markup).__name__}")

        processor_config = data.get("processors", {})
        pre_processors = processor_config.get("pre", [])

    except KeyError as e:
        # vault_root 是唯一在任何模式下都必须存在的键
        raise KeyError(f"Missing required key in config file: {e}")

    # --- 步骤 2: 验证通用路径 ---
    if not vault_root.is_dir():
        raise NotADirectoryError(f"Vault root is not a valid directory: {vault_root}")

    # --- 步骤 3: 根据模式进行条件加载和验证 ---
    markdown_file = None
    if not batch_transform:
        try:
            markdown_file_str = data["markdown_file"]
        except KeyError:
            # 在单文件模式下，这个键是必须的
            raise KeyError("Missing 'markdown_file' key, required when 'batch_transform' is false.")

        markdown_file = Path(markdown_file_str).expanduser()
        if not markdown_file.is_file():
            raise FileNotFoundError(f"Markdown file not found for single-file transform: {markdown_file}")

    # --- 步骤 4: 创建并返回 Config 对象 ---
    return Config(
        vault_root=vault_root,
        markdown_file=markdown_file,
        batch_transform=batch_transform,
        output_dir=output_dir,
        output_format=output_format,
        excluded=excluded,
        url_prefix=url_prefix,
        max_embed_depth=max_embed_depth,
        heading_anchors=heading_anchors,
        workers=workers,
        enable_wiki_links=enable_wiki_links,
        enable_embeds=enable_embeds,
        enable_callouts=enable_callouts,
        custom_attrs=custom_attrs,
        callout_icons=callout_data,
        callout_component=callout_component,
        pre_processors=pre_processors,
    )
