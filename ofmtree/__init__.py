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

# ofmtree/__init__.py

"""
OFMTree - Obsidian-Flavored Markdown tree transformer
Turns Obsidian notes into markdown-it syntax trees: wiki links resolved,
embeds expanded and callouts rewritten.
"""

__version__ = "1.0.0"

# 从子模块中"提升"核心的类和函数到包的顶层命名空间
from .config import Config, load_config
from .content_index import ContentIndex, build_content_index
from .references import Reference, parse_reference, iter_references
from .resolver import OutcomeKind, ResolutionOutcome, resolve
from .parser import OFMTransformer, dump_tokens
from .batch_compiler import run_batch_transform

__all__ = [
    'Config',
    'load_config',
    'ContentIndex',
    'build_content_index',
    'Reference',
    'parse_reference',
    'iter_references',
    'OutcomeKind',
    'ResolutionOutcome',
    'resolve',
    'OFMTransformer',
    'dump_tokens',
    'run_batch_transform',
    '__version__',
]
