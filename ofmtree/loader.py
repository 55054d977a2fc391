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

# ofmtree/loader.py
from pathlib import Path
from typing import Protocol


class DocumentLoader(Protocol):
    def load(self, logical_path: str) -> bytes:
        ...


class VaultLoader:
    """Loads embedded notes from the vault by their index-internal logical path."""

    def __init__(self, vault_root):
        self.vault_root = Path(vault_root).resolve()

    def resolve(self, logical_path: str) -> Path:
        candidate = (self.vault_root / logical_path.lstrip('/')).resolve()
        if candidate != self.vault_root and self.vault_root not in candidate.parents:
            raise FileNotFoundError(f"Path escapes the vault root: {logical_path}")
        return candidate

    def load(self, logical_path: str) -> bytes:
        return self.resolve(logical_path).read_bytes()
