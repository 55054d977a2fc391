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

# ofmtree/content_index.py
import re
import xml.etree.ElementTree as ET
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Union

from PIL import Image

IMAGE_EXTENSIONS = frozenset({'.jpg', '.jpeg', '.png', '.gif', '.webp', '.svg', '.bmp'})

SVG_LENGTH_RE = re.compile(r'^\s*([0-9]*\.?[0-9]+)\s*(px)?\s*$')


@dataclass(frozen=True)
class DocumentDescriptor:
    path: str


@dataclass(frozen=True)
class ImageDescriptor:
    path: str
    width: int
    height: int


ContentDescriptor = Union[DocumentDescriptor, ImageDescriptor]


class ContentIndex:
    """
    Read-only, case-insensitive mapping from a document/asset name to its descriptor.

    Keys are lowercase file names: without extension for Markdown notes
    ("my note"), with extension for images ("image.png"). The index is never
    mutated after construction, so one instance can be shared by concurrent
    transforms.
    """

    def __init__(self, entries: Optional[Mapping[str, ContentDescriptor]] = None):
        self._entries = MappingProxyType({name.lower(): descriptor for name, descriptor in (entries or {}).items()})

    @classmethod
    def from_directory(cls, root_dir) -> 'ContentIndex':
        return build_content_index(root_dir)

    def lookup(self, name: str) -> Optional[ContentDescriptor]:
        return self._entries.get(name.lower())

    def items(self):
        return self._entries.items()

    def __contains__(self, name) -> bool:
        return isinstance(name, str) and name.lower() in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self):
        return f"{self.__class__.__name__}({len(self)} entries)"


def _svg_length(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    match = SVG_LENGTH_RE.match(value)
    return float(match.group(1)) if match else None


def _read_svg_size(path: Path) -> Optional[tuple[int, int]]:
    try:
        root = ET.parse(path).getroot()
    except (ET.ParseError, OSError):
        return None

    width = _svg_length(root.get('width'))
    height = _svg_length(root.get('height'))

    if width is None or height is None:
        view_box = (root.get('viewBox') or '').replace(',', ' ').split()
        if len(view_box) != 4:
            return None
        try:
            vb_width, vb_height = float(view_box[2]), float(view_box[3])
        except ValueError:
            return None
        width = width if width is not None else vb_width
        height = height if height is not None else vb_height

    return round(width), round(height)


def read_image_size(path: Path) -> Optional[tuple[int, int]]:
    """
    Returns (width, height) in pixels, or None if the image cannot be read.
    """
    path = Path(path)
    if path.suffix.lower() == '.svg':
        return _read_svg_size(path)

    try:
        with Image.open(path) as img:
            return img.size
    except (OSError, ValueError, Image.DecompressionBombError):
        # 损坏或无法识别的图片直接跳过
        return None


def build_content_index(root_dir) -> ContentIndex:
    """
    Walks the vault breadth-first and indexes every note and image.

    - Images are keyed by their lowercase file name *including* the extension,
      and carry their pixel dimensions. Corrupt images are skipped.
    - Markdown notes are keyed by their lowercase file name *without* extension.
    - Everything else is ignored.

    When two files share a key, the one closest to the vault root wins.

    Args:
        root_dir: The vault root.

    Returns:
        A ContentIndex whose descriptor paths are "/"-prefixed and relative to root_dir.
    """
    root = Path(root_dir).resolve()
    entries: dict[str, ContentDescriptor] = {}

    queue = deque([root])
    visited = {root}

    while queue:
        current_dir = queue.popleft()
        try:
            children = sorted(current_dir.iterdir())
        except (PermissionError, FileNotFoundError, NotADirectoryError):
            # Ignore directories we can't read
            continue

        files = []
        for entry in children:
            if entry.is_dir():
                resolved = entry.resolve()
                if resolved not in visited:
                    visited.add(resolved)
                    queue.append(entry)
            elif entry.is_file():
                files.append(entry)

        for entry in files:
            suffix = entry.suffix.lower()
            logical_path = '/' + entry.relative_to(root).as_posix()

            if suffix in IMAGE_EXTENSIONS:
                key = entry.name.lower()
                if key in entries:
                    continue
                size = read_image_size(entry)
                if size is None:
                    continue
                entries[key] = ImageDescriptor(path=logical_path, width=size[0], height=size[1])

            elif suffix == '.md':
                entries.setdefault(entry.stem.lower(), DocumentDescriptor(path=logical_path))

    return ContentIndex(entries)
