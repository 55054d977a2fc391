"""Shared test fixtures for the ofmtree test suite.

Design:
- vault: a small Obsidian vault in a temp directory (notes, images, a corrupt image)
- config / transformer: a Config and OFMTransformer pointed at that vault
"""

from pathlib import Path

import pytest
from PIL import Image

from ofmtree.config import Config
from ofmtree.parser import OFMTransformer


VAULT_NOTES = {
    "Note.md": "# Note\n\nHello from note.\n",
    "Short.md": "just *one* line\n",
    "Multi.md": "# Embedded Heading\n\nFirst paragraph.\n\nSecond paragraph.\n",
    "WithMeta.md": "---\ntitle: Meta\n---\nBody after meta.\n",
    "Self.md": "![[Self]]\n",
    "A.md": "![[B]]\n",
    "B.md": "![[A]]\n",
    "Links.md": "See [[Note]] and [[Missing]].\n\n`[[Ignored]]`\n",
    "Folder/Deep Note.md": "## Some Heading\n\nDeep content.\n",
    "Folder/Note.md": "Shadowed by the root note.\n",
}


def write_file(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def inline_children(tokens):
    """All children of all inline tokens, in document order."""
    return [child for token in tokens if token.type == "inline" for child in (token.children or [])]


def token_types(tokens):
    return [token.type for token in tokens]


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    for relative, content in VAULT_NOTES.items():
        write_file(root, relative, content)

    images = root / "images"
    images.mkdir()
    Image.new("RGB", (400, 300), color="white").save(images / "photo.png")
    (images / "broken.png").write_bytes(b"definitely not a png")
    write_file(images, "diagram.svg",
               '<svg xmlns="http://www.w3.org/2000/svg" width="120" height="80"></svg>')
    write_file(images, "boxed.svg",
               '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 50 25"></svg>')
    write_file(root, "notes.txt", "not indexed")
    return root


@pytest.fixture
def config(vault: Path) -> Config:
    return Config(vault_root=vault, output_dir=vault.parent / "output")


@pytest.fixture
def reports() -> list:
    return []


@pytest.fixture
def transformer(config: Config, reports: list) -> OFMTransformer:
    return OFMTransformer(config, report=reports.append)
