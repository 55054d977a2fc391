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

# ofmtree/utils.py
import re
import unicodedata

from colorama import Fore, Style

CAMEL_CASE_RE = re.compile(r'([a-z])([A-Z])')
NON_ALNUM_RE = re.compile(r'[^a-z0-9]+')

# Obsidian block IDs: "^abc123" alone on a line, or at the end of one
BLOCK_ID_STANDALONE_RE = re.compile(r"^[ \t]*\^[\w-]+[ \t]*$\n?", re.MULTILINE)
BLOCK_ID_EOL_RE = re.compile(r"[ \t]+\^[\w-]+[ \t]*$", re.MULTILINE)


def slugify(text: str) -> str:
    """
    Converts a string into a URL-friendly slug.

    >>> slugify("Hello World!")
    'hello-world'
    >>> slugify("crème brûlée")
    'creme-brulee'
    >>> slugify("myCamelCaseString")
    'my-camel-case-string'
    """
    if not text:
        return ""

    text = str(text).strip()
    # 1. camelCase -> "camel Case"
    text = CAMEL_CASE_RE.sub(r'\1 \2', text)
    # 2. 去掉重音符号 (é -> e)
    text = unicodedata.normalize('NFKD', text)
    text = ''.join(c for c in text if not unicodedata.combining(c))
    # 3. 小写，非字母数字的连续字符替换为一个连字符
    text = NON_ALNUM_RE.sub('-', text.lower())
    return text.strip('-')


def normalize_target(raw: str) -> str:
    """Backslashes become forward slashes, surrounding whitespace is dropped."""
    return raw.replace('\\', '/').strip()


def warn(message) -> None:
    print(f"{Fore.YELLOW}⚠️  Warning: {message}{Style.RESET_ALL}")


def normalize_unicode(text: str) -> str:
    replacements = {
        '\u202F': ' ',     # narrow no-break space → space
        '\u00A0': ' ',     # no-break space → space
        '\u200B': '',      # zero width space → remove
        '\uFFFC': '',      # object replacement → remove
    }
    for bad_char, replacement in replacements.items():
        text = text.replace(bad_char, replacement)
    return text


def strip_block_ids(text: str) -> str:
    """
    Removes Obsidian block IDs (^xxxxxx).
    - Lines that ONLY contain a block ID are dropped.
    - Block IDs at the end of other lines are stripped.
    """
    text = BLOCK_ID_STANDALONE_RE.sub('', text)
    return BLOCK_ID_EOL_RE.sub('', text)


# Registry of built-in pre-processors, referenced as "$name" in config.toml
BUILTIN_PRE_PROCESSORS = {
    "normalize_unicode": normalize_unicode,
    "strip_block_ids": strip_block_ids,
}
