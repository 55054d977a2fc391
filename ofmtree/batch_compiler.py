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

# ofmtree/batch_compiler.py
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional

from colorama import Fore, Style
from tqdm import tqdm

from .config import Config
from .content_index import ContentIndex, build_content_index
from .parser import OFMTransformer, dump_tokens
from .references import iter_references

OUTPUT_SUFFIXES = {"json": ".json", "tree": ".tree.txt"}


def find_markdown_files(root_dir: Path, excluded_patterns: list[str]) -> list[Path]:
    """
    使用 glob 模式查找所有 Markdown 文件，并排除匹配指定模式的路径。
    这支持类似 .gitignore 的模式匹配。

    Args:
        root_dir: Vault 的根目录。
        excluded_patterns: 一个包含 glob 模式的字符串列表，用于排除文件或目录。
                           例如: ["*.excalidraw.md", "Templates/*", "ignored_folder"]

    Returns:
        一个经过排序和过滤的 Path 对象列表。
    """
    if not isinstance(excluded_patterns, list):
        raise TypeError(
            f"Configuration Error: 'excluded' must be a list of strings, but got {type(excluded_patterns).__name__}")

    for i, pattern in enumerate(excluded_patterns):
        if not isinstance(pattern, str):
            raise TypeError(
                f"Configuration Error in 'excluded' list at position {i}: \n"
                f"Expected a string pattern, but found a {type(pattern).__name__}: {pattern!r}.\n"
                f"Please ensure all items in the 'excluded' list are simple strings (e.g., \"Templates/*\")."
            )

    # sorted() 保证结果的顺序稳定性
    all_md_files = sorted(root_dir.rglob("*.md"))

    if not excluded_patterns:
        return all_md_files

    filtered_files = []
    for file_path in all_md_files:
        relative_path = file_path.relative_to(root_dir)

        # 不仅检查文件本身，还检查它的所有父目录，
        # 这样 "Templates" 这样的模式可以排除整个目录
        parts_to_check = [relative_path] + [p for p in relative_path.parents if p != Path('.')]

        is_excluded = any(
            part.match(pattern)
            for pattern in excluded_patterns
            for part in parts_to_check
        )

        if not is_excluded:
            filtered_files.append(file_path)

    return filtered_files


def scan_broken_references(files: list[Path], index: ContentIndex) -> dict[Path, list[str]]:
    """
    [Pass 1] Scans the raw text of every note for references the index cannot resolve.

    Heading-only references ([[#Heading]]) always resolve and are not reported.
    """
    print(f"{Fore.CYAN}🔎 Pass 1/2: Scanning {len(files)} files for references...{Style.RESET_ALL}")

    broken: dict[Path, list[str]] = {}
    total = 0
    for md_path in tqdm(files, desc="Scanning", unit="file"):
        try:
            content = md_path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            tqdm.write(f"{Fore.YELLOW}⚠️  Warning: Could not read {md_path.name} during scan: {e}{Style.RESET_ALL}")
            continue

        for reference, _span in iter_references(content):
            total += 1
            if reference.anchor and not reference.target:
                continue
            if index.lookup(reference.target) is None:
                broken.setdefault(md_path, []).append(reference.raw_target)

    print(f"{Fore.GREEN}✅ Found {total} references, "
          f"{sum(len(v) for v in broken.values())} unresolved.{Style.RESET_ALL}")
    for md_path, targets in broken.items():
        for target in targets:
            print(f"{Fore.YELLOW}⚠️  [Warning] Broken link found: [[{target}]] in note '{md_path.stem}'{Style.RESET_ALL}")
    return broken


def output_path_for(md_path: Path, cfg: Config) -> Path:
    """Mirrors the vault layout under the output directory."""
    relative = md_path.resolve().relative_to(Path(cfg.vault_root).resolve())
    return cfg.output_dir / relative.with_suffix(OUTPUT_SUFFIXES[cfg.output_format])


def transform_single_file_worker(md_path: Path, cfg: Config, transformer: OFMTransformer) -> Path:
    """Worker: transforms one note and writes the serialized tree. Runs in a thread."""
    tokens = transformer.transform_file(md_path)
    dest = output_path_for(md_path, cfg)
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(dump_tokens(tokens, cfg.output_format), encoding='utf-8')
    return dest


def run_batch_transform(cfg: Config, transformer: Optional[OFMTransformer] = None) -> tuple[list[Path], dict[Path, str]]:
    """
    Transforms every note of the vault concurrently.

    Notes share one transformer, hence one read-only content index. A note that
    fails is recorded and reported; the others go on.

    Returns:
        (written output paths, {note path: error message})
    """
    vault_root = Path(cfg.vault_root)
    files = find_markdown_files(vault_root, cfg.excluded)
    if not files:
        print(f"{Fore.YELLOW}No Markdown files found in {vault_root}.{Style.RESET_ALL}")
        return [], {}

    if transformer is None:
        index = build_content_index(vault_root)
        print(f"{Fore.CYAN}Indexed {len(index)} notes and images.{Style.RESET_ALL}")
    else:
        index = transformer.index

    scan_broken_references(files, index)

    print(f"{Fore.CYAN}🚀 Pass 2/2: Transforming {len(files)} files with {cfg.workers} workers...{Style.RESET_ALL}")
    written: list[Path] = []
    failures: dict[Path, str] = {}

    with tqdm(total=len(files), desc="Transforming", unit="file") as pbar:

        def worker_logger(message):
            # tqdm.write 保证日志不会打乱进度条
            pbar.write(f"{Fore.YELLOW}⚠️  {message}{Style.RESET_ALL}")

        if transformer is None:
            transformer = OFMTransformer(cfg, index=index, report=worker_logger)

        with ThreadPoolExecutor(max_workers=cfg.workers) as executor:
            futures = {
                executor.submit(transform_single_file_worker, md_path, cfg, transformer): md_path
                for md_path in files
            }
            for future in as_completed(futures):
                md_path = futures[future]
                try:
                    written.append(future.result())
                except (OSError, UnicodeDecodeError, ValueError) as e:
                    failures[md_path] = str(e)
                    pbar.write(f"{Fore.RED}❌ [{md_path.stem}] {e}{Style.RESET_ALL}")
                pbar.update(1)

    if failures:
        print(f"{Fore.RED}❌ {len(failures)} of {len(files)} files failed.{Style.RESET_ALL}")
    print(f"{Fore.GREEN}✅ Wrote {len(written)} files to {cfg.output_dir}{Style.RESET_ALL}")
    return sorted(written), failures
