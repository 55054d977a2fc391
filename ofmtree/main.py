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

# ofmtree/main.py
import argparse
import sys
from art import tprint
from pathlib import Path
from .parser import OFMTransformer, dump_tokens
from .config import load_config
from .batch_compiler import run_batch_transform, OUTPUT_SUFFIXES

import colorama
from colorama import Fore, Style


def main():
    """
    Main execution function using the config.toml file.
    """

    colorama.init()

    # 1. 设置命令行参数解析器
    parser = argparse.ArgumentParser(
        description="Transforms Obsidian notes into Markdown syntax trees with wiki links, embeds and callouts resolved."
    )

    # 2. 添加 --config 参数，未指定时回退到 'config.toml'
    parser.add_argument(
        "-c", "--config",
        dest="config_path",
        default="config.toml",
        type=Path,
        help="Path to the configuration file (default: %(default)s)"
    )

    args = parser.parse_args()

    tprint("ofmtree", "isometric1")
    print("OFMTree Obsidian-Flavored Markdown tree transformer.")

    config_file = args.config_path
    print(f"Attempting to load configuration from: {config_file.resolve()}")

    try:
        cfg = load_config(config_file)
    except (FileNotFoundError, KeyError, NotADirectoryError, ValueError, TypeError) as e:
        print(f"{Fore.RED}❌ Configuration Error: {e}{Style.RESET_ALL}")
        sys.exit(1)

    # --- DISPATCHER LOGIC ---
    if cfg.batch_transform:
        # --- BATCH MODE ---
        print("Batch transform enabled. Starting batch process...")
        _written, failures = run_batch_transform(cfg)
        if failures:
            sys.exit(1)

    else:
        # --- SINGLE FILE MODE ---
        try:
            transformer = OFMTransformer(cfg)
            tokens = transformer.transform_file(cfg.markdown_file)

            cfg.output_dir.mkdir(parents=True, exist_ok=True)
            output_path = cfg.output_dir / (cfg.markdown_file.stem + OUTPUT_SUFFIXES[cfg.output_format])
            output_path.write_text(dump_tokens(tokens, cfg.output_format), encoding='utf-8')
            print(f"{Fore.GREEN}✅ Successfully transformed. Output is at: {output_path}{Style.RESET_ALL}")

        except (OSError, UnicodeDecodeError) as e:
            print(f"{Fore.RED}❌ Transform failed: {e}{Style.RESET_ALL}")
            sys.exit(1)


if __name__ == "__main__":
    main()
