#!/usr/bin/env python3
"""Inject GTM snippets into static HTML files that don't already have them.

Each file is treated as one page render: head hook output goes before
`</head>`, early body output right after the opening `<body>` tag and late
body output before `</body>`.
"""

from __future__ import annotations

import argparse
import os
import pathlib
import re
import sys

SRC_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from gtm_utils.escaping import esc_attr  # noqa: E402
from gtm_utils.settings import InjectorSettings, load_settings  # noqa: E402
from injectors.hooks import HookRegistry, register_injector  # noqa: E402
from injectors.snippet_injector import GTM_NOSCRIPT_URL, RenderContext, SnippetInjector  # noqa: E402

TARGET_EXTENSIONS = (".html", ".htm")

_BODY_OPEN_RE = re.compile(r"<body\b[^>]*>", re.IGNORECASE)
_HEAD_CLOSE_RE = re.compile(r"</head\s*>", re.IGNORECASE)
_BODY_CLOSE_RE = re.compile(r"</body\s*>", re.IGNORECASE)


def already_injected(content: str, container_ids: list[str]) -> bool:
    """Return True when the page already carries the fallback iframe of every container."""
    return bool(container_ids) and all(
        f"{GTM_NOSCRIPT_URL}?id={esc_attr(cid)}\"" in content for cid in container_ids
    )


def inject_page(
    content: str,
    settings: InjectorSettings,
    context: RenderContext | None = None,
    *,
    skip_early_body: bool = False,
) -> str | None:
    """Return `content` with GTM snippets injected, or None when it cannot be injected.

    Pages without a closing head tag are left alone, as are pages rendered with
    inactive settings.
    """
    head_match = _HEAD_CLOSE_RE.search(content)
    if head_match is None:
        return None

    hooks = HookRegistry()
    injector = SnippetInjector(settings, context, hooks=hooks)
    if not register_injector(hooks, injector):
        return None

    head = hooks.do_action("wp_head")
    head_close = head_match.start()
    content = content[:head_close] + head + content[head_close:]

    body_open = None if skip_early_body else _BODY_OPEN_RE.search(content)
    if body_open:
        early = hooks.do_action("after_body_open")
        content = content[: body_open.end()] + early + content[body_open.end() :]

    late = hooks.do_action("wp_footer")
    body_matches = list(_BODY_CLOSE_RE.finditer(content))
    if not body_matches:
        return content + late
    body_close = body_matches[-1].start()
    return content[:body_close] + late + content[body_close:]


def inject_directory(
    directory: str,
    settings: InjectorSettings,
    context: RenderContext | None = None,
    *,
    skip_early_body: bool = False,
) -> tuple[int, int]:
    """Inject snippets into every HTML file below `directory`.

    Returns:
        Tuple of (files_processed, files_skipped).
    """
    files_processed = 0
    files_skipped = 0

    for root, _, files in os.walk(directory):
        for filename in sorted(files):
            if not filename.lower().endswith(TARGET_EXTENSIONS):
                continue

            filepath = os.path.join(root, filename)
            try:
                with open(filepath, "r", encoding="utf-8") as f:
                    content = f.read()
            except (UnicodeDecodeError, OSError) as error:
                print(f"Skipping {filepath}: {error}")
                files_skipped += 1
                continue

            if already_injected(content, settings.container_ids):
                files_skipped += 1
                continue

            modified = inject_page(
                content,
                settings,
                context,
                skip_early_body=skip_early_body,
            )
            if modified is None:
                files_skipped += 1
                continue

            with open(filepath, "w", encoding="utf-8") as f:
                f.write(modified)

            files_processed += 1

    return files_processed, files_skipped


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Inject Google Tag Manager snippets into a directory of static HTML files.",
    )
    parser.add_argument("directory", help="Directory containing .html/.htm files.")
    parser.add_argument(
        "--container",
        help=(
            "Comma-separated GTM container IDs. Overrides GOOGLE_TAG_MANAGER_CONTAINER "
            "and the network options file."
        ),
    )
    parser.add_argument(
        "--config-path",
        help="Path to the network options YAML. Default: config/gtm.yaml if present.",
    )
    parser.add_argument("--post-type", help="Content type to report in the data layer.")
    parser.add_argument(
        "--skip-early-body",
        action="store_true",
        help="Place fallback iframes before </body> instead of after <body>.",
    )
    return parser.parse_args()


def main():
    args = parse_args()

    if not os.path.isdir(args.directory):
        print(f"Error: {args.directory} is not a directory")
        sys.exit(1)

    try:
        settings = load_settings(args.container, args.config_path)
        if not settings.container_ids or settings.disabled:
            print("GTM injection is disabled or no container is configured; nothing to do.")
            return

        processed, skipped = inject_directory(
            args.directory,
            settings,
            RenderContext(post_type=args.post_type),
            skip_early_body=args.skip_early_body,
        )
        print(f"Injected GTM snippets into {processed} HTML files ({skipped} skipped)")
    except Exception as error:
        print(f"Error: {error}")
        raise


if __name__ == "__main__":
    main()
