#!/usr/bin/env python3
"""
Render the GTM snippets a single page would receive, keyed by render hook.
"""
import argparse
import json
import pathlib
import sys
from typing import Dict

SRC_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from gtm_utils.helpers import ensure_output_directory  # noqa: E402
from gtm_utils.settings import InjectorSettings, load_settings  # noqa: E402
from injectors.hooks import (  # noqa: E402
    INJECTION_POINTS,
    RENDER_SEQUENCES,
    HookRegistry,
    InjectionPoint,
    register_injector,
)
from injectors.snippet_injector import RenderContext, SnippetInjector  # noqa: E402


def render_page(
    settings: InjectorSettings,
    context: RenderContext,
    *,
    page: str = "public",
    skip_early_body: bool = False,
) -> Dict[str, str]:
    """Fire the hooks of one page render and collect each hook's output.

    A fresh registry and injector are used per call so fallback iframes are
    de-duplicated within this render only.
    """
    if page not in RENDER_SEQUENCES:
        raise ValueError(f"page must be one of: {', '.join(sorted(RENDER_SEQUENCES))}")

    hooks = HookRegistry()
    injector = SnippetInjector(settings, context, hooks=hooks)
    register_injector(hooks, injector)

    output: Dict[str, str] = {}
    for hook_name in RENDER_SEQUENCES[page]:
        if skip_early_body and INJECTION_POINTS[hook_name] is InjectionPoint.EARLY_BODY:
            continue
        output[hook_name] = hooks.do_action(hook_name)
    return output


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render Google Tag Manager snippets for one page, keyed by render hook.",
    )
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
    parser.add_argument(
        "--page",
        choices=sorted(RENDER_SEQUENCES),
        default="public",
        help="Kind of page to render: public, login, or admin. Default: public",
    )
    parser.add_argument(
        "--logged-in",
        action="store_true",
        help="Render for an authenticated visitor.",
    )
    parser.add_argument("--post-type", help="Content type of the rendered page, e.g. 'post'.")
    parser.add_argument(
        "--multisite",
        action="store_true",
        help="Render as part of a multi-site install (adds siteId/siteName to the data layer).",
    )
    parser.add_argument("--site-id", type=int, help="Current site ID (with --multisite).")
    parser.add_argument("--site-name", help="Current site name (with --multisite).")
    parser.add_argument(
        "--skip-early-body",
        action="store_true",
        help="Do not fire the early body hook, so iframes fall back to the late body hook.",
    )
    parser.add_argument(
        "--output",
        help="Optional path to write the results as JSON. Defaults to printing to stdout.",
    )
    return parser.parse_args()


def main():
    args = parse_args()

    try:
        settings = load_settings(args.container, args.config_path)
        if not settings.container_ids:
            print("No GTM container configured; nothing to render.")
            return

        context = RenderContext(
            logged_in=args.logged_in,
            post_type=args.post_type,
            is_admin=args.page == "admin",
            multisite=args.multisite,
            site_id=args.site_id,
            site_name=args.site_name,
        )
        rendered = render_page(
            settings,
            context,
            page=args.page,
            skip_early_body=args.skip_early_body,
        )

        payload = {"containers": settings.container_ids, "page": args.page, "hooks": rendered}
        output = json.dumps(payload, indent=2, ensure_ascii=False)

        if args.output:
            ensure_output_directory(args.output)
            with open(args.output, "w", encoding="utf-8") as handle:
                handle.write(output)
            print(f"Wrote GTM snippets to {args.output}")
        else:
            print(output)
    except Exception as error:
        print(f"Error: {error}")
        raise


if __name__ == "__main__":
    main()
