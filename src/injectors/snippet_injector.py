"""Idempotent GTM snippet rendering for one page render.

One `SnippetInjector` is created per render. It emits:
- the data layer bootstrap and one loader script per container at the head,
- one no-script fallback iframe per container in the body, exactly once per
  render even when several body hooks fire.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from gtm_utils.escaping import esc_attr, js_string_literal, json_for_script
from gtm_utils.settings import InjectorSettings
from injectors.hooks import DATA_LAYER_FILTER, DISABLE_FILTER, HookRegistry

GTM_SCRIPT_URL = "https://www.googletagmanager.com/gtm.js"
GTM_NOSCRIPT_URL = "https://www.googletagmanager.com/ns.html"

DATA_LAYER_TEMPLATE = (
    "<script>window.dataLayer = window.dataLayer || [];"
    "window.dataLayer.push({data_layer});</script>\n"
)

SCRIPT_TEMPLATE = """<!-- Google Tag Manager -->
<script>(function(w,d,s,l,i){{w[l]=w[l]||[];w[l].push({{'gtm.start':
new Date().getTime(),event:'gtm.js'}});var f=d.getElementsByTagName(s)[0],
j=d.createElement(s),dl=l!='dataLayer'?'&l='+l:'';j.async=true;j.src=
'{script_url}?id='+i+dl;f.parentNode.insertBefore(j,f);
}})(window,document,'script','dataLayer',{container_id});</script>
<!-- End Google Tag Manager -->
"""

IFRAME_TEMPLATE = """<!-- Google Tag Manager (noscript) -->
<noscript><iframe src="{noscript_url}?id={container_id}"
height="0" width="0" style="display:none;visibility:hidden"></iframe></noscript>
<!-- End Google Tag Manager (noscript) -->
"""


@dataclass(frozen=True)
class RenderContext:
    """Page context supplied by the host for the data layer."""

    logged_in: bool = False
    post_type: str | None = None
    is_admin: bool = False
    multisite: bool = False
    site_id: int | None = None
    site_name: str | None = None


class SnippetInjector:
    """Render GTM snippets for one page render.

    Args:
        settings: Resolved container IDs and flags.
        context: Page context used to build the data layer.
        hooks: Optional registry used for the data layer and disable filters.
        rendered: Set of container IDs whose fallback iframe was already
            emitted during this render. Must not be shared across renders.
    """

    def __init__(
        self,
        settings: InjectorSettings,
        context: RenderContext | None = None,
        *,
        hooks: HookRegistry | None = None,
        rendered: set[str] | None = None,
    ):
        self.settings = settings
        self.context = context or RenderContext()
        self.hooks = hooks
        self.rendered: set[str] = rendered if rendered is not None else set()

    @property
    def disabled(self) -> bool:
        """Return the disable flag after the `google_tag_manager_disable` filter."""
        if self.hooks is None:
            return self.settings.disabled
        return bool(self.hooks.apply_filters(DISABLE_FILTER, self.settings.disabled))

    @property
    def is_active(self) -> bool:
        return bool(self.settings.container_ids) and not self.disabled

    def build_data_layer(self) -> dict[str, Any]:
        """Return the data layer mapping for the current render, after filters."""
        context = self.context
        data_layer: dict[str, Any] = {"loggedIn": "1" if context.logged_in else "0"}

        if context.post_type and not context.is_admin:
            data_layer["postType"] = context.post_type

        if context.multisite:
            data_layer["siteId"] = "" if context.site_id is None else str(context.site_id)
            data_layer["siteName"] = context.site_name or ""

        if self.hooks is not None:
            data_layer = self.hooks.apply_filters(DATA_LAYER_FILTER, data_layer, context)
        return data_layer

    def render_data_layer(self) -> str:
        """Return the script pushing the data layer onto `window.dataLayer`."""
        if not self.is_active:
            return ""
        return DATA_LAYER_TEMPLATE.format(data_layer=json_for_script(self.build_data_layer()))

    def render_script_tags(self) -> list[str]:
        """Return one loader script per configured container, in configured order."""
        if not self.is_active:
            return []
        return [
            SCRIPT_TEMPLATE.format(
                script_url=GTM_SCRIPT_URL,
                container_id=js_string_literal(container_id),
            )
            for container_id in self.settings.container_ids
        ]

    def render_fallback_iframes(self) -> list[str]:
        """Return no-script iframes for containers not yet rendered in this render."""
        if not self.is_active:
            return []
        fragments: list[str] = []
        for container_id in self.settings.container_ids:
            if container_id in self.rendered:
                continue
            fragments.append(
                IFRAME_TEMPLATE.format(
                    noscript_url=GTM_NOSCRIPT_URL,
                    container_id=esc_attr(container_id),
                ),
            )
            self.rendered.add(container_id)
        return fragments

    def render_head(self) -> str:
        """Head hook callback: data layer followed by the loader scripts."""
        return self.render_data_layer() + "".join(self.render_script_tags())

    def render_body(self) -> str:
        """Body hook callback: fallback iframes not yet emitted."""
        return "".join(self.render_fallback_iframes())
