from __future__ import annotations

import json
import re

from gtm_utils.settings import InjectorSettings, parse_container_ids
from injectors.hooks import DATA_LAYER_FILTER, DISABLE_FILTER, HookRegistry
from injectors.snippet_injector import RenderContext, SnippetInjector


def _injector(raw: str, context: RenderContext | None = None, **kwargs) -> SnippetInjector:
    settings = InjectorSettings(container_ids=parse_container_ids(raw))
    return SnippetInjector(settings, context, **kwargs)


def _data_layer_payload(fragment: str) -> dict:
    match = re.search(r"window\.dataLayer\.push\((.*)\);</script>", fragment)
    assert match, fragment
    return json.loads(match.group(1))


def test_fallback_iframes_rendered_once_across_repeated_calls() -> None:
    injector = _injector("GTM-AAA,GTM-BBB")

    first = injector.render_fallback_iframes()
    second = injector.render_fallback_iframes()

    combined = "".join(first + second)
    assert len(first) == 2
    assert second == []
    assert combined.count("ns.html?id=GTM-AAA") == 1
    assert combined.count("ns.html?id=GTM-BBB") == 1
    assert injector.rendered == {"GTM-AAA", "GTM-BBB"}


def test_fallback_iframes_respect_host_supplied_rendered_set() -> None:
    rendered = {"GTM-AAA"}
    injector = _injector("GTM-AAA,GTM-BBB", rendered=rendered)

    fragments = injector.render_fallback_iframes()

    assert len(fragments) == 1
    assert "GTM-BBB" in fragments[0]
    assert rendered == {"GTM-AAA", "GTM-BBB"}


def test_separate_renders_do_not_share_rendered_state() -> None:
    settings = InjectorSettings(container_ids=["GTM-AAA"])
    first_page = SnippetInjector(settings)
    second_page = SnippetInjector(settings)

    assert len(first_page.render_fallback_iframes()) == 1
    assert len(second_page.render_fallback_iframes()) == 1


def test_empty_or_whitespace_configuration_renders_nothing() -> None:
    for raw in ("", "   ", " , ,"):
        injector = _injector(raw)
        assert injector.render_data_layer() == ""
        assert injector.render_script_tags() == []
        assert injector.render_fallback_iframes() == []


def test_script_tags_one_per_container_in_configured_order() -> None:
    injector = _injector("GTM-X")
    fragments = injector.render_script_tags()
    assert len(fragments) == 1
    assert "GTM-X" in fragments[0]
    assert "gtm.start" in fragments[0]
    assert "https://www.googletagmanager.com/gtm.js?id=" in fragments[0]

    multi = _injector("GTM-A,GTM-B,GTM-A").render_script_tags()
    assert ['"GTM-A"' in f for f in multi] == [True, False, True]
    assert '"GTM-B"' in multi[1]


def test_script_tags_are_unconditional_per_call() -> None:
    injector = _injector("GTM-A,GTM-B")
    assert len(injector.render_script_tags()) == 2
    assert len(injector.render_script_tags()) == 2
    assert injector.rendered == set()


def test_script_tag_escapes_container_id() -> None:
    hostile = 'GTM-X"</script><script>alert(1)//'
    injector = SnippetInjector(InjectorSettings(container_ids=[hostile]))

    fragment = injector.render_script_tags()[0]

    assert fragment.count("</script>") == 1
    assert "<script>alert(1)" not in fragment
    assert '\\"' in fragment


def test_fallback_iframe_escapes_container_id_attribute() -> None:
    hostile = 'GTM-X" onload="alert(1)'
    injector = SnippetInjector(InjectorSettings(container_ids=[hostile]))

    fragment = injector.render_fallback_iframes()[0]

    assert 'onload="alert(1)' not in fragment
    assert "GTM-X&quot; onload=&quot;alert(1)" in fragment


def test_data_layer_basic_fields() -> None:
    injector = _injector("GTM-A", RenderContext(logged_in=True, post_type="page"))

    fragment = injector.render_data_layer()

    assert fragment.startswith("<script>window.dataLayer = window.dataLayer || [];")
    assert _data_layer_payload(fragment) == {"loggedIn": "1", "postType": "page"}


def test_data_layer_omits_post_type_in_admin() -> None:
    injector = _injector("GTM-A", RenderContext(post_type="post", is_admin=True))
    assert injector.build_data_layer() == {"loggedIn": "0"}


def test_data_layer_site_fields_only_in_multisite() -> None:
    multi = _injector("GTM-A", RenderContext(multisite=True, site_id=3, site_name="Blog"))
    single = _injector("GTM-A", RenderContext(site_id=3, site_name="Blog"))

    assert multi.build_data_layer() == {"loggedIn": "0", "siteId": "3", "siteName": "Blog"}
    assert "siteId" not in single.build_data_layer()
    assert "siteName" not in single.build_data_layer()


def test_data_layer_filter_can_transform_mapping() -> None:
    hooks = HookRegistry()

    def add_language(data_layer, context):
        data_layer = dict(data_layer)
        data_layer["language"] = "de"
        data_layer.pop("loggedIn")
        return data_layer

    hooks.add_filter(DATA_LAYER_FILTER, add_language)
    injector = _injector("GTM-A", hooks=hooks)

    assert _data_layer_payload(injector.render_data_layer()) == {"language": "de"}


def test_data_layer_does_not_touch_rendered_set() -> None:
    injector = _injector("GTM-A")
    injector.render_data_layer()
    assert injector.rendered == set()


def test_data_layer_escapes_script_terminators() -> None:
    injector = _injector("GTM-A", RenderContext(multisite=True, site_id=1, site_name="</script>"))

    fragment = injector.render_data_layer()

    assert fragment.count("</script>") == 1
    assert _data_layer_payload(fragment)["siteName"] == "</script>"


def test_disabled_settings_render_nothing() -> None:
    settings = InjectorSettings(container_ids=["GTM-A"], disabled=True)
    injector = SnippetInjector(settings)

    assert injector.is_active is False
    assert injector.render_head() == ""
    assert injector.render_body() == ""


def test_disable_filter_overrides_flag() -> None:
    hooks = HookRegistry()
    hooks.add_filter(DISABLE_FILTER, lambda disabled: not disabled)

    enabled_by_filter = SnippetInjector(
        InjectorSettings(container_ids=["GTM-A"], disabled=True),
        hooks=hooks,
    )
    disabled_by_filter = SnippetInjector(
        InjectorSettings(container_ids=["GTM-A"]),
        hooks=hooks,
    )

    assert enabled_by_filter.is_active is True
    assert disabled_by_filter.render_script_tags() == []


def test_render_head_emits_data_layer_before_scripts() -> None:
    head = _injector("GTM-A,GTM-B").render_head()
    assert head.index("window.dataLayer.push") < head.index('"GTM-A"') < head.index('"GTM-B"')
