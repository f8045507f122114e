"""Action/filter registry for host render lifecycles, and injector wiring.

The host owns a `HookRegistry` per render and fires named hooks as its
template reaches each point. `register_injector` attaches a
`SnippetInjector` to the hooks that correspond to each `InjectionPoint`.
"""

from __future__ import annotations

from collections import defaultdict
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from injectors.snippet_injector import SnippetInjector

DEFAULT_PRIORITY = 10

DATA_LAYER_FILTER = "google_tag_manager_data_layer"
DISABLE_FILTER = "google_tag_manager_disable"


class InjectionPoint(Enum):
    """Named moments in the render lifecycle where snippets may be emitted."""

    HEAD = "head"
    EARLY_BODY = "early_body"
    LATE_BODY = "late_body"


HEAD_HOOKS = ("wp_head", "login_head")
EARLY_BODY_HOOKS = ("after_body_open",)
LATE_BODY_HOOKS = ("wp_footer", "login_footer")
ADMIN_HEAD_HOOK = "admin_head"
ADMIN_BODY_HOOK = "in_admin_header"

INJECTION_POINTS: dict[str, InjectionPoint] = {
    "wp_head": InjectionPoint.HEAD,
    "login_head": InjectionPoint.HEAD,
    ADMIN_HEAD_HOOK: InjectionPoint.HEAD,
    "after_body_open": InjectionPoint.EARLY_BODY,
    ADMIN_BODY_HOOK: InjectionPoint.EARLY_BODY,
    "wp_footer": InjectionPoint.LATE_BODY,
    "login_footer": InjectionPoint.LATE_BODY,
}

# Hooks fired, in order, while rendering each kind of page.
RENDER_SEQUENCES: dict[str, tuple[str, ...]] = {
    "public": ("wp_head", "after_body_open", "wp_footer"),
    "login": ("login_head", "login_footer"),
    "admin": (ADMIN_HEAD_HOOK, ADMIN_BODY_HOOK),
}


class HookRegistry:
    """Named actions and filters with priority ordering.

    Callbacks with the same priority run in registration order.
    """

    def __init__(self) -> None:
        self._actions: dict[str, list[tuple[int, int, Callable[..., Any]]]] = defaultdict(list)
        self._filters: dict[str, list[tuple[int, int, Callable[..., Any]]]] = defaultdict(list)
        self._sequence = 0

    def _add(self, table: dict, name: str, callback: Callable[..., Any], priority: int) -> None:
        if not callable(callback):
            raise TypeError(f"Callback for hook '{name}' must be callable.")
        table[name].append((priority, self._sequence, callback))
        self._sequence += 1

    @staticmethod
    def _ordered(table: dict, name: str) -> list[Callable[..., Any]]:
        return [entry[2] for entry in sorted(table.get(name, []), key=lambda e: (e[0], e[1]))]

    def add_action(
        self, name: str, callback: Callable[..., Any], priority: int = DEFAULT_PRIORITY
    ) -> None:
        """Register `callback` to run when action `name` fires."""
        self._add(self._actions, name, callback, priority)

    def has_action(self, name: str) -> bool:
        return bool(self._actions.get(name))

    def do_action(self, name: str, *args: Any) -> str:
        """Fire action `name` and return the concatenated string output of its callbacks."""
        parts: list[str] = []
        for callback in self._ordered(self._actions, name):
            result = callback(*args)
            if isinstance(result, str):
                parts.append(result)
        return "".join(parts)

    def add_filter(
        self, name: str, callback: Callable[..., Any], priority: int = DEFAULT_PRIORITY
    ) -> None:
        """Register `callback(value, *args)` to transform values passed through filter `name`."""
        self._add(self._filters, name, callback, priority)

    def has_filter(self, name: str) -> bool:
        return bool(self._filters.get(name))

    def apply_filters(self, name: str, value: Any, *args: Any) -> Any:
        for callback in self._ordered(self._filters, name):
            value = callback(value, *args)
        return value


def register_injector(hooks: HookRegistry, injector: SnippetInjector) -> bool:
    """Wire an injector's render operations to the host hooks.

    Head hooks emit the data layer and script tags. Early and late body hooks
    emit the fallback iframes, which the injector de-duplicates per render.
    Admin hooks are only wired when admin injection is enabled.

    An injector created without a registry is bound to `hooks`, so the data
    layer and disable filters registered there apply to it.

    Returns:
        False (registering nothing) when the injector is disabled or has no
        container IDs, True otherwise.

    Raises:
        ValueError: If the injector is already bound to a different registry.
    """
    if injector.hooks is None:
        injector.hooks = hooks
    elif injector.hooks is not hooks:
        raise ValueError("Injector is bound to a different hook registry.")

    if not injector.is_active:
        return False

    for name in HEAD_HOOKS:
        hooks.add_action(name, injector.render_head)

    # Late body hooks act as a fallback when no early body hook fires.
    for name in EARLY_BODY_HOOKS + LATE_BODY_HOOKS:
        hooks.add_action(name, injector.render_body)

    if injector.settings.admin_injection_enabled:
        hooks.add_action(ADMIN_HEAD_HOOK, injector.render_head)
        hooks.add_action(ADMIN_BODY_HOOK, injector.render_body)

    return True
