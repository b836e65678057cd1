"""Dark theme plugin."""

from typing import Any, Dict, Optional

from rich.theme import Theme

from reconf.plugins.api import PluginAPI
from reconf.plugins.contracts import ThemePlugin
from reconf.plugins.utils import validate_config

COLOR = {"type": "string", "pattern": r"^#[0-9a-fA-F]{6}\Z"}
CONFIG_SCHEMA = {
    key: COLOR
    for key in (
        "primary_color", "secondary_color", "accent_color", "text_color", "border_color",
        "error_color", "warning_color", "success_color", "selected_bg", "selected_fg",
    )
}

# Element type -> (bg color key, fg color key)
ELEMENT_COLORS = {
    "list": ("primary", "text"),
    "box": ("primary", "text"),
    "form": ("secondary", "text"),
    "textbox": ("secondary", "text"),
    "textarea": ("secondary", "text"),
    "button": ("accent", "primary"),
}


class DarkThemePlugin(ThemePlugin):
    """Dark color scheme for the terminal UI."""

    def __init__(self, api: PluginAPI):
        super().__init__(api)
        self.theme = self.build_theme()

    async def initialize(self, api: PluginAPI) -> None:
        for problem in validate_config(self.config, CONFIG_SCHEMA):
            api.get_logger().warning(f"[{self.name}] {problem}")
        api.log("Dark theme plugin initialized")
        await api.execute("ui:theme:register", {"name": self.name, "theme": self.theme})

    def build_theme(self) -> Dict[str, Any]:
        """Build the theme description from the plugin config."""
        config = self.config
        colors = {
            "primary": config.get("primary_color"),
            "secondary": config.get("secondary_color"),
            "accent": config.get("accent_color"),
            "text": config.get("text_color"),
            "border": config.get("border_color"),
            "error": config.get("error_color"),
            "warning": config.get("warning_color"),
            "success": config.get("success_color"),
        }
        return {
            "name": self.name,
            "colors": colors,
            "styles": {
                "screen": {"bg": colors["primary"], "fg": colors["text"]},
                "border": {"fg": colors["border"]},
                "selected": {"bg": config.get("selected_bg"), "fg": config.get("selected_fg")},
                "focus": {"border": {"fg": colors["accent"]}},
                "hover": {"bg": colors["secondary"], "fg": colors["text"]},
                "scrollbar": {"bg": colors["secondary"], "fg": colors["accent"]},
            },
        }

    def get_theme(self) -> Dict[str, Any]:
        return self.theme

    def to_rich_theme(self) -> Theme:
        """Translate the colors into ``reconf.*`` rich styles."""
        colors = self.theme["colors"]
        selected = self.theme["styles"]["selected"]
        styles = {
            "reconf.text": _style(colors["text"]),
            "reconf.primary": _style(colors["text"], colors["primary"]),
            "reconf.accent": _style(colors["accent"], bold=True),
            "reconf.border": _style(colors["border"]),
            "reconf.error": _style(colors["error"], bold=True),
            "reconf.warning": _style(colors["warning"]),
            "reconf.success": _style(colors["success"]),
            "reconf.selected": _style(selected.get("fg"), selected.get("bg")),
        }
        return Theme({name: style for name, style in styles.items() if style})

    def apply_theme(self, target: Any) -> None:
        """Apply the theme to a rich Console or to an element tree.

        Element trees are objects with a ``style`` dict, an optional ``type``
        and optional ``children``.
        """
        if target is None:
            self.api.error("No target provided to apply theme")
            return

        if callable(getattr(target, "push_theme", None)):
            target.push_theme(self.to_rich_theme())
        else:
            self._apply_to_element(target)
        self.api.log("Dark theme applied")

    def _apply_to_element(self, element: Any) -> None:
        colors = self.theme["colors"]
        bg_key, fg_key = ELEMENT_COLORS.get(getattr(element, "type", None), ("primary", "text"))

        style = dict(getattr(element, "style", None) or {})
        style.update({
            "bg": colors[bg_key],
            "fg": colors[fg_key],
            "border": {"fg": colors["accent"] if bg_key == "accent" else colors["border"]},
        })
        if getattr(element, "type", None) == "list":
            style["selected"] = {"bg": colors["accent"], "fg": colors["primary"]}
            style["item"] = {"hover": {"bg": colors["secondary"], "fg": colors["text"]}}
        elif getattr(element, "type", None) in ("textbox", "textarea"):
            style["focus"] = {"bg": colors["secondary"], "fg": colors["accent"], "border": {"fg": colors["accent"]}}
        element.style = style

        for child in getattr(element, "children", None) or ():
            self._apply_to_element(child)

    def get_preview(self) -> Dict[str, Any]:
        colors = self.theme["colors"]
        return {
            "name": self.theme["name"],
            "colors": colors,
            "preview": (
                f"Primary: {colors['primary']}\n"
                f"Accent:  {colors['accent']}\n"
                f"Text:    {colors['text']}"
            ),
        }

    async def cleanup(self) -> None:
        self.api.log("Dark theme plugin cleaned up")

    @property
    def hooks(self):
        hooks = dict(super().hooks)
        hooks["ui:theme:preview"] = lambda data, api: self.get_preview()
        return hooks


def _style(fg: Optional[str], bg: Optional[str] = None, bold: bool = False) -> str:
    parts = []
    if bold:
        parts.append("bold")
    if fg:
        parts.append(fg)
    if bg:
        parts.append(f"on {bg}")
    return " ".join(parts)


plugin = DarkThemePlugin
