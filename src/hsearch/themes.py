"""Custom theme definitions for hsearch.

hsearch draws a small block under the shell prompt rather than a full
screen, so its default theme stays close to a plain dark terminal: near
black background, light text, and a single amber accent for matched
characters and the selection marker.
"""

from textual.theme import Theme

HSEARCH_THEME = Theme(
    name="hsearch",
    background="#121212",
    surface="#1c1c1c",
    panel="#262626",
    foreground="#dadada",
    primary="#d7a84a",
    secondary="#8a8a8a",
    accent="#ffcf5c",
    success="#87af5f",
    warning="#d7a84a",
    error="#d75f5f",
    dark=True,
    variables={
        "footer-background": "#1c1c1c",
        "footer-key-foreground": "#d7a84a",
        "footer-description-foreground": "#8a8a8a",
        "border": "#3a3a3a",
        "border-blurred": "#303030",
    },
)

# All custom themes to register
CUSTOM_THEMES = [HSEARCH_THEME]
