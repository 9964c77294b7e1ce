"""Classify a foreground window into a presence activity.

Classification is ordered and first-match-wins:

1. priority rules, refined by per-application title parsers,
2. custom rules, taken verbatim,
3. the built-in process table,
4. a generic fallback with a last-chance keyword sweep over the title.

Rule and table comparisons are lower-cased substring tests against the
process name or the window title. Known game executables are matched exactly
and override whatever the steps above produced.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence

from .models import ActivityResult, ClassificationRule, RawWindowSample

DEFAULT_CATEGORY = "app"
DEFAULT_ICON = "default"
IDLE_STATE = "Idle"


@dataclass(frozen=True, slots=True)
class Override:
    """Fields a title parser wants to replace on the base result."""

    state: Optional[str] = None
    details: Optional[str] = None
    icon_key: Optional[str] = None

    def apply(self, result: ActivityResult) -> ActivityResult:
        return replace(
            result,
            state=self.state if self.state is not None else result.state,
            details=self.details if self.details is not None else result.details,
            icon_key=self.icon_key if self.icon_key is not None else result.icon_key,
        )


Extractor = Callable[[str], Optional[Override]]


@dataclass(frozen=True, slots=True)
class Refinement:
    """Title parser for one well-known application.

    ``exact`` tokens must equal the rule token; ``contains`` tokens only need
    to appear inside it.
    """

    name: str
    extract: Extractor
    contains: tuple[str, ...] = ()
    exact: tuple[str, ...] = ()

    def accepts(self, token: str) -> bool:
        token = token.lower()
        return token in self.exact or any(name in token for name in self.contains)


@dataclass(frozen=True, slots=True)
class BuiltinEntry:
    process_token: str
    category: str
    icon: str
    details: str


# --- media player -----------------------------------------------------------

_SPOTIFY_TRACK = re.compile(r"(.+?) - (.+?) - Spotify")


def _media_player(title: str) -> Optional[Override]:
    match = _SPOTIFY_TRACK.search(title)
    if match:
        track = match.group(1).strip()
        artist = match.group(2).strip()
        if track and artist:
            return Override(state=f"{track} by {artist}", details="Listening to Music")
        return Override(state=f"{track} by {artist}")
    lowered = title.strip().lower()
    if lowered == "spotify" or "spotify premium" in lowered:
        return Override(state="Browsing Music", details="Using Spotify")
    return None


# --- team chat --------------------------------------------------------------


def _team_chat(title: str) -> Optional[Override]:
    if " - " in title:
        parts = [part.strip() for part in title.split(" - ")]
        if len(parts) >= 3:
            return Override(state=f"In #{parts[0]} on {parts[1]}")
        return Override(state=f"Chatting in {parts[0]}")
    if "direct" in title.lower():
        return Override(state="In Direct Messages")
    return None


# --- games ------------------------------------------------------------------


def _valorant(title: str) -> Optional[Override]:
    lowered = title.lower()
    if "lobby" in lowered:
        state = "In Lobby"
    elif "match" in lowered:
        state = "In a Match"
    else:
        state = "In Game"
    return Override(state=state, details="Playing VALORANT")


_STEAM_SECTIONS: tuple[tuple[str, str], ...] = (
    ("store", "Browsing the Store"),
    ("library", "Viewing Library"),
    ("community", "Browsing Community"),
)
_STEAM_GAME = re.compile(r"(.+) - Steam$", re.IGNORECASE)


def _distribution_client(title: str) -> Optional[Override]:
    lowered = title.strip().lower()
    for keyword, state in _STEAM_SECTIONS:
        if keyword in lowered:
            return Override(state=state)
    if lowered == "steam":
        return Override(state="In Steam")
    match = _STEAM_GAME.match(title.strip())
    if match:
        return Override(state=f"Playing {match.group(1).strip()}")
    return None


# --- browsers ---------------------------------------------------------------

_YOUTUBE_VIDEO = re.compile(r"(.+) - YouTube", re.IGNORECASE)


def _site_override(title: str) -> Optional[Override]:
    lowered = title.lower()
    if "youtube" in lowered:
        match = _YOUTUBE_VIDEO.search(title)
        state = f"Watching: {match.group(1).strip()}" if match else None
        return Override(state=state, details="Watching YouTube", icon_key="youtube")
    if "twitch" in lowered:
        return Override(details="Watching Twitch", icon_key="twitch")
    if "github" in lowered:
        return Override(details="Browsing GitHub", icon_key="github")
    return None


def _browser(browser_name: str) -> Extractor:
    suffix = re.escape(browser_name)
    with_site = re.compile(rf"(.+) - ([^-]+) - {suffix}$", re.IGNORECASE)
    page_only = re.compile(rf"(.+) - {suffix}$", re.IGNORECASE)

    def extract(title: str) -> Optional[Override]:
        state: Optional[str] = None
        match = with_site.match(title)
        if match:
            state = f"On {match.group(2).strip()}"
        else:
            match = page_only.match(title)
            if match:
                state = f"On {match.group(1).strip()}"

        site = _site_override(title)
        if site is None:
            return Override(state=state) if state is not None else None
        return Override(
            state=site.state if site.state is not None else state,
            details=site.details,
            icon_key=site.icon_key,
        )

    return extract


# --- editors ----------------------------------------------------------------

LANGUAGES: dict[str, str] = {
    "js": "JavaScript",
    "jsx": "JavaScript",
    "ts": "TypeScript",
    "tsx": "TypeScript",
    "py": "Python",
    "java": "Java",
    "kt": "Kotlin",
    "c": "C",
    "h": "C",
    "cpp": "C++",
    "hpp": "C++",
    "cs": "C#",
    "go": "Go",
    "rs": "Rust",
    "rb": "Ruby",
    "php": "PHP",
    "swift": "Swift",
    "html": "HTML",
    "css": "CSS",
    "scss": "SCSS",
    "json": "JSON",
    "md": "Markdown",
    "sql": "SQL",
    "sh": "Shell",
    "yml": "YAML",
    "yaml": "YAML",
}

_FILE_EXTENSION = re.compile(r"\.([A-Za-z][^.\s]*?)(?=\s+-\s|\s*$)")


def _editor(title: str) -> Optional[Override]:
    match = _FILE_EXTENSION.search(title)
    if not match:
        return None
    extension = match.group(1)
    language = LANGUAGES.get(extension.lower(), extension)
    return Override(state=f"Coding in {language}")


REFINEMENTS: tuple[Refinement, ...] = (
    Refinement("media-player", _media_player, contains=("spotify",)),
    Refinement("team-chat", _team_chat, contains=("discord",)),
    Refinement("valorant", _valorant, contains=("valorant",)),
    Refinement("distribution-client", _distribution_client, contains=("steam",)),
    Refinement("chrome", _browser("Google Chrome"), contains=("chrome",)),
    Refinement("firefox", _browser("Mozilla Firefox"), contains=("firefox",)),
    Refinement("edge", _browser("Microsoft Edge"), exact=("msedge", "edge")),
    Refinement("brave", _browser("Brave"), contains=("brave",)),
    Refinement("opera", _browser("Opera"), exact=("opera",)),
    Refinement(
        "editor",
        _editor,
        contains=("vscode", "sublime_text", "notepad++", "pycharm", "cursor"),
        exact=("code", "code - insiders", "vscodium"),
    ),
)

BUILTIN_TABLE: tuple[BuiltinEntry, ...] = (
    BuiltinEntry("spotify", "music", "spotify", "Listening to Music"),
    BuiltinEntry("discord", "chat", "discord", "Chatting on Discord"),
    BuiltinEntry("slack", "chat", "slack", "Chatting on Slack"),
    BuiltinEntry("teams", "chat", "teams", "In Microsoft Teams"),
    BuiltinEntry("valorant", "gaming", "valorant", "Playing VALORANT"),
    BuiltinEntry("steam", "gaming", "steam", "Using Steam"),
    BuiltinEntry("epicgameslauncher", "gaming", "epic", "Using Epic Games"),
    BuiltinEntry("chrome", "browsing", "chrome", "Browsing the Web"),
    BuiltinEntry("firefox", "browsing", "firefox", "Browsing the Web"),
    BuiltinEntry("msedge", "browsing", "edge", "Browsing the Web"),
    BuiltinEntry("brave", "browsing", "brave", "Browsing the Web"),
    BuiltinEntry("opera", "browsing", "opera", "Browsing the Web"),
    BuiltinEntry("code", "coding", "vscode", "Writing Code"),
    BuiltinEntry("pycharm", "coding", "pycharm", "Writing Code"),
    BuiltinEntry("idea64", "coding", "intellij", "Writing Code"),
    BuiltinEntry("sublime_text", "coding", "sublime", "Writing Code"),
    BuiltinEntry("photoshop", "design", "photoshop", "Designing in Photoshop"),
    BuiltinEntry("illustrator", "design", "illustrator", "Designing in Illustrator"),
    BuiltinEntry("figma", "design", "figma", "Designing in Figma"),
    BuiltinEntry("blender", "design", "blender", "Modeling in Blender"),
    BuiltinEntry("obs64", "streaming", "obs", "Streaming"),
    BuiltinEntry("vlc", "watching", "vlc", "Watching a Video"),
    BuiltinEntry("winword", "productivity", "word", "Writing a Document"),
    BuiltinEntry("excel", "productivity", "excel", "Working on a Spreadsheet"),
    BuiltinEntry("powerpnt", "productivity", "powerpoint", "Editing a Presentation"),
    BuiltinEntry("explorer", "app", "windows", "Browsing Files"),
)

GAME_PROCESSES: dict[str, tuple[str, Extractor]] = {
    "valorant-win64-shipping": ("valorant", _valorant),
}

_VIDEO_KEYWORDS = ("youtube", "netflix", "twitch", "prime video", "disney+", "hulu")
_GAME_KEYWORDS = ("game", "minecraft", "fortnite", "league of legends")


def refine(token: str, result: ActivityResult, window_title: str) -> ActivityResult:
    """Apply the first title parser registered for ``token``, if any."""
    for refinement in REFINEMENTS:
        if refinement.accepts(token):
            override = refinement.extract(window_title)
            return override.apply(result) if override else result
    return result


def _from_rule(rule: ClassificationRule, sample: RawWindowSample) -> ActivityResult:
    return ActivityResult(
        category=rule.category,
        icon_key=rule.icon,
        details=rule.details,
        state=sample.window_title,
        identity=rule.identity,
    )


def _first_match(
    rules: Sequence[ClassificationRule], sample: RawWindowSample
) -> Optional[ClassificationRule]:
    for rule in rules:
        if rule.matches(sample):
            return rule
    return None


def _builtin_match(sample: RawWindowSample) -> Optional[ActivityResult]:
    process = sample.process_name.lower()
    for entry in BUILTIN_TABLE:
        if entry.process_token in process:
            return ActivityResult(
                category=entry.category,
                icon_key=entry.icon,
                details=entry.details,
                state=sample.window_title,
            )
    return None


def fallback_result(sample: RawWindowSample) -> ActivityResult:
    title = sample.window_title
    result = ActivityResult(
        category=DEFAULT_CATEGORY,
        icon_key=DEFAULT_ICON,
        details=f"Using {sample.process_name}",
        state=title if len(title) > 2 else IDLE_STATE,
        matched=False,
    )
    lowered = title.lower()
    if any(keyword in lowered for keyword in _VIDEO_KEYWORDS):
        return replace(result, category="watching", icon_key="video", details="Watching Videos")
    if any(keyword in lowered for keyword in _GAME_KEYWORDS):
        return replace(result, category="gaming", icon_key="game", details="Playing a Game")
    return result


def game_override(sample: RawWindowSample, result: ActivityResult) -> ActivityResult:
    entry = GAME_PROCESSES.get(sample.process_name.lower())
    if entry is None:
        return result
    icon, extract = entry
    base = replace(result, category="gaming", icon_key=icon, matched=True, identity=None)
    override = extract(sample.window_title)
    return override.apply(base) if override else base


def _classify_rules(
    sample: RawWindowSample,
    priority_rules: Sequence[ClassificationRule],
    custom_rules: Sequence[ClassificationRule],
) -> ActivityResult:
    rule = _first_match(priority_rules, sample)
    if rule is not None:
        return refine(rule.process_name, _from_rule(rule, sample), sample.window_title)

    rule = _first_match(custom_rules, sample)
    if rule is not None:
        return _from_rule(rule, sample)

    builtin = _builtin_match(sample)
    if builtin is not None:
        return builtin

    return fallback_result(sample)


def classify(
    sample: RawWindowSample,
    priority_rules: Sequence[ClassificationRule] = (),
    custom_rules: Sequence[ClassificationRule] = (),
) -> ActivityResult:
    """Classify ``sample`` against the rule sets and the built-in table."""
    return game_override(sample, _classify_rules(sample, priority_rules, custom_rules))
