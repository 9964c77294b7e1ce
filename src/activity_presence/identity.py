"""Route classified activity to a registered presence application."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from .config import ApplicationIdentity
from .models import ActivityResult, RawWindowSample

CATEGORY_APPLICATIONS: dict[str, str] = {
    "gaming": "games",
    "music": "music",
    "coding": "code",
    "browsing": "web",
    "chat": "messaging",
    "design": "creative",
    "streaming": "creative",
}

DEFAULT_IDENTITY = "default"


@dataclass(frozen=True, slots=True)
class Identity:
    name: str
    client_id: str


def _usable(app: Optional[ApplicationIdentity]) -> bool:
    return app is not None and bool(app.client_id)


def select_identity(
    sample: RawWindowSample,
    result: ActivityResult,
    applications: Mapping[str, ApplicationIdentity],
    default_client_id: str,
) -> Identity:
    """Pick the application a poll should be published under.

    Precedence, highest first:

    1. the ``identity`` named by the matching rule,
    2. an application whose ``processNames`` match the process or title,
    3. the application mapped from the activity category,
    4. the default client.

    Applications without a client id are skipped.
    """
    if result.identity:
        app = applications.get(result.identity)
        if _usable(app):
            return Identity(app.name, app.client_id)

    process = sample.process_name.lower()
    title = sample.window_title.lower()
    for app in applications.values():
        if not _usable(app):
            continue
        for name in app.process_names:
            token = name.lower()
            if token and (token in process or token in title):
                return Identity(app.name, app.client_id)

    mapped = CATEGORY_APPLICATIONS.get(result.category)
    if mapped is not None:
        app = applications.get(mapped)
        if _usable(app):
            return Identity(app.name, app.client_id)

    return Identity(DEFAULT_IDENTITY, default_client_id)
