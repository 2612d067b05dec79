"""
Configuration store for the review pipeline.

Holds the user-editable AppConfig (reviewer persona, style corpus, model
parameters, custom conferences) and persists a full snapshot on every change.
"""

import logging
import threading
from dataclasses import replace
from datetime import date
from typing import Callable, List, Optional

from cspcore.appconfig import AppConfig, default_config, merge_snapshot
from cspcore.conferences import (
    Conference,
    all_conferences,
    find_conference,
    make_custom_conference,
)
from cspcore.errors import ConferenceExistsError, ConferenceNotFoundError
from cspcore.io import CONFIG_KEY, SnapshotStore


logger = logging.getLogger(__name__)


def style_example_entry(text: str, today: Optional[date] = None) -> str:
    """Marker block appended to the style corpus by the "learn" action."""
    stamp = (today or date.today()).strftime("%Y-%m-%d")
    return f'\n\n[User Example added {stamp}]:\n"{text}"'


class ConfigService:
    """
    Single owner of the process-wide AppConfig.

    Readers get an immutable snapshot from get(); every mutation builds a new
    AppConfig, swaps it in and writes the whole object back to the store.
    """

    def __init__(self, store: SnapshotStore, key: str = CONFIG_KEY):
        self.store = store
        self.key = key
        self._lock = threading.Lock()
        self._config = self._load()

    def _load(self) -> AppConfig:
        try:
            snapshot = self.store.read(self.key)
            if snapshot is not None and not isinstance(snapshot, dict):
                raise ValueError(f"expected an object, got {type(snapshot).__name__}")
            return merge_snapshot(snapshot)
        except (OSError, ValueError, TypeError, KeyError) as e:
            logger.error(f"Failed to load config snapshot, using defaults: {e}")
            return default_config()

    def get(self) -> AppConfig:
        return self._config

    def _mutate(self, change: Callable[[AppConfig], AppConfig]) -> AppConfig:
        with self._lock:
            updated = change(self._config)
            self.store.write(self.key, updated.to_dict())
            self._config = updated
        return updated

    def update_profile(self, **changes) -> AppConfig:
        return self._mutate(lambda c: replace(c, user_profile=replace(c.user_profile, **changes)))

    def update_model(self, **changes) -> AppConfig:
        return self._mutate(lambda c: replace(c, model_config=replace(c.model_config, **changes)))

    def set_style_examples(self, text: str) -> AppConfig:
        return self._mutate(lambda c: replace(c, few_shot_examples=text))

    def learn_style(self, text: str, today: Optional[date] = None) -> AppConfig:
        """Append an edited review passage to the style corpus."""
        entry = style_example_entry(text, today)
        logger.info(f"Learning review style from {len(text)} characters")
        return self._mutate(lambda c: replace(c, few_shot_examples=c.few_shot_examples + entry))

    # ---------- conferences ----------

    def conferences(self) -> List[Conference]:
        return all_conferences(self._config.custom_conferences)

    def find_conference(self, conference_id: str) -> Conference:
        return find_conference(conference_id, self._config.custom_conferences)

    def add_conference(self, name: str) -> Conference:
        conference = make_custom_conference(name)

        def change(c: AppConfig) -> AppConfig:
            if any(existing.id == conference.id for existing in all_conferences(c.custom_conferences)):
                raise ConferenceExistsError(f"Conference id already in use: {conference.id}")
            return replace(c, custom_conferences=c.custom_conferences + (conference,))

        self._mutate(change)
        logger.info(f"Added custom conference '{conference.id}'")
        return conference

    def remove_conference(self, conference_id: str) -> bool:
        if not any(c.id == conference_id for c in self._config.custom_conferences):
            return False
        self._mutate(
            lambda c: replace(
                c,
                custom_conferences=tuple(x for x in c.custom_conferences if x.id != conference_id),
            )
        )
        return True

    def set_conference_rules(self, conference_id: str, rules: str) -> Conference:
        """Set screening rules on a user-defined conference."""

        def change(c: AppConfig) -> AppConfig:
            if not any(x.id == conference_id for x in c.custom_conferences):
                raise ConferenceNotFoundError(f"Not a custom conference: {conference_id}")
            return replace(
                c,
                custom_conferences=tuple(
                    replace(x, custom_rules=rules) if x.id == conference_id else x
                    for x in c.custom_conferences
                ),
            )

        updated = self._mutate(change)
        return next(x for x in updated.custom_conferences if x.id == conference_id)
