"""Management of named profiles stored in a configuration file."""

from __future__ import annotations

import os

from .config import ConfigStore, Profile

DEFAULT_PROFILE_NAME = "default"
PROFILE_ENV_VAR = "OPENSEARCH_PROFILE"


class ProfileNotFoundError(LookupError):
    """Raised when a requested profile does not exist."""


class ProfileController:
    """Creates, lists, deletes and selects profiles."""

    def __init__(self, store: ConfigStore) -> None:
        self.store = store

    def get_profiles(self) -> list[Profile]:
        return self.store.read().profiles

    def get_profile_names(self) -> list[str]:
        return [p.name for p in self.get_profiles()]

    def get_profiles_map(self) -> dict[str, Profile]:
        return {p.name: p for p in self.get_profiles()}

    def create_profile(self, profile: Profile) -> None:
        """Append a profile to the configuration and save it."""
        config = self.store.read()
        config.profiles.append(profile)
        self.store.write(config)

    def delete_profiles(self, names: list[str]) -> None:
        """Remove the named profiles; unknown names are reported after saving."""
        profiles = self.get_profiles_map()
        missing = []
        for name in names:
            if profiles.pop(name, None) is None:
                missing.append(name)
        config = self.store.read()
        config.profiles = list(profiles.values())
        self.store.write(config)
        if missing:
            raise ProfileNotFoundError(f"no profiles found for: {', '.join(missing)}")

    def get_profile_for_execution(self, name: str) -> Profile | None:
        """Select the profile for a command.

        An explicit name wins, then the environment variable, then the
        profile named ``default``. Returns None if no default exists.
        """
        profiles = self.get_profiles_map()
        if name:
            return self._lookup(profiles, name)
        env_name = os.environ.get(PROFILE_ENV_VAR)
        if env_name is not None:
            return self._lookup(profiles, env_name)
        return profiles.get(DEFAULT_PROFILE_NAME)

    @staticmethod
    def _lookup(profiles: dict[str, Profile], name: str) -> Profile:
        try:
            return profiles[name]
        except KeyError:
            raise ProfileNotFoundError(f"profile '{name}' does not exist") from None