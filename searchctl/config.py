"""Profile and configuration models, and YAML storage for them."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class AWSIAM:
    """AWS IAM credentials used to sign requests."""

    profile_name: str = ""
    service_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"profile_name": self.profile_name, "service_name": self.service_name}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AWSIAM:
        data = data or {}
        return cls(
            profile_name=data.get("profile_name") or "",
            service_name=data.get("service_name") or "",
        )


@dataclass
class Trust:
    """Certificate paths used for client certificate authentication."""

    client_certificate_file_path: str | None = None
    client_key_file_path: str | None = None
    ca_file_path: str | None = None

    _KEYS = (
        ("client_certificate", "client_certificate_file_path"),
        ("client_key", "client_key_file_path"),
        ("ca_certificate", "ca_file_path"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            key: getattr(self, attr)
            for key, attr in self._KEYS
            if getattr(self, attr) is not None
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Trust:
        data = data or {}
        return cls(**{attr: data.get(key) for key, attr in cls._KEYS})


@dataclass
class Profile:
    """A named collection of settings and credentials for a cluster."""

    name: str = ""
    endpoint: str = ""
    user_name: str = ""
    password: str = ""
    aws: AWSIAM | None = None
    max_retry: int | None = None
    timeout: int | None = None
    certificate: Trust | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the profile as a plain mapping, leaving out unset fields."""
        result: dict[str, Any] = {"name": self.name, "endpoint": self.endpoint}
        if self.user_name:
            result["user"] = self.user_name
        if self.password:
            result["password"] = self.password
        if self.aws is not None:
            result["aws_iam"] = self.aws.to_dict()
        if self.max_retry is not None:
            result["max_retry"] = self.max_retry
        if self.timeout is not None:
            result["timeout"] = self.timeout
        if self.certificate is not None:
            result["certificate"] = self.certificate.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Profile:
        """Build a profile from a plain mapping."""
        aws = data.get("aws_iam")
        certificate = data.get("certificate")
        return cls(
            name=data.get("name") or "",
            endpoint=data.get("endpoint") or "",
            user_name=data.get("user") or "",
            password=data.get("password") or "",
            aws=AWSIAM.from_dict(aws) if aws is not None else None,
            max_retry=data.get("max_retry"),
            timeout=data.get("timeout"),
            certificate=Trust.from_dict(certificate) if certificate is not None else None,
        )


@dataclass
class Config:
    """The contents of a configuration file."""

    profiles: list[Profile] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"profiles": [p.to_dict() for p in self.profiles]}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        data = data or {}
        return cls(profiles=[Profile.from_dict(p) for p in data.get("profiles") or []])


class ConfigStore:
    """Reads and writes a configuration file in YAML."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def read(self) -> Config:
        """Load the configuration file; a missing file raises FileNotFoundError."""
        with self.path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
        if data is not None and not isinstance(data, dict):
            raise ValueError(f"invalid configuration in {self.path}")
        return Config.from_dict(data)

    def write(self, config: Config) -> None:
        """Overwrite the configuration file with the given configuration."""
        contents = yaml.safe_dump(config.to_dict(), sort_keys=False)
        with self.path.open("w", encoding="utf-8") as handle:
            handle.write(contents)
            handle.flush()
            os.fsync(handle.fileno())