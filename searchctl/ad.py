"""Controller for the Anomaly Detection plugin: creating and managing detectors."""

from __future__ import annotations

import json
import re
import sys
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Protocol, TextIO

from .platform import PlatformController


class DetectorError(Exception):
    """Raised when a detector operation cannot be carried out."""


class ADGateway(Protocol):
    def start_detector(self, detector_id: str) -> None: ...

    def stop_detector(self, detector_id: str) -> str | None: ...

    def delete_detector(self, detector_id: str) -> None: ...

    def get_detector(self, detector_id: str) -> bytes: ...

    def create_detector(self, payload: dict[str, Any]) -> bytes: ...

    def search_detector(self, payload: dict[str, Any]) -> bytes: ...

    def update_detector(self, detector_id: str, payload: dict[str, Any]) -> None: ...


_UNIT_BY_SUFFIX = {"m": "Minutes"}
_SUFFIX_BY_UNIT = {unit.lower(): suffix for suffix, unit in _UNIT_BY_SUFFIX.items()}
_INTERVAL_PATTERN = re.compile(r"^(\d+)([A-Za-z]+)$")


def _parse_interval(value: str) -> dict[str, Any]:
    match = _INTERVAL_PATTERN.match(value.strip())
    if match is None or match.group(2).lower() not in _UNIT_BY_SUFFIX:
        raise DetectorError(f"invalid interval '{value}': expected a number of minutes such as 5m")
    unit = _UNIT_BY_SUFFIX[match.group(2).lower()]
    return {"period": {"interval": int(match.group(1)), "unit": unit}}


def _format_interval(data: dict[str, Any] | None) -> str:
    period = (data or {}).get("period") or {}
    unit = str(period.get("unit", ""))
    suffix = _SUFFIX_BY_UNIT.get(unit.lower())
    if suffix is None:
        raise DetectorError(f"unsupported interval unit '{unit}'")
    return f"{period.get('interval', 0)}{suffix}"


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass
class Feature:
    """A feature of a detector, with its aggregation query."""

    name: str
    enabled: bool
    aggregation_query: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "feature_name": self.name,
            "feature_enabled": self.enabled,
            "aggregation_query": self.aggregation_query,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Feature:
        return cls(
            name=data.get("feature_name") or "",
            enabled=bool(data.get("feature_enabled")),
            aggregation_query=data.get("aggregation_query") or {},
        )


@dataclass
class FeatureRequest:
    """A feature as a user describes it: aggregation types over fields."""

    aggregation_type: list[str]
    enabled: bool
    field: list[str]

    def to_features(self) -> list[Feature]:
        if len(self.aggregation_type) != len(self.field):
            raise DetectorError("each aggregation type needs exactly one field")
        return [
            Feature(
                name=f"{aggregation}_{name}",
                enabled=self.enabled,
                aggregation_query={f"{aggregation}_{name}": {aggregation: {"field": name}}},
            )
            for aggregation, name in zip(self.aggregation_type, self.field)
        ]


def _detector_payload(
    name: str,
    description: str,
    time_field: str,
    index: list[str],
    features: list[Feature],
    query_filter: dict[str, Any] | None,
    interval: str,
    delay: str,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": name,
        "description": description,
        "time_field": time_field,
        "indices": list(index),
        "feature_attributes": [f.to_dict() for f in features],
    }
    if query_filter is not None:
        payload["filter_query"] = query_filter
    payload["detection_interval"] = _parse_interval(interval)
    payload["window_delay"] = _parse_interval(delay)
    return payload


@dataclass
class CreateDetectorRequest:
    """A user's description of the detector to create."""

    name: str
    description: str
    time_field: str
    index: list[str]
    features: list[FeatureRequest]
    filter: dict[str, Any] | None
    interval: str
    delay: str
    start: bool = False
    partition_field: str | None = None

    def validate(self) -> None:
        if not self.name:
            raise DetectorError("name field cannot be empty")
        if not self.features:
            raise DetectorError("features cannot be empty")
        if not self.index or not self.index[0]:
            raise DetectorError("index field cannot be empty and it should have at least one valid index")
        if not self.interval:
            raise DetectorError("interval field cannot be empty")

    def to_payload(self) -> dict[str, Any]:
        features = [f for request in self.features for f in request.to_features()]
        return _detector_payload(
            self.name, self.description, self.time_field, self.index,
            features, self.filter, self.interval, self.delay,
        )


@dataclass(frozen=True)
class Detector:
    """A detector's identity."""

    id: str
    name: str


@dataclass
class DetectorOutput:
    """A detector's configuration as shown to a user."""

    id: str
    name: str
    description: str
    time_field: str
    index: list[str]
    features: list[Feature]
    filter: dict[str, Any] | None
    interval: str
    delay: str
    last_updated_at: int
    schema_version: int

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> DetectorOutput:
        detector = data.get("anomaly_detector") or {}
        return cls(
            id=data.get("_id") or "",
            name=detector.get("name") or "",
            description=detector.get("description") or "",
            time_field=detector.get("time_field") or "",
            index=list(detector.get("indices") or []),
            features=[Feature.from_dict(f) for f in detector.get("feature_attributes") or []],
            filter=detector.get("filter_query"),
            interval=_format_interval(detector.get("detection_interval")),
            delay=_format_interval(detector.get("window_delay")),
            last_updated_at=int(detector.get("last_update_time") or 0),
            schema_version=int(detector.get("schema_version") or 0),
        )


@dataclass
class UpdateDetectorUserInput:
    """An edited detector configuration to be saved."""

    id: str
    name: str
    description: str
    time_field: str
    index: list[str]
    features: list[Feature] = field(default_factory=list)
    filter: dict[str, Any] | None = None
    interval: str = ""
    delay: str = ""
    last_updated_at: int = 0
    schema_version: int = 0

    def to_payload(self) -> dict[str, Any]:
        return _detector_payload(
            self.name, self.description, self.time_field, self.index,
            self.features, self.filter, self.interval, self.delay,
        )


def build_compound_query(field: str, value: Any, user_filter: dict[str, Any] | None) -> dict[str, Any]:
    """Combine a term filter on one field value with the user's own filter."""
    leaf = {"bool": {"filter": {"term": {field: _format_value(value)}}}}
    if user_filter is None:
        return leaf
    return {"bool": {"must": [leaf, user_filter]}}


def process_entity_error(error: Exception) -> Exception:
    """Return an error carrying the reason from a JSON error body, or the error itself."""
    try:
        data = json.loads(str(error))
    except ValueError:
        return error
    if not isinstance(data, dict):
        return error
    body = data.get("error")
    reason = body.get("reason") if isinstance(body, dict) else None
    if isinstance(reason, str) and reason:
        return DetectorError(reason)
    return error


class _Progress:
    """A text progress bar that draws only when enabled."""

    _WIDTH = 30

    def __init__(self, total: int, out: TextIO, enabled: bool) -> None:
        self.total = total
        self.count = 0
        self.out = out
        self.enabled = enabled

    def __enter__(self) -> _Progress:
        self._render()
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self.enabled:
            self.out.write("\n")
            self.out.flush()

    def advance(self) -> None:
        self.count += 1
        self._render()

    def _render(self) -> None:
        if not self.enabled:
            return
        ratio = self.count / self.total if self.total else 1.0
        filled = int(self._WIDTH * ratio)
        bar = "=" * filled + "_" * (self._WIDTH - filled)
        self.out.write(f"\r{int(ratio * 100):3d}% [{bar}] {self.count} / {self.total}")
        self.out.flush()


class AnomalyDetectorController:
    """Creates, starts, stops, fetches, updates and deletes detectors."""

    def __init__(
        self,
        reader: TextIO | None,
        platform: PlatformController,
        gateway: ADGateway,
        output: TextIO | None = None,
    ) -> None:
        self.reader = reader
        self.platform = platform
        self.gateway = gateway
        self.output = output

    @property
    def _out(self) -> TextIO:
        return self.output if self.output is not None else sys.stdout

    @property
    def _in(self) -> TextIO:
        return self.reader if self.reader is not None else sys.stdin

    def _print(self, *values: object, end: str = "\n") -> None:
        print(*values, end=end, file=self._out, flush=True)

    def _ask_for_confirmation(self, message: str | None) -> bool:
        if message is None:
            return True
        if message:
            self._print(message, end="")
        while True:
            line = self._in.readline()
            words = line.split()
            if not line:
                reason = "EOF"
            elif not words:
                reason = "unexpected newline"
            elif len(words) > 1:
                reason = "expected newline"
            else:
                answer = words[0].lower()
                if answer in ("y", "yes"):
                    return True
                if answer in ("n", "no"):
                    return False
                self._print("please type (y)es or (n)o and then press enter:", end="")
                continue
            raise DetectorError(f"failed to accept value from user due to {reason}")

    def start_detector(self, detector_id: str) -> None:
        if not detector_id:
            raise DetectorError(f"detector Id: {detector_id} cannot be empty")
        self.gateway.start_detector(detector_id)

    def stop_detector(self, detector_id: str) -> None:
        if not detector_id:
            raise DetectorError(f"detector Id: {detector_id} cannot be empty")
        self.gateway.stop_detector(detector_id)

    def delete_detector(self, detector_id: str, interactive: bool, force: bool) -> None:
        """Delete a detector, stopping it first when forced."""
        if not detector_id:
            raise DetectorError("detector Id cannot be empty")
        if interactive and not self._ask_for_confirmation(
            f"opensearch-cli will delete detector: {detector_id} . Do you want to proceed? Y/N "
        ):
            return
        if force:
            response = self.gateway.stop_detector(detector_id)
            if interactive:
                self._print(response)
        self.gateway.delete_detector(detector_id)

    def get_detector(self, detector_id: str) -> DetectorOutput:
        if not detector_id:
            raise DetectorError(f"detector Id: {detector_id} cannot be empty")
        data = json.loads(self.gateway.get_detector(detector_id))
        if not isinstance(data, dict):
            raise DetectorError("unexpected detector response")
        return DetectorOutput.from_response(data)

    def create_anomaly_detector(self, request: CreateDetectorRequest) -> str:
        """Create a detector and return its id, starting it if requested."""
        request.validate()
        payload = request.to_payload()
        try:
            response = self.gateway.create_detector(payload)
        except Exception as err:
            processed = process_entity_error(err)
            if processed is err:
                raise
            raise processed from err
        data = json.loads(response)
        if not isinstance(data, dict) or data.get("_id") is None:
            raise DetectorError("create response has no detector id")
        detector_id = _format_value(data["_id"])
        if not request.start:
            return detector_id
        try:
            self.start_detector(detector_id)
        except Exception as err:
            raise DetectorError(
                f"detector is created with id: {detector_id}, but failed to start due to {err}"
            ) from err
        return detector_id

    def _cleanup_created_detectors(self, detectors: list[Detector]) -> None:
        undeleted = []
        for detector in detectors:
            try:
                self.delete_detector(detector.id, False, True)
            except Exception:
                undeleted.append(detector)
        if undeleted:
            self._print(
                "failed to clean-up created detectors. Please clean up manually following detectors: ",
                ", ".join(d.name for d in undeleted),
            )

    def create_multi_entity_anomaly_detector(
        self, request: CreateDetectorRequest, interactive: bool, display: bool
    ) -> list[str] | None:
        """Create one detector per distinct value of the partition field.

        Returns the names of the created detectors, or None if the user declined.
        """
        if not request.partition_field:
            return [self.create_anomaly_detector(request)]
        partition_field = request.partition_field
        values = [
            value
            for index in request.index
            for value in self.platform.get_distinct_values(index, partition_field)
        ]
        if not values:
            raise DetectorError(
                f"failed to get values for partition field: {partition_field}, "
                f"check whether any data is available in index [{' '.join(request.index)}]"
            )
        if interactive and not self._ask_for_confirmation(
            f"opensearch-cli will create {len(values)} detector(s). Do you want to proceed? "
            "please type (y)es or (n)o and then press enter:"
        ):
            return None
        created: list[Detector] = []
        with _Progress(len(values), self._out, display) as progress:
            for value in values:
                entity_request = replace(
                    request,
                    name=f"{request.name}-{_format_value(value)}",
                    filter=build_compound_query(partition_field, value, request.filter),
                )
                try:
                    detector_id = self.create_anomaly_detector(entity_request)
                except Exception:
                    self._cleanup_created_detectors(created)
                    raise
                created.append(Detector(detector_id, entity_request.name))
                progress.advance()
        return [d.name for d in created]

    def search_detector_by_name(self, name: str) -> list[Detector]:
        if not name:
            raise DetectorError("detector name cannot be empty")
        response = json.loads(self.gateway.search_detector({"query": {"match": {"name": name}}}))
        if not isinstance(response, dict):
            raise DetectorError("unexpected search response")
        hits = (response.get("hits") or {}).get("hits") or []
        return [
            Detector(id=hit.get("_id") or "", name=(hit.get("_source") or {}).get("name") or "")
            for hit in hits
        ]

    def _get_detectors(self, method: str, pattern: str, warning: bool) -> list[Detector] | None:
        if not pattern:
            raise DetectorError("name cannot be empty")
        matched = self.search_detector_by_name(pattern)
        if not matched:
            self._print(f"no detectors matched by name {pattern}")
            return None
        if not warning:
            return matched
        self._print(f"{len(matched)} detectors matched by name {pattern}")
        for detector in matched:
            self._print(detector.name)
        if not self._ask_for_confirmation(
            f"opensearch-cli will {method} above matched detector(s). Do you want to proceed? Y/N "
        ):
            return None
        return matched

    def _apply_to_matched(
        self, detectors: list[Detector], action: Callable[[str], None], display: bool
    ) -> list[str]:
        failed = []
        with _Progress(len(detectors), self._out, display) as progress:
            for detector in detectors:
                try:
                    action(detector.id)
                except Exception as err:
                    failed.append(f"{detector.name} \t Reason: {err}")
                    continue
                progress.advance()
        return failed

    def _process_detector_by_action(
        self, pattern: str, action: str, func: Callable[[str], None], display: bool, warning: bool
    ) -> None:
        matched = self._get_detectors(action, pattern, warning)
        if matched is None:
            return
        failed = self._apply_to_matched(matched, func, display)
        if failed:
            self._print(f"\nfailed to {action} {len(failed)} following detector(s)")
            for line in failed:
                self._print(line)

    def start_detector_by_name(self, pattern: str, display: bool) -> None:
        self._process_detector_by_action(pattern, "start", self.start_detector, display, True)

    def stop_detector_by_name(self, pattern: str, display: bool) -> None:
        self._process_detector_by_action(pattern, "stop", self.stop_detector, display, True)

    def delete_detector_by_name(self, name: str, force: bool, display: bool) -> None:
        matched = self._get_detectors("delete", name, True)
        if matched is None:
            return
        failed = self._apply_to_matched(
            matched, lambda detector_id: self.delete_detector(detector_id, False, force), display
        )
        if failed:
            self._print(f"failed to delete {len(failed)} following detector(s)")
            for line in failed:
                self._print(line)

    def get_detectors_by_name(self, pattern: str, display: bool) -> list[DetectorOutput] | None:
        matched = self._get_detectors("fetch", pattern, False)
        if matched is None:
            return None
        output = []
        with _Progress(len(matched), self._out, display) as progress:
            for detector in matched:
                output.append(self.get_detector(detector.id))
                progress.advance()
        return output

    def update_detector(self, user_input: UpdateDetectorUserInput, force: bool, start: bool) -> None:
        """Save an edited detector; without force, refuse if a newer version exists."""
        if not user_input.id:
            raise DetectorError("detector Id cannot be empty")
        if not force:
            latest = self.get_detector(user_input.id)
            if latest.last_updated_at > user_input.last_updated_at:
                raise DetectorError(
                    "new version for detector is available. "
                    "Please fetch latest version and then merge your changes"
                )
        if not self._ask_for_confirmation(
            f"opensearch-cli will update detector: {user_input.id} . Do you want to proceed? Y/N "
        ):
            return
        if force:
            self.stop_detector(user_input.id)
        payload = user_input.to_payload()
        self.gateway.update_detector(user_input.id, payload)
        if start:
            self.start_detector(user_input.id)