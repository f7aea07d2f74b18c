# searchctl

A Python library for managing search clusters: named connection profiles
kept in a YAML configuration file, plus controllers for the k-NN plugin,
distinct-value lookups and the Anomaly Detection plugin.

## Installation

```
pip install .
```

## Configuration and profiles

`searchctl.config` holds the data models and their storage:

- `Profile` – a named set of settings: `name`, `endpoint`, `user_name`,
  `password`, optional `aws` (`AWSIAM` with `profile_name` and
  `service_name`), optional `certificate` (`Trust` with client certificate,
  client key and CA file paths), and optional `max_retry` and `timeout`.
- `Config` – a list of profiles.
- `ConfigStore(path)` – `read()` loads a `Config` from the YAML file (a
  missing file raises `FileNotFoundError`, content that is not a mapping
  raises `ValueError`); `write(config)` overwrites the file and syncs it to
  disk.

Each model converts to and from plain mappings with `to_dict()` and
`from_dict()`; unset optional fields are left out of the mapping.

`searchctl.profile.ProfileController(store)` works on top of a
`ConfigStore`:

- `get_profiles()`, `get_profile_names()`, `get_profiles_map()`
- `create_profile(profile)` appends a profile and saves the file.
- `delete_profiles(names)` removes the named profiles and saves the rest;
  names that did not exist are reported afterwards with
  `ProfileNotFoundError`.
- `get_profile_for_execution(name)` picks the profile named `name` if given,
  otherwise the one named by the `OPENSEARCH_PROFILE` environment variable,
  otherwise the profile called `default` (or `None` if there is none). A
  name that is asked for but missing raises `ProfileNotFoundError`.

```python
from searchctl.config import ConfigStore, Profile
from searchctl.profile import ProfileController

controller = ProfileController(ConfigStore("config.yaml"))
controller.create_profile(Profile(name="dev", endpoint="https://localhost:9200"))
print(controller.get_profile_names())
```

## Plugin controllers

The network-facing controllers take a gateway object that performs the
actual requests and returns raw JSON bytes, so they can be driven by any
transport.

- `searchctl.knn.KnnController(gateway)` – `get_statistics(nodes, names)`
  returns the raw statistics; `warmup_indices(indices)` returns the `Shards`
  counts (`total`, `successful`, `failed`).
- `searchctl.platform.PlatformController(gateway)` –
  `get_distinct_values(index, field)` returns the bucket keys of a terms
  aggregation; an empty index or field raises `ValueError`.
- `searchctl.ad.AnomalyDetectorController(reader, platform, gateway, output=None)`
  – starts, stops, deletes and fetches detectors by id or by name pattern,
  creates detectors from a `CreateDetectorRequest` (one per distinct value of
  its `partition_field`, removing those already created if one fails), and
  saves an `UpdateDetectorUserInput`, refusing a stale copy unless forced.
  Confirmations are read as `y`/`yes`/`n`/`no` from `reader` (standard input
  by default) and progress is drawn on `output` when `display` is true.
  Failures raise `DetectorError`. The helpers `build_compound_query` and
  `process_entity_error` are public as well.

## What this package does not do

There is no command-line program: profiles and detectors are managed by
calling the classes above from Python. The package also ships no HTTP
gateway; callers supply an object that talks to their cluster.

## Running the tests

```
pip install .[test]
pytest
```