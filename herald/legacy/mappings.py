"""
Legacy Mapping Table

Static table keyed by (service, legacy event type). Each rule names the
CloudEvents type to emit, how to derive source/subject from the legacy
resource name, and how to reshape the payload.

The table is versioned and injectable: LegacyEventTranslator accepts any
LegacyMappingTable, DEFAULT_LEGACY_MAPPINGS holds the Cloud Functions
compatibility entries.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

FIRESTORE_SERVICE = "firestore.googleapis.com"
PUBSUB_SERVICE = "pubsub.googleapis.com"
STORAGE_SERVICE = "storage.googleapis.com"
FIREBASE_AUTH_SERVICE = "firebaseauth.googleapis.com"
FIREBASE_ANALYTICS_SERVICE = "firebaseanalytics.googleapis.com"
FIREBASE_DATABASE_SERVICE = "firebasedatabase.googleapis.com"

# Default location of a firebaseio.com realtime database.
DEFAULT_DATABASE_LOCATION = "us-central1"


@dataclass(frozen=True)
class LegacyRecord:
    """Normalized legacy input handed to source and data rules."""
    event_id: str
    timestamp: str
    event_type: str
    service: str
    resource: str
    data: Any
    domain: str | None = None
    subscription: str | None = None


# (service, resource, record) -> (source, subject), or None when the
# resource does not fit the rule.
SourceRule = Callable[[str, str, LegacyRecord], "tuple[str, str | None] | None"]
DataRule = Callable[[Any, LegacyRecord], Any]


@dataclass(frozen=True)
class LegacyRule:
    ce_type: str
    source: SourceRule
    data: DataRule


@dataclass(frozen=True)
class LegacyMappingTable:
    """
    Read-only mapping (service, legacy type) -> LegacyRule, plus the
    legacy-type prefixes used to infer a service when the payload does not
    name one.
    """
    version: str
    rules: Mapping[tuple[str, str], LegacyRule]
    type_prefixes: tuple[tuple[str, str], ...] = field(default=())

    def __post_init__(self):
        object.__setattr__(self, "rules", MappingProxyType(dict(self.rules)))

    def lookup(self, service: str | None, legacy_type: str | None) -> LegacyRule | None:
        if service is None or legacy_type is None:
            return None
        return self.rules.get((service, legacy_type))

    def service_for_type(self, legacy_type: str) -> str | None:
        for prefix, service in self.type_prefixes:
            if legacy_type.startswith(prefix):
                return service
        return None

    def __len__(self) -> int:
        return len(self.rules)


# ----------------------------------------------------------------------
# Source rules
# ----------------------------------------------------------------------

def plain_source(service: str, resource: str, record: LegacyRecord) -> tuple[str, str | None]:
    return f"//{service}/{resource}", None


def split_source(pattern: str) -> SourceRule:
    """Split the resource into (source path, subject) with a two-group regex."""
    regex = re.compile(pattern)

    def rule(service: str, resource: str, record: LegacyRecord) -> tuple[str, str | None] | None:
        match = regex.match(resource)
        if not match:
            return None
        return f"//{service}/{match.group(1)}", match.group(2)

    return rule


def auth_source(service: str, resource: str, record: LegacyRecord) -> tuple[str, str | None]:
    uid = record.data.get("uid") if isinstance(record.data, Mapping) else None
    subject = f"users/{uid}" if isinstance(uid, str) and uid else None
    return f"//{service}/{resource}", subject


def analytics_source(service: str, resource: str, record: LegacyRecord) -> tuple[str, str | None]:
    subject = None
    data = record.data
    if isinstance(data, Mapping):
        event_dim = data.get("eventDim")
        if isinstance(event_dim, list) and event_dim and isinstance(event_dim[0], Mapping):
            name = event_dim[0].get("name")
            if isinstance(name, str) and name:
                subject = f"events/{name}"
    return f"//{service}/{resource}", subject


_DATABASE_RESOURCE = re.compile(r"^projects/_/instances/([^/]+)/(refs/.+)$")
_DATABASE_DOMAIN = re.compile(r"^([\w-]+)\.firebasedatabase\.app$")


def database_source(service: str, resource: str, record: LegacyRecord) -> tuple[str, str | None] | None:
    """
    Realtime Database resources do not carry a location; it comes from the
    payload's domain. Without a recognizable domain there is no source.
    """
    match = _DATABASE_RESOURCE.match(resource)
    if not match or not record.domain:
        return None
    if record.domain == "firebaseio.com":
        location = DEFAULT_DATABASE_LOCATION
    else:
        domain_match = _DATABASE_DOMAIN.match(record.domain)
        if not domain_match:
            return None
        location = domain_match.group(1)
    instance, subject = match.groups()
    return f"//{service}/projects/_/locations/{location}/instances/{instance}", subject


# ----------------------------------------------------------------------
# Data rules
# ----------------------------------------------------------------------

def passthrough(data: Any, record: LegacyRecord) -> Any:
    return data


def pubsub_message(data: Any, record: LegacyRecord) -> dict[str, Any]:
    """Wrap a Pub/Sub message the way messagePublished events carry it."""
    message = dict(data) if isinstance(data, Mapping) else {"data": data}
    message.pop("@type", None)
    message.setdefault("messageId", record.event_id)
    message.setdefault("publishTime", record.timestamp)
    return {"message": message, "subscription": record.subscription}


_AUTH_METADATA_KEYS = {"createdAt": "createTime", "lastSignedInAt": "lastSignInTime"}


def firebase_auth_user(data: Any, record: LegacyRecord) -> Any:
    if not isinstance(data, Mapping):
        return data
    reshaped = dict(data)
    metadata = reshaped.get("metadata")
    if isinstance(metadata, Mapping):
        reshaped["metadata"] = {_AUTH_METADATA_KEYS.get(k, k): v for k, v in metadata.items()}
    return reshaped


# ----------------------------------------------------------------------
# Default table
# ----------------------------------------------------------------------

_STORAGE_SOURCE = split_source(r"^(projects/[^/]+/buckets/[^/]+)/(objects/[^#]+)(?:#.*)?$")
_FIRESTORE_SOURCE = split_source(r"^(projects/[^/]+/databases/[^/]+)/(documents/.+)$")


def _build_default_table() -> LegacyMappingTable:
    rules: dict[tuple[str, str], LegacyRule] = {}

    def add(service: str, legacy_types: list[str], ce_type: str, source: SourceRule, data: DataRule = passthrough):
        for legacy_type in legacy_types:
            rules[(service, legacy_type)] = LegacyRule(ce_type=ce_type, source=source, data=data)

    add(PUBSUB_SERVICE,
        ["google.pubsub.topic.publish", "providers/cloud.pubsub/eventTypes/topic.publish"],
        "google.cloud.pubsub.topic.v1.messagePublished", plain_source, pubsub_message)

    add(STORAGE_SERVICE,
        ["google.storage.object.finalize", "providers/cloud.storage/eventTypes/object.change"],
        "google.cloud.storage.object.v1.finalized", _STORAGE_SOURCE)
    add(STORAGE_SERVICE, ["google.storage.object.delete"],
        "google.cloud.storage.object.v1.deleted", _STORAGE_SOURCE)
    add(STORAGE_SERVICE, ["google.storage.object.archive"],
        "google.cloud.storage.object.v1.archived", _STORAGE_SOURCE)
    add(STORAGE_SERVICE, ["google.storage.object.metadataUpdate"],
        "google.cloud.storage.object.v1.metadataUpdated", _STORAGE_SOURCE)

    for action, verb in (("write", "written"), ("create", "created"), ("update", "updated"), ("delete", "deleted")):
        add(FIRESTORE_SERVICE, [f"providers/cloud.firestore/eventTypes/document.{action}"],
            f"google.cloud.firestore.document.v1.{verb}", _FIRESTORE_SOURCE)
        add(FIREBASE_DATABASE_SERVICE, [f"providers/google.firebase.database/eventTypes/ref.{action}"],
            f"google.firebase.database.document.v1.{verb}", database_source)

    add(FIREBASE_AUTH_SERVICE, ["providers/firebase.auth/eventTypes/user.create"],
        "google.firebase.auth.user.v1.created", auth_source, firebase_auth_user)
    add(FIREBASE_AUTH_SERVICE, ["providers/firebase.auth/eventTypes/user.delete"],
        "google.firebase.auth.user.v1.deleted", auth_source, firebase_auth_user)

    add(FIREBASE_ANALYTICS_SERVICE, ["providers/google.firebase.analytics/eventTypes/event.log"],
        "google.firebase.analytics.log.v1.written", analytics_source)

    type_prefixes = (
        ("providers/cloud.firestore/", FIRESTORE_SERVICE),
        ("providers/cloud.pubsub/", PUBSUB_SERVICE),
        ("providers/cloud.storage/", STORAGE_SERVICE),
        ("providers/firebase.auth/", FIREBASE_AUTH_SERVICE),
        ("providers/google.firebase.analytics/", FIREBASE_ANALYTICS_SERVICE),
        ("providers/google.firebase.database/", FIREBASE_DATABASE_SERVICE),
        ("google.pubsub.", PUBSUB_SERVICE),
        ("google.storage.", STORAGE_SERVICE),
    )
    return LegacyMappingTable(version="2020-05", rules=rules, type_prefixes=type_prefixes)


DEFAULT_LEGACY_MAPPINGS = _build_default_table()
