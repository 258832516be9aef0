"""Shared fixtures: the sample query network of 32 assets and 32 participants."""

from datetime import datetime, timedelta, timezone

import pytest

from record_query.catalog import QueryCatalog
from record_query.metadata import type_registry_from_metadata
from record_query.query_executor import QueryExecutor
from record_query.registry import RegistryManager
from record_query.serializer import Serializer
from record_query.types import format_timestamp

NAMESPACE = "systest.queries"
ASSET_TYPE = f"{NAMESPACE}.SampleAsset"
PARTICIPANT_TYPE = f"{NAMESPACE}.SampleParticipant"
CONCEPT_TYPE = f"{NAMESPACE}.SampleConcept"
ENUM_TYPE = f"{NAMESPACE}.SampleEnum"

_VALUE_FIELDS = [
    {"name": "stringValue", "type": "String"},
    {"name": "doubleValue", "type": "Double"},
    {"name": "integerValue", "type": "Integer"},
    {"name": "longValue", "type": "Long"},
    {"name": "dateTimeValue", "type": "DateTime"},
    {"name": "booleanValue", "type": "Boolean"},
    {"name": "enumValue", "type": ENUM_TYPE},
]

SAMPLE_METADATA = {
    "types": {
        ENUM_TYPE: {"kind": "enum", "values": [f"VALUE_{i}" for i in range(8)]},
        CONCEPT_TYPE: {"kind": "concept", "fields": _VALUE_FIELDS},
        ASSET_TYPE: {
            "kind": "asset",
            "identifier": "assetId",
            "fields": [
                {"name": "assetId", "type": "String"},
                *_VALUE_FIELDS,
                {"name": "conceptValue", "type": CONCEPT_TYPE},
                {"name": "participant", "type": f"--> {PARTICIPANT_TYPE}"},
            ],
        },
        PARTICIPANT_TYPE: {
            "kind": "participant",
            "identifier": "participantId",
            "fields": [
                {"name": "participantId", "type": "String"},
                *_VALUE_FIELDS,
                {"name": "conceptValue", "type": CONCEPT_TYPE},
                {"name": "asset", "type": f"--> {ASSET_TYPE}", "optional": True},
            ],
        },
    }
}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def sample_values(i: int) -> dict:
    """Field values of the i-th generated resource."""
    return {
        "stringValue": f"string {i % 4}",
        "doubleValue": 2.5 * (i % 8),
        "integerValue": 1000 * (i % 16),
        "longValue": 100000 * (i % 32),
        "dateTimeValue": format_timestamp(_EPOCH + timedelta(milliseconds=100000 * (i % 16))),
        "booleanValue": bool(i % 2),
        "enumValue": f"VALUE_{i % 8}",
    }


def sample_asset_json(i: int) -> dict:
    # The nested concept is shifted by one so it differs from the top-level fields
    concept = {"$class": CONCEPT_TYPE, **sample_values(i + 1)}
    return {
        "$class": ASSET_TYPE,
        "assetId": f"ASSET_{i}",
        **sample_values(i),
        "conceptValue": concept,
        "participant": f"resource:{PARTICIPANT_TYPE}#PARTICIPANT_{i % 4}",
    }


def sample_participant_json(i: int) -> dict:
    concept = {"$class": CONCEPT_TYPE, **sample_values(i + 1)}
    return {
        "$class": PARTICIPANT_TYPE,
        "participantId": f"PARTICIPANT_{i}",
        **sample_values(i),
        "conceptValue": concept,
        "asset": f"resource:{ASSET_TYPE}#ASSET_{i % 4}",
    }


@pytest.fixture
def type_registry():
    """Type registry of the sample network."""
    return type_registry_from_metadata(SAMPLE_METADATA)


@pytest.fixture
def serializer(type_registry):
    return Serializer(type_registry)


@pytest.fixture
def registries(type_registry, serializer):
    """Registries holding 32 sample assets and 32 sample participants."""
    manager = RegistryManager(type_registry)
    manager.add_all(serializer.from_json(sample_asset_json(i)) for i in range(32))
    manager.add_all(serializer.from_json(sample_participant_json(i)) for i in range(32))
    return manager


@pytest.fixture
def catalog():
    """Catalog with the named string-value queries of the sample network."""
    catalog = QueryCatalog()
    catalog.define(
        "assets_stringValue",
        ASSET_TYPE,
        "(stringValue == _$inputStringValue)",
        "Select assets by string value",
    )
    catalog.define(
        "participants_stringValue",
        PARTICIPANT_TYPE,
        "(stringValue == _$inputStringValue)",
        "Select participants by string value",
    )
    catalog.define(
        "assets_nestedStringValue",
        ASSET_TYPE,
        "(conceptValue.stringValue == _$inputStringValue)",
        "Select assets by nested string value",
    )
    catalog.define(
        "participants_nestedStringValue",
        PARTICIPANT_TYPE,
        "(conceptValue.stringValue == _$inputStringValue)",
        "Select participants by nested string value",
    )
    return catalog


@pytest.fixture
def executor(registries, catalog):
    return QueryExecutor(registries, catalog)
