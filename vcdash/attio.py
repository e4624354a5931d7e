"""Attribute extraction for Attio records and list entries.

Attio stores every attribute as a list of "instances" whose shape depends on
the attribute type.  Instances are parsed into a small tagged union and the
scalar is read back out with a single ``match``, so adding a shape means
adding one class and one case.

Object records keep their attributes under ``values``; list entries keep
theirs under ``entry_values``.  The same slug can exist in both namespaces
with unrelated meaning, so there is one accessor per namespace.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

RECORD_NAMESPACE = "values"
ENTRY_NAMESPACE = "entry_values"


# ---------------------------------------------------------------------------
# Instance shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextValue:
    """text, number, checkbox, date, timestamp, rating."""
    value: Any


@dataclass(frozen=True)
class StatusValue:
    title: str | None


@dataclass(frozen=True)
class OptionValue:
    title: str | None


@dataclass(frozen=True)
class ReferenceValue:
    target_record_id: str


@dataclass(frozen=True)
class DomainValue:
    domain: str | None


@dataclass(frozen=True)
class LocationValue:
    raw: dict[str, Any]

    @property
    def country_code(self) -> str | None:
        return self.raw.get("country_code") or None


@dataclass(frozen=True)
class CurrencyValue:
    amount: Any


@dataclass(frozen=True)
class PersonValue:
    full_name: str | None


@dataclass(frozen=True)
class RawValue:
    raw: Any


AttributeValue = (
    TextValue | StatusValue | OptionValue | ReferenceValue | DomainValue
    | LocationValue | CurrencyValue | PersonValue | RawValue
)


def parse_instance(instance: Any) -> AttributeValue:
    """Classify one attribute instance. Probe order decides ties."""
    if not isinstance(instance, dict):
        return RawValue(instance)
    if "value" in instance:
        return TextValue(instance["value"])
    status = instance.get("status")
    if status:
        return StatusValue(status.get("title") if isinstance(status, dict) else None)
    option = instance.get("option")
    if option:
        return OptionValue(option.get("title") if isinstance(option, dict) else None)
    if instance.get("target_record_id"):
        return ReferenceValue(instance["target_record_id"])
    if "domain" in instance:
        return DomainValue(instance["domain"])
    if "country_code" in instance:
        return LocationValue(instance)
    if "currency_value" in instance:
        return CurrencyValue(instance["currency_value"])
    if "full_name" in instance:
        return PersonValue(instance["full_name"])
    return RawValue(instance)


def scalar(value: AttributeValue) -> Any:
    match value:
        case TextValue(value=v):
            return v
        case StatusValue(title=t) | OptionValue(title=t):
            return t
        case ReferenceValue(target_record_id=rid):
            return rid
        case DomainValue(domain=d):
            return d
        case LocationValue(raw=raw):
            return raw
        case CurrencyValue(amount=a):
            return a
        case PersonValue(full_name=n):
            return n
        case RawValue(raw=raw):
            return raw
    raise TypeError(f"Unknown attribute value: {value!r}")


# ---------------------------------------------------------------------------
# Accessors
# ---------------------------------------------------------------------------


def _instances(container: Any, namespace: str, slug: str) -> list[Any]:
    if not isinstance(container, dict):
        return []
    bag = container.get(namespace)
    if not isinstance(bag, dict):
        return []
    attr = bag.get(slug)
    if not isinstance(attr, list):
        return []
    return attr


def extract(record: Any, slug: str) -> Any:
    """Single value of an object-record attribute, or None when absent."""
    attr = _instances(record, RECORD_NAMESPACE, slug)
    if not attr:
        return None
    return scalar(parse_instance(attr[0]))


def extract_all(record: Any, slug: str) -> list[Any]:
    """Every instance of a multi-value attribute, in source order."""
    return [scalar(parse_instance(i)) for i in _instances(record, RECORD_NAMESPACE, slug)]


def entry_value(entry: Any, slug: str) -> Any:
    """Single value from a list entry's ``entry_values``."""
    attr = _instances(entry, ENTRY_NAMESPACE, slug)
    if not attr:
        return None
    return scalar(parse_instance(attr[0]))


def entry_values(entry: Any, slug: str) -> list[Any]:
    return [scalar(parse_instance(i)) for i in _instances(entry, ENTRY_NAMESPACE, slug)]


def location_country_code(record: Any, slug: str = "primary_location") -> str | None:
    attr = _instances(record, RECORD_NAMESPACE, slug)
    if not attr or not isinstance(attr[0], dict):
        return None
    return attr[0].get("country_code") or None


def interaction_at(record: Any, slug: str) -> str | None:
    """Timestamp of an interaction attribute (``interacted_at`` or plain value)."""
    attr = _instances(record, RECORD_NAMESPACE, slug)
    if not attr or not isinstance(attr[0], dict):
        return None
    inst = attr[0]
    ts = inst.get("interacted_at") or inst.get("value")
    return ts if isinstance(ts, str) and ts else None


def first_reference(record: Any, slug: str) -> str | None:
    """``target_record_id`` of the first instance, regardless of other keys."""
    attr = _instances(record, RECORD_NAMESPACE, slug)
    if not attr or not isinstance(attr[0], dict):
        return None
    return attr[0].get("target_record_id") or None


def actor_ids(container: Any, slug: str = "owner", namespace: str = RECORD_NAMESPACE) -> list[str]:
    """Workspace member ids from an actor-reference attribute."""
    ids: list[str] = []
    for inst in _instances(container, namespace, slug):
        if not isinstance(inst, dict):
            continue
        actor = inst.get("referenced_actor_id") or inst.get("workspace_membership_id")
        if actor:
            ids.append(actor)
    return ids


def record_id(record: Any) -> str | None:
    if not isinstance(record, dict):
        return None
    ident = record.get("id")
    if not isinstance(ident, dict):
        return None
    return ident.get("record_id") or None


def entry_parent_id(entry: Any) -> str | None:
    if not isinstance(entry, dict):
        return None
    parent = entry.get("parent_record_id")
    if parent:
        return parent
    ref = entry.get("parent_record")
    if isinstance(ref, dict):
        return ref.get("record_id") or None
    return None


def extract_company_fields(record: Any) -> dict[str, Any] | None:
    """Base company fields shared by the funnel and portfolio views."""
    rid = record_id(record)
    if not rid:
        return None
    return {
        "id": rid,
        "name": extract(record, "name") or "Unknown",
        "status4": extract(record, "status_4"),
        "owner_ids": actor_ids(record, "owner"),
        "first_email": interaction_at(record, "first_email_interaction"),
        "first_calendar": interaction_at(record, "first_calendar_interaction"),
        "domain": extract(record, "domains"),
        "logo_url": extract(record, "logo_url"),
        "location": location_country_code(record, "primary_location"),
    }


def entry_id(entry: Any) -> str | None:
    if not isinstance(entry, dict):
        return None
    eid = entry.get("entry_id")
    if eid:
        return eid
    ident = entry.get("id")
    if isinstance(ident, dict):
        return ident.get("entry_id") or None
    return None
