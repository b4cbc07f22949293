"""Canonical policy document model shared by every resource kind."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..constants import POLICY_VERSION

EFFECT_ALLOW = "Allow"
EFFECT_DENY = "Deny"

ConditionValue = str | list[str]


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


def _normalize_value(value: Any) -> ConditionValue:
    if isinstance(value, (list, tuple, set)):
        items = sorted({str(item) for item in value})
        if len(items) == 1:
            return items[0]
        return items
    return str(value)


def normalize_conditions(conditions: dict[str, Any] | None) -> dict[str, dict[str, ConditionValue]]:
    """Normalize a condition block into a canonical nested map.

    Operators and keys are stripped and sorted, keys are de-duplicated per
    operator (a later duplicate wins) and multi-valued comparisons are sorted
    and de-duplicated, so functionally identical condition sets produce the
    same serialized form.

    Args:
        conditions: Mapping of operator to mapping of condition key to value

    Returns:
        Canonical operator -> key -> value mapping (empty operators dropped)
    """
    if not conditions:
        return {}

    merged: dict[str, dict[str, ConditionValue]] = {}
    for operator, comparison in conditions.items():
        if not comparison:
            continue
        op = str(operator).strip()
        bucket = merged.setdefault(op, {})
        for key, value in comparison.items():
            bucket[str(key).strip()] = _normalize_value(value)

    return {
        op: {key: merged[op][key] for key in sorted(merged[op])}
        for op in sorted(merged)
        if merged[op]
    }


def _normalize_principal(principal: Any) -> dict[str, Any] | str | None:
    if not principal:
        return None
    if isinstance(principal, str):
        if principal.startswith("arn:"):
            return {"AWS": principal}
        return principal
    return {str(k): v for k, v in sorted(principal.items())}


@dataclass
class StatementEntry:
    """A single policy statement."""

    effect: str = EFFECT_ALLOW
    actions: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    sid: str = ""
    principal: dict[str, Any] | str | None = None
    conditions: dict[str, dict[str, ConditionValue]] = field(default_factory=dict)

    @classmethod
    def from_spec(cls, entry: dict[str, Any]) -> "StatementEntry":
        """Build a statement from its declared (lowercase) form."""
        return cls(
            sid=entry.get("sid", "") or "",
            effect=entry.get("effect", EFFECT_ALLOW) or EFFECT_ALLOW,
            principal=entry.get("principal") or None,
            actions=_as_list(entry.get("actions")),
            resources=_as_list(entry.get("resources")),
            conditions=dict(entry.get("conditions") or {}),
        )

    @classmethod
    def from_aws(cls, entry: dict[str, Any]) -> "StatementEntry":
        """Build a statement from its AWS (PascalCase) form."""
        return cls(
            sid=entry.get("Sid", ""),
            effect=entry.get("Effect", EFFECT_ALLOW),
            principal=entry.get("Principal"),
            actions=_as_list(entry.get("Action")),
            resources=_as_list(entry.get("Resource")),
            conditions=normalize_conditions(entry.get("Condition")),
        )

    def to_aws(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.sid:
            out["Sid"] = self.sid
        out["Effect"] = self.effect
        principal = _normalize_principal(self.principal)
        if principal:
            out["Principal"] = principal
        if self.actions:
            out["Action"] = list(self.actions)
        if self.resources:
            out["Resource"] = list(self.resources)
        conditions = normalize_conditions(self.conditions)
        if conditions:
            out["Condition"] = conditions
        return out


@dataclass
class PolicyDocument:
    """A versioned, order-preserving list of statements."""

    statements: list[StatementEntry] = field(default_factory=list)
    version: str = POLICY_VERSION

    def to_aws(self) -> dict[str, Any]:
        return {
            "Version": self.version,
            "Statement": [statement.to_aws() for statement in self.statements],
        }

    def to_json(self) -> str:
        """Serialize to the byte-stable JSON sent to the remote service."""
        return json.dumps(self.to_aws(), sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_aws(cls, document: dict[str, Any]) -> "PolicyDocument":
        statements = document.get("Statement", [])
        if isinstance(statements, dict):
            statements = [statements]
        return cls(
            statements=[StatementEntry.from_aws(entry) for entry in statements],
            version=document.get("Version", POLICY_VERSION),
        )

    @classmethod
    def from_json(cls, raw: str) -> "PolicyDocument":
        return cls.from_aws(json.loads(raw))


def marshal(statements: Iterable[dict[str, Any] | StatementEntry]) -> PolicyDocument:
    """Marshal a declared statement list into a policy document.

    Pure and deterministic: statement order is preserved and every condition
    block is normalized.
    """
    entries = []
    for statement in statements:
        entry = statement if isinstance(statement, StatementEntry) else StatementEntry.from_spec(statement)
        entries.append(
            StatementEntry(
                sid=entry.sid,
                effect=entry.effect,
                principal=entry.principal,
                actions=list(entry.actions),
                resources=list(entry.resources),
                conditions=normalize_conditions(entry.conditions),
            )
        )
    return PolicyDocument(statements=entries)
