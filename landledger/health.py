"""
LANDLEDGER Registry Health Checks

Read-only checks of the registry invariants against live state:

    init_marker            the init marker key is present (ledger smoke test)
    owner_index_unique     every name appears in the owner index once
    survey_index_records   every indexed survey has a decodable record
    owner_survey_links     every survey an indexed owner holds exists
                           and lists that owner in its owner log

A missing init marker degrades the report; a broken invariant makes it
unhealthy.

Copyright (c) 2026 Landledger. All rights reserved.
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Tuple

from landledger import __version__
from landledger.errors import NotFoundError
from landledger.observability import LedgerLayer, get_logger
from landledger.registry import RegistryService

logger = get_logger("health", LedgerLayer.HEALTH)


class HealthStatus(Enum):
    """Health check result status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class CheckResult:
    """Result of a single health check."""
    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "latency_ms": round(self.latency_ms, 2),
            "metadata": self.metadata,
        }


@dataclass
class HealthReport:
    """Aggregate of all checks."""
    status: HealthStatus
    version: str
    checks: List[CheckResult]
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def is_healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "version": self.version,
            "timestamp": self.timestamp,
            "checks": [c.to_dict() for c in self.checks],
        }


class RegistryHealthChecker:
    """Runs the invariant checks against one registry."""

    def __init__(self, registry: RegistryService):
        self.registry = registry
        self._checks: List[Tuple[str, Callable[[], CheckResult]]] = [
            ("init_marker", self._check_init_marker),
            ("owner_index_unique", self._check_owner_index_unique),
            ("survey_index_records", self._check_survey_index_records),
            ("owner_survey_links", self._check_owner_survey_links),
        ]

    def check(self) -> HealthReport:
        results = []
        for name, check_fn in self._checks:
            start = time.monotonic()
            result = check_fn()
            result.latency_ms = (time.monotonic() - start) * 1000
            results.append(result)

        statuses = {r.status for r in results}
        if HealthStatus.UNHEALTHY in statuses:
            overall = HealthStatus.UNHEALTHY
        elif HealthStatus.DEGRADED in statuses:
            overall = HealthStatus.DEGRADED
        else:
            overall = HealthStatus.HEALTHY

        if overall != HealthStatus.HEALTHY:
            failing = [r.name for r in results if r.status != HealthStatus.HEALTHY]
            logger.warning("registry health check failed", status=overall.value, failing=failing)
        return HealthReport(status=overall, version=__version__, checks=results)

    def _check_init_marker(self) -> CheckResult:
        try:
            value = self.registry.read_init()
        except NotFoundError as e:
            return CheckResult("init_marker", HealthStatus.DEGRADED, e.message)
        return CheckResult(
            "init_marker", HealthStatus.HEALTHY, "init marker present",
            metadata={"value": value.decode("utf-8", errors="replace")},
        )

    def _check_owner_index_unique(self) -> CheckResult:
        names = self.registry.owner_names()
        duplicates = sorted(n for n, c in Counter(names).items() if c > 1)
        if duplicates:
            return CheckResult(
                "owner_index_unique", HealthStatus.UNHEALTHY,
                f"{len(duplicates)} duplicated owner name(s)",
                metadata={"duplicates": duplicates},
            )
        return CheckResult(
            "owner_index_unique", HealthStatus.HEALTHY,
            f"{len(names)} owner(s) indexed",
        )

    def _check_survey_index_records(self) -> CheckResult:
        numbers = self.registry.survey_numbers()
        missing = [n for n in numbers if self._survey_or_none(n) is None]
        duplicates = sorted(n for n, c in Counter(numbers).items() if c > 1)
        if missing or duplicates:
            return CheckResult(
                "survey_index_records", HealthStatus.UNHEALTHY,
                "survey index out of step with survey records",
                metadata={"missing_records": missing, "duplicates": duplicates},
            )
        return CheckResult(
            "survey_index_records", HealthStatus.HEALTHY,
            f"{len(numbers)} survey(s) indexed",
        )

    def _check_owner_survey_links(self) -> CheckResult:
        broken: List[Dict[str, Any]] = []
        for owner in self.registry.list_owners():
            for survey_no in owner.survey_numbers:
                survey = self._survey_or_none(survey_no)
                if survey is None:
                    broken.append({"owner": owner.name, "survey_no": survey_no, "reason": "no survey record"})
                elif owner.name not in survey.owners:
                    broken.append({"owner": owner.name, "survey_no": survey_no, "reason": "owner not in owner log"})
        if broken:
            return CheckResult(
                "owner_survey_links", HealthStatus.UNHEALTHY,
                f"{len(broken)} broken owner/survey link(s)",
                metadata={"broken": broken},
            )
        return CheckResult("owner_survey_links", HealthStatus.HEALTHY, "all owner/survey links resolve")

    def _survey_or_none(self, survey_no: int):
        try:
            return self.registry.read_survey(survey_no)
        except NotFoundError:
            return None
