"""
Detector contract.

A detector is stateless: an evidence table plus a pure ``fold`` from the
matched evidence to its typed payload. Instances are safe to share between
concurrent audit runs.
"""

import time
from abc import ABC, abstractmethod
from typing import ClassVar, Generic

from leadaudit.schemas import DetectorVerdict, PageSnapshot, ProbePlan, VerdictStatus
from leadaudit.schemas.verdicts import PayloadT
from leadaudit.services.evidence import Evidence, EvidenceRule, PageView, collect, probe_plan


class Detector(ABC, Generic[PayloadT]):
    name: ClassVar[str]
    payload_type: ClassVar[type]
    rules: ClassVar[tuple[EvidenceRule, ...]] = ()

    def absence(self) -> PayloadT:
        """Zero value reported when this detector fails or never ran."""
        return self.payload_type.absent()

    def probes(self) -> ProbePlan:
        return probe_plan(self.rules)

    @abstractmethod
    def fold(self, evidence: list[Evidence], view: PageView) -> PayloadT:
        """Reduce the matched evidence (and the parsed page) to the payload."""

    def status_for(self, view: PageView) -> VerdictStatus:
        """OK unless an evidence channel this detector relies on is empty."""
        return VerdictStatus.OK

    def detect(self, snapshot: PageSnapshot) -> DetectorVerdict:
        start = time.monotonic()
        view = PageView(snapshot)
        payload = self.fold(collect(self.rules, view), view)
        return DetectorVerdict[self.payload_type](
            detector_name=self.name,
            status=self.status_for(view),
            payload=payload,
            elapsed_ms=(time.monotonic() - start) * 1000,
        )

    def failed(self, reason: str) -> DetectorVerdict:
        return DetectorVerdict[self.payload_type](
            detector_name=self.name,
            status=VerdictStatus.FAILED,
            payload=self.absence(),
            error=reason,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
