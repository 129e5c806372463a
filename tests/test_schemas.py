"""
Unit tests for the Pydantic models.
"""

import pytest
from pydantic import ValidationError

from leadaudit.schemas import (
    UNMANAGED_SENTINEL,
    AuditDraft,
    AuditOptions,
    AuditState,
    DesignSubscores,
    NetworkRequest,
    Opportunity,
    ProbePlan,
    ProblemBuckets,
    Scorecard,
    StructurePayload,
    TechStackPayload,
    VerdictStatus,
    WebsiteAudit,
)


class TestAuditOptions:
    def test_camel_case_aliases(self):
        opts = AuditOptions.model_validate({
            "renderTimeoutMs": 30000,
            "perDetectorTimeoutMs": 2000,
            "settleDelayMs": 1000,
            "enableVisionScoring": True,
        })
        assert opts.render_timeout_ms == 30000
        assert opts.per_detector_timeout_ms == 2000
        assert opts.settle_delay_ms == 1000
        assert opts.enable_vision_scoring is True

    def test_snake_case_names(self):
        opts = AuditOptions(render_timeout_ms=10000, per_detector_timeout_ms=100, settle_delay_ms=0)
        assert opts.render_timeout_ms == 10000

    def test_defaults_nest(self):
        opts = AuditOptions()
        assert opts.per_detector_timeout_ms < opts.render_timeout_ms

    def test_detector_budget_must_fit(self):
        with pytest.raises(ValidationError, match="perDetectorTimeoutMs"):
            AuditOptions(render_timeout_ms=1000, per_detector_timeout_ms=1000, settle_delay_ms=0)

    def test_settle_delay_must_fit(self):
        with pytest.raises(ValidationError, match="settleDelayMs"):
            AuditOptions(render_timeout_ms=1000, per_detector_timeout_ms=100, settle_delay_ms=1000)

    def test_timeouts_positive(self):
        with pytest.raises(ValidationError):
            AuditOptions(render_timeout_ms=0)


class TestSnapshotModels:
    def test_request_host(self):
        assert NetworkRequest(url="https://JS.Intercom.io/frame.js", timestamp=1.0).host == "js.intercom.io"

    def test_probe_plan_merge(self):
        a = ProbePlan(globals=frozenset({"Intercom"}))
        b = ProbePlan(globals=frozenset({"drift"}), visible_selectors=frozenset({".chat"}))
        merged = a.merge(b)
        assert merged.globals == frozenset({"Intercom", "drift"})
        assert merged.visible_selectors == frozenset({".chat"})


class TestPayloads:
    def test_tech_stack_absence_is_sentinel(self):
        absent = TechStackPayload.absent()
        assert absent.frameworks == (UNMANAGED_SENTINEL,)
        assert absent.is_unmanaged
        assert absent.modern_frameworks == ()

    def test_detected_stack_is_managed(self):
        assert not TechStackPayload(cms=("WordPress",)).is_unmanaged

    def test_pwa_needs_manifest_and_worker(self):
        assert StructurePayload(has_manifest=True, registers_service_worker=True).is_pwa
        assert not StructurePayload(has_manifest=True).is_pwa


class TestDesignSubscores:
    def test_overall_rounds_half_up(self):
        # 6.4 -> 6, 6.6 -> 7
        assert DesignSubscores(layout=6, color=6, typography=6, hierarchy=7, modernity=7).overall == 6
        assert DesignSubscores(layout=7, color=7, typography=7, hierarchy=6, modernity=6).overall == 7

    def test_axis_range(self):
        with pytest.raises(ValidationError):
            DesignSubscores(layout=11, color=5, typography=5, hierarchy=5, modernity=5)
        with pytest.raises(ValidationError):
            DesignSubscores(layout=0, color=5, typography=5, hierarchy=5, modernity=5)


class TestProblemBuckets:
    def test_ordered_is_critical_first(self):
        buckets = ProblemBuckets(critical=("A",), important=("B",), minor=("C", "D"))
        assert buckets.ordered() == ("A", "B", "C", "D")
        assert len(buckets) == 4

    def test_message_in_two_buckets_rejected(self):
        with pytest.raises(ValidationError, match="more than once"):
            ProblemBuckets(critical=("Not Using HTTPS",), minor=("Not Using HTTPS",))


class TestScorecard:
    def test_consistent(self):
        card = Scorecard(
            opportunities=(Opportunity(label="SEO Optimization", estimated_price_usd=500),
                           Opportunity(label="SSL/HTTPS Setup", estimated_price_usd=150)),
            estimated_value=650,
        )
        assert card.estimated_value == 650

    def test_duplicate_label_rejected(self):
        with pytest.raises(ValidationError, match="unique"):
            Scorecard(
                opportunities=(Opportunity(label="SEO Optimization", estimated_price_usd=500),
                               Opportunity(label="SEO Optimization", estimated_price_usd=500)),
                estimated_value=1000,
            )

    def test_value_must_match_sum(self):
        with pytest.raises(ValidationError, match="sum"):
            Scorecard(opportunities=(Opportunity(label="SEO Optimization", estimated_price_usd=500),),
                      estimated_value=400)


class TestWebsiteAudit:
    def test_degraded_is_fully_shaped(self):
        audit = WebsiteAudit.degraded("https://slow.example", "render timeout for https://slow.example")
        assert audit.state == AuditState.DEGRADED
        assert audit.is_degraded
        assert audit.tech_stack.frameworks == (UNMANAGED_SENTINEL,)
        assert audit.chatbot.providers == ()
        assert audit.ordered_problems() == ()
        assert audit.estimated_value == 0

    def test_degraded_keeps_draft_fields(self):
        draft = AuditDraft(url="https://acme.com", business_name="Acme")
        audit = WebsiteAudit.degraded("https://acme.com", "all detectors failed", draft)
        assert audit.business_name == "Acme"
        assert audit.degraded_reason == "all detectors failed"

    def test_from_draft(self):
        draft = AuditDraft(url="https://acme.com", verdict_status={"seo": VerdictStatus.OK})
        card = Scorecard(opportunities=(Opportunity(label="SSL/HTTPS Setup", estimated_price_usd=150),),
                         estimated_value=150)
        audit = WebsiteAudit.from_draft(draft, card)
        assert audit.state == AuditState.COMPLETE
        assert audit.estimated_value == 150
        assert audit.detector_ok("seo")
        assert not audit.detector_ok("chatbot")

    def test_frozen(self):
        audit = WebsiteAudit(url="https://acme.com")
        with pytest.raises(ValidationError):
            audit.estimated_value = 10

    def test_json_round_trip(self):
        audit = WebsiteAudit.degraded("https://acme.com", "blocked")
        assert WebsiteAudit.model_validate_json(audit.model_dump_json()) == audit
