"""
Tests for fairwatch.utils.constants — enums and lookup tables.
"""

import re

import pytest

from fairwatch.utils.constants import (
    ESCALATION_RECOMMENDATIONS,
    ETHICAL_IMPACT_RANKS,
    METRIC_BIAS_TYPES,
    METRIC_RECOMMENDATIONS,
    PROCESS_CONTEXT_TYPES,
    PROCESS_STAGES,
    QUICK_CHECK_TERM_RULES,
    SEVERITY_ETHICAL_IMPACT,
    SEVERITY_RANKS,
    SEVERITY_RISKS,
    SEVERITY_SCORES,
    TIME_RANGE_HOURS,
    AuditAction,
    BiasType,
    ContextProcessType,
    EthicalImpactLevel,
    MetricFamily,
    ProcessType,
    Severity,
    TimeRange,
)


# ── Table coverage ───────────────────────────────────────────────────────────


class TestTablesCoverEveryMember:
    @pytest.mark.parametrize(
        "table,enum",
        [
            (SEVERITY_RANKS, Severity),
            (SEVERITY_SCORES, Severity),
            (SEVERITY_ETHICAL_IMPACT, Severity),
            (SEVERITY_RISKS, Severity),
            (ESCALATION_RECOMMENDATIONS, Severity),
            (ETHICAL_IMPACT_RANKS, EthicalImpactLevel),
            (PROCESS_STAGES, ProcessType),
            (PROCESS_CONTEXT_TYPES, ProcessType),
            (TIME_RANGE_HOURS, TimeRange),
            (METRIC_BIAS_TYPES, MetricFamily),
            (METRIC_RECOMMENDATIONS, MetricFamily),
        ],
    )
    def test_table_is_exhaustive(self, table, enum):
        assert set(table) == set(enum)


# ── Severity ─────────────────────────────────────────────────────────────────


class TestSeverity:
    def test_ranks_are_strictly_increasing(self):
        ranks = [s.rank for s in (Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL)]
        assert ranks == sorted(ranks)
        assert len(set(ranks)) == 4

    def test_scores(self):
        assert Severity.LOW.score == 0.25
        assert Severity.CRITICAL.score == 1.0

    def test_highest_picks_most_severe(self):
        assert Severity.highest([Severity.LOW, Severity.CRITICAL, Severity.MEDIUM]) == Severity.CRITICAL

    def test_highest_accepts_raw_values(self):
        assert Severity.highest(["medium", "high"]) == Severity.HIGH

    def test_highest_of_nothing_is_none(self):
        assert Severity.highest([]) is None

    def test_str_enum_compares_to_value(self):
        assert Severity.HIGH == "high"

    def test_low_severity_has_no_escalation(self):
        assert ESCALATION_RECOMMENDATIONS[Severity.LOW] == ()

    def test_high_and_critical_have_escalations(self):
        assert ESCALATION_RECOMMENDATIONS[Severity.HIGH]
        assert ESCALATION_RECOMMENDATIONS[Severity.CRITICAL]


class TestEthicalImpactLevel:
    def test_none_ranks_lowest(self):
        assert EthicalImpactLevel.NONE.rank == 0
        assert EthicalImpactLevel.CRITICAL.rank == max(ETHICAL_IMPACT_RANKS.values())

    def test_severity_maps_to_same_named_impact(self):
        for severity, impact in SEVERITY_ETHICAL_IMPACT.items():
            assert severity.value == impact.value


# ── Process types ────────────────────────────────────────────────────────────


class TestProcessType:
    def test_stages(self):
        assert ProcessType.APPLICATION_REVIEW.stage == "screening"
        assert ProcessType.INTERVIEW_SCHEDULING.stage == "interview"
        assert ProcessType.HIRING_DECISION.stage == "decision"
        assert ProcessType.MATCHING.stage == "matching"

    def test_context_types(self):
        assert ProcessType.HIRING_DECISION.context_type == ContextProcessType.HIRING
        assert ProcessType.MATCHING.context_type == ContextProcessType.MATCHING


class TestTimeRange:
    @pytest.mark.parametrize(
        "time_range,hours",
        [
            (TimeRange.LAST_HOUR, 1),
            (TimeRange.LAST_DAY, 24),
            (TimeRange.LAST_WEEK, 168),
            (TimeRange.LAST_MONTH, 720),
        ],
    )
    def test_hours(self, time_range, hours):
        assert time_range.hours == hours

    def test_parse_from_cli_value(self):
        assert TimeRange("7d") == TimeRange.LAST_WEEK


# ── Bias taxonomy and audit actions ──────────────────────────────────────────


class TestBiasTypes:
    def test_parity_maps_to_demographic_bias(self):
        assert METRIC_BIAS_TYPES[MetricFamily.DEMOGRAPHIC_PARITY] == BiasType.DEMOGRAPHIC

    def test_taxonomy_values_are_unique(self):
        values = [b.value for b in BiasType]
        assert len(values) == len(set(values))


class TestAuditAction:
    def test_retention_purge_action(self):
        assert AuditAction.RECORDS_PURGED.value == "records_purged"

    def test_threshold_actions_exist(self):
        assert AuditAction("threshold_updated") == AuditAction.THRESHOLD_UPDATED
        assert AuditAction("threshold_update_rejected") == AuditAction.THRESHOLD_UPDATE_REJECTED


# ── Quick check rules ────────────────────────────────────────────────────────


class TestQuickCheckRules:
    def test_patterns_compile(self):
        for pattern, weight, category, suggestion in QUICK_CHECK_TERM_RULES:
            re.compile(pattern)
            assert 0 < weight <= 1
            assert category
            assert suggestion

    def test_categories_are_unique(self):
        categories = [rule[2] for rule in QUICK_CHECK_TERM_RULES]
        assert len(categories) == len(set(categories))
