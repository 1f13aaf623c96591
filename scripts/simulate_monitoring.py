#!/usr/bin/env python3
"""
Demo script for the bias monitoring engine.
Generates synthetic hiring outcomes and runs them through an in-memory
monitoring service, printing the evaluation, alerts and dashboard.
"""

import argparse

import numpy as np


def generate_outcomes(n, rate_a, rate_b, seed):
    """Synthetic outcomes for two gender groups with the given selection rates."""
    from fairwatch.data.models import OutcomeRecord

    rng = np.random.default_rng(seed)
    outcomes = []
    for i in range(n):
        group = "female" if i % 2 else "male"
        rate = rate_b if group == "female" else rate_a
        qualified = bool(rng.random() < 0.6)
        selected = bool(rng.random() < rate)
        outcomes.append(
            OutcomeRecord(
                subject_id=f"cand-{i:04d}",
                groups={"gender": group, "age_band": "under_40" if rng.random() < 0.5 else "40_plus"},
                selected=selected,
                actual_positive=qualified,
                decision_time_hours=float(rng.gamma(4.0, 6.0)),
            )
        )
    return outcomes


def main():
    parser = argparse.ArgumentParser(description="Bias Monitoring Demo")
    parser.add_argument("--size", type=int, default=200, help="Number of outcomes")
    parser.add_argument("--rate-a", type=float, default=0.6, help="Selection rate for group A")
    parser.add_argument("--rate-b", type=float, default=0.3, help="Selection rate for group B")
    parser.add_argument("--seed", type=int, default=7)
    parser.add_argument("--process-type", default="hiring_decision")

    args = parser.parse_args()

    from fairwatch.core.monitoring import build_monitoring_service
    from fairwatch.data.models import ProcessEventData
    from fairwatch.data.store import InMemoryDocumentStore

    print("\n" + "=" * 60)
    print("FairWatch: Bias Monitoring Simulation")
    print("=" * 60)

    service = build_monitoring_service(store=InMemoryDocumentStore())
    outcomes = generate_outcomes(args.size, args.rate_a, args.rate_b, args.seed)
    outcome = service.evaluate_process("demo-process", args.process_type, ProcessEventData(outcomes=outcomes))

    print(f"\nCompliance: {outcome.compliance_status.value}")
    if outcome.fairness_score is not None:
        print(f"Fairness score: {outcome.fairness_score:.3f}  Bias score: {outcome.bias_score:.3f}")

    print(f"\n{'Severity':<10} {'Metric':<22} {'Attribute':<10} {'Observed'}")
    print("-" * 55)
    for v in outcome.violations:
        print(f"{v.severity:<10} {v.metric:<22} {v.attribute:<10} {v.observed_value:.3f}")

    for pattern in outcome.detected_patterns:
        print(f"Pattern: {pattern}")

    snapshot = service.get_dashboard_snapshot()
    print(f"\nOpen alerts by severity: {snapshot.active_alerts_by_severity}")
    print(f"Alerts raised: {len(outcome.alert_ids)}")


if __name__ == "__main__":
    main()
