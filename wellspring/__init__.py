"""
Wellspring: deterministic wellness scoring and predictive alert engine.

Turns per-day health and work telemetry into burnout and readiness scores,
assigns each employee a red / yellow / green risk zone with hysteresis,
projects the score a week ahead, detects recurring patterns, and rolls
consenting team members up into privacy-safe manager views.

Architecture:
    config      thresholds, weights, windows, and versioned scoring policies
    models      closed enums and immutable records shared by every stage
    ingest      sample validation at the system boundary
    baseline    trailing-window personal reference values
    scoring     weighted multi-factor burnout / readiness scores with explanations
    zones       zone classification with hysteresis
    thresholds  per-employee, organization, and percentile zone thresholds
    recommendations  zone- and factor-driven suggestions
    signals     OLS trend fit and direction labelling
    forecast    short-horizon linear projection with confidence
    detectors   recurrence, anomaly, sustained-trend, and prediction patterns
    aggregate   privacy-floored team rollups
    store       storage capabilities and in-memory implementations
    pipeline    orchestration: read → score → classify → persist → report

Public API:
    WellnessEngine(store)   storage-bound service
    analyze(filepath)       CLI mode
    analyze_data(data)      UI / backend mode
    generate_report(result) formatted report
"""

from wellspring.pipeline import WellnessEngine, analyze, analyze_data, generate_report

__version__ = "1.0.0"

__all__ = ["WellnessEngine", "analyze", "analyze_data", "generate_report"]
