"""
Stackr financial insight & alerting engine.

Producers (achievements, guardrails, summaries, wellness scorecard) compute
derived state from raw financial records and route the result through the
notification service.
"""
