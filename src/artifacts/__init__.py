"""Artifact update pipeline: request models, snapshots, orchestration, engine."""
