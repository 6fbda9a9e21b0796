"""Health-signal intelligence pipeline.

This package contains the deterministic readiness and safety logic plus the
orchestration around the external narrative collaborator, isolated from
persistence and presentation for easy testing and reasoning.
"""
