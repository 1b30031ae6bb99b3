"""
Campus Placement Engine
Eligibility matching and application lifecycle for university placements.

Architecture:
- Relational store: coordinators, students, drives, resumes, applications
- Services: eligibility rules, state machine, derived counts and caches
- Matcher (OpenAI-compatible API): resume/job scoring only, cached per application
"""

__version__ = "1.0.0"
