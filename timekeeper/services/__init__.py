"""서비스 패키지 — 비즈니스 로직 계층.

Service package — Business logic layer.
Services orchestrate repositories and hold the time-engine rules: the attendance
state machine, working-hours resolution, overtime detection and reporting.
"""
