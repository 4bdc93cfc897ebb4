"""Attendance Admission package.

Feature modules (geofence, evidence, sessions, attendance, ratelimit,
resilience, ...) with a thin Flask controller layer over service and
repository layers.
"""
