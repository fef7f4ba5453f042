"""Tutoring Center package.

This package is organized by feature modules (classes, schedules, attendance,
tuition, wages, ...) with a thin Flask controller layer on top of service and
repository layers.
"""
