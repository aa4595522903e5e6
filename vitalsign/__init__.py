"""Alert decision engine for bedside vital-sign monitoring.

This package contains the clinical reference tables, the domain models and
the services that turn uploaded readings into prioritized, explainable alerts.
"""
