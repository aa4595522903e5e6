"""
Alert deduplication.

Two granularities are used by two call sites and they differ on purpose:

- deduplicate_by_category keys on (patient, category) and keeps insertion
  order. The agent's batch analysis uses it.
- deduplicate_by_title keys on (patient, category, title) and returns the
  survivors sorted critical first. The full-sweep screening uses it.

In both, the highest priority alert wins and ties keep the first one seen.
"""

from collections.abc import Callable, Hashable, Iterable

from vitalsign.domain.models import Alert


def _keep_highest(alerts: Iterable[Alert], key: Callable[[Alert], Hashable]) -> list[Alert]:
    kept: dict[Hashable, Alert] = {}
    for alert in alerts:
        k = key(alert)
        existing = kept.get(k)
        # Reassigning an existing key keeps its original position
        if existing is None or alert.priority.rank < existing.priority.rank:
            kept[k] = alert
    return list(kept.values())


def deduplicate_by_category(alerts: Iterable[Alert]) -> list[Alert]:
    """At most one alert per (patient, category); insertion order preserved."""
    return _keep_highest(alerts, lambda a: (a.patient_id, a.category))


def deduplicate_by_title(alerts: Iterable[Alert]) -> list[Alert]:
    """At most one alert per (patient, category, title); sorted critical first."""
    survivors = _keep_highest(alerts, lambda a: (a.patient_id, a.category, a.title))
    return sorted(survivors, key=lambda a: a.priority.rank)
