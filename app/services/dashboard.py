"""
Dashboard Summary Module

Buckets projects into the five dashboard categories and aggregates counts and
port totals for the worksheet header cards.
"""
from collections import Counter
from typing import Dict, Iterable, Optional

from app.models.project import Project
from app.utils.coercion import number_or_zero

CATEGORIES = ("done", "construction", "ny_construction", "rescheduled", "cancel")

# Lower-cased progress/status values mapped to a dashboard category
STATUS_KEY_MAP: Dict[str, str] = {
    "rescheduled": "rescheduled",
    "cancel": "cancel",
    "done": "done",
    "construction": "construction",
    "ny_construction": "ny_construction",
    "pending 2026": "rescheduled",
    "pending": "rescheduled",
    "canceled": "cancel",
    "archived": "cancel",
    "finished": "done",
    "completed": "done",
    "in progress": "construction",
    "not yet construction": "ny_construction",
    "ny construction": "ny_construction",
    "desain": "ny_construction",
    "planning": "ny_construction",
    "deployment": "done",
    "rfs": "construction",
    "reject": "cancel",
}


def _lookup(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return STATUS_KEY_MAP.get(value.strip().lower())


def status_category(project: Project) -> str:
    """
    Return the dashboard category of a project.

    ``progress`` is checked first, then ``status``, then ``uic``; anything
    unrecognized counts as not-yet-construction.
    """
    category = _lookup(project.progress)
    if category:
        return category
    if project.progress:
        progress = project.progress.lower()
        if "done" in progress:
            return "done"
        if "reject" in progress:
            return "cancel"

    category = _lookup(project.status)
    if category:
        return category
    if project.status:
        status = project.status.lower()
        if "construction" in status:
            return "construction"
        if "cancel" in status:
            return "cancel"

    uic = (project.uic or "").strip().lower()
    if uic == "planning":
        return "ny_construction"
    if uic == "deployment":
        return "construction"

    return "ny_construction"


def summarize(projects: Iterable[Project]) -> Dict[str, object]:
    projects = list(projects)
    total = len(projects)

    counts = Counter({category: 0 for category in CATEGORIES})
    ports = Counter({category: 0 for category in CATEGORIES})
    regional = Counter()
    total_ports = 0

    for project in projects:
        category = status_category(project)
        port = int(number_or_zero(project.port))
        counts[category] += 1
        ports[category] += port
        total_ports += port
        if project.regional:
            regional[project.regional.upper()] += 1

    done = counts["done"]
    return {
        "total": total,
        "active": total - counts["cancel"],
        "completed": done,
        "progress_rate": int(done / total * 100 + 0.5) if total else 0,
        "categories": dict(counts),
        "ports": dict(ports),
        "total_ports": total_ports,
        "regional": dict(sorted(regional.items())),
    }
