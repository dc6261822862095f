from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal

from . import resources
from .http_client import ApiClient
from .models import Activity
from .views import pipeline_value, recent_activities

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 5


@dataclass
class DashboardData:
    total_contacts: int = 0
    total_deals: int = 0
    total_tasks: int = 0
    deal_value: Decimal = Decimal(0)
    recent_activities: list[Activity] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return bool(self.errors)


def load_dashboard(client: ApiClient) -> DashboardData:
    """Fetch the four collections concurrently and build the dashboard stats.

    A failed fetch leaves its collection empty, so its numbers read as zero
    while the others still render.
    """
    contacts = resources.contacts(client)
    deals = resources.deals(client)
    tasks = resources.tasks(client)
    activities = resources.activities(client)
    controllers = (contacts, deals, tasks, activities)

    with ThreadPoolExecutor(max_workers=len(controllers)) as pool:
        outcomes = list(pool.map(lambda controller: controller.list(), controllers))

    errors = {
        controller.name: outcome.message or "fetch failed"
        for controller, outcome in zip(controllers, outcomes, strict=True)
        if not outcome.ok
    }
    if errors:
        logger.warning("dashboard rendered with partial data: %s", ", ".join(sorted(errors)))
    return DashboardData(
        total_contacts=len(contacts.items),
        total_deals=len(deals.items),
        total_tasks=len(tasks.items),
        deal_value=pipeline_value(deals.items),
        recent_activities=recent_activities(activities.items, RECENT_ACTIVITY_LIMIT),
        errors=errors,
    )
