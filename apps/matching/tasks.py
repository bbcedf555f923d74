from __future__ import annotations

import logging

from celery import shared_task

from apps.matching.services.lifecycle import get_match_lifecycle

logger = logging.getLogger(__name__)


@shared_task
def sweep_expired_unlike_requests(limit: int | None = None) -> dict[str, object]:
    results = get_match_lifecycle().sweep_overdue(limit=limit)
    if results:
        logger.info("match.sweep_completed", extra={"unmatched": len(results)})
    return {"unmatched": len(results), "reasons": [result.reason for result in results]}
