"""Matching gateway confirmations to projects.

All entry points (bKash callback, PipraPay return, PipraPay webhook, the
reconcile command) funnel into :func:`confirm_project_payment`, keyed by the
project's ``order_id``.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from django.db import transaction

from projects.models import Project
from .exceptions import NotFoundError
from .sms import send_payment_confirmation_sms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    project: Project
    transitioned: bool


def confirm_project_payment(order_id: str, *, config, source: str = "") -> ReconcileResult:
    """Mark the project paid exactly once and notify the client on that transition.

    A project that is already paid is left untouched and no SMS goes out.
    Raises :class:`NotFoundError` when ``order_id`` matches no project.
    """
    if not order_id:
        raise NotFoundError("Empty order id")

    with transaction.atomic():
        project = Project.objects.select_for_update().filter(order_id=order_id).first()
        if project is None:
            raise NotFoundError(f"Project not found for order id {order_id}")
        if project.payment_status == Project.PAID:
            logger.info("Order %s already paid; ignoring %s confirmation", order_id, source or "duplicate")
            return ReconcileResult(project=project, transitioned=False)

        # Conditional update is the compare-and-set; only one writer sees a row change
        updated = (
            Project.objects.filter(pk=project.pk)
            .exclude(payment_status=Project.PAID)
            .update(payment_status=Project.PAID)
        )
        project.payment_status = Project.PAID

    if not updated:
        logger.info("Order %s was paid concurrently; skipping notification", order_id)
        return ReconcileResult(project=project, transitioned=False)

    logger.info("Payment status updated to 'paid' for project %s (order %s) via %s", project.pk, order_id, source or "unknown")
    project = Project.objects.select_related("client").get(pk=project.pk)
    send_payment_confirmation_sms(project=project, credentials=config.sms)
    return ReconcileResult(project=project, transitioned=True)


def order_id_for_project(project_id) -> Optional[str]:
    """Resolve a raw project id (as sent in webhook metadata) to its order id."""
    try:
        pk = uuid.UUID(str(project_id))
    except (TypeError, ValueError):
        return None
    return Project.objects.filter(pk=pk).values_list("order_id", flat=True).first()
