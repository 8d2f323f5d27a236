import logging
from decimal import Decimal, ROUND_HALF_UP

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from order_fulfillment.exceptions import InvalidStateException, NotFoundException, ValidationException
from order_fulfillment.models import NotificationType
from order_fulfillment.permissions import authorize_supervisor
from order_fulfillment.services.notification_service import NotificationService
from warehouse.models import (
    CycleCountCampaign,
    CycleCountCampaignStatus,
    CycleCountEvent,
    CycleCountEventType,
    CycleCountTask,
    CycleCountTaskStatus,
    StockItem,
    StorageLocation,
)
from warehouse.services.stock_service import StockService

logger = logging.getLogger(__name__)

COUNTABLE_STATUSES = (
    CycleCountTaskStatus.PENDING,
    CycleCountTaskStatus.IN_PROGRESS,
    CycleCountTaskStatus.RECOUNT_REQUIRED,
)
FINISHED_STATUSES = (
    CycleCountTaskStatus.COMPLETED,
    CycleCountTaskStatus.SKIPPED,
    CycleCountTaskStatus.VARIANCE_REVIEW,
)


def _exact_percentage(system_quantity, counted_quantity):
    """
    Unrounded variance percentage, relative to the system quantity.

    Stock found where the system expected none counts as a 100% variance.
    """
    if system_quantity > 0:
        return Decimal(abs(counted_quantity - system_quantity)) / Decimal(system_quantity) * 100
    elif counted_quantity > 0:
        return Decimal("100")
    return Decimal("0")


def calculate_variance(system_quantity, counted_quantity):
    """Return ``(variance, variance_percentage)`` with the percentage rounded to 2 places."""
    percentage = _exact_percentage(system_quantity, counted_quantity)
    return counted_quantity - system_quantity, percentage.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def exceeds_tolerance(system_quantity, counted_quantity, tolerance_percentage):
    """Compared before rounding, so 5.004% still exceeds a 5% tolerance."""
    return _exact_percentage(system_quantity, counted_quantity) > Decimal(str(tolerance_percentage))


class CycleCountService:
    """
    Cycle count campaigns, count recording and variance review.

    Recording a count adjusts on-hand stock straight away, even when the
    variance is large enough to need a supervisor's approval.
    """

    def __init__(self):
        self.stock_service = StockService()

    @transaction.atomic
    def create_campaign(self, name, principal, location_ids, description="", assigned_to_id=None):
        """Create a campaign with one task per stocked product at the given locations."""
        authorize_supervisor(principal, "create cycle count campaigns")

        locations = list(StorageLocation.objects.filter(pk__in=location_ids, is_active=True))
        if not locations:
            raise ValidationException("No active locations selected", {"location_ids": ["Required"]})

        assignee = self._resolve_user(assigned_to_id) if assigned_to_id else None
        campaign = CycleCountCampaign.objects.create(
            name=name,
            description=description,
            created_by_id=principal.user_id,
        )

        tasks = []
        for stock_item in StockItem.objects.filter(location__in=locations).select_related("location"):
            tasks.append(CycleCountTask(
                campaign=campaign,
                location=stock_item.location,
                product_id=stock_item.product_id,
                assigned_to=assignee,
                system_quantity=stock_item.quantity_on_hand,
            ))
        CycleCountTask.objects.bulk_create(tasks)

        campaign.total_tasks = len(tasks)
        campaign.save(update_fields=["total_tasks", "updated_at"])
        logger.info(f"Cycle count campaign '{campaign.name}' created with {len(tasks)} tasks")
        return campaign

    @transaction.atomic
    def record_count(self, task_id, counted_quantity, user, notes="", skip=False):
        """
        Record the physical count for a task.

        Args:
            task_id: CycleCountTask id
            counted_quantity: Units found on the shelf; ignored when skipping
            user: Counter
            notes: Free text
            skip: Mark the task SKIPPED without touching inventory

        Raises:
            NotFoundException: Unknown task
            InvalidStateException: Task already counted
            ValidationException: Missing or negative quantity
        """
        task = self._lock_task(task_id)
        if task.status not in COUNTABLE_STATUSES:
            raise InvalidStateException("CycleCountTask", task.status, f"Task is already {task.status}")

        now = timezone.now()
        if skip:
            return self._skip(task, user, notes, now)

        if counted_quantity is None:
            raise ValidationException("Counted quantity is required", {"counted_quantity": ["Required"]})
        counted_quantity = int(counted_quantity)
        if counted_quantity < 0:
            raise ValidationException("Counted quantity cannot be negative", {"counted_quantity": ["Must be >= 0"]})

        if task.status == CycleCountTaskStatus.RECOUNT_REQUIRED and task.product_id:
            # The first count already moved stock; compare against what is on the books now
            stock_item = StockItem.objects.filter(location=task.location, product=task.product).first()
            task.system_quantity = stock_item.quantity_on_hand if stock_item else 0

        variance, percentage = calculate_variance(task.system_quantity, counted_quantity)
        requires_review = exceeds_tolerance(task.system_quantity, counted_quantity, task.tolerance_percentage)

        task.counted_quantity = counted_quantity
        task.variance = variance
        task.variance_percentage = percentage
        task.requires_review = requires_review
        task.status = CycleCountTaskStatus.VARIANCE_REVIEW if requires_review else CycleCountTaskStatus.COMPLETED
        task.notes = notes or task.notes
        task.assigned_to = user
        task.completed_at = now
        task.save()

        if task.product_id:
            adjustment_notes = f"Cycle count adjustment: {notes or 'Count variance recorded'}"
            if requires_review:
                adjustment_notes += " (Pending supervisor review)"
            self.stock_service.apply_count(
                task.location, task.product, variance, counted_quantity, user, task.pk, adjustment_notes
            )

        CycleCountEvent.objects.create(
            task=task,
            event_type=CycleCountEventType.COUNT_RECORDED,
            user=user,
            previous_value=task.system_quantity,
            new_value=counted_quantity,
            notes=notes,
            metadata={
                "variance": variance,
                "variance_percentage": str(percentage),
                "requires_review": requires_review,
                "tolerance_percentage": str(task.tolerance_percentage),
            },
        )
        if requires_review:
            CycleCountEvent.objects.create(
                task=task,
                event_type=CycleCountEventType.VARIANCE_NOTED,
                user=user,
                notes=f"High variance detected: {variance} units ({percentage}%) - Supervisor review requested",
                metadata={
                    "variance": variance,
                    "variance_percentage": str(percentage),
                    "system_quantity": task.system_quantity,
                    "counted_quantity": counted_quantity,
                },
            )
            logger.warning(
                f"Cycle count variance at {task.location.code}: {variance} units ({percentage}%) needs review"
            )
        else:
            logger.info(f"Cycle count recorded at {task.location.code}: variance {variance}")

        self._refresh_campaign(task.campaign_id)
        return {
            "success": True,
            "task": task,
            "variance": variance,
            "variance_percentage": percentage,
            "requires_review": requires_review,
            "message": (
                "Count recorded - supervisor review requested due to high variance"
                if requires_review else "Count recorded successfully"
            ),
        }

    @transaction.atomic
    def approve_variance(self, task_id, principal, notes=""):
        """
        Accept a reviewed variance and complete the task.

        Raises:
            UnauthenticatedException, ForbiddenException: Not a supervisor
            InvalidStateException: Task is not awaiting review
        """
        principal = authorize_supervisor(principal, "approve count variances")
        task = self._lock_task(task_id)
        if task.status != CycleCountTaskStatus.VARIANCE_REVIEW:
            raise InvalidStateException(
                "CycleCountTask", task.status, f"Only tasks in VARIANCE_REVIEW can be approved, task is {task.status}"
            )

        previous_status = task.status
        task.status = CycleCountTaskStatus.COMPLETED
        task.requires_review = False
        if notes:
            task.notes = f"{task.notes}\n[SUPERVISOR APPROVED] {notes}".strip()
        task.save(update_fields=["status", "requires_review", "notes", "updated_at"])

        CycleCountEvent.objects.create(
            task=task,
            event_type=CycleCountEventType.VARIANCE_APPROVED,
            user_id=principal.user_id,
            previous_value=task.system_quantity,
            new_value=task.counted_quantity,
            notes=f"Variance approved by supervisor{f': {notes}' if notes else ''}",
            metadata={
                "previous_status": previous_status,
                "variance": task.variance,
                "variance_percentage": str(task.variance_percentage),
                "approved_by": principal.user_id,
            },
        )
        self._refresh_campaign(task.campaign_id)

        logger.info(f"Cycle count variance at {task.location.code} approved by {principal.name}")
        return {"success": True, "task": task, "message": "Variance approved successfully"}

    @transaction.atomic
    def request_recount(self, task_id, principal, notes="", assign_to_id=None):
        """
        Send a counted task back for another count.

        Raises:
            UnauthenticatedException, ForbiddenException: Not a supervisor
            InvalidStateException: Task has not been counted yet
            NotFoundException: Unknown task or assignee
        """
        principal = authorize_supervisor(principal, "request recounts")
        task = self._lock_task(task_id)
        if task.status not in (CycleCountTaskStatus.VARIANCE_REVIEW, CycleCountTaskStatus.COMPLETED):
            raise InvalidStateException(
                "CycleCountTask", task.status, f"Cannot request a recount for a {task.status} task"
            )

        if assign_to_id:
            task.assigned_to = self._resolve_user(assign_to_id)

        previous_status = task.status
        task.status = CycleCountTaskStatus.RECOUNT_REQUIRED
        task.requires_review = True
        task.recount_reason = notes
        task.completed_at = None
        task.save()

        CycleCountEvent.objects.create(
            task=task,
            event_type=CycleCountEventType.RECOUNT_REQUESTED,
            user_id=principal.user_id,
            previous_value=task.counted_quantity,
            notes=notes,
            metadata={
                "previous_status": previous_status,
                "assigned_to": task.assigned_to_id,
            },
        )
        self._refresh_campaign(task.campaign_id)

        if task.assigned_to_id:
            NotificationService.dispatch_after_commit(task.assigned_to_id, NotificationService.build_payload(
                NotificationType.RECOUNT_REQUESTED,
                "Recount Requested",
                f"Please recount {task.location.code}{f': {notes}' if notes else ''}",
                link=f"/dashboard/inventory/count/{task.campaign_id or ''}",
                task_id=task.pk,
                requested_by=principal.name,
            ))

        logger.info(f"Recount requested for {task.location.code} by {principal.name}")
        return {"success": True, "task": task, "message": "Recount requested"}

    def _skip(self, task, user, notes, now):
        task.status = CycleCountTaskStatus.SKIPPED
        task.counted_quantity = None
        task.variance = None
        task.variance_percentage = None
        task.requires_review = False
        task.notes = notes or task.notes
        task.assigned_to = user
        task.completed_at = now
        task.save()

        CycleCountEvent.objects.create(
            task=task,
            event_type=CycleCountEventType.COUNT_SKIPPED,
            user=user,
            previous_value=task.system_quantity,
            notes=notes,
        )
        self._refresh_campaign(task.campaign_id)
        logger.info(f"Cycle count at {task.location.code} skipped")
        return {
            "success": True,
            "task": task,
            "variance": None,
            "variance_percentage": None,
            "requires_review": False,
            "message": "Count skipped",
        }

    def _lock_task(self, task_id):
        try:
            return CycleCountTask.objects.select_for_update().get(pk=task_id)
        except (CycleCountTask.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundException("CycleCountTask", task_id)

    def _resolve_user(self, user_id):
        try:
            return get_user_model().objects.get(pk=user_id, is_active=True)
        except (get_user_model().DoesNotExist, ValueError, TypeError):
            raise NotFoundException("User", user_id)

    def _refresh_campaign(self, campaign_id):
        if not campaign_id:
            return
        campaign = CycleCountCampaign.objects.select_for_update().get(pk=campaign_id)
        tasks = campaign.tasks.all()
        campaign.total_tasks = tasks.count()
        campaign.completed_tasks = tasks.filter(status__in=FINISHED_STATUSES).count()
        campaign.variances_found = tasks.exclude(variance__isnull=True).exclude(variance=0).count()
        if campaign.status == CycleCountCampaignStatus.PLANNED and campaign.completed_tasks:
            campaign.status = CycleCountCampaignStatus.ACTIVE
        campaign.save(update_fields=["total_tasks", "completed_tasks", "variances_found", "status", "updated_at"])
