"""
Reassignment of pick lists and packing tasks.

A unit can be handed over whole (SIMPLE) or split (SPLIT): the original keeps
what was already done and a ``-CONT`` continuation carries the outstanding
work to the new assignee.
"""

import logging
from typing import List, NamedTuple

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from ..exceptions import (
    BusinessException, InvalidStateException, NotFoundException,
    NothingToReassignException, ValidationException,
)
from ..models import (
    Order, ReassignmentReason, ReassignmentStrategy, WorkUnitEventType,
    WorkUnitItemStatus, WorkUnitStatus, NotificationType,
)
from ..permissions import authorize_reassignment
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class ItemPartition(NamedTuple):
    """Disjoint split of a unit's items by progress."""

    complete: List
    partial: List
    untouched: List

    @property
    def outstanding(self):
        return self.partial + self.untouched

    @property
    def has_progress(self):
        return any(item.quantity_completed > 0 for item in self.complete + self.partial)

    @property
    def total(self):
        return len(self.complete) + len(self.partial) + len(self.untouched)


def partition_items(items) -> ItemPartition:
    """
    Partition items into complete, partial and untouched.

    Lines closed short (COMPLETED with less than the required quantity) have
    nothing outstanding and count as complete.
    """
    complete, partial, untouched = [], [], []
    for item in items:
        if item.is_complete or item.status == WorkUnitItemStatus.COMPLETED:
            complete.append(item)
        elif item.quantity_completed > 0:
            partial.append(item)
        else:
            untouched.append(item)
    return ItemPartition(complete, partial, untouched)


def resolve_strategy(requested, partition: ItemPartition) -> str:
    """SPLIT only applies once at least one item is fully done; anything else moves whole."""
    if requested == ReassignmentStrategy.SPLIT and partition.complete:
        return ReassignmentStrategy.SPLIT
    return ReassignmentStrategy.SIMPLE


class ReassignmentEngine:
    """
    Hands outstanding work of a unit to another user.

    Usage:
        ReassignmentEngine(PickList).reassign(pick_list_id, user_id, ..., principal=principal)
    """

    def __init__(self, unit_model):
        self.unit_model = unit_model
        self.item_model = unit_model._meta.get_field('items').related_model
        self.label = unit_model._meta.verbose_name

    def reassign(self, unit_id, target_user_id, strategy=ReassignmentStrategy.SPLIT,
                 reason=ReassignmentReason.OTHER, notes="", principal=None):
        """
        Reassign one unit.

        Args:
            unit_id: Primary key of the PickList / PackingTask
            target_user_id: Active user receiving the work
            strategy: ReassignmentStrategy; SPLIT falls back to SIMPLE until an item is complete
            reason: ReassignmentReason code
            notes: Free text recorded on the audit event
            principal: Acting Principal (ADMIN or MANAGER)

        Returns:
            Dict with ``original``, ``continuation`` (or None) and ``summary``

        Raises:
            UnauthenticatedException, ForbiddenException: Role gate
            NotFoundException: Unit or target user missing
            InvalidStateException: Unit is COMPLETED or CANCELLED
            NothingToReassignException: Every item is complete
        """
        principal = authorize_reassignment(principal)
        strategy = self._parse_choice(ReassignmentStrategy, strategy, 'strategy')
        reason = self._parse_choice(ReassignmentReason, reason or ReassignmentReason.OTHER, 'reason')

        with transaction.atomic():
            unit = self._lock_unit(unit_id)
            if unit.is_terminal:
                raise InvalidStateException(
                    self.unit_model.entity_label,
                    unit.status,
                    f"Cannot reassign {self.label} {unit.batch_number}: it is {unit.status}",
                )

            target = self.resolve_target_user(target_user_id)
            actor = get_user_model().objects.filter(pk=principal.user_id).first()

            partition = partition_items(unit.items.all())
            if not partition.outstanding:
                raise NothingToReassignException(unit.batch_number)

            context = {
                'unit': unit,
                'target': target,
                'actor': actor,
                'actor_name': principal.name or (actor.display_name if actor else ""),
                'reason': reason,
                'notes': notes or "",
                'partition': partition,
                'now': timezone.now(),
            }

            if resolve_strategy(strategy, partition) == ReassignmentStrategy.SPLIT:
                return self._split(**context)
            return self._simple(**context)

    def bulk_reassign(self, unit_ids, target_user_id, reason=ReassignmentReason.OTHER, notes="",
                      principal=None, strategy=ReassignmentStrategy.SPLIT):
        """
        Reassign several units, each in its own transaction.

        A failure on one unit is reported in ``errors`` and does not stop the
        others. An unknown target user fails the whole request.
        """
        authorize_reassignment(principal)

        if not target_user_id:
            raise ValidationException(
                "Missing required field: to_user_id", {'to_user_id': ["This field is required."]}
            )
        if not unit_ids:
            raise ValidationException(
                f"No {self.label}s selected", {'ids': ["At least one id is required."]}
            )

        self.resolve_target_user(target_user_id)

        results, errors = [], []
        unique_ids = list(dict.fromkeys(str(unit_id) for unit_id in unit_ids))
        for unit_id in unique_ids:
            try:
                result = self.reassign(
                    unit_id, target_user_id, strategy=strategy, reason=reason,
                    notes=notes, principal=principal,
                )
            except BusinessException as e:
                logger.warning(f"Bulk reassignment skipped {self.label} {unit_id}: {e.message}")
                errors.append({'id': unit_id, 'error': e.message, 'code': e.code})
                continue
            results.append(result)

        logger.info(
            f"Bulk reassignment of {len(unique_ids)} {self.label}s to user {target_user_id}: "
            f"{len(results)} succeeded, {len(errors)} failed"
        )
        return {
            'success': True,
            'results': results,
            'errors': errors,
            'summary': {
                'total': len(unique_ids),
                'succeeded': len(results),
                'failed': len(errors),
            },
        }

    @staticmethod
    def resolve_target_user(user_id):
        try:
            return get_user_model().objects.get(pk=user_id, is_active=True)
        except (get_user_model().DoesNotExist, ValueError, TypeError, DjangoValidationError):
            raise NotFoundException("User", user_id)

    def _lock_unit(self, unit_id):
        try:
            return (
                self.unit_model.objects
                .select_for_update()
                .get(pk=unit_id)
            )
        except (self.unit_model.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundException(self.unit_model.entity_label, unit_id)

    @staticmethod
    def _parse_choice(choices, value, field):
        try:
            return choices(str(value).upper())
        except ValueError:
            raise ValidationException(
                f"Invalid {field}: {value}", {field: [f"Must be one of {', '.join(choices.values)}"]}
            )

    def _simple(self, unit, target, actor, actor_name, reason, notes, partition, now):
        previous_user = unit.assigned_user
        previous_status = unit.status

        unit.assigned_user = target
        unit.assigned_at = now
        unit.status = WorkUnitStatus.IN_PROGRESS if partition.has_progress else WorkUnitStatus.ASSIGNED
        unit.save(update_fields=['assigned_user', 'assigned_at', 'status', 'updated_at'])
        unit.refresh_progress()

        self._point_orders(partition.outstanding, target, now)

        unit.record_event(
            WorkUnitEventType.REASSIGNED,
            user=actor,
            notes=notes or f"Reassigned from {self._name(previous_user) or 'unassigned'} to {target.display_name}",
            **self._handover_data(previous_user, target, reason, actor, actor_name),
            previous_status=previous_status,
            new_status=unit.status,
            completed_items=unit.completed_items,
            total_items=unit.total_items,
        )

        NotificationService.dispatch_after_commit(target.pk, NotificationService.build_payload(
            NotificationType.TASK_REASSIGNED,
            f"{self.label.title()} Reassigned",
            f"You've been assigned {self.label} {unit.batch_number} by {actor_name}.",
            link=unit.notification_link.format(id=unit.pk),
            batch_number=unit.batch_number,
            reassigned_by=actor_name,
            reason=reason,
        ))

        logger.info(
            f"{self.unit_model.entity_label} {unit.batch_number} reassigned from "
            f"{self._name(previous_user) or 'unassigned'} to {target.display_name} ({reason})"
        )
        return {
            'success': True,
            'strategy': ReassignmentStrategy.SIMPLE.value,
            'original': {
                'id': str(unit.pk),
                'batch_number': unit.batch_number,
                'status': unit.status,
                'assigned_user_id': target.pk,
            },
            'continuation': None,
            'summary': {
                'completed_items': unit.completed_items,
                'total_items': unit.total_items,
            },
        }

    def _split(self, unit, target, actor, actor_name, reason, notes, partition, now):
        previous_user = unit.assigned_user
        item_unit_field = self.unit_model.item_unit_field

        continuation = self.unit_model.objects.create(
            batch_number=self._continuation_batch_number(unit.batch_number),
            assigned_user=target,
            assigned_at=now,
            status=WorkUnitStatus.ASSIGNED,
            priority=unit.priority + 1,
            parent=unit,
            notes=f"Continuation of {unit.batch_number}",
        )

        for item in partition.partial:
            self.item_model.objects.create(**{
                item_unit_field: continuation,
                'order_id': item.order_id,
                'product_id': item.product_id,
                'location_id': item.location_id,
                'quantity_required': item.remaining_quantity,
                'sequence': item.sequence,
                'notes': f"Continuation from {unit.batch_number}",
            })
            # Freeze the original line at what was actually done
            item.quantity_required = item.quantity_completed
            item.status = WorkUnitItemStatus.COMPLETED
            item.completed_at = now
            item.save(update_fields=['quantity_required', 'status', 'completed_at', 'updated_at'])

        for item in partition.untouched:
            setattr(item, item_unit_field, continuation)
            item.notes = f"{item.notes}\nMoved from {unit.batch_number}" if item.notes else f"Moved from {unit.batch_number}"
            item.save(update_fields=[item_unit_field, 'notes', 'updated_at'])

        continuation.refresh_progress()

        unit.status = WorkUnitStatus.PARTIALLY_COMPLETED
        unit.completed_at = now
        unit.append_note(f"Partially completed - continued in {continuation.batch_number}")
        unit.save(update_fields=['status', 'completed_at', 'notes', 'updated_at'])
        unit.refresh_progress()

        self._point_orders(partition.outstanding, target, now)

        unit.record_event(
            WorkUnitEventType.SPLIT,
            user=actor,
            notes=notes or (
                f"{self.label.capitalize()} split - {len(partition.partial)} partial items, "
                f"{len(partition.untouched)} untouched items"
            ),
            **self._handover_data(previous_user, target, reason, actor, actor_name),
            continuation_id=continuation.pk,
            continuation_batch_number=continuation.batch_number,
            partial_items_split=len(partition.partial),
            untouched_items_moved=len(partition.untouched),
        )
        continuation.record_event(
            WorkUnitEventType.ASSIGNED,
            user=actor,
            notes=f"Assigned continuation from {unit.batch_number}",
            assigned_user_id=target.pk,
            assigned_user_name=target.display_name,
            original_id=unit.pk,
            original_batch_number=unit.batch_number,
            reason=reason,
            assigned_by=actor.pk if actor else None,
            assigned_by_name=actor_name,
        )

        NotificationService.dispatch_after_commit(target.pk, NotificationService.build_payload(
            NotificationType.TASK_ASSIGNED,
            f"Continuation {self.label.title()} Assigned",
            f"You've been assigned a continuation {self.label} {continuation.batch_number} "
            f"(from {unit.batch_number}) by {actor_name}.",
            link=continuation.notification_link.format(id=continuation.pk),
            continuation_of=unit.batch_number,
            reassigned_by=actor_name,
            reason=reason,
        ))

        logger.info(
            f"{self.unit_model.entity_label} {unit.batch_number} split: {len(partition.partial)} partial, "
            f"{len(partition.untouched)} untouched items continued in {continuation.batch_number} "
            f"for {target.display_name}"
        )
        return {
            'success': True,
            'strategy': ReassignmentStrategy.SPLIT.value,
            'original': {
                'id': str(unit.pk),
                'batch_number': unit.batch_number,
                'status': unit.status,
            },
            'continuation': {
                'id': str(continuation.pk),
                'batch_number': continuation.batch_number,
                'status': continuation.status,
                'priority': continuation.priority,
                'assigned_user_id': target.pk,
                'total_items': continuation.total_items,
            },
            'summary': {
                'partial_items_split': len(partition.partial),
                'untouched_items_moved': len(partition.untouched),
                'total_items_in_continuation': continuation.total_items,
            },
        }

    def _continuation_batch_number(self, batch_number):
        candidate = f"{batch_number}-CONT"
        suffix = 2
        while self.unit_model.objects.filter(batch_number=candidate).exists():
            candidate = f"{batch_number}-CONT-{suffix}"
            suffix += 1
        return candidate

    def _point_orders(self, items, target, now):
        order_ids = {item.order_id for item in items}
        if not order_ids:
            return
        Order.objects.filter(pk__in=order_ids).update(**{
            self.unit_model.order_assignee_field: target,
            self.unit_model.order_assigned_at_field: now,
            'updated_at': now,
        })

    def _handover_data(self, previous_user, target, reason, actor, actor_name):
        return {
            'from_user_id': previous_user.pk if previous_user else None,
            'from_user_name': self._name(previous_user),
            'to_user_id': target.pk,
            'to_user_name': target.display_name,
            'reason': reason,
            'reassigned_by': actor.pk if actor else None,
            'reassigned_by_name': actor_name,
        }

    @staticmethod
    def _name(user):
        return user.display_name if user else None
