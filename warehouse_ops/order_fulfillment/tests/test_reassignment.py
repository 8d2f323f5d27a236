"""
Tests for pick list and packing task reassignment.
"""

from unittest.mock import patch

from django.db.models import Sum
from django.test import TestCase

from users.models import UserRole

from ..adapters.notification_adapter import switch_to_mock_adapter, switch_to_real_adapter
from ..exceptions import (
    ForbiddenException, InvalidStateException, NotFoundException,
    NothingToReassignException, UnauthenticatedException, ValidationException,
)
from ..models.audit import build_event_data
from ..models import (
    NotificationType, PackingTask, PickList, PickListEvent, PickListItem, ReassignmentReason,
    ReassignmentStrategy, WorkUnitEventType, WorkUnitItemStatus, WorkUnitStatus,
)
from ..permissions import Principal
from ..services import ReassignmentEngine, partition_items
from .factories import make_order, make_packing_task, make_pick_list, make_product, make_user


class ReassignmentTestCase(TestCase):

    def setUp(self):
        self.manager = make_user('manager', UserRole.MANAGER, first_name='Maria', last_name='Manager')
        self.picker = make_user('picker', first_name='Pat', last_name='Picker')
        self.new_picker = make_user('newpicker', first_name='Nina', last_name='Newman')
        self.principal = Principal.from_user(self.manager)

        self.product_a = make_product('SKU-A')
        self.product_b = make_product('SKU-B')
        self.product_c = make_product('SKU-C')
        self.order = make_order('ORD-1001', [
            (self.product_a, 5), (self.product_b, 5), (self.product_c, 3),
        ])

        self.engine = ReassignmentEngine(PickList)
        self.notifications = switch_to_mock_adapter()
        self.addCleanup(switch_to_real_adapter)

    def make_started_pick_list(self, batch_number='PL-001'):
        return make_pick_list(batch_number, self.picker, [
            (self.order, self.product_a, 5, 5),
            (self.order, self.product_b, 5, 2),
            (self.order, self.product_c, 3, 0),
        ], status=WorkUnitStatus.IN_PROGRESS, priority=3)

    def make_untouched_pick_list(self, batch_number='PL-002'):
        return make_pick_list(batch_number, self.picker, [
            (self.order, self.product_a, 5, 0),
            (self.order, self.product_b, 5, 0),
            (self.order, self.product_c, 3, 0),
        ])


class PartitionItemsTest(ReassignmentTestCase):

    def test_items_are_partitioned_by_progress(self):
        pick_list = self.make_started_pick_list()

        partition = partition_items(pick_list.items.order_by('sequence'))

        self.assertEqual([i.product.sku for i in partition.complete], ['SKU-A'])
        self.assertEqual([i.product.sku for i in partition.partial], ['SKU-B'])
        self.assertEqual([i.product.sku for i in partition.untouched], ['SKU-C'])
        self.assertEqual(partition.total, 3)
        self.assertTrue(partition.has_progress)

    def test_short_closed_line_counts_as_complete(self):
        pick_list = self.make_untouched_pick_list()
        item = pick_list.items.get(product=self.product_b)
        item.quantity_completed = 2
        item.status = WorkUnitItemStatus.COMPLETED
        item.save()

        partition = partition_items(pick_list.items.all())

        self.assertIn(item, partition.complete)
        self.assertEqual(len(partition.outstanding), 2)


class SimpleReassignmentTest(ReassignmentTestCase):

    def test_untouched_pick_list_is_handed_over_whole(self):
        pick_list = self.make_untouched_pick_list()

        result = self.engine.reassign(
            pick_list.id, self.new_picker.id,
            strategy=ReassignmentStrategy.SIMPLE,
            reason=ReassignmentReason.SHIFT_CHANGE,
            principal=self.principal,
        )

        self.assertTrue(result['success'])
        self.assertEqual(result['strategy'], 'SIMPLE')
        self.assertIsNone(result['continuation'])

        pick_list.refresh_from_db()
        self.assertEqual(pick_list.assigned_user, self.new_picker)
        self.assertEqual(pick_list.status, WorkUnitStatus.ASSIGNED)
        self.assertEqual(pick_list.items.count(), 3)
        self.assertFalse(PickList.objects.filter(parent=pick_list).exists())

        events = PickListEvent.objects.filter(pick_list=pick_list)
        self.assertEqual(events.count(), 1)
        event = events.get()
        self.assertEqual(event.event_type, WorkUnitEventType.REASSIGNED)
        self.assertEqual(event.user, self.manager)
        self.assertEqual(event.data['from_user_id'], self.picker.id)
        self.assertEqual(event.data['to_user_id'], self.new_picker.id)
        self.assertEqual(event.data['reason'], ReassignmentReason.SHIFT_CHANGE)
        self.assertEqual(event.data['reassigned_by_name'], 'Maria Manager')

    def test_split_without_progress_falls_back_to_simple(self):
        pick_list = self.make_untouched_pick_list()

        result = self.engine.reassign(
            pick_list.id, self.new_picker.id, strategy=ReassignmentStrategy.SPLIT, principal=self.principal
        )

        self.assertEqual(result['strategy'], 'SIMPLE')
        self.assertEqual(PickList.objects.count(), 1)

    def test_partial_progress_alone_moves_the_whole_list(self):
        pick_list = make_pick_list('PL-004', self.picker, [
            (self.order, self.product_a, 5, 2),
            (self.order, self.product_b, 5, 0),
        ], status=WorkUnitStatus.IN_PROGRESS)

        result = self.engine.reassign(
            pick_list.id, self.new_picker.id, strategy=ReassignmentStrategy.SPLIT, principal=self.principal
        )

        self.assertEqual(result['strategy'], 'SIMPLE')
        self.assertIsNone(result['continuation'])
        self.assertFalse(PickList.objects.filter(batch_number='PL-004-CONT').exists())

        pick_list.refresh_from_db()
        self.assertEqual(pick_list.assigned_user, self.new_picker)
        self.assertEqual(pick_list.status, WorkUnitStatus.IN_PROGRESS)
        quantities = sorted(pick_list.items.values_list('quantity_required', 'quantity_completed'))
        self.assertEqual(quantities, [(5, 0), (5, 2)])

    def test_order_picking_pointer_follows_the_work(self):
        pick_list = self.make_untouched_pick_list()

        self.engine.reassign(pick_list.id, self.new_picker.id, principal=self.principal)

        self.order.refresh_from_db()
        self.assertEqual(self.order.picking_assigned_to, self.new_picker)
        self.assertIsNotNone(self.order.picking_assigned_at)

    def test_strategy_and_reason_are_case_insensitive(self):
        pick_list = self.make_untouched_pick_list()

        result = self.engine.reassign(
            pick_list.id, self.new_picker.id, strategy='simple', reason='shift_change', principal=self.principal
        )

        self.assertEqual(result['strategy'], 'SIMPLE')
        self.assertEqual(pick_list.events.get().data['reason'], 'SHIFT_CHANGE')

    def test_unknown_reason_is_rejected(self):
        pick_list = self.make_untouched_pick_list()

        with self.assertRaises(ValidationException):
            self.engine.reassign(pick_list.id, self.new_picker.id, reason='LUNCH', principal=self.principal)


class SplitReassignmentTest(ReassignmentTestCase):

    def test_partially_picked_list_is_split_into_continuation(self):
        pick_list = self.make_started_pick_list()

        result = self.engine.reassign(
            pick_list.id, self.new_picker.id,
            strategy=ReassignmentStrategy.SPLIT,
            reason=ReassignmentReason.STAFF_UNAVAILABLE,
            principal=self.principal,
        )

        self.assertEqual(result['strategy'], 'SPLIT')
        self.assertEqual(result['summary'], {
            'partial_items_split': 1,
            'untouched_items_moved': 1,
            'total_items_in_continuation': 2,
        })

        pick_list.refresh_from_db()
        self.assertEqual(pick_list.status, WorkUnitStatus.PARTIALLY_COMPLETED)
        self.assertEqual(pick_list.assigned_user, self.picker)
        self.assertIsNotNone(pick_list.completed_at)
        self.assertIn('continued in PL-001-CONT', pick_list.notes)

        original_items = {i.product.sku: i for i in pick_list.items.all()}
        self.assertEqual(set(original_items), {'SKU-A', 'SKU-B'})
        self.assertEqual(original_items['SKU-B'].quantity_required, 2)
        self.assertEqual(original_items['SKU-B'].quantity_completed, 2)
        self.assertEqual(original_items['SKU-B'].status, WorkUnitItemStatus.COMPLETED)

        continuation = PickList.objects.get(parent=pick_list)
        self.assertEqual(continuation.batch_number, 'PL-001-CONT')
        self.assertEqual(continuation.priority, 4)
        self.assertEqual(continuation.status, WorkUnitStatus.ASSIGNED)
        self.assertEqual(continuation.assigned_user, self.new_picker)
        self.assertEqual(continuation.total_items, 2)
        self.assertEqual(str(continuation.id), result['continuation']['id'])

        continued = {i.product.sku: i for i in continuation.items.all()}
        self.assertEqual(continued['SKU-B'].quantity_required, 3)
        self.assertEqual(continued['SKU-B'].quantity_completed, 0)
        self.assertEqual(continued['SKU-C'].quantity_required, 3)
        self.assertIn('Moved from PL-001', continued['SKU-C'].notes)

    def test_split_conserves_required_quantities(self):
        pick_list = self.make_started_pick_list()
        before = dict(
            PickListItem.objects.order_by().values_list('product__sku').annotate(total=Sum('quantity_required'))
        )

        self.engine.reassign(pick_list.id, self.new_picker.id, principal=self.principal)

        after = dict(
            PickListItem.objects.order_by().values_list('product__sku').annotate(total=Sum('quantity_required'))
        )
        self.assertEqual(before, after)
        completed = PickListItem.objects.aggregate(total=Sum('quantity_completed'))['total']
        self.assertEqual(completed, 7)

    def test_failed_split_leaves_no_trace(self):
        pick_list = self.make_started_pick_list()
        fields = ('product__sku', 'quantity_required', 'quantity_completed', 'status')
        items_before = sorted(pick_list.items.values_list(*fields))
        notes_before = pick_list.notes

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with patch.object(PickList, 'record_event', side_effect=RuntimeError('audit write failed')):
                with self.assertRaises(RuntimeError):
                    self.engine.reassign(pick_list.id, self.new_picker.id, principal=self.principal)

        pick_list.refresh_from_db()
        self.assertEqual(pick_list.status, WorkUnitStatus.IN_PROGRESS)
        self.assertEqual(pick_list.assigned_user, self.picker)
        self.assertIsNone(pick_list.completed_at)
        self.assertEqual(pick_list.notes, notes_before)
        self.assertEqual(sorted(pick_list.items.values_list(*fields)), items_before)
        self.assertFalse(PickList.objects.filter(batch_number__startswith='PL-001-CONT').exists())
        self.assertEqual(PickListItem.objects.count(), 3)
        self.assertFalse(PickListEvent.objects.exists())
        self.assertEqual(callbacks, [])
        self.assertEqual(self.notifications.sent, [])

    def test_split_records_events_on_both_units(self):
        pick_list = self.make_started_pick_list()

        self.engine.reassign(pick_list.id, self.new_picker.id, principal=self.principal)

        split_event = pick_list.events.get()
        self.assertEqual(split_event.event_type, WorkUnitEventType.SPLIT)
        self.assertEqual(split_event.data['continuation_batch_number'], 'PL-001-CONT')
        self.assertEqual(split_event.data['partial_items_split'], 1)

        continuation = PickList.objects.get(parent=pick_list)
        assigned_event = continuation.events.get()
        self.assertEqual(assigned_event.event_type, WorkUnitEventType.ASSIGNED)
        self.assertEqual(assigned_event.data['original_batch_number'], 'PL-001')
        self.assertEqual(assigned_event.data['assigned_user_id'], self.new_picker.id)

    def test_second_continuation_gets_a_unique_batch_number(self):
        pick_list = self.make_started_pick_list()
        PickList.objects.create(batch_number='PL-001-CONT', assigned_user=self.picker)

        result = self.engine.reassign(pick_list.id, self.new_picker.id, principal=self.principal)

        self.assertEqual(result['continuation']['batch_number'], 'PL-001-CONT-2')
        self.assertTrue(PickList.objects.filter(batch_number='PL-001-CONT-2', parent=pick_list).exists())

    def test_packing_task_split_uses_packing_pointers(self):
        task = make_packing_task('PT-001', self.picker, [
            (self.order, self.product_a, 5, 5),
            (self.order, self.product_b, 5, 1),
        ], status=WorkUnitStatus.IN_PROGRESS)

        result = ReassignmentEngine(PackingTask).reassign(task.id, self.new_picker.id, principal=self.principal)

        self.assertEqual(result['continuation']['batch_number'], 'PT-001-CONT')
        self.order.refresh_from_db()
        self.assertEqual(self.order.packing_assigned_to, self.new_picker)
        self.assertIsNone(self.order.picking_assigned_to)


class ReassignmentGuardTest(ReassignmentTestCase):

    def test_fully_done_list_has_nothing_to_reassign(self):
        pick_list = make_pick_list('PL-003', self.picker, [
            (self.order, self.product_a, 5, 5),
            (self.order, self.product_b, 5, 5),
        ], status=WorkUnitStatus.IN_PROGRESS)

        with self.assertRaises(NothingToReassignException):
            self.engine.reassign(pick_list.id, self.new_picker.id, principal=self.principal)

        pick_list.refresh_from_db()
        self.assertEqual(pick_list.assigned_user, self.picker)
        self.assertFalse(pick_list.events.exists())

    def test_terminal_pick_list_is_rejected_without_side_effects(self):
        for status in (WorkUnitStatus.COMPLETED, WorkUnitStatus.CANCELLED):
            pick_list = make_pick_list(f'PL-{status.value}', self.picker, [
                (self.order, self.product_a, 5, 0),
            ], status=status)

            with self.assertRaises(InvalidStateException):
                self.engine.reassign(pick_list.id, self.new_picker.id, principal=self.principal)

            pick_list.refresh_from_db()
            self.assertEqual(pick_list.assigned_user, self.picker)
            self.assertEqual(pick_list.events.count(), 0)
        self.assertEqual(self.notifications.sent, [])

    def test_staff_cannot_reassign(self):
        pick_list = self.make_untouched_pick_list()

        with self.assertRaises(ForbiddenException):
            self.engine.reassign(pick_list.id, self.new_picker.id, principal=Principal.from_user(self.picker))

    def test_missing_principal_is_unauthenticated(self):
        pick_list = self.make_untouched_pick_list()

        with self.assertRaises(UnauthenticatedException):
            self.engine.reassign(pick_list.id, self.new_picker.id, principal=None)

    def test_unknown_pick_list_and_user(self):
        pick_list = self.make_untouched_pick_list()

        with self.assertRaises(NotFoundException):
            self.engine.reassign('00000000-0000-0000-0000-000000000000', self.new_picker.id,
                                 principal=self.principal)
        with self.assertRaises(NotFoundException):
            self.engine.reassign(pick_list.id, 999999, principal=self.principal)

    def test_inactive_target_user_is_not_found(self):
        pick_list = self.make_untouched_pick_list()
        self.new_picker.is_active = False
        self.new_picker.save()

        with self.assertRaises(NotFoundException):
            self.engine.reassign(pick_list.id, self.new_picker.id, principal=self.principal)


class ReassignmentNotificationTest(ReassignmentTestCase):

    def test_new_assignee_is_notified_after_commit(self):
        pick_list = self.make_untouched_pick_list()

        with self.captureOnCommitCallbacks(execute=True):
            self.engine.reassign(pick_list.id, self.new_picker.id, principal=self.principal)

        self.assertEqual(len(self.notifications.sent), 1)
        sent = self.notifications.sent[0]
        self.assertEqual(sent['user_id'], self.new_picker.id)
        self.assertEqual(sent['type'], NotificationType.TASK_REASSIGNED)
        self.assertIn('PL-002', sent['message'])
        self.assertEqual(sent['link'], f'/dashboard/picking/mobile/{pick_list.id}')

    def test_continuation_assignee_is_notified(self):
        pick_list = self.make_started_pick_list()

        with self.captureOnCommitCallbacks(execute=True):
            self.engine.reassign(pick_list.id, self.new_picker.id, principal=self.principal)

        sent = self.notifications.sent[0]
        self.assertEqual(sent['type'], NotificationType.TASK_ASSIGNED)
        self.assertIn('PL-001-CONT', sent['message'])

    def test_nothing_is_sent_before_commit(self):
        pick_list = self.make_untouched_pick_list()

        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            self.engine.reassign(pick_list.id, self.new_picker.id, principal=self.principal)

        self.assertEqual(len(callbacks), 1)
        self.assertEqual(self.notifications.sent, [])

    def test_failed_delivery_keeps_the_reassignment(self):
        pick_list = self.make_untouched_pick_list()
        self.notifications.fail_with = RuntimeError('mail server down')

        with self.assertLogs('order_fulfillment.services.notification_service', level='ERROR'):
            with self.captureOnCommitCallbacks(execute=True):
                result = self.engine.reassign(pick_list.id, self.new_picker.id, principal=self.principal)

        self.assertTrue(result['success'])
        pick_list.refresh_from_db()
        self.assertEqual(pick_list.assigned_user, self.new_picker)


class WorkUnitEventTest(ReassignmentTestCase):

    def test_event_data_must_match_event_type(self):
        with self.assertRaises(ValueError):
            build_event_data(WorkUnitEventType.STARTED, {'previous_status': 'ASSIGNED', 'extra': 1})
        with self.assertRaises(ValueError):
            build_event_data(WorkUnitEventType.PAUSED, {'previous_status': 'IN_PROGRESS'})

    def test_events_are_append_only(self):
        pick_list = self.make_untouched_pick_list()
        event = pick_list.record_event(WorkUnitEventType.STARTED, user=self.picker, previous_status='ASSIGNED')

        event.notes = 'rewritten'
        with self.assertRaises(ValueError):
            event.save()
