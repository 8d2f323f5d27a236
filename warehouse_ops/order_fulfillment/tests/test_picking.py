"""
Tests for the picking workflow.
"""

from django.test import TestCase

from warehouse.models import InventoryTransaction, InventoryTransactionType, StockItem

from ..exceptions import (
    InvalidStateException, InvalidTransitionException, InventoryUnavailableException, ValidationException,
)
from ..models import OrderStatus, WorkUnitEventType, WorkUnitItemStatus, WorkUnitStatus
from ..services import PickingService
from .factories import make_location, make_order, make_pick_list, make_product, make_user, stock


class PickingServiceTest(TestCase):

    def setUp(self):
        self.picker = make_user('picker')
        self.product = make_product('SKU-PICK', upc='012345678905')
        self.location = make_location('A-01-01', barcode='LOC-A0101')
        self.stock_item = stock(self.location, self.product, 10)
        self.order = make_order('ORD-4001', [(self.product, 5)])
        self.pick_list = make_pick_list(
            'PL-PICK', self.picker, [(self.order, self.product, 5, 0)], location=self.location
        )
        self.item = self.pick_list.items.get()

    def test_start_and_pause(self):
        result = PickingService.start_pick_list(self.pick_list.id, self.picker)
        self.assertEqual(result['status'], WorkUnitStatus.IN_PROGRESS)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PICKING)

        result = PickingService.pause_pick_list(self.pick_list.id, self.picker, 'Forklift blocking aisle')
        self.assertEqual(result['status'], WorkUnitStatus.PAUSED)

        paused = self.pick_list.events.get(event_type=WorkUnitEventType.PAUSED)
        self.assertEqual(paused.data['reason'], 'Forklift blocking aisle')

        with self.assertRaises(InvalidStateException):
            PickingService.record_pick(self.pick_list.id, self.item.id, 1, self.picker, 'SKU-PICK')

        result = PickingService.start_pick_list(self.pick_list.id, self.picker)
        self.assertEqual(result['status'], WorkUnitStatus.IN_PROGRESS)

    def test_cannot_pause_an_assigned_pick_list(self):
        with self.assertRaises(InvalidTransitionException):
            PickingService.pause_pick_list(self.pick_list.id, self.picker)

    def test_pick_decrements_stock_and_writes_ledger(self):
        result = PickingService.record_pick(self.pick_list.id, self.item.id, 3, self.picker, 'SKU-PICK')

        self.assertTrue(result['success'])
        self.assertFalse(result['is_complete'])
        self.assertEqual(result['item']['quantity_completed'], 3)
        self.assertEqual(result['item']['status'], WorkUnitItemStatus.IN_PROGRESS)
        self.assertEqual(result['pick_list']['status'], WorkUnitStatus.IN_PROGRESS)

        self.stock_item.refresh_from_db()
        self.assertEqual(self.stock_item.quantity_on_hand, 7)
        ledger = InventoryTransaction.objects.get()
        self.assertEqual(ledger.transaction_type, InventoryTransactionType.PICK)
        self.assertEqual(ledger.quantity_change, -3)
        self.assertEqual(ledger.reference_id, str(self.pick_list.id))

    def test_location_barcode_and_upc_are_valid_scans(self):
        PickingService.record_pick(self.pick_list.id, self.item.id, 1, self.picker, 'LOC-A0101')
        PickingService.record_pick(self.pick_list.id, self.item.id, 1, self.picker, '012345678905')

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_completed, 2)

    def test_wrong_scan_is_rejected(self):
        with self.assertRaises(ValidationException) as ctx:
            PickingService.record_pick(self.pick_list.id, self.item.id, 1, self.picker, 'SKU-OTHER')

        self.assertIn('Invalid scan', ctx.exception.message)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_completed, 0)

    def test_over_pick_is_rejected(self):
        with self.assertRaises(ValidationException):
            PickingService.record_pick(self.pick_list.id, self.item.id, 6, self.picker, 'SKU-PICK')

    def test_insufficient_stock_rolls_back_the_pick(self):
        StockItem.objects.filter(pk=self.stock_item.pk).update(quantity_on_hand=2)

        with self.assertRaises(InventoryUnavailableException):
            PickingService.record_pick(self.pick_list.id, self.item.id, 3, self.picker, 'SKU-PICK')

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_completed, 0)
        self.assertFalse(InventoryTransaction.objects.exists())

    def test_short_pick_closes_the_line(self):
        result = PickingService.record_pick(
            self.pick_list.id, self.item.id, 2, self.picker, 'SKU-PICK', short_pick_reason='Damaged stock'
        )

        self.assertTrue(result['is_short_pick'])
        self.item.refresh_from_db()
        self.assertEqual(self.item.status, WorkUnitItemStatus.COMPLETED)
        self.assertEqual(self.item.quantity_completed, 2)
        self.assertEqual(self.item.short_pick_reason, 'Damaged stock')
        self.assertTrue(self.pick_list.events.filter(event_type=WorkUnitEventType.ITEM_SHORT).exists())

        # The only line is closed, so the pick list completes
        self.assertEqual(result['pick_list']['status'], WorkUnitStatus.COMPLETED)

    def test_last_pick_completes_list_and_order(self):
        result = PickingService.record_pick(self.pick_list.id, self.item.id, 5, self.picker, 'SKU-PICK')

        self.assertTrue(result['is_complete'])
        self.assertTrue(result['pick_list']['completed'])
        self.pick_list.refresh_from_db()
        self.assertEqual(self.pick_list.status, WorkUnitStatus.COMPLETED)
        self.assertEqual(self.pick_list.completed_items, 1)
        self.assertIsNotNone(self.pick_list.completed_at)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PICKED)

        event_types = list(self.pick_list.events.values_list('event_type', flat=True))
        self.assertCountEqual(event_types, [
            WorkUnitEventType.STARTED, WorkUnitEventType.ITEM_COMPLETED, WorkUnitEventType.COMPLETED,
        ])

    def test_completed_line_cannot_be_picked_again(self):
        PickingService.record_pick(self.pick_list.id, self.item.id, 5, self.picker, 'SKU-PICK')

        with self.assertRaises(InvalidStateException):
            PickingService.record_pick(self.pick_list.id, self.item.id, 1, self.picker, 'SKU-PICK')
