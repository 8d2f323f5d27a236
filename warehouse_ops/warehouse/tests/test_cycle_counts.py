"""
Tests for cycle count campaigns and variance review.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from order_fulfillment.adapters.notification_adapter import switch_to_mock_adapter, switch_to_real_adapter
from order_fulfillment.exceptions import ForbiddenException, InvalidStateException, ValidationException
from order_fulfillment.models import NotificationType
from order_fulfillment.permissions import Principal
from products.models import Product
from users.models import UserRole
from warehouse.models import (
    CycleCountCampaignStatus,
    CycleCountEventType,
    CycleCountTask,
    CycleCountTaskStatus,
    InventoryTransaction,
    InventoryTransactionType,
    StockItem,
    StorageLocation,
)
from warehouse.services.cycle_count_service import CycleCountService, calculate_variance, exceeds_tolerance


class CalculateVarianceTest(SimpleTestCase):
    def test_shortage(self):
        self.assertEqual(calculate_variance(100, 94), (-6, Decimal("6.00")))

    def test_overage_is_reported_as_positive_percentage(self):
        self.assertEqual(calculate_variance(40, 41), (1, Decimal("2.50")))

    def test_stock_found_where_none_was_expected(self):
        self.assertEqual(calculate_variance(0, 4), (4, Decimal("100.00")))
        self.assertEqual(calculate_variance(0, 0), (0, Decimal("0.00")))

    def test_rounding(self):
        self.assertEqual(calculate_variance(3, 2)[1], Decimal("33.33"))

    def test_tolerance_is_checked_before_rounding(self):
        self.assertEqual(calculate_variance(9992, 9492)[1], Decimal("5.00"))
        self.assertTrue(exceeds_tolerance(9992, 9492, Decimal("5.00")))
        self.assertFalse(exceeds_tolerance(100, 95, Decimal("5.00")))


class CycleCountServiceTest(TestCase):
    def setUp(self):
        User = get_user_model()
        self.supervisor = User.objects.create_user(username="supervisor", password="testpass123", role=UserRole.MANAGER)
        self.counter = User.objects.create_user(username="counter", password="testpass123", role=UserRole.STAFF)
        self.supervisor_principal = Principal.from_user(self.supervisor)

        self.location = StorageLocation.objects.create(code="B-02-03", name="Bay 2 Level 3")
        self.empty_location = StorageLocation.objects.create(code="B-02-04", name="Bay 2 Level 4")
        self.product = Product.objects.create(name="Widget", sku="WID-001")
        self.other_product = Product.objects.create(name="Gadget", sku="GAD-001")
        self.stock_item = StockItem.objects.create(location=self.location, product=self.product, quantity_on_hand=100)
        StockItem.objects.create(location=self.location, product=self.other_product, quantity_on_hand=40)
        StockItem.objects.create(location=self.empty_location, product=self.product, quantity_on_hand=0)

        self.service = CycleCountService()
        self.campaign = self.service.create_campaign(
            "Weekly count", self.supervisor_principal, [self.location.pk, self.empty_location.pk]
        )
        self.task = self.campaign.tasks.get(location=self.location, product=self.product)

        self.notifications = switch_to_mock_adapter()
        self.addCleanup(switch_to_real_adapter)

    def test_campaign_has_one_task_per_stocked_product(self):
        self.assertEqual(self.campaign.total_tasks, 3)
        self.assertEqual(self.campaign.status, CycleCountCampaignStatus.PLANNED)
        self.assertEqual(self.task.system_quantity, 100)
        self.assertEqual(self.task.status, CycleCountTaskStatus.PENDING)

    def test_only_supervisors_create_campaigns(self):
        with self.assertRaises(ForbiddenException):
            self.service.create_campaign("Rogue count", Principal.from_user(self.counter), [self.location.pk])

    def test_campaign_needs_active_locations(self):
        with self.assertRaises(ValidationException):
            self.service.create_campaign("Empty", self.supervisor_principal, [999999])

    def test_high_variance_goes_to_review_and_adjusts_stock(self):
        result = self.service.record_count(self.task.pk, 94, self.counter, notes="Shelf looked light")

        self.assertTrue(result["requires_review"])
        self.assertEqual(result["variance"], -6)
        self.assertEqual(result["variance_percentage"], Decimal("6.00"))

        self.task.refresh_from_db()
        self.assertEqual(self.task.status, CycleCountTaskStatus.VARIANCE_REVIEW)
        self.assertEqual(self.task.counted_quantity, 94)
        self.assertTrue(self.task.requires_review)

        self.stock_item.refresh_from_db()
        self.assertEqual(self.stock_item.quantity_on_hand, 94)
        self.assertIsNotNone(self.stock_item.last_counted_at)

        ledger = InventoryTransaction.objects.get()
        self.assertEqual(ledger.transaction_type, InventoryTransactionType.COUNT)
        self.assertEqual(ledger.quantity_change, -6)
        self.assertIn("Pending supervisor review", ledger.notes)

        event_types = set(self.task.events.values_list("event_type", flat=True))
        self.assertEqual(event_types, {CycleCountEventType.COUNT_RECORDED, CycleCountEventType.VARIANCE_NOTED})

    def test_variance_within_tolerance_completes(self):
        result = self.service.record_count(self.task.pk, 97, self.counter)

        self.assertFalse(result["requires_review"])
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, CycleCountTaskStatus.COMPLETED)
        self.stock_item.refresh_from_db()
        self.assertEqual(self.stock_item.quantity_on_hand, 97)

    def test_variance_equal_to_tolerance_completes(self):
        result = self.service.record_count(self.task.pk, 95, self.counter)

        self.assertEqual(result["variance_percentage"], Decimal("5.00"))
        self.assertFalse(result["requires_review"])

    def test_variance_just_over_tolerance_goes_to_review(self):
        StockItem.objects.filter(pk=self.stock_item.pk).update(quantity_on_hand=9992)
        CycleCountTask.objects.filter(pk=self.task.pk).update(system_quantity=9992)

        result = self.service.record_count(self.task.pk, 9492, self.counter)

        self.assertTrue(result["requires_review"])
        self.assertEqual(result["variance_percentage"], Decimal("5.00"))
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, CycleCountTaskStatus.VARIANCE_REVIEW)
        self.stock_item.refresh_from_db()
        self.assertEqual(self.stock_item.quantity_on_hand, 9492)

    def test_exact_count_writes_no_ledger_entry(self):
        self.service.record_count(self.task.pk, 100, self.counter)

        self.assertFalse(InventoryTransaction.objects.exists())
        self.stock_item.refresh_from_db()
        self.assertIsNotNone(self.stock_item.last_counted_at)

    @override_settings(WMS_CYCLE_COUNT_TOLERANCE=Decimal("10.0"))
    def test_tolerance_comes_from_settings(self):
        task = CycleCountTask.objects.create(location=self.location, product=self.product, system_quantity=100)

        result = self.service.record_count(task.pk, 94, self.counter)

        self.assertEqual(task.tolerance_percentage, Decimal("10.0"))
        self.assertFalse(result["requires_review"])

    def test_stock_found_in_empty_location(self):
        task = self.campaign.tasks.get(location=self.empty_location)

        result = self.service.record_count(task.pk, 4, self.counter)

        self.assertEqual(result["variance_percentage"], Decimal("100.00"))
        self.assertTrue(result["requires_review"])

    def test_skip_leaves_inventory_alone(self):
        result = self.service.record_count(self.task.pk, None, self.counter, notes="Aisle blocked", skip=True)

        self.assertEqual(result["message"], "Count skipped")
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, CycleCountTaskStatus.SKIPPED)
        self.assertFalse(InventoryTransaction.objects.exists())
        self.assertEqual(self.task.events.get().event_type, CycleCountEventType.COUNT_SKIPPED)

    def test_count_is_required_and_not_negative(self):
        with self.assertRaises(ValidationException):
            self.service.record_count(self.task.pk, None, self.counter)
        with self.assertRaises(ValidationException):
            self.service.record_count(self.task.pk, -1, self.counter)

    def test_counted_task_cannot_be_counted_again(self):
        self.service.record_count(self.task.pk, 100, self.counter)

        with self.assertRaises(InvalidStateException):
            self.service.record_count(self.task.pk, 99, self.counter)

    def test_campaign_progress(self):
        self.service.record_count(self.task.pk, 94, self.counter)

        self.campaign.refresh_from_db()
        self.assertEqual(self.campaign.completed_tasks, 1)
        self.assertEqual(self.campaign.variances_found, 1)
        self.assertEqual(self.campaign.status, CycleCountCampaignStatus.ACTIVE)

    def test_supervisor_approves_variance(self):
        self.service.record_count(self.task.pk, 94, self.counter)

        result = self.service.approve_variance(self.task.pk, self.supervisor_principal, notes="Confirmed damage")

        self.assertEqual(result["message"], "Variance approved successfully")
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, CycleCountTaskStatus.COMPLETED)
        self.assertFalse(self.task.requires_review)
        self.assertIn("[SUPERVISOR APPROVED] Confirmed damage", self.task.notes)
        approval = self.task.events.get(event_type=CycleCountEventType.VARIANCE_APPROVED)
        self.assertEqual(approval.user, self.supervisor)

    def test_approval_rules(self):
        with self.assertRaises(InvalidStateException):
            self.service.approve_variance(self.task.pk, self.supervisor_principal)

        self.service.record_count(self.task.pk, 94, self.counter)
        with self.assertRaises(ForbiddenException):
            self.service.approve_variance(self.task.pk, Principal.from_user(self.counter))

    def test_recount_compares_against_adjusted_stock(self):
        self.service.record_count(self.task.pk, 94, self.counter)

        with self.captureOnCommitCallbacks(execute=True):
            self.service.request_recount(self.task.pk, self.supervisor_principal, notes="Count again please")

        self.task.refresh_from_db()
        self.assertEqual(self.task.status, CycleCountTaskStatus.RECOUNT_REQUIRED)
        self.assertEqual(self.task.recount_reason, "Count again please")

        sent = self.notifications.sent[0]
        self.assertEqual(sent["user_id"], self.counter.pk)
        self.assertEqual(sent["type"], NotificationType.RECOUNT_REQUESTED)
        self.assertIn("B-02-03", sent["message"])

        result = self.service.record_count(self.task.pk, 94, self.counter)

        self.assertEqual(result["variance"], 0)
        self.task.refresh_from_db()
        self.assertEqual(self.task.system_quantity, 94)
        self.assertEqual(self.task.status, CycleCountTaskStatus.COMPLETED)

    def test_recount_of_uncounted_task_is_rejected(self):
        with self.assertRaises(InvalidStateException):
            self.service.request_recount(self.task.pk, self.supervisor_principal)


class CycleCountAPITest(APITestCase):
    def setUp(self):
        User = get_user_model()
        self.supervisor = User.objects.create_user(username="supervisor", password="testpass123", role=UserRole.ADMIN)
        self.counter = User.objects.create_user(username="counter", password="testpass123", role=UserRole.STAFF)
        location = StorageLocation.objects.create(code="C-01-01", name="Bay 1 Level 1")
        product = Product.objects.create(name="Widget", sku="WID-001")
        StockItem.objects.create(location=location, product=product, quantity_on_hand=100)
        self.task = CycleCountTask.objects.create(location=location, product=product, system_quantity=100)

    def test_counter_records_count(self):
        self.client.force_authenticate(user=self.counter)

        response = self.client.post(
            reverse("cyclecounttask-count", args=[self.task.pk]), {"counted_quantity": 94}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["requires_review"])
        self.assertEqual(response.data["task"]["status"], CycleCountTaskStatus.VARIANCE_REVIEW)

    def test_counter_cannot_approve(self):
        self.client.force_authenticate(user=self.counter)

        response = self.client.post(reverse("cyclecounttask-approve", args=[self.task.pk]), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_supervisor_creates_campaign(self):
        self.client.force_authenticate(user=self.supervisor)

        response = self.client.post(
            reverse("cyclecountcampaign-list"),
            {"name": "Monthly count", "location_ids": [self.task.location_id]},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["data"]["total_tasks"], 1)
