import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from order_fulfillment.exceptions import InventoryUnavailableException
from warehouse.models import InventoryTransaction, InventoryTransactionType, StockItem

logger = logging.getLogger(__name__)


class StockService:
    """
    Service for on-hand quantity changes.

    Every change goes through ``_record`` so the inventory ledger always
    explains the current quantity.
    """

    @transaction.atomic
    def apply_count(self, location, product, variance, counted_quantity, user, reference_id, notes=""):
        """
        Apply a cycle count result.

        The count timestamp is refreshed on every count; quantity and ledger
        only change when the count disagrees with the system.
        """
        now = timezone.now()
        stock_item, created = StockItem.objects.select_for_update().get_or_create(
            location=location,
            product=product,
            defaults={"quantity_on_hand": counted_quantity or 0, "last_counted_at": now},
        )

        if not created:
            if variance:
                stock_item.quantity_on_hand = F("quantity_on_hand") + variance
            stock_item.last_counted_at = now
            stock_item.save(update_fields=["quantity_on_hand", "last_counted_at", "updated_at"])
            stock_item.refresh_from_db()

        if variance:
            self._record(location, product, variance, user, InventoryTransactionType.COUNT,
                         "CYCLE_COUNT", reference_id, notes)
        return stock_item

    @transaction.atomic
    def consume_picked(self, location, product, quantity, user, reference_id):
        """
        Remove picked units from a location and release their reservation.

        Raises:
            InventoryUnavailableException: If the location holds fewer units
        """
        try:
            stock_item = StockItem.objects.select_for_update().get(location=location, product=product)
        except StockItem.DoesNotExist:
            raise InventoryUnavailableException(product.sku, quantity, 0)

        if stock_item.quantity_on_hand < quantity:
            raise InventoryUnavailableException(product.sku, quantity, stock_item.quantity_on_hand)

        stock_item.quantity_on_hand -= quantity
        stock_item.quantity_reserved = max(stock_item.quantity_reserved - quantity, 0)
        stock_item.save(update_fields=["quantity_on_hand", "quantity_reserved", "updated_at"])

        self._record(location, product, -quantity, user, InventoryTransactionType.PICK,
                     "PICK_LIST", reference_id, "")
        return stock_item

    def _record(self, location, product, quantity_change, user, transaction_type,
                reference_type, reference_id, notes):
        logger.info(
            f"{transaction_type} {quantity_change:+d} for {product.sku} at {location.code}"
        )
        return InventoryTransaction.objects.create(
            transaction_type=transaction_type,
            product=product,
            location=location,
            quantity_change=quantity_change,
            reference_type=reference_type,
            reference_id=str(reference_id) if reference_id else "",
            user=user,
            notes=notes,
        )
