import logging

from django.core.exceptions import ValidationError

from apps.customersapp.models import Customer
from core.exceptions import InvalidDataException, ResourceNotFoundException

logger = logging.getLogger(__name__)


class CustomerService:
    """
    Service class for resolving the client of an appointment
    """

    @staticmethod
    def get_active_customer(shop_id, customer_id):
        """
        Get a customer of the shop, which must exist and be active
        """
        try:
            customer = Customer.objects.get(id=customer_id, shop_id=shop_id)
        except (Customer.DoesNotExist, ValueError, ValidationError):
            raise ResourceNotFoundException(f"Customer {customer_id} not found")

        if not customer.is_active:
            raise InvalidDataException(f"Customer {customer.name} is inactive")

        return customer

    @staticmethod
    def find_or_create_walk_in(shop_id, name, phone_number=None):
        """
        Find a walk-in customer by phone, or create one from the given name.

        Args:
            shop_id: Shop the customer belongs to
            name: Name given at the front desk
            phone_number: Optional phone, used to match an existing customer

        Returns:
            Tuple of (Customer, created)
        """
        if not name or not name.strip():
            raise InvalidDataException("A customer or a customer name is required")

        if phone_number:
            existing = (
                Customer.objects.filter(shop_id=shop_id, phone_number=phone_number, is_active=True)
                .order_by("created_at")
                .first()
            )
            if existing:
                return existing, False

        customer = Customer.objects.create(
            shop_id=shop_id, name=name.strip(), phone_number=phone_number or ""
        )
        logger.info(f"Created walk-in customer {customer.id} for shop {shop_id}")
        return customer, True
