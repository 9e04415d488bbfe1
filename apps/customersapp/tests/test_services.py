# apps/customersapp/tests/test_services.py
from django.test import TestCase

from apps.customersapp.models import Customer
from apps.customersapp.services.customer_service import CustomerService
from apps.customersapp.tests.factories import CustomerFactory
from apps.shopapp.tests.factories import ShopFactory
from core.exceptions import InvalidDataException, ResourceNotFoundException


class CustomerServiceTest(TestCase):
    def setUp(self):
        """Set up test data"""
        self.shop = ShopFactory()
        self.customer = CustomerFactory(shop=self.shop, phone_number="5511112222")

    def test_get_active_customer(self):
        self.assertEqual(
            CustomerService.get_active_customer(self.shop.id, self.customer.id), self.customer
        )

    def test_customer_of_another_shop(self):
        with self.assertRaises(ResourceNotFoundException):
            CustomerService.get_active_customer(ShopFactory().id, self.customer.id)
        with self.assertRaises(ResourceNotFoundException):
            CustomerService.get_active_customer(self.shop.id, "garbage")

    def test_inactive_customer(self):
        self.customer.is_active = False
        self.customer.save()

        with self.assertRaises(InvalidDataException):
            CustomerService.get_active_customer(self.shop.id, self.customer.id)

    def test_walk_in_matches_phone(self):
        customer, created = CustomerService.find_or_create_walk_in(
            self.shop.id, "Other name", "5511112222"
        )

        self.assertEqual(customer, self.customer)
        self.assertFalse(created)

    def test_walk_in_creates_customer(self):
        customer, created = CustomerService.find_or_create_walk_in(self.shop.id, "  Marta  ")

        self.assertTrue(created)
        self.assertEqual(customer.name, "Marta")
        self.assertEqual(customer.phone_number, "")
        self.assertEqual(Customer.objects.filter(shop=self.shop).count(), 2)

    def test_walk_in_phone_is_scoped_to_shop(self):
        customer, created = CustomerService.find_or_create_walk_in(
            ShopFactory().id, "Marta", "5511112222"
        )
        self.assertTrue(created)
        self.assertNotEqual(customer, self.customer)

    def test_walk_in_needs_a_name(self):
        with self.assertRaises(InvalidDataException):
            CustomerService.find_or_create_walk_in(self.shop.id, "   ")
