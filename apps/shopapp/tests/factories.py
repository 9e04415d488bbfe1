# apps/shopapp/tests/factories.py
import uuid

import factory
from factory.django import DjangoModelFactory

from apps.shopapp.models import Branch, Shop, ShopSettings


class ShopFactory(DjangoModelFactory):
    class Meta:
        model = Shop

    id = factory.LazyFunction(uuid.uuid4)
    name = factory.Sequence(lambda n: f"Test Shop {n}")
    username = factory.Sequence(lambda n: f"testshop{n}")
    phone_number = factory.Sequence(lambda n: f"5550{n:06d}")
    timezone = "America/Mexico_City"
    is_active = True


class BranchFactory(DjangoModelFactory):
    class Meta:
        model = Branch

    shop = factory.SubFactory(ShopFactory)
    name = factory.Sequence(lambda n: f"Branch {n}")
    is_active = True


class ShopSettingsFactory(DjangoModelFactory):
    class Meta:
        model = ShopSettings
        django_get_or_create = ("shop",)

    shop = factory.SubFactory(ShopFactory)
    allow_walk_ins = True
    round_robin_enabled = False
    max_series_occurrences = 52
