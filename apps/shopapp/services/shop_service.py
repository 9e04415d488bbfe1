import logging

import pytz
from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils import timezone

from apps.shopapp.models import Branch, Shop, ShopSettings
from core.exceptions import ResourceNotFoundException

logger = logging.getLogger(__name__)


class ShopService:
    """Read access to shop (organization) configuration"""

    @staticmethod
    def get_shop(shop_id):
        """Get an active shop or raise ResourceNotFoundException"""
        try:
            return Shop.objects.get(id=shop_id, is_active=True)
        except (Shop.DoesNotExist, ValueError, ValidationError):
            raise ResourceNotFoundException(f"Shop {shop_id} not found")

    @staticmethod
    def get_branch(shop_id, branch_id):
        """Get an active branch of the shop or raise ResourceNotFoundException"""
        try:
            return Branch.objects.get(id=branch_id, shop_id=shop_id, is_active=True)
        except (Branch.DoesNotExist, ValueError, ValidationError):
            raise ResourceNotFoundException(f"Branch {branch_id} not found")

    @staticmethod
    def get_settings(shop):
        """
        Get scheduling settings for a shop.

        Shops without a settings row get an unsaved instance carrying the
        model defaults, so callers never need to special-case it.
        """
        try:
            return shop.settings
        except ShopSettings.DoesNotExist:
            return ShopSettings(shop=shop)

    @staticmethod
    def is_round_robin_enabled(shop_id):
        return ShopSettings.objects.filter(shop_id=shop_id, round_robin_enabled=True).exists()

    @staticmethod
    def get_timezone(shop):
        """Get the pytz timezone for a shop, falling back to the configured default"""
        tz_name = shop.timezone or settings.SCHEDULING["DEFAULT_TIMEZONE"]
        try:
            return pytz.timezone(tz_name)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Unknown timezone {tz_name!r} for shop {shop.id}, using default")
            return pytz.timezone(settings.SCHEDULING["DEFAULT_TIMEZONE"])

    @classmethod
    def get_local_now(cls, shop):
        """Current datetime in the shop's local time zone"""
        return timezone.now().astimezone(cls.get_timezone(shop))
