# inventory/tests/fixtures.py

"""
Shared builders for engine tests.

Periods are built around today's month so that NCRs created "now" fall
inside them.
"""

import calendar
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone

from inventory.models import Item, Location
from inventory.services.stock_ledger import set_stock
from periods.services.period_lifecycle import create_period, open_period
from periods.services.period_prices import set_item_price
from permissions.roles import ROLE_OPERATOR

User = get_user_model()


def make_user(email="operator@example.com", role=ROLE_OPERATOR, **extra):
    return User.objects.create_user(email=email, password="pass", role=role, **extra)


def make_item(code="RICE", name="Rice", unit=Item.Unit.KG):
    return Item.objects.create(code=code, name=name, unit=unit)


def make_location(code="K1", name="Kitchen One", type=Location.LocationType.KITCHEN):
    return Location.objects.create(code=code, name=name, type=type)


def month_bounds(day=None):
    day = day or timezone.localdate()
    start = day.replace(day=1)
    end = day.replace(day=calendar.monthrange(day.year, day.month)[1])
    return start, end


def stock(location, item, quantity, wac):
    return set_stock(location=location, item=item, quantity=Decimal(str(quantity)), wac=Decimal(str(wac)))


def make_open_period(locations, *, name="Current", prices=None, start=None, end=None):
    """
    DRAFT period over `locations`, optional {item: price}, then OPEN.
    """
    if start is None or end is None:
        start, end = month_bounds()

    period = create_period(name=name, start_date=start, end_date=end, locations=list(locations))
    for item, price in (prices or {}).items():
        set_item_price(period=period, item=item, price=Decimal(str(price)))
    return open_period(period=period)
