from .item import Item
from .location import Location
from .location_stock import LocationStock

__all__ = [
    "Item",
    "Location",
    "LocationStock",
]
