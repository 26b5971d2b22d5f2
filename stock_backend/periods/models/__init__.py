from .item_price import ItemPrice
from .period import Period
from .period_location import PeriodLocation
from .pob_entry import POBEntry

__all__ = [
    "Period",
    "PeriodLocation",
    "ItemPrice",
    "POBEntry",
]
