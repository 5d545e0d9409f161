from decimal import Decimal

from django.conf import settings

""" App-level knobs, overridable from Django settings """

DEFAULTS = {
    # collisions on a generated document number are retried this many times
    "ERP_NUMBERING_MAX_RETRIES": 3,
    "ERP_DEFAULT_CURRENCY": "INR",
    # derived reorder point = max(MIN, floor(RATIO * current stock))
    "ERP_MIN_REORDER_POINT": 5,
    "ERP_REORDER_RATIO": Decimal("0.3"),
    # "low" band sits between reorder point and reorder point * MULTIPLIER
    "ERP_LOW_STOCK_MULTIPLIER": Decimal("1.5"),
    "ERP_STOCK_ALERT_LIMIT": 10,
}


def get_setting(name):
    return getattr(settings, name, DEFAULTS[name])
