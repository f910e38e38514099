# delivery/zones.py

"""
Default delivery tables (Benin City).

Both tables can be replaced through settings.DELIVERY["ZONES"] and
settings.DELIVERY["FEE_TIERS"]; amounts are whole Naira.
"""

from decimal import Decimal

# Named destinations with a flat fee
DELIVERY_ZONES = [
    ("G.R.A, Benin City", Decimal("1600")),
    ("Third East Circular, Benin City", Decimal("2000")),
    ("Second East Circular, Benin City", Decimal("2000")),
    ("First East Circular, Benin City", Decimal("2000")),
    ("Airport Road, Benin City", Decimal("2000")),
    ("Ekewan Road, Benin City", Decimal("2300")),
    ("Ugbowo, Benin City", Decimal("2700")),
    ("Ikpoba Hill, Benin City", Decimal("2300")),
    ("Aduwawa, Benin City", Decimal("3000")),
    ("Ring Road, Benin City", Decimal("2000")),
    ("Siluko Road, Benin City", Decimal("2000")),
    ("New Lagos Road, Benin City", Decimal("2000")),
]

DEFAULT_ZONE_FEE = Decimal("2000")

# (max distance km, fee); None means "no upper bound"
DISTANCE_FEE_TIERS = [
    (3, Decimal("800")),
    (6, Decimal("900")),
    (10, Decimal("1000")),
    (15, Decimal("1100")),
    (None, Decimal("1200")),
]

# used when the address cannot be located
DEFAULT_DISTANCE_FEE = Decimal("1000")
