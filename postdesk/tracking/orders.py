"""Illustrative tracked orders for citizens

Orders are derived deterministically from the citizen id so the same citizen
always sees the same parcels. They are display fixtures, not real tracking data.
"""

import hashlib
from typing import List

from ..memory.models import PostOrder

HUBS = [
    'Mumbai GPO', 'Delhi Head PO', 'Bangalore RMS', 'Chennai GPO', 'Kolkata RMS',
    'Hyderabad GPO', 'Ahmedabad RMS', 'Pune City PO', 'Jaipur Head PO', 'Lucknow RMS',
    'Patna GPO', 'Bhopal Head PO', 'Chandigarh RMS', 'Guwahati GPO', 'Kochi RMS',
]

STATUSES = ['In Transit', 'Delivered', 'Out for Delivery', 'In Transit']


def _seed(customer_id: str) -> int:
    digest = hashlib.sha256(customer_id.encode('utf-8')).digest()
    return int.from_bytes(digest[:4], 'big')


def orders_for_customer(customer_id: str) -> List[PostOrder]:
    """Return 2-4 illustrative orders for a citizen"""
    base = _seed(customer_id)
    count = (base % 3) + 2
    orders = []

    for i in range(count):
        seed = base + i * 1337
        origin = seed % len(HUBS)
        destination = (origin + 7) % len(HUBS)
        prefix = 'SP' if seed % 2 == 0 else 'RP'

        orders.append(PostOrder(
            id=f"ORD-{seed % 10000}",
            tracking_id=f"{prefix}{(seed % 9000000) + 1000000}IN",
            origin=HUBS[origin],
            destination=HUBS[destination],
            status=STATUSES[seed % len(STATUSES)],
            estimated_delivery=f"within {(seed % 7) + 1} days",
        ))
    return orders
