"""Ordering bounded context — purchase placement and stock reservation.

Accepts purchase requests, holds stock for every line through the inventory
store, and hands accepted purchases to payments as settlement requests.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
