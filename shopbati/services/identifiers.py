# shopbati/services/identifiers.py
from __future__ import annotations

import random
import string
import time
from datetime import datetime
from typing import Optional

INVOICE_SUFFIX_MAX = 999
_BASE36 = string.digits + string.ascii_uppercase


def generate_order_id(now_ms: Optional[int] = None,
                      rng: Optional[random.Random] = None) -> str:
    """
    CMD-<epoch ms>-<6 base36 chars>. Generated at checkout, before anything is
    stored, so it has to be unique without asking the database.
    """
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    r = rng or random.SystemRandom()
    suffix = "".join(r.choice(_BASE36) for _ in range(6))
    return f"CMD-{now_ms}-{suffix}"


def generate_invoice_number(prefix: str = "SB",
                            now: Optional[datetime] = None,
                            rng: Optional[random.Random] = None) -> str:
    """
    PREFIX-YYYYMMDD-NNN, dated at generation time (not the order date).
    Only a document label: two invoices on the same day may collide.
    """
    now = now or datetime.now()
    suffix = (rng or random).randint(0, INVOICE_SUFFIX_MAX)
    return f"{prefix}-{now:%Y%m%d}-{suffix:03d}"
