"""
Model import hook.

Importing this module ensures all SQLAlchemy models are registered on Base.metadata.
"""

from __future__ import annotations

from trip_vault.modules.documents.models import TravelDocument  # noqa: F401
from trip_vault.modules.trips.models import TripSummaryRecord  # noqa: F401
