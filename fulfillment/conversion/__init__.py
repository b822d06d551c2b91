"""
Conversion Service

Converts matched client requests into confirmed bookings.
"""

from .conversion_service import ConversionService
from .models import Booking, ConversionResult

__all__ = ["ConversionService", "Booking", "ConversionResult"]
