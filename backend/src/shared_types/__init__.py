"""
Value types shared by services and routes.
"""

from shared_types.availability import SlotData, FreedSlot

__all__ = ["SlotData", "FreedSlot"]
