"""Storage module for Infinite Adventure persistence.

Provides JSON save files holding a whole World document.
"""

from infinite_adventure.storage.saves import SAVE_SUFFIX, SaveManager

__all__ = [
    "SAVE_SUFFIX",
    "SaveManager",
]
