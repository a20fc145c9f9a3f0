"""
Data model of the miner.

Exports:
- Attributes: DiscreteAttribute, ContinuousAttribute
- Items: DiscreteItem, ContinuousItem, item_distance
- Tuple: one record as a sequence of items
- Data: dataset accessor
"""

from qtminer.data.attribute import Attribute, ContinuousAttribute, DiscreteAttribute
from qtminer.data.item import ContinuousItem, DiscreteItem, Item, item_distance
from qtminer.data.tuple import Tuple
from qtminer.data.dataset import Data

__all__ = [
    "Attribute",
    "ContinuousAttribute",
    "DiscreteAttribute",
    "ContinuousItem",
    "DiscreteItem",
    "Item",
    "item_distance",
    "Tuple",
    "Data",
]
