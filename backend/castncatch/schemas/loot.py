from __future__ import annotations
from pydantic import BaseModel

class LootBoxPurchase(BaseModel):
    coins: int
    loot_boxes: int

class LootBoxOpened(BaseModel):
    item: str
    category: str
    name: str
    loot_boxes: int
