from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from pack_components.transaction import PaymentMethod


class PurchasePackRequest(BaseModel):
    pack_id: str
    payment_method: PaymentMethod = PaymentMethod.CREDITS


class ShippingAddress(BaseModel):
    first_name: str
    last_name: str
    street: str
    city: str
    state: str
    zip_code: str
    country: str


class ShipCardsRequest(BaseModel):
    card_ids: List[str]
    address: ShippingAddress
    shipping_option: str = "standard"


class AddCreditsRequest(BaseModel):
    amount: float = Field(gt=0)


class SweepRequest(BaseModel):
    # ISO-8601; defaults to the server clock
    now: Optional[str] = None


RevealAction = Literal["start", "next", "skip_to_rare", "skip_all"]
SortBy = Literal["name", "rarity", "value", "expiry", "newest"]
