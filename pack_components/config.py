import os
from datetime import timedelta
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from pack_components.card_utils.pack_utils import PACK_JSON_DIR
from pack_components.errors import ConfigurationError


class EngineConfig(BaseModel):
    """Economy and timing knobs for the engine.

    The storefront historically used both 14 and 30 day expiry windows; 14 is
    the default here and either can be set through ``PACK_EXPIRY_DAYS``.
    Selling always pays full value; ``conversion_rate`` only applies to
    expired cards.
    """

    expiry_window_days: float = Field(14, gt=0)
    conversion_rate: float = Field(0.5, ge=0, le=1)
    shipping_base_fee: int = Field(15, ge=0)
    shipping_per_card_fee: int = Field(2, ge=0)
    shipping_delivery_days: int = Field(7, ge=0)
    sweep_interval_seconds: float = Field(60, gt=0)
    starting_credits: float = Field(1500, ge=0)
    pack_json_dir: Path = PACK_JSON_DIR

    @property
    def expiry_window(self) -> timedelta:
        return timedelta(days=self.expiry_window_days)

    def shipping_fee(self, card_count: int) -> int:
        return self.shipping_base_fee + self.shipping_per_card_fee * card_count

    @classmethod
    def from_env(cls) -> "EngineConfig":
        env = {
            "expiry_window_days": os.getenv("PACK_EXPIRY_DAYS"),
            "conversion_rate": os.getenv("PACK_CONVERSION_RATE"),
            "shipping_base_fee": os.getenv("PACK_SHIPPING_BASE_FEE"),
            "shipping_per_card_fee": os.getenv("PACK_SHIPPING_PER_CARD_FEE"),
            "sweep_interval_seconds": os.getenv("PACK_SWEEP_INTERVAL"),
            "starting_credits": os.getenv("PACK_STARTING_CREDITS"),
            "pack_json_dir": os.getenv("PACK_JSON_DIR"),
        }
        try:
            return cls(**{k: v for k, v in env.items() if v is not None})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid engine configuration: {e}") from e
