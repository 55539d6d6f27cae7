"""
Directory entities: users (with their role) and shops.

Directory records are keyed with a prefix so that a Shop-role user and the
shop it operates can share one id without colliding with each other or with
card keys.
"""

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field

from cardledger.config import SHOP_KEY_PREFIX, USER_KEY_PREFIX


class Role(IntEnum):
    """Permission class of a caller. Stored as the user's affiliation."""

    AUTHORITY = 1
    SHOP = 2
    CONSUMER = 3
    MAILBOX = 4


class User(BaseModel):
    """A registered identity and its role."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    identity: str = Field(min_length=1)
    name: str = ""
    ecert: str = ""
    affiliation: Role
    auth_id: str = Field(default="", alias="authid")


class Shop(BaseModel):
    """A shop known to the directory."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    shop_id: str = Field(min_length=1, alias="shopid")
    shop_name: str = Field(default="", alias="shopname")
    license_num: str = Field(default="", alias="licensenum")
    address: str = ""
    category: str = ""
    contact: str = ""


def user_key(identity: str) -> str:
    return f"{USER_KEY_PREFIX}{identity}"


def shop_key(shop_id: str) -> str:
    return f"{SHOP_KEY_PREFIX}{shop_id}"
