"""
Typed commands parsed from positional invocations.

An invocation is a function name plus positional string arguments, the first
of which is always the caller. Arguments are validated here, once, into a
pydantic payload; operations never see raw strings except for field-setter
values, whose type depends on the field.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from cardledger.models.card import TemplateFields
from cardledger.models.directory import Role, Shop, User
from cardledger.models.failure import InvalidArgumentError
from cardledger.services.card_lifecycle import CardField, TransferKind


class CommandName(str, Enum):
    # Directory
    ADD_USER = "add_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    ADD_SHOP = "add_shop"
    UPDATE_SHOP = "update_shop"
    DELETE_SHOP = "delete_shop"

    # Issuance
    CREATE_CARD_TEMPLATE = "create_card_template"
    CREATE_CARD_TEMPLATE_BY_SHOP = "create_card_template_by_shop"
    CREATE_BATCH_CARD_BY_TEMPLATE = "create_batch_card_by_template"
    REQUEST_CARD_BY_TEMPLATE = "request_card_by_template"
    PUSH_CARD_BY_TEMPLATE = "push_card_by_template"

    # Lifecycle
    TRANSFER_TEMPLATE_TO_SHOP = "transfer_template_to_shop"
    TRANSFER_CARD_SHOP_TO_CONSUMER = "transfer_card_shop_to_consumer"
    TRANSFER_CARD_CONSUMER_TO_CONSUMER = "transfer_card_consumer_to_consumer"
    TRANSFER_CARD_CONSUMER_TO_SHOP = "transfer_card_consumer_to_shop"
    SCRAP_CARD = "scrap_card"
    UPDATE_CT_SHOPNAME = "update_ct_shopname"
    UPDATE_CT_SHOPID = "update_ct_shopid"
    UPDATE_CT_CARDID = "update_ct_cardid"
    UPDATE_CT_CATEGORY = "update_ct_category"
    UPDATE_CT_CARDLEVEL = "update_ct_cardlevel"
    UPDATE_CT_CARDCLASS = "update_ct_cardclass"
    UPDATE_CT_TEL = "update_ct_tel"
    UPDATE_CT_PASSWORD = "update_ct_password"
    UPDATE_CT_MONEY = "update_ct_money"
    UPDATE_CT_POINT = "update_ct_point"
    UPDATE_CT_EXPDATE = "update_ct_expdate"
    UPDATE_CT_EXPIRED = "update_ct_expired"

    # Balances
    TRANSFER_MP_CONSUMER_TO_CONSUMER = "transfer_mp_consumer_to_consumer"
    DEPOSIT_MP_SHOP_TO_CONSUMER = "deposit_mp_shop_to_consumer"
    SPEND_MP_CONSUMER_TO_SHOP = "spend_mp_consumer_to_shop"

    # Queries
    GET_USERS = "get_users"
    GET_USER_DETAIL = "get_user_detail"
    GET_SHOPS = "get_shops"
    GET_SHOP_DETAIL = "get_shop_detail"
    GET_CARD_DETAILS = "get_card_details"
    GET_CARDS = "get_cards"
    GET_CARD_TEMPLATES = "get_card_templates"
    GET_SHOP_LEDGER = "get_shopLedger"

    @property
    def is_query(self) -> bool:
        return self.value.startswith("get_")


Identity = Annotated[str, Field(min_length=1)]
Amount = Annotated[int, Field(ge=0)]
RoleArg = Annotated[Role, BeforeValidator(int)]


# =============================================================================
# PAYLOADS
# =============================================================================
# Field order is the positional argument order.


class Payload(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    caller: Identity


class CallerOnly(Payload):
    pass


class UserArgs(Payload):
    identity: Identity
    name: str
    ecert: str
    affiliation: RoleArg
    auth_id: str

    def to_user(self) -> User:
        return User(
            identity=self.identity,
            name=self.name,
            ecert=self.ecert,
            affiliation=self.affiliation,
            auth_id=self.auth_id,
        )


class UserKey(Payload):
    identity: Identity


class ShopArgs(Payload):
    shop_id: Identity
    shop_name: str
    license_num: str
    category: str
    address: str
    contact: str

    def to_shop(self) -> Shop:
        return Shop(
            shop_id=self.shop_id,
            shop_name=self.shop_name,
            license_num=self.license_num,
            address=self.address,
            category=self.category,
            contact=self.contact,
        )


class ShopKey(Payload):
    shop_id: Identity


class TemplateKey(Payload):
    template_id: Identity


class TemplateWithFields(Payload):
    template_id: Identity
    fields: TemplateFields


class BatchArgs(Payload):
    template_id: Identity
    count: Annotated[int, Field(ge=1)]


class PushArgs(Payload):
    owner_id: Identity
    template_id: Identity


class CardKey(Payload):
    card_key: Identity


class CardTransferArgs(Payload):
    card_key: Identity
    recipient: Identity


class FieldUpdateArgs(Payload):
    card_key: Identity
    value: str


class PeerTransferArgs(Payload):
    money: Amount
    point: Amount
    source_card: Identity
    receiver: Identity
    target_card: Identity


class DepositArgs(Payload):
    money: Amount
    point: Amount
    receiver: Identity
    target_card: Identity


class SpendArgs(Payload):
    money: Amount
    point: Amount
    source_card: Identity
    shop_id: Identity


class ShopLedgerKey(Payload):
    shop_id: Identity
    template_id: Identity


PAYLOADS: dict[CommandName, type[Payload]] = {
    CommandName.ADD_USER: UserArgs,
    CommandName.UPDATE_USER: UserArgs,
    CommandName.DELETE_USER: UserKey,
    CommandName.ADD_SHOP: ShopArgs,
    CommandName.UPDATE_SHOP: ShopArgs,
    CommandName.DELETE_SHOP: ShopKey,
    CommandName.CREATE_CARD_TEMPLATE: TemplateKey,
    CommandName.CREATE_CARD_TEMPLATE_BY_SHOP: TemplateWithFields,
    CommandName.CREATE_BATCH_CARD_BY_TEMPLATE: BatchArgs,
    CommandName.REQUEST_CARD_BY_TEMPLATE: TemplateKey,
    CommandName.PUSH_CARD_BY_TEMPLATE: PushArgs,
    CommandName.TRANSFER_TEMPLATE_TO_SHOP: CardTransferArgs,
    CommandName.TRANSFER_CARD_SHOP_TO_CONSUMER: CardTransferArgs,
    CommandName.TRANSFER_CARD_CONSUMER_TO_CONSUMER: CardTransferArgs,
    CommandName.TRANSFER_CARD_CONSUMER_TO_SHOP: CardTransferArgs,
    CommandName.SCRAP_CARD: CardKey,
    CommandName.TRANSFER_MP_CONSUMER_TO_CONSUMER: PeerTransferArgs,
    CommandName.DEPOSIT_MP_SHOP_TO_CONSUMER: DepositArgs,
    CommandName.SPEND_MP_CONSUMER_TO_SHOP: SpendArgs,
    CommandName.GET_USERS: CallerOnly,
    CommandName.GET_USER_DETAIL: UserKey,
    CommandName.GET_SHOPS: CallerOnly,
    CommandName.GET_SHOP_DETAIL: ShopKey,
    CommandName.GET_CARD_DETAILS: CardKey,
    CommandName.GET_CARDS: CallerOnly,
    CommandName.GET_CARD_TEMPLATES: CallerOnly,
    CommandName.GET_SHOP_LEDGER: ShopLedgerKey,
}

FIELD_SETTERS: dict[CommandName, CardField] = {
    CommandName(f"update_ct_{field.value}"): field for field in CardField
}
for _name in FIELD_SETTERS:
    PAYLOADS[_name] = FieldUpdateArgs

TRANSFERS: dict[CommandName, TransferKind] = {
    CommandName.TRANSFER_TEMPLATE_TO_SHOP: TransferKind.TEMPLATE_TO_SHOP,
    CommandName.TRANSFER_CARD_SHOP_TO_CONSUMER: TransferKind.SHOP_TO_CONSUMER,
    CommandName.TRANSFER_CARD_CONSUMER_TO_CONSUMER: TransferKind.CONSUMER_TO_CONSUMER,
    CommandName.TRANSFER_CARD_CONSUMER_TO_SHOP: TransferKind.CONSUMER_TO_SHOP,
}


@dataclass(frozen=True, slots=True)
class Command:
    name: CommandName
    payload: Any

    @property
    def is_query(self) -> bool:
        return self.name.is_query


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "arguments"
    return f"{location}: {first['msg']}"


def parse_command(function: str, args: list[str]) -> Command:
    """
    Validate an invocation into a typed command.

    Raises:
        InvalidArgumentError: Unknown function, wrong argument count, or an
            argument that does not parse
    """
    try:
        name = CommandName(function)
    except ValueError as e:
        raise InvalidArgumentError(
            f"Received unknown function invocation '{function}'", detail=f"function={function}"
        ) from e

    payload_type = PAYLOADS[name]
    fields = list(payload_type.model_fields)
    if len(args) != len(fields):
        raise InvalidArgumentError(
            f"{function} expects {len(fields)} arguments, got {len(args)}",
            detail=f"arguments: {', '.join(fields)}",
        )

    values: dict[str, Any] = dict(zip(fields, args, strict=True))
    try:
        if payload_type is TemplateWithFields:
            values["fields"] = TemplateFields.model_validate_json(values["fields"])
        payload = payload_type.model_validate(values)
    except ValidationError as e:
        raise InvalidArgumentError(f"Invalid arguments for {function}", detail=_describe(e)) from e
    return Command(name=name, payload=payload)
