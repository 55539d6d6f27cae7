from cardledger.models.card import (
    SHOP_RELEASE_FIELDS,
    TEMPLATE_ISSUE_FIELDS,
    Card,
    CardStatus,
    TemplateFields,
    generate_card_id,
    is_instance_id,
    is_reserved_card_id,
)
from cardledger.models.directory import Role, Shop, User, shop_key, user_key
from cardledger.models.failure import (
    AlreadyExistsError,
    ApiResponse,
    CorruptRecordError,
    FailureDetail,
    FailureKind,
    InsufficientFundsError,
    InvalidArgumentError,
    KnownError,
    NotFoundError,
    OutcomeType,
    PermissionDeniedError,
    StorageFailureError,
    create_known_failure,
    create_success,
    create_unknown_failure,
)
from cardledger.models.registry import RegistryIndex, RegistrySpec
from cardledger.models.shop_ledger import ShopLedger, shop_ledger_key

__all__ = [
    "SHOP_RELEASE_FIELDS",
    "TEMPLATE_ISSUE_FIELDS",
    "AlreadyExistsError",
    "ApiResponse",
    "Card",
    "CardStatus",
    "CorruptRecordError",
    "FailureDetail",
    "FailureKind",
    "InsufficientFundsError",
    "InvalidArgumentError",
    "KnownError",
    "NotFoundError",
    "OutcomeType",
    "PermissionDeniedError",
    "RegistryIndex",
    "RegistrySpec",
    "Role",
    "Shop",
    "ShopLedger",
    "StorageFailureError",
    "TemplateFields",
    "User",
    "create_known_failure",
    "create_success",
    "create_unknown_failure",
    "generate_card_id",
    "is_instance_id",
    "is_reserved_card_id",
    "shop_ledger_key",
    "shop_key",
    "user_key",
]
