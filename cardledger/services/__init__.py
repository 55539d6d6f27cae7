"""
CardLedger services.

Card lifecycle, issuance, balance transfers and shop ledger accounting over
a LedgerRepository.
"""

from cardledger.services.card_lifecycle import CardField, CardLifecycle, TransferKind
from cardledger.services.clock import Clock, ledger_timestamp, utc_now
from cardledger.services.directory import Directory, bootstrap
from cardledger.services.issuance import IssuanceEngine
from cardledger.services.queries import LedgerQueries
from cardledger.services.registry_index import Registries
from cardledger.services.roles import DirectoryRoles, RoleLookup, require_role
from cardledger.services.shop_ledger import ShopLedgerAccounting
from cardledger.services.transfers import TransferProtocol

__all__ = [
    "CardField",
    "CardLifecycle",
    "Clock",
    "Directory",
    "DirectoryRoles",
    "IssuanceEngine",
    "LedgerQueries",
    "Registries",
    "RoleLookup",
    "ShopLedgerAccounting",
    "TransferKind",
    "TransferProtocol",
    "bootstrap",
    "ledger_timestamp",
    "require_role",
    "utc_now",
]
