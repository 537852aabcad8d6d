from metal_ledger.models.master import AccountGroup, BalanceSide, GroupType, Item, ItemUnit, Party
from metal_ledger.models.transaction import SequenceCounter, Voucher, VoucherLine, VoucherType

__all__ = [
    "AccountGroup",
    "BalanceSide",
    "GroupType",
    "Item",
    "ItemUnit",
    "Party",
    "SequenceCounter",
    "Voucher",
    "VoucherLine",
    "VoucherType",
]
