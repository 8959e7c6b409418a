"""LP Market - Vendor Adapters"""

from lpmarket.vendors.aladin import AladinAdapter
from lpmarket.vendors.base import CollectOutcome, OutcomeStatus, VendorAdapter
from lpmarket.vendors.bookstores import InterparkAdapter, KyoboAdapter, Yes24Adapter
from lpmarket.vendors.naver import NaverShoppingAdapter
from lpmarket.vendors.record_shops import (
    HottracksAdapter,
    HyangMusicAdapter,
    KimbapRecordAdapter,
    MajangMusicAdapter,
    SynnaraAdapter,
)


def build_default_adapters() -> list[VendorAdapter]:
    """All ten vendors, API sources first."""
    return [
        NaverShoppingAdapter(),
        AladinAdapter(),
        Yes24Adapter(),
        KyoboAdapter(),
        InterparkAdapter(),
        SynnaraAdapter(),
        HottracksAdapter(),
        HyangMusicAdapter(),
        KimbapRecordAdapter(),
        MajangMusicAdapter(),
    ]


__all__ = [
    "AladinAdapter",
    "CollectOutcome",
    "HottracksAdapter",
    "HyangMusicAdapter",
    "InterparkAdapter",
    "KimbapRecordAdapter",
    "KyoboAdapter",
    "MajangMusicAdapter",
    "NaverShoppingAdapter",
    "OutcomeStatus",
    "SynnaraAdapter",
    "VendorAdapter",
    "Yes24Adapter",
    "build_default_adapters",
]
