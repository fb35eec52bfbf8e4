"""Vendor catalog — loaded once, read-only for the lifetime of the process."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from src.macompare.config import settings
from src.macompare.models import CompanySize, Vendor

logger = logging.getLogger(__name__)


class VendorCatalog:
    """Ordered, immutable collection of vendors with lookup by ID and segment.

    Catalog order is the tie-break order for every stable sort downstream.
    """

    def __init__(self, vendors: Iterable[Vendor]) -> None:
        self._vendors: tuple[Vendor, ...] = tuple(vendors)
        self._by_id: dict[str, Vendor] = {}
        for vendor in self._vendors:
            if vendor.vendor_id in self._by_id:
                raise ValueError(f"Duplicate vendor_id in catalog: {vendor.vendor_id}")
            self._by_id[vendor.vendor_id] = vendor

    @classmethod
    def from_records(cls, records: list[dict]) -> VendorCatalog:
        return cls(Vendor(**r) for r in records)

    @classmethod
    def from_json(cls, path: Path | str | None = None) -> VendorCatalog:
        path = Path(path) if path is not None else settings.vendors_path
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        catalog = cls.from_records(raw)
        logger.info("Loaded %d vendors from %s", len(catalog), path)
        return catalog

    @property
    def vendors(self) -> tuple[Vendor, ...]:
        return self._vendors

    @property
    def ids(self) -> list[str]:
        return [v.vendor_id for v in self._vendors]

    def get_vendor_by_id(self, vendor_id: str) -> Vendor | None:
        return self._by_id.get(vendor_id)

    def get_vendors_by_ids(self, vendor_ids: Iterable[str]) -> list[Vendor]:
        """Vendors in the order of ``vendor_ids``; unknown IDs are skipped."""
        return [self._by_id[i] for i in vendor_ids if i in self._by_id]

    def vendors_for_segment(self, segment: CompanySize) -> list[Vendor]:
        return [v for v in self._vendors if segment in v.target_segments]

    def __len__(self) -> int:
        return len(self._vendors)

    def __iter__(self) -> Iterator[Vendor]:
        return iter(self._vendors)

    def __contains__(self, vendor_id: object) -> bool:
        return vendor_id in self._by_id


def load_vendors(path: Path | str | None = None) -> list[Vendor]:
    return list(VendorCatalog.from_json(path))
