from __future__ import annotations

from dataclasses import dataclass, field

"""Catalog-facing models: product metadata and crosssell links."""

__all__ = [
    "ProductMetadata",
    "ProductLookup",
    "CrossSellItem",
]


@dataclass(frozen=True)
class ProductMetadata:
    sku: str
    name: str
    url: str  # absolute storefront URL
    image: str | None  # absolute media URL


@dataclass(frozen=True)
class ProductLookup:
    """Resolver output. SKUs the catalog did not return have no key."""
    sku_to_name: dict[str, str] = field(default_factory=dict)
    sku_to_url: dict[str, str] = field(default_factory=dict)
    sku_to_image: dict[str, str | None] = field(default_factory=dict)

    @classmethod
    def from_products(cls, products: list[ProductMetadata]) -> ProductLookup:
        names: dict[str, str] = {}
        urls: dict[str, str] = {}
        images: dict[str, str | None] = {}
        for p in products:
            if not p.sku:
                continue
            if p.name:
                names[p.sku] = p.name
            if p.url:
                urls[p.sku] = p.url
            images[p.sku] = p.image
        return cls(sku_to_name=names, sku_to_url=urls, sku_to_image=images)

    @property
    def empty(self) -> bool:
        return not (self.sku_to_name or self.sku_to_url or self.sku_to_image)


@dataclass(frozen=True)
class CrossSellItem:
    sku: str
    link_type: str
    linked_product_sku: str
    linked_product_type: str
    position: int
