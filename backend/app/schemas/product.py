from pydantic import BaseModel


class ProductRead(BaseModel):
    id: int
    sku: str
    description: str
    uom: str
    reseller_visible: bool
    # empty = visible at every location
    locations: list[str]

    @classmethod
    def from_product(cls, p) -> "ProductRead":
        return cls(
            id=p.id,
            sku=p.sku,
            description=p.description,
            uom=p.uom.value,
            reseller_visible=p.reseller_visible,
            locations=[loc.name for loc in p.visible_locations],
        )
