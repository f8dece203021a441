"""Catalogue Collection aggregate — a priced bundle of products.

Gaming collections are sold as "buy N cards" lines and are expanded into
concrete products at checkout. Member order matters: a complete-set
purchase always grants the first ``COMPLETE_SET_SIZE`` eligible members.
"""

import json
from enum import Enum

from protean.fields import Float, String, Text

from storefront.domain import storefront

COMPLETE_SET_SIZE = 5


class CollectionKind(Enum):
    GAMING = "gaming"
    NORMAL = "normal"


@storefront.aggregate
class Collection:
    name = String(required=True, max_length=255)
    kind = String(choices=CollectionKind, default=CollectionKind.NORMAL.value)
    base_price = Float(default=0.0, min_value=0.0)
    image = String(max_length=1024)
    member_ids = Text()  # JSON array of Product ids, in display order

    @classmethod
    def create(cls, name, kind=CollectionKind.NORMAL.value, base_price=0.0, image=None, member_ids=None):
        return cls(
            name=name,
            kind=kind,
            base_price=base_price,
            image=image,
            member_ids=json.dumps(list(member_ids or [])),
        )

    @property
    def members(self) -> list[str]:
        return json.loads(self.member_ids) if self.member_ids else []

    @property
    def is_gaming(self) -> bool:
        return self.kind == CollectionKind.GAMING.value
