"""Record types shared by the test-suite."""
from dataclasses import dataclass
import uuid
from typing import Optional


@dataclass
class Product:
    id: Optional[int] = None
    name: str = ""
    price: float = 0.0


@dataclass
class Tag:
    label: str = ""
    weight: int = 0


class Missing:
    """Record type with no backing table."""

    def __init__(self):
        self.id = None


class SlimProduct:
    """Maps onto Product but has no field for the key."""

    __tablename__ = "Product"
    __slots__ = ("name", "price")

    def __init__(self, name: str = "", price: float = 0.0):
        self.name = name
        self.price = price


@dataclass
class UuidProduct:
    """Declares a key type the integer identity cannot be coerced to."""

    __tablename__ = "Product"

    id: Optional[uuid.UUID] = None
    name: str = ""
    price: float = 0.0


class LooseProduct:
    """Plain class: attributes live only on instances."""

    __tablename__ = "product"

    def __init__(self):
        self.id = None
        self.name = ""
        self.price = 0.0
