from dataclasses import dataclass


@dataclass(frozen=True)
class Category:
    id: int
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> "Category":
        return cls(id=int(data["id"]), name=str(data["name"]))


@dataclass(frozen=True)
class Subcategory:
    id: int
    category_id: int  # owning category
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> "Subcategory":
        return cls(
            id=int(data["id"]),
            category_id=int(data["category_id"]),
            name=str(data["name"]),
        )


@dataclass(frozen=True)
class Operation:
    id: int
    subcategory_id: int  # owning subcategory
    date: str            # "YYYY-MM-DD", local calendar
    value: int           # minor units (kopecks)

    @classmethod
    def from_dict(cls, data: dict) -> "Operation":
        return cls(
            id=int(data["id"]),
            subcategory_id=int(data["subcategory_id"]),
            date=str(data["date"]),
            value=int(data["value"]),
        )


def to_minor_units(amount) -> int:
    """Convert a major-unit amount (e.g. 12.34 roubles) to minor units."""
    return int(round(float(amount) * 100))


def format_value(value: int, currency: str = "RUB") -> str:
    sign = "-" if value < 0 else ""
    major, minor = divmod(abs(int(value)), 100)
    return f"{sign}{major:,}.{minor:02d} {currency}"
