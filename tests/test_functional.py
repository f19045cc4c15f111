from ledger.domain import Category
from ledger.functional import (
    Either, Left, Maybe, Nothing, Right, Some,
    find_by_id, pipe, validate_date, validate_name, validate_selection, validate_value,
)


def test_maybe_map_and_bind():
    assert Some(5).map(lambda x: x * 2) == Some(10)
    assert Nothing().map(lambda x: x * 2).is_none()

    def half(x: int) -> Maybe[int]:
        return Some(x // 2) if x % 2 == 0 else Nothing()

    assert Some(4).bind(half).get_or_else(0) == 2
    assert Some(3).bind(half).is_none()
    assert Nothing().bind(half).get_or_else(-1) == -1


def test_either_map_and_bind():
    def positive(x: int) -> Either[str, int]:
        return Right(x) if x > 0 else Left("not positive")

    assert Right(2).map(lambda x: x + 1) == Right(3)
    assert Right(-1).bind(positive).get_error() == "not positive"
    left = Left("original error")
    assert left.bind(positive) is left
    assert left.map(lambda x: x + 1).get_or_else(0) == 0
    assert left.is_left() and not left.is_right()


def test_right_has_no_error():
    try:
        Right(1).get_error()
    except ValueError:
        pass
    else:
        raise AssertionError("Right.get_error should raise")


def test_find_by_id():
    cats = (Category(1, "Food"), Category(2, "Transport"))
    assert find_by_id(cats, 2).get_or_else(None).name == "Transport"
    assert find_by_id(cats, 3) == Nothing()
    assert find_by_id(cats, None).is_none()


def test_validate_name():
    assert validate_name("  Food ", "Category") == Right("Food")
    assert validate_name("", "Category") == Left("Category name is required")
    assert validate_name(None, "Subcategory") == Left("Subcategory name is required")
    assert validate_name(123, "Category") == Left("Category name is required")


def test_validate_value():
    assert validate_value(150) == Right(150)
    assert validate_value(150.0) == Right(150)
    for bad in (0, -1, 1.5, "12", None, True, float("nan"), float("inf")):
        assert validate_value(bad).is_left(), bad


def test_validate_date():
    assert validate_date("2024-02-29") == Right("2024-02-29")
    assert validate_date(None) == Left("Date is required")
    assert validate_date("2023-02-29").is_left()
    assert validate_date("2024-3-1").is_left()
    assert validate_date(20240305) == Left("Date must be in YYYY-MM-DD format")


def test_validate_selection():
    assert validate_selection(0, "subcategory") == Right(0)
    assert validate_selection(None, "subcategory") == Left("Select a subcategory")


def test_pipe():
    assert pipe(3, lambda x: x + 1, lambda x: x * 2) == 8
    assert pipe("x") == "x"
