import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Generic, Iterable, TypeVar

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Maybe(Generic[T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_some(self) -> bool:
        pass

    def is_none(self) -> bool:
        return not self.is_some()


class Some(Maybe[T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Some(f(self._value))

    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_some(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Some({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Some) and self._value == other._value


class Nothing(Maybe[T]):

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Nothing()

    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return Nothing()

    def get_or_else(self, default: T) -> T:
        return default

    def is_some(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Nothing()"

    def __eq__(self, other) -> bool:
        return isinstance(other, Nothing)


class Either(Generic[E, T], ABC):
    """Tagged result: Right carries a value, Left carries an error."""

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_right(self) -> bool:
        pass

    @abstractmethod
    def get_error(self) -> E:
        pass

    def is_left(self) -> bool:
        return not self.is_right()


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Right(f(self._value))

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_right(self) -> bool:
        return True

    def get_error(self) -> E:
        raise ValueError("Cannot get error from Right")

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self._error = error

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return self

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return self

    def get_or_else(self, default: T) -> T:
        return default

    def is_right(self) -> bool:
        return False

    def get_error(self) -> E:
        return self._error

    def __repr__(self) -> str:
        return f"Left({self._error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error


def find_by_id(items: Iterable[T], item_id: int | None) -> Maybe[T]:
    for item in items:
        if getattr(item, "id", None) == item_id:
            return Some(item)
    return Nothing()


def validate_name(name: str | None, label: str) -> Either[str, str]:
    if not isinstance(name, str):
        return Left(f"{label} name is required")
    cleaned = name.strip()
    if not cleaned:
        return Left(f"{label} name is required")
    return Right(cleaned)


def validate_value(value) -> Either[str, int]:
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool):
        return Left("Amount must be a positive number")
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return Left("Amount must be a positive number")
    if number != value or number <= 0:
        return Left("Amount must be a positive number")
    return Right(number)


def validate_date(date: str | None) -> Either[str, str]:
    if date is None or date == "":
        return Left("Date is required")
    if not isinstance(date, str) or not DATE_RE.match(date):
        return Left("Date must be in YYYY-MM-DD format")
    try:
        datetime.strptime(date, "%Y-%m-%d")
    except ValueError:
        return Left("Date must be in YYYY-MM-DD format")
    return Right(date)


def validate_selection(selected_id: int | None, label: str) -> Either[str, int]:
    if selected_id is None:
        return Left(f"Select a {label}")
    return Right(selected_id)


def pipe(x, *funcs):
    """Pipe a value through a series of functions.

    pipe(x, f, g, h) == h(g(f(x)))
    """
    res = x
    for f in funcs:
        res = f(res)
    return res
