"""
Lazily evaluated promises returned by generated bindings.

A Promise wraps a zero-argument callable. Nothing runs until result() is
called; the outcome (value or exception) is then cached so that chained
promises evaluate each step exactly once.
"""

from typing import Any, Callable, Generic, Optional, TypeVar


T = TypeVar('T')
U = TypeVar('U')

_PENDING = object()


class Promise(Generic[T]):
    """
    A deferred computation producing a value of type T.

    Usage:
        p = Promise.resolved(2).then(lambda x: x * 3)
        p.result()  # 6
    """

    def __init__(self, compute: Callable[[], T]):
        self._compute = compute
        self._value: Any = _PENDING
        self._error: Optional[BaseException] = None

    @classmethod
    def resolved(cls, value: T) -> 'Promise[T]':
        """A promise that already holds value."""
        promise = cls(lambda: value)
        promise._value = value
        return promise

    @classmethod
    def failed(cls, error: BaseException) -> 'Promise[Any]':
        """A promise that already holds error."""
        promise = cls(lambda: None)
        promise._error = error
        return promise

    @classmethod
    def attempt(cls, compute: Callable[[], T]) -> 'Promise[T]':
        """Run compute now and capture its value or exception."""
        try:
            return cls.resolved(compute())
        except Exception as e:
            return cls.failed(e)

    @property
    def done(self) -> bool:
        return self._error is not None or self._value is not _PENDING

    def result(self) -> T:
        """Evaluate the promise (once) and return its value or raise its error."""
        if not self.done:
            try:
                self._value = self._compute()
            except Exception as e:
                self._error = e
        if self._error is not None:
            raise self._error
        return self._value

    def then(self, fn: Callable[[T], U]) -> 'Promise[U]':
        """Transform the value; errors propagate without calling fn."""
        return Promise(lambda: fn(self.result()))

    def then_promise(self, fn: Callable[[T], 'Promise[U]']) -> 'Promise[U]':
        """Chain a step that itself returns a promise."""
        return Promise(lambda: fn(self.result()).result())
