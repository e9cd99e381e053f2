"""Lazy source and segment primitives for running a script.

A source yields the statements of a script one at a time and each segment
turns the items it draws from upstream into new items, so one statement is
sent, rendered and post-processed before the next one is parsed.  Sources
and segments are chained with ``|`` into a Pipeline.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Iterable, Iterator, Optional, Type, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar('T')
U = TypeVar('U')


def _chain(first: Union['AbstractSource', 'AbstractSegment'], other: 'AbstractSegment') -> 'Pipeline':
    if isinstance(other, AbstractSource):
        raise RuntimeError("A source cannot be placed after another operation in a pipeline.")
    return Pipeline(first, other)


class AbstractSegment(ABC, Generic[T, U]):
    """An operation that turns an iterable of input items into an iterator of output items.

    The number of outputs need not match the number of inputs.
    """

    @abstractmethod
    def transform(self, input_iter: Iterable[T]) -> Iterator[U]:
        """Yield the output items for input_iter, lazily."""

    def __or__(self, other: 'AbstractSegment[U, Any]') -> 'Pipeline':
        return _chain(self, other)

    def __call__(self, input_iter: Optional[Iterable[T]] = None) -> Iterator[U]:
        logger.debug(f"Running segment {self.__class__.__name__}")
        return self.transform(iter([]) if input_iter is None else input_iter)


class AbstractSource(ABC, Generic[U]):
    """Starts a pipeline by generating items without any upstream input."""

    @abstractmethod
    def generate(self) -> Iterator[U]:
        """Yield the items of this source."""

    def __or__(self, other: 'AbstractSegment[U, Any]') -> 'Pipeline':
        return _chain(self, other)

    def __call__(self) -> Iterator[U]:
        logger.debug(f"Running source {self.__class__.__name__}")
        return self.generate()


def source(*decorator_args, **decorator_kwargs):
    """Turn a generator function into a source class.

    Works bare or with arguments; arguments given when the class is
    instantiated are passed on to the function:

        @source()
        def lines(text: str):
            yield from text.splitlines()

        (lines("a\\nb") | segment_instance)()
    """
    def decorator(func: Callable[..., Iterator[U]]) -> Type[AbstractSource[U]]:
        class FunctionSource(AbstractSource[U]):
            def __init__(self, *init_args, **init_kwargs):
                self._args = init_args
                self._kwargs = {**decorator_kwargs, **init_kwargs}

            def generate(self) -> Iterator[U]:
                return iter(func(*self._args, **self._kwargs))

        FunctionSource.__name__ = f"{func.__name__}Input"
        FunctionSource.__doc__ = func.__doc__
        return FunctionSource

    if len(decorator_args) == 1 and callable(decorator_args[0]) and not decorator_kwargs:
        return decorator(decorator_args[0])
    return decorator


def segment(*decorator_args, **decorator_kwargs):
    """Turn a function over an iterable of items into a segment class.

    The function receives the upstream iterable first, followed by whatever
    arguments the segment was instantiated with:

        @segment()
        def dropBlank(items, keep_whitespace: bool = False):
            for item in items:
                if item.strip() or keep_whitespace:
                    yield item
    """
    def decorator(func: Callable[..., Iterator[U]]) -> Type[AbstractSegment[T, U]]:
        class FunctionSegment(AbstractSegment[T, U]):
            def __init__(self, *init_args, **init_kwargs):
                self._args = init_args
                self._kwargs = {**decorator_kwargs, **init_kwargs}

            def transform(self, input_iter: Iterable[T]) -> Iterator[U]:
                return func(input_iter, *self._args, **self._kwargs)

        FunctionSegment.__name__ = f"{func.__name__}Operation"
        FunctionSegment.__doc__ = func.__doc__
        return FunctionSegment

    if len(decorator_args) == 1 and callable(decorator_args[0]) and not decorator_kwargs:
        return decorator(decorator_args[0])
    return decorator


class Pipeline(AbstractSegment):
    """Operations chained with ``|``; each draws from the output of the one before.

    When the first operation is a source the pipeline input is ignored:

        results = list((statementSource(text, "POST", url) | renderResponses())())
    """

    def __init__(self, *operations: Union[AbstractSource, AbstractSegment]):
        self.operations = list(operations)

    def transform(self, input_iter: Iterable[Any]) -> Iterator[Any]:
        current = input_iter
        for op in self.operations:
            current = op() if isinstance(op, AbstractSource) else op(current)
        yield from current

    def __or__(self, other: AbstractSegment) -> 'Pipeline':
        if isinstance(other, AbstractSource):
            raise RuntimeError("A source cannot be placed after another operation in a pipeline.")
        return Pipeline(*self.operations, other)
