"""A collection of classes to handle lazy, build-once caching in the package. Each
cached quantity lives in a slot that is in one of two states: :data:`UNBUILT`, or
:class:`Built`, which wraps the built value. A :class:`LazySlots` object groups a fixed
set of named slots and builds each of them at most once, via :meth:`LazySlots.get`.

Notes
-----
Slots are not thread-safe: callers must serialize the first access to each slot."""

from collections.abc import Iterable
from typing import Any, Callable, NamedTuple, Union


class Unbuilt:
    """State of a slot whose value has not been built yet. Use the singleton
    :data:`UNBUILT` rather than instantiating this class."""

    _instance: "Unbuilt" = None

    def __new__(cls) -> "Unbuilt":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNBUILT"


UNBUILT = Unbuilt()
"""The only instance of :class:`Unbuilt`."""


class Built(NamedTuple):
    """State of a slot whose value has been built. Note that ``value`` may legitimately
    be ``None``, e.g., to signal that a quantity is not required."""

    value: Any


Slot = Union[Unbuilt, Built]


class LazySlots:
    """A fixed set of named slots, each built at most once.

    Parameters
    ----------
    names : iterable of str
        Names of the slots. All slots start in the :data:`UNBUILT` state.
    """

    def __init__(self, names: Iterable[str]) -> None:
        self._slots: dict[str, Slot] = dict.fromkeys(names, UNBUILT)

    @property
    def names(self) -> tuple[str, ...]:
        """Gets the names of the slots."""
        return tuple(self._slots)

    def state(self, name: str) -> Slot:
        """Gets the current state of the slot ``name``.

        Raises
        ------
        KeyError
            Raises if no slot is called ``name``.
        """
        return self._slots[name]

    def is_built(self, name: str) -> bool:
        """Gets whether the slot ``name`` has already been built."""
        return isinstance(self._slots[name], Built)

    def get(self, name: str, builder: Callable[[], Any]) -> Any:
        """Returns the value in the slot ``name``, building it with ``builder`` if it
        was not built yet. The builder is never called again once it succeeded.

        Parameters
        ----------
        name : str
            Name of the slot.
        builder : callable
            A function with no arguments returning the value to cache. If it raises, the
            slot stays unbuilt and the exception propagates.

        Returns
        -------
        Any
            The cached value.

        Raises
        ------
        KeyError
            Raises if no slot is called ``name``.
        """
        slot = self._slots[name]
        if isinstance(slot, Built):
            return slot.value
        value = builder()
        self._slots[name] = Built(value)
        return value

    def __repr__(self) -> str:
        built = ", ".join(
            f"{n}={'built' if isinstance(s, Built) else 'unbuilt'}"
            for n, s in self._slots.items()
        )
        return f"{self.__class__.__name__}({built})"
