"""Worker index <-> handle registry."""

from typing import Dict, Iterator, List, Optional, Tuple

from warden_runtime.core.exceptions import UnknownHandleError


class Registry:
    """
    Bidirectional mapping between worker indices and live process handles.

    The registry is owned by a single supervisor thread and is not locked.
    Each index holds exactly one live handle; recording a new handle for an
    index retires the previous one. Retired handles still resolve to their
    index so that exit events of replaced instances can be recognised as
    stale instead of being mistaken for a corrupted mapping.
    """

    def __init__(self, size: int):
        if size < 1:
            raise ValueError(f"Registry needs at least one slot, got: {size}")
        self._handles: List[Optional[int]] = [None] * size
        self._indices: Dict[int, int] = {}
        self._retired: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._indices)

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        for index, handle in enumerate(self._handles):
            if handle is not None:
                yield index, handle

    def record(self, index: int, handle: int) -> None:
        """Set the live handle for ``index``, retiring whatever it replaces."""
        if not 0 <= index < len(self._handles):
            raise IndexError(f"Worker index {index} out of range 0..{len(self._handles) - 1}")

        previous = self._handles[index]
        if previous is not None and previous != handle:
            del self._indices[previous]
            self._retired[previous] = index

        # A recycled pid belongs to whoever holds it now.
        owner = self._indices.get(handle)
        if owner is not None and owner != index:
            self._handles[owner] = None
        self._retired.pop(handle, None)

        self._handles[index] = handle
        self._indices[handle] = index

    def resolve(self, handle: int) -> int:
        """Return the index ``handle`` was recorded under.

        Raises:
            UnknownHandleError: if the handle was never recorded.
        """
        index = self._indices.get(handle)
        if index is None:
            index = self._retired.get(handle)
        if index is None:
            raise UnknownHandleError(handle)
        return index

    def handle_of(self, index: int) -> Optional[int]:
        """Current live handle for ``index``."""
        return self._handles[index]

    def is_current(self, handle: int) -> bool:
        """Whether ``handle`` is the live handle of its index."""
        return handle in self._indices

    def forget_retired(self, handle: int) -> None:
        """Drop a retired handle once its exit has been reaped."""
        self._retired.pop(handle, None)
